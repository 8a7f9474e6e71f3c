"""Controllers for task-gate CLI commands."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path

import httpx

from task_gate.config import Settings
from task_gate.gate import CancellationToken, RunOptions, TaskGate, TaskGateError
from task_gate.imaging import AiActions, GeminiImageClient, ImageGenerationError


@dataclass(slots=True)
class SmileCommand:
    """CLI input for the auto-smile action."""

    image_path: Path
    output_path: Path | None
    timeout_ms: float | None
    prompt: str | None


@dataclass(slots=True)
class GateDemoCommand:
    """CLI input for the local gate demonstration."""

    tasks: int
    work_ms: int
    timeout_ms: float | None


@dataclass(slots=True)
class CommandResult:
    """Report to render in CLI."""

    lines: list[str]
    success: bool


class GateCliController:
    """Builds the gate and the provider client for each CLI command."""

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    def smile(self, command: SmileCommand) -> CommandResult:
        settings = Settings.from_env()
        try:
            settings.validate_for_provider()
        except ValueError as error:
            return CommandResult(lines=[str(error)], success=False)
        if not command.image_path.is_file():
            return CommandResult(lines=[f"Image not found: {command.image_path}"], success=False)
        try:
            return asyncio.run(self._smile(settings, command))
        except (ImageGenerationError, TaskGateError, ValueError) as error:
            return CommandResult(lines=[f"Auto smile failed: {error}"], success=False)

    def show_config(self) -> list[str]:
        settings = Settings.from_env()
        timeout = settings.gate.default_timeout_ms
        return [
            "task-gate configuration:",
            f"default_timeout_ms={'disabled' if timeout is None else f'{timeout:.0f}'}",
            f"gemini_model={settings.provider.model}",
            f"gemini_base_url={settings.provider.base_url}",
            f"gemini_api_key={_mask(settings.provider.api_key)}",
            f"smile_prompt={settings.actions.smile_prompt}",
        ]

    def demo(self, command: GateDemoCommand) -> list[str]:
        """Queue ``tasks`` sleeping runs on one gate and report their order."""

        return asyncio.run(_run_demo(command))

    async def _smile(self, settings: Settings, command: SmileCommand) -> CommandResult:
        gate = TaskGate(default_timeout_ms=settings.gate.default_timeout_ms)
        async with GeminiImageClient(settings.provider, transport=self._transport) as client:
            actions = AiActions(
                gate,
                client,
                settings=settings.actions,
                timeout_ms=command.timeout_ms,
            )
            result = await actions.auto_smile(command.image_path, prompt=command.prompt)
        output_path = command.output_path or command.image_path.with_name(result.filename)
        result.save(output_path)
        return CommandResult(
            lines=[
                f"Saved {result.mime_type} ({len(result.content)} bytes) to {output_path}",
            ],
            success=True,
        )


async def _run_demo(command: GateDemoCommand) -> list[str]:
    gate = TaskGate(default_timeout_ms=command.timeout_ms)
    lines: list[str] = []
    started = time.monotonic()

    def elapsed_ms() -> int:
        return int((time.monotonic() - started) * 1000)

    async def sleeper(name: str, token: CancellationToken) -> str:
        lines.append(f"[{elapsed_ms():>6} ms] {name} started")
        deadline = time.monotonic() + command.work_ms / 1000.0
        while time.monotonic() < deadline and not token.cancelled:
            await asyncio.sleep(0.01)
        status = f"cancelled ({token.reason})" if token.cancelled else "finished"
        lines.append(f"[{elapsed_ms():>6} ms] {name} {status}")
        return name

    runs = [
        asyncio.create_task(
            gate.run_exclusive(
                lambda token, name=f"task-{index}": sleeper(name, token),
                RunOptions(label=f"task-{index}"),
            ),
        )
        for index in range(1, command.tasks + 1)
    ]
    await asyncio.sleep(0)
    skipped = await gate.try_run_exclusive(lambda token: sleeper("opportunist", token))
    if skipped is None:
        lines.append(f"[{elapsed_ms():>6} ms] opportunist skipped, gate busy")
    await asyncio.gather(*runs)
    lines.append(f"[{elapsed_ms():>6} ms] gate idle, busy={gate.busy}")
    return lines


def _mask(secret: str | None) -> str:
    if not secret:
        return "<unset>"
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}...{secret[-4:]}"
