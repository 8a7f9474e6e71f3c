"""AI photo actions that run one at a time through the shared gate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from task_gate.config import ActionSettings
from task_gate.gate import CancellationToken, RunOptions, TaskGate
from task_gate.imaging.data_url import guess_mime_type, parse_data_url, to_data_url
from task_gate.imaging.provider import GeminiImageClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SmileResult:
    """Edited image produced by ``AiActions.auto_smile``."""

    data_url: str
    filename: str
    mime_type: str
    content: bytes

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.content)
        return path


class AiActions:
    """Provider-backed edits; every call goes through ``gate.run_exclusive``."""

    def __init__(
        self,
        gate: TaskGate,
        client: GeminiImageClient,
        *,
        settings: ActionSettings | None = None,
        timeout_ms: float | None = None,
    ) -> None:
        self._gate = gate
        self._client = client
        self._settings = settings or ActionSettings()
        self._timeout_ms = timeout_ms

    @property
    def busy(self) -> bool:
        return self._gate.busy

    async def auto_smile(self, image_path: Path, *, prompt: str | None = None) -> SmileResult:
        image = image_path.read_bytes()
        mime_type = guess_mime_type(image_path)
        effective_prompt = prompt or self._settings.smile_prompt

        async def work(token: CancellationToken) -> str:
            generated = await self._client.generate(image, mime_type, effective_prompt, token=token)
            return to_data_url(generated.data, generated.mime_type)

        data_url = await self._gate.run_exclusive(
            work,
            RunOptions(timeout_ms=self._timeout_ms, label=f"auto-smile:{image_path.name}"),
        )
        result_mime, content = parse_data_url(data_url)
        logger.info("Generated %s (%d bytes) from %s", result_mime, len(content), image_path)
        return SmileResult(
            data_url=data_url,
            filename=f"smile-{image_path.name}",
            mime_type=result_mime,
            content=content,
        )
