"""Runtime configuration for the task gate and image actions."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

DEFAULT_TIMEOUT_MS = 180_000.0
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_SMILE_PROMPT = "Make the subject smile naturally, preserving identity."


@dataclass(slots=True)
class GateSettings:
    """Exclusive task gate settings."""

    default_timeout_ms: float | None = DEFAULT_TIMEOUT_MS


@dataclass(slots=True)
class ProviderSettings:
    """Generative image provider settings."""

    api_key: str | None = None
    model: str = DEFAULT_GEMINI_MODEL
    base_url: str = DEFAULT_GEMINI_BASE_URL
    connect_timeout_seconds: float = 10.0


@dataclass(slots=True)
class ActionSettings:
    """Prompts used by the AI actions."""

    smile_prompt: str = DEFAULT_SMILE_PROMPT


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    gate: GateSettings = field(default_factory=GateSettings)
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    actions: ActionSettings = field(default_factory=ActionSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            gate=GateSettings(
                default_timeout_ms=_env_timeout_ms(
                    os.getenv("TASK_GATE_TIMEOUT_MS", os.getenv("GEMINI_TIMEOUT")),
                ),
            ),
            provider=ProviderSettings(
                api_key=os.getenv("GEMINI_API_KEY") or None,
                model=os.getenv("TASK_GATE_GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
                base_url=os.getenv("TASK_GATE_GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL),
                connect_timeout_seconds=float(
                    os.getenv("TASK_GATE_HTTP_CONNECT_TIMEOUT_SECONDS", "10.0"),
                ),
            ),
            actions=ActionSettings(
                smile_prompt=os.getenv("TASK_GATE_SMILE_PROMPT", DEFAULT_SMILE_PROMPT),
            ),
        )

    def validate_for_gate(self) -> None:
        """Raise configuration error if the default timeout is unusable."""

        timeout_ms = self.gate.default_timeout_ms
        if timeout_ms is not None and not math.isinf(timeout_ms) and timeout_ms <= 0:
            raise ValueError("TASK_GATE_TIMEOUT_MS must be > 0.")

    def validate_for_provider(self) -> None:
        """Raise configuration error if the image provider cannot be called."""

        self.validate_for_gate()
        if not self.provider.api_key:
            raise ValueError("Server is missing GEMINI_API_KEY")
        if not self.provider.model.strip():
            raise ValueError("TASK_GATE_GEMINI_MODEL must not be empty.")
        if self.provider.connect_timeout_seconds <= 0:
            raise ValueError("TASK_GATE_HTTP_CONNECT_TIMEOUT_SECONDS must be > 0.")
        parsed = urlparse(self.provider.base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                f"Invalid provider base URL: {self.provider.base_url}. "
                "Expected an absolute http(s) URL.",
            )
        if not self.actions.smile_prompt.strip():
            raise ValueError("TASK_GATE_SMILE_PROMPT must not be empty.")


def _env_timeout_ms(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_MS
    normalized = raw.strip().lower()
    if normalized in {"none", "off"}:
        return None
    value = float(normalized)
    if not math.isfinite(value) or value <= 0:
        return None
    return value
