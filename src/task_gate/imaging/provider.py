"""Async client for the Gemini image generation endpoint."""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from task_gate.config import ProviderSettings
from task_gate.gate import CancellationToken

logger = logging.getLogger(__name__)

RESPONSE_MODALITIES = ("IMAGE", "TEXT")


class ImageGenerationError(Exception):
    """The provider call failed or produced no image."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class GeneratedImage:
    """Inline image returned by the model."""

    data: str
    mime_type: str

    @property
    def content(self) -> bytes:
        return base64.b64decode(self.data)


class GeminiImageClient:
    """Send an image plus an instruction to Gemini and return the edited image.

    Pass the run's ``CancellationToken`` to ``generate``: when the token is
    cancelled the in-flight request is aborted and the token's error raised.
    """

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not settings.api_key:
            raise ImageGenerationError("Server is missing GEMINI_API_KEY", status_code=500)
        self._settings = settings
        self._client = httpx.AsyncClient(
            headers={"x-goog-api-key": settings.api_key},
            timeout=httpx.Timeout(None, connect=settings.connect_timeout_seconds),
            transport=transport,
        )

    async def generate(
        self,
        image: bytes,
        mime_type: str,
        prompt: str,
        *,
        token: CancellationToken | None = None,
    ) -> GeneratedImage:
        if not image:
            raise ImageGenerationError("Missing image file in form data", status_code=400)
        if not prompt or not prompt.strip():
            raise ImageGenerationError("Missing prompt in form data", status_code=400)
        if token is not None:
            token.raise_if_cancelled()

        response = await self._post_cancellable(
            f"{self._settings.base_url.rstrip('/')}/models/{self._settings.model}:generateContent",
            _build_request_body(image, mime_type, prompt),
            token,
        )
        if not response.is_success:
            message = _error_message(response)
            logger.warning("Image generation failed: %s", message)
            raise ImageGenerationError(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ImageGenerationError(
                f"Malformed provider response: {exc}",
                status_code=502,
            ) from exc
        generated = extract_inline_image(payload)
        if generated is None:
            raise ImageGenerationError("Model did not return an image", status_code=502)
        return generated

    async def _post_cancellable(
        self,
        url: str,
        body: Mapping[str, Any],
        token: CancellationToken | None,
    ) -> httpx.Response:
        request = asyncio.ensure_future(self._client.post(url, json=body))
        remove = token.add_callback(lambda _: request.cancel()) if token is not None else None
        try:
            return await request
        except asyncio.CancelledError:
            current = asyncio.current_task()
            outer_cancelled = current is not None and current.cancelling() > 0
            if token is not None and token.cancelled and not outer_cancelled:
                logger.info("Aborted image request: %s", token.reason)
                token.raise_if_cancelled()
            raise
        except httpx.TimeoutException as exc:
            logger.warning("Timeout calling image provider: %s", exc)
            raise ImageGenerationError("Image provider timed out", status_code=504) from exc
        except httpx.HTTPError as exc:
            logger.warning("HTTP error calling image provider: %s", exc)
            raise ImageGenerationError(str(exc) or type(exc).__name__, status_code=502) from exc
        finally:
            if remove is not None:
                remove()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GeminiImageClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()


def extract_inline_image(payload: Mapping[str, Any]) -> GeneratedImage | None:
    """Return the first inline image part across all candidates."""

    for candidate in payload.get("candidates") or []:
        parts = ((candidate or {}).get("content") or {}).get("parts") or []
        for part in parts:
            inline = (part or {}).get("inlineData") or (part or {}).get("inline_data")
            if not inline:
                continue
            data = inline.get("data")
            mime_type = inline.get("mimeType") or inline.get("mime_type")
            if data and mime_type:
                return GeneratedImage(data=data, mime_type=mime_type)
    return None


def _build_request_body(image: bytes, mime_type: str, prompt: str) -> dict[str, Any]:
    return {
        "contents": [
            {
                "parts": [
                    {
                        "inlineData": {
                            "data": base64.b64encode(image).decode("ascii"),
                            "mimeType": mime_type or "application/octet-stream",
                        },
                    },
                    {"text": prompt},
                ],
            },
        ],
        "generationConfig": {"responseModalities": list(RESPONSE_MODALITIES)},
    }


def _error_message(response: httpx.Response) -> str:
    fallback = f"{response.status_code} {response.reason_phrase}".strip()
    try:
        payload = response.json()
    except ValueError:
        return fallback
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    return fallback
