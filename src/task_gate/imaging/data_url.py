"""Conversions between raw image bytes and ``data:`` URLs."""

from __future__ import annotations

import base64
import binascii
import mimetypes
import re
from pathlib import Path

DEFAULT_MIME_TYPE = "application/octet-stream"

_DATA_URL_HEADER = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*),", re.IGNORECASE)


def to_data_url(data: bytes | str, mime_type: str) -> str:
    """Build a base64 data URL; ``str`` input is taken as already base64-encoded."""

    encoded = data if isinstance(data, str) else base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{encoded}"


def parse_data_url(url: str) -> tuple[str, bytes]:
    """Return ``(mime_type, content)`` for a base64 data URL."""

    match = _DATA_URL_HEADER.match(url or "")
    if match is None or not match.group("mime"):
        raise ValueError("Invalid data URL")
    params = [part.strip().lower() for part in match.group("params").split(";") if part]
    if "base64" not in params:
        raise ValueError("Invalid data URL: only base64 payloads are supported")
    payload = "".join(url[match.end() :].split())
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid data URL: {exc}") from exc
    return match.group("mime").lower(), content


def guess_mime_type(path: Path) -> str:
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or DEFAULT_MIME_TYPE

