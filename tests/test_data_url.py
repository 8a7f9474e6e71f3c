"""Tests for data URL helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from task_gate.imaging.data_url import (
    guess_mime_type,
    parse_data_url,
    to_data_url,
)
from task_gate.imaging.provider import GeneratedImage


class TestDataUrl:
    def test_to_data_url_from_bytes(self):
        assert to_data_url(b"hi", "image/png") == "data:image/png;base64,aGk="

    def test_to_data_url_from_base64_text(self):
        assert to_data_url("aGk=", "image/png") == "data:image/png;base64,aGk="

    def test_parse_data_url(self):
        assert parse_data_url("data:image/png;base64,aGk=") == ("image/png", b"hi")

    def test_parse_rejects_missing_header(self):
        with pytest.raises(ValueError, match="Invalid data URL"):
            parse_data_url("aGk=")

    def test_parse_rejects_non_base64_payload(self):
        with pytest.raises(ValueError, match="only base64"):
            parse_data_url("data:text/plain,hello")

    def test_parse_rejects_corrupt_base64(self):
        with pytest.raises(ValueError, match="Invalid data URL"):
            parse_data_url("data:image/png;base64,@@@")

    def test_parse_ignores_whitespace_in_payload(self):
        assert parse_data_url("data:image/png;base64,aG\nk=\n") == ("image/png", b"hi")

    def test_provider_payload_with_line_breaks_round_trips(self):
        generated = GeneratedImage(data="aGk=\n", mime_type="image/png")

        mime_type, content = parse_data_url(to_data_url(generated.data, generated.mime_type))

        assert mime_type == "image/png"
        assert content == generated.content == b"hi"


class TestMimeTypes:
    def test_guess_png(self):
        assert guess_mime_type(Path("face.png")) == "image/png"

    def test_guess_unknown(self):
        assert guess_mime_type(Path("face.unknownext")) == "application/octet-stream"
