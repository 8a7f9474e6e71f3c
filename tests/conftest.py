"""Shared test fixtures."""

from __future__ import annotations

import os

import pytest

_SETTINGS_ENV_PREFIXES = ("TASK_GATE_", "GEMINI_")


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch):
    """Keep developer environment variables out of Settings.from_env."""
    for name in list(os.environ):
        if name.startswith(_SETTINGS_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def gemini_key(monkeypatch) -> str:
    key = "test-key-1234567890"
    monkeypatch.setenv("GEMINI_API_KEY", key)
    return key
