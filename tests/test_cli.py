from __future__ import annotations

import base64
from pathlib import Path

import allure
import httpx
from click.testing import CliRunner

from task_gate import main as cli_main
from task_gate.controllers import GateCliController
from task_gate.main import task_gate

pytestmark = [
    allure.epic("Image Actions"),
    allure.feature("CLI"),
]


def _mock_controller(monkeypatch, handler) -> None:
    controller = GateCliController(transport=httpx.MockTransport(handler))
    monkeypatch.setattr(cli_main, "GATE_CONTROLLER", controller)


def _ok_handler(request: httpx.Request) -> httpx.Response:
    inline = {"data": base64.b64encode(b"smiling").decode(), "mimeType": "image/png"}
    return httpx.Response(
        200,
        json={"candidates": [{"content": {"parts": [{"inlineData": inline}]}}]},
    )


def test_smile_writes_output(tmp_path: Path, monkeypatch, gemini_key) -> None:
    image_path = tmp_path / "portrait.png"
    image_path.write_bytes(b"portrait")
    output_path = tmp_path / "result.png"
    _mock_controller(monkeypatch, _ok_handler)

    result = CliRunner().invoke(
        task_gate,
        ["smile", str(image_path), "--out", str(output_path), "--timeout-ms", "5000"],
    )

    assert result.exit_code == 0, result.output
    assert "Saved image/png (7 bytes)" in result.output
    assert output_path.read_bytes() == b"smiling"


def test_smile_defaults_output_next_to_input(tmp_path: Path, monkeypatch, gemini_key) -> None:
    image_path = tmp_path / "portrait.png"
    image_path.write_bytes(b"portrait")
    _mock_controller(monkeypatch, _ok_handler)

    result = CliRunner().invoke(task_gate, ["smile", str(image_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "smile-portrait.png").read_bytes() == b"smiling"


def test_smile_requires_api_key(tmp_path: Path, monkeypatch) -> None:
    image_path = tmp_path / "portrait.png"
    image_path.write_bytes(b"portrait")
    _mock_controller(monkeypatch, _ok_handler)

    result = CliRunner().invoke(task_gate, ["smile", str(image_path)])

    assert result.exit_code != 0
    assert "Server is missing GEMINI_API_KEY" in result.output


def test_smile_reports_provider_failure(tmp_path: Path, monkeypatch, gemini_key) -> None:
    image_path = tmp_path / "portrait.png"
    image_path.write_bytes(b"portrait")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"message": "Image too large"}})

    _mock_controller(monkeypatch, handler)

    result = CliRunner().invoke(task_gate, ["smile", str(image_path)])

    assert result.exit_code != 0
    assert "Auto smile failed: Image too large" in result.output


def test_smile_reports_missing_image(tmp_path: Path, monkeypatch, gemini_key) -> None:
    _mock_controller(monkeypatch, _ok_handler)

    result = CliRunner().invoke(task_gate, ["smile", str(tmp_path / "nope.png")])

    assert result.exit_code != 0
    assert "Image not found" in result.output


def test_config_masks_api_key(monkeypatch, gemini_key) -> None:
    monkeypatch.setenv("TASK_GATE_TIMEOUT_MS", "2500")

    result = CliRunner().invoke(task_gate, ["config"])

    assert result.exit_code == 0, result.output
    assert "default_timeout_ms=2500" in result.output
    assert gemini_key not in result.output
    assert "gemini_api_key=test...7890" in result.output


def test_demo_shows_fifo_order_and_skipped_try() -> None:
    result = CliRunner().invoke(task_gate, ["demo", "--tasks", "3", "--work-ms", "20"])

    assert result.exit_code == 0, result.output
    output = result.output
    assert output.index("task-1 started") < output.index("task-1 finished")
    assert output.index("task-1 finished") < output.index("task-2 started")
    assert output.index("task-2 finished") < output.index("task-3 started")
    assert "opportunist skipped, gate busy" in output
    assert "gate idle, busy=False" in output


def test_demo_timeout_cancels_runs() -> None:
    result = CliRunner().invoke(
        task_gate,
        ["demo", "--tasks", "2", "--work-ms", "2000", "--timeout-ms", "30"],
    )

    assert result.exit_code == 0, result.output
    assert result.output.count("cancelled (timeout)") == 2


def test_config_reports_negative_timeout_as_disabled(monkeypatch) -> None:
    monkeypatch.setenv("TASK_GATE_TIMEOUT_MS", "-1")

    result = CliRunner().invoke(task_gate, ["config"])

    assert result.exit_code == 0, result.output
    assert "default_timeout_ms=disabled" in result.output
