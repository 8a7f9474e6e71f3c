"""CLI entrypoint for task-gate."""

import logging
from pathlib import Path

import rich_click as click

from task_gate import __version__
from task_gate.controllers import GateCliController, GateDemoCommand, SmileCommand

click.rich_click.USE_MARKDOWN = True
GATE_CONTROLLER = GateCliController()


@click.group()
@click.version_option(version=__version__, prog_name="task-gate")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Root logger level.",
)
def task_gate(log_level: str) -> None:
    """Run AI photo actions one at a time through an exclusive task gate."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@task_gate.command("smile")
@click.argument("image_path", type=click.Path(path_type=Path, dir_okay=False))
@click.option(
    "--out",
    "output_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Where to write the edited image. Defaults to `smile-<name>` next to the input.",
)
@click.option(
    "--timeout-ms",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Deadline before the request is cancelled. Defaults to `TASK_GATE_TIMEOUT_MS`.",
)
@click.option("--prompt", default=None, help="Override the smile instruction.")
def smile(
    image_path: Path,
    output_path: Path | None,
    timeout_ms: float | None,
    prompt: str | None,
) -> None:
    """Make the subject of IMAGE_PATH smile using the Gemini image model."""

    result = GATE_CONTROLLER.smile(
        SmileCommand(
            image_path=image_path,
            output_path=output_path,
            timeout_ms=timeout_ms,
            prompt=prompt,
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Auto smile failed.")


@task_gate.command("config")
def show_config() -> None:
    """Print the effective configuration (API key masked)."""

    _emit_lines(GATE_CONTROLLER.show_config())


@task_gate.command("demo")
@click.option(
    "--tasks",
    type=click.IntRange(min=1, max=20),
    default=3,
    show_default=True,
    help="Number of runs queued at once.",
)
@click.option(
    "--work-ms",
    type=click.IntRange(min=0),
    default=200,
    show_default=True,
    help="How long each run works before finishing.",
)
@click.option(
    "--timeout-ms",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-run deadline. Runs honor it and stop early.",
)
def demo(tasks: int, work_ms: int, timeout_ms: float | None) -> None:
    """Queue several runs on one gate and show FIFO hand-off and timeouts."""

    _emit_lines(
        GATE_CONTROLLER.demo(
            GateDemoCommand(tasks=tasks, work_ms=work_ms, timeout_ms=timeout_ms),
        ),
    )


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    task_gate()
