# run.py
# Entry point. Config and wiring only — no logic lives here.

import asyncio
import logging
from pathlib import Path

import typer
from rich.logging import RichHandler

from autoqa import display
from autoqa.clients import build_clients
from autoqa.config import load_settings
from autoqa.models import Phase, SessionSnapshot, TargetConfig
from autoqa.orchestrator import RunOrchestrator, validate_target
from autoqa.report import export_script

app = typer.Typer(help="Plan, execute and report an autonomous test run against a URL.")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=display.console, rich_tracebacks=True)],
    )


async def _run_session(orchestrator: RunOrchestrator, target: TargetConfig) -> SessionSnapshot:
    try:
        await orchestrator.start(target)
    except asyncio.CancelledError:
        orchestrator.cancel()
        raise
    return orchestrator.snapshot()


@app.command()
def run(
    url: str = typer.Argument(..., help="Target URL, e.g. https://example.com"),
    username: str | None = typer.Option(None, help="Username for a login scenario."),
    password: str | None = typer.Option(None, help="Password for a login scenario."),
    mock: bool | None = typer.Option(
        None,
        "--mock/--live",
        help="Offline mock collaborators or live model calls. Defaults to mock without an API key.",
    ),
    fallback_outcome: str | None = typer.Option(
        None,
        help="Outcome recorded when the step model gives no usable verdict: PASSED or FAILED.",
    ),
    step_pause: float | None = typer.Option(None, min=0, help="Seconds between steps."),
    export: Path | None = typer.Option(
        None,
        help="Write the generated script to this file or directory.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show diagnostic logging."),
) -> None:
    """Generate a test plan for URL, execute every step and print the report."""
    _configure_logging(verbose)

    try:
        validate_target(url)
        settings = load_settings(
            mock_mode=mock,
            fallback_outcome=fallback_outcome,
            step_pause=step_pause,
        )
        planner, executor = build_clients(settings)
    except ValueError as exc:
        display.halt(str(exc))
        raise typer.Exit(code=2) from exc

    target = TargetConfig(url=url, username=username, password=password)
    orchestrator = RunOrchestrator(planner, executor, step_pause=settings.step_pause)
    orchestrator.subscribe_logs(display.log_entry)
    orchestrator.subscribe(display.PhaseWatcher())

    display.banner(url, "mock" if settings.mock_mode else f"live ({settings.plan_model})")
    snapshot = asyncio.run(_run_session(orchestrator, target))

    if snapshot.phase != Phase.COMPLETE or snapshot.suite is None or snapshot.report is None:
        display.halt(f"Run ended in {snapshot.phase.value}. Reset and retry.")
        raise typer.Exit(code=1)

    display.report(snapshot.suite, snapshot.report)
    if export is not None:
        path = export_script(snapshot.suite, export)
        display.script_exported(str(path))

    if snapshot.report.failed_count:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
