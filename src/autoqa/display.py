# display.py
# All terminal output for the test agent.
#
# This module owns presentation entirely. The orchestrator never formats
# strings for the terminal — the CLI wires these functions up as
# subscribers. Swap this file to change the entire UI.
#
# Colour language:
#   cyan    — routine narrative
#   yellow  — warnings
#   green   — success / passed
#   red     — failures, halts

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from autoqa.models import LogEntry, LogLevel, Phase, SessionSnapshot, StepStatus, SuiteReport, TestSuite

console = Console()

LEVEL_STYLES = {
    LogLevel.INFO: "cyan",
    LogLevel.WARN: "yellow",
    LogLevel.ERROR: "red",
    LogLevel.SUCCESS: "green",
}

STATUS_MARKS = {
    StepStatus.PENDING: "[dim]·[/dim]",
    StepStatus.RUNNING: "[bold cyan]▶[/bold cyan]",
    StepStatus.PASSED: "[bold green]✓[/bold green]",
    StepStatus.FAILED: "[bold red]✗[/bold red]",
    StepStatus.SKIPPED: "[yellow]↷[/yellow]",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


# ---------------------------------------------------------------------------
# Session narrative
# ---------------------------------------------------------------------------


def banner(url: str, mode: str) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Autonomous Test Agent[/bold cyan]\n"
            "[dim]Plan → Execute → Report[/dim]\n\n"
            f"[dim]Target :[/dim] [white]{escape(url)}[/white]\n"
            f"[dim]Mode   :[/dim] [white]{mode}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def log_entry(entry: LogEntry) -> None:
    color = LEVEL_STYLES[entry.level]
    console.print(
        f"[dim]{entry.timestamp}[/dim] [{color}]{entry.level.value:<7}[/{color}] "
        f"[white]{escape(_mono(entry.message, 160))}[/white]",
        highlight=False,
    )


class PhaseWatcher:
    """Subscriber that prints a rule whenever the phase changes."""

    def __init__(self) -> None:
        self._last: Phase | None = None

    def __call__(self, snapshot: SessionSnapshot) -> None:
        if snapshot.phase == self._last:
            return
        self._last = snapshot.phase
        if snapshot.phase == Phase.RUNNING and snapshot.suite is not None:
            plan_generated(snapshot.suite)
        console.print(Rule(f"[cyan]{snapshot.phase.value}[/cyan]", style="cyan"))


# ---------------------------------------------------------------------------
# Plan and results
# ---------------------------------------------------------------------------


def plan_generated(suite: TestSuite) -> None:
    console.print()
    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="cyan",
        show_header=True,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("ID", justify="center", width=4)
    table.add_column("Step", style="bold white", width=24)
    table.add_column("Description", style="white")

    for step in suite.steps:
        table.add_row(escape(step.id), escape(step.name), escape(step.description))

    console.print(
        Panel(
            table,
            title=_label("TEST PLAN", "cyan"),
            subtitle=f"[dim]{escape(_mono(suite.summary, 100))}[/dim]",
            border_style="cyan",
            padding=(0, 1),
        )
    )


def report(suite: TestSuite, summary: SuiteReport) -> None:
    passed = summary.failed_count == 0
    color = "green" if passed else "red"

    table = Table(
        box=box.SIMPLE_HEAVY,
        border_style="dim",
        show_header=True,
        header_style="bold dim",
        padding=(0, 1),
    )
    table.add_column("", justify="center", width=3)
    table.add_column("Step", width=20)
    table.add_column("Duration", justify="right", width=10)
    table.add_column("Last log", style="dim white")

    for step, timing in zip(suite.steps, summary.step_durations):
        table.add_row(
            STATUS_MARKS[step.status],
            escape(timing.short_name),
            f"{timing.duration_ms}ms",
            escape(_mono(step.logs[-1], 60)) if step.logs else "",
        )

    console.print()
    console.print(
        Panel(
            table,
            title=_label(summary.verdict.upper(), color),
            subtitle=(
                f"[dim]{summary.passed_count} passed · {summary.failed_count} failed · "
                f"{summary.success_rate}% · total {summary.total_duration_ms}ms · "
                f"avg {summary.avg_duration_ms}ms[/dim]"
            ),
            border_style=color,
            padding=(0, 1),
        )
    )


def script_exported(path: str) -> None:
    console.print(f"  [bold green]✓ Script exported[/bold green]  [dim]{escape(path)}[/dim]")


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{escape(reason)}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
