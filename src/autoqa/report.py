# report.py
# Report aggregation over a finished suite.
#
# Pure functions only: safe to recompute on every render or query.

import math
from pathlib import Path

from autoqa.models import StepDuration, StepStatus, SuiteReport, TestSuite

DEFAULT_SCRIPT_NAME = "playwright.test.ts"
SHORT_NAME_LENGTH = 15


class EmptySuiteError(ValueError):
    """Raised when a report is requested for a suite without steps."""


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _short_name(name: str) -> str:
    if len(name) > SHORT_NAME_LENGTH:
        return name[:SHORT_NAME_LENGTH] + "..."
    return name


def aggregate(suite: TestSuite) -> SuiteReport:
    """
    Derive pass/fail counts, success rate and durations from `suite`.

    Steps without a duration count as 0 ms. Percentages and averages round
    half-up. Raises EmptySuiteError rather than dividing by zero.
    """
    steps = suite.steps
    if not steps:
        raise EmptySuiteError("Cannot aggregate a suite with no steps.")

    total = len(steps)
    passed = sum(1 for step in steps if step.status == StepStatus.PASSED)
    failed = sum(1 for step in steps if step.status == StepStatus.FAILED)
    total_duration = sum(step.duration or 0 for step in steps)

    return SuiteReport(
        total_steps=total,
        passed_count=passed,
        failed_count=failed,
        success_rate=_round_half_up(100 * passed / total),
        total_duration_ms=total_duration,
        avg_duration_ms=_round_half_up(total_duration / total),
        verdict="Suite Passed" if failed == 0 else "Suite Failed",
        step_durations=[
            StepDuration(
                name=step.name,
                short_name=_short_name(step.name),
                duration_ms=step.duration or 0,
                status=step.status,
            )
            for step in steps
        ],
    )


def export_script(suite: TestSuite, destination: str | Path = DEFAULT_SCRIPT_NAME) -> Path:
    """Write the generated script artifact verbatim. A directory gets the default file name."""
    path = Path(destination)
    if path.is_dir():
        path = path / DEFAULT_SCRIPT_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(suite.generated_code, encoding="utf-8")
    return path
