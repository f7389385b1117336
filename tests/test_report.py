import pytest

from autoqa.models import StepStatus, TestStep, TestSuite
from autoqa.report import DEFAULT_SCRIPT_NAME, EmptySuiteError, aggregate, export_script


def finished_suite(results: list[tuple[StepStatus, int | None]], names: list[str] | None = None) -> TestSuite:
    names = names or [f"Step {i}" for i in range(len(results))]
    return TestSuite(
        name="Suite",
        description="desc",
        summary="sum",
        generated_code="// generated\nconst x = 1;\n",
        steps=[
            TestStep(id=str(i), name=name, description="d", status=status, duration=duration)
            for i, ((status, duration), name) in enumerate(zip(results, names))
        ],
    )


def test_aggregate_mixed_results():
    suite = finished_suite(
        [(StepStatus.PASSED, 100), (StepStatus.PASSED, 200), (StepStatus.FAILED, 300)]
    )

    report = aggregate(suite)

    assert report.passed_count == 2
    assert report.failed_count == 1
    assert report.success_rate == 67
    assert report.total_duration_ms == 600
    assert report.avg_duration_ms == 200
    assert report.total_steps == 3
    assert report.verdict == "Suite Failed"


def test_aggregate_all_passed():
    report = aggregate(finished_suite([(StepStatus.PASSED, 10)] * 4))

    assert report.success_rate == 100
    assert report.verdict == "Suite Passed"


def test_aggregate_rounds_half_up():
    results = [(StepStatus.PASSED, 1)] + [(StepStatus.FAILED, 1)] * 7
    report = aggregate(finished_suite(results))

    # 1/8 = 12.5%
    assert report.success_rate == 13


def test_aggregate_missing_durations_count_as_zero():
    suite = finished_suite([(StepStatus.PASSED, 100), (StepStatus.SKIPPED, None)])

    report = aggregate(suite)

    assert report.total_duration_ms == 100
    assert report.avg_duration_ms == 50
    assert report.passed_count == 1
    assert report.failed_count == 0
    assert report.step_durations[1].duration_ms == 0


def test_aggregate_empty_suite_is_rejected():
    suite = TestSuite.model_construct(
        name="Empty", description="", summary="", generated_code="", steps=[]
    )

    with pytest.raises(EmptySuiteError):
        aggregate(suite)


def test_aggregate_is_pure():
    suite = finished_suite([(StepStatus.PASSED, 5), (StepStatus.FAILED, 7)])
    before = suite.model_copy(deep=True)

    assert aggregate(suite) == aggregate(suite)
    assert suite == before


def test_step_durations_short_names():
    suite = finished_suite(
        [(StepStatus.PASSED, 120), (StepStatus.FAILED, 80)],
        names=["Responsiveness Test", "Footer"],
    )

    durations = aggregate(suite).step_durations

    assert durations[0].short_name == "Responsiveness ..."
    assert durations[0].name == "Responsiveness Test"
    assert durations[1].short_name == "Footer"
    assert durations[1].status == StepStatus.FAILED


# ---------------------------------------------------------------------------
# Script export
# ---------------------------------------------------------------------------


def test_export_script_verbatim(tmp_path):
    suite = finished_suite([(StepStatus.PASSED, 1)])

    path = export_script(suite, tmp_path / "out" / "suite.spec.ts")

    assert path.read_text(encoding="utf-8") == suite.generated_code


def test_export_script_into_directory(tmp_path):
    suite = finished_suite([(StepStatus.PASSED, 1)])

    path = export_script(suite, tmp_path)

    assert path == tmp_path / DEFAULT_SCRIPT_NAME
    assert path.read_text(encoding="utf-8") == suite.generated_code
