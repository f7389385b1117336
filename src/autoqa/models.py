# models.py
# Data contracts for the test agent run orchestrator.
# No business logic lives here — pure schema and validation.

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator


class Phase(str, Enum):
    """Top-level lifecycle phase of a session."""

    IDLE = "IDLE"
    PLANNING = "PLANNING"
    RUNNING = "RUNNING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


class StepStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class LogLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    SUCCESS = "SUCCESS"


class TargetConfig(BaseModel):
    """What to test. Frozen: a run never edits its own target."""

    model_config = ConfigDict(frozen=True)

    url: str
    username: str | None = None
    password: SecretStr | None = None


class TestStep(BaseModel):
    """One scenario inside a suite."""

    __test__ = False

    id: str
    name: str
    description: str
    status: StepStatus = StepStatus.PENDING
    logs: list[str] = Field(default_factory=list)
    duration: int | None = Field(default=None, description="Elapsed milliseconds.")


class TestSuite(BaseModel):
    """A generated plan: ordered steps plus the generated script artifact."""

    __test__ = False

    name: str
    description: str
    summary: str
    generated_code: str = Field(..., description="Opaque script text, passed through verbatim.")
    steps: list[TestStep] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _unique_step_ids(self) -> "TestSuite":
        ids = [step.id for step in self.steps]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Step ids must be unique within a suite: {ids}")
        return self


class StepOutcome(BaseModel):
    """What a step executor reports back for a single step."""

    logs: list[str] = Field(default_factory=list)
    status: StepStatus

    @model_validator(mode="after")
    def _terminal_status(self) -> "StepOutcome":
        if self.status not in (StepStatus.PASSED, StepStatus.FAILED):
            raise ValueError(f"Step outcome must be PASSED or FAILED, got {self.status.value}.")
        return self


class LogEntry(BaseModel):
    """Immutable line in the session narrative."""

    model_config = ConfigDict(frozen=True)

    timestamp: str
    level: LogLevel
    message: str


class StepDuration(BaseModel):
    name: str
    short_name: str
    duration_ms: int
    status: StepStatus


class SuiteReport(BaseModel):
    """Summary statistics derived from a finished suite."""

    total_steps: int
    passed_count: int
    failed_count: int
    success_rate: int
    total_duration_ms: int
    avg_duration_ms: int
    verdict: str
    step_durations: list[StepDuration] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    """Read-only view of a session handed to presentation layers."""

    phase: Phase
    target: TargetConfig | None = None
    suite: TestSuite | None = None
    active_step_id: str | None = None
    logs: list[LogEntry] = Field(default_factory=list)
    report: SuiteReport | None = None
