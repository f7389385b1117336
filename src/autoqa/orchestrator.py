# orchestrator.py
# Run orchestrator: the session state machine.
#
# The orchestrator owns all control flow and all session state. Planner and
# executor are passive responders; presentation layers only ever see
# snapshots.
#
# Lifecycle:
#   IDLE → start() → PLANNING → plan ok → RUNNING → run() → COMPLETE
#                          └─ plan fails ─→ ERROR
#   reset() from anywhere → IDLE
#
# Every suspension point (plan call, step call, inter-step pause) is raced
# against the run's CancellationToken. A superseded loop returns without
# touching the session again.

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar
from urllib.parse import urlparse

from autoqa.executor import StepExecutor
from autoqa.logstream import LogStream
from autoqa.models import (
    LogEntry,
    LogLevel,
    Phase,
    SessionSnapshot,
    StepStatus,
    TargetConfig,
    TestSuite,
)
from autoqa.planner import PlanGenerationError, PlanGenerator
from autoqa.report import aggregate

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_STEP_PAUSE = 0.8


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class InvalidTargetError(ValueError):
    """Raised by start() when the target URL is empty or unparseable."""


class OrchestratorStateError(RuntimeError):
    """Raised when an operation is invoked from a phase that does not allow it."""


class RunCancelled(Exception):
    """Raised inside a run when its token was cancelled. Never escapes the orchestrator."""


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class CancellationToken:
    """
    Session-scoped cancellation flag.

    One token per run. Cancelling is one-way; a new run gets a new token.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RunCancelled()

    async def wait_for(self, awaitable: Awaitable[T]) -> T:
        """
        Await `awaitable` unless the token is cancelled first.

        On cancellation the pending call is cancelled and RunCancelled is
        raised, even if the call happened to finish in the same tick.
        """
        call = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({call, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            watcher.cancel()
            if not call.done():
                call.cancel()
                await asyncio.gather(call, return_exceptions=True)

        if self.cancelled:
            # The superseded call's result or error is discarded.
            if not call.cancelled():
                call.exception()
            raise RunCancelled()
        return call.result()

    async def sleep(self, seconds: float) -> None:
        """Pause that ends early, with RunCancelled, when the token is cancelled."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise RunCancelled()


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class Session:
    """Mutable aggregate for one run. Owned and mutated only by its orchestrator."""

    def __init__(self, logs: LogStream | None = None) -> None:
        self.phase: Phase = Phase.IDLE
        self.target: TargetConfig | None = None
        self.suite: TestSuite | None = None
        self.active_step_id: str | None = None
        self.logs: LogStream = logs if logs is not None else LogStream()

    def snapshot(self) -> SessionSnapshot:
        suite = self.suite.model_copy(deep=True) if self.suite is not None else None
        report = None
        if self.phase == Phase.COMPLETE and suite is not None:
            report = aggregate(suite)
        return SessionSnapshot(
            phase=self.phase,
            target=self.target,
            suite=suite,
            active_step_id=self.active_step_id,
            logs=self.logs.entries,
            report=report,
        )


def validate_target(url: str) -> None:
    """Reject an empty or unparseable URL before any state changes."""
    if not url or not url.strip():
        raise InvalidTargetError("Target URL is required.")
    parsed = urlparse(url.strip())
    if not parsed.scheme or not parsed.netloc:
        raise InvalidTargetError(f"Target URL is not a valid absolute URL: {url!r}")


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class RunOrchestrator:
    """
    Drives one Session through planning, sequential step execution and
    completion.

    Example:
        orchestrator = RunOrchestrator(MockPlanGenerator(), MockStepExecutor())
        await orchestrator.start(TargetConfig(url="https://example.com"))
        report = orchestrator.snapshot().report
    """

    def __init__(
        self,
        planner: PlanGenerator,
        executor: StepExecutor,
        *,
        step_pause: float = DEFAULT_STEP_PAUSE,
        session: Session | None = None,
    ) -> None:
        self._planner = planner
        self._executor = executor
        self._step_pause = step_pause
        self.session = session if session is not None else Session()
        self._token = CancellationToken()
        self._looping: CancellationToken | None = None
        self._subscribers: list[Callable[[SessionSnapshot], None]] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.session.phase

    def snapshot(self) -> SessionSnapshot:
        return self.session.snapshot()

    def subscribe(self, callback: Callable[[SessionSnapshot], None]) -> None:
        """Register a callback that receives a snapshot after each state change."""
        self._subscribers.append(callback)

    def subscribe_logs(self, callback: Callable[[LogEntry], None]) -> None:
        self.session.logs.subscribe(callback)

    def _publish(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in self._subscribers:
            callback(snapshot)

    def _log(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        self.session.logs.append(message, level)

    def _set_phase(self, phase: Phase) -> None:
        logger.debug("Phase %s -> %s", self.session.phase.value, phase.value)
        self.session.phase = phase
        self._publish()

    @property
    def token(self) -> CancellationToken:
        """Token of the current run. Replaced by start(), reset() and cancel()."""
        return self._token

    def _supersede(self) -> CancellationToken:
        """Cancel whatever is in flight and hand out a fresh token."""
        self._token.cancel()
        self._token = CancellationToken()
        return self._token

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self, config: TargetConfig) -> None:
        """
        Begin a new run for `config`.

        Validation happens before anything else: an invalid target leaves the
        session untouched and the planner uncalled. Any in-flight run is
        cancelled and discarded. Returns once the run reaches COMPLETE or
        ERROR, or as soon as it is superseded.
        """
        validate_target(config.url)

        token = self._supersede()
        session = self.session
        session.logs.clear()
        session.target = config
        session.suite = None
        session.active_step_id = None

        self._log(f"Target acquired: {config.url}")
        self._log("Initializing AI Test Architect Agent...")
        self._set_phase(Phase.PLANNING)
        if token.cancelled:
            return
        self._log("Analyzing target application structure...")

        try:
            suite = await token.wait_for(self._planner.generate_plan(config.url, config.username))
        except RunCancelled:
            logger.info("Planning for %s superseded", config.url)
            return
        except PlanGenerationError as exc:
            logger.error("Plan generation failed for %s: %s", config.url, exc)
            self._log("Failed to generate test plan. Check API Key or Network.", LogLevel.ERROR)
            self._set_phase(Phase.ERROR)
            return
        except Exception:
            logger.exception("Planner raised an unexpected error for %s", config.url)
            self._log("Failed to generate test plan. Check API Key or Network.", LogLevel.ERROR)
            self._set_phase(Phase.ERROR)
            return

        session.suite = suite
        self._log(f"Test Plan Generated: {suite.name}", LogLevel.SUCCESS)
        self._log(f"Description: {suite.description}")
        self._log(f"Identified {len(suite.steps)} critical test scenarios.")
        self._set_phase(Phase.RUNNING)
        if token.cancelled:
            return

        await self.run(token)

    async def run(self, token: CancellationToken) -> None:
        """
        Execute the stored suite's steps strictly in order.

        Only the current, uncancelled `token` is accepted, and only one loop
        may run per token. Stops silently as soon as `token` is cancelled; a
        stale loop never mutates the session after that point.
        """
        session = self.session
        if session.phase != Phase.RUNNING or session.suite is None:
            raise OrchestratorStateError(
                f"run() requires phase RUNNING with a suite, got {session.phase.value}."
            )
        if token is not self._token or token.cancelled:
            raise OrchestratorStateError("run() requires the current run's token.")
        if self._looping is token:
            raise OrchestratorStateError("A step loop is already running for this run.")
        self._looping = token

        suite = session.suite
        url = session.target.url
        total = len(suite.steps)

        try:
            for index, step in enumerate(suite.steps):
                token.raise_if_cancelled()

                session.active_step_id = step.id
                step.status = StepStatus.RUNNING
                self._publish()
                # Subscribers may reset or cancel from inside _publish().
                token.raise_if_cancelled()
                self._log(f"Executing Step [{index + 1}/{total}]: {step.name}...")

                started = time.perf_counter()
                outcome = await token.wait_for(
                    self._executor.execute_step(step.model_copy(deep=True), url)
                )

                for line in outcome.logs:
                    token.raise_if_cancelled()
                    self._log(f"[RUNNER] {line}")

                step.status = outcome.status
                step.logs = list(outcome.logs)
                step.duration = round((time.perf_counter() - started) * 1000)
                self._publish()
                token.raise_if_cancelled()
                self._log(
                    f"Step {step.name} finished: {step.status.value}",
                    LogLevel.SUCCESS if step.status == StepStatus.PASSED else LogLevel.ERROR,
                )

                await token.sleep(self._step_pause)
        except RunCancelled:
            logger.info("Run for %s cancelled", url)
            return
        finally:
            if self._looping is token:
                self._looping = None

        session.active_step_id = None
        self._log("Test Suite Execution Completed.", LogLevel.SUCCESS)
        self._set_phase(Phase.COMPLETE)

    def cancel(self) -> None:
        """
        Stop the in-flight run and keep its partial results visible.

        The interrupted step is marked SKIPPED and the session moves to
        ERROR; reset() is the way back to IDLE.
        """
        session = self.session
        if session.phase not in (Phase.PLANNING, Phase.RUNNING):
            return

        self._supersede()
        if session.suite is not None:
            for step in session.suite.steps:
                if step.status == StepStatus.RUNNING:
                    step.status = StepStatus.SKIPPED
        session.active_step_id = None
        self._log("Execution cancelled. Run halted.", LogLevel.WARN)
        self._set_phase(Phase.ERROR)

    def reset(self) -> None:
        """Back to IDLE from any phase. Idempotent."""
        self._supersede()
        session = self.session
        session.phase = Phase.IDLE
        session.suite = None
        session.active_step_id = None
        session.target = None
        session.logs.reset()
        self._publish()

    def sign_out(self) -> None:
        self.reset()
        self._log("User signed out. Session terminated.")
