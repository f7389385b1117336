# executor.py
# Step Executor clients.
#
# Contract: execute_step() always resolves to a StepOutcome. Upstream
# failures degrade to a fallback result; they never reach the orchestrator.
# The input step is never mutated.

import asyncio
import json
import logging
from datetime import datetime
from typing import Protocol

from openai import AsyncOpenAI

from autoqa.models import StepOutcome, StepStatus, TestStep
from autoqa.planner import strip_fences

logger = logging.getLogger(__name__)

FALLBACK_LOGS = [
    "Error connecting to simulation engine",
    "Retry attempt 1...",
    "Execution timeout",
]


class StepExecutor(Protocol):
    async def execute_step(self, step: TestStep, url: str) -> StepOutcome: ...


STEP_SYSTEM_PROMPT = """\
You simulate the execution of a single browser automation test step.

Respond with ONLY a JSON object:

{"logs": ["<runner log line>", ...], "status": "PASSED" | "FAILED"}\
"""


def _step_prompt(step: TestStep, url: str) -> str:
    return (
        f'Test step: "{step.name}" - "{step.description}"\n'
        f"Target URL: {url}\n\n"
        "Generate 3-5 realistic execution log lines a Playwright/Selenium runner "
        "would print during this step. Decide whether the step is likely to PASS "
        "or FAIL given common web instability (95% pass rate)."
    )


def parse_outcome(response: str) -> StepOutcome:
    """
    Read runner logs and a verdict from a step model response.

    The verdict must be PASSED or FAILED (any case). Anything else raises
    ValueError so the caller falls back to its configured outcome.
    """
    data = json.loads(strip_fences(response), strict=False)
    logs = [str(line) for line in data.get("logs") or []]
    verdict = str(data.get("status", "")).strip().upper()
    if verdict not in (StepStatus.PASSED.value, StepStatus.FAILED.value):
        raise ValueError(f"Unrecognised step verdict: {data.get('status')!r}")
    return StepOutcome(logs=logs, status=StepStatus(verdict))


class LLMStepExecutor:
    """Asks a lightweight model for runner logs and a verdict."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        fallback_outcome: StepStatus = StepStatus.FAILED,
    ) -> None:
        self._client = client
        self._model = model
        self._fallback = StepOutcome(logs=list(FALLBACK_LOGS), status=fallback_outcome)

    @property
    def fallback(self) -> StepOutcome:
        return self._fallback.model_copy(deep=True)

    async def _call_model(self, messages: list[dict]) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            response_format={"type": "json_object"},
        )
        text = response.choices[0].message.content
        if not text:
            raise ValueError("No text in step model response.")
        return text.strip()

    async def execute_step(self, step: TestStep, url: str) -> StepOutcome:
        messages = [
            {"role": "system", "content": STEP_SYSTEM_PROMPT},
            {"role": "user", "content": _step_prompt(step, url)},
        ]
        try:
            return parse_outcome(await self._call_model(messages))
        except Exception as exc:
            logger.warning(
                "Step %s execution failed, using fallback %s: %s",
                step.id,
                self._fallback.status.value,
                exc,
            )
            return self.fallback


class MockStepExecutor:
    """Offline executor: every step passes after a simulated delay."""

    def __init__(self, latency: float = 1.0) -> None:
        self._latency = latency

    async def execute_step(self, step: TestStep, url: str) -> StepOutcome:
        await asyncio.sleep(self._latency)
        stamp = datetime.now().strftime("%H:%M:%S")
        logs = [
            f"[{stamp}] Executing Playwright task: {step.name}",
            f"[{stamp}] Navigating to path: /",
            f"[{stamp}] Selector '.main-content' found and visible",
            f"[{stamp}] Assertion passed: {step.description}",
            f"[{stamp}] Step finished with zero errors.",
        ]
        return StepOutcome(logs=logs, status=StepStatus.PASSED)
