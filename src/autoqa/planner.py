# planner.py
# Plan Generator clients.
#
# A planner turns a target URL into a TestSuite or raises
# PlanGenerationError. No partial suite ever leaves this module.
#
#   LLMPlanGenerator  — asks an OpenAI-compatible model for a JSON plan
#   MockPlanGenerator — fixed offline plan with simulated latency

import asyncio
import json
import logging
import re
from typing import Protocol
from urllib.parse import urlparse

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, Field, ValidationError

from autoqa.models import TestStep, TestSuite

logger = logging.getLogger(__name__)


class PlanGenerationError(Exception):
    """Raised when a test plan cannot be produced. Never carries a partial suite."""


class PlanGenerator(Protocol):
    async def generate_plan(self, url: str, username: str | None = None) -> TestSuite: ...


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

PLAN_SYSTEM_PROMPT = """\
You are a Senior QA Automation Architect. You design automated test plans for \
websites from their URL alone.

Respond with ONLY a JSON object matching this exact schema:

{
  "name": "short test suite name",
  "description": "one or two sentences on what the suite covers",
  "summary": "brief summary of the testing strategy",
  "steps": [
    {"id": "1", "name": "step name", "description": "what the step verifies"}
  ],
  "generatedCode": "a complete, valid Playwright (TypeScript) test script"
}\
"""


def _plan_prompt(url: str, username: str | None) -> str:
    if username:
        access = f"The testing involves a user login scenario (User: {username})."
    else:
        access = "This is a public access test."
    return (
        f"I need to automate testing for a website with the URL: {url}.\n"
        f"{access}\n\n"
        "Infer the likely functionality of this website from its URL "
        "(e-commerce, SaaS, blog, portal, ...).\n\n"
        "1. Create a logical test suite name and description.\n"
        "2. Generate 5-8 critical test steps an automation agent would execute:\n"
        "   - happy paths (load homepage, check navigation)\n"
        "   - functional paths (login, search, add to cart, if applicable)\n"
        "   - edge cases (invalid input)\n"
        "3. Generate a complete Playwright (TypeScript) script implementing these tests.\n"
        "4. Summarize the testing strategy."
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class StepDraft(BaseModel):
    id: str
    name: str
    description: str


class PlanDraft(BaseModel):
    """Raw plan shape as the model returns it."""

    name: str
    description: str
    summary: str
    steps: list[StepDraft] = Field(..., min_length=1)
    generated_code: str = Field(..., alias="generatedCode")


def strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    return text


def parse_plan(response: str) -> TestSuite:
    """
    Validate a model response and convert it into a fresh TestSuite.

    Every step starts PENDING with no logs and no duration.
    Raises PlanGenerationError on empty, malformed or invalid content.
    """
    if not response or not response.strip():
        raise PlanGenerationError("Empty response from plan model.")

    try:
        data = json.loads(strip_fences(response), strict=False)
        draft = PlanDraft.model_validate(data)
        return TestSuite(
            name=draft.name,
            description=draft.description,
            summary=draft.summary,
            generated_code=draft.generated_code,
            steps=[TestStep(id=s.id, name=s.name, description=s.description) for s in draft.steps],
        )
    except (json.JSONDecodeError, ValidationError) as exc:
        raise PlanGenerationError(f"Plan content is invalid: {exc}") from exc


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


class LLMPlanGenerator:
    """
    Plan generator backed by an OpenAI-compatible chat completion endpoint.

    Example:
        planner = LLMPlanGenerator(
            client=AsyncOpenAI(base_url="https://openrouter.ai/api/v1", api_key=key),
            model="google/gemini-2.5-pro",
        )
        suite = await planner.generate_plan("https://shop.example.com")
    """

    def __init__(self, client: AsyncOpenAI, model: str) -> None:
        self._client = client
        self._model = model

    async def _call_model(self, messages: list[dict]) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            response_format={"type": "json_object"},
        )
        # A malformed response shape raises here, not in parse_plan.
        return (response.choices[0].message.content or "").strip()

    async def generate_plan(self, url: str, username: str | None = None) -> TestSuite:
        messages = [
            {"role": "system", "content": PLAN_SYSTEM_PROMPT},
            {"role": "user", "content": _plan_prompt(url, username)},
        ]
        try:
            response = await self._call_model(messages)
        except (OpenAIError, IndexError, AttributeError, TypeError) as exc:
            logger.error("Plan model call failed: %s", exc)
            raise PlanGenerationError(f"Plan model call failed: {exc}") from exc

        suite = parse_plan(response)
        logger.debug("Plan '%s' parsed with %d step(s)", suite.name, len(suite.steps))
        return suite


MOCK_STEPS = [
    ("1", "Load Homepage", "Navigate to the site and verify connectivity"),
    ("2", "Check Navigation", "Verify that top-level menu items are clickable"),
    ("3", "Verify Metadata", "Check page title and meta descriptions for SEO"),
    ("4", "Responsiveness Test", "Check layout on mobile and tablet viewport sizes"),
    ("5", "Footer Check", "Ensure contact info and social links are present"),
]

MOCK_SCRIPT = """\
import { test, expect } from '@playwright/test';

test('basic website check', async ({ page }) => {
  await page.goto('%s');
  await expect(page).toHaveTitle(/./);

  // Navigation check
  const links = await page.locator('nav a').count();
  console.log('Found ' + links + ' navigation links');
});
"""


class MockPlanGenerator:
    """Offline planner: the same five-step plan for every target."""

    def __init__(self, latency: float = 1.5) -> None:
        self._latency = latency

    async def generate_plan(self, url: str, username: str | None = None) -> TestSuite:
        await asyncio.sleep(self._latency)
        host = urlparse(url).hostname
        if not host:
            raise PlanGenerationError(f"Cannot derive a host name from {url!r}.")
        return TestSuite(
            name=f"Automated Test Suite for {host}",
            description=f"Autonomous quality assessment for {url} (Mock Mode)",
            summary=(
                "Pre-generated testing strategy focused on critical web vitals and "
                "basic functionality, used because live model calls are disabled."
            ),
            generated_code=MOCK_SCRIPT % url,
            steps=[TestStep(id=i, name=n, description=d) for i, n, d in MOCK_STEPS],
        )
