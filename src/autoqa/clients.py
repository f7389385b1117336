# clients.py
# Collaborator wiring: Settings in, (planner, executor) pair out.

from openai import AsyncOpenAI

from autoqa.config import Settings
from autoqa.executor import LLMStepExecutor, MockStepExecutor, StepExecutor
from autoqa.planner import LLMPlanGenerator, MockPlanGenerator, PlanGenerator


def build_clients(settings: Settings) -> tuple[PlanGenerator, StepExecutor]:
    if settings.mock_mode:
        return (
            MockPlanGenerator(latency=settings.mock_latency * 1.5),
            MockStepExecutor(latency=settings.mock_latency),
        )

    if not settings.api_key:
        raise ValueError("An API key is required for live mode. Set OPENROUTER_API_KEY.")

    # Deadlines and retries belong to the client, not the orchestrator.
    client = AsyncOpenAI(
        base_url=settings.base_url,
        api_key=settings.api_key,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
    )
    return (
        LLMPlanGenerator(client, settings.plan_model),
        LLMStepExecutor(client, settings.step_model, fallback_outcome=settings.fallback_outcome),
    )
