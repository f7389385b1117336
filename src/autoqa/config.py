# config.py
# Runtime settings. Priority: explicit override > environment variable > default.
#
# `.env` files are honoured through python-dotenv, the same way the harness
# picks up OPENROUTER_API_KEY.

import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from autoqa.models import StepStatus

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_PLAN_MODEL = "google/gemini-2.5-pro"
DEFAULT_STEP_MODEL = "google/gemini-2.5-flash"

# field name -> environment variable
ENV_VARS = {
    "api_key": "OPENROUTER_API_KEY",
    "base_url": "AUTOQA_BASE_URL",
    "plan_model": "AUTOQA_PLAN_MODEL",
    "step_model": "AUTOQA_STEP_MODEL",
    "mock_mode": "AUTOQA_MOCK_MODE",
    "fallback_outcome": "AUTOQA_FALLBACK_OUTCOME",
    "step_pause": "AUTOQA_STEP_PAUSE",
    "mock_latency": "AUTOQA_MOCK_LATENCY",
    "request_timeout": "AUTOQA_REQUEST_TIMEOUT",
    "max_retries": "AUTOQA_MAX_RETRIES",
}


class Settings(BaseModel):
    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    plan_model: str = DEFAULT_PLAN_MODEL
    step_model: str = DEFAULT_STEP_MODEL
    mock_mode: bool = True
    fallback_outcome: StepStatus = StepStatus.FAILED
    step_pause: float = Field(0.8, ge=0, description="Seconds between steps.")
    mock_latency: float = Field(1.0, ge=0, description="Simulated collaborator latency in seconds.")
    request_timeout: float = Field(60.0, gt=0)
    max_retries: int = Field(2, ge=0)

    @field_validator("fallback_outcome", mode="before")
    @classmethod
    def _normalise_outcome(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
        if value not in (StepStatus.PASSED, StepStatus.FAILED, "PASSED", "FAILED"):
            raise ValueError("fallback_outcome must be PASSED or FAILED")
        return value


def load_settings(**overrides: Any) -> Settings:
    """
    Build Settings from the environment, then apply non-None overrides.

    mock_mode defaults to on whenever no API key is available.
    """
    load_dotenv()

    values: dict[str, Any] = {}
    for field, env_name in ENV_VARS.items():
        raw = os.getenv(env_name)
        if raw not in (None, ""):
            values[field] = raw

    values.update({key: value for key, value in overrides.items() if value is not None})

    if "mock_mode" not in values:
        values["mock_mode"] = not values.get("api_key")

    return Settings.model_validate(values)
