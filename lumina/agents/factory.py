from __future__ import annotations

from typing import cast

from lumina.agents.ag2_backend import Ag2ChatAgent
from lumina.agents.autogen_config import settings_from_env
from lumina.agents.base import Agent

DEFAULT_MODEL = "gpt-4o-mini"


def llm_configured() -> bool:
    return settings_from_env(default_model=DEFAULT_MODEL).configured


def create_default_agent(*, name: str) -> Agent:
    """AG2-backed agent configured from OPENAI_* / LUMINA_LLM_* environment variables."""

    return cast(Agent, Ag2ChatAgent(name=name, settings=settings_from_env(default_model=DEFAULT_MODEL)))
