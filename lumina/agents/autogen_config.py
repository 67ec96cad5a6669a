from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from autogen import LLMConfig

# Placeholder key for local OpenAI-compatible servers (Ollama, vLLM) that ignore it.
LOCAL_API_KEY = "ollama"


@dataclass(frozen=True, slots=True)
class OpenAICompatibleSettings:
    model: str
    base_url: str | None = None
    api_key: str | None = None
    temperature: float | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key or self.base_url)

    def config_entry(self) -> dict[str, Any]:
        """One AG2 `config_list` entry for these settings."""

        if not self.configured:
            raise RuntimeError(
                "Set OPENAI_API_KEY for hosted OpenAI, or set OPENAI_BASE_URL for a local OpenAI-compatible server"
            )
        entry: dict[str, Any] = {"model": self.model, "api_key": self.api_key or LOCAL_API_KEY}
        if self.base_url:
            entry["base_url"] = self.base_url
        return entry


def settings_from_env(*, default_model: str) -> OpenAICompatibleSettings:
    raw_temperature = os.environ.get("LUMINA_LLM_TEMPERATURE", "").strip()
    return OpenAICompatibleSettings(
        model=os.environ.get("OPENAI_MODEL", default_model),
        # For Ollama, typically http://127.0.0.1:11434/v1
        base_url=os.environ.get("OPENAI_BASE_URL") or None,
        api_key=os.environ.get("OPENAI_API_KEY") or None,
        temperature=float(raw_temperature) if raw_temperature else None,
    )


def llm_config(settings: OpenAICompatibleSettings) -> LLMConfig:
    extra: dict[str, Any] = {}
    if settings.temperature is not None:
        extra["temperature"] = settings.temperature
    return LLMConfig(config_list=[settings.config_entry()], **extra)
