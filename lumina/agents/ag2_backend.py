from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from autogen import ConversableAgent

from lumina.agents.autogen_config import OpenAICompatibleSettings, llm_config
from lumina.agents.base import AgentAction, JsonSchema
from lumina.core.context import RenderedContext


def _extract_last_content(messages: object) -> str:
    """Extract the last message content from AG2 chat history."""

    if not isinstance(messages, list):
        return ""

    for msg in reversed(messages):
        if isinstance(msg, dict):
            content = msg.get("content")
            if isinstance(content, str) and content.strip():
                return content.strip()
    return ""


def _response_format(schema: JsonSchema) -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": schema.name,
            "schema": schema.schema,
            "strict": schema.strict,
        },
    }


@dataclass(slots=True)
class Ag2ChatAgent:
    """AG2 agent wrapper using the documented `autogen` API.

    The AG2 run is blocking, so it is pushed to a worker thread; the game loop keeps
    serving challenges from the queue or the local corpus while a request is pending.

    Settings normally come from `settings_from_env`:
    - OPENAI_MODEL
    - OPENAI_API_KEY (optional if OPENAI_BASE_URL is set)
    - OPENAI_BASE_URL (OpenAI-compatible servers such as Ollama)
    - LUMINA_LLM_TEMPERATURE
    """

    name: str
    settings: OpenAICompatibleSettings

    def _run(self, *, prompt: str, ctx: RenderedContext, structured_output: JsonSchema | None) -> str:
        agent = ConversableAgent(
            name=self.name,
            system_message=ctx.system_prompt,
            llm_config=llm_config(self.settings),
            human_input_mode="NEVER",
        )

        # AG2 forwards unknown kwargs through to the OpenAI client.
        extra: dict[str, Any] = {}
        if structured_output is not None:
            extra["response_format"] = _response_format(structured_output)

        result = agent.run(message=prompt, max_turns=1, **extra)
        result.process()

        text = _extract_last_content(list(result.messages))
        if not text:
            summary = result.summary
            if isinstance(summary, str):
                text = summary.strip()
        return text

    async def propose_action(
        self,
        *,
        prompt: str,
        ctx: RenderedContext,
        structured_output: JsonSchema | None = None,
    ) -> AgentAction:
        text = await asyncio.to_thread(self._run, prompt=prompt, ctx=ctx, structured_output=structured_output)
        metadata: dict[str, Any] = {"model": self.settings.model}
        if structured_output is not None:
            metadata["structured"] = True
        return AgentAction(kind="chat", content=text, metadata=metadata)
