from __future__ import annotations

import json

import pytest

from lumina.agents.base import AgentAction, JsonSchema
from lumina.agents.challenge_writer import (
    CHALLENGE_SCHEMA,
    ChallengeWriteError,
    make_writer_context,
    parse_written_challenge,
    validate_challenge,
    write_challenge_with_agent,
)
from lumina.core.context import RenderedContext
from lumina.supply.suppliers import AgentChallengeSupplier


class ScriptedAgent:
    name = "scripted"

    def __init__(self, replies: list[str]) -> None:
        self.replies = replies
        self.prompts: list[str] = []
        self.schemas: list[JsonSchema | None] = []

    async def propose_action(
        self,
        *,
        prompt: str,
        ctx: RenderedContext,
        structured_output: JsonSchema | None = None,
    ) -> AgentAction:
        self.prompts.append(prompt)
        self.schemas.append(structured_output)
        return AgentAction(kind="chat", content=self.replies.pop(0))


def _reply(answer: str, *distractors: str) -> str:
    return json.dumps({"answer": answer, "distractors": list(distractors)})


def test_parse_written_challenge_requires_strict_json() -> None:
    with pytest.raises(ChallengeWriteError):
        parse_written_challenge("TABLE")

    challenge = parse_written_challenge(_reply("table", "cable", "fable", "sable"))
    assert challenge.correct_answer == "TABLE"
    assert challenge.distractors == ("CABLE", "FABLE", "SABLE")

    alias = parse_written_challenge('{"correct_answer": "Bread", "distractors": ["BREAK", "BREAM", "DREAD"]}')
    assert alias.correct_answer == "BREAD"

    with pytest.raises(ChallengeWriteError):
        parse_written_challenge('{"answer": "TABLE"}')
    with pytest.raises(ChallengeWriteError):
        parse_written_challenge('["TABLE"]')


def test_validate_challenge_checks_shape_and_exclusions() -> None:
    ok = parse_written_challenge(_reply("TABLE", "CABLE", "FABLE", "SABLE"))
    validate_challenge(ok, word_length=5, excluded=set())

    with pytest.raises(ChallengeWriteError):
        validate_challenge(ok, word_length=6, excluded=set())
    with pytest.raises(ChallengeWriteError):
        validate_challenge(ok, word_length=5, excluded={"TABLE"})
    with pytest.raises(ChallengeWriteError):
        validate_challenge(parse_written_challenge(_reply("TABLE", "CABLE", "FABLE")), word_length=5, excluded=set())
    with pytest.raises(ChallengeWriteError):
        validate_challenge(parse_written_challenge(_reply("TABLE", "CABLE", "CABLE", "SABLE")), word_length=5, excluded=set())


async def test_writer_retries_until_a_valid_challenge() -> None:
    agent = ScriptedAgent(["not json", _reply("TABLE", "CABLE", "FABLE", "SABLE"), _reply("BREAD", "BREAK", "BREAM", "DREAD")])
    challenge = await write_challenge_with_agent(
        agent=agent,
        ctx=make_writer_context(language="en"),
        word_length=5,
        excluded={"TABLE"},
    )

    assert challenge.correct_answer == "BREAD"
    assert len(agent.prompts) == 3
    assert "TABLE" in agent.prompts[0]
    assert agent.schemas[0] is CHALLENGE_SCHEMA


async def test_writer_gives_up_after_max_attempts() -> None:
    agent = ScriptedAgent(["{}", "{}"])
    with pytest.raises(ChallengeWriteError, match="after 2 attempts"):
        await write_challenge_with_agent(
            agent=agent,
            ctx=make_writer_context(language="en"),
            word_length=5,
            excluded=set(),
            max_attempts=2,
        )


async def test_agent_supplier_passes_length_and_exclusions() -> None:
    agent = ScriptedAgent([_reply("CENTER", "CENSOR", "CINDER", "TENDER")])
    supplier = AgentChallengeSupplier(agent=agent, max_attempts=1)

    challenge = await supplier.fetch(word_length=6, language="en", excluded_answers=frozenset({"BASKET"}))

    assert challenge.correct_answer == "CENTER"
    assert "exactly 6 letters" in agent.prompts[0]
    assert "BASKET" in agent.prompts[0]


def test_writer_context_names_the_language() -> None:
    ctx = make_writer_context(language="tr")
    assert "Turkish" in ctx.system_prompt
    assert "three distractors" in ctx.system_prompt
    assert ctx.as_messages()[0]["role"] == "system"
