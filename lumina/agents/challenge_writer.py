from __future__ import annotations

import json
import logging
from collections.abc import Set

from lumina.agents.base import Agent, JsonSchema
from lumina.api.models import WordChallenge
from lumina.core.context import BaseAgentContext, RenderedContext, compose_writer_context
from lumina.prompts import load_prompt, render_prompt

logger = logging.getLogger(__name__)

DISTRACTOR_COUNT = 3


class ChallengeWriteError(RuntimeError):
    pass


def parse_written_challenge(text: str) -> WordChallenge:
    """Parse the model output for a challenge.

    Expected strict JSON object:
        {"answer": "<WORD>", "distractors": ["<WORD>", "<WORD>", "<WORD>"]}
    `correct_answer` / `correctAnswer` are accepted as aliases for `answer`.
    Non-JSON output is rejected.
    """

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ChallengeWriteError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ChallengeWriteError("Expected a JSON object")

    answer = data.get("answer")
    if answer is None:
        answer = data.get("correct_answer", data.get("correctAnswer"))
    distractors = data.get("distractors")

    if not isinstance(answer, str) or not answer.strip():
        raise ChallengeWriteError("Missing/invalid 'answer' field")
    if not isinstance(distractors, list) or not all(isinstance(d, str) and d.strip() for d in distractors):
        raise ChallengeWriteError("Missing/invalid 'distractors' field")

    return WordChallenge(
        correct_answer=answer.strip().upper(),
        distractors=tuple(d.strip().upper() for d in distractors),
    )


def validate_challenge(challenge: WordChallenge, *, word_length: int, excluded: Set[str]) -> None:
    words = challenge.all_answers()
    if len(challenge.distractors) != DISTRACTOR_COUNT:
        raise ChallengeWriteError(f"Expected {DISTRACTOR_COUNT} distractors, got {len(challenge.distractors)}")
    if len(set(words)) != len(words):
        raise ChallengeWriteError("Answer and distractors must be distinct")
    wrong = [w for w in words if len(w) != word_length]
    if wrong:
        raise ChallengeWriteError(f"Words not of length {word_length}: {wrong}")
    if not all(w.isalpha() for w in words):
        raise ChallengeWriteError("Words must contain letters only")
    if challenge.correct_answer in excluded:
        raise ChallengeWriteError(f"Answer '{challenge.correct_answer}' is excluded")


CHALLENGE_SCHEMA = JsonSchema(
    name="word_challenge",
    schema={
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "answer": {"type": "string"},
            "distractors": {
                "type": "array",
                "items": {"type": "string"},
                "minItems": DISTRACTOR_COUNT,
                "maxItems": DISTRACTOR_COUNT,
            },
        },
        "required": ["answer", "distractors"],
    },
    strict=True,
)


def make_writer_context(*, language: str) -> RenderedContext:
    base = BaseAgentContext(system_prompt=load_prompt("challenge_writer.txt"))
    return compose_writer_context(base=base, language=language)


def _writer_prompt(*, word_length: int, excluded: Set[str]) -> str:
    exclusions = f"\nExcluded words:\n{', '.join(sorted(excluded))}" if excluded else ""
    return render_prompt("challenge_request.txt", word_length=word_length, exclusions=exclusions).rstrip() + "\n"


async def write_challenge_with_agent(
    *,
    agent: Agent,
    ctx: RenderedContext,
    word_length: int,
    excluded: Set[str],
    max_attempts: int = 3,
) -> WordChallenge:
    """Ask an agent for a fresh challenge.

    Validates the response is strict JSON with the requested word length and an answer
    outside `excluded`.
    """

    prompt = _writer_prompt(word_length=word_length, excluded=excluded)

    last_err: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        action = await agent.propose_action(prompt=prompt, ctx=ctx, structured_output=CHALLENGE_SCHEMA)

        try:
            challenge = parse_written_challenge(action.content)
            validate_challenge(challenge, word_length=word_length, excluded=excluded)
        except ChallengeWriteError as e:
            logger.debug("Challenge attempt %d rejected: %s", attempt, e)
            last_err = e
            continue

        return challenge

    raise ChallengeWriteError(f"Failed to write a valid challenge after {max_attempts} attempts: {last_err}")
