from __future__ import annotations

import logging
import random
from collections.abc import Set
from dataclasses import dataclass, field
from typing import Protocol

from lumina.agents.base import Agent
from lumina.agents.challenge_writer import make_writer_context, write_challenge_with_agent
from lumina.agents.factory import create_default_agent, llm_configured
from lumina.api.models import WordChallenge
from lumina.corpus.registry import WordCorpus
from lumina.supply.local import pick_from_corpus

logger = logging.getLogger(__name__)


class SupplyExhaustedError(RuntimeError):
    pass


class ChallengeSupplier(Protocol):
    async def fetch(
        self,
        *,
        word_length: int,
        language: str,
        excluded_answers: Set[str],
    ) -> WordChallenge:  # pragma: no cover
        ...


@dataclass(slots=True)
class CorpusChallengeSupplier:
    """Serves corpus groups asynchronously; used when no LLM endpoint is configured."""

    corpus: WordCorpus
    rng: random.Random = field(default_factory=random.Random)

    async def fetch(self, *, word_length: int, language: str, excluded_answers: Set[str]) -> WordChallenge:
        challenge = pick_from_corpus(
            corpus=self.corpus,
            word_length=word_length,
            language=language,
            excluded=excluded_answers,
            rng=self.rng,
        )
        if challenge is None:
            raise SupplyExhaustedError(f"No unused {language} groups of length {word_length}")
        return challenge


@dataclass(slots=True)
class AgentChallengeSupplier:
    agent: Agent
    max_attempts: int = 3

    async def fetch(self, *, word_length: int, language: str, excluded_answers: Set[str]) -> WordChallenge:
        return await write_challenge_with_agent(
            agent=self.agent,
            ctx=make_writer_context(language=language),
            word_length=word_length,
            excluded=excluded_answers,
            max_attempts=self.max_attempts,
        )


def create_default_supplier(*, corpus: WordCorpus) -> ChallengeSupplier:
    if llm_configured():
        logger.info("Using LLM challenge supplier")
        return AgentChallengeSupplier(agent=create_default_agent(name="challenge_writer"))
    logger.info("No LLM endpoint configured; using corpus challenge supplier")
    return CorpusChallengeSupplier(corpus=corpus)
