from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass

from lumina.api.models import WordChallenge
from lumina.corpus.registry import WordCorpus
from lumina.supply.local import draw_from_corpus
from lumina.supply.suppliers import ChallengeSupplier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class SupplyConstraints:
    word_length: int
    language: str
    # The session's used-answer set; `take` records served answers into it.
    used: set[str]


class WordSupplyPipeline:
    """Bounded queue of ready challenges, refilled by one background fetch at a time.

    Each accepted fetch starts the next one until the queue is full.

    `take` never waits on the supplier: an empty queue is served from the local corpus.
    A fetch that resolves after `clear()` is dropped.
    """

    def __init__(
        self,
        *,
        supplier: ChallengeSupplier,
        corpus: WordCorpus,
        capacity: int = 3,
        rng: random.Random | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.supplier = supplier
        self.corpus = corpus
        self.capacity = capacity
        self.rng = rng or random.Random()
        self._queue: deque[WordChallenge] = deque()
        self._in_flight: asyncio.Task[None] | None = None
        self._generation = 0

    @property
    def queued(self) -> tuple[WordChallenge, ...]:
        return tuple(self._queue)

    @property
    def refill_in_flight(self) -> bool:
        return self._in_flight is not None

    def try_refill(self, constraints: SupplyConstraints) -> asyncio.Task[None] | None:
        if self._in_flight is not None or len(self._queue) >= self.capacity:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; skipping refill")
            return None

        excluded = frozenset(constraints.used | {c.correct_answer for c in self._queue})
        task = loop.create_task(self._refill(constraints, excluded, self._generation))
        self._in_flight = task
        return task

    async def _refill(self, constraints: SupplyConstraints, excluded: frozenset[str], generation: int) -> None:
        try:
            challenge = await self.supplier.fetch(
                word_length=constraints.word_length,
                language=constraints.language,
                excluded_answers=excluded,
            )
        except Exception as e:
            logger.warning(
                "Challenge supplier failed (length=%d, language=%s): %s",
                constraints.word_length,
                constraints.language,
                e,
            )
            return
        finally:
            if generation == self._generation:
                self._in_flight = None

        if generation != self._generation:
            logger.debug("Dropping challenge fetched before the queue was cleared")
            return
        # Keep fetching one at a time until the queue is full; a rejected or failed
        # fetch stops the chain until the next take.
        if self._accept(challenge, constraints):
            self.try_refill(constraints)

    def _accept(self, challenge: WordChallenge, constraints: SupplyConstraints) -> bool:
        answer = challenge.correct_answer
        if len(self._queue) >= self.capacity:
            return False
        if len(answer) != constraints.word_length or answer in constraints.used:
            logger.debug("Dropping unusable fetched challenge %s", answer)
            return False
        if any(c.correct_answer == answer for c in self._queue):
            return False
        self._queue.append(challenge)
        return True

    def _discard_stale(self, constraints: SupplyConstraints) -> None:
        fresh = [
            c
            for c in self._queue
            if len(c.correct_answer) == constraints.word_length and c.correct_answer not in constraints.used
        ]
        if len(fresh) != len(self._queue):
            logger.debug("Discarded %d stale queued challenges", len(self._queue) - len(fresh))
            self._queue = deque(fresh)

    def take(self, constraints: SupplyConstraints) -> WordChallenge | None:
        """Return the next challenge without blocking, or None if nothing can be served."""

        self._discard_stale(constraints)
        if self._queue:
            challenge: WordChallenge | None = self._queue.popleft()
        else:
            logger.warning(
                "Challenge queue empty; drawing from local corpus (length=%d, language=%s)",
                constraints.word_length,
                constraints.language,
            )
            challenge = draw_from_corpus(
                corpus=self.corpus,
                word_length=constraints.word_length,
                language=constraints.language,
                used=constraints.used,
                rng=self.rng,
            )

        if challenge is not None:
            constraints.used.add(challenge.correct_answer)
        self.try_refill(constraints)
        return challenge

    def clear(self) -> None:
        self._generation += 1
        self._queue.clear()
        if self._in_flight is not None:
            self._in_flight.cancel()
            self._in_flight = None
