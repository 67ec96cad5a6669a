from __future__ import annotations

import asyncio
import random
from collections.abc import Set

import pytest

from lumina.api.models import WordChallenge
from lumina.corpus.registry import WordCorpus
from lumina.supply.pipeline import SupplyConstraints, WordSupplyPipeline
from lumina.supply.suppliers import CorpusChallengeSupplier


class GatedSupplier:
    """Resolves each fetch only when the test releases it."""

    def __init__(self, answers: list[str]) -> None:
        self.answers = answers
        self.calls: list[frozenset[str]] = []
        self.active = 0
        self.max_active = 0
        self.release = asyncio.Event()
        self.fail = False

    async def fetch(self, *, word_length: int, language: str, excluded_answers: Set[str]) -> WordChallenge:
        self.calls.append(frozenset(excluded_answers))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await self.release.wait()
            if self.fail:
                raise RuntimeError("service unavailable")
            answer = self.answers.pop(0)
            return WordChallenge(correct_answer=answer, distractors=("AAAAA", "BBBBB", "CCCCC"))
        finally:
            self.active -= 1


def _pipeline(supplier: GatedSupplier, corpus: WordCorpus, capacity: int = 3) -> WordSupplyPipeline:
    return WordSupplyPipeline(supplier=supplier, corpus=corpus, capacity=capacity, rng=random.Random(4))


async def _settle(task: asyncio.Task[None] | None) -> None:
    assert task is not None
    await task


async def _idle(pipeline: WordSupplyPipeline) -> None:
    """Let chained refills run until none is in flight."""

    for _ in range(100):
        if not pipeline.refill_in_flight:
            return
        await asyncio.sleep(0)
    raise AssertionError("refill still in flight")


async def test_only_one_refill_in_flight(corpus: WordCorpus) -> None:
    supplier = GatedSupplier(["TABLE", "BREAD", "PLANT"])
    pipeline = _pipeline(supplier, corpus)
    constraints = SupplyConstraints(word_length=5, language="en", used=set())

    assert pipeline.try_refill(constraints) is not None
    assert pipeline.try_refill(constraints) is None
    assert pipeline.refill_in_flight

    supplier.release.set()
    await _idle(pipeline)

    assert supplier.max_active == 1
    assert [c.correct_answer for c in pipeline.queued] == ["TABLE", "BREAD", "PLANT"]


async def test_refills_chain_until_the_queue_is_full(corpus: WordCorpus) -> None:
    pipeline = WordSupplyPipeline(
        supplier=CorpusChallengeSupplier(corpus=corpus, rng=random.Random(2)),
        corpus=corpus,
        capacity=3,
        rng=random.Random(4),
    )
    constraints = SupplyConstraints(word_length=5, language="en", used=set())

    assert pipeline.take(constraints) is not None
    await _idle(pipeline)

    assert len(pipeline.queued) == 3
    assert pipeline.try_refill(constraints) is None


async def test_refill_excludes_used_and_queued_answers(corpus: WordCorpus) -> None:
    supplier = GatedSupplier(["TABLE", "BREAD"])
    supplier.release.set()
    pipeline = _pipeline(supplier, corpus, capacity=2)
    constraints = SupplyConstraints(word_length=5, language="en", used={"PLANT"})

    pipeline.try_refill(constraints)
    await _idle(pipeline)

    assert supplier.calls == [frozenset({"PLANT"}), frozenset({"PLANT", "TABLE"})]


async def test_duplicate_and_used_answers_are_not_queued(corpus: WordCorpus) -> None:
    supplier = GatedSupplier(["TABLE", "TABLE", "PLANT"])
    supplier.release.set()
    pipeline = _pipeline(supplier, corpus)
    constraints = SupplyConstraints(word_length=5, language="en", used={"PLANT"})

    pipeline.try_refill(constraints)
    await _idle(pipeline)
    # The duplicate stopped the chain; the next refill returns a used answer.
    assert len(supplier.calls) == 2
    await _settle(pipeline.try_refill(constraints))

    assert [c.correct_answer for c in pipeline.queued] == ["TABLE"]


async def test_queue_never_exceeds_capacity(corpus: WordCorpus) -> None:
    supplier = GatedSupplier(["TABLE", "BREAD", "PLANT"])
    supplier.release.set()
    pipeline = _pipeline(supplier, corpus, capacity=2)
    constraints = SupplyConstraints(word_length=5, language="en", used=set())

    pipeline.try_refill(constraints)
    await _idle(pipeline)
    assert pipeline.try_refill(constraints) is None
    assert len(pipeline.queued) == 2
    assert len(supplier.calls) == 2


async def test_supplier_failure_leaves_queue_unchanged(corpus: WordCorpus, caplog: pytest.LogCaptureFixture) -> None:
    supplier = GatedSupplier(["TABLE"])
    supplier.fail = True
    supplier.release.set()
    pipeline = _pipeline(supplier, corpus)
    constraints = SupplyConstraints(word_length=5, language="en", used=set())

    with caplog.at_level("WARNING"):
        await _settle(pipeline.try_refill(constraints))

    assert pipeline.queued == ()
    assert not pipeline.refill_in_flight
    assert "Challenge supplier failed" in caplog.text


async def test_take_pops_fifo_and_schedules_refill(corpus: WordCorpus) -> None:
    supplier = GatedSupplier(["TABLE", "BREAD", "PLANT", "STONE"])
    supplier.release.set()
    pipeline = _pipeline(supplier, corpus)
    used: set[str] = set()
    constraints = SupplyConstraints(word_length=5, language="en", used=used)

    pipeline.try_refill(constraints)
    await _idle(pipeline)

    first = pipeline.take(constraints)
    assert first is not None and first.correct_answer == "TABLE"
    assert "TABLE" in used
    assert pipeline.refill_in_flight

    await _idle(pipeline)
    assert [c.correct_answer for c in pipeline.queued] == ["BREAD", "PLANT", "STONE"]


async def test_take_does_not_wait_for_a_slow_supplier(corpus: WordCorpus) -> None:
    supplier = GatedSupplier(["TABLE"])
    pipeline = _pipeline(supplier, corpus)
    used: set[str] = set()
    constraints = SupplyConstraints(word_length=5, language="en", used=used)

    pipeline.try_refill(constraints)
    challenge = pipeline.take(constraints)

    assert challenge is not None
    assert challenge.correct_answer in {w for g in corpus.by_length(5, "en") for w in g}
    assert used == {challenge.correct_answer}
    pipeline.clear()


async def test_late_result_after_clear_is_dropped(corpus: WordCorpus) -> None:
    supplier = GatedSupplier(["TABLE"])
    pipeline = _pipeline(supplier, corpus)
    constraints = SupplyConstraints(word_length=5, language="en", used=set())

    task = pipeline.try_refill(constraints)
    pipeline.clear()
    supplier.release.set()
    with pytest.raises(asyncio.CancelledError):
        await _settle(task)

    assert pipeline.queued == ()
    assert not pipeline.refill_in_flight


async def test_stale_queued_challenges_are_skipped(corpus: WordCorpus) -> None:
    supplier = GatedSupplier(["TABLE"])
    supplier.release.set()
    pipeline = _pipeline(supplier, corpus)

    await _settle(pipeline.try_refill(SupplyConstraints(word_length=5, language="en", used=set())))
    six = SupplyConstraints(word_length=6, language="en", used=set())
    challenge = pipeline.take(six)

    assert challenge is not None
    assert len(challenge.correct_answer) == 6
    pipeline.clear()


def test_take_without_event_loop_uses_local_corpus(corpus: WordCorpus) -> None:
    supplier = GatedSupplier([])
    pipeline = _pipeline(supplier, corpus)
    used: set[str] = set()
    constraints = SupplyConstraints(word_length=5, language="en", used=used)

    answers = [pipeline.take(constraints).correct_answer for _ in range(4)]  # type: ignore[union-attr]

    assert len(set(answers)) == 4
    assert supplier.calls == []
    assert not pipeline.refill_in_flight


def test_take_returns_none_when_nothing_exists(corpus: WordCorpus) -> None:
    pipeline = _pipeline(GatedSupplier([]), corpus)
    assert pipeline.take(SupplyConstraints(word_length=5, language="xx", used=set())) is None
