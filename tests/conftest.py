from __future__ import annotations

import os
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import fakeredis
import pytest

from lumina.config import GameSettings
from lumina.corpus.registry import WordCorpus


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs so env-gated LLM tests can find OPENAI_* settings.

    In CI, `.env` is not loaded unless LUMINA_LOAD_DOTENV_FOR_TESTS=1.
    """

    if os.environ.get("CI") and os.environ.get("LUMINA_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@pytest.fixture(scope="session", autouse=True)
def _init_corpus_from_test_fixtures() -> None:
    """Initialize the corpus from `tests/corpus` and forbid falling back to built-ins."""

    os.environ["LUMINA_STRICT_CORPUS"] = "1"

    from lumina.corpus.singleton import init_corpus, reset_corpus_for_tests

    reset_corpus_for_tests()
    init_corpus(project_root=Path(__file__).resolve().parent)


@pytest.fixture()
def corpus() -> WordCorpus:
    from lumina.corpus.singleton import get_corpus

    return get_corpus()


@dataclass(eq=False)
class _ManualHandle:
    when: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Deterministic clock for timer-driven code: nothing fires until `advance`."""

    now: float = 0.0
    _handles: list[_ManualHandle] = field(default_factory=list)
    _seq: int = 0

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        self._seq += 1
        handle = _ManualHandle(when=self.now + delay, seq=self._seq, callback=callback)
        self._handles.append(handle)
        return handle

    def pending(self) -> int:
        return sum(1 for h in self._handles if not (h.cancelled or h.fired))

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self._handles if not (h.cancelled or h.fired) and h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            handle.fired = True
            self.now = max(self.now, handle.when)
            handle.callback()
        self.now = max(self.now, target)
        self._handles = [h for h in self._handles if not (h.cancelled or h.fired)]


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def fake_redis() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def store(fake_redis: fakeredis.FakeRedis):
    from lumina.store import ProgressStore

    return ProgressStore(r=fake_redis)


@pytest.fixture()
def settings() -> GameSettings:
    return GameSettings()


@pytest.fixture()
def make_controller(corpus: WordCorpus, scheduler: ManualScheduler, store, settings: GameSettings):
    """Factory for controllers wired to the test corpus, the manual clock and fakeredis."""

    from lumina.session import GameSessionController
    from lumina.sinks import RecordingSink
    from lumina.supply.pipeline import WordSupplyPipeline
    from lumina.supply.suppliers import CorpusChallengeSupplier

    def _make(**overrides):
        kwargs = dict(
            session_id="s1",
            pipeline=WordSupplyPipeline(
                supplier=CorpusChallengeSupplier(corpus=corpus, rng=random.Random(1)),
                corpus=corpus,
                capacity=settings.queue_size,
                rng=random.Random(7),
            ),
            scheduler=scheduler,
            settings=settings,
            store=store,
            sink=RecordingSink(),
            rng=random.Random(3),
        )
        kwargs.update(overrides)
        return GameSessionController(**kwargs)

    return _make
