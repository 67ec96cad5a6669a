from __future__ import annotations

import logging
import random
from uuid import uuid4

import redis

from lumina.config import DEFAULT_SETTINGS, GameSettings
from lumina.corpus.registry import WordCorpus
from lumina.scheduler import AsyncioScheduler, Scheduler
from lumina.session import GameSessionController
from lumina.sinks import FanoutSink, HubSink, PresentationSink, RedisStreamSink
from lumina.store import ProgressStore
from lumina.supply.pipeline import WordSupplyPipeline
from lumina.supply.suppliers import ChallengeSupplier
from lumina.websocket_hub import SessionWebSocketHub, hub

logger = logging.getLogger(__name__)


class SessionNotFoundError(RuntimeError):
    pass


class SessionRegistry:
    """In-process table of live session controllers.

    Each controller gets its own supply pipeline; the corpus, the supplier, the
    scheduler and the Redis client are shared. Once `max_sessions` is reached, creating
    a session first drops the dormant ones (see `GameSessionController.dormant`).
    """

    def __init__(
        self,
        *,
        corpus: WordCorpus,
        supplier: ChallengeSupplier,
        r: redis.Redis | None = None,
        scheduler: Scheduler | None = None,
        settings: GameSettings = DEFAULT_SETTINGS,
        ws_hub: SessionWebSocketHub = hub,
        max_sessions: int = 256,
    ) -> None:
        self.corpus = corpus
        self.supplier = supplier
        self.r = r
        self.scheduler = scheduler or AsyncioScheduler()
        self.settings = settings
        self.ws_hub = ws_hub
        self.max_sessions = max_sessions
        self._sessions: dict[str, GameSessionController] = {}

    def _sink(self) -> PresentationSink:
        sinks: list[PresentationSink] = [HubSink(hub=self.ws_hub)]
        if self.r is not None:
            sinks.append(RedisStreamSink(r=self.r))
        return FanoutSink(sinks=sinks)

    def prune(self) -> int:
        """Drop dormant sessions; returns how many were removed."""

        dormant = [sid for sid, c in self._sessions.items() if c.dormant]
        for sid in dormant:
            self.remove(sid)
        if dormant:
            logger.info("Pruned %d dormant sessions", len(dormant))
        return len(dormant)

    def create(self, *, profile: str = "guest") -> GameSessionController:
        if len(self._sessions) >= self.max_sessions and not self.prune():
            logger.warning("Session limit %d reached with no dormant session to drop", self.max_sessions)
        session_id = str(uuid4())
        rng = random.Random()
        controller = GameSessionController(
            session_id=session_id,
            pipeline=WordSupplyPipeline(
                supplier=self.supplier,
                corpus=self.corpus,
                capacity=self.settings.queue_size,
                rng=rng,
            ),
            scheduler=self.scheduler,
            settings=self.settings,
            store=ProgressStore(r=self.r, profile=profile) if self.r is not None else None,
            sink=self._sink(),
            rng=rng,
        )
        self._sessions[session_id] = controller
        logger.info("Created session %s", session_id)
        return controller

    def get(self, session_id: str) -> GameSessionController:
        controller = self._sessions.get(session_id)
        if controller is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return controller

    def remove(self, session_id: str) -> None:
        controller = self.get(session_id)
        controller.return_to_menu()
        del self._sessions[session_id]

    def __len__(self) -> int:
        return len(self._sessions)
