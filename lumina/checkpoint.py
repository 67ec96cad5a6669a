from __future__ import annotations

import logging

from lumina.api.models import EndlessCheckpoint, StartingDifficulty
from lumina.config import GameSettings
from lumina.core.state import EndlessState, SessionState
from lumina.engines import endless
from lumina.store import ProgressStore

logger = logging.getLogger(__name__)


class EndlessCheckpointManager:
    """Single-slot snapshot of endless progress, taken after each passed gate.

    Rollback restores run progress (score, word count, rounds, used answers, starting
    difficulty) but never takes currency away: the wallet only grows.
    """

    def __init__(self, *, settings: GameSettings, store: ProgressStore | None = None) -> None:
        self.settings = settings
        self.store = store
        self._latest: EndlessCheckpoint | None = None

    @property
    def latest(self) -> EndlessCheckpoint | None:
        return self._latest

    def load(self) -> EndlessCheckpoint | None:
        """Adopt the persisted checkpoint, if any."""

        self._latest = self.store.load_checkpoint() if self.store is not None else None
        return self._latest

    def commit(self, state: SessionState, *, money: int) -> EndlessCheckpoint:
        ms = state.mode_state
        if not isinstance(ms, EndlessState):
            raise ValueError(f"Not an endless session: {state.mode}")

        checkpoint = EndlessCheckpoint(
            money=money,
            score=state.score,
            word_count=ms.word_count,
            round_count=state.rounds_played,
            used_answers=tuple(sorted(state.used_answers)),
            starting_tier=ms.starting_difficulty,
        )
        self._latest = checkpoint
        if self.store is not None:
            self.store.save_checkpoint(checkpoint)
        logger.debug("Committed endless checkpoint at word_count=%d", ms.word_count)
        return checkpoint

    def baseline(self, starting: StartingDifficulty) -> SessionState:
        return endless.baseline_state(starting, settings=self.settings)

    def rollback(self, state: SessionState, *, wallet: int) -> tuple[SessionState, int]:
        """Return the restored state and the wallet balance to keep."""

        ms = state.mode_state
        if not isinstance(ms, EndlessState):
            raise ValueError(f"Not an endless session: {state.mode}")

        if self._latest is not None:
            restored = endless.restore(self._latest, settings=self.settings, used_answers=state.used_answers)
            return restored, max(wallet, self._latest.money)

        state.used_answers.clear()
        restored = endless.baseline_state(
            ms.starting_difficulty, settings=self.settings, used_answers=state.used_answers
        )
        if self.store is not None:
            self.store.clear_checkpoint()
        return restored, wallet

    def clear(self) -> None:
        self._latest = None
