from __future__ import annotations

import logging
from typing import TypeVar

import redis
from pydantic import BaseModel, ValidationError

from lumina.api.models import EndlessCheckpoint, SavedProgress

logger = logging.getLogger(__name__)

KEY_PREFIX = "lumina:"

_M = TypeVar("_M", bound=BaseModel)


class ProgressStore:
    """Durable per-profile records kept in Redis.

    Persistence is best-effort: every failure is logged and reported as the default
    value, so a missing or broken Redis never interrupts a running session.
    """

    def __init__(self, *, r: redis.Redis, profile: str = "guest") -> None:
        self.r = r
        self.profile = profile

    def _key(self, name: str) -> str:
        return f"{KEY_PREFIX}{self.profile}:{name}"

    @property
    def money_key(self) -> str:
        return self._key("money")

    @property
    def high_score_key(self) -> str:
        return self._key("endless:high_score")

    @property
    def checkpoint_key(self) -> str:
        return self._key("endless:checkpoint")

    @property
    def progress_key(self) -> str:
        return self._key("progress")

    def _get_int(self, key: str) -> int:
        try:
            raw = self.r.get(key)
        except redis.RedisError as e:
            logger.warning("Failed to read %s: %s", key, e)
            return 0
        if not raw:
            return 0
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring non-integer value at %s", key)
            return 0

    def _set(self, key: str, value: str) -> bool:
        try:
            self.r.set(key, value)
        except redis.RedisError as e:
            logger.warning("Failed to write %s: %s", key, e)
            return False
        return True

    def _get_model(self, key: str, model: type[_M]) -> _M | None:
        try:
            raw = self.r.get(key)
        except redis.RedisError as e:
            logger.warning("Failed to read %s: %s", key, e)
            return None
        if not raw:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding corrupted %s at %s: %s", model.__name__, key, e)
            return None

    def _delete(self, key: str) -> None:
        try:
            self.r.delete(key)
        except redis.RedisError as e:
            logger.warning("Failed to delete %s: %s", key, e)

    def load_money(self) -> int:
        return self._get_int(self.money_key)

    def add_money(self, amount: int) -> int | None:
        """Atomically credit the shared account; returns the new balance, or None on failure."""

        try:
            return int(self.r.incrby(self.money_key, amount))
        except redis.RedisError as e:
            logger.warning("Failed to write %s: %s", self.money_key, e)
            return None

    def load_high_score(self) -> int:
        return self._get_int(self.high_score_key)

    def save_high_score(self, score: int) -> bool:
        """Store `score` if it beats the recorded high score; returns whether it did."""

        if score <= self.load_high_score():
            return False
        return self._set(self.high_score_key, str(score))

    def load_checkpoint(self) -> EndlessCheckpoint | None:
        return self._get_model(self.checkpoint_key, EndlessCheckpoint)

    def save_checkpoint(self, checkpoint: EndlessCheckpoint) -> bool:
        return self._set(self.checkpoint_key, checkpoint.model_dump_json())

    def clear_checkpoint(self) -> None:
        self._delete(self.checkpoint_key)

    def load_progress(self) -> SavedProgress | None:
        return self._get_model(self.progress_key, SavedProgress)

    def save_progress(self, progress: SavedProgress) -> bool:
        return self._set(self.progress_key, progress.model_dump_json())

    def clear_progress(self) -> None:
        self._delete(self.progress_key)
