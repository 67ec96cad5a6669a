from __future__ import annotations

import os
from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class GameSettings:
    """Tunables shared by the controller, the engines and the supply pipeline."""

    # Ready-to-serve challenges kept warm by the supply pipeline.
    queue_size: int = 3

    # Rounds between recall gates; progressive tiers advance every 2 gates.
    memory_game_interval: int = 5
    gates_per_level: int = 6

    life_bonus_interval: int = 10
    starting_lives: int = 3
    max_lives: int = 6

    # Endless mode ignores the tier's time budget.
    endless_timer: int = 15

    # Seconds spent in correct/incorrect before the next status is computed.
    dwell_seconds: float = 1.5

    # 3, 2, 1 ticks one second apart, then "go" for half a second.
    countdown_ticks: int = 3
    countdown_go_seconds: float = 0.5

    recall_duration: int = 30
    recall_lives: int = 2

    # Turns in a row ending on the timer before a session pauses itself.
    unattended_turn_limit: int = 3

    language: str = "en"


DEFAULT_SETTINGS = GameSettings()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def settings_from_env(*, base: GameSettings = DEFAULT_SETTINGS) -> GameSettings:
    return replace(
        base,
        language=os.environ.get("LUMINA_LANGUAGE", base.language),
        queue_size=_env_int("LUMINA_QUEUE_SIZE", base.queue_size),
        dwell_seconds=_env_float("LUMINA_DWELL_SECONDS", base.dwell_seconds),
        endless_timer=_env_int("LUMINA_ENDLESS_TIMER", base.endless_timer),
        unattended_turn_limit=_env_int("LUMINA_UNATTENDED_TURNS", base.unattended_turn_limit),
    )
