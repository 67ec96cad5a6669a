from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from lumina.api.models import DuelWinner, GameMode, RecallWord, StartingDifficulty
from lumina.ladder import DifficultyTier, tier_at


@dataclass(frozen=True, slots=True)
class ProgressiveState:
    level: int = 1
    trophies: int = 0
    multiplier_level: int = 0
    # Answers since the last gate, replayed by the recall round.
    recall_words: tuple[RecallWord, ...] = ()
    recall_choices: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class EndlessState:
    starting_difficulty: StartingDifficulty = StartingDifficulty.easy
    word_count: int = 0
    # Currency earned since the last gate; doubled by a perfect gate.
    round_currency: int = 0
    recall_words: tuple[RecallWord, ...] = ()
    recall_choices: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DuelState:
    turn: Literal[1, 2] = 1
    current_round: int = 1
    player1_score: int = 0
    player2_score: int = 0
    player1_wins: int = 0
    player2_wins: int = 0
    tie_break: bool = False
    # tier id -> round winner
    round_winners: Mapping[str, DuelWinner] = field(default_factory=dict)
    round_winner: DuelWinner | None = None
    match_winner: DuelWinner | None = None


@dataclass(frozen=True, slots=True)
class PracticeState:
    streak: int = 0
    best_streak: int = 0
    total_words: int = 0


ModeState = ProgressiveState | EndlessState | DuelState | PracticeState

_MODE_BY_STATE: dict[type, GameMode] = {
    ProgressiveState: GameMode.progressive,
    EndlessState: GameMode.endless,
    DuelState: GameMode.duel,
    PracticeState: GameMode.practice,
}


@dataclass(frozen=True, slots=True)
class SessionState:
    """The per-run aggregate owned by the session controller.

    The mode is derived from the type of `mode_state`, so a session can never carry
    sub-state for a mode other than its own. Engines return updated copies; the
    controller swaps its reference. `used_answers` is the one mutable member: the
    supply pipeline records served answers into it on the controller's behalf.
    """

    mode_state: ModeState
    tier_index: int = 0
    lives: int = 0
    score: int = 0
    consecutive_correct: int = 0
    rounds_played: int = 0
    successful_rounds: int = 0
    used_answers: set[str] = field(default_factory=set)

    @property
    def mode(self) -> GameMode:
        return _MODE_BY_STATE[type(self.mode_state)]

    @property
    def tier(self) -> DifficultyTier:
        return tier_at(self.tier_index)
