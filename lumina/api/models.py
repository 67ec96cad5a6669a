from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class GameStatus(StrEnum):
    idle = "idle"
    loading = "loading"
    countdown = "countdown"
    playing = "playing"
    correct = "correct"
    incorrect = "incorrect"
    advancing = "advancing"
    memory_game = "memory_game"
    game_over = "game_over"
    level_complete = "level_complete"
    duel_round_over = "duel_round_over"
    duel_game_over = "duel_game_over"


class GameMode(StrEnum):
    progressive = "progressive"
    endless = "endless"
    duel = "duel"
    practice = "practice"


class StartingDifficulty(StrEnum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


# Round and match results in duel mode.
DuelWinner = Literal[1, 2, "draw"]


class WordChallenge(BaseModel):
    """One question: the correct answer plus look-alike distractors."""

    model_config = ConfigDict(frozen=True)

    correct_answer: str
    distractors: tuple[str, ...]

    def all_answers(self) -> tuple[str, ...]:
        return (self.correct_answer, *self.distractors)


class RecallWord(BaseModel):
    model_config = ConfigDict(frozen=True)

    word: str
    score: int


class EndlessCheckpoint(BaseModel):
    """Endless-mode progress captured after a successful gate."""

    model_config = ConfigDict(frozen=True)

    money: int
    score: int
    word_count: int
    round_count: int
    # Sorted so the persisted form is stable.
    used_answers: tuple[str, ...] = ()
    starting_tier: StartingDifficulty = StartingDifficulty.easy


class SavedProgress(BaseModel):
    """Resumable progressive-mode run."""

    score: int
    lives: int
    level: int
    tier_index: int
    consecutive_correct: int
    rounds_played: int
    successful_rounds: int
    trophies: int = 0
    multiplier_level: int = 0
    used_answers: list[str] = Field(default_factory=list)
    recall_words: list[RecallWord] = Field(default_factory=list)
    recall_choices: list[str] = Field(default_factory=list)


class SessionCreateRequest(BaseModel):
    mode: GameMode
    # Practice mode only.
    tier: str | None = None
    # Endless mode only.
    starting_difficulty: StartingDifficulty = StartingDifficulty.easy
    language: str | None = Field(default=None, min_length=2, max_length=8)
    resume: bool = False
    multiplier_level: int = Field(default=0, ge=0, le=10)


class AnswerRequest(BaseModel):
    answer: str = Field(..., max_length=64)
    player: Literal[1, 2] | None = None


class RecallPickRequest(BaseModel):
    word: str = Field(..., min_length=1, max_length=64)


class DuelView(BaseModel):
    turn: Literal[1, 2]
    current_round: int
    player1_score: int
    player2_score: int
    player1_wins: int
    player2_wins: int
    tie_break: bool
    round_winners: dict[str, DuelWinner] = Field(default_factory=dict)
    round_winner: DuelWinner | None = None
    match_winner: DuelWinner | None = None


class RecallView(BaseModel):
    choices: list[str]
    found: list[str]
    lives: int
    time_left: int
    bonus: int


class SessionView(BaseModel):
    session_id: str
    status: GameStatus
    mode: GameMode | None = None
    paused: bool = False
    tier: str | None = None
    score: int = 0
    lives: int = 0
    time_left: int = 0
    countdown: int | str | None = None
    choices: list[str] = Field(default_factory=list)
    wallet: int = 0
    rounds_played: int = 0
    word_count: int | None = None
    level: int | None = None
    streak: int | None = None
    duel: DuelView | None = None
    recall: RecallView | None = None
