from __future__ import annotations

from dataclasses import replace

from lumina.api.models import GameStatus, SavedProgress
from lumina.config import GameSettings
from lumina.core.state import ProgressiveState, SessionState
from lumina.engines.base import AnswerOutcome, EngineResult, Rewards, add_recall_word, merge_choices, round_half_up
from lumina.ladder import LAST_TIER_INDEX


def new_session(*, settings: GameSettings, multiplier_level: int = 0) -> SessionState:
    return SessionState(
        mode_state=ProgressiveState(multiplier_level=multiplier_level),
        tier_index=0,
        lives=settings.starting_lives,
    )


def tier_index_for(rounds_played: int, *, settings: GameSettings) -> int:
    # Two gates per tier.
    return min(rounds_played // (settings.memory_game_interval * 2), LAST_TIER_INDEX)


def points_for(state: SessionState, time_remaining: int) -> int:
    ms = _mode_state(state)
    return round_half_up((state.tier.base_points + time_remaining) * (1 + ms.multiplier_level * 0.1))


def score_answer(state: SessionState, outcome: AnswerOutcome, *, settings: GameSettings) -> EngineResult:
    ms = _mode_state(state)
    rounds_played = state.rounds_played + 1
    tier_index = tier_index_for(rounds_played, settings=settings)
    recall_choices = merge_choices(ms.recall_choices, outcome.choices)

    if not outcome.correct:
        new = replace(
            state,
            mode_state=replace(ms, recall_choices=recall_choices),
            lives=max(0, state.lives - 1),
            consecutive_correct=0,
            rounds_played=rounds_played,
            tier_index=tier_index,
        )
        return EngineResult(new, Rewards(life_lost=True))

    points = points_for(state, outcome.time_remaining)
    lives = state.lives
    consecutive = state.consecutive_correct + 1
    life_bonus = False
    if consecutive >= settings.life_bonus_interval:
        life_bonus = lives < settings.max_lives
        lives = min(lives + 1, settings.max_lives)
        consecutive = 0

    new = replace(
        state,
        mode_state=replace(
            ms,
            recall_words=add_recall_word(ms.recall_words, outcome.correct_answer, points),
            recall_choices=recall_choices,
        ),
        lives=lives,
        score=state.score + points,
        consecutive_correct=consecutive,
        rounds_played=rounds_played,
        successful_rounds=state.successful_rounds + 1,
        tier_index=tier_index,
    )
    return EngineResult(new, Rewards(points=points, life_bonus=life_bonus))


def next_status(state: SessionState, outcome: AnswerOutcome, *, settings: GameSettings) -> GameStatus:
    """Status after the dwell that follows a scored answer."""

    if not outcome.correct and state.lives < 1:
        return GameStatus.game_over
    if state.rounds_played > 0 and state.rounds_played % settings.memory_game_interval == 0:
        return GameStatus.memory_game
    return GameStatus.advancing


def gate_passed(state: SessionState, *, bonus: int, settings: GameSettings) -> tuple[SessionState, GameStatus]:
    ms = _mode_state(state)
    new = replace(
        state,
        mode_state=replace(ms, recall_words=(), recall_choices=()),
        score=state.score + max(0, bonus),
    )
    per_level = settings.memory_game_interval * settings.gates_per_level
    if state.rounds_played > 0 and state.rounds_played % per_level == 0:
        return new, GameStatus.level_complete
    return new, GameStatus.advancing


def complete_level(state: SessionState) -> SessionState:
    ms = _mode_state(state)
    return replace(state, mode_state=replace(ms, level=ms.level + 1, trophies=ms.trophies + 1))


def game_over_currency(state: SessionState) -> int:
    return state.score // 100


def to_saved_progress(state: SessionState) -> SavedProgress:
    ms = _mode_state(state)
    return SavedProgress(
        score=state.score,
        lives=state.lives,
        level=ms.level,
        tier_index=state.tier_index,
        consecutive_correct=state.consecutive_correct,
        rounds_played=state.rounds_played,
        successful_rounds=state.successful_rounds,
        trophies=ms.trophies,
        multiplier_level=ms.multiplier_level,
        used_answers=sorted(state.used_answers),
        recall_words=list(ms.recall_words),
        recall_choices=list(ms.recall_choices),
    )


def from_saved_progress(progress: SavedProgress, *, multiplier_level: int | None = None) -> SessionState:
    return SessionState(
        mode_state=ProgressiveState(
            level=progress.level,
            trophies=progress.trophies,
            multiplier_level=progress.multiplier_level if multiplier_level is None else multiplier_level,
            recall_words=tuple(progress.recall_words),
            recall_choices=tuple(progress.recall_choices),
        ),
        tier_index=max(0, min(progress.tier_index, LAST_TIER_INDEX)),
        lives=progress.lives,
        score=progress.score,
        consecutive_correct=progress.consecutive_correct,
        rounds_played=progress.rounds_played,
        successful_rounds=progress.successful_rounds,
        used_answers=set(progress.used_answers),
    )


def _mode_state(state: SessionState) -> ProgressiveState:
    ms = state.mode_state
    if not isinstance(ms, ProgressiveState):
        raise ValueError(f"Not a progressive session: {state.mode}")
    return ms
