from __future__ import annotations

from dataclasses import replace

from lumina.api.models import EndlessCheckpoint, GameStatus, StartingDifficulty
from lumina.config import GameSettings
from lumina.core.state import EndlessState, SessionState
from lumina.engines.base import AnswerOutcome, EngineResult, Rewards, add_recall_word, merge_choices
from lumina.ladder import LAST_TIER_INDEX

CURRENCY_PER_WORD: dict[StartingDifficulty, int] = {
    StartingDifficulty.easy: 1,
    StartingDifficulty.medium: 2,
    StartingDifficulty.hard: 3,
}

# (word_count, score) a fresh run starts from.
BASELINES: dict[StartingDifficulty, tuple[int, int]] = {
    StartingDifficulty.easy: (0, 0),
    StartingDifficulty.medium: (15, 250),
    StartingDifficulty.hard: (30, 600),
}


def tier_index_for(word_count: int, *, settings: GameSettings) -> int:
    return min(word_count // settings.memory_game_interval, LAST_TIER_INDEX)


def baseline_state(starting: StartingDifficulty, *, settings: GameSettings, used_answers: set[str] | None = None) -> SessionState:
    word_count, score = BASELINES[starting]
    return SessionState(
        mode_state=EndlessState(starting_difficulty=starting, word_count=word_count),
        tier_index=tier_index_for(word_count, settings=settings),
        score=score,
        used_answers=used_answers if used_answers is not None else set(),
    )


def new_session(*, starting: StartingDifficulty, settings: GameSettings) -> SessionState:
    return baseline_state(starting, settings=settings)


def word_count(state: SessionState) -> int:
    return _mode_state(state).word_count


def score_answer(state: SessionState, outcome: AnswerOutcome, *, settings: GameSettings) -> EngineResult:
    ms = _mode_state(state)
    # Every served word is replayed by the recall round, whatever the outcome.
    recall_words = add_recall_word(ms.recall_words, outcome.correct_answer, 1)
    recall_choices = merge_choices(ms.recall_choices, outcome.choices)
    rounds_played = state.rounds_played + 1

    if not outcome.correct:
        new = replace(
            state,
            mode_state=replace(ms, recall_words=recall_words, recall_choices=recall_choices),
            consecutive_correct=0,
            rounds_played=rounds_played,
        )
        return EngineResult(new)

    currency = CURRENCY_PER_WORD[ms.starting_difficulty]
    points = outcome.time_remaining + state.tier.base_points * 2
    count = ms.word_count + 1
    new = replace(
        state,
        mode_state=replace(
            ms,
            word_count=count,
            round_currency=ms.round_currency + currency,
            recall_words=recall_words,
            recall_choices=recall_choices,
        ),
        score=state.score + points,
        consecutive_correct=state.consecutive_correct + 1,
        rounds_played=rounds_played,
        successful_rounds=state.successful_rounds + 1,
        tier_index=tier_index_for(count, settings=settings),
    )
    return EngineResult(new, Rewards(points=points, currency=currency))


def next_status(state: SessionState, outcome: AnswerOutcome, *, settings: GameSettings) -> GameStatus:
    count = _mode_state(state).word_count
    if outcome.correct and count > 0 and count % settings.memory_game_interval == 0:
        return GameStatus.memory_game
    return GameStatus.advancing


def gate_passed(state: SessionState, *, bonus: int) -> tuple[SessionState, int]:
    """Apply a passed gate; returns the new state and the extra currency to award.

    The gate's perfect bonus doubles the currency earned since the previous gate.
    """

    ms = _mode_state(state)
    extra = ms.round_currency
    new = replace(
        state,
        mode_state=replace(ms, round_currency=0, recall_words=(), recall_choices=()),
        score=state.score + max(0, bonus),
    )
    return new, extra


def restore(checkpoint: EndlessCheckpoint, *, settings: GameSettings, used_answers: set[str]) -> SessionState:
    """Rebuild a session from `checkpoint`, reusing the controller's `used_answers` set."""

    used_answers.clear()
    used_answers.update(checkpoint.used_answers)
    return SessionState(
        mode_state=EndlessState(starting_difficulty=checkpoint.starting_tier, word_count=checkpoint.word_count),
        tier_index=tier_index_for(checkpoint.word_count, settings=settings),
        score=checkpoint.score,
        rounds_played=checkpoint.round_count,
        used_answers=used_answers,
    )


def _mode_state(state: SessionState) -> EndlessState:
    ms = state.mode_state
    if not isinstance(ms, EndlessState):
        raise ValueError(f"Not an endless session: {state.mode}")
    return ms
