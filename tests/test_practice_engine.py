from __future__ import annotations

from lumina.api.models import GameStatus
from lumina.engines import practice
from lumina.engines.base import AnswerOutcome

RIGHT = AnswerOutcome(correct=True, time_remaining=3, correct_answer="TABLE")
WRONG = AnswerOutcome(correct=False, time_remaining=0, correct_answer="TABLE")


def test_every_tenth_streak_answer_awards_currency() -> None:
    state = practice.new_session(tier_index=4)
    awarded = []
    for _ in range(20):
        result = practice.score_answer(state, RIGHT)
        state = result.state
        awarded.append(result.rewards.currency)

    assert sum(awarded) == 2
    assert awarded[9] == 1 and awarded[19] == 1
    assert state.tier_index == 4
    assert state.lives == 0


def test_wrong_answer_resets_streak_but_keeps_records() -> None:
    state = practice.new_session(tier_index=0)
    for _ in range(6):
        state = practice.score_answer(state, RIGHT).state
    state = practice.score_answer(state, WRONG).state
    state = practice.score_answer(state, RIGHT).state

    ps = state.mode_state
    assert ps.streak == 1  # type: ignore[union-attr]
    assert ps.best_streak == 6  # type: ignore[union-attr]
    assert ps.total_words == 7  # type: ignore[union-attr]
    assert state.rounds_played == 8


def test_practice_always_advances() -> None:
    assert practice.next_status() == GameStatus.advancing
