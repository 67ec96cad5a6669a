from __future__ import annotations

from dataclasses import replace

from lumina.api.models import GameStatus
from lumina.core.state import PracticeState, SessionState
from lumina.engines.base import AnswerOutcome, EngineResult, Rewards

STREAK_REWARD_INTERVAL = 10


def new_session(*, tier_index: int) -> SessionState:
    return SessionState(mode_state=PracticeState(), tier_index=tier_index)


def score_answer(state: SessionState, outcome: AnswerOutcome) -> EngineResult:
    ps = state.mode_state
    if not isinstance(ps, PracticeState):
        raise ValueError(f"Not a practice session: {state.mode}")

    rounds_played = state.rounds_played + 1
    if not outcome.correct:
        new = replace(state, mode_state=replace(ps, streak=0), consecutive_correct=0, rounds_played=rounds_played)
        return EngineResult(new)

    streak = ps.streak + 1
    currency = 1 if streak % STREAK_REWARD_INTERVAL == 0 else 0
    new = replace(
        state,
        mode_state=replace(
            ps,
            streak=streak,
            best_streak=max(ps.best_streak, streak),
            total_words=ps.total_words + 1,
        ),
        consecutive_correct=streak,
        rounds_played=rounds_played,
        successful_rounds=state.successful_rounds + 1,
    )
    return EngineResult(new, Rewards(currency=currency))


def next_status() -> GameStatus:
    return GameStatus.advancing
