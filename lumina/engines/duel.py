from __future__ import annotations

from dataclasses import replace

from lumina.api.models import DuelWinner, GameStatus
from lumina.core.state import DuelState, SessionState
from lumina.engines.base import AnswerOutcome, EngineResult, Rewards
from lumina.ladder import next_cyclic

ROUND_WINS_TO_MATCH = 3
CORRECT_BASE_POINTS = 10


def new_session() -> SessionState:
    return SessionState(mode_state=DuelState(), tier_index=0)


def turn_points(outcome: AnswerOutcome) -> int:
    return CORRECT_BASE_POINTS + outcome.time_remaining if outcome.correct else 0


def round_winner(player1_score: int, player2_score: int) -> DuelWinner:
    if player1_score > player2_score:
        return 1
    if player2_score > player1_score:
        return 2
    return "draw"


def match_winner(player1_wins: int, player2_wins: int) -> DuelWinner:
    return round_winner(player1_wins, player2_wins)


def score_turn(state: SessionState, outcome: AnswerOutcome) -> EngineResult:
    """Score the current player's answer; player 2's answer also settles the round."""

    ds = _mode_state(state)
    points = turn_points(outcome)

    if ds.turn == 1:
        new = replace(state, mode_state=replace(ds, player1_score=points, turn=2))
        return EngineResult(new, Rewards(points=points))

    ds = replace(ds, player2_score=points)
    return EngineResult(replace(state, mode_state=settle_round(ds, tier_id=state.tier.id)), Rewards(points=points))


def settle_round(ds: DuelState, *, tier_id: str) -> DuelState:
    winner = round_winner(ds.player1_score, ds.player2_score)
    p1 = ds.player1_wins + (1 if winner == 1 else 0)
    p2 = ds.player2_wins + (1 if winner == 2 else 0)
    winners = dict(ds.round_winners)
    winners[tier_id] = winner

    match: DuelWinner | None = None
    tie_break = False
    if p1 >= ROUND_WINS_TO_MATCH or p2 >= ROUND_WINS_TO_MATCH:
        match = match_winner(p1, p2)
    elif ds.tie_break:
        # The sudden-death round was played; its outcome decides, a draw stays a draw.
        match = match_winner(p1, p2)
    elif p1 == ROUND_WINS_TO_MATCH - 1 and p2 == ROUND_WINS_TO_MATCH - 1:
        tie_break = True

    return replace(
        ds,
        player1_wins=p1,
        player2_wins=p2,
        round_winners=winners,
        round_winner=winner,
        match_winner=match,
        tie_break=tie_break,
    )


def next_status(state: SessionState) -> GameStatus:
    """Status right after a turn is scored: player 2 plays next, or the round is over."""

    ds = _mode_state(state)
    return GameStatus.playing if ds.turn == 2 and ds.round_winner is None else GameStatus.duel_round_over


def is_match_over(state: SessionState) -> bool:
    return _mode_state(state).match_winner is not None


def next_round(state: SessionState) -> SessionState:
    ds = _mode_state(state)
    return replace(
        state,
        tier_index=next_cyclic(state.tier_index),
        rounds_played=state.rounds_played + 1,
        mode_state=replace(
            ds,
            turn=1,
            current_round=ds.current_round + 1,
            player1_score=0,
            player2_score=0,
            round_winner=None,
        ),
    )


def _mode_state(state: SessionState) -> DuelState:
    ms = state.mode_state
    if not isinstance(ms, DuelState):
        raise ValueError(f"Not a duel session: {state.mode}")
    return ms
