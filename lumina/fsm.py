from __future__ import annotations

from statemachine import State, StateMachine

from lumina.api.models import GameStatus


def _state(status: GameStatus, **kwargs: bool) -> State:
    return State(status.value, value=status.value, **kwargs)


class SessionFSM(StateMachine):
    """Legal status transitions of one play session.

    The FSM only guards transitions; the session controller decides which event to
    send and applies the engines. Every non-idle status can return to the menu.
    """

    idle = _state(GameStatus.idle, initial=True)
    loading = _state(GameStatus.loading)
    countdown = _state(GameStatus.countdown)
    playing = _state(GameStatus.playing)
    correct = _state(GameStatus.correct)
    incorrect = _state(GameStatus.incorrect)
    advancing = _state(GameStatus.advancing)
    memory_game = _state(GameStatus.memory_game)
    game_over = _state(GameStatus.game_over)
    level_complete = _state(GameStatus.level_complete)
    duel_round_over = _state(GameStatus.duel_round_over)
    duel_game_over = _state(GameStatus.duel_game_over)

    begin = idle.to(loading)
    show_countdown = loading.to(countdown)
    serve = loading.to(playing) | countdown.to(playing) | advancing.to(playing)
    mark_correct = playing.to(correct)
    mark_incorrect = playing.to(incorrect)
    advance = (
        correct.to(advancing)
        | incorrect.to(advancing)
        | memory_game.to(advancing)
        | level_complete.to(advancing)
        | duel_round_over.to(advancing)
    )
    open_gate = correct.to(memory_game) | incorrect.to(memory_game)
    lose = incorrect.to(game_over) | memory_game.to(game_over)
    finish_level = memory_game.to(level_complete)
    end_duel_round = playing.to(duel_round_over)
    end_duel = duel_round_over.to(duel_game_over)
    return_to_menu = (
        loading.to(idle)
        | countdown.to(idle)
        | playing.to(idle)
        | correct.to(idle)
        | incorrect.to(idle)
        | advancing.to(idle)
        | memory_game.to(idle)
        | game_over.to(idle)
        | level_complete.to(idle)
        | duel_round_over.to(idle)
        | duel_game_over.to(idle)
    )

    def __init__(self, status: GameStatus = GameStatus.idle):
        super().__init__(start_value=status.value)

    @property
    def status(self) -> GameStatus:
        return GameStatus(str(self.current_state.value))
