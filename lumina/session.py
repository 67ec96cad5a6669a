from __future__ import annotations

import logging
import random
from typing import Any, Literal

from lumina.api.models import (
    DuelView,
    GameMode,
    GameStatus,
    RecallView,
    SessionView,
    StartingDifficulty,
    WordChallenge,
)
from lumina.checkpoint import EndlessCheckpointManager
from lumina.config import DEFAULT_SETTINGS, GameSettings
from lumina.core.events import EventType, SessionEvent
from lumina.core.state import DuelState, EndlessState, PracticeState, ProgressiveState, SessionState
from lumina.engines import duel, endless, practice, progressive
from lumina.engines.base import AnswerOutcome, Rewards
from lumina.engines.recall import RecallRound, pick, start_recall, tick
from lumina.fsm import SessionFSM
from lumina.ladder import tier_by_id
from lumina.scheduler import Scheduler, TimerArena
from lumina.sinks import PresentationSink, RecordingSink
from lumina.store import ProgressStore
from lumina.supply.pipeline import SupplyConstraints, WordSupplyPipeline

logger = logging.getLogger(__name__)

# Timer names owned by the arena.
TICK = "tick"
DWELL = "dwell"
COUNTDOWN = "countdown"
RECALL = "recall"


class GameSessionController:
    """Drives one play session from mode selection back to the menu.

    All mutation of the session goes through this class: answers, timers and supply
    results. Public actions return False when they do not apply to the current status
    (duplicate answers, input while paused, the wrong duel player); they never raise
    for that.
    """

    def __init__(
        self,
        *,
        session_id: str,
        pipeline: WordSupplyPipeline,
        scheduler: Scheduler,
        settings: GameSettings = DEFAULT_SETTINGS,
        store: ProgressStore | None = None,
        sink: PresentationSink | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.session_id = session_id
        self.pipeline = pipeline
        self.settings = settings
        self.store = store
        self.sink: PresentationSink = sink or RecordingSink()
        self.rng = rng or random.Random()

        self.fsm = SessionFSM()
        self.timers = TimerArena(scheduler)
        self.checkpoints = EndlessCheckpointManager(settings=settings, store=store)

        self.state: SessionState | None = None
        self.language = settings.language
        self.challenge: WordChallenge | None = None
        self.choices: tuple[str, ...] = ()
        self.time_left = 0
        self.countdown: int | str | None = None
        self.paused = False
        self.recall: RecallRound | None = None

        self.wallet = store.load_money() if store is not None else 0
        self.high_score = store.load_high_score() if store is not None else 0

        self._answered = False
        self._first_challenge = True
        self._last_outcome: AnswerOutcome | None = None
        # Consecutive turns that ended on the timer; resets on any player input.
        self._missed_turns = 0

    @property
    def status(self) -> GameStatus:
        return self.fsm.status

    @property
    def mode(self) -> GameMode | None:
        return self.state.mode if self.state is not None else None

    @property
    def unattended(self) -> bool:
        return self._missed_turns >= self.settings.unattended_turn_limit

    @property
    def dormant(self) -> bool:
        """True when nobody is playing: back at the menu, finished, or paused after timeouts."""

        if self.state is None or self.status in (GameStatus.game_over, GameStatus.duel_game_over):
            return True
        return self.paused and self.unattended

    # -- events -----------------------------------------------------------------

    def _emit(self, type: EventType, **payload: Any) -> None:
        self.sink.emit(SessionEvent.now(type=type, session_id=self.session_id, payload=payload))

    def _send(self, event: str) -> None:
        before = self.status
        self.fsm.send(event)
        logger.debug("Session %s: %s -> %s (%s)", self.session_id, before, self.status, event)
        self._emit("STATE_CHANGED", **self.snapshot().model_dump(mode="json"))

    # -- mode selection -----------------------------------------------------------

    def select_mode(
        self,
        mode: GameMode,
        *,
        tier: str | None = None,
        starting_difficulty: StartingDifficulty = StartingDifficulty.easy,
        resume: bool = False,
        multiplier_level: int = 0,
        language: str | None = None,
    ) -> None:
        """Start a new run, abandoning any run in progress."""

        if mode == GameMode.practice:
            if tier is None:
                raise ValueError("Practice mode requires a tier")
            tier_by_id(tier)

        self.return_to_menu()
        state, resumed = self._initial_state(
            mode,
            tier=tier,
            starting_difficulty=starting_difficulty,
            resume=resume,
            multiplier_level=multiplier_level,
        )

        if self.store is not None:
            self.wallet = self.store.load_money()
            self.high_score = self.store.load_high_score()

        self.state = state
        self.language = language or self.settings.language
        self._first_challenge = not resumed
        logger.info("Session %s: starting %s run (resumed=%s)", self.session_id, mode, resumed)

        self._send("begin")
        self._load_next()

    def _initial_state(
        self,
        mode: GameMode,
        *,
        tier: str | None,
        starting_difficulty: StartingDifficulty,
        resume: bool,
        multiplier_level: int,
    ) -> tuple[SessionState, bool]:
        if mode == GameMode.progressive:
            saved = self.store.load_progress() if resume and self.store is not None else None
            if saved is not None:
                return progressive.from_saved_progress(saved, multiplier_level=multiplier_level), True
            return progressive.new_session(settings=self.settings, multiplier_level=multiplier_level), False

        if mode == GameMode.endless:
            if resume:
                checkpoint = self.checkpoints.load()
                if checkpoint is not None:
                    return endless.restore(checkpoint, settings=self.settings, used_answers=set()), True
            self.checkpoints.clear()
            if self.store is not None:
                self.store.clear_checkpoint()
            return endless.new_session(starting=starting_difficulty, settings=self.settings), False

        if mode == GameMode.duel:
            return duel.new_session(), False

        if tier is None:
            raise ValueError("Practice mode requires a tier")
        return practice.new_session(tier_index=tier_by_id(tier).index), False

    # -- challenge flow -----------------------------------------------------------

    def _constraints(self, state: SessionState) -> SupplyConstraints:
        return SupplyConstraints(word_length=state.tier.word_length, language=self.language, used=state.used_answers)

    def _load_next(self) -> None:
        assert self.state is not None
        challenge = self.pipeline.take(self._constraints(self.state))
        if challenge is None:
            logger.error(
                "Session %s: no challenge available (length=%d, language=%s); returning to menu",
                self.session_id,
                self.state.tier.word_length,
                self.language,
            )
            self._emit("SESSION_ABORTED", reason="supply_exhausted")
            self.return_to_menu()
            return

        self.challenge = challenge
        choices = list(challenge.all_answers())
        self.rng.shuffle(choices)
        self.choices = tuple(choices)
        self._answered = False
        self._last_outcome = None

        if self._first_challenge:
            self._first_challenge = False
            self._send("show_countdown")
            self._countdown_tick(self.settings.countdown_ticks)
        else:
            self._send("serve")
            self._start_turn()

    def _countdown_tick(self, remaining: int) -> None:
        self.countdown = remaining if remaining > 0 else "go"
        self._emit("COUNTDOWN_TICK", value=self.countdown)
        if remaining > 0:
            self.timers.schedule(COUNTDOWN, 1.0, lambda: self._countdown_tick(remaining - 1))
        else:
            self.timers.schedule(COUNTDOWN, self.settings.countdown_go_seconds, self._finish_countdown)

    def _finish_countdown(self) -> None:
        self.countdown = None
        self._send("serve")
        self._start_turn()

    def _turn_budget(self) -> int:
        assert self.state is not None
        if self.state.mode == GameMode.endless:
            return self.settings.endless_timer
        return self.state.tier.time_budget_seconds

    def _start_turn(self) -> None:
        assert self.state is not None
        self.time_left = self._turn_budget()
        ds = self.state.mode_state
        if isinstance(ds, DuelState):
            self._emit("DUEL_TURN", player=ds.turn, round=ds.current_round, tier=self.state.tier.id)
        if self.unattended:
            logger.info("Session %s: %d turns timed out in a row; pausing", self.session_id, self._missed_turns)
            self.paused = True
            self._emit("STATE_CHANGED", **self.snapshot().model_dump(mode="json"))
            return
        self.timers.schedule(TICK, 1.0, self._on_tick)

    def _on_tick(self) -> None:
        if self.status != GameStatus.playing or self.paused:
            return
        self.time_left = max(0, self.time_left - 1)
        if self.time_left > 0:
            self.timers.schedule(TICK, 1.0, self._on_tick)
            return
        logger.debug("Session %s: answer timer expired", self.session_id)
        self._missed_turns += 1
        self._resolve("")

    def submit_answer(self, answer: str, *, player: Literal[1, 2] | None = None) -> bool:
        if self.status != GameStatus.playing or self.paused or self._answered or self.state is None:
            return False
        ds = self.state.mode_state
        if isinstance(ds, DuelState) and player is not None and player != ds.turn:
            return False
        self._missed_turns = 0
        self._resolve(answer)
        return True

    def _resolve(self, answer: str) -> None:
        assert self.state is not None and self.challenge is not None
        self.timers.cancel(TICK)
        outcome = AnswerOutcome.judge(
            self.challenge, answer=answer, time_remaining=self.time_left, choices=self.choices
        )

        if isinstance(self.state.mode_state, DuelState):
            self._resolve_duel_turn(outcome)
            return

        self._answered = True
        self._last_outcome = outcome
        state = self.state
        if isinstance(state.mode_state, ProgressiveState):
            result = progressive.score_answer(state, outcome, settings=self.settings)
        elif isinstance(state.mode_state, EndlessState):
            result = endless.score_answer(state, outcome, settings=self.settings)
        else:
            result = practice.score_answer(state, outcome)

        self.state = result.state
        self._send("mark_correct" if outcome.correct else "mark_incorrect")
        if outcome.correct:
            self._emit("CORRECT", answer=outcome.correct_answer, points=result.rewards.points)
        else:
            self._emit("INCORRECT", answer=outcome.answer, expected=outcome.correct_answer)
        self._apply_rewards(result.rewards)
        self.timers.schedule(DWELL, self.settings.dwell_seconds, self._after_dwell)

    def _resolve_duel_turn(self, outcome: AnswerOutcome) -> None:
        assert self.state is not None
        player = self.state.mode_state.turn  # type: ignore[union-attr]
        result = duel.score_turn(self.state, outcome)
        self.state = result.state
        self._emit("CORRECT" if outcome.correct else "INCORRECT", player=player, points=result.rewards.points)

        if duel.next_status(self.state) == GameStatus.playing:
            # Player 2 gets the tier's full budget.
            self._start_turn()
            self._emit("STATE_CHANGED", **self.snapshot().model_dump(mode="json"))
            return

        self._answered = True
        ds = self.state.mode_state
        self._send("end_duel_round")
        self._emit(
            "DUEL_ROUND_OVER",
            round=ds.current_round,  # type: ignore[union-attr]
            winner=ds.round_winner,  # type: ignore[union-attr]
            tie_break=ds.tie_break,  # type: ignore[union-attr]
        )

    def _apply_rewards(self, rewards: Rewards) -> None:
        if rewards.life_lost:
            self._emit("LIFE_LOST", lives=self.state.lives if self.state else 0)
        if rewards.life_bonus:
            self._emit("LIFE_BONUS", lives=self.state.lives if self.state else 0)
        if rewards.currency:
            self._award_currency(rewards.currency)

    def _credit(self, amount: int) -> None:
        # The stored account is shared by every session of the profile; adopt its balance.
        balance = self.store.add_money(amount) if self.store is not None else None
        self.wallet = balance if balance is not None else self.wallet + amount

    def _award_currency(self, amount: int) -> None:
        self._credit(amount)
        self._emit("CURRENCY_AWARDED", amount=amount, wallet=self.wallet)

    def _after_dwell(self) -> None:
        assert self.state is not None and self._last_outcome is not None
        state, outcome = self.state, self._last_outcome

        if isinstance(state.mode_state, ProgressiveState):
            nxt = progressive.next_status(state, outcome, settings=self.settings)
        elif isinstance(state.mode_state, EndlessState):
            nxt = endless.next_status(state, outcome, settings=self.settings)
        else:
            nxt = practice.next_status()

        if nxt == GameStatus.game_over:
            self._game_over()
        elif nxt == GameStatus.memory_game:
            self._open_gate()
        else:
            self._advance()

    def _advance(self) -> None:
        self._send("advance")
        self._load_next()

    def _game_over(self) -> None:
        assert self.state is not None
        self.timers.cancel_all()
        self._send("lose")
        currency = progressive.game_over_currency(self.state)
        if currency:
            self._award_currency(currency)
        if self.store is not None:
            self.store.clear_progress()
        ms = self.state.mode_state
        self._emit(
            "GAME_OVER",
            score=self.state.score,
            level=ms.level if isinstance(ms, ProgressiveState) else None,
            currency=currency,
        )

    # -- recall gate --------------------------------------------------------------

    def _open_gate(self) -> None:
        assert self.state is not None
        ms = self.state.mode_state
        assert isinstance(ms, (ProgressiveState, EndlessState))
        self._send("open_gate")
        self.recall = start_recall(
            mode=self.state.mode,
            words=ms.recall_words,
            choices=ms.recall_choices,
            settings=self.settings,
            word_count=ms.word_count if isinstance(ms, EndlessState) else 0,
            rng=self.rng,
        )
        self._emit("GATE_OPENED", words=len(self.recall.targets), choices=list(self.recall.choices))
        if self.recall.finished:
            self._finish_recall()
            return
        self.timers.schedule(RECALL, 1.0, self._on_recall_tick)

    def _on_recall_tick(self) -> None:
        if self.recall is None or self.status != GameStatus.memory_game:
            return
        self.recall = tick(self.recall)
        if self.recall.finished:
            self._finish_recall()
            return
        self.timers.schedule(RECALL, 1.0, self._on_recall_tick)

    def recall_pick(self, word: str) -> bool:
        if self.status != GameStatus.memory_game or self.recall is None:
            return False
        updated = pick(self.recall, word)
        if updated is self.recall:
            return False
        self.recall = updated
        if updated.finished:
            self._finish_recall()
        return True

    def _finish_recall(self) -> None:
        assert self.recall is not None
        self.resolve_gate(self.recall.won, bonus=self.recall.bonus)

    def resolve_gate(self, success: bool, bonus: int = 0) -> bool:
        """Close the recall gate, from the built-in round or an external one."""

        if self.status != GameStatus.memory_game or self.state is None:
            return False
        self.timers.cancel(RECALL)
        self.recall = None

        if isinstance(self.state.mode_state, ProgressiveState):
            self._resolve_progressive_gate(success, bonus)
        else:
            self._resolve_endless_gate(success, bonus)
        return True

    def _resolve_progressive_gate(self, success: bool, bonus: int) -> None:
        assert self.state is not None
        if not success:
            self._emit("GATE_FAILED")
            self._game_over()
            return

        self.state, nxt = progressive.gate_passed(self.state, bonus=bonus, settings=self.settings)
        self._emit("BONUS", bonus=bonus)
        if self.store is not None:
            self.store.save_progress(progressive.to_saved_progress(self.state))

        if nxt == GameStatus.level_complete:
            self._send("finish_level")
            self._emit("LEVEL_COMPLETE", level=self.state.mode_state.level)  # type: ignore[union-attr]
        else:
            self._advance()

    def _resolve_endless_gate(self, success: bool, bonus: int) -> None:
        assert self.state is not None
        if not success:
            self._emit("GATE_FAILED")
            self.state, wallet = self.checkpoints.rollback(self.state, wallet=self.wallet)
            if wallet > self.wallet:
                self._credit(wallet - self.wallet)
            self._emit(
                "CHECKPOINT_RESTORED",
                word_count=endless.word_count(self.state),
                score=self.state.score,
                from_checkpoint=self.checkpoints.latest is not None,
            )
            self._advance()
            return

        self.state, extra = endless.gate_passed(self.state, bonus=bonus)
        self._emit("BONUS", bonus=bonus, currency=extra)
        if extra:
            self._award_currency(extra)
        checkpoint = self.checkpoints.commit(self.state, money=self.wallet)
        self._emit("CHECKPOINT_COMMITTED", word_count=checkpoint.word_count, score=checkpoint.score)
        if self.store is not None and self.store.save_high_score(self.state.score):
            self.high_score = self.state.score
        self._advance()

    # -- terminal continuations -----------------------------------------------------

    def continue_level(self) -> bool:
        if self.status != GameStatus.level_complete or self.state is None:
            return False
        self.state = progressive.complete_level(self.state)
        if self.store is not None:
            self.store.save_progress(progressive.to_saved_progress(self.state))
        self._advance()
        return True

    def continue_duel(self) -> bool:
        if self.status != GameStatus.duel_round_over or self.state is None:
            return False
        if duel.is_match_over(self.state):
            ds = self.state.mode_state
            self._send("end_duel")
            self._emit(
                "DUEL_GAME_OVER",
                winner=ds.match_winner,  # type: ignore[union-attr]
                player1_wins=ds.player1_wins,  # type: ignore[union-attr]
                player2_wins=ds.player2_wins,  # type: ignore[union-attr]
            )
            return True
        self.state = duel.next_round(self.state)
        self._advance()
        return True

    # -- pause / exit ---------------------------------------------------------------

    def toggle_pause(self) -> bool:
        if self.status != GameStatus.playing:
            return False
        self.paused = not self.paused
        self._missed_turns = 0
        if self.paused:
            self.timers.cancel(TICK)
        else:
            self.timers.schedule(TICK, 1.0, self._on_tick)
        self._emit("STATE_CHANGED", **self.snapshot().model_dump(mode="json"))
        return True

    def return_to_menu(self) -> None:
        self.timers.cancel_all()
        self.pipeline.clear()
        self.checkpoints.clear()
        self.state = None
        self.challenge = None
        self.choices = ()
        self.time_left = 0
        self.countdown = None
        self.paused = False
        self.recall = None
        self._answered = False
        self._first_challenge = True
        self._last_outcome = None
        self._missed_turns = 0
        if self.status != GameStatus.idle:
            self._send("return_to_menu")

    # -- presentation -----------------------------------------------------------------

    def snapshot(self) -> SessionView:
        state = self.state
        view = SessionView(
            session_id=self.session_id,
            status=self.status,
            paused=self.paused,
            time_left=self.time_left,
            countdown=self.countdown,
            choices=list(self.choices),
            wallet=self.wallet,
        )
        if state is None:
            return view

        view.mode = state.mode
        view.tier = state.tier.id
        view.score = state.score
        view.lives = state.lives
        view.rounds_played = state.rounds_played
        view.streak = state.consecutive_correct

        ms = state.mode_state
        if isinstance(ms, ProgressiveState):
            view.level = ms.level
        elif isinstance(ms, EndlessState):
            view.word_count = ms.word_count
        elif isinstance(ms, PracticeState):
            view.streak = ms.streak
        elif isinstance(ms, DuelState):
            view.duel = DuelView(
                turn=ms.turn,
                current_round=ms.current_round,
                player1_score=ms.player1_score,
                player2_score=ms.player2_score,
                player1_wins=ms.player1_wins,
                player2_wins=ms.player2_wins,
                tie_break=ms.tie_break,
                round_winners=dict(ms.round_winners),
                round_winner=ms.round_winner,
                match_winner=ms.match_winner,
            )

        if self.recall is not None:
            view.recall = RecallView(
                choices=list(self.recall.choices),
                found=list(self.recall.found),
                lives=self.recall.lives,
                time_left=self.recall.time_left,
                bonus=self.recall.bonus,
            )
        return view
