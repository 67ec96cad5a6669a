from __future__ import annotations

import random
from dataclasses import dataclass, replace

from lumina.api.models import GameMode, RecallWord
from lumina.config import GameSettings
from lumina.engines.base import merge_choices


@dataclass(frozen=True, slots=True)
class RecallRound:
    """The gate between blocks of challenges: find every word answered since the last gate.

    Progressive runs earn each found word's own points and double the total when every
    word is found. Endless runs earn 1 per found word, lose 1 per miss, and a perfect
    round is worth `word_count * 2` instead.
    """

    mode: GameMode
    targets: tuple[RecallWord, ...]
    choices: tuple[str, ...]
    lives: int
    time_left: int
    word_count: int = 0
    found: tuple[str, ...] = ()
    misses: tuple[str, ...] = ()
    bonus: int = 0

    @property
    def target_words(self) -> frozenset[str]:
        return frozenset(t.word for t in self.targets)

    @property
    def won(self) -> bool:
        return self.target_words <= set(self.found)

    @property
    def lost(self) -> bool:
        return not self.won and (self.lives <= 0 or self.time_left <= 0)

    @property
    def finished(self) -> bool:
        return self.won or self.lost


def start_recall(
    *,
    mode: GameMode,
    words: tuple[RecallWord, ...],
    choices: tuple[str, ...],
    settings: GameSettings,
    word_count: int = 0,
    rng: random.Random | None = None,
) -> RecallRound:
    if mode not in (GameMode.progressive, GameMode.endless):
        raise ValueError(f"No recall round in {mode} mode")

    pool = list(merge_choices(tuple(w.word for w in words), choices))
    (rng or random.Random()).shuffle(pool)
    return RecallRound(
        mode=mode,
        targets=words,
        choices=tuple(pool),
        lives=settings.recall_lives,
        time_left=settings.recall_duration,
        word_count=word_count,
    )


def _score_of(rnd: RecallRound, word: str) -> int:
    if rnd.mode == GameMode.endless:
        return 1
    return next((t.score for t in rnd.targets if t.word == word), 0)


def _perfect_bonus(rnd: RecallRound) -> int:
    if rnd.mode == GameMode.endless:
        return rnd.word_count * 2
    return rnd.bonus * 2


def pick(rnd: RecallRound, word: str) -> RecallRound:
    """Apply one pick; finished rounds and repeated picks are left unchanged."""

    word = word.strip().upper()
    if rnd.finished or word in rnd.found or word in rnd.misses or word not in rnd.choices:
        return rnd

    if word not in rnd.target_words:
        penalty = 1 if rnd.mode == GameMode.endless else 0
        return replace(rnd, lives=rnd.lives - 1, misses=(*rnd.misses, word), bonus=rnd.bonus - penalty)

    found = replace(rnd, found=(*rnd.found, word), bonus=rnd.bonus + _score_of(rnd, word))
    if found.won:
        return replace(found, bonus=_perfect_bonus(found))
    return found


def tick(rnd: RecallRound) -> RecallRound:
    if rnd.finished:
        return rnd
    return replace(rnd, time_left=max(0, rnd.time_left - 1))
