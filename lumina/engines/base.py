from __future__ import annotations

import math
from dataclasses import dataclass, field

from lumina.api.models import RecallWord, WordChallenge
from lumina.core.state import SessionState


@dataclass(frozen=True, slots=True)
class AnswerOutcome:
    correct: bool
    time_remaining: int
    answer: str = ""
    # The challenge's answer and every choice shown, for the recall round.
    correct_answer: str = ""
    choices: tuple[str, ...] = ()

    @staticmethod
    def judge(challenge: WordChallenge, *, answer: str, time_remaining: int, choices: tuple[str, ...] = ()) -> "AnswerOutcome":
        return AnswerOutcome(
            correct=answer.strip().upper() == challenge.correct_answer,
            time_remaining=max(0, time_remaining),
            answer=answer,
            correct_answer=challenge.correct_answer,
            choices=choices or challenge.all_answers(),
        )


@dataclass(frozen=True, slots=True)
class Rewards:
    points: int = 0
    currency: int = 0
    life_bonus: bool = False
    life_lost: bool = False


@dataclass(frozen=True, slots=True)
class EngineResult:
    state: SessionState
    rewards: Rewards = field(default_factory=Rewards)


def round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def merge_choices(seen: tuple[str, ...], new: tuple[str, ...]) -> tuple[str, ...]:
    """Append unseen words, keeping first-seen order."""

    out = list(seen)
    known = set(seen)
    for w in new:
        if w not in known:
            known.add(w)
            out.append(w)
    return tuple(out)


def add_recall_word(words: tuple[RecallWord, ...], word: str, score: int) -> tuple[RecallWord, ...]:
    if not word or any(w.word == word for w in words):
        return words
    return (*words, RecallWord(word=word, score=score))
