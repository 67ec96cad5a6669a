from __future__ import annotations

import logging
import random
from collections.abc import Set

from lumina.api.models import WordChallenge
from lumina.corpus.registry import WordCorpus, fallback_challenge

logger = logging.getLogger(__name__)

# One correct answer plus three distractors.
CHALLENGE_SIZE = 4


def _unused_groups(groups: tuple[tuple[str, ...], ...], used: Set[str]) -> list[tuple[str, ...]]:
    return [g for g in groups if not any(w in used for w in g)]


def challenge_from_group(group: tuple[str, ...], *, rng: random.Random) -> WordChallenge:
    shuffled = list(group)
    rng.shuffle(shuffled)
    return WordChallenge(correct_answer=shuffled[0], distractors=tuple(shuffled[1:CHALLENGE_SIZE]))


def draw_from_corpus(
    *,
    corpus: WordCorpus,
    word_length: int,
    language: str,
    used: set[str],
    rng: random.Random,
) -> WordChallenge | None:
    """Synchronously derive a challenge from the local corpus.

    Prefers groups with no word already in `used`. When every group of this length has
    been touched, the used answers of that length are forgotten and the whole list is
    eligible again. `used` is updated in place in that case.

    Returns None only when neither the corpus nor the built-in fallbacks know the
    requested (length, language).
    """

    groups = corpus.by_length(word_length, language)
    if not groups:
        return fallback_challenge(word_length, language)

    available = _unused_groups(groups, used)
    if not available:
        logger.warning(
            "All %s words of length %d used this session; re-using words", language, word_length
        )
        used.difference_update([w for w in used if len(w) == word_length])
        available = list(groups)

    group = rng.choice(available)
    if len(group) < CHALLENGE_SIZE:
        return fallback_challenge(word_length, language)

    return challenge_from_group(group, rng=rng)


def pick_from_corpus(
    *,
    corpus: WordCorpus,
    word_length: int,
    language: str,
    excluded: Set[str],
    rng: random.Random,
) -> WordChallenge | None:
    """Like `draw_from_corpus`, but never forgets exclusions; returns None when exhausted."""

    available = [g for g in _unused_groups(corpus.by_length(word_length, language), excluded) if len(g) >= CHALLENGE_SIZE]
    if not available:
        return None
    return challenge_from_group(rng.choice(available), rng=rng)
