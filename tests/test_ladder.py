from __future__ import annotations

import pytest

from lumina.ladder import LADDER, LAST_TIER_INDEX, next_cyclic, supported_word_lengths, tier_at, tier_by_id


def test_ladder_is_ordered_and_points_grow_by_one() -> None:
    assert [t.index for t in LADDER] == list(range(len(LADDER)))
    assert [t.base_points for t in LADDER] == list(range(1, len(LADDER) + 1))
    assert LADDER[0].id == "Novice"
    assert (LADDER[0].word_length, LADDER[0].time_budget_seconds) == (5, 22)
    assert (LADDER[-1].word_length, LADDER[-1].time_budget_seconds) == (8, 8)


def test_tier_lookup_clamps_and_cycles() -> None:
    assert tier_at(-3) is LADDER[0]
    assert tier_at(99) is LADDER[LAST_TIER_INDEX]
    assert next_cyclic(LAST_TIER_INDEX) == 0
    assert next_cyclic(0) == 1


def test_tier_by_id_is_case_insensitive() -> None:
    assert tier_by_id(" grandmaster ").index == 7
    with pytest.raises(ValueError):
        tier_by_id("Overlord")


def test_supported_word_lengths() -> None:
    assert supported_word_lengths() == (5, 6, 7, 8)
