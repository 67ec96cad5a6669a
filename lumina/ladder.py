from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DifficultyTier:
    id: str
    word_length: int
    time_budget_seconds: int
    base_points: int
    index: int


def _tier(index: int, id: str, word_length: int, time_budget_seconds: int) -> DifficultyTier:
    # Base points grow by one per tier.
    return DifficultyTier(
        id=id,
        word_length=word_length,
        time_budget_seconds=time_budget_seconds,
        base_points=index + 1,
        index=index,
    )


LADDER: tuple[DifficultyTier, ...] = (
    _tier(0, "Novice", 5, 22),
    _tier(1, "Apprentice", 5, 20),
    _tier(2, "Adept", 6, 18),
    _tier(3, "Skilled", 6, 16),
    _tier(4, "Seasoned", 7, 14),
    _tier(5, "Veteran", 7, 12),
    _tier(6, "Master", 8, 12),
    _tier(7, "Grandmaster", 8, 10),
    _tier(8, "Legend", 8, 9),
    _tier(9, "Mythic", 8, 8),
)

_BY_ID: dict[str, DifficultyTier] = {t.id.casefold(): t for t in LADDER}

LAST_TIER_INDEX = len(LADDER) - 1


def tier_at(index: int) -> DifficultyTier:
    """Return the tier at `index`, clamped to the ladder bounds."""

    return LADDER[max(0, min(index, LAST_TIER_INDEX))]


def tier_by_id(id: str) -> DifficultyTier:
    tier = _BY_ID.get(id.strip().casefold())
    if tier is None:
        raise ValueError(f"Unknown difficulty tier: {id}")
    return tier


def next_cyclic(index: int) -> int:
    return (index + 1) % len(LADDER)


def supported_word_lengths() -> tuple[int, ...]:
    return tuple(sorted({t.word_length for t in LADDER}))
