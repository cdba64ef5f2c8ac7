# enigma/services/difficulty.py
from enigma.utils.models import DifficultyTier

TIER_TWO_THRESHOLD = 100
TIER_THREE_THRESHOLD = 1000


def tier_for(solved_count: int) -> DifficultyTier:
    """
    Maps the cumulative solved counter to a difficulty tier.

    Pure and monotonic: 1 below 100, 2 in [100, 1000), 3 from 1000 on.
    """
    if solved_count < 0:
        raise ValueError(f"solved_count must be non-negative, got {solved_count}")
    if solved_count >= TIER_THREE_THRESHOLD:
        return DifficultyTier.THREE
    if solved_count >= TIER_TWO_THRESHOLD:
        return DifficultyTier.TWO
    return DifficultyTier.ONE
