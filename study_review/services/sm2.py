"""
SM-2 algorithm for the adaptive scheduling path.

Calculates a single next review interval from a three-level rating.
"""

import enum
import math
from dataclasses import dataclass
from typing import Iterable

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
HARD_EASE_PENALTY = 0.54


class SM2Rating(str, enum.Enum):
    PERFECT = "perfect"  # recalled immediately
    GOOD = "good"  # recalled with effort, or a lucky guess
    HARD = "hard"  # not recalled, or answered incorrectly


QUALITY = {
    SM2Rating.PERFECT: 5,
    SM2Rating.GOOD: 3,
    SM2Rating.HARD: 1,
}

# Harshest first
_SEVERITY = [SM2Rating.HARD, SM2Rating.GOOD, SM2Rating.PERFECT]


@dataclass(frozen=True)
class SM2State:
    interval_days: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    repetitions: int = 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_sm2(rating: SM2Rating, state: SM2State) -> SM2State:
    """
    Calculate the next state using SM-2.

    Args:
        rating: perfect (5), good (3) or hard (1)
        state: Current interval, ease factor (min 1.3) and repetitions

    Returns:
        New state; its ``interval_days`` is the offset of the next review.
    """
    quality = QUALITY[SM2Rating(rating)]

    # Hard: reset to the beginning and make the card harder
    if quality < 3:
        return SM2State(
            interval_days=1,
            ease_factor=max(MIN_EASE_FACTOR, state.ease_factor - HARD_EASE_PENALTY),
            repetitions=0,
        )

    if state.repetitions == 0:
        interval = 1
    elif state.repetitions == 1:
        interval = 6
    else:
        interval = _round_half_up(state.interval_days * state.ease_factor)

    # EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02))
    miss = 5 - quality
    ease_adjustment = 0.1 - miss * (0.08 + miss * 0.02)

    return SM2State(
        interval_days=interval,
        ease_factor=max(MIN_EASE_FACTOR, state.ease_factor + ease_adjustment),
        repetitions=state.repetitions + 1,
    )


def worst_rating(ratings: Iterable[SM2Rating]) -> SM2Rating:
    """Return the harshest rating (hard > good > perfect); perfect if none given."""
    seen = {SM2Rating(r) for r in ratings}
    for rating in _SEVERITY:
        if rating in seen:
            return rating
    return SM2Rating.PERFECT
