from __future__ import annotations

from typing import Iterable, Sequence

from models import Place
from utils import meters_to_miles


# (upper bound in miles, exclusive) -> multiplier
DISTANCE_TIERS = (
    (0.5, 1.5),
    (1.0, 1.0),
    (2.0, 0.75),
)
FAR_TIER = 0.5

DIVERSITY_PENALTY = 0.5
MAX_RATING = 5.0


def _norm(category: str) -> str:
    return category.strip().lower()


def distance_tier(miles: float) -> float:
    for upper, multiplier in DISTANCE_TIERS:
        if miles < upper:
            return multiplier
    return FAR_TIER


def diversity_factor(categories: Iterable[str], recent: Sequence[str]) -> float:
    """Halve the weight when the last two picks share a category this place has."""
    if len(recent) < 2:
        return 1.0
    last, before = _norm(recent[-1]), _norm(recent[-2])
    if last != before:
        return 1.0
    if any(_norm(c) == last for c in categories):
        return DIVERSITY_PENALTY
    return 1.0


def rating_boost(rating: float) -> float:
    return rating / MAX_RATING


def compute_weight(place: Place, distance_m: float, recent: Sequence[str]) -> float:
    """distance tier * diversity factor * rating boost.

    Callers must have dropped places without a rating already.
    """
    assert place.rating is not None
    return (
        distance_tier(meters_to_miles(distance_m))
        * diversity_factor(place.categories, recent)
        * rating_boost(place.rating)
    )
