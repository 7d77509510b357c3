"""Weighted random place selection.

The selector is a pure function of the request, the candidate places and one
random source. Filters run first and only narrow the set; weights are
computed afterwards on the survivors. Failures are returned as values on
``SelectionResult`` rather than raised.
"""

from __future__ import annotations

import bisect
import math
import random
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from loguru import logger

from models import FailureKind, Place, SelectionRequest, SelectionResult, WeightedCandidate
from services.weighting import MAX_RATING, compute_weight
from utils import haversine_m


DROP_STAGES = ("malformed", "radius", "excluded", "closed", "rating", "zero_weight")


class RandomSource(Protocol):
    def random(self) -> float: ...


def validate_request(request: SelectionRequest) -> Optional[str]:
    """Return a message describing the first invalid field, or None."""
    radius = request.radius_meters
    if radius is None or not isinstance(radius, (int, float)) or not math.isfinite(radius) or radius <= 0:
        return f"radius_meters must be a positive number, got {radius!r}"
    rating = request.min_rating
    if rating is None or not isinstance(rating, (int, float)) or not (0.0 <= rating <= MAX_RATING):
        return f"min_rating must be within [0, 5], got {rating!r}"
    if request.origin is None or not request.origin.is_valid():
        return f"origin is not a valid coordinate: {request.origin!r}"
    return None


def _is_well_formed(place: Place) -> bool:
    if not place.id or place.location is None or not place.location.is_valid():
        return False
    if not place.categories:
        return False
    if place.rating is None or not isinstance(place.rating, (int, float)):
        return False
    return math.isfinite(place.rating) and 0.0 <= place.rating <= MAX_RATING


def _filter(request: SelectionRequest, candidates: Iterable[Place]) -> Tuple[List[Tuple[Place, float]], Dict[str, int]]:
    dropped = {stage: 0 for stage in DROP_STAGES}
    blocked = set(request.visited_ids) | set(request.no_go_ids)
    origin = request.origin
    kept: list[Tuple[Place, float]] = []

    for place in candidates:
        if not _is_well_formed(place):
            dropped["malformed"] += 1
            continue
        dist_m = haversine_m(origin.lat, origin.lon, place.location.lat, place.location.lon)
        if dist_m > request.radius_meters:
            dropped["radius"] += 1
            continue
        if place.id in blocked:
            dropped["excluded"] += 1
            continue
        if request.exclude_closed and place.is_open_now is False:
            dropped["closed"] += 1
            continue
        if place.rating < request.min_rating:
            dropped["rating"] += 1
            continue
        kept.append((place, dist_m))

    return kept, dropped


def weigh_candidates(request: SelectionRequest, candidates: Iterable[Place]) -> Tuple[List[WeightedCandidate], Dict[str, int]]:
    """Filter and weight candidates; zero-weight survivors are dropped."""
    kept, dropped = _filter(request, candidates)
    recent = tuple(request.recent_categories or ())

    weighted: list[WeightedCandidate] = []
    for place, dist_m in kept:
        weight = compute_weight(place, dist_m, recent)
        if weight <= 0:
            dropped["zero_weight"] += 1
            continue
        weighted.append(WeightedCandidate(place=place, weight=weight, distance_m=dist_m))
    return weighted, dropped


def draw(weighted: Sequence[WeightedCandidate], rng: RandomSource) -> WeightedCandidate:
    """Pick one candidate with probability weight / total.

    Each candidate owns the half-open interval [low, high) of the cumulative
    weight line.
    """
    if not weighted:
        raise ValueError("cannot draw from an empty candidate list")
    cumulative: list[float] = []
    total = 0.0
    for cand in weighted:
        total += cand.weight
        cumulative.append(total)

    u = rng.random() * total
    idx = bisect.bisect_right(cumulative, u)
    # rng.random() * total can round up to total
    return weighted[min(idx, len(weighted) - 1)]


def select_place(
    request: SelectionRequest,
    candidates: Iterable[Place],
    rng: Optional[RandomSource] = None,
) -> SelectionResult:
    error = validate_request(request)
    if error:
        logger.debug("invalid selection request: {}", error)
        return SelectionResult.fail(FailureKind.INVALID_REQUEST, error)

    weighted, dropped = weigh_candidates(request, candidates)
    if not weighted:
        logger.debug("no eligible places, dropped={}", dropped)
        return SelectionResult.fail(
            FailureKind.NO_ELIGIBLE_PLACES,
            "no place matched the radius, exclusion, open and rating filters",
            dropped=dropped,
        )

    if rng is None:
        rng = random.Random()
    winner = draw(weighted, rng)
    logger.debug(
        "drew {} (weight={:.4f}) from {} candidates, dropped={}",
        winner.place.id,
        winner.weight,
        len(weighted),
        dropped,
    )
    return SelectionResult.success(winner, eligible=len(weighted), dropped=dropped)


def rank_candidates(request: SelectionRequest, candidates: Iterable[Place]) -> List[WeightedCandidate]:
    """Eligible candidates sorted by weight, highest first. Empty on invalid requests."""
    if validate_request(request):
        return []
    weighted, _ = weigh_candidates(request, candidates)
    weighted.sort(key=lambda c: (-c.weight, c.distance_m, c.place.id))
    return weighted
