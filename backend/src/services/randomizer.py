from __future__ import annotations

import random
from typing import Callable, Iterable, List, Optional

from loguru import logger

from config import Configuration
from models import GeoPoint, Place, SelectionRequest, SelectionResult, WeightedCandidate
from services.catalog import PlaceCatalog
from services.selector import RandomSource, rank_candidates, select_place
from services.user_state import UserState, UserStateStore


class UnknownPlaceError(KeyError):
    pass


class RandomizerService:
    """Glue between the catalog, the user state store and the selector.

    Only ``accept`` and the no-go helpers write to the store; ``randomize``
    is read-only.
    """

    def __init__(
        self,
        cfg: Configuration,
        catalog: PlaceCatalog,
        store: UserStateStore,
        rng_factory: Optional[Callable[[], RandomSource]] = None,
    ) -> None:
        self.cfg = cfg
        self.catalog = catalog
        self.store = store
        if rng_factory is None:
            seed = cfg.random_seed
            if seed is None:
                rng_factory = random.Random
            else:
                rng_factory = lambda: random.Random(seed)  # noqa: E731
        self._rng_factory = rng_factory

    def build_request(
        self,
        user_id: Optional[str],
        origin: GeoPoint,
        *,
        radius_meters: Optional[float] = None,
        min_rating: Optional[float] = None,
        exclude_closed: Optional[bool] = None,
        recent_categories: Optional[Iterable[str]] = None,
    ) -> SelectionRequest:
        state = self.store.snapshot(user_id)
        recent = state.recent_categories if recent_categories is None else tuple(recent_categories)
        return SelectionRequest(
            origin=origin,
            radius_meters=self.cfg.default_radius_m if radius_meters is None else radius_meters,
            min_rating=self.cfg.default_min_rating if min_rating is None else min_rating,
            exclude_closed=self.cfg.exclude_closed_default if exclude_closed is None else exclude_closed,
            visited_ids=state.visited_ids,
            no_go_ids=state.no_go_ids,
            recent_categories=recent,
        )

    def _candidates(self, request: SelectionRequest) -> List[Place]:
        if request.radius_meters is None or request.radius_meters <= 0 or not request.origin.is_valid():
            # the selector reports the invalid request; nothing to fetch
            return []
        return self.catalog.places_within(request.origin, request.radius_meters)

    def randomize(self, user_id: Optional[str], origin: GeoPoint, **options) -> SelectionResult:
        request = self.build_request(user_id, origin, **options)
        candidates = self._candidates(request)
        result = select_place(request, candidates, rng=self._rng_factory())
        if result.ok:
            logger.info(
                "user={} picked {} weight={:.4f} distance_m={:.0f} eligible={}",
                user_id,
                result.place.id,
                result.weight,
                result.distance_m,
                result.eligible,
            )
        else:
            logger.info("user={} selection failed: {} ({})", user_id, result.failure.value, result.message)
        return result

    def preview(self, user_id: Optional[str], origin: GeoPoint, **options) -> List[WeightedCandidate]:
        request = self.build_request(user_id, origin, **options)
        return rank_candidates(request, self._candidates(request))

    def accept(self, user_id: str, place_id: str) -> UserState:
        place = self.catalog.get(place_id)
        if place is None:
            raise UnknownPlaceError(place_id)
        self.store.record_visit(user_id, place.id, place.primary_category)
        logger.info("user={} accepted {} ({})", user_id, place.id, place.primary_category)
        return self.store.snapshot(user_id)

    def add_no_go(self, user_id: str, place_id: str) -> UserState:
        if self.catalog.get(place_id) is None:
            raise UnknownPlaceError(place_id)
        self.store.add_no_go(user_id, place_id)
        return self.store.snapshot(user_id)

    def remove_no_go(self, user_id: str, place_id: str) -> UserState:
        self.store.remove_no_go(user_id, place_id)
        return self.store.snapshot(user_id)

    def clear_history(self, user_id: str) -> UserState:
        self.store.clear_history(user_id)
        return self.store.snapshot(user_id)
