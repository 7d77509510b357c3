from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from loguru import logger

from models import GeoPoint, Place, place_from_dict
from services.bbox_builder import bbox_contains, expand_bbox_from_center
from utils import haversine_m


class PlaceCatalog(Protocol):
    def places_within(self, origin: GeoPoint, radius_meters: float) -> List[Place]: ...

    def get(self, place_id: str) -> Optional[Place]: ...


class InMemoryPlaceCatalog:
    """Place catalog held in a dict keyed by place id."""

    def __init__(self, places: Iterable[Place] = ()) -> None:
        self._places: Dict[str, Place] = {}
        for place in places:
            self.add(place)

    def __len__(self) -> int:
        return len(self._places)

    def add(self, place: Place) -> None:
        if place.id in self._places:
            logger.warning("duplicate place id {}, keeping the later record", place.id)
        self._places[place.id] = place

    def get(self, place_id: str) -> Optional[Place]:
        return self._places.get(place_id)

    def places_within(self, origin: GeoPoint, radius_meters: float) -> List[Place]:
        if radius_meters <= 0 or not origin.is_valid():
            return []
        bbox = expand_bbox_from_center(origin, radius_meters)
        out: list[Place] = []
        for place in self._places.values():
            loc = place.location
            if not loc.is_valid() or not bbox_contains(bbox, loc):
                continue
            if haversine_m(origin.lat, origin.lon, loc.lat, loc.lon) <= radius_meters:
                out.append(place)
        return out


def parse_records(records: Iterable[Dict[str, Any]]) -> List[Place]:
    places: list[Place] = []
    for idx, raw in enumerate(records):
        if not isinstance(raw, dict):
            logger.warning("catalog record {} is not an object, skipped", idx)
            continue
        try:
            places.append(place_from_dict(raw))
        except (TypeError, ValueError) as exc:
            logger.warning("catalog record {} skipped: {}", idx, exc)
    return places


def load_catalog(path: Union[str, Path]) -> InMemoryPlaceCatalog:
    """Load a JSON catalog: either a list of records or {"places": [...]}."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, dict):
        data = data.get("places", [])
    if not isinstance(data, list):
        raise ValueError(f"catalog {path} must hold a list of places")
    catalog = InMemoryPlaceCatalog(parse_records(data))
    logger.info("loaded {} places from {}", len(catalog), path)
    return catalog
