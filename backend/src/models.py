"""Data models for the place randomizer."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float

    def is_valid(self) -> bool:
        try:
            lat = float(self.lat)
            lon = float(self.lon)
        except (TypeError, ValueError):
            return False
        if not (math.isfinite(lat) and math.isfinite(lon)):
            return False
        return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


@dataclass(frozen=True)
class Place:
    id: str
    location: GeoPoint
    categories: Tuple[str, ...] = ()
    rating: Optional[float] = None
    is_open_now: Optional[bool] = None  # None = unknown, treated as open
    name: Optional[str] = None
    address: Optional[str] = None

    @property
    def primary_category(self) -> Optional[str]:
        return self.categories[0] if self.categories else None


@dataclass(frozen=True)
class SelectionRequest:
    origin: GeoPoint
    radius_meters: float
    min_rating: float = 3.0
    exclude_closed: bool = True
    visited_ids: FrozenSet[str] = frozenset()
    no_go_ids: FrozenSet[str] = frozenset()
    recent_categories: Tuple[str, ...] = ()  # most recent last


@dataclass(frozen=True)
class WeightedCandidate:
    place: Place
    weight: float
    distance_m: float


class FailureKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    NO_ELIGIBLE_PLACES = "no_eligible_places"


@dataclass
class SelectionResult:
    place: Optional[Place] = None
    weight: float = 0.0
    distance_m: float = 0.0
    failure: Optional[FailureKind] = None
    message: str = ""
    eligible: int = 0
    dropped: Dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.failure is None and self.place is not None

    @classmethod
    def success(cls, winner: WeightedCandidate, *, eligible: int, dropped: Dict[str, int]) -> "SelectionResult":
        return cls(
            place=winner.place,
            weight=winner.weight,
            distance_m=winner.distance_m,
            eligible=eligible,
            dropped=dict(dropped),
        )

    @classmethod
    def fail(cls, kind: FailureKind, message: str, *, dropped: Optional[Dict[str, int]] = None) -> "SelectionResult":
        return cls(failure=kind, message=message, dropped=dict(dropped or {}))


def _opt_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _opt_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "open"}:
        return True
    if text in {"0", "false", "no", "closed"}:
        return False
    return None


def place_from_dict(raw: Dict[str, Any]) -> Place:
    """Build a Place from a catalog record.

    Accepts either ``lat``/``lon`` at the top level or a ``location`` object.
    Missing rating or categories are kept as-is; the selector rejects such
    places later. Raises ValueError when the id or coordinates are absent
    or the categories field is neither a string nor a list.
    """
    place_id = raw.get("id")
    if place_id is None or str(place_id).strip() == "":
        raise ValueError("place record has no id")

    loc = raw.get("location")
    if not isinstance(loc, dict):
        loc = {}
    lat = _opt_float(loc.get("lat", raw.get("lat")))
    lon = _opt_float(loc.get("lon", loc.get("lng", raw.get("lon", raw.get("lng")))))
    if lat is None or lon is None:
        raise ValueError(f"place {place_id} has no coordinates")

    cats = raw.get("categories", raw.get("category"))
    if isinstance(cats, str):
        cats = [cats]
    elif cats is None:
        cats = []
    elif not isinstance(cats, (list, tuple)):
        raise ValueError(f"place {place_id} has unreadable categories: {cats!r}")
    categories = tuple(dict.fromkeys(str(c).strip() for c in cats if c and str(c).strip()))

    return Place(
        id=str(place_id),
        location=GeoPoint(lat=lat, lon=lon),
        categories=categories,
        rating=_opt_float(raw.get("rating")),
        is_open_now=_opt_bool(raw.get("is_open_now", raw.get("isOpenNow"))),
        name=raw.get("name"),
        address=raw.get("address"),
    )
