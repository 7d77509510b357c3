from __future__ import annotations

import threading
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from config import Configuration
from models import FailureKind, GeoPoint, Place, SelectionResult, WeightedCandidate
from services.catalog import InMemoryPlaceCatalog, load_catalog
from services.randomizer import RandomizerService, UnknownPlaceError
from services.user_state import UserState, state_store


app = FastAPI(title="Place Randomizer")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


_service: Optional[RandomizerService] = None
_service_lock = threading.Lock()


def _build_service() -> RandomizerService:
    cfg = Configuration.from_env()
    logger.info("cfg: {}", cfg.log_summary())
    try:
        cfg.require_catalog()
    except ValueError as exc:
        logger.warning("{}, serving an empty catalog", exc)
        return RandomizerService(cfg, InMemoryPlaceCatalog(), state_store)
    try:
        catalog = load_catalog(cfg.catalog_path)
    except (OSError, ValueError) as exc:
        logger.exception("catalog load failed: {}", exc)
        raise HTTPException(status_code=500, detail=f"catalog unavailable: {exc}")
    return RandomizerService(cfg, catalog, state_store)


def get_service() -> RandomizerService:
    """Build the service on first use from the environment configuration."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = _build_service()
    return _service


class RandomizeRequest(BaseModel):
    user_id: Optional[str] = Field(None, description="User whose history and no-go list apply")
    lat: float = Field(..., description="Current latitude")
    lon: float = Field(..., description="Current longitude")
    radius_m: Optional[float] = Field(None, description="Search radius in meters")
    min_rating: Optional[float] = Field(None, description="Inclusive minimum rating")
    exclude_closed: Optional[bool] = Field(None, description="Drop places known to be closed")
    recent_categories: Optional[List[str]] = Field(
        None, description="Override the stored recent categories, most recent last"
    )


class PlaceRef(BaseModel):
    place_id: str = Field(..., min_length=1)


class PlacePayload(BaseModel):
    id: str
    name: Optional[str] = None
    address: Optional[str] = None
    lat: float
    lon: float
    categories: List[str] = []
    rating: Optional[float] = None
    is_open_now: Optional[bool] = None


class RandomizeResponse(BaseModel):
    status: str
    place: Optional[PlacePayload] = None
    weight: Optional[float] = None
    distance_m: Optional[float] = None
    eligible: int = 0
    dropped: Dict[str, int] = {}
    message: str = ""


class CandidatePayload(BaseModel):
    place: PlacePayload
    weight: float
    probability: float
    distance_m: float


class PreviewResponse(BaseModel):
    candidates: List[CandidatePayload]


class UserStatePayload(BaseModel):
    user_id: str
    visited_ids: List[str]
    no_go_ids: List[str]
    recent_categories: List[str]


def _place_payload(place: Place) -> PlacePayload:
    return PlacePayload(
        id=place.id,
        name=place.name,
        address=place.address,
        lat=place.location.lat,
        lon=place.location.lon,
        categories=list(place.categories),
        rating=place.rating,
        is_open_now=place.is_open_now,
    )


def _state_payload(user_id: str, state: UserState) -> UserStatePayload:
    return UserStatePayload(
        user_id=user_id,
        visited_ids=sorted(state.visited_ids),
        no_go_ids=sorted(state.no_go_ids),
        recent_categories=list(state.recent_categories),
    )


def _options(svc: RandomizerService, req: RandomizeRequest) -> dict:
    if req.radius_m is not None and req.radius_m > svc.cfg.max_radius_m:
        raise HTTPException(
            status_code=400,
            detail=f"radius_m must not exceed {svc.cfg.max_radius_m}",
        )
    return {
        "radius_meters": req.radius_m,
        "min_rating": req.min_rating,
        "exclude_closed": req.exclude_closed,
        "recent_categories": req.recent_categories,
    }


def _result_response(result: SelectionResult) -> RandomizeResponse:
    if result.failure is FailureKind.INVALID_REQUEST:
        raise HTTPException(status_code=400, detail=result.message)
    if not result.ok:
        return RandomizeResponse(
            status=result.failure.value,
            dropped=result.dropped,
            message=result.message,
        )
    return RandomizeResponse(
        status="ok",
        place=_place_payload(result.place),
        weight=round(result.weight, 6),
        distance_m=round(result.distance_m, 1),
        eligible=result.eligible,
        dropped=result.dropped,
    )


@app.get("/healthz")
def healthz(svc: RandomizerService = Depends(get_service)) -> dict:
    places = len(svc.catalog) if hasattr(svc.catalog, "__len__") else None
    return {"status": "ok", "places": places}


@app.post("/randomize", response_model=RandomizeResponse)
def randomize(req: RandomizeRequest, svc: RandomizerService = Depends(get_service)) -> RandomizeResponse:
    options = _options(svc, req)
    result = svc.randomize(req.user_id, GeoPoint(lat=req.lat, lon=req.lon), **options)
    return _result_response(result)


@app.post("/preview", response_model=PreviewResponse)
def preview(req: RandomizeRequest, svc: RandomizerService = Depends(get_service)) -> PreviewResponse:
    options = _options(svc, req)
    ranked: List[WeightedCandidate] = svc.preview(req.user_id, GeoPoint(lat=req.lat, lon=req.lon), **options)
    total = sum(c.weight for c in ranked)
    return PreviewResponse(
        candidates=[
            CandidatePayload(
                place=_place_payload(c.place),
                weight=round(c.weight, 6),
                probability=round(c.weight / total, 6) if total else 0.0,
                distance_m=round(c.distance_m, 1),
            )
            for c in ranked
        ]
    )


@app.post("/users/{user_id}/accept", response_model=UserStatePayload)
def accept(user_id: str, ref: PlaceRef, svc: RandomizerService = Depends(get_service)) -> UserStatePayload:
    try:
        state = svc.accept(user_id, ref.place_id)
    except UnknownPlaceError:
        raise HTTPException(status_code=404, detail=f"unknown place {ref.place_id}")
    return _state_payload(user_id, state)


@app.post("/users/{user_id}/no-go", response_model=UserStatePayload)
def add_no_go(user_id: str, ref: PlaceRef, svc: RandomizerService = Depends(get_service)) -> UserStatePayload:
    try:
        state = svc.add_no_go(user_id, ref.place_id)
    except UnknownPlaceError:
        raise HTTPException(status_code=404, detail=f"unknown place {ref.place_id}")
    return _state_payload(user_id, state)


@app.delete("/users/{user_id}/no-go/{place_id}", response_model=UserStatePayload)
def remove_no_go(user_id: str, place_id: str, svc: RandomizerService = Depends(get_service)) -> UserStatePayload:
    return _state_payload(user_id, svc.remove_no_go(user_id, place_id))


@app.delete("/users/{user_id}/history", response_model=UserStatePayload)
def clear_history(user_id: str, svc: RandomizerService = Depends(get_service)) -> UserStatePayload:
    return _state_payload(user_id, svc.clear_history(user_id))


@app.get("/users/{user_id}/state", response_model=UserStatePayload)
def user_state(user_id: str, svc: RandomizerService = Depends(get_service)) -> UserStatePayload:
    return _state_payload(user_id, svc.store.snapshot(user_id))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8010, reload=True)
