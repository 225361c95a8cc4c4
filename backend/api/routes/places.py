"""
Places API routes.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from domain.errors import CatalogStoreError, InvalidPlaceInput, PlaceConflictError, PlaceCreationError
from domain.models import Coordinate, Place, PlaceInput
from services import places_engine

router = APIRouter()
logger = logging.getLogger(__name__)


class PlaceCreate(BaseModel):
    name: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    display_address: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    mapbox_place_id: Optional[str] = None
    geocoded_at: Optional[datetime] = None
    created_by: Optional[str] = None
    suppress_external_id_check: bool = False


class PlaceResponse(BaseModel):
    id: str
    name: str
    latitude: float
    longitude: float
    display_address: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    mapbox_place_id: Optional[str] = None
    created_at: Optional[str] = None
    verified: bool = False


class CreateOrGetResponse(BaseModel):
    place: PlaceResponse
    method: str


def place_to_response(place: Place) -> PlaceResponse:
    """Convert domain Place to API response."""
    return PlaceResponse(
        id=place.id,
        name=place.name,
        latitude=place.latitude,
        longitude=place.longitude,
        display_address=place.display_address,
        address_line1=place.address_line1,
        city=place.city,
        region=place.region,
        postal_code=place.postal_code,
        country=place.country,
        mapbox_place_id=place.mapbox_place_id,
        created_at=place.created_at.isoformat() if place.created_at else None,
        verified=place.verified,
    )


@router.get("/reverse-geocode")
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
):
    """Resolve an address for a pin; `result` is null when none is available."""
    result = await places_engine.resolve_address(Coordinate(lat, lng))
    return {"result": result.to_dict() if result else None}


@router.post("", response_model=CreateOrGetResponse)
async def create_or_get_place(payload: PlaceCreate):
    data = PlaceInput(**payload.model_dump())
    registrar = places_engine.get_default_registrar()
    try:
        place, method = await registrar.create_or_get_with_method(data)
    except InvalidPlaceInput as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except PlaceConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except (PlaceCreationError, CatalogStoreError) as exc:
        logger.error("Place create-or-get failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return CreateOrGetResponse(place=place_to_response(place), method=method)


@router.delete("/geocode-cache", status_code=204)
async def clear_geocode_cache():
    """Logout hook: forget every cached address."""
    places_engine.clear_geocode_cache()
