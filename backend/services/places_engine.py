"""
Process-wide entry points used by the app layer.

Defaults are built lazily from settings; tests and callers can construct their
own GeocodeCache / ReverseGeocoder / PlaceRegistrar instead.
"""
from __future__ import annotations

from typing import Optional

from domain.models import Coordinate, GeocodeResult, Place, PlaceInput
from repositories.places import PlacesRepository
from services.geocoding import GeocodeCache, ReverseGeocoder
from services.place_registrar import PlaceRegistrar

_default_geocode_cache: Optional[GeocodeCache] = None
_default_geocoder: Optional[ReverseGeocoder] = None
_default_registrar: Optional[PlaceRegistrar] = None


def get_default_geocode_cache() -> GeocodeCache:
    global _default_geocode_cache
    if _default_geocode_cache is None:
        _default_geocode_cache = GeocodeCache()
    return _default_geocode_cache


def get_default_geocoder() -> ReverseGeocoder:
    global _default_geocoder
    if _default_geocoder is None:
        _default_geocoder = ReverseGeocoder(cache=get_default_geocode_cache())
    return _default_geocoder


def get_default_registrar() -> PlaceRegistrar:
    global _default_registrar
    if _default_registrar is None:
        _default_registrar = PlaceRegistrar(PlacesRepository())
    return _default_registrar


async def resolve_address(coordinate: Coordinate) -> Optional[GeocodeResult]:
    return await get_default_geocoder().resolve(coordinate)


async def create_or_get_place(data: PlaceInput) -> Place:
    return await get_default_registrar().create_or_get(data)


def clear_geocode_cache() -> None:
    """Drop all cached addresses; call on logout."""
    get_default_geocode_cache().clear()


async def shutdown() -> None:
    if _default_geocoder is not None:
        await _default_geocoder.aclose()
