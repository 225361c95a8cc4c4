"""Reverse geocoding against the Mapbox Geocoding API.

Geocoding is an enrichment: any provider failure resolves to ``None`` and is
cached like a successful lookup, so each rounded coordinate is fetched at most
once per cache lifetime.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

import httpx

from domain.models import Coordinate, GeocodeResult
from services.geo_math import distance_meters
from services.places_types import GeocodeFeature, parse_features
from settings import settings

logger = logging.getLogger(__name__)

FEATURE_TYPES = "address,poi"
_logged_missing_token = False

_MISSING = object()


def _redact_token(text: str) -> str:
    return re.sub(r"access_token=[^&\s]+", "access_token=<redacted>", text)


class GeocodeCache:
    """In-memory reverse-geocode cache keyed by rounded coordinate.

    Holds failed lookups as ``None``. No eviction; call ``clear()`` on logout so
    one session's addresses never show up in another.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Optional[GeocodeResult]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, default=None):
        return self._entries.get(key, default)

    def set(self, key: str, value: Optional[GeocodeResult]) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()


def select_feature(
    features: List[GeocodeFeature], query: Coordinate
) -> Optional[GeocodeFeature]:
    """Pick the closest address feature, else the closest other feature.

    Features without a resolvable center are never ranked; when none has one
    the first feature is returned as-is.
    """
    if not features:
        return None
    with_center = [f for f in features if f.center is not None]
    if not with_center:
        return features[0]
    addresses = [f for f in with_center if f.is_address]
    pool = addresses or with_center
    return min(pool, key=lambda f: distance_meters(query, f.center))


def build_result(
    feature: GeocodeFeature,
    query: Coordinate,
    safe_id_max_distance_m: float,
) -> GeocodeResult:
    distance = distance_meters(query, feature.center) if feature.center else None
    safe = feature.is_address or (distance is not None and distance <= safe_id_max_distance_m)
    return GeocodeResult(
        display_address=feature.place_name,
        address_line1=feature.address_line1,
        city=feature.context_value("place"),
        region=feature.context_value("region", prefer_short_code=True),
        postal_code=feature.context_value("postcode"),
        country=feature.context_value("country"),
        mapbox_place_id=feature.id if safe else None,
        feature_id=feature.id,
        feature_center=feature.center,
        distance_m=distance,
        place_type=feature.primary_type,
        kind=feature.kind,
    )


class ReverseGeocoder:
    def __init__(
        self,
        cache: Optional[GeocodeCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        limit: Optional[int] = None,
        safe_id_max_distance_m: Optional[float] = None,
    ):
        self.cache = cache if cache is not None else GeocodeCache()
        self.token = token if token is not None else settings.MAPBOX_TOKEN
        self.base_url = (base_url or settings.MAPBOX_GEOCODING_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.GEOCODE_TIMEOUT_SECONDS
        self.limit = limit if limit is not None else settings.GEOCODE_CANDIDATE_LIMIT
        self.safe_id_max_distance_m = (
            safe_id_max_distance_m
            if safe_id_max_distance_m is not None
            else settings.GEOCODE_SAFE_ID_MAX_DISTANCE_M
        )
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _fetch_features(self, coordinate: Coordinate) -> Optional[List[GeocodeFeature]]:
        url = f"{self.base_url}/{coordinate.lng},{coordinate.lat}.json"
        params = {
            "access_token": self.token,
            "types": FEATURE_TYPES,
            "limit": str(self.limit),
            # Results are stored on places; required by the provider's terms.
            "permanent": "true",
        }
        try:
            resp = await self._get_client().get(url, params=params, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.warning(
                "Reverse geocode request failed for %s: %s",
                coordinate.cache_key,
                _redact_token(str(exc)),
            )
            return None

        if not resp.is_success:
            logger.warning(
                "Reverse geocode HTTP %s for %s", resp.status_code, coordinate.cache_key
            )
            return None

        try:
            payload = resp.json()
        except ValueError as exc:
            logger.warning("Reverse geocode JSON error for %s: %s", coordinate.cache_key, exc)
            return None
        return parse_features(payload)

    async def resolve(self, coordinate: Coordinate) -> Optional[GeocodeResult]:
        """Reverse geocode a coordinate into a GeocodeResult, or None."""
        global _logged_missing_token
        if not self.token:
            if not _logged_missing_token:
                logger.warning("MAPBOX_TOKEN is not set. Reverse geocoding will be disabled.")
                _logged_missing_token = True
            return None

        key = coordinate.cache_key
        cached = self.cache.get(key, _MISSING)
        if cached is not _MISSING:
            logger.debug("Geocode cache hit %s", key)
            return cached
        logger.debug("Geocode cache miss %s", key)

        features = await self._fetch_features(coordinate)
        if not features:
            self.cache.set(key, None)
            return None

        feature = select_feature(features, coordinate)
        result = build_result(feature, coordinate, self.safe_id_max_distance_m)
        if result.mapbox_place_id is None:
            logger.debug(
                "Dropping external id %s for %s: %s feature at %s m",
                feature.id,
                key,
                feature.kind.value,
                None if result.distance_m is None else round(result.distance_m, 1),
            )
        self.cache.set(key, result)
        return result
