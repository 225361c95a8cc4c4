"""
Find an existing catalog place for a (name, coordinate, external id) triple.

Tiers are tried in order and the first hit wins:
1. external id (only pass ids the geocoder marked safe)
2. exact normalized name + coordinates rounded to 5 decimals
3. fuzzy: nearby (<= 50 m) places with name similarity >= 0.8, best combined score

Store errors propagate; treating "store unreachable" as "no match" would
create duplicates.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from domain.models import Coordinate, MatchMethod, MatchResult, Place
from repositories.places import CatalogStore
from services.geo_math import distance_meters, name_similarity

logger = logging.getLogger(__name__)

# ~50 m of latitude at the equator
FUZZY_BOX_DEGREES = 0.00045
FUZZY_MAX_DISTANCE_M = 50.0
FUZZY_MIN_SIMILARITY = 0.8
SIMILARITY_WEIGHT = 0.7
DISTANCE_WEIGHT = 0.3


def fuzzy_score(similarity: float, distance_m: float) -> float:
    distance_score = 1 - (distance_m / FUZZY_MAX_DISTANCE_M)
    return SIMILARITY_WEIGHT * similarity + DISTANCE_WEIGHT * distance_score


def pick_fuzzy_match(
    name: str, coordinate: Coordinate, candidates: Sequence[Place]
) -> Optional[Tuple[Place, float]]:
    """Return the best-scoring candidate and its score.

    Equal scores go to the smaller store id so the result does not depend on
    the store's enumeration order.
    """
    best: Optional[Tuple[Place, float]] = None
    for place in candidates:
        distance = distance_meters(coordinate, place.coordinate)
        if distance > FUZZY_MAX_DISTANCE_M:
            continue
        similarity = name_similarity(name, place.name)
        if similarity < FUZZY_MIN_SIMILARITY:
            continue
        score = fuzzy_score(similarity, distance)
        if best is None or score > best[1] or (score == best[1] and place.id < best[0].id):
            best = (place, score)
    return best


class PlaceResolver:
    def __init__(self, store: CatalogStore):
        self.store = store

    async def _by_external_id(self, external_id: str) -> Optional[Place]:
        return await self.store.find_by_external_id(external_id)

    async def _by_exact_key(self, name: str, coordinate: Coordinate) -> Optional[Place]:
        return await self.store.find_by_exact_key(name, coordinate.lat, coordinate.lng)

    async def _by_fuzzy_match(self, name: str, coordinate: Coordinate) -> Optional[Place]:
        candidates: List[Place] = await self.store.find_in_bounding_box(
            coordinate.lat - FUZZY_BOX_DEGREES,
            coordinate.lat + FUZZY_BOX_DEGREES,
            coordinate.lng - FUZZY_BOX_DEGREES,
            coordinate.lng + FUZZY_BOX_DEGREES,
        )
        best = pick_fuzzy_match(name, coordinate, candidates)
        if best is None:
            return None
        logger.debug(
            "Fuzzy match for %r: %s (%r) score=%.3f of %d candidates",
            name,
            best[0].id,
            best[0].name,
            best[1],
            len(candidates),
        )
        return best[0]

    async def find_existing(
        self,
        name: str,
        coordinate: Coordinate,
        external_id: Optional[str] = None,
    ) -> MatchResult:
        if external_id:
            place = await self._by_external_id(external_id)
            if place:
                return MatchResult(place=place, method=MatchMethod.EXTERNAL_ID)

        place = await self._by_exact_key(name, coordinate)
        if place:
            return MatchResult(place=place, method=MatchMethod.EXACT)

        place = await self._by_fuzzy_match(name, coordinate)
        if place:
            return MatchResult(place=place, method=MatchMethod.FUZZY)

        return MatchResult()
