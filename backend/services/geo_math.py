"""
Distance and name-similarity helpers used for place matching.
"""
from __future__ import annotations

import math

from domain.models import COORD_DECIMALS, Coordinate

EARTH_RADIUS_M = 6371000.0


def normalize_name(name: str) -> str:
    """Normalize a name the way the catalog does (trimmed, lower-cased)."""
    return (name or "").strip().lower()


def round_coordinate(value: float) -> float:
    return round(value, COORD_DECIMALS)


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle (haversine) distance in meters."""
    dlat = math.radians(b.lat - a.lat)
    dlon = math.radians(b.lng - a.lng)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(a.lat))
        * math.cos(math.radians(b.lat))
        * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance; insert, delete and substitute all cost 1."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def name_similarity(a: str, b: str) -> float:
    """Similarity in [0, 1] between two place names.

    Exact normalized match scores 1.0, containment ("Starbucks" vs
    "Starbucks Coffee") scores 0.9, anything else falls back to
    1 - levenshtein / longest length.
    """
    n1 = normalize_name(a)
    n2 = normalize_name(b)
    if n1 == n2:
        return 1.0
    if n1 in n2 or n2 in n1:
        return 0.9
    max_len = max(len(n1), len(n2))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein_distance(n1, n2) / max_len
