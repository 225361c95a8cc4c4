import asyncio
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import pytest_asyncio

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from domain.errors import CatalogUniqueViolation  # noqa: E402
from domain.models import Place  # noqa: E402
from services.geo_math import normalize_name, round_coordinate  # noqa: E402


class FakeCatalogStore:
    """In-memory CatalogStore with the same uniqueness rules as the places table.

    Every query yields to the event loop once so concurrent callers interleave.
    """

    def __init__(self) -> None:
        self.places: List[Place] = []
        self.calls: List[str] = []
        self.insert_payloads: List[Dict[str, Any]] = []
        self.query_error: Optional[Exception] = None
        self.insert_error: Optional[Exception] = None
        self.before_insert: Optional[Callable[[Dict[str, Any]], None]] = None
        self._next_id = 1

    def add(self, name: str, lat: float, lng: float, place_id: Optional[str] = None, **fields) -> Place:
        place = Place(
            id=place_id or f"place-{self._next_id:03d}",
            name=name,
            latitude=lat,
            longitude=lng,
            created_at=datetime(2026, 1, 1, 12, 0, self._next_id % 60),
            **fields,
        )
        self._next_id += 1
        self.places.append(place)
        return place

    async def _query(self, label: str, result: Any) -> Any:
        # Result is a snapshot taken before the round trip, like a real store.
        self.calls.append(label)
        await asyncio.sleep(0)
        if self.query_error is not None:
            raise self.query_error
        return result

    async def find_by_external_id(self, external_id: str) -> Optional[Place]:
        found = next((p for p in self.places if p.mapbox_place_id == external_id), None)
        return await self._query("external_id", found)

    async def find_by_exact_key(self, name: str, latitude: float, longitude: float) -> Optional[Place]:
        key = (normalize_name(name), round_coordinate(latitude), round_coordinate(longitude))
        found = None
        for p in self.places:
            if key == (normalize_name(p.name), round_coordinate(p.latitude), round_coordinate(p.longitude)):
                found = p
                break
        return await self._query("exact", found)

    async def find_in_bounding_box(self, min_lat: float, max_lat: float, min_lng: float, max_lng: float) -> List[Place]:
        found = [
            p
            for p in self.places
            if min_lat <= p.latitude <= max_lat and min_lng <= p.longitude <= max_lng
        ]
        return await self._query("bbox", found)

    async def insert(self, payload: Dict[str, Any]) -> Place:
        self.calls.append("insert")
        self.insert_payloads.append(dict(payload))
        if self.before_insert is not None:
            self.before_insert(payload)
        if self.insert_error is not None:
            raise self.insert_error
        ext_id = payload.get("mapbox_place_id")
        key = (
            normalize_name(payload["name"]),
            round_coordinate(payload["latitude"]),
            round_coordinate(payload["longitude"]),
        )
        for p in self.places:
            if ext_id and p.mapbox_place_id == ext_id:
                raise CatalogUniqueViolation('duplicate key value violates unique constraint "places_mapbox_place_id_key"')
            if key == (normalize_name(p.name), round_coordinate(p.latitude), round_coordinate(p.longitude)):
                raise CatalogUniqueViolation('duplicate key value violates unique constraint "uq_places_name_norm_coord"')
        fields = {k: v for k, v in payload.items() if k not in ("name", "latitude", "longitude")}
        return self.add(payload["name"], payload["latitude"], payload["longitude"], **fields)


@pytest.fixture
def fake_store() -> FakeCatalogStore:
    return FakeCatalogStore()


@pytest_asyncio.fixture
async def sqlite_sessionmaker(tmp_path):
    """Async sessionmaker over a fresh SQLite catalog in tmp_path."""
    from db import Base, build_engine, build_sessionmaker
    from repositories import models  # noqa: F401

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'places.sqlite'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_sessionmaker(engine)
    await engine.dispose()
