"""
Places catalog repository backed by async SQLAlchemy.
"""
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from domain.errors import CatalogStoreError, CatalogUniqueViolation
from domain.models import COORD_DECIMALS, STORABLE_FIELDS, Place
from repositories.models import PlaceORM

UNIQUE_VIOLATION_CODE = "23505"


class CatalogStore(Protocol):
    """Narrow query/insert interface the resolver and registrar rely on."""

    async def find_by_external_id(self, external_id: str) -> Optional[Place]:
        ...

    async def find_by_exact_key(
        self, name: str, latitude: float, longitude: float
    ) -> Optional[Place]:
        """Match on the normalized name and coordinates rounded to 5 decimals.

        Takes raw values; the store normalizes and rounds them the same way it
        derives its own key columns.
        """
        ...

    async def find_in_bounding_box(
        self, min_lat: float, max_lat: float, min_lng: float, max_lng: float
    ) -> List[Place]:
        ...

    async def insert(self, payload: Dict[str, Any]) -> Place:
        ...


def _place_from_orm(orm: PlaceORM) -> Place:
    return Place(
        id=orm.id,
        name=orm.name,
        latitude=orm.latitude,
        longitude=orm.longitude,
        display_address=orm.display_address,
        address_line1=orm.address_line1,
        city=orm.city,
        region=orm.region,
        postal_code=orm.postal_code,
        country=orm.country,
        mapbox_place_id=orm.mapbox_place_id,
        geocoded_at=orm.geocoded_at,
        created_by=orm.created_by,
        created_at=orm.created_at,
        verified=bool(orm.verified),
    )


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == UNIQUE_VIOLATION_CODE:
        return True
    return "unique" in str(orig or exc).lower()


class PlacesRepository:
    """CatalogStore implementation over an async session factory."""

    def __init__(self, sessionmaker: Optional[async_sessionmaker] = None):
        if sessionmaker is None:
            from db import get_sessionmaker

            sessionmaker = get_sessionmaker()
        self._sessionmaker = sessionmaker

    async def _first(self, stmt) -> Optional[Place]:
        try:
            async with self._sessionmaker() as session:
                orm = (await session.execute(stmt.limit(1))).scalars().first()
                return _place_from_orm(orm) if orm else None
        except SQLAlchemyError as exc:
            raise CatalogStoreError(str(exc)) from exc

    async def find_by_external_id(self, external_id: str) -> Optional[Place]:
        return await self._first(
            select(PlaceORM).where(PlaceORM.mapbox_place_id == external_id)
        )

    async def find_by_exact_key(
        self, name: str, latitude: float, longitude: float
    ) -> Optional[Place]:
        # Same expressions as the generated columns so both sides round alike.
        return await self._first(
            select(PlaceORM).where(
                PlaceORM.name_norm == func.lower(func.trim(name)),
                PlaceORM.lat_round == func.round(latitude, COORD_DECIMALS),
                PlaceORM.lng_round == func.round(longitude, COORD_DECIMALS),
            )
        )

    async def find_in_bounding_box(
        self, min_lat: float, max_lat: float, min_lng: float, max_lng: float
    ) -> List[Place]:
        stmt = (
            select(PlaceORM)
            .where(
                PlaceORM.latitude >= min_lat,
                PlaceORM.latitude <= max_lat,
                PlaceORM.longitude >= min_lng,
                PlaceORM.longitude <= max_lng,
            )
            .order_by(PlaceORM.created_at, PlaceORM.id)
        )
        try:
            async with self._sessionmaker() as session:
                rows = (await session.execute(stmt)).scalars().all()
                return [_place_from_orm(orm) for orm in rows]
        except SQLAlchemyError as exc:
            raise CatalogStoreError(str(exc)) from exc

    async def insert(self, payload: Dict[str, Any]) -> Place:
        """Insert storable fields only; store-generated columns are computed by the DB."""
        unexpected = set(payload) - set(STORABLE_FIELDS)
        if unexpected:
            raise ValueError(f"Non-storable fields in insert payload: {sorted(unexpected)}")
        async with self._sessionmaker() as session:
            orm = PlaceORM(**payload)
            session.add(orm)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if is_unique_violation(exc):
                    raise CatalogUniqueViolation(str(exc.orig or exc)) from exc
                raise CatalogStoreError(str(exc.orig or exc)) from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                raise CatalogStoreError(str(exc)) from exc
            return _place_from_orm(orm)
