"""
Tests for the SQLAlchemy-backed places catalog.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from domain.errors import CatalogUniqueViolation
from domain.models import Coordinate, MatchMethod, PlaceInput
from repositories import models
from repositories.models import PlaceORM
from repositories.places import PlacesRepository
from services.place_registrar import PlaceRegistrar
from services.place_resolver import PlaceResolver


def _payload(**overrides):
    data = PlaceInput(name="Blue Bottle", latitude=37.776321, longitude=-122.423456)
    for key, value in overrides.items():
        setattr(data, key, value)
    return data.to_insert_payload()


@pytest.mark.asyncio()
async def test_insert_computes_generated_columns(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)

    place = await repo.insert(_payload(name="  Blue Bottle "))

    assert place.id
    assert place.created_at is not None
    assert place.verified is False
    async with sqlite_sessionmaker() as session:
        row = (await session.execute(select(PlaceORM).where(PlaceORM.id == place.id))).scalars().one()
        assert row.name_norm == "blue bottle"
        assert row.lat_round == pytest.approx(37.77632)
        assert row.lng_round == pytest.approx(-122.42346)


@pytest.mark.asyncio()
async def test_created_at_defaults_to_current_utc_time(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)
    before = datetime.now(timezone.utc)

    place = await repo.insert(_payload())
    [stored] = await repo.find_in_bounding_box(37.7, 37.8, -122.5, -122.4)

    assert models._utcnow().tzinfo is not None
    for created_at in (place.created_at, stored.created_at):
        # SQLite hands back naive datetimes; they are stored as UTC.
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        assert abs(created_at - before) < timedelta(minutes=1)


@pytest.mark.asyncio()
async def test_insert_rejects_generated_fields(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)
    payload = _payload()
    payload["name_norm"] = "blue bottle"

    with pytest.raises(ValueError):
        await repo.insert(payload)


@pytest.mark.asyncio()
async def test_find_by_external_id_and_exact_key(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)
    created = await repo.insert(_payload(mapbox_place_id="poi.1"))

    by_id = await repo.find_by_external_id("poi.1")
    by_key = await repo.find_by_exact_key(" BLUE bottle ", 37.7763209, -122.4234561)

    assert by_id.id == created.id
    assert by_key.id == created.id
    assert await repo.find_by_external_id("poi.2") is None
    assert await repo.find_by_exact_key("blue bottle", 37.776331, -122.423456) is None


@pytest.mark.asyncio()
async def test_bounding_box_query(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)
    inside = await repo.insert(_payload(name="Inside", latitude=10.0001, longitude=20.0001))
    await repo.insert(_payload(name="Outside", latitude=10.01, longitude=20.0))

    found = await repo.find_in_bounding_box(9.9995, 10.0005, 19.9995, 20.0005)

    assert [p.id for p in found] == [inside.id]


@pytest.mark.asyncio()
async def test_duplicate_external_id_is_unique_violation(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)
    await repo.insert(_payload(mapbox_place_id="address.7"))

    with pytest.raises(CatalogUniqueViolation):
        await repo.insert(_payload(name="Another", latitude=1.0, longitude=1.0, mapbox_place_id="address.7"))


@pytest.mark.asyncio()
async def test_duplicate_normalized_key_is_unique_violation(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)
    await repo.insert(_payload())

    with pytest.raises(CatalogUniqueViolation):
        await repo.insert(_payload(name="BLUE BOTTLE", latitude=37.7763208))


@pytest.mark.asyncio()
async def test_null_external_ids_do_not_collide(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)
    await repo.insert(_payload(name="One"))
    await repo.insert(_payload(name="Two"))
    assert len(await repo.find_in_bounding_box(37.7, 37.8, -122.5, -122.4)) == 2


@pytest.mark.asyncio()
async def test_resolver_exact_tier_against_sqlite(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)
    created = await repo.insert(_payload())

    result = await PlaceResolver(repo).find_existing("blue bottle", Coordinate(37.7763211, -122.4234558))

    assert result.method == MatchMethod.EXACT
    assert result.place.id == created.id


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "latitude, longitude",
    [
        (-56.515105, -94.624833),
        (4.617455, 41.986414),
        (37.000015, -122.000025),
        (0.000005, -0.000015),
    ],
)
async def test_resubmitting_same_coordinates_hits_exact_tier(sqlite_sessionmaker, latitude, longitude):
    repo = PlacesRepository(sqlite_sessionmaker)
    created = await repo.insert(_payload(latitude=latitude, longitude=longitude))

    result = await PlaceResolver(repo).find_existing("Blue Bottle", Coordinate(latitude, longitude))

    assert result.method == MatchMethod.EXACT
    assert result.place.id == created.id


@pytest.mark.asyncio()
async def test_registrar_end_to_end_against_sqlite(sqlite_sessionmaker):
    repo = PlacesRepository(sqlite_sessionmaker)
    registrar = PlaceRegistrar(repo)

    results = await asyncio.gather(*[
        registrar.create_or_get(PlaceInput(name="Blue Bottle", latitude=37.776321, longitude=-122.423456))
        for _ in range(3)
    ])

    assert len({p.id for p in results}) == 1
    assert len(await repo.find_in_bounding_box(37.7, 37.8, -122.5, -122.4)) == 1
