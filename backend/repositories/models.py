"""
SQLAlchemy ORM models for the places catalog.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Computed, DateTime, Float, Index, String

from db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlaceORM(Base):
    __tablename__ = "places"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    display_address = Column(String, nullable=True)
    address_line1 = Column(String, nullable=True)
    city = Column(String, nullable=True)
    region = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    country = Column(String, nullable=True)
    mapbox_place_id = Column(String, nullable=True, unique=True)
    geocoded_at = Column(DateTime, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)

    # Generated by the database; never part of an insert.
    name_norm = Column(String, Computed("lower(trim(name))", persisted=True))
    lat_round = Column(Float, Computed("round(latitude, 5)", persisted=True))
    lng_round = Column(Float, Computed("round(longitude, 5)", persisted=True))

    __table_args__ = (
        Index("uq_places_name_norm_coord", "name_norm", "lat_round", "lng_round", unique=True),
        Index("ix_places_lat_lng", "latitude", "longitude"),
    )
