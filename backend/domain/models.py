"""
Core domain models for place resolution.
These are framework-agnostic and shared by the geocoder, resolver, registrar and API.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from domain.errors import InvalidPlaceInput

COORD_DECIMALS = 5
MAX_PLACE_NAME_LENGTH = 100


class FeatureKind(str, Enum):
    """Coarse type of a geocoder feature."""
    ADDRESS = "address"
    POI = "poi"
    OTHER = "other"


class MatchMethod(str, Enum):
    """Which resolver tier matched an existing place."""
    EXTERNAL_ID = "external_id"
    EXACT = "exact"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class Coordinate:
    """A (latitude, longitude) pair in decimal degrees."""
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidPlaceInput(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise InvalidPlaceInput(f"Longitude out of range: {self.lng}")

    def rounded(self) -> tuple[float, float]:
        """Matching/cache key; never the stored precision."""
        return round(self.lat, COORD_DECIMALS), round(self.lng, COORD_DECIMALS)

    @property
    def cache_key(self) -> str:
        return f"{self.lat:.{COORD_DECIMALS}f},{self.lng:.{COORD_DECIMALS}f}"


@dataclass
class GeocodeResult:
    """Normalized address for a coordinate, as selected from the provider's features."""
    display_address: str
    address_line1: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    # Only set when safe to deduplicate on (address feature or close enough).
    mapbox_place_id: Optional[str] = None
    feature_id: Optional[str] = None
    feature_center: Optional[Coordinate] = None
    distance_m: Optional[float] = None
    place_type: Optional[str] = None
    kind: FeatureKind = FeatureKind.OTHER

    @property
    def external_id_safe(self) -> bool:
        return self.mapbox_place_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "display_address": self.display_address,
            "address_line1": self.address_line1,
            "city": self.city,
            "region": self.region,
            "postal_code": self.postal_code,
            "country": self.country,
            "mapbox_place_id": self.mapbox_place_id,
            "distance_m": self.distance_m,
            "place_type": self.place_type,
            "feature_center": (
                {"lat": self.feature_center.lat, "lng": self.feature_center.lng}
                if self.feature_center
                else None
            ),
        }


@dataclass
class Place:
    """Canonical catalog place as returned by the store."""
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
    geocoded_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    verified: bool = False

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


# Fields the caller may send to the store. name_norm, lat_round, lng_round,
# id, created_at and verified belong to the store.
STORABLE_FIELDS = (
    "name",
    "latitude",
    "longitude",
    "display_address",
    "address_line1",
    "city",
    "region",
    "postal_code",
    "country",
    "mapbox_place_id",
    "geocoded_at",
    "created_by",
)


@dataclass
class PlaceInput:
    """Storable fields of a new place, plus caller policy flags."""
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
    geocoded_at: Optional[datetime] = None
    created_by: Optional[str] = None
    # Set by the app layer when the user already owns the external place and
    # wants a second pin; skips the external-id tier.
    suppress_external_id_check: bool = field(default=False, compare=False)

    def validate(self) -> None:
        """Trim the name and check name/coordinate constraints."""
        name = (self.name or "").strip()
        if not name:
            raise InvalidPlaceInput("Please enter a name for this place")
        if len(name) > MAX_PLACE_NAME_LENGTH:
            raise InvalidPlaceInput(
                f"Name must be {MAX_PLACE_NAME_LENGTH} characters or less"
            )
        self.name = name
        Coordinate(self.latitude, self.longitude)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @property
    def lookup_external_id(self) -> Optional[str]:
        if self.suppress_external_id_check:
            return None
        return self.mapbox_place_id or None

    def to_insert_payload(self) -> Dict[str, Any]:
        payload = {name: getattr(self, name) for name in STORABLE_FIELDS}
        # External ids are unique in the catalog; a second pin for the same
        # external place is stored without one.
        payload["mapbox_place_id"] = self.lookup_external_id
        return payload

    @classmethod
    def from_geocode(
        cls,
        name: str,
        coordinate: Coordinate,
        result: Optional[GeocodeResult],
        created_by: Optional[str] = None,
    ) -> "PlaceInput":
        """Build an input from a pin and its (optional) reverse-geocode result."""
        if result is None:
            return cls(
                name=name,
                latitude=coordinate.lat,
                longitude=coordinate.lng,
                created_by=created_by,
            )
        return cls(
            name=name,
            latitude=coordinate.lat,
            longitude=coordinate.lng,
            display_address=result.display_address,
            address_line1=result.address_line1,
            city=result.city,
            region=result.region,
            postal_code=result.postal_code,
            country=result.country,
            mapbox_place_id=result.mapbox_place_id,
            geocoded_at=datetime.now(timezone.utc),
            created_by=created_by,
        )


@dataclass
class MatchResult:
    """Outcome of a resolver lookup."""
    place: Optional[Place] = None
    method: Optional[MatchMethod] = None

    @property
    def found(self) -> bool:
        return self.place is not None
