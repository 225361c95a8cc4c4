"""
Typed records for the reverse-geocoding provider's response.

Payloads are parsed once here; call sites never poke at raw dicts.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional

from domain.errors import InvalidPlaceInput
from domain.models import Coordinate, FeatureKind


@dataclass
class FeatureContext:
    id: str
    text: str
    short_code: Optional[str] = None

    @property
    def prefix(self) -> str:
        """'place', 'region', 'postcode', 'country', ... from e.g. 'place.123'."""
        return self.id.split(".")[0]

    @classmethod
    def from_dict(cls, data: Any) -> Optional["FeatureContext"]:
        if not isinstance(data, dict):
            return None
        ctx_id = data.get("id")
        text = data.get("text")
        if not isinstance(ctx_id, str) or not isinstance(text, str):
            return None
        short_code = data.get("short_code")
        return cls(id=ctx_id, text=text, short_code=short_code if isinstance(short_code, str) else None)


def _parse_center(data: dict) -> Optional[Coordinate]:
    raw = data.get("center")
    if not (isinstance(raw, (list, tuple)) and len(raw) >= 2):
        geometry = data.get("geometry") or {}
        raw = geometry.get("coordinates") if isinstance(geometry, dict) else None
    if not (isinstance(raw, (list, tuple)) and len(raw) >= 2):
        return None
    try:
        # Provider order is [lon, lat]
        return Coordinate(lat=float(raw[1]), lng=float(raw[0]))
    except (TypeError, ValueError, InvalidPlaceInput):
        return None


@dataclass
class GeocodeFeature:
    id: str
    place_name: str
    text: str
    address: Optional[str] = None
    place_type: List[str] = field(default_factory=list)
    center: Optional[Coordinate] = None
    context: List[FeatureContext] = field(default_factory=list)

    @property
    def is_address(self) -> bool:
        return "address" in self.place_type

    @property
    def kind(self) -> FeatureKind:
        if self.is_address:
            return FeatureKind.ADDRESS
        if "poi" in self.place_type:
            return FeatureKind.POI
        return FeatureKind.OTHER

    @property
    def primary_type(self) -> Optional[str]:
        return self.place_type[0] if self.place_type else None

    @property
    def address_line1(self) -> str:
        if self.address:
            return f"{self.address} {self.text}"
        return self.text

    def context_value(self, prefix: str, prefer_short_code: bool = False) -> Optional[str]:
        value: Optional[str] = None
        for ctx in self.context:
            if ctx.prefix == prefix:
                value = (ctx.short_code or ctx.text) if prefer_short_code else ctx.text
        return value

    @classmethod
    def from_dict(cls, data: Any) -> Optional["GeocodeFeature"]:
        """Parse one provider feature; returns None when required fields are missing."""
        if not isinstance(data, dict):
            return None
        feature_id = data.get("id")
        if feature_id is None:
            return None
        text = data.get("text") or ""
        place_name = data.get("place_name") or text
        place_type = data.get("place_type") or []
        if not isinstance(place_type, list):
            place_type = []
        address = data.get("address")
        raw_context = data.get("context")
        if not isinstance(raw_context, list):
            raw_context = []
        contexts = [
            ctx
            for ctx in (FeatureContext.from_dict(c) for c in raw_context)
            if ctx is not None
        ]
        return cls(
            id=str(feature_id),
            place_name=str(place_name),
            text=str(text),
            address=str(address) if address not in (None, "") else None,
            place_type=[str(t) for t in place_type],
            center=_parse_center(data),
            context=contexts,
        )


def parse_features(payload: Any) -> List[GeocodeFeature]:
    """Parse the `features` array of a provider response, skipping malformed entries."""
    if not isinstance(payload, dict):
        return []
    raw_features = payload.get("features")
    if not isinstance(raw_features, list):
        return []
    features: List[GeocodeFeature] = []
    for item in raw_features:
        feature = GeocodeFeature.from_dict(item)
        if feature is not None:
            features.append(feature)
    return features
