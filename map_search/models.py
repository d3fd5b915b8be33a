"""Core data models shared by the search pipeline."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

LOCALITY_THRESHOLD_METERS = 75_000


class SourceKind(str, Enum):
    LOCAL_POI = "local_poi"
    SUGGESTION = "suggestion"
    GEOCODE = "geocode"
    SYNTHETIC_CATEGORY = "synthetic_category"


@dataclass(frozen=True, slots=True)
class LngLat:
    lng: float
    lat: float

    def as_param(self) -> str:
        return f"{self.lng},{self.lat}"


@dataclass(frozen=True, slots=True)
class BoundingBox:
    west: float
    south: float
    east: float
    north: float

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.west, self.south, self.east, self.north))

    def as_param(self) -> str:
        return ",".join(str(v) for v in (self.west, self.south, self.east, self.north))


@dataclass(frozen=True, slots=True)
class Viewport:
    """Visible map area captured at query time."""

    center: Optional[LngLat] = None
    bbox: Optional[BoundingBox] = None


@dataclass(frozen=True, slots=True)
class SearchFilters:
    """Optional constraints, forwarded only by the suggestion adapter."""

    price_range: Optional[str] = None
    min_rating: Optional[float] = None
    open_now: bool = False
    accessibility: bool = False


@dataclass(frozen=True, slots=True)
class Candidate:
    """Normalized search result, before or after coordinate resolution."""

    id: str
    display_name: str
    source_kind: SourceKind
    category: str
    dedup_key: str
    secondary_text: Optional[str] = None
    coordinates: Optional[Tuple[float, float]] = None  # (lng, lat)
    distance_meters: Optional[float] = None
    locality_flag: bool = False
    address: Optional[str] = None
    feature_type: Optional[str] = None
    is_location_poi: bool = False
    average_rating: Optional[float] = None
    review_count: Optional[int] = None
    rating_type: Optional[str] = None
    review_text: Optional[str] = None
    review_author: Optional[str] = None
    raw_snapshot: Optional[Dict[str, Any]] = field(default=None, repr=False, compare=False)

    def to_dict(self, include_raw: bool = False) -> Dict[str, Any]:
        entry = asdict(self)
        entry["source_kind"] = self.source_kind.value
        if entry["coordinates"] is not None:
            entry["coordinates"] = list(entry["coordinates"])
        if not include_raw:
            entry.pop("raw_snapshot", None)
        return entry

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Candidate":
        if not data.get("id") or not data.get("display_name"):
            raise ValueError("id and display_name are required")
        coordinates = data.get("coordinates")
        if coordinates is not None:
            if len(coordinates) != 2:
                raise ValueError("coordinates must be a [lng, lat] pair")
            coordinates = (float(coordinates[0]), float(coordinates[1]))
        display_name = str(data["display_name"])
        return cls(
            id=str(data["id"]),
            display_name=display_name,
            source_kind=SourceKind(data.get("source_kind", SourceKind.GEOCODE.value)),
            category=str(data.get("category") or "place"),
            dedup_key=str(data.get("dedup_key") or display_name.strip().lower()),
            secondary_text=data.get("secondary_text"),
            coordinates=coordinates,
            distance_meters=data.get("distance_meters"),
            locality_flag=bool(data.get("locality_flag", False)),
            address=data.get("address"),
            feature_type=data.get("feature_type"),
            is_location_poi=bool(data.get("is_location_poi", False)),
            average_rating=data.get("average_rating"),
            review_count=data.get("review_count"),
            rating_type=data.get("rating_type"),
            review_text=data.get("review_text"),
            review_author=data.get("review_author"),
        )


@dataclass(frozen=True, slots=True)
class RecentSearch:
    """Persistable record a host keeps for its recent-searches list."""

    id: str
    place_name: str
    text: str
    coordinates: Tuple[float, float]
    place_type: str
    category: str
