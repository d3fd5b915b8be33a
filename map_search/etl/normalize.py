"""Utilities for transforming raw source records into Candidate objects."""

import logging
import re
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from map_search.core.geo import distance_from, is_valid_coordinates
from map_search.models import LOCALITY_THRESHOLD_METERS, Candidate, LngLat, SourceKind

logger = logging.getLogger(__name__)

UNNAMED_PLACE = "Unnamed place"
_LEADING_DIGITS = re.compile(r"^\d+")


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None or isinstance(value, bool):
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _pair(lng: Any, lat: Any) -> Optional[Tuple[float, float]]:
    lng_f = _safe_float(lng)
    lat_f = _safe_float(lat)
    if lng_f is None or lat_f is None:
        return None
    return lng_f, lat_f


def pair_from_sequence(value: Any) -> Optional[Tuple[float, float]]:
    if isinstance(value, (list, tuple)) and len(value) >= 2:
        return _pair(value[0], value[1])
    return None


def _pair_from_mapping(value: Any) -> Optional[Tuple[float, float]]:
    if isinstance(value, dict):
        return _pair(value.get("longitude"), value.get("latitude"))
    return pair_from_sequence(value)


def _valid_or_none(coordinates: Optional[Tuple[float, float]]) -> Optional[Tuple[float, float]]:
    return coordinates if is_valid_coordinates(coordinates) else None


def dedup_key_for(name: str) -> str:
    return name.strip().lower()


def display_name_for(*choices: Any) -> str:
    """First non-blank choice, so a Candidate never carries an empty label."""
    for choice in choices:
        value = _strip_or_none(choice)
        if value:
            return value
    return UNNAMED_PLACE


def secondary_text_for(display_name: str, full_text: Any) -> Optional[str]:
    value = _strip_or_none(full_text)
    if not value or value == display_name:
        return None
    return value


def _locality(distance: Optional[float]) -> bool:
    return distance is not None and distance <= LOCALITY_THRESHOLD_METERS


def extract_suggestion_coordinates(raw: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    """Pull (lng, lat) out of whichever field the suggestion happens to carry."""
    coordinates = _pair_from_mapping(raw.get("coordinates"))
    if coordinates is None:
        coordinates = pair_from_sequence((raw.get("geometry") or {}).get("coordinates"))
    if coordinates is None:
        bbox = raw.get("bbox")
        if isinstance(bbox, (list, tuple)) and len(bbox) == 4:
            values = [_safe_float(v) for v in bbox]
            if None not in values:
                coordinates = ((values[0] + values[2]) / 2, (values[1] + values[3]) / 2)
    if coordinates is None:
        coordinates = _pair_from_mapping((raw.get("metadata") or {}).get("coordinates"))
    if coordinates is None:
        coordinates = _pair_from_mapping((raw.get("context") or {}).get("coordinates"))
    return coordinates


def extract_house_number(feature: Dict[str, Any]) -> Optional[str]:
    house_number = _strip_or_none(feature.get("address"))
    if house_number:
        return house_number
    for entry in feature.get("context") or []:
        if not isinstance(entry, dict) or not str(entry.get("id", "")).startswith("address"):
            continue
        match = _LEADING_DIGITS.match(str(entry.get("text") or ""))
        return match.group(0) if match else None
    return None


def poi_to_candidate(
    poi: Dict[str, Any],
    center: Optional[LngLat] = None,
    *,
    rating: Tuple[Optional[float], Optional[int], Optional[str]] = (None, None, None),
    matching_review: Optional[Dict[str, Any]] = None,
) -> Candidate:
    name = display_name_for(poi.get("name"), poi.get("address"))
    coordinates = _valid_or_none(_pair(poi.get("lng"), poi.get("lat")))
    distance_meters = distance_from(center, coordinates)
    categories = poi.get("categories") or []
    category = _strip_or_none(poi.get("category_name")) or (str(categories[0]) if categories else "poi")
    average_rating, review_count, rating_type = rating

    review_text = None
    review_author = None
    if matching_review is not None:
        review_text = _strip_or_none(matching_review.get("notes"))
        user_id = _strip_or_none(matching_review.get("user_id"))
        review_author = f"User {user_id[:8]}" if user_id else "Anonymous"

    return Candidate(
        id=f"poi-{poi.get('id')}",
        display_name=name,
        secondary_text=secondary_text_for(name, poi.get("address")),
        coordinates=coordinates,
        source_kind=SourceKind.LOCAL_POI,
        category=category,
        distance_meters=distance_meters,
        locality_flag=_locality(distance_meters),
        dedup_key=dedup_key_for(name),
        address=_strip_or_none(poi.get("address")),
        feature_type="poi",
        average_rating=average_rating,
        review_count=review_count,
        rating_type=rating_type,
        review_text=review_text,
        review_author=review_author,
        raw_snapshot=poi,
    )


def suggestion_to_candidate(raw: Dict[str, Any], center: Optional[LngLat] = None) -> Optional[Candidate]:
    """Map one Search Box suggestion; ``None`` when it has no usable label."""
    name = _strip_or_none(raw.get("name")) or _strip_or_none(raw.get("text"))
    place_name = _strip_or_none(raw.get("full_address")) or _strip_or_none(raw.get("place_name"))
    if not _strip_or_none(raw.get("name")) and not _strip_or_none(raw.get("place_name")):
        logger.debug("Skipping suggestion without name/place_name: %s", raw.get("mapbox_id"))
        return None

    display_name = display_name_for(name, place_name, raw.get("address"))
    coordinates = _valid_or_none(extract_suggestion_coordinates(raw))
    raw_feature_type = _strip_or_none(raw.get("feature_type"))
    feature_type = raw_feature_type or "poi"
    poi_category = raw.get("poi_category") or []
    category = (
        (_strip_or_none(poi_category[0]) if poi_category else None)
        or _strip_or_none(raw.get("category"))
        or feature_type
    )
    address = _strip_or_none(raw.get("address"))

    distance = _safe_float(raw.get("distance"))
    if distance is None or distance < 0:
        distance = distance_from(center, coordinates)

    return Candidate(
        id=_strip_or_none(raw.get("mapbox_id")) or f"suggestion-poi-{uuid.uuid4().hex}",
        display_name=display_name,
        secondary_text=secondary_text_for(display_name, place_name),
        coordinates=coordinates,
        source_kind=SourceKind.SUGGESTION,
        category=category,
        distance_meters=distance,
        locality_flag=_locality(distance),
        dedup_key=dedup_key_for(display_name),
        address=address,
        feature_type=feature_type,
        is_location_poi=raw_feature_type == "poi" and bool(address),
        raw_snapshot=raw,
    )


def feature_to_candidate(raw: Dict[str, Any], center: Optional[LngLat] = None) -> Optional[Candidate]:
    """Map one geocoding feature; ``None`` when it lacks ``place_name``."""
    place_name = _strip_or_none(raw.get("place_name"))
    if not place_name:
        logger.debug("Skipping geocoding feature without place_name: %s", raw.get("id"))
        return None

    house_number = extract_house_number(raw)
    base_text = _strip_or_none(raw.get("text")) or place_name.split(",")[0].strip()
    if house_number and house_number not in base_text:
        base_text = f"{house_number} {base_text}"
    display_name = display_name_for(base_text, place_name)

    place_types = raw.get("place_type") or []
    feature_type = _strip_or_none(place_types[0]) if place_types else None
    coordinates = _valid_or_none(pair_from_sequence(raw.get("center")))
    distance = distance_from(center, coordinates)

    return Candidate(
        id=_strip_or_none(raw.get("id")) or f"suggestion-geo-{uuid.uuid4().hex}",
        display_name=display_name,
        secondary_text=secondary_text_for(display_name, place_name),
        coordinates=coordinates,
        source_kind=SourceKind.GEOCODE,
        category=feature_type or "address",
        distance_meters=distance,
        locality_flag=_locality(distance),
        dedup_key=dedup_key_for(display_name),
        address=house_number,
        feature_type=feature_type or "address",
        raw_snapshot=raw,
    )


def normalize_suggestions(raw_items: Iterable[Any], center: Optional[LngLat] = None) -> List[Candidate]:
    candidates: List[Candidate] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        candidate = suggestion_to_candidate(raw, center)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def normalize_features(raw_items: Iterable[Any], center: Optional[LngLat] = None) -> List[Candidate]:
    candidates: List[Candidate] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        candidate = feature_to_candidate(raw, center)
        if candidate is not None:
            candidates.append(candidate)
    return candidates
