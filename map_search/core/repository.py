"""Local POI repository client: match, rate and order private POIs."""

import logging
from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from map_search.core import db
from map_search.etl.normalize import poi_to_candidate
from map_search.etl.rank import sort_by_locality
from map_search.models import Candidate, LngLat

logger = logging.getLogger(__name__)

MIN_TERM_LENGTH = 2
MAX_LOCAL_RESULTS = 10
# Declaration order breaks ties between equally common rating scales.
RATING_TYPES = ("out_of_10", "out_of_5", "percentage")


def _contains(value: Any, term: str) -> bool:
    return value is not None and term in str(value).lower()


def matching_reviews(poi: Dict[str, Any], term: str) -> List[Dict[str, Any]]:
    return [
        review
        for review in poi.get("reviews") or []
        if _contains(review.get("notes"), term) or _contains(review.get("user_id"), term)
    ]


def poi_matches(poi: Dict[str, Any], term: str) -> bool:
    """Case-insensitive substring match across the searchable POI fields."""
    needle = term.strip().lower()
    if not needle:
        return False
    if _contains(poi.get("name"), needle) or _contains(poi.get("description"), needle):
        return True
    if any(_contains(category, needle) for category in poi.get("categories") or []):
        return True
    if _contains(poi.get("category_name"), needle):
        return True
    return bool(matching_reviews(poi, needle))


def aggregate_rating(reviews: Iterable[Dict[str, Any]]) -> Tuple[Optional[float], Optional[int], Optional[str]]:
    """Average the reviews that use the most common rating scale."""
    reviews = list(reviews or [])
    if not reviews:
        return None, None, None

    counts = Counter(review.get("rating_type") for review in reviews)
    top = max(counts.get(rating_type, 0) for rating_type in RATING_TYPES)
    rating_type = next(t for t in RATING_TYPES if counts.get(t, 0) == top)

    ratings = []
    for review in reviews:
        if review.get("rating_type") != rating_type:
            continue
        try:
            ratings.append(float(review.get("rating")))
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric rating %r", review.get("rating"))
    average = sum(ratings) / len(ratings) if ratings else None
    return average, len(reviews), rating_type


def build_local_candidates(rows: Iterable[Dict[str, Any]], term: str, center: Optional[LngLat]) -> List[Candidate]:
    needle = term.strip().lower()
    candidates: List[Candidate] = []
    for poi in rows:
        if not poi_matches(poi, needle):
            continue
        reviews = matching_reviews(poi, needle)
        candidates.append(
            poi_to_candidate(
                poi,
                center,
                rating=aggregate_rating(poi.get("reviews")),
                matching_review=reviews[0] if reviews else None,
            )
        )
    return sort_by_locality(candidates)[:MAX_LOCAL_RESULTS]


def search_local_pois(
    term: str,
    center: Optional[LngLat] = None,
    *,
    fetch: Optional[Callable[[str], List[Dict[str, Any]]]] = None,
) -> List[Candidate]:
    """Return up to ten matching local POIs; never raises."""
    if not term or len(term.strip()) < MIN_TERM_LENGTH:
        return []
    fetch = fetch or db.search_pois
    try:
        rows = fetch(term.strip())
        return build_local_candidates(rows, term, center)
    except Exception as exc:  # noqa: BLE001
        logger.error("Local POI search failed for term=%s: %s", term, exc)
        return []
