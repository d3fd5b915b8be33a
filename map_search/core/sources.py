"""Source adapters that turn Mapbox calls into Candidate lists.

Every adapter degrades to an empty list on failure so a single unavailable
source never sinks the whole search.
"""

import logging
from typing import List, Optional

import requests

from map_search.etl.normalize import normalize_features, normalize_suggestions
from map_search.models import Candidate, SearchFilters, Viewport
from map_search.vendors import mapbox

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5
MAX_GEOCODE_RESULTS = 5

CATEGORY_QUERIES = {
    "food": "restaurant",
    "cafe": "cafe",
    "bar": "bar pub",
    "mall": "shopping mall",
    "hotel": "hotel lodging",
    "attractions": "tourist attractions points of interest",
    "landmark": "landmark monument",
    "museum": "museum gallery",
    "cinema": "cinema movie theater",
    "parking": "parking",
    "pharmacy": "pharmacy",
    "grocery": "supermarket grocery",
    "gas station": "gas station fuel",
}


def expand_category_query(term: str) -> str:
    stripped = term.strip()
    return CATEGORY_QUERIES.get(stripped.lower(), stripped)


def fetch_suggestions(
    term: str,
    *,
    access_token: str,
    session_token: str,
    viewport: Viewport,
    filters: Optional[SearchFilters] = None,
    locale: str = "en",
    timeout: float = mapbox.DEFAULT_TIMEOUT,
) -> List[Candidate]:
    query = expand_category_query(term)
    if not query:
        return []
    try:
        raw = mapbox.suggest(
            query,
            access_token,
            session_token,
            language=locale,
            limit=MAX_SUGGESTIONS,
            bbox=viewport.bbox,
            proximity=viewport.center,
            filters=filters,
            timeout=timeout,
        )
    except (mapbox.MapboxError, requests.RequestException, ValueError) as exc:
        logger.warning("Suggestion source unavailable for query=%s: %s", query, exc)
        return []
    return normalize_suggestions(raw, viewport.center)[:MAX_SUGGESTIONS]


def fetch_geocode_results(
    term: str,
    *,
    access_token: str,
    viewport: Viewport,
    filters: Optional[SearchFilters] = None,
    locale: str = "en",
    timeout: float = mapbox.DEFAULT_TIMEOUT,
) -> List[Candidate]:
    """Global address lookup; ``filters`` are accepted and ignored."""
    query = expand_category_query(term)
    if not query:
        return []
    try:
        raw = mapbox.geocode(
            query,
            access_token,
            language=locale,
            limit=MAX_GEOCODE_RESULTS,
            exact=False,
            proximity=viewport.center,
            proximity_bias=0,
            timeout=timeout,
        )
    except (mapbox.MapboxError, requests.RequestException, ValueError) as exc:
        logger.warning("Geocoding source unavailable for query=%s: %s", query, exc)
        return []
    return normalize_features(raw, viewport.center)[:MAX_GEOCODE_RESULTS]
