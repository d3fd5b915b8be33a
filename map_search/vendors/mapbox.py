"""Client utilities for the Mapbox Search Box and Geocoding APIs."""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from map_search.models import BoundingBox, LngLat, SearchFilters

SUGGEST_URL = "https://api.mapbox.com/search/searchbox/v1/suggest"
GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
DEFAULT_TIMEOUT = 6


def _build_session() -> requests.Session:
    session = requests.Session()
    retries = Retry(
        total=2,
        backoff_factor=0.3,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


_SESSION = _build_session()


class MapboxError(RuntimeError):
    """Raised when a Mapbox endpoint returns a non-successful response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _get_json(url: str, params: Dict[str, Any], timeout: float, label: str) -> Dict[str, Any]:
    response = _SESSION.get(url, params=params, timeout=timeout)
    if response.status_code >= 400:
        raise MapboxError(
            f"{label} returned HTTP {response.status_code}: {response.text[:300]}",
            status_code=response.status_code,
        )
    return response.json() or {}


def build_suggest_params(
    query: str,
    access_token: str,
    session_token: str,
    *,
    language: str = "en",
    limit: int = 5,
    bbox: Optional[BoundingBox] = None,
    proximity: Optional[LngLat] = None,
    filters: Optional[SearchFilters] = None,
) -> Dict[str, Any]:
    if not query or not query.strip():
        raise ValueError("Query must be provided for suggest lookups.")

    params: Dict[str, Any] = {
        "q": query.strip(),
        "access_token": access_token,
        "session_token": session_token,
        "language": language,
        "limit": str(limit),
        "types": "poi",
    }
    if proximity is not None:
        params["proximity"] = proximity.as_param()
    # A viewport that is still animating can report NaN edges.
    if bbox is not None and bbox.is_finite():
        params["bbox"] = bbox.as_param()
    if filters is not None:
        if filters.price_range:
            params["price_range"] = filters.price_range
        if filters.min_rating:
            params["min_rating"] = str(filters.min_rating)
        if filters.open_now:
            params["open_now"] = "true"
        if filters.accessibility:
            params["accessibility"] = "true"
    return params


def suggest(
    query: str,
    access_token: str,
    session_token: str,
    *,
    language: str = "en",
    limit: int = 5,
    bbox: Optional[BoundingBox] = None,
    proximity: Optional[LngLat] = None,
    filters: Optional[SearchFilters] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> List[Dict[str, Any]]:
    """Return raw Search Box suggestions for ``query``."""
    params = build_suggest_params(
        query,
        access_token,
        session_token,
        language=language,
        limit=limit,
        bbox=bbox,
        proximity=proximity,
        filters=filters,
    )
    payload = _get_json(SUGGEST_URL, params, timeout, "suggest")
    return list(payload.get("suggestions") or [])


def build_geocode_params(
    access_token: str,
    *,
    language: str = "en",
    limit: int = 5,
    exact: bool = False,
    proximity: Optional[LngLat] = None,
    proximity_bias: Optional[float] = None,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "access_token": access_token,
        "limit": str(limit),
        "language": language,
        "types": "address,place",
        "autocomplete": "false" if exact else "true",
    }
    if proximity is not None:
        params["proximity"] = proximity.as_param()
        if proximity_bias is not None:
            params["proximity_bias"] = f"{proximity_bias:g}"
    return params


def geocode(
    text: str,
    access_token: str,
    *,
    language: str = "en",
    limit: int = 5,
    exact: bool = False,
    proximity: Optional[LngLat] = None,
    proximity_bias: Optional[float] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> List[Dict[str, Any]]:
    """Return raw forward-geocoding features for ``text``.

    A ``proximity_bias`` of zero keeps results global: the proximity point only
    re-orders them.
    """
    if not text or not text.strip():
        raise ValueError("Text must be provided for geocoding.")

    params = build_geocode_params(
        access_token,
        language=language,
        limit=limit,
        exact=exact,
        proximity=proximity,
        proximity_bias=proximity_bias,
    )
    url = f"{GEOCODING_URL}/{quote(text.strip(), safe='')}.json"
    payload = _get_json(url, params, timeout, "geocode")
    return list(payload.get("features") or [])
