"""Upgrade a selected candidate to precise coordinates."""

import logging
from dataclasses import replace
from typing import Optional

import requests

from map_search.core.geo import is_precise, is_valid_coordinates
from map_search.core.session import SessionManager
from map_search.etl.normalize import pair_from_sequence
from map_search.models import Candidate, SourceKind, Viewport
from map_search.vendors import mapbox

logger = logging.getLogger(__name__)


def resolution_query(candidate: Candidate) -> str:
    return candidate.secondary_text or candidate.display_name


def resolve_candidate(
    candidate: Candidate,
    *,
    access_token: str,
    session: SessionManager,
    viewport: Viewport,
    locale: str = "en",
    timeout: float = mapbox.DEFAULT_TIMEOUT,
) -> Optional[Candidate]:
    """Return the candidate with precise coordinates, or ``None`` to abort.

    Candidates that already carry precise coordinates come back unchanged.
    Otherwise an exact-match geocode is attempted; when it fails the original
    coordinates are used if they are usable at all. The session token rotates
    after every attempt.
    """
    if is_precise(candidate.coordinates):
        return candidate

    # Suggestion POIs keep the default proximity weighting; addresses resolve globally.
    proximity_bias = None if candidate.source_kind == SourceKind.SUGGESTION else 0
    resolved: Optional[Candidate] = None
    try:
        features = mapbox.geocode(
            resolution_query(candidate),
            access_token,
            language=locale,
            limit=1,
            exact=True,
            proximity=viewport.center,
            proximity_bias=proximity_bias,
            timeout=timeout,
        )
        center = pair_from_sequence(features[0].get("center")) if features else None
        if is_valid_coordinates(center):
            resolved = replace(candidate, coordinates=center)
        else:
            logger.warning("Geocoder found no match for candidate %s", candidate.id)
    except (mapbox.MapboxError, requests.RequestException, ValueError) as exc:
        logger.warning("Resolution failed for candidate %s: %s", candidate.id, exc)
    finally:
        session.rotate()

    if resolved is not None:
        return resolved
    if is_valid_coordinates(candidate.coordinates):
        return candidate
    logger.info("Aborting selection of %s: no usable coordinates", candidate.id)
    return None
