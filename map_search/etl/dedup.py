"""Cross-source deduplication by name and approximate location."""

import logging
from typing import Iterable, List

from map_search.models import Candidate

logger = logging.getLogger(__name__)

# Roughly 1.1 km at the equator.
COORDINATE_EPSILON_DEGREES = 0.01


def is_duplicate(a: Candidate, b: Candidate, epsilon: float = COORDINATE_EPSILON_DEGREES) -> bool:
    if a.dedup_key != b.dedup_key:
        return False
    if a.coordinates is None or b.coordinates is None:
        return False
    return abs(a.coordinates[0] - b.coordinates[0]) < epsilon and abs(a.coordinates[1] - b.coordinates[1]) < epsilon


def deduplicate(candidates: Iterable[Candidate], epsilon: float = COORDINATE_EPSILON_DEGREES) -> List[Candidate]:
    """Drop later candidates that duplicate an earlier one.

    Callers pass local POIs first, then suggestions, then geocoding results, so
    on an exact tie the local record wins. That ordering mirrors observed
    behaviour rather than a documented contract.
    """
    kept: List[Candidate] = []
    for candidate in candidates:
        if any(is_duplicate(existing, candidate, epsilon) for existing in kept):
            logger.debug("Dropping duplicate %s (%s)", candidate.id, candidate.source_kind.value)
            continue
        kept.append(candidate)
    return kept
