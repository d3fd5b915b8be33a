"""Records a host persists for recent searches and favorites."""

import logging
from typing import List, Optional, Sequence

from map_search.core.geo import is_valid_coordinates
from map_search.models import Candidate, RecentSearch

logger = logging.getLogger(__name__)

MAX_RECENT_SEARCHES = 5


def to_recent_search(candidate: Candidate) -> Optional[RecentSearch]:
    """Convert a located candidate; unlocated ones are not worth remembering."""
    if not is_valid_coordinates(candidate.coordinates):
        logger.debug("Not recording %s without coordinates", candidate.id)
        return None
    return RecentSearch(
        id=candidate.id,
        place_name=candidate.secondary_text or candidate.display_name,
        text=candidate.display_name,
        coordinates=candidate.coordinates,
        place_type=candidate.feature_type or "place",
        category=candidate.category,
    )


def push_recent(history: Sequence[RecentSearch], record: RecentSearch, limit: int = MAX_RECENT_SEARCHES) -> List[RecentSearch]:
    """Newest first, one entry per id, capped at ``limit``."""
    return [record, *(item for item in history if item.id != record.id)][:limit]


def toggle_favorite(favorites: Sequence[Candidate], candidate: Candidate) -> List[Candidate]:
    if any(item.id == candidate.id for item in favorites):
        return [item for item in favorites if item.id != candidate.id]
    return [*favorites, candidate]
