"""Ordering of merged search results."""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from map_search.core.geo import bounds_for
from map_search.models import LOCALITY_THRESHOLD_METERS, BoundingBox, Candidate, SourceKind

FUZZY_CATEGORY_ID = "fuzzy-poi-category"


@dataclass(frozen=True)
class RankedResults:
    visible: List[Candidate] = field(default_factory=list)
    local: List[Candidate] = field(default_factory=list)


@dataclass(frozen=True)
class CategoryView:
    """What the host shows after the synthetic entry is activated."""

    results: List[Candidate]
    bounds: Optional[BoundingBox]


def _locality_sort_key(candidate: Candidate):
    distance = candidate.distance_meters if candidate.distance_meters is not None else math.inf
    return (0 if distance <= LOCALITY_THRESHOLD_METERS else 1, distance)


def sort_by_locality(candidates: Sequence[Candidate]) -> List[Candidate]:
    """Within-threshold results by distance, then everything else by distance."""
    return sorted(candidates, key=_locality_sort_key)


def build_fuzzy_category(query: str) -> Candidate:
    label = f'Places matching "{query.strip()}"'
    return Candidate(
        id=FUZZY_CATEGORY_ID,
        display_name=label,
        source_kind=SourceKind.SYNTHETIC_CATEGORY,
        category=FUZZY_CATEGORY_ID,
        dedup_key=label.lower(),
        feature_type="category",
    )


def rank_results(
    query: str,
    local: Sequence[Candidate],
    suggestions: Sequence[Candidate],
    geocoded: Sequence[Candidate],
) -> RankedResults:
    """Build the default list; local matches hide behind one synthetic entry."""
    local_sorted = sort_by_locality(local)
    external = [*suggestions, *geocoded]
    if not local_sorted:
        return RankedResults(visible=external, local=[])
    return RankedResults(visible=[build_fuzzy_category(query), *external], local=local_sorted)


def category_view(ranked: RankedResults) -> CategoryView:
    return CategoryView(
        results=list(ranked.local),
        bounds=bounds_for(candidate.coordinates for candidate in ranked.local),
    )
