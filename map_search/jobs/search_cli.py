"""CLI to run one map search from the terminal and print the ranked results."""

import argparse
import json
import logging
from typing import List, Optional

from map_search.core.config import get_settings
from map_search.core.resolver import resolve_candidate
from map_search.core.search import run_search
from map_search.core.session import SessionManager
from map_search.models import BoundingBox, LngLat, SearchFilters, Viewport

logger = logging.getLogger(__name__)


def _bbox(value: str) -> BoundingBox:
    parts = value.split(",")
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("bbox must be west,south,east,north")
    try:
        return BoundingBox(*(float(part) for part in parts))
    except ValueError as exc:
        raise argparse.ArgumentTypeError("bbox values must be numeric") from exc


def run_search_job(
    *,
    query: str,
    lng: Optional[float],
    lat: Optional[float],
    bbox: Optional[BoundingBox],
    filters: SearchFilters,
    select: Optional[int],
) -> dict:
    settings = get_settings()
    if not settings.mapbox_access_token:
        raise RuntimeError("MAPBOX_ACCESS_TOKEN is required")
    if not query.strip():
        raise ValueError("Query is empty")

    center = LngLat(lng=lng, lat=lat) if lng is not None and lat is not None else None
    viewport = Viewport(center=center, bbox=bbox)
    session = SessionManager()

    logger.info("Running map search for query=%s", query)
    ranked = run_search(
        query,
        viewport=viewport,
        access_token=settings.mapbox_access_token,
        session_token=session.token,
        filters=filters,
        locale=settings.locale,
        timeout=settings.source_timeout_seconds,
    )
    output = {
        "results": [candidate.to_dict() for candidate in ranked.visible],
        "local_results": [candidate.to_dict() for candidate in ranked.local],
    }

    if select is not None:
        if not 0 <= select < len(ranked.visible):
            raise ValueError(f"--select must be between 0 and {len(ranked.visible) - 1}")
        resolved = resolve_candidate(
            ranked.visible[select],
            access_token=settings.mapbox_access_token,
            session=session,
            viewport=viewport,
            locale=settings.locale,
            timeout=settings.source_timeout_seconds,
        )
        output["selected"] = resolved.to_dict() if resolved is not None else None

    logger.info("Completed search: %d visible, %d local", len(ranked.visible), len(ranked.local))
    return output


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search local POIs and Mapbox places")
    parser.add_argument("query", help="Free text, e.g. 'coffee' or '221b baker street'")
    parser.add_argument("--lng", type=float, help="Viewport center longitude")
    parser.add_argument("--lat", type=float, help="Viewport center latitude")
    parser.add_argument("--bbox", type=_bbox, help="Viewport bounds as west,south,east,north")
    parser.add_argument("--price-range", dest="price_range", help="Price range filter for suggestions")
    parser.add_argument("--min-rating", dest="min_rating", type=float, help="Minimum rating for suggestions")
    parser.add_argument("--open-now", dest="open_now", action="store_true", help="Only places open now")
    parser.add_argument("--accessible", dest="accessibility", action="store_true", help="Only accessible places")
    parser.add_argument("--select", type=int, help="Resolve the visible result at this index")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    output = run_search_job(
        query=args.query,
        lng=args.lng,
        lat=args.lat,
        bbox=args.bbox,
        filters=SearchFilters(
            price_range=args.price_range,
            min_rating=args.min_rating,
            open_now=args.open_now,
            accessibility=args.accessibility,
        ),
        select=args.select,
    )
    print(json.dumps(output, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
