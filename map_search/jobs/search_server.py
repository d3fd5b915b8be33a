"""HTTP entrypoint exposing search and resolution to a map front end."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from map_search.core.config import get_settings
from map_search.core.resolver import resolve_candidate
from map_search.core.search import run_search
from map_search.core.session import SessionManager
from map_search.models import BoundingBox, Candidate, LngLat, SearchFilters, Viewport

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)

_TRUTHY = {"1", "true", "yes"}


class BadRequest(ValueError):
    """Raised for request parameters that cannot be parsed."""


def _parse_float(raw: Any, name: str) -> Optional[float]:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise BadRequest(f"{name} must be numeric") from exc


def _parse_center(raw: Any) -> Optional[LngLat]:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise BadRequest("center must be a [lng, lat] pair")
    lng, lat = _parse_float(raw[0], "lng"), _parse_float(raw[1], "lat")
    if lng is None or lat is None:
        raise BadRequest("center must be a [lng, lat] pair")
    return LngLat(lng=lng, lat=lat)


def _parse_bbox(raw: Any) -> Optional[BoundingBox]:
    if raw is None or raw == "":
        return None
    parts = raw.split(",") if isinstance(raw, str) else raw
    if not isinstance(parts, (list, tuple)) or len(parts) != 4:
        raise BadRequest("bbox must have four values: west,south,east,north")
    values = [_parse_float(part, "bbox") for part in parts]
    if None in values:
        raise BadRequest("bbox must have four values: west,south,east,north")
    return BoundingBox(*values)


def _viewport_from_args(args: Dict[str, Any]) -> Viewport:
    lng = _parse_float(args.get("lng"), "lng")
    lat = _parse_float(args.get("lat"), "lat")
    if (lng is None) != (lat is None):
        raise BadRequest("lng and lat must be provided together")
    center = LngLat(lng=lng, lat=lat) if lng is not None else None
    return Viewport(center=center, bbox=_parse_bbox(args.get("bbox")))


def _filters_from_args(args: Dict[str, Any]) -> SearchFilters:
    return SearchFilters(
        price_range=(args.get("price_range") or None),
        min_rating=_parse_float(args.get("min_rating"), "min_rating"),
        open_now=str(args.get("open_now", "")).lower() in _TRUTHY,
        accessibility=str(args.get("accessibility", "")).lower() in _TRUTHY,
    )


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": settings.worker_port,
                "locale": settings.locale,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.get("/search")
def search() -> Any:
    """
    Run one search across the POI store and both Mapbox sources.
    Required: q. Optional: lng, lat, bbox, session_token, price_range,
    min_rating, open_now, accessibility.
    """
    query = (request.args.get("q") or "").strip()
    session_token = request.args.get("session_token") or SessionManager().token
    if not query:
        return jsonify({"data": {"results": [], "local_results": [], "session_token": session_token}}), 200

    try:
        viewport = _viewport_from_args(request.args)
        filters = _filters_from_args(request.args)
    except BadRequest as exc:
        return jsonify({"error": str(exc)}), 400

    settings = get_settings()
    ranked = run_search(
        query,
        viewport=viewport,
        access_token=settings.mapbox_access_token,
        session_token=session_token,
        filters=filters,
        locale=settings.locale,
        timeout=settings.source_timeout_seconds,
    )
    return (
        jsonify(
            {
                "data": {
                    "results": [candidate.to_dict() for candidate in ranked.visible],
                    "local_results": [candidate.to_dict() for candidate in ranked.local],
                    "session_token": session_token,
                }
            }
        ),
        200,
    )


@app.post("/resolve")
def resolve() -> Any:
    """Resolve a previously returned candidate to precise coordinates."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    raw_candidate = payload.get("candidate")
    if not isinstance(raw_candidate, dict):
        return jsonify({"error": "candidate is required"}), 400

    try:
        candidate = Candidate.from_dict(raw_candidate)
        viewport_raw = payload.get("viewport") or {}
        viewport = Viewport(
            center=_parse_center(viewport_raw.get("center")),
            bbox=_parse_bbox(viewport_raw.get("bbox")),
        )
    except (BadRequest, ValueError, TypeError) as exc:
        return jsonify({"error": str(exc)}), 400

    settings = get_settings()
    session = SessionManager(payload.get("session_token"))
    resolved = resolve_candidate(
        candidate,
        access_token=settings.mapbox_access_token,
        session=session,
        viewport=viewport,
        locale=settings.locale,
        timeout=settings.source_timeout_seconds,
    )
    if resolved is None:
        return jsonify({"error": "location could not be resolved", "session_token": session.token}), 422
    return jsonify({"data": {"candidate": resolved.to_dict(), "session_token": session.token}}), 200


def main() -> None:
    env_port = os.getenv("PORT")
    port = int(env_port or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
