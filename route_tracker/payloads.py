"""Conversions between loose JSON-like payloads and the typed models.

Everything entering the engine from outside (storage responses, recorded
fixes) passes through here and fails with :class:`InvalidPayloadError`
instead of propagating malformed shapes.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

from polyline import decode as polyline_decode

from .errors import InvalidPayloadError
from .models import Fix, GeoPoint, Path, RouteRecord, RunSummary, TrackedPoint
from .utils import parse_timestamp_ms

LOGGER = logging.getLogger(__name__)

_LAT_KEYS = ("latitude", "lat")
_LON_KEYS = ("longitude", "lon", "lng")
_ACCURACY_KEYS = ("accuracy", "accuracy_m")
_SPEED_KEYS = ("speed", "speed_mps")
_TIMESTAMP_KEYS = ("timestamp", "timestamp_ms", "ts", "time")


def path_from_geojson(geometry: Any) -> Path:
    """Extract the route polyline from a GeoJSON geometry, Feature or collection.

    For collections the first LineString feature wins; for a MultiLineString
    its first part is used.
    """

    if isinstance(geometry, str):
        try:
            geometry = json.loads(geometry)
        except ValueError as exc:
            raise InvalidPayloadError("Route geometry is not valid JSON") from exc
    if not isinstance(geometry, Mapping):
        raise InvalidPayloadError("Route geometry must be a GeoJSON object")
    kind = geometry.get("type")
    if kind == "FeatureCollection":
        for feature in geometry.get("features") or []:
            geom = (feature or {}).get("geometry") or {}
            if geom.get("type") in ("LineString", "MultiLineString"):
                return path_from_geojson(geom)
        raise InvalidPayloadError("No LineString found in feature collection")
    if kind == "Feature":
        return path_from_geojson(geometry.get("geometry"))
    coordinates = geometry.get("coordinates")
    if kind == "LineString":
        return Path.from_lonlat(_as_pairs(coordinates))
    if kind == "MultiLineString":
        if not coordinates:
            raise InvalidPayloadError("Empty MultiLineString")
        return Path.from_lonlat(_as_pairs(coordinates[0]))
    raise InvalidPayloadError(f"Unsupported route geometry type: {kind!r}")


def path_from_polyline(encoded: str) -> Path:
    """Decode an encoded polyline (lat/lon order) into a :class:`Path`."""

    if not encoded:
        raise InvalidPayloadError("Empty polyline")
    try:
        decoded = polyline_decode(encoded)
    except (ValueError, TypeError, IndexError) as exc:
        raise InvalidPayloadError("Unable to decode polyline") from exc
    return Path.from_latlon(decoded)


def route_from_payload(payload: Mapping[str, Any]) -> RouteRecord:
    """Build a :class:`RouteRecord` from a storage route row.

    An unusable geometry does not fail the call; the record carries
    ``path=None`` so tracking can continue without on-route checks.
    """

    if not isinstance(payload, Mapping):
        raise InvalidPayloadError("Route payload must be an object")
    route_id = payload.get("route_id", payload.get("id"))
    if route_id is None:
        raise InvalidPayloadError("Route payload has no route_id")
    name = str(payload.get("route_name") or payload.get("name") or "")
    path: Optional[Path] = None
    try:
        if payload.get("geom"):
            path = path_from_geojson(payload["geom"])
        elif payload.get("polyline"):
            path = path_from_polyline(str(payload["polyline"]))
        else:
            LOGGER.warning("Route %s has no geometry; on-route checks disabled", route_id)
    except InvalidPayloadError as exc:
        LOGGER.warning(
            "Route %s has unusable geometry; on-route checks disabled: %s",
            route_id,
            exc,
        )
        path = None
    length_m: Optional[float] = None
    length_km = payload.get("length_km")
    if length_km is not None:
        try:
            length_m = float(length_km) * 1000.0
        except (TypeError, ValueError):
            length_m = None
    metadata = {
        key: payload.get(key)
        for key in ("zone", "ward", "route_type")
        if payload.get(key) is not None
    }
    return RouteRecord(
        route_id=str(route_id),
        name=name,
        path=path,
        length_m=length_m,
        metadata=metadata,
    )


def fix_from_mapping(raw: Mapping[str, Any]) -> Fix:
    """Validate a raw location sample and convert it to a :class:`Fix`."""

    if not isinstance(raw, Mapping):
        raise InvalidPayloadError("Fix payload must be an object")
    lat = _required_float(raw, _LAT_KEYS)
    lon = _required_float(raw, _LON_KEYS)
    accuracy = _required_float(raw, _ACCURACY_KEYS)
    if accuracy < 0:
        raise InvalidPayloadError(f"Negative accuracy: {accuracy}")
    speed = _optional_float(raw, _SPEED_KEYS)
    raw_ts = _first_present(raw, _TIMESTAMP_KEYS)
    if raw_ts is None:
        raise InvalidPayloadError("Fix payload has no timestamp")
    try:
        timestamp_ms = parse_timestamp_ms(raw_ts)
    except ValueError as exc:
        raise InvalidPayloadError(f"Invalid fix timestamp {raw_ts!r}") from exc
    return Fix(
        position=GeoPoint(lon=lon, lat=lat),
        accuracy_m=accuracy,
        speed_mps=speed,
        timestamp_ms=timestamp_ms,
    )


def tracked_point_to_payload(point: TrackedPoint) -> Dict[str, Any]:
    """Return the storage wire shape of a tracked point."""

    return {
        "timestamp": point.timestamp,
        "latitude": point.position.lat,
        "longitude": point.position.lon,
        "accuracy": point.accuracy_m,
        "speed": point.speed_mps,
        "isOnRoute": point.is_on_route,
        "distanceToRoute": point.distance_to_route_m,
    }


def tracked_points_to_payload(points: Sequence[TrackedPoint]) -> List[Dict[str, Any]]:
    return [tracked_point_to_payload(point) for point in points]


def summary_to_payload(run_id: str, summary: RunSummary) -> Dict[str, Any]:
    return {
        "run_id": run_id,
        "end_time": summary.end_time,
        "coverage_percent": summary.coverage_percent,
        "off_route_count": summary.off_route_incident_count,
        "total_distance_m": summary.total_distance_m,
        "points_count": summary.points_count,
        "remarks": summary.remarks,
    }


def _as_pairs(coordinates: Any) -> List[Sequence[float]]:
    if not isinstance(coordinates, (list, tuple)):
        raise InvalidPayloadError("LineString coordinates must be a list")
    for pair in coordinates:
        if not isinstance(pair, (list, tuple)):
            raise InvalidPayloadError(f"Invalid coordinate {pair!r}")
    return list(coordinates)


def _first_present(raw: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _required_float(raw: Mapping[str, Any], keys: Sequence[str]) -> float:
    value = _first_present(raw, keys)
    if value is None:
        raise InvalidPayloadError(f"Fix payload is missing {keys[0]!r}")
    parsed = _to_float(value, keys[0])
    if parsed is None:
        raise InvalidPayloadError(f"Fix payload is missing {keys[0]!r}")
    return parsed


def _optional_float(raw: Mapping[str, Any], keys: Sequence[str]) -> Optional[float]:
    value = _first_present(raw, keys)
    if value is None:
        return None
    return _to_float(value, keys[0])


def _to_float(value: Any, name: str) -> Optional[float]:
    if isinstance(value, bool):
        raise InvalidPayloadError(f"Field {name!r} must be numeric")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidPayloadError(f"Field {name!r} must be numeric, got {value!r}") from exc
    if math.isnan(parsed):
        return None
    return parsed


__all__ = [
    "path_from_geojson",
    "path_from_polyline",
    "route_from_payload",
    "fix_from_mapping",
    "tracked_point_to_payload",
    "tracked_points_to_payload",
    "summary_to_payload",
]
