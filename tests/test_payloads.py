"""Tests for boundary validation of routes and fixes."""

from __future__ import annotations

import math

import polyline
import pytest

from route_tracker.errors import InvalidPayloadError
from route_tracker.models import GeoPoint, Path, RunSummary
from route_tracker.payloads import (
    fix_from_mapping,
    path_from_geojson,
    path_from_polyline,
    route_from_payload,
    summary_to_payload,
)

LINE = {"type": "LineString", "coordinates": [[-0.12, 51.50], [-0.11, 51.51, 12.0]]}


def test_geopoint_keeps_explicit_axis_order() -> None:
    point = GeoPoint.from_latlon((51.5, -0.12))
    assert point.lon == -0.12
    assert point.lat == 51.5
    assert point.as_lonlat() == (-0.12, 51.5)
    assert point.as_latlon() == (51.5, -0.12)
    assert GeoPoint.from_lonlat((-0.12, 51.5)) == point


@pytest.mark.parametrize(
    "lon, lat", [(181.0, 0.0), (0.0, 91.0), (math.nan, 0.0), (0.0, math.inf)]
)
def test_geopoint_rejects_invalid_coordinates(lon: float, lat: float) -> None:
    with pytest.raises(InvalidPayloadError):
        GeoPoint(lon=lon, lat=lat)


def test_path_needs_two_points() -> None:
    with pytest.raises(InvalidPayloadError):
        Path.from_lonlat([[0.0, 0.0]])


def test_path_from_geojson_variants() -> None:
    expected = Path.from_lonlat([[-0.12, 51.50], [-0.11, 51.51]])
    feature = {"type": "Feature", "properties": {}, "geometry": LINE}
    collection = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "geometry": {"type": "Point", "coordinates": [0, 0]}},
            feature,
        ],
    }
    multi = {"type": "MultiLineString", "coordinates": [LINE["coordinates"]]}

    for geometry in (LINE, feature, collection, multi):
        assert path_from_geojson(geometry) == expected
    assert path_from_geojson('{"type": "LineString", "coordinates": '
                             '[[-0.12, 51.50], [-0.11, 51.51]]}') == expected


@pytest.mark.parametrize(
    "geometry",
    [
        {"type": "Point", "coordinates": [0, 0]},
        {"type": "FeatureCollection", "features": []},
        {"type": "LineString", "coordinates": "nope"},
        "not json",
        42,
    ],
)
def test_path_from_geojson_rejects_unusable_geometry(geometry) -> None:
    with pytest.raises(InvalidPayloadError):
        path_from_geojson(geometry)


def test_path_from_polyline_decodes_latlon() -> None:
    encoded = polyline.encode([(51.5, -0.12), (51.51, -0.11)])
    path = path_from_polyline(encoded)
    assert path.points[0] == GeoPoint(lon=-0.12, lat=51.5)
    assert path.points[1] == GeoPoint(lon=-0.11, lat=51.51)


def test_route_with_bad_geometry_has_no_path() -> None:
    route = route_from_payload({"route_id": 3, "route_name": "Broken", "geom": {"type": "Point"}})
    assert route.route_id == "3"
    assert route.path is None


def test_route_without_id_is_rejected() -> None:
    with pytest.raises(InvalidPayloadError):
        route_from_payload({"route_name": "No id", "geom": LINE})


def test_fix_from_mapping_accepts_iso_timestamp() -> None:
    fix = fix_from_mapping(
        {
            "timestamp": "2024-05-01T08:00:05.250Z",
            "latitude": 51.5,
            "longitude": -0.12,
            "accuracy": 8,
            "speed": float("nan"),
        }
    )
    assert fix.position == GeoPoint(lon=-0.12, lat=51.5)
    assert fix.accuracy_m == 8.0
    assert fix.speed_mps is None
    assert fix.timestamp_ms == 1714550405250


def test_fix_from_mapping_accepts_aliases_and_millis() -> None:
    fix = fix_from_mapping(
        {"ts": 1714550405000, "lat": "51.5", "lng": "-0.12", "accuracy_m": 3.5, "speed_mps": 1.1}
    )
    assert fix.timestamp_ms == 1714550405000
    assert fix.speed_mps == 1.1


@pytest.mark.parametrize(
    "raw",
    [
        {"latitude": 51.5, "longitude": -0.12, "timestamp": 1},
        {"latitude": 51.5, "longitude": -0.12, "accuracy": "bad", "timestamp": 1},
        {"latitude": 51.5, "longitude": -0.12, "accuracy": -1, "timestamp": 1},
        {"latitude": 51.5, "longitude": -0.12, "accuracy": 5},
        {"latitude": 51.5, "longitude": -0.12, "accuracy": 5, "timestamp": "soon"},
        {"latitude": 95.0, "longitude": -0.12, "accuracy": 5, "timestamp": 1},
        ["not", "a", "mapping"],
    ],
)
def test_fix_from_mapping_rejects_malformed(raw) -> None:
    with pytest.raises(InvalidPayloadError):
        fix_from_mapping(raw)


def test_summary_payload_names() -> None:
    payload = summary_to_payload(
        "r1", RunSummary("2024-05-01T09:00:00.000Z", 50, 1, 12.5, 4, "ok")
    )
    assert payload == {
        "run_id": "r1",
        "end_time": "2024-05-01T09:00:00.000Z",
        "coverage_percent": 50,
        "off_route_count": 1,
        "total_distance_m": 12.5,
        "points_count": 4,
        "remarks": "ok",
    }
