"""Geodesic primitives over :class:`GeoPoint` and :class:`Path`.

Point-to-point and along-path measurements run on the WGS84 ellipsoid via
``pyproj.Geod``. Point-to-polyline distance projects the route once into a
local azimuthal equidistant frame and lets shapely find the nearest leg.
"""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import Sequence

import numpy as np
from numpy.typing import NDArray
from cachetools import LRUCache
from pyproj import CRS, Geod, Transformer
from shapely.geometry import LineString, Point

from ..config import PATH_CACHE_SIZE
from ..models import GeoPoint, Path

MetricArray = NDArray[np.float64]

GEOD = Geod(ellps="WGS84")


@dataclass(slots=True)
class PreparedPath:
    """Metric representation of a path reused for every fix of a session."""

    path: Path
    transformer: Transformer
    metric_points: MetricArray
    line: LineString

    def distance_to(self, point: GeoPoint) -> float:
        x, y = self.transformer.transform(point.lon, point.lat)
        return float(self.line.distance(Point(x, y)))


_prepared_cache: LRUCache[Path, PreparedPath] = LRUCache(
    maxsize=max(1, PATH_CACHE_SIZE)
)
_prepared_cache_lock = RLock()


def distance_between_points(a: GeoPoint, b: GeoPoint) -> float:
    """Return the geodesic distance in metres between two points."""

    _az12, _az21, dist = GEOD.inv(a.lon, a.lat, b.lon, b.lat)
    return float(dist)


def length_of_path(path: Path) -> float:
    """Return the sum of geodesic leg lengths in metres."""

    return float(np.sum(leg_lengths(path)))


def leg_lengths(path: Path) -> MetricArray:
    """Return the geodesic length of each consecutive vertex pair."""

    lons = np.asarray(path.lons(), dtype=float)
    lats = np.asarray(path.lats(), dtype=float)
    _az12, _az21, dists = GEOD.inv(lons[:-1], lats[:-1], lons[1:], lats[1:])
    return np.asarray(dists, dtype=float)


def point_at_distance_along(path: Path, distance_m: float) -> GeoPoint:
    """Walk ``distance_m`` metres along ``path`` and return the position reached.

    Negative distances clamp to the first vertex and distances beyond the path
    length clamp to the last one.
    """

    if distance_m <= 0:
        return path.points[0]
    legs = leg_lengths(path)
    cumulative = np.concatenate(([0.0], np.cumsum(legs)))
    if distance_m >= cumulative[-1]:
        return path.points[-1]
    # Index of the leg straddling the target distance.
    index = int(np.searchsorted(cumulative, distance_m, side="right")) - 1
    index = min(max(index, 0), len(legs) - 1)
    start = path.points[index]
    end = path.points[index + 1]
    remaining = float(distance_m - cumulative[index])
    if legs[index] == 0 or remaining <= 0:
        return start
    azimuth, _back, _dist = GEOD.inv(start.lon, start.lat, end.lon, end.lat)
    lon, lat, _ = GEOD.fwd(start.lon, start.lat, azimuth, remaining)
    return GeoPoint(lon=float(lon), lat=float(lat))


def distance_point_to_line(point: GeoPoint, path: Path) -> float:
    """Return the shortest distance in metres from ``point`` to any leg of ``path``."""

    return prepare_path(path).distance_to(point)


def prepare_path(path: Path) -> PreparedPath:
    """Return the cached metric representation of ``path``."""

    with _prepared_cache_lock:
        cached = _prepared_cache.get(path)
    if cached is not None:
        return cached
    transformer = _build_local_transformer(path.points)
    metric = _project_points(path.points, transformer)
    prepared = PreparedPath(
        path=path,
        transformer=transformer,
        metric_points=metric,
        line=LineString(metric),
    )
    with _prepared_cache_lock:
        _prepared_cache[path] = prepared
    return prepared


def clear_path_cache() -> None:
    with _prepared_cache_lock:
        _prepared_cache.clear()


def _build_local_transformer(points: Sequence[GeoPoint]) -> Transformer:
    """Build an azimuthal equidistant transformer centred on the coordinates."""

    mean_lat = float(np.mean([pt.lat for pt in points]))
    mean_lon = float(np.mean([pt.lon for pt in points]))
    target_crs = CRS.from_dict(
        {
            "proj": "aeqd",
            "lat_0": mean_lat,
            "lon_0": mean_lon,
            "datum": "WGS84",
            "units": "m",
        }
    )
    return Transformer.from_crs(CRS.from_epsg(4326), target_crs, always_xy=True)


def _project_points(
    points: Sequence[GeoPoint], transformer: Transformer
) -> MetricArray:
    """Project points through an existing transformer."""

    lons = np.asarray([pt.lon for pt in points], dtype=float)
    lats = np.asarray([pt.lat for pt in points], dtype=float)
    xs, ys = transformer.transform(lons, lats)
    return np.column_stack((xs, ys)).astype(float, copy=False)


__all__ = [
    "GEOD",
    "PreparedPath",
    "distance_between_points",
    "length_of_path",
    "leg_lengths",
    "point_at_distance_along",
    "distance_point_to_line",
    "prepare_path",
    "clear_path_cache",
]
