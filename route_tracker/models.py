"""Dataclasses describing routes, fixes and run state."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Tuple

from .errors import InvalidPayloadError

LatLon = Tuple[float, float]
LonLat = Tuple[float, float]


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """WGS84 position in decimal degrees.

    Longitude comes first, matching GeoJSON. Use :meth:`from_latlon` and
    :meth:`as_latlon` when talking to map widgets or GPS APIs that order the
    pair the other way round.
    """

    lon: float
    lat: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lon) and math.isfinite(self.lat)):
            raise InvalidPayloadError(f"Non-finite coordinate: {self.lon}, {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise InvalidPayloadError(f"Longitude out of range: {self.lon}")
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidPayloadError(f"Latitude out of range: {self.lat}")

    @classmethod
    def from_lonlat(cls, pair: Sequence[float]) -> "GeoPoint":
        lon, lat = _unpack_pair(pair)
        return cls(lon=lon, lat=lat)

    @classmethod
    def from_latlon(cls, pair: Sequence[float]) -> "GeoPoint":
        lat, lon = _unpack_pair(pair)
        return cls(lon=lon, lat=lat)

    def as_lonlat(self) -> LonLat:
        return (self.lon, self.lat)

    def as_latlon(self) -> LatLon:
        return (self.lat, self.lon)


@dataclass(frozen=True, slots=True)
class Path:
    """Ordered, immutable route polyline with at least two vertices."""

    points: Tuple[GeoPoint, ...]

    def __post_init__(self) -> None:
        if len(self.points) < 2:
            raise InvalidPayloadError("A route path needs at least two points")

    @classmethod
    def from_points(cls, points: Iterable[GeoPoint]) -> "Path":
        return cls(points=tuple(points))

    @classmethod
    def from_lonlat(cls, pairs: Iterable[Sequence[float]]) -> "Path":
        return cls(points=tuple(GeoPoint.from_lonlat(pair) for pair in pairs))

    @classmethod
    def from_latlon(cls, pairs: Iterable[Sequence[float]]) -> "Path":
        return cls(points=tuple(GeoPoint.from_latlon(pair) for pair in pairs))

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[GeoPoint]:
        return iter(self.points)

    def lons(self) -> list[float]:
        return [pt.lon for pt in self.points]

    def lats(self) -> list[float]:
        return [pt.lat for pt in self.points]


@dataclass(slots=True)
class Segment:
    """One coverage unit of the route. ``covered`` only ever goes False -> True."""

    id: str
    midpoint: GeoPoint
    covered: bool = False


@dataclass(frozen=True, slots=True)
class Fix:
    """Raw location sample as delivered by the location source."""

    position: GeoPoint
    accuracy_m: float
    timestamp_ms: int
    speed_mps: Optional[float] = None


@dataclass(frozen=True, slots=True)
class TrackedPoint:
    """Sampled fix handed to storage. Never mutated after creation."""

    position: GeoPoint
    timestamp: str
    accuracy_m: float
    speed_mps: Optional[float]
    is_on_route: bool
    distance_to_route_m: float
    timestamp_ms: int = 0


@dataclass(slots=True)
class SessionStats:
    points_count: int = 0
    total_distance_m: float = 0.0


@dataclass(slots=True)
class RouteRecord:
    """Route as returned by the storage service.

    ``path`` is ``None`` when the stored geometry could not be turned into a
    usable polyline; tracking still runs but on-route checks report unknown.
    """

    route_id: str
    name: str
    path: Optional[Path]
    length_m: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RunSummary:
    end_time: str
    coverage_percent: int
    off_route_incident_count: int
    total_distance_m: float
    points_count: int
    remarks: str = ""


@dataclass(frozen=True, slots=True)
class SessionStatus:
    """Point-in-time view of a tracking session for display."""

    state: str
    coverage_percent: int
    is_on_route: bool
    distance_to_route_m: float
    off_route_streak: int
    off_route_alert: bool
    off_route_incidents: int
    stats: SessionStats
    covered_segments: int
    total_segments: int
    low_quality_fixes: int
    pending_points: int
    last_error: Optional[str] = None
    last_warning: Optional[str] = None
    last_position: Optional[GeoPoint] = None


def _unpack_pair(pair: Sequence[float]) -> Tuple[float, float]:
    if len(pair) < 2:
        raise InvalidPayloadError(f"Expected a coordinate pair, got {pair!r}")
    try:
        return float(pair[0]), float(pair[1])
    except (TypeError, ValueError) as exc:
        raise InvalidPayloadError(f"Non-numeric coordinate pair {pair!r}") from exc


__all__ = [
    "LatLon",
    "LonLat",
    "GeoPoint",
    "Path",
    "Segment",
    "Fix",
    "TrackedPoint",
    "SessionStats",
    "RouteRecord",
    "RunSummary",
    "SessionStatus",
]
