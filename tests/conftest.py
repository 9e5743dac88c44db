"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable geometry factories and a
recording storage fake shared across the tracking tests.
"""
from __future__ import annotations

import os
import sys
import threading
from typing import List, Optional, Sequence

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from route_tracker.errors import PersistenceFailure, StorageError
from route_tracker.geometry.primitives import GEOD
from route_tracker.models import (
    Fix,
    GeoPoint,
    Path,
    RouteRecord,
    RunSummary,
    TrackedPoint,
)
from route_tracker.storage.base import RunStorage

ORIGIN = GeoPoint(lon=-0.1276, lat=51.5072)
NORTH = 0.0
EAST = 90.0


# --- Factory helpers -------------------------------------------------
def offset(point: GeoPoint, azimuth: float, distance_m: float) -> GeoPoint:
    """Return the point ``distance_m`` metres from ``point`` along ``azimuth``."""

    lon, lat, _ = GEOD.fwd(point.lon, point.lat, azimuth, distance_m)
    return GeoPoint(lon=float(lon), lat=float(lat))


def straight_path(length_m: float, start: GeoPoint = ORIGIN) -> Path:
    return Path.from_points([start, offset(start, NORTH, length_m)])


def along_north(distance_m: float, east_m: float = 0.0) -> GeoPoint:
    """Point ``distance_m`` north of the origin, shifted ``east_m`` sideways."""

    point = offset(ORIGIN, NORTH, distance_m)
    if east_m:
        point = offset(point, EAST, east_m)
    return point


def make_fix(
    position: GeoPoint,
    t_s: float = 0.0,
    accuracy_m: float = 5.0,
    speed_mps: Optional[float] = 1.2,
) -> Fix:
    return Fix(
        position=position,
        accuracy_m=accuracy_m,
        speed_mps=speed_mps,
        timestamp_ms=1_700_000_000_000 + int(t_s * 1000),
    )


def make_point(label_s: float) -> TrackedPoint:
    fix = make_fix(along_north(label_s), t_s=label_s)
    return TrackedPoint(
        position=fix.position,
        timestamp=str(fix.timestamp_ms),
        accuracy_m=fix.accuracy_m,
        speed_mps=fix.speed_mps,
        is_on_route=True,
        distance_to_route_m=0.0,
        timestamp_ms=fix.timestamp_ms,
    )


class RecordingStorage(RunStorage):
    """Storage fake recording every call; appends can be made to fail."""

    def __init__(self, path: Optional[Path] = None, fail_appends: int = 0) -> None:
        self.path = path
        self.fail_appends = fail_appends
        self.fail_end = False
        self.append_calls: List[List[TrackedPoint]] = []
        self.appended: List[TrackedPoint] = []
        self.summaries: List[RunSummary] = []
        self.started: List[tuple] = []
        self.appended_event = threading.Event()

    def get_route(self, route_id: str) -> RouteRecord:
        return RouteRecord(route_id=route_id, name="Test route", path=self.path)

    def start_run(self, route_id: str, user_id: str, start_time: str) -> str:
        self.started.append((route_id, user_id, start_time))
        return f"run-{len(self.started)}"

    def append_tracked_points(
        self, run_id: str, points: Sequence[TrackedPoint]
    ) -> None:
        self.append_calls.append(list(points))
        if self.fail_appends > 0:
            self.fail_appends -= 1
            raise PersistenceFailure("service unavailable")
        self.appended.extend(points)
        self.appended_event.set()

    def end_run(self, run_id: str, summary: RunSummary) -> None:
        if self.fail_end:
            raise StorageError("end rejected")
        self.summaries.append(summary)


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def route_300m() -> Path:
    return straight_path(300.0)
