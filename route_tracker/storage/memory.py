"""Dict-backed storage used for offline replays and tests."""

from __future__ import annotations

import itertools
import threading
from typing import Dict, List, Optional, Sequence

from ..errors import RouteNotFoundError, StorageError
from ..models import RouteRecord, RunSummary, TrackedPoint
from .base import RunStorage


class InMemoryRunStorage(RunStorage):
    def __init__(self, routes: Optional[Sequence[RouteRecord]] = None) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self.routes: Dict[str, RouteRecord] = {
            route.route_id: route for route in routes or []
        }
        self.runs: Dict[str, Dict[str, object]] = {}
        self.points: Dict[str, List[TrackedPoint]] = {}
        self.summaries: Dict[str, RunSummary] = {}

    def add_route(self, route: RouteRecord) -> None:
        with self._lock:
            self.routes[route.route_id] = route

    def get_route(self, route_id: str) -> RouteRecord:
        with self._lock:
            route = self.routes.get(str(route_id))
        if route is None:
            raise RouteNotFoundError(f"Route {route_id} not found")
        return route

    def start_run(self, route_id: str, user_id: str, start_time: str) -> str:
        with self._lock:
            run_id = f"run-{next(self._ids)}"
            self.runs[run_id] = {
                "route_id": route_id,
                "user_id": user_id,
                "start_time": start_time,
                "status": "started",
            }
            self.points[run_id] = []
        return run_id

    def append_tracked_points(
        self, run_id: str, points: Sequence[TrackedPoint]
    ) -> None:
        with self._lock:
            if run_id not in self.runs:
                raise StorageError(f"Run {run_id} not found")
            self.points[run_id].extend(points)

    def end_run(self, run_id: str, summary: RunSummary) -> None:
        with self._lock:
            run = self.runs.get(run_id)
            if run is None:
                raise StorageError(f"Run {run_id} not found")
            run["status"] = "completed"
            self.summaries[run_id] = summary


__all__ = ["InMemoryRunStorage"]
