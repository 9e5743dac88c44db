"""Contract the tracking engine needs from the run storage service."""

from __future__ import annotations

from typing import Sequence

from ..models import RouteRecord, RunSummary, TrackedPoint


class RunStorage:
    """Base class for storage backends.

    Every method raises :class:`~route_tracker.errors.StorageError` (or a
    subclass) when the service rejects the call or cannot be reached.
    """

    def get_route(self, route_id: str) -> RouteRecord:
        raise NotImplementedError

    def start_run(self, route_id: str, user_id: str, start_time: str) -> str:
        """Register a new run and return its identifier."""

        raise NotImplementedError

    def append_tracked_points(
        self, run_id: str, points: Sequence[TrackedPoint]
    ) -> None:
        """Persist a batch of points. The whole batch succeeds or fails."""

        raise NotImplementedError

    def end_run(self, run_id: str, summary: RunSummary) -> None:
        raise NotImplementedError


__all__ = ["RunStorage"]
