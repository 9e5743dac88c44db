"""Tracking session: one run's lifecycle from first fix to summary.

The session owns every piece of mutable run state (segments, streak, stats,
pending queue). Fixes are pushed in one at a time through
:meth:`TrackingSession.process_fix`; display code pulls snapshots through
:meth:`TrackingSession.status`.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional, Union

from ..config import (
    ACCURACY_THRESHOLD_M,
    COVERAGE_THRESHOLD_M,
    NO_ROUTE_DISTANCE_M,
    OFF_ROUTE_ALERT_STREAK,
    ON_ROUTE_THRESHOLD_M,
    SEGMENT_LENGTH_M,
)
from ..errors import LocationSourceError, StorageError
from ..geometry.segmenter import generate_segments
from ..models import (
    Fix,
    GeoPoint,
    Path,
    RunSummary,
    SessionStats,
    SessionStatus,
)
from ..storage.base import RunStorage
from ..utils import utc_now_iso
from .coverage import CoverageAccumulator
from .filtering import FixEvaluation, OffRouteMonitor, evaluate_fix
from .persistence import PointFlusher
from .sampling import SamplingPolicy

LOGGER = logging.getLogger(__name__)

LocationEvent = Union[Fix, LocationSourceError]


class TrackingSession:
    """Orchestrate filtering, coverage, sampling and persistence for one run.

    States move ``idle -> active -> ended`` only. Once ended, fixes are
    ignored and the summary is frozen.
    """

    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"

    def __init__(
        self,
        path: Optional[Path],
        storage: RunStorage,
        run_id: str,
        *,
        segment_length_m: float = SEGMENT_LENGTH_M,
        on_route_threshold_m: float = ON_ROUTE_THRESHOLD_M,
        accuracy_threshold_m: float = ACCURACY_THRESHOLD_M,
        coverage_threshold_m: float = COVERAGE_THRESHOLD_M,
        off_route_alert_streak: int = OFF_ROUTE_ALERT_STREAK,
        sampling: Optional[SamplingPolicy] = None,
        flusher: Optional[PointFlusher] = None,
    ) -> None:
        self.path = path
        self.storage = storage
        self.run_id = run_id
        self.on_route_threshold_m = on_route_threshold_m
        self.accuracy_threshold_m = accuracy_threshold_m
        segments = generate_segments(path, segment_length_m) if path else []
        if path is not None and not segments:
            LOGGER.info(
                "Route for run %s is shorter than one %.1fm segment; coverage stays 0",
                run_id,
                segment_length_m,
            )
        self.coverage = CoverageAccumulator(segments, coverage_threshold_m)
        self.off_route = OffRouteMonitor(off_route_alert_streak)
        self.sampling = sampling or SamplingPolicy()
        self.flusher = flusher or PointFlusher(storage, run_id)
        self.state = self.IDLE
        self.summary: Optional[RunSummary] = None
        self.fixes_received = 0
        self.low_quality_fixes = 0
        self.last_error: Optional[str] = None
        self._warning: Optional[str] = None
        self._is_on_route = False
        self._distance_to_route_m = NO_ROUTE_DISTANCE_M
        self._last_position: Optional[GeoPoint] = None
        self._lock = threading.RLock()

    @classmethod
    def start(
        cls,
        storage: RunStorage,
        route_id: str,
        user_id: str,
        *,
        start_time: Optional[str] = None,
        **kwargs,
    ) -> "TrackingSession":
        """Fetch the route, register a run and return a session for it."""

        route = storage.get_route(route_id)
        run_id = storage.start_run(route.route_id, user_id, start_time or utc_now_iso())
        session = cls(route.path, storage, run_id, **kwargs)
        LOGGER.info(
            "Tracking run %s on route %s (%s) with %d segments",
            run_id,
            route.route_id,
            route.name or "unnamed",
            session.coverage.total,
        )
        return session

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------
    def process_fix(self, fix: Fix) -> SessionStatus:
        with self._lock:
            if self.state == self.ENDED:
                LOGGER.debug("Ignoring fix at %d; run %s ended", fix.timestamp_ms, self.run_id)
                return self._status_locked()
            self.state = self.ACTIVE
            self.fixes_received += 1
            self._last_position = fix.position
            evaluation = evaluate_fix(
                fix,
                self.path,
                on_route_threshold_m=self.on_route_threshold_m,
                accuracy_threshold_m=self.accuracy_threshold_m,
            )
            if not evaluation.accepted:
                self.low_quality_fixes += 1
                LOGGER.debug(
                    "Dropped low-accuracy fix (%.1fm > %.1fm)",
                    fix.accuracy_m,
                    self.accuracy_threshold_m,
                )
                return self._status_locked()
            self._apply_evaluation(fix, evaluation)
            point = self.sampling.offer(fix, evaluation)
            if point is not None:
                self.flusher.submit(point)
            return self._status_locked()

    def report_location_error(self, error: Union[str, Exception]) -> None:
        """Record a location source failure; the session keeps running."""

        message = str(error) or error.__class__.__name__
        with self._lock:
            self.last_error = message
        LOGGER.warning("Location source error on run %s: %s", self.run_id, message)

    def consume(self, source: Iterable[LocationEvent]) -> SessionStatus:
        """Feed events from ``source`` until it is exhausted or the run ends.

        An exhausted source leaves the run open; call :meth:`end` (or use the
        session as a context manager) to stop the flush worker.
        """

        for event in source:
            if self.state == self.ENDED:
                break
            if isinstance(event, Exception):
                self.report_location_error(event)
                continue
            self.process_fix(event)
        return self.status()

    def _apply_evaluation(self, fix: Fix, evaluation: FixEvaluation) -> None:
        if evaluation.route_known:
            self._is_on_route = evaluation.is_on_route
            self._distance_to_route_m = evaluation.distance_to_route_m
            previous = self.off_route.streak
            streak = self.off_route.update(evaluation)
            if streak == self.off_route.alert_streak and previous < streak:
                LOGGER.warning(
                    "Run %s off route for %d consecutive fixes (%.1fm away)",
                    self.run_id,
                    streak,
                    evaluation.distance_to_route_m,
                )
        self.coverage.apply(fix.position)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def status(self) -> SessionStatus:
        with self._lock:
            return self._status_locked()

    def _status_locked(self) -> SessionStatus:
        stats = self.sampling.stats
        return SessionStatus(
            state=self.state,
            coverage_percent=self.coverage.percent,
            is_on_route=self._is_on_route,
            distance_to_route_m=self._distance_to_route_m,
            off_route_streak=self.off_route.streak,
            off_route_alert=self.off_route.alert,
            off_route_incidents=self.off_route.incident_count,
            stats=SessionStats(stats.points_count, stats.total_distance_m),
            covered_segments=self.coverage.covered_count,
            total_segments=self.coverage.total,
            low_quality_fixes=self.low_quality_fixes,
            pending_points=len(self.flusher.queue),
            last_error=self.last_error,
            last_warning=self._warning or self.flusher.last_failure,
            last_position=self._last_position,
        )

    def flush_pending(self) -> bool:
        """Synchronously upload queued points. Returns False if a batch failed."""

        if self.state == self.ENDED:
            return len(self.flusher.queue) == 0
        return self.flusher.drain()

    def end(self, remarks: str = "", end_time: Optional[str] = None) -> RunSummary:
        """Stop tracking, freeze the summary and report it to storage.

        Calling ``end`` again returns the already frozen summary.
        """

        with self._lock:
            if self.state == self.ENDED and self.summary is not None:
                return self.summary
            self.state = self.ENDED
            stats = self.sampling.stats
            self.summary = RunSummary(
                end_time=end_time or utc_now_iso(),
                coverage_percent=self.coverage.percent,
                off_route_incident_count=self.off_route.incident_count,
                total_distance_m=stats.total_distance_m,
                points_count=stats.points_count,
                remarks=remarks,
            )
        self.flusher.stop()
        try:
            self.storage.end_run(self.run_id, self.summary)
        except StorageError as exc:
            with self._lock:
                self._warning = f"Failed to report run summary: {exc}"
            LOGGER.warning("Failed to report summary for run %s: %s", self.run_id, exc)
        LOGGER.info(
            "Run %s ended: coverage=%d%% distance=%.1fm points=%d incidents=%d",
            self.run_id,
            self.summary.coverage_percent,
            self.summary.total_distance_m,
            self.summary.points_count,
            self.summary.off_route_incident_count,
        )
        return self.summary

    def close(self) -> RunSummary:
        """End the run if still open so the flush worker is always stopped."""

        return self.end()

    def __enter__(self) -> "TrackingSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["TrackingSession", "LocationEvent"]
