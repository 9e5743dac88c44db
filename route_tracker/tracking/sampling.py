"""Time/distance hysteresis deciding which accepted fixes get persisted."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import SAMPLE_MIN_DISTANCE_M, SAMPLE_MIN_INTERVAL_S
from ..geometry.primitives import distance_between_points
from ..models import Fix, SessionStats, TrackedPoint
from ..utils import format_timestamp_ms
from .filtering import FixEvaluation

LOGGER = logging.getLogger(__name__)


class SamplingPolicy:
    """Select fixes to persist and accumulate distance between them.

    The first accepted fix is always sampled. Later fixes are sampled once
    ``min_interval_s`` seconds have passed or they are ``min_distance_m``
    metres away, both measured from the last sampled point rather than the
    last fix seen.
    """

    def __init__(
        self,
        min_interval_s: float = SAMPLE_MIN_INTERVAL_S,
        min_distance_m: float = SAMPLE_MIN_DISTANCE_M,
    ) -> None:
        self.min_interval_s = min_interval_s
        self.min_distance_m = min_distance_m
        self.stats = SessionStats()
        self._last: Optional[TrackedPoint] = None

    @property
    def last_sampled(self) -> Optional[TrackedPoint]:
        return self._last

    def offer(self, fix: Fix, evaluation: FixEvaluation) -> Optional[TrackedPoint]:
        """Return a :class:`TrackedPoint` when ``fix`` should be persisted."""

        if not evaluation.accepted:
            return None
        step_m = 0.0
        last = self._last
        if last is not None:
            elapsed_s = (fix.timestamp_ms - last.timestamp_ms) / 1000.0
            if elapsed_s < 0:
                LOGGER.debug(
                    "Skipping out-of-order fix at %d (last sampled %d)",
                    fix.timestamp_ms,
                    last.timestamp_ms,
                )
                return None
            step_m = distance_between_points(last.position, fix.position)
            if elapsed_s < self.min_interval_s and step_m < self.min_distance_m:
                return None
        point = TrackedPoint(
            position=fix.position,
            timestamp=format_timestamp_ms(fix.timestamp_ms),
            accuracy_m=fix.accuracy_m,
            speed_mps=fix.speed_mps,
            is_on_route=evaluation.is_on_route,
            distance_to_route_m=evaluation.distance_to_route_m,
            timestamp_ms=fix.timestamp_ms,
        )
        self.stats.points_count += 1
        self.stats.total_distance_m += step_m
        self._last = point
        return point


__all__ = ["SamplingPolicy"]
