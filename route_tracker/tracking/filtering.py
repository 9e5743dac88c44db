"""Accuracy gate and on-route classification for incoming fixes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import (
    ACCURACY_THRESHOLD_M,
    NO_ROUTE_DISTANCE_M,
    OFF_ROUTE_ALERT_STREAK,
    ON_ROUTE_THRESHOLD_M,
)
from ..geometry.primitives import distance_point_to_line
from ..models import Fix, Path


@dataclass(frozen=True, slots=True)
class FixEvaluation:
    """Outcome of the position filter for a single fix."""

    accepted: bool
    is_on_route: bool
    distance_to_route_m: float
    route_known: bool = True


def evaluate_fix(
    fix: Fix,
    path: Optional[Path],
    on_route_threshold_m: float = ON_ROUTE_THRESHOLD_M,
    accuracy_threshold_m: float = ACCURACY_THRESHOLD_M,
) -> FixEvaluation:
    """Classify ``fix`` against the route.

    Fixes less accurate than ``accuracy_threshold_m`` are rejected outright.
    Without a route geometry the fix is accepted but its on-route status is
    unknown: ``is_on_route`` is False and the distance is a sentinel.
    """

    if fix.accuracy_m > accuracy_threshold_m:
        return FixEvaluation(
            accepted=False,
            is_on_route=False,
            distance_to_route_m=NO_ROUTE_DISTANCE_M,
            route_known=path is not None,
        )
    if path is None:
        return FixEvaluation(
            accepted=True,
            is_on_route=False,
            distance_to_route_m=NO_ROUTE_DISTANCE_M,
            route_known=False,
        )
    distance = distance_point_to_line(fix.position, path)
    return FixEvaluation(
        accepted=True,
        is_on_route=distance <= on_route_threshold_m,
        distance_to_route_m=distance,
    )


class OffRouteMonitor:
    """Track consecutive off-route fixes and count distinct off-route incidents."""

    def __init__(self, alert_streak: int = OFF_ROUTE_ALERT_STREAK) -> None:
        if alert_streak < 1:
            raise ValueError("alert_streak must be >= 1")
        self.alert_streak = alert_streak
        self.streak = 0
        self.incident_count = 0

    def update(self, evaluation: FixEvaluation) -> int:
        """Fold an accepted evaluation into the streak and return the new value."""

        if not evaluation.accepted or not evaluation.route_known:
            return self.streak
        if evaluation.is_on_route:
            self.streak = 0
        else:
            if self.streak == 0:
                self.incident_count += 1
            self.streak += 1
        return self.streak

    @property
    def alert(self) -> bool:
        return self.streak >= self.alert_streak


__all__ = ["FixEvaluation", "evaluate_fix", "OffRouteMonitor"]
