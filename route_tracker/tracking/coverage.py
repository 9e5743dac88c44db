"""Monotonic segment coverage bookkeeping."""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import Iterable, List, Sequence

from ..config import COVERAGE_THRESHOLD_M
from ..geometry.primitives import distance_between_points
from ..models import GeoPoint, Segment
from ..utils import round_half_up

LOGGER = logging.getLogger(__name__)


def mark_covered(
    point: GeoPoint,
    segments: Iterable[Segment],
    threshold_m: float = COVERAGE_THRESHOLD_M,
) -> List[str]:
    """Return ids of uncovered segments whose midpoint lies within ``threshold_m``.

    The segments themselves are not modified.
    """

    newly_covered: List[str] = []
    for segment in segments:
        if segment.covered:
            continue
        if distance_between_points(point, segment.midpoint) <= threshold_m:
            newly_covered.append(segment.id)
    return newly_covered


def coverage_percent(covered: int, total: int) -> int | None:
    """Return the rounded covered share in percent, or None without segments."""

    if total <= 0:
        return None
    return round_half_up(100.0 * covered / total)


class CoverageAccumulator:
    """Own a session's segments and apply coverage updates."""

    def __init__(
        self,
        segments: Sequence[Segment],
        threshold_m: float = COVERAGE_THRESHOLD_M,
    ) -> None:
        self._segments: List[Segment] = [replace(seg) for seg in segments]
        self._threshold_m = threshold_m
        self._covered_count = sum(1 for seg in self._segments if seg.covered)
        self._percent = coverage_percent(self._covered_count, len(self._segments)) or 0

    @property
    def segments(self) -> List[Segment]:
        """Snapshot copies; the live segments only change through :meth:`apply`."""

        return [replace(seg) for seg in self._segments]

    @property
    def total(self) -> int:
        return len(self._segments)

    @property
    def covered_count(self) -> int:
        return self._covered_count

    @property
    def percent(self) -> int:
        return self._percent

    def covered_ids(self) -> List[str]:
        return [seg.id for seg in self._segments if seg.covered]

    def apply(self, point: GeoPoint) -> List[str]:
        """Mark segments near ``point`` covered and return the newly covered ids."""

        if not self._segments:
            return []
        newly = mark_covered(point, self._segments, self._threshold_m)
        if not newly:
            return newly
        targets = set(newly)
        for segment in self._segments:
            if segment.id in targets and not segment.covered:
                segment.covered = True
                self._covered_count += 1
        updated = coverage_percent(self._covered_count, len(self._segments))
        if updated is not None:
            self._percent = updated
        LOGGER.debug(
            "Covered %d new segments (%d/%d, %d%%)",
            len(newly),
            self._covered_count,
            len(self._segments),
            self._percent,
        )
        return newly


__all__ = ["mark_covered", "coverage_percent", "CoverageAccumulator"]
