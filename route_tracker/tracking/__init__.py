"""Per-fix tracking pipeline: filter, coverage, sampling, persistence, session."""

from .coverage import CoverageAccumulator, coverage_percent, mark_covered
from .filtering import FixEvaluation, OffRouteMonitor, evaluate_fix
from .persistence import PendingQueue, PointFlusher
from .sampling import SamplingPolicy
from .session import TrackingSession

__all__ = [
    "CoverageAccumulator",
    "coverage_percent",
    "mark_covered",
    "FixEvaluation",
    "OffRouteMonitor",
    "evaluate_fix",
    "PendingQueue",
    "PointFlusher",
    "SamplingPolicy",
    "TrackingSession",
]
