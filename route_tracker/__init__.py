"""Route coverage and on-route detection for walked inspection rounds."""

from .errors import (
    InvalidPayloadError,
    LocationSourceError,
    PersistenceFailure,
    RouteTrackerError,
    StorageError,
)
from .models import (
    Fix,
    GeoPoint,
    Path,
    RouteRecord,
    RunSummary,
    Segment,
    SessionStats,
    SessionStatus,
    TrackedPoint,
)
from .tracking import TrackingSession

__all__ = [
    "Fix",
    "GeoPoint",
    "Path",
    "RouteRecord",
    "RunSummary",
    "Segment",
    "SessionStats",
    "SessionStatus",
    "TrackedPoint",
    "TrackingSession",
    "RouteTrackerError",
    "InvalidPayloadError",
    "LocationSourceError",
    "PersistenceFailure",
    "StorageError",
]
