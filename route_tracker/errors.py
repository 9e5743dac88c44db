"""Central error types used across the application."""

from __future__ import annotations


class RouteTrackerError(RuntimeError):
    """Base error for the route tracker."""


class InvalidPayloadError(RouteTrackerError, ValueError):
    """Raised when an input payload is missing fields or has malformed values."""


class StorageError(RouteTrackerError):
    """Base error for storage service failures."""


class StorageUnavailableError(StorageError):
    """Raised when the storage service cannot be reached."""


class RouteNotFoundError(StorageError):
    """Raised when the requested route does not exist."""


class PersistenceFailure(StorageError):
    """Raised when a batch of tracked points could not be appended."""


class LocationSourceError(RouteTrackerError):
    """Reported by a location source instead of a fix (e.g. permission denied)."""


__all__ = [
    "RouteTrackerError",
    "InvalidPayloadError",
    "StorageError",
    "StorageUnavailableError",
    "RouteNotFoundError",
    "PersistenceFailure",
    "LocationSourceError",
]
