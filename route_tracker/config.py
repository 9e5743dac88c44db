"""Central configuration for the route coverage tracker.

All values are constants imported by the rest of the package. Each one can be
overridden through an environment variable (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except ImportError:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# On-route detection
# ---------------------------------------------------------------------------
# A fix within this many metres of the route polyline counts as on route.
ON_ROUTE_THRESHOLD_M = _env_float("ON_ROUTE_THRESHOLD_M", 25.0)

# Fixes reporting a worse horizontal accuracy (metres) are dropped entirely.
ACCURACY_THRESHOLD_M = _env_float("ACCURACY_THRESHOLD_M", 25.0)

# Consecutive off-route fixes needed before the off-route warning is raised.
OFF_ROUTE_ALERT_STREAK = _env_int("OFF_ROUTE_ALERT_STREAK", 3)

# Distance reported while the route geometry is unknown.
NO_ROUTE_DISTANCE_M = 9999.0


# ---------------------------------------------------------------------------
# Coverage
# ---------------------------------------------------------------------------
# Target length (metres) of one coverage unit along the route.
SEGMENT_LENGTH_M = _env_float("SEGMENT_LENGTH_M", 30.0)

# A segment is covered once a fix comes within this radius of its midpoint.
COVERAGE_THRESHOLD_M = _env_float("COVERAGE_THRESHOLD_M", 25.0)

# Number of prepared (projected) route geometries kept in memory.
PATH_CACHE_SIZE = _env_int("PATH_CACHE_SIZE", 32)


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------
# Persist a fix when this many seconds elapsed since the last sampled point ...
SAMPLE_MIN_INTERVAL_S = _env_float("SAMPLE_MIN_INTERVAL_S", 10.0)
# ... or when it moved at least this many metres away from it.
SAMPLE_MIN_DISTANCE_M = _env_float("SAMPLE_MIN_DISTANCE_M", 20.0)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------
# Upper bound on points waiting for upload. Oldest points are dropped beyond it.
PENDING_QUEUE_MAX_POINTS = _env_int("PENDING_QUEUE_MAX_POINTS", 5000)

# Maximum points sent per append call. Set to 0 to send the whole queue.
FLUSH_BATCH_MAX_POINTS = _env_int("FLUSH_BATCH_MAX_POINTS", 500)

# Seconds the flush worker waits before retrying after a failed append.
FLUSH_RETRY_INTERVAL_S = _env_float("FLUSH_RETRY_INTERVAL_S", 5.0)

# Seconds end() waits for an in-flight flush before giving up on it.
FLUSH_STOP_TIMEOUT_S = _env_float("FLUSH_STOP_TIMEOUT_S", 30.0)


# ---------------------------------------------------------------------------
# Storage service
# ---------------------------------------------------------------------------
# Base URL of the run storage REST API.
STORAGE_API_URL = os.getenv("ROUTE_TRACKER_API_URL", "http://localhost:5000/api")

# Request timeout in seconds.
REQUEST_TIMEOUT = _env_float("REQUEST_TIMEOUT", 15.0)

# HTTP session pool sizes.
HTTP_POOL_CONNECTIONS = 4
HTTP_POOL_MAXSIZE = 4

# Transport-level retries for 5xx responses and connection failures.
HTTP_MAX_RETRIES = _env_int("HTTP_MAX_RETRIES", 3)
HTTP_BACKOFF_FACTOR = _env_float("HTTP_BACKOFF_FACTOR", 1.0)

# Log every storage request at DEBUG level with its payload size.
STORAGE_DEBUG_REQUESTS = _env_bool("STORAGE_DEBUG_REQUESTS", False)
