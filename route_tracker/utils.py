"""General utility helpers shared across modules."""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
import json
from datetime import datetime, date, timezone
from decimal import Decimal
import math
import numbers
from typing import Any


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not to even)."""

    return int(math.floor(value + 0.5))


def format_timestamp_ms(timestamp_ms: int) -> str:
    """Format epoch milliseconds as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""

    moment = datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp_ms(value: Any) -> int:
    """Return epoch milliseconds for numeric millis, datetimes or ISO-8601 strings."""

    if isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, numbers.Real):
        if not math.isfinite(float(value)):
            raise ValueError(f"Non-finite timestamp: {value!r}")
        return int(value)
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty timestamp")
        try:
            return int(float(text))
        except ValueError:
            pass
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(round(moment.timestamp() * 1000))


def _normalise_value(value: Any) -> Any:
    """Convert objects to JSON-friendly representations."""

    if is_dataclass(value) and not isinstance(value, type):
        return _normalise_value(asdict(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    if isinstance(value, set):
        return sorted(_normalise_value(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [_normalise_value(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _normalise_value(val) for key, val in value.items()}
    return value


def json_dumps_sorted(value: Any, *, indent: int | None = None) -> str:
    """Return canonical JSON for reports and comparisons."""

    normalised = _normalise_value(value)
    if indent is None:
        return json.dumps(normalised, sort_keys=True, separators=(",", ":"))
    return json.dumps(normalised, sort_keys=True, indent=indent)
