"""Location sources feeding fixes into a tracking session.

A source is any iterable yielding :class:`Fix` objects, or
:class:`LocationSourceError` when the device reports a problem instead of a
position. :class:`ReplayLocationSource` replays a recorded walk.
"""

from __future__ import annotations

import logging
from pathlib import Path as FilePath
import threading
from typing import Iterable, Iterator, List, Optional, Union

import pandas as pd

from .errors import InvalidPayloadError, LocationSourceError
from .models import Fix
from .payloads import fix_from_mapping
from .tracking.session import LocationEvent

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, FilePath]


def load_fixes_csv(path: PathLike, *, strict: bool = False) -> List[LocationEvent]:
    """Read recorded fixes from a CSV file.

    Expected columns: ``timestamp`` (epoch millis or ISO-8601), ``latitude``,
    ``longitude``, ``accuracy`` and optionally ``speed``. Malformed rows raise
    :class:`InvalidPayloadError` when ``strict``; otherwise they are replayed
    as :class:`LocationSourceError` events.
    """

    frame = pd.read_csv(path)
    frame.columns = [str(col).strip().lower() for col in frame.columns]
    events: List[LocationEvent] = []
    for row_number, record in enumerate(frame.to_dict(orient="records"), start=2):
        try:
            events.append(fix_from_mapping(record))
        except InvalidPayloadError as exc:
            if strict:
                raise InvalidPayloadError(f"{path}: row {row_number}: {exc}") from exc
            LOGGER.warning("Skipping row %d of %s: %s", row_number, path, exc)
            events.append(LocationSourceError(f"row {row_number}: {exc}"))
    LOGGER.info("Loaded %d location events from %s", len(events), path)
    return events


class ReplayLocationSource:
    """Yield recorded events, optionally paced by their timestamps."""

    def __init__(
        self,
        events: Iterable[LocationEvent],
        *,
        realtime: bool = False,
        speedup: float = 1.0,
    ) -> None:
        if speedup <= 0:
            raise ValueError("speedup must be greater than zero")
        self._events = list(events)
        self.realtime = realtime
        self.speedup = speedup
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    def __iter__(self) -> Iterator[LocationEvent]:
        previous_ms: Optional[int] = None
        for event in self._events:
            if self._cancelled.is_set():
                LOGGER.debug("Replay cancelled")
                return
            if self.realtime and isinstance(event, Fix):
                if previous_ms is not None and event.timestamp_ms > previous_ms:
                    delay = (event.timestamp_ms - previous_ms) / 1000.0 / self.speedup
                    # Wait on the cancel flag so cancel() interrupts the pause.
                    if self._cancelled.wait(delay):
                        return
                previous_ms = event.timestamp_ms
            yield event


__all__ = ["load_fixes_csv", "ReplayLocationSource"]
