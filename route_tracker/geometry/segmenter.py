"""Split a route path into fixed-length coverage segments."""

from __future__ import annotations

import logging
import math
import uuid
from typing import List

from ..models import Path, Segment
from .primitives import length_of_path, point_at_distance_along

LOGGER = logging.getLogger(__name__)


def generate_segments(path: Path, segment_length_m: float) -> List[Segment]:
    """Return ordered coverage segments of roughly ``segment_length_m`` metres.

    Each segment is represented by the point halfway through its slice of the
    path. A trailing slice whose centre lies beyond the end of the path is
    dropped, so short paths may yield no segments at all.
    """

    if segment_length_m <= 0:
        raise ValueError("segment_length_m must be greater than zero")
    total_length = length_of_path(path)
    count = math.ceil(total_length / segment_length_m)
    segments: List[Segment] = []
    for index in range(count):
        center = index * segment_length_m + segment_length_m / 2.0
        if center > total_length:
            break
        segments.append(
            Segment(
                id=uuid.uuid4().hex,
                midpoint=point_at_distance_along(path, center),
            )
        )
    LOGGER.debug(
        "Generated %d segments of %.1fm over %.1fm path",
        len(segments),
        segment_length_m,
        total_length,
    )
    return segments
