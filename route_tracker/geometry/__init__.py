"""Geodesic primitives and route segmentation."""

from .primitives import (
    PreparedPath,
    distance_between_points,
    distance_point_to_line,
    length_of_path,
    point_at_distance_along,
    prepare_path,
)
from .segmenter import generate_segments

__all__ = [
    "PreparedPath",
    "distance_between_points",
    "distance_point_to_line",
    "length_of_path",
    "point_at_distance_along",
    "prepare_path",
    "generate_segments",
]
