"""Tests for splitting a route into coverage segments."""

from __future__ import annotations

import pytest

from route_tracker.geometry import generate_segments
from route_tracker.geometry.primitives import distance_between_points

from conftest import ORIGIN, along_north, straight_path


def test_straight_100m_path_yields_three_segments() -> None:
    segments = generate_segments(straight_path(100.0), 30.0)

    assert len(segments) == 3
    centres = [distance_between_points(ORIGIN, seg.midpoint) for seg in segments]
    assert centres == pytest.approx([15.0, 45.0, 75.0], abs=1e-3)
    assert all(not seg.covered for seg in segments)


def test_segments_are_geometrically_deterministic() -> None:
    path = straight_path(250.0)
    first = generate_segments(path, 30.0)
    second = generate_segments(path, 30.0)

    assert [seg.midpoint for seg in first] == [seg.midpoint for seg in second]
    assert {seg.id for seg in first}.isdisjoint({seg.id for seg in second})
    assert len({seg.id for seg in first}) == len(first)


def test_path_shorter_than_half_segment_has_no_segments() -> None:
    assert generate_segments(straight_path(10.0), 30.0) == []


def test_path_of_exactly_one_segment() -> None:
    segments = generate_segments(straight_path(30.0), 30.0)
    assert len(segments) == 1
    assert distance_between_points(segments[0].midpoint, along_north(15.0)) < 1e-3


def test_trailing_partial_segment_included_when_centre_fits() -> None:
    # 80 m: centres at 15, 45, 75 -> the third (60-80 m slice) still counts.
    segments = generate_segments(straight_path(80.0), 30.0)
    assert len(segments) == 3


@pytest.mark.parametrize("length", [0.0, -1.0])
def test_invalid_segment_length_rejected(length: float) -> None:
    with pytest.raises(ValueError):
        generate_segments(straight_path(100.0), length)
