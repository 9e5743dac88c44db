"""Smoke tests for the replay command and CSV location source."""

from __future__ import annotations

import json
import logging
from pathlib import Path as FilePath

import pytest

from route_tracker.errors import InvalidPayloadError, LocationSourceError
from route_tracker.location import ReplayLocationSource, load_fixes_csv
from route_tracker.main import load_route_file, main
from route_tracker.models import Fix

from conftest import along_north, straight_path


def _write_route(tmp_path: FilePath, length_m: float = 120.0) -> FilePath:
    path = straight_path(length_m)
    geojson = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": "Market loop"},
                "geometry": {
                    "type": "LineString",
                    "coordinates": [list(pt.as_lonlat()) for pt in path.points],
                },
            }
        ],
    }
    route_file = tmp_path / "market.geojson"
    route_file.write_text(json.dumps(geojson), encoding="utf-8")
    return route_file


def _write_fixes(tmp_path: FilePath, rows: list[str]) -> FilePath:
    fixes_file = tmp_path / "walk.csv"
    header = "timestamp,latitude,longitude,accuracy,speed"
    fixes_file.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
    return fixes_file


def _row(t_s: int, distance_m: float, accuracy: float = 5.0) -> str:
    point = along_north(distance_m)
    return f"{1_714_550_400_000 + t_s * 1000},{point.lat!r},{point.lon!r},{accuracy},1.3"


def test_load_route_file_reads_name(tmp_path: FilePath) -> None:
    route = load_route_file(str(_write_route(tmp_path)))
    assert route.route_id == "market"
    assert route.name == "Market loop"
    assert route.path is not None and len(route.path) == 2


def test_load_fixes_csv_turns_bad_rows_into_errors(tmp_path: FilePath) -> None:
    fixes = _write_fixes(tmp_path, [_row(0, 0.0), "1714550405000,91.0,0.0,5,", _row(10, 30.0)])

    events = load_fixes_csv(fixes)

    assert isinstance(events[0], Fix)
    assert isinstance(events[1], LocationSourceError)
    assert isinstance(events[2], Fix)
    assert events[2].timestamp_ms == 1_714_550_410_000
    with pytest.raises(InvalidPayloadError, match="row 3"):
        load_fixes_csv(fixes, strict=True)


def test_replay_source_can_be_cancelled() -> None:
    source = ReplayLocationSource([LocationSourceError("a"), LocationSourceError("b")])
    seen = []
    for event in source:
        seen.append(event)
        source.cancel()
    assert len(seen) == 1


def test_replay_command_prints_summary(
    tmp_path: FilePath, capsys: pytest.CaptureFixture[str]
) -> None:
    route_file = _write_route(tmp_path)
    rows = [_row(t, d) for t, d in ((0, 0.0), (10, 30.0), (20, 60.0), (30, 90.0), (40, 120.0))]
    rows.insert(2, _row(15, 45.0, accuracy=40.0))
    fixes_file = _write_fixes(tmp_path, rows)

    exit_code = main(
        ["replay", "--route", str(route_file), "--fixes", str(fixes_file), "--remarks", "done"]
    )

    assert exit_code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["summary"]["coverage_percent"] == 100
    assert report["summary"]["points_count"] == 5
    assert report["summary"]["total_distance_m"] == pytest.approx(120.0, abs=1e-3)
    assert report["summary"]["remarks"] == "done"
    assert report["segments"] == {"covered": 4, "total": 4}
    assert report["low_quality_fixes"] == 1
    assert report["unsynced_points"] == 0


def test_replay_requires_route_source(
    tmp_path: FilePath, caplog: pytest.LogCaptureFixture
) -> None:
    fixes_file = _write_fixes(tmp_path, [_row(0, 0.0)])
    with caplog.at_level(logging.ERROR, logger="route_tracker.main"):
        assert main(["replay", "--fixes", str(fixes_file)]) == 1
    failures = [r for r in caplog.records if "Replay failed" in r.getMessage()]
    assert [r.name for r in failures] == ["route_tracker.main"]
