"""Command line entry point: replay a recorded walk against a route."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path as FilePath
import sys
from typing import Optional, Sequence

from .config import SEGMENT_LENGTH_M, STORAGE_API_URL
from .errors import InvalidPayloadError, StorageError
from .location import ReplayLocationSource, load_fixes_csv
from .models import RouteRecord, RunSummary
from .payloads import path_from_geojson
from .storage import HttpRunStorage, InMemoryRunStorage, RunStorage
from .tracking import TrackingSession
from .utils import json_dumps_sorted

LOGGER = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="route_tracker",
        description="Route coverage tracking tools.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    replay = sub.add_parser(
        "replay", help="Replay recorded fixes through a tracking session"
    )
    replay.add_argument("--fixes", required=True, help="CSV file of recorded fixes")
    replay.add_argument("--route", help="GeoJSON file holding the route LineString")
    replay.add_argument("--route-id", help="Route identifier (required with --api-url)")
    replay.add_argument("--user-id", default="replay", help="User running the route")
    replay.add_argument(
        "--api-url",
        nargs="?",
        const=STORAGE_API_URL,
        help="Use the storage API instead of in-memory storage",
    )
    replay.add_argument(
        "--segment-length",
        type=float,
        default=SEGMENT_LENGTH_M,
        help="Coverage segment length in metres (default: %(default)s)",
    )
    replay.add_argument("--remarks", default="", help="Remarks attached to the run")
    replay.add_argument(
        "--realtime",
        action="store_true",
        help="Pace the replay using the recorded timestamps",
    )
    replay.add_argument(
        "--speedup", type=float, default=1.0, help="Speed factor for --realtime"
    )
    return parser


def load_route_file(path: str, route_id: Optional[str] = None) -> RouteRecord:
    """Read a GeoJSON route file into a :class:`RouteRecord`."""

    file_path = FilePath(path)
    with file_path.open("r", encoding="utf-8") as handle:
        geojson = json.load(handle)
    name = ""
    if isinstance(geojson, dict):
        props = geojson.get("properties") or {}
        if not props and geojson.get("type") == "FeatureCollection":
            features = geojson.get("features") or [{}]
            props = (features[0] or {}).get("properties") or {}
        name = str(props.get("name") or "")
    return RouteRecord(
        route_id=route_id or file_path.stem,
        name=name or file_path.stem,
        path=path_from_geojson(geojson),
    )


def _build_storage(args: argparse.Namespace) -> tuple[RunStorage, str]:
    if args.api_url:
        if not args.route_id:
            raise InvalidPayloadError("--route-id is required with --api-url")
        return HttpRunStorage(args.api_url), args.route_id
    if not args.route:
        raise InvalidPayloadError("--route is required without --api-url")
    route = load_route_file(args.route, args.route_id)
    return InMemoryRunStorage([route]), route.route_id


def run_replay(args: argparse.Namespace) -> RunSummary:
    storage, route_id = _build_storage(args)
    events = load_fixes_csv(args.fixes)
    session = TrackingSession.start(
        storage,
        route_id,
        args.user_id,
        segment_length_m=args.segment_length,
    )
    source = ReplayLocationSource(events, realtime=args.realtime, speedup=args.speedup)
    status = session.consume(source)
    if not session.flush_pending():
        LOGGER.warning("Some points could not be synced before ending the run")
    summary = session.end(remarks=args.remarks)
    report = {
        "run_id": session.run_id,
        "summary": summary,
        "segments": {
            "covered": status.covered_segments,
            "total": status.total_segments,
        },
        "low_quality_fixes": status.low_quality_fixes,
        "last_error": status.last_error,
        "unsynced_points": len(session.flusher.pending()),
    }
    print(json_dumps_sorted(report, indent=2))
    return summary


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    try:
        if args.command == "replay":
            run_replay(args)
    except (InvalidPayloadError, StorageError, FileNotFoundError) as exc:
        LOGGER.error("Replay failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
