"""REST client for the run storage service."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Type

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    HTTP_BACKOFF_FACTOR,
    HTTP_MAX_RETRIES,
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    REQUEST_TIMEOUT,
    STORAGE_API_URL,
    STORAGE_DEBUG_REQUESTS,
)
from ..errors import (
    InvalidPayloadError,
    PersistenceFailure,
    RouteNotFoundError,
    StorageError,
    StorageUnavailableError,
)
from ..models import RouteRecord, RunSummary, TrackedPoint
from ..payloads import route_from_payload, summary_to_payload, tracked_points_to_payload
from .base import RunStorage

LOGGER = logging.getLogger(__name__)

# Transient upstream failures; 4xx answers are final and go to classify_failure.
RETRY_STATUSES = (500, 502, 503, 504)


def build_storage_session(
    max_retries: int = HTTP_MAX_RETRIES,
    backoff_factor: float = HTTP_BACKOFF_FACTOR,
) -> requests.Session:
    """Return a JSON session whose adapter retries GET and POST on 5xx."""

    retry = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset({"GET", "POST"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
        max_retries=retry,
    )
    session = requests.Session()
    for prefix in ("http://", "https://"):
        session.mount(prefix, adapter)
    session.headers.update(
        {"Accept": "application/json", "Content-Type": "application/json"}
    )
    return session


class HttpRunStorage(RunStorage):
    """Talk JSON to the storage REST API.

    Endpoints:
        ``GET  /routes/{id}``  route row with a GeoJSON ``geom``
        ``POST /runs/start``   ``{route_id, user_id, start_time}`` -> run row
        ``POST /runs/point``   ``{run_id, point: [...]}``
        ``POST /runs/end``     run summary
    """

    def __init__(
        self,
        base_url: str = STORAGE_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else build_storage_session()
        self.timeout = timeout

    def get_route(self, route_id: str) -> RouteRecord:
        data = self._request(
            "GET", f"routes/{route_id}", context=f"Route {route_id} fetch"
        )
        if not isinstance(data, dict):
            raise InvalidPayloadError(f"Route {route_id} response is not an object")
        return route_from_payload(data)

    def start_run(self, route_id: str, user_id: str, start_time: str) -> str:
        data = self._request(
            "POST",
            "runs/start",
            payload={
                "route_id": route_id,
                "user_id": user_id,
                "start_time": start_time,
            },
            context=f"Run start for route {route_id}",
        )
        run_id = data.get("run_id") if isinstance(data, dict) else None
        if run_id is None:
            raise InvalidPayloadError("Run start response has no run_id")
        LOGGER.info("Started run %s on route %s for user %s", run_id, route_id, user_id)
        return str(run_id)

    def append_tracked_points(
        self, run_id: str, points: Sequence[TrackedPoint]
    ) -> None:
        if not points:
            return
        payload: Dict[str, Any] = {
            "run_id": run_id,
            "point": tracked_points_to_payload(points),
        }
        self._request(
            "POST",
            "runs/point",
            payload=payload,
            context=f"Append of {len(points)} points to run {run_id}",
            failure_cls=PersistenceFailure,
        )

    def end_run(self, run_id: str, summary: RunSummary) -> None:
        self._request(
            "POST",
            "runs/end",
            payload=summary_to_payload(run_id, summary),
            context=f"Run end for {run_id}",
        )
        LOGGER.info(
            "Reported summary for run %s (coverage=%d%%, distance=%.1fm)",
            run_id,
            summary.coverage_percent,
            summary.total_distance_m,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        context: str,
        payload: Optional[Dict[str, Any]] = None,
        failure_cls: Type[StorageError] = StorageError,
    ) -> Any:
        url = f"{self.base_url}/{path}"
        if STORAGE_DEBUG_REQUESTS:
            LOGGER.debug("%s %s payload_keys=%s", method, url, sorted(payload or {}))
        try:
            if method == "GET":
                response = self.session.get(url, timeout=self.timeout)
            else:
                response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise StorageUnavailableError(f"{context} failed: {exc}") from exc
        status = response.status_code
        if status >= 400:
            raise classify_failure(response, context, failure_cls)
        return _safe_json(response)


def classify_failure(
    response: requests.Response,
    context: str,
    failure_cls: Type[StorageError] = StorageError,
) -> StorageError:
    """Map an error response to the matching storage exception."""

    status = response.status_code
    detail = extract_error(response)

    def with_detail(message: str) -> str:
        return f"{message} | {detail}" if detail else message

    if status == 404 and context.startswith("Route"):
        return RouteNotFoundError(with_detail(f"{context}: not found"))
    if 500 <= status < 600:
        return StorageUnavailableError(with_detail(f"{context}: server error {status}"))
    return failure_cls(with_detail(f"{context}: request failed (status {status})"))


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return the service error message if present."""

    if resp is None:
        return None
    data = _safe_json(resp)
    if data is None:
        return _extract_error_text(resp)
    if not isinstance(data, dict):
        return None
    parts: List[str] = []
    for key in ("error", "message"):
        value = data.get(key)
        if value:
            parts.append(str(value))
    return " | ".join(parts) if parts else None


def _safe_json(resp: requests.Response) -> Optional[Any]:
    """Safely parse JSON; return None if parsing fails."""

    try:
        return resp.json()
    except (ValueError, requests.exceptions.JSONDecodeError) as exc:
        LOGGER.debug("Failed to decode JSON from %s: %s", getattr(resp, "url", "?"), exc)
        return None


def _extract_error_text(resp: requests.Response) -> Optional[str]:
    """Best-effort plain-text extraction when JSON parsing fails."""

    text = getattr(resp, "text", "")
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    return (trimmed[:297] + "...") if len(trimmed) > 300 else trimmed


__all__ = [
    "HttpRunStorage",
    "build_storage_session",
    "classify_failure",
    "extract_error",
]
