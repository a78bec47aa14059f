"""httpx client for the SigNoz query API.

Builds one fixed builder-query shape (sum aggregation, sum over space and
time, optional tag equality filter) and reads back the nested
``data.result[0].series[0].values`` list. Only the first result's first
series is ever consulted.

Values arrive as string-encoded floats and are parsed or rejected per point.
Timestamps may be integer or float epoch milliseconds; both are normalized to
``int`` milliseconds so buckets from separate queries join exactly.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Any

import httpx

from pulsebar.metrics.models import TimePoint

logger = logging.getLogger(__name__)

QUERY_RANGE_PATH = "/api/v4/query_range"
SERVICES_PATH = "/api/v1/services"
TRACES_PATH = "/api/v1/traces"
ERRORS_PATH = "/api/v1/errors"

API_KEY_HEADER = "SIGNOZ-API-KEY"


class QueryMode(str, Enum):
    SCALAR = "scalar"  # one value for the whole window
    SERIES = "series"  # one value per bucket


class SignozError(Exception):
    """Raised internally when the backend gives no usable response."""


# ── Query body ───────────────────────────────────────────────────────────────


def build_query_body(
    metric: str,
    start_ms: int,
    end_ms: int,
    step: int,
    mode: QueryMode,
    tag: tuple[str, str] | None = None,
) -> dict[str, Any]:
    """Builder-query request body for a single summed metric."""
    items: list[dict[str, Any]] = []
    if tag is not None:
        key, value = tag
        items.append(
            {
                "key": {"key": key, "dataType": "string", "type": "tag", "isColumn": False},
                "op": "=",
                "value": value,
            }
        )

    query = {
        "queryName": "A",
        "expression": "A",
        "dataSource": "metrics",
        "aggregateOperator": "sum",
        "aggregateAttribute": {
            "key": metric,
            "dataType": "float64",
            "type": "Sum",
            "isColumn": True,
        },
        "timeAggregation": "sum",
        "spaceAggregation": "sum",
        "filters": {"op": "AND", "items": items},
        "groupBy": [],
        "reduceTo": "sum",
        "stepInterval": step,
        "disabled": False,
    }
    return {
        "start": start_ms,
        "end": end_ms,
        "step": step,
        "compositeQuery": {
            "queryType": "builder",
            "panelType": "value" if mode is QueryMode.SCALAR else "graph",
            "builderQueries": {"A": query},
        },
    }


# ── Response parsing ─────────────────────────────────────────────────────────


def parse_wire_float(raw: Any) -> float | None:
    """Parse a string-encoded float; anything else is rejected."""
    if not isinstance(raw, str):
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_wire_timestamp(raw: Any) -> int | None:
    """Normalize integer or float epoch milliseconds to ``int``."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    if isinstance(raw, float):
        if not math.isfinite(raw):
            return None
        return int(round(raw))
    return raw


def parse_series(body: Any) -> list[TimePoint] | None:
    """Points of the first series of the first result.

    ``None`` when any nesting level is missing or the series has no points.
    """
    try:
        values = body["data"]["result"][0]["series"][0]["values"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(values, list):
        return None

    points: list[TimePoint] = []
    for raw in values:
        if not isinstance(raw, dict):
            continue
        ts = parse_wire_timestamp(raw.get("timestamp"))
        value = parse_wire_float(raw.get("value"))
        if ts is None or value is None:
            logger.debug("Rejected series point: %r", raw)
            continue
        points.append(TimePoint(timestamp=ts, value=value))
    return points or None


def _parse_services(body: Any) -> list[str]:
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        return [
            s["serviceName"]
            for s in body["data"]
            if isinstance(s, dict) and isinstance(s.get("serviceName"), str)
        ]
    if isinstance(body, list):
        return [s for s in body if isinstance(s, str)]
    return []


def _parse_count(body: Any) -> int | None:
    if not isinstance(body, dict):
        return None
    total = body.get("total")
    if isinstance(total, int) and not isinstance(total, bool):
        return total
    data = body.get("data")
    if isinstance(data, list):
        return len(data)
    return None


# ── Client ───────────────────────────────────────────────────────────────────


class SignozClient:
    """Synchronous httpx client for the SigNoz query and listing endpoints."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    @property
    def _headers(self) -> dict[str, str]:
        return {API_KEY_HEADER: self._api_key}

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.request(
                    method,
                    f"{self._base_url}{path}",
                    headers=self._headers,
                    params=params,
                    json=json_data,
                )
        except httpx.TimeoutException as e:
            raise SignozError(f"{path} timed out") from e
        except httpx.HTTPError as e:
            raise SignozError(f"{path} unreachable: {e}") from e

        if resp.status_code != 200:
            raise SignozError(f"{path} returned {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise SignozError(f"{path} returned invalid JSON") from e

    # ── High-level methods ───────────────────────────────────────────────

    def list_services(self) -> list[str] | None:
        """GET /api/v1/services. ``None`` means the backend is unreachable."""
        try:
            body = self._request("GET", SERVICES_PATH)
        except SignozError as e:
            logger.debug("SigNoz liveness check failed: %s", e)
            return None
        return _parse_services(body)

    def query(
        self,
        metric: str,
        start_ms: int,
        end_ms: int,
        step: int,
        mode: QueryMode = QueryMode.SERIES,
        tag: tuple[str, str] | None = None,
    ) -> list[TimePoint] | None:
        """Run one builder query; ``None`` when it failed or had no data."""
        body = build_query_body(metric, start_ms, end_ms, step, mode, tag)
        try:
            resp = self._request("POST", QUERY_RANGE_PATH, json_data=body)
        except SignozError as e:
            logger.debug("Query for %s failed: %s", metric, e)
            return None
        return parse_series(resp)

    def query_scalar(
        self,
        metric: str,
        start_ms: int,
        end_ms: int,
        step: int,
        tag: tuple[str, str] | None = None,
    ) -> float | None:
        """Whole-window total of ``metric``; ``None`` when there was no data."""
        points = self.query(metric, start_ms, end_ms, step, QueryMode.SCALAR, tag)
        if points is None:
            return None
        # A window that straddles a step boundary comes back as two buckets
        return sum(p.value for p in points)

    def count(self, path: str, start_ms: int, end_ms: int) -> int | None:
        """Total of a listing endpoint (traces, errors) over the window."""
        params = {"start": start_ms, "end": end_ms, "limit": 1}
        try:
            body = self._request("GET", path, params=params)
        except SignozError as e:
            logger.debug("Count from %s failed: %s", path, e)
            return None
        return _parse_count(body)

    def trace_count(self, start_ms: int, end_ms: int) -> int | None:
        return self.count(TRACES_PATH, start_ms, end_ms)

    def error_count(self, start_ms: int, end_ms: int) -> int | None:
        return self.count(ERRORS_PATH, start_ms, end_ms)
