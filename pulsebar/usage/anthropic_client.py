"""httpx client for the hosted Anthropic usage endpoints.

- ``/v1/organizations/usage_report/messages`` with an admin API key: per-model
  token totals.
- ``/api/oauth/usage`` with the Claude Code OAuth token: utilization of the
  rolling usage-limit windows.

Public methods never raise. They return ``None`` when the source gave nothing
usable so the caller can keep whatever it already had.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx
from pydantic import ValidationError

from pulsebar.usage.models import LimitWindow, ModelStat, rank_models
from pulsebar.usage.wire import LimitEntry, OAuthUsageResponse, UsageReportResponse

logger = logging.getLogger(__name__)

USAGE_REPORT_PATH = "/v1/organizations/usage_report/messages"
OAUTH_USAGE_PATH = "/api/oauth/usage"

# Payload key -> canonical window label, in display order
LIMIT_WINDOWS: tuple[tuple[str, str], ...] = (
    ("five_hour", "5-hour"),
    ("seven_day", "7-day"),
    ("seven_day_sonnet", "Sonnet"),
)


class UsageApiError(Exception):
    """Raised internally when an Anthropic endpoint gives no usable response."""


@dataclass
class UsageReport:
    """Token totals summed over every entry of a usage report."""

    total_tokens: int = 0
    model_breakdown: list[ModelStat] = field(default_factory=list)


def _parse_resets_at(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable resets_at: %r", raw)
        return None


def summarize_usage_report(payload: UsageReportResponse) -> UsageReport:
    total = 0
    per_model: dict[str, int] = {}
    for entry in payload.data or []:
        tokens = max(0, entry.input_tokens or 0) + max(0, entry.output_tokens or 0)
        total += tokens
        if entry.model:
            per_model[entry.model] = per_model.get(entry.model, 0) + tokens
    return UsageReport(total_tokens=total, model_breakdown=rank_models(per_model))


def limits_from_payload(payload: OAuthUsageResponse) -> list[LimitWindow]:
    """Map reported windows to ``LimitWindow``s.

    A window whose utilization is null or missing is left out, never zeroed.
    """
    limits: list[LimitWindow] = []
    for key, label in LIMIT_WINDOWS:
        entry: LimitEntry | None = getattr(payload, key)
        if entry is None or entry.utilization is None:
            continue
        limits.append(
            LimitWindow(
                label=label,
                utilization=entry.utilization,
                resets_at=_parse_resets_at(entry.resets_at),
            )
        )
    return limits


class AnthropicUsageClient:
    """Synchronous httpx client for the usage report and OAuth usage endpoints."""

    def __init__(
        self,
        base_url: str = "https://api.anthropic.com",
        api_version: str = "2023-06-01",
        oauth_beta: str = "oauth-2025-04-20",
        user_agent: str = "claude-code/2.0.32",
        timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version
        self._oauth_beta = oauth_beta
        self._user_agent = user_agent
        self._timeout = timeout

    def _get(self, path: str, headers: dict[str, str]) -> Any:
        """GET ``path`` and return the decoded JSON body."""
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.get(f"{self._base_url}{path}", headers=headers)
        except httpx.TimeoutException as e:
            raise UsageApiError(f"{path} timed out") from e
        except httpx.HTTPError as e:
            raise UsageApiError(f"{path} unreachable: {e}") from e

        if resp.status_code != 200:
            raise UsageApiError(f"{path} returned {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise UsageApiError(f"{path} returned invalid JSON") from e

    # ── High-level methods ───────────────────────────────────────────────

    def fetch_usage_report(self, api_key: str) -> UsageReport | None:
        """Per-model token totals, or ``None`` if the call failed."""
        headers = {
            "x-api-key": api_key,
            "anthropic-version": self._api_version,
        }
        try:
            body = self._get(USAGE_REPORT_PATH, headers)
            payload = UsageReportResponse.model_validate(body)
        except UsageApiError as e:
            logger.warning("Usage report unavailable: %s", e)
            return None
        except ValidationError as e:
            logger.warning("Usage report payload malformed: %s", e.error_count())
            return None
        return summarize_usage_report(payload)

    def fetch_usage_limits(self, token: str) -> list[LimitWindow] | None:
        """Reported usage-limit windows, or ``None`` if the call failed."""
        headers = {
            "Authorization": f"Bearer {token}",
            "anthropic-beta": self._oauth_beta,
            "User-Agent": self._user_agent,
        }
        try:
            body = self._get(OAUTH_USAGE_PATH, headers)
            payload = OAuthUsageResponse.model_validate(body)
        except UsageApiError as e:
            logger.debug("Usage limits unavailable: %s", e)
            return None
        except ValidationError as e:
            logger.warning("Usage limits payload malformed: %s", e.error_count())
            return None
        return limits_from_payload(payload)
