"""Tests for the Anthropic usage report and OAuth usage clients."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import httpx
import pytest

from pulsebar.usage.anthropic_client import (
    OAUTH_USAGE_PATH,
    USAGE_REPORT_PATH,
    AnthropicUsageClient,
    limits_from_payload,
    summarize_usage_report,
)
from pulsebar.usage.models import PALETTE
from pulsebar.usage.wire import OAuthUsageResponse, UsageReportResponse


@pytest.fixture
def client() -> AnthropicUsageClient:
    return AnthropicUsageClient(base_url="https://api.example.test/", timeout=10.0)


# ── Usage report ─────────────────────────────────────────────────────────────


class TestSummarizeUsageReport:
    def test_sums_per_model_and_ranks(self) -> None:
        payload = UsageReportResponse.model_validate(
            {
                "data": [
                    {"input_tokens": 100, "output_tokens": 50, "model": "claude-sonnet-4-6"},
                    {"input_tokens": 1000, "output_tokens": 10, "model": "claude-opus-4-6"},
                    {"input_tokens": 200, "output_tokens": None, "model": "claude-sonnet-4-6"},
                    {"input_tokens": 5, "output_tokens": 5},
                ]
            }
        )
        report = summarize_usage_report(payload)
        assert report.total_tokens == 150 + 1010 + 200 + 10
        assert [(m.name, m.tokens) for m in report.model_breakdown] == [
            ("claude-opus-4-6", 1010),
            ("claude-sonnet-4-6", 350),
        ]

    def test_ties_keep_input_order(self) -> None:
        payload = UsageReportResponse.model_validate(
            {
                "data": [
                    {"input_tokens": 10, "output_tokens": 0, "model": "b"},
                    {"input_tokens": 10, "output_tokens": 0, "model": "a"},
                    {"input_tokens": 20, "output_tokens": 0, "model": "c"},
                ]
            }
        )
        assert [m.name for m in summarize_usage_report(payload).model_breakdown] == ["c", "b", "a"]

    def test_colors_cycle_after_palette(self) -> None:
        data = [
            {"input_tokens": 100 - i, "output_tokens": 0, "model": f"m{i}"} for i in range(10)
        ]
        breakdown = summarize_usage_report(
            UsageReportResponse.model_validate({"data": data})
        ).model_breakdown
        assert [m.color for m in breakdown] == [PALETTE[i % 8] for i in range(10)]
        assert breakdown[8].color == breakdown[0].color

    def test_empty_data(self) -> None:
        report = summarize_usage_report(UsageReportResponse.model_validate({"data": []}))
        assert report.total_tokens == 0
        assert report.model_breakdown == []


class TestFetchUsageReport:
    @patch("pulsebar.usage.anthropic_client.httpx.Client")
    def test_success_sends_headers(self, mock_client_cls, client, make_response) -> None:
        inner = mock_client_cls.return_value.__enter__.return_value
        inner.get.return_value = make_response(
            200, {"data": [{"input_tokens": 3, "output_tokens": 4, "model": "claude-haiku-4-5"}]}
        )

        report = client.fetch_usage_report("sk-ant-admin-xyz")

        assert report is not None
        assert report.total_tokens == 7
        url = inner.get.call_args[0][0]
        headers = inner.get.call_args[1]["headers"]
        assert url == f"https://api.example.test{USAGE_REPORT_PATH}"
        assert headers["x-api-key"] == "sk-ant-admin-xyz"
        assert headers["anthropic-version"] == "2023-06-01"
        mock_client_cls.assert_called_once_with(timeout=10.0)

    @patch("pulsebar.usage.anthropic_client.httpx.Client")
    def test_non_200_returns_none(self, mock_client_cls, client, make_response) -> None:
        inner = mock_client_cls.return_value.__enter__.return_value
        inner.get.return_value = make_response(401, {"error": "unauthorized"})
        assert client.fetch_usage_report("bad") is None

    @patch("pulsebar.usage.anthropic_client.httpx.Client")
    def test_timeout_returns_none(self, mock_client_cls, client) -> None:
        inner = mock_client_cls.return_value.__enter__.return_value
        inner.get.side_effect = httpx.ReadTimeout("slow")
        assert client.fetch_usage_report("key") is None

    @patch("pulsebar.usage.anthropic_client.httpx.Client")
    def test_connect_error_returns_none(self, mock_client_cls, client) -> None:
        inner = mock_client_cls.return_value.__enter__.return_value
        inner.get.side_effect = httpx.ConnectError("refused")
        assert client.fetch_usage_report("key") is None

    @patch("pulsebar.usage.anthropic_client.httpx.Client")
    def test_bad_json_returns_none(self, mock_client_cls, client, make_response) -> None:
        inner = mock_client_cls.return_value.__enter__.return_value
        inner.get.return_value = make_response(200, bad_json=True)
        assert client.fetch_usage_report("key") is None

    @patch("pulsebar.usage.anthropic_client.httpx.Client")
    def test_wrong_shape_returns_none(self, mock_client_cls, client, make_response) -> None:
        inner = mock_client_cls.return_value.__enter__.return_value
        inner.get.return_value = make_response(200, {"data": ["not", "entries"]})
        assert client.fetch_usage_report("key") is None


# ── Usage limits ─────────────────────────────────────────────────────────────


class TestLimitsFromPayload:
    def test_maps_all_three_windows(self) -> None:
        payload = OAuthUsageResponse.model_validate(
            {
                "five_hour": {"utilization": 37.0, "resets_at": "2026-03-10T15:00:00Z"},
                "seven_day": {"utilization": 112.5, "resets_at": "2026-03-14T00:00:00+00:00"},
                "seven_day_sonnet": {"utilization": 4, "resets_at": None},
                "seven_day_opus": {"utilization": 80},
            }
        )
        limits = limits_from_payload(payload)
        assert [w.label for w in limits] == ["5-hour", "7-day", "Sonnet"]
        assert limits[0].utilization == 37.0
        assert limits[0].resets_at == datetime(2026, 3, 10, 15, tzinfo=timezone.utc)
        assert limits[1].utilization == 112.5
        assert limits[2].resets_at is None

    def test_null_utilization_omitted(self) -> None:
        payload = OAuthUsageResponse.model_validate(
            {
                "five_hour": {"utilization": None, "resets_at": "2026-03-10T15:00:00Z"},
                "seven_day": {"utilization": 0},
                "seven_day_sonnet": None,
            }
        )
        limits = limits_from_payload(payload)
        assert [w.label for w in limits] == ["7-day"]
        assert limits[0].utilization == 0

    def test_bad_reset_timestamp_kept_as_none(self) -> None:
        payload = OAuthUsageResponse.model_validate(
            {"five_hour": {"utilization": 10, "resets_at": "soon"}}
        )
        assert limits_from_payload(payload)[0].resets_at is None


class TestFetchUsageLimits:
    @patch("pulsebar.usage.anthropic_client.httpx.Client")
    def test_success_sends_bearer_and_beta(self, mock_client_cls, client, make_response) -> None:
        inner = mock_client_cls.return_value.__enter__.return_value
        inner.get.return_value = make_response(200, {"five_hour": {"utilization": 50}})

        limits = client.fetch_usage_limits("oauth-token")

        assert limits is not None and limits[0].label == "5-hour"
        assert inner.get.call_args[0][0] == f"https://api.example.test{OAUTH_USAGE_PATH}"
        headers = inner.get.call_args[1]["headers"]
        assert headers["Authorization"] == "Bearer oauth-token"
        assert headers["anthropic-beta"] == "oauth-2025-04-20"
        assert headers["User-Agent"].startswith("claude-code/")

    @patch("pulsebar.usage.anthropic_client.httpx.Client")
    def test_failure_returns_none(self, mock_client_cls, client, make_response) -> None:
        inner = mock_client_cls.return_value.__enter__.return_value
        inner.get.return_value = make_response(500, None)
        assert client.fetch_usage_limits("t") is None
