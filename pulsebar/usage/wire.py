"""Pydantic models for the Anthropic usage endpoints' JSON payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

# ── Usage report (admin API key) ─────────────────────────────────────────────


class UsageReportEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    input_tokens: int | None = None
    output_tokens: int | None = None
    model: str | None = None


class UsageReportResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[UsageReportEntry] | None = None


# ── OAuth usage limits (bearer token) ────────────────────────────────────────


class LimitEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    utilization: float | None = None
    resets_at: str | None = None


class OAuthUsageResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    five_hour: LimitEntry | None = None
    seven_day: LimitEntry | None = None
    seven_day_sonnet: LimitEntry | None = None
