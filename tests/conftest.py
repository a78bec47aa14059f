"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest


@pytest.fixture
def make_response():
    """Factory for ``httpx.Response`` stand-ins."""

    def _make(status_code: int = 200, body: Any = None, bad_json: bool = False) -> MagicMock:
        resp = MagicMock()
        resp.status_code = status_code
        if bad_json:
            resp.json.side_effect = ValueError("Expecting value")
        else:
            resp.json.return_value = body
        return resp

    return _make


@pytest.fixture
def day_indexed_doc() -> dict[str, Any]:
    """Usage cache in the canonical day-indexed layout."""
    return {
        "version": 2,
        "lastComputedDate": "2026-03-10",
        "dailyActivity": [
            {"date": "2026-03-02", "messageCount": 7, "sessionCount": 1, "toolCallCount": 2},
            {"date": "2026-03-04", "messageCount": 10, "sessionCount": 2, "toolCallCount": 5},
            {"date": "2026-03-10", "messageCount": 25, "sessionCount": 3, "toolCallCount": 9},
            {"date": "2026-03-08", "messageCount": 5, "sessionCount": 1, "toolCallCount": 0},
        ],
        "dailyModelTokens": [
            {"date": "2026-03-02", "tokensByModel": {"claude-opus-4-6": 900}},
            {"date": "2026-03-04", "tokensByModel": {"claude-sonnet-4-6": 400}},
            {"date": "2026-03-08", "tokensByModel": {"claude-sonnet-4-6": 100, "claude-haiku-4-5": 50}},
            {
                "date": "2026-03-10",
                "tokensByModel": {"claude-sonnet-4-6": 1200, "claude-opus-4-6": 300},
            },
        ],
        "modelUsage": {
            "claude-sonnet-4-6": {"inputTokens": 1000, "outputTokens": 700},
            "claude-opus-4-6": {"inputTokens": 3000, "outputTokens": 200},
            "claude-haiku-4-5": {"inputTokens": 40, "outputTokens": 10},
        },
        "totalSessions": 42,
        "totalMessages": 321,
        "firstSessionDate": "2025-11-03T09:15:22.123Z",
    }


@pytest.fixture
def write_json(tmp_path: Path):
    def _write(doc: Any, name: str = "stats-cache.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(doc), encoding="utf-8")
        return path

    return _write
