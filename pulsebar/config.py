from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


def _claude_dir() -> Path:
    return Path.home() / ".claude"


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Anthropic usage report (admin key switches usage data to the API)
    anthropic_admin_key: str = Field(default="", validation_alias="ANTHROPIC_ADMIN_KEY")
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"

    # OAuth usage limits
    oauth_beta: str = "oauth-2025-04-20"
    oauth_user_agent: str = "claude-code/2.0.32"
    keychain_service: str = "Claude Code-credentials"
    keychain_timeout: float = 5.0

    # Local files written by Claude Code
    stats_cache_path: Path = Field(default_factory=lambda: _claude_dir() / "stats-cache.json")
    prom_path: Path = Field(default_factory=lambda: _claude_dir() / "metrics" / "claude.prom")

    # SigNoz metrics backend
    signoz_base_url: str = "http://127.0.0.1:8080"
    signoz_api_key: str = ""

    # Every outbound HTTP call
    request_timeout: float = 10.0

    # Refresh loop
    refresh_interval: int = 60  # seconds between background refreshes
    default_window: str = "1h"  # 1h | 3h | 12h | 24h

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8765

    # Logging
    log_level: str = "INFO"


settings = Settings()
