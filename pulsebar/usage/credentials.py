"""Look up the Claude Code OAuth access token in the macOS keychain.

Every call re-runs the lookup; tokens rotate and are never cached here.
"""

from __future__ import annotations

import json
import logging
import subprocess

logger = logging.getLogger(__name__)

OAUTH_KEY = "claudeAiOauth"


def _keychain_command(service: str) -> list[str]:
    return ["security", "find-generic-password", "-s", service, "-w"]


def extract_access_token(payload: str) -> str | None:
    """Pull ``claudeAiOauth.accessToken`` out of the stored JSON blob."""
    try:
        creds = json.loads(payload)
    except (ValueError, RecursionError):
        logger.debug("Keychain entry is not valid JSON")
        return None
    if not isinstance(creds, dict):
        return None
    oauth = creds.get(OAUTH_KEY)
    if not isinstance(oauth, dict):
        logger.debug("No %s block in keychain credentials", OAUTH_KEY)
        return None
    token = oauth.get("accessToken")
    if not isinstance(token, str) or not token:
        logger.debug("No accessToken in keychain credentials")
        return None
    return token


def resolve_access_token(
    service: str = "Claude Code-credentials",
    timeout: float = 5.0,
) -> str | None:
    """Return the OAuth access token, or ``None`` on any failure."""
    try:
        raw = subprocess.run(
            _keychain_command(service),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        logger.debug("Keychain lookup could not run: %s", e)
        return None

    if raw.returncode != 0:
        logger.debug("Keychain lookup failed (%d): %s", raw.returncode, raw.stderr.strip())
        return None
    return extract_access_token(raw.stdout.strip())
