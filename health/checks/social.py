# ============================================================================
# SOCIAL HEALTH CHECK
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Checker - Twitter credentials
# PURPOSE: Validate the OAuth token against /2/users/me
# CREATED: 17 OCT 2026
# ============================================================================
"""
Social Health Check

Twitter is RECOVERABLE: whatever this check returns, the pipeline keeps
going. HTTP status mapping:

    2xx         healthy
    401, 403    failed   "Authentication failed (HTTP n)"
    429         degraded "Rate limited (HTTP 429)"
    other       degraded "HTTP n"
"""

import json
import logging
from typing import Optional

import httpx

from core.config import ServiceDefaults, get_defaults
from core.contracts import ServiceName
from health.core import ProbeResult, ServiceHealthChecker
from infrastructure.http import http_client_scope
from infrastructure.secrets import SecretProvider

logger = logging.getLogger(__name__)


def parse_access_token(credentials: str) -> str:
    """
    Extract a bearer token.

    Accepts JSON with access_token/accessToken, otherwise treats the whole
    value as a raw token.
    """
    try:
        parsed = json.loads(credentials)
    except ValueError:
        return credentials

    if isinstance(parsed, dict):
        token = parsed.get("access_token") or parsed.get("accessToken")
        if token:
            return token
    return credentials


class TwitterHealthCheck(ServiceHealthChecker):
    """Twitter API credential check."""

    service = ServiceName.TWITTER

    def __init__(
        self,
        secrets: SecretProvider,
        settings: Optional[ServiceDefaults] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.secrets = secrets
        self.settings = settings or get_defaults().services
        self._http_client = http_client

    async def probe(self) -> ProbeResult:
        credentials = await self.secrets.get_secret(self.settings.twitter_secret_name)
        access_token = parse_access_token(credentials)

        async with http_client_scope(self._http_client, self.timeout_seconds) as client:
            response = await client.get(
                self.settings.twitter_url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
            )

        status_code = response.status_code
        if response.is_success:
            return ProbeResult.healthy()

        if status_code in (401, 403):
            return ProbeResult.failed(f"Authentication failed (HTTP {status_code})")

        if status_code == 429:
            return ProbeResult.degraded("Rate limited (HTTP 429)")

        return ProbeResult.degraded(f"HTTP {status_code}")


__all__ = [
    "TwitterHealthCheck",
    "parse_access_token",
]
