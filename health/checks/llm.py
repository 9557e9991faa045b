# ============================================================================
# LLM HEALTH CHECK
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Checker - Gemini text generation
# PURPOSE: Verify the LLM API answers a minimal prompt
# CREATED: 17 OCT 2026
# ============================================================================
"""
LLM Health Check

Sends a one-line prompt to the Gemini generateContent endpoint using the
flash model (fastest, cheapest). The check fails on any HTTP error or when
the response carries no text. CRITICAL service: no LLM means no script.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from core.config import ServiceDefaults, get_defaults
from core.contracts import ServiceName
from health.core import ProbeResult, ServiceHealthChecker
from infrastructure.http import http_client_scope
from infrastructure.secrets import SecretProvider

logger = logging.getLogger(__name__)

HEALTH_PROMPT = "health check"


def extract_text(payload: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


class GeminiHealthCheck(ServiceHealthChecker):
    """Gemini API health check."""

    service = ServiceName.GEMINI

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
        api_key = await self.secrets.get_secret(self.settings.gemini_secret_name)
        model = self.settings.gemini_model
        url = f"{self.settings.gemini_base_url}/models/{model}:generateContent"

        async with http_client_scope(self._http_client, self.timeout_seconds) as client:
            response = await client.post(
                url,
                headers={"x-goog-api-key": api_key},
                json={"contents": [{"role": "user", "parts": [{"text": HEALTH_PROMPT}]}]},
            )
            response.raise_for_status()
            payload = response.json()

        if not extract_text(payload).strip():
            raise ValueError("Empty response from Gemini API")

        return ProbeResult.healthy(model=model)


__all__ = [
    "GeminiHealthCheck",
    "extract_text",
]
