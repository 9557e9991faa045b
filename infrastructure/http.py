# ============================================================================
# HTTP CLIENT SCOPE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Infrastructure - Shared httpx client handling
# PURPOSE: Use an injected AsyncClient or open a short-lived one
# CREATED: 17 OCT 2026
# ============================================================================
"""
HTTP Client Scope

Checkers, notifiers and the secret provider accept an optional
httpx.AsyncClient. Tests inject one built on httpx.MockTransport;
production code leaves it None and gets a client per call.

Usage:
    async with http_client_scope(self._http_client, 10.0) as client:
        response = await client.get(url)
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx


@asynccontextmanager
async def http_client_scope(
    client: Optional[httpx.AsyncClient],
    timeout_seconds: float,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client, or a short-lived one closed on exit."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout_seconds) as owned:
        yield owned


__all__ = [
    "http_client_scope",
]
