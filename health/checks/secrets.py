# ============================================================================
# SECRETS HEALTH CHECK
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Checker - Key Vault
# PURPOSE: Verify the secrets service returns a known secret
# CREATED: 17 OCT 2026
# ============================================================================
"""
Secrets Health Check

Reads the LLM API key from Key Vault on every run. The provider's cache and
environment fallback are bypassed (SecretProvider.verify_vault), otherwise
a vault outage would go unnoticed once the key had been cached. Without
credentials no other service can be reached, so an empty value is a failure.
"""

import logging
from typing import Optional

from core.contracts import ServiceName
from health.core import ProbeResult, ServiceHealthChecker
from infrastructure.secrets import SecretProvider

logger = logging.getLogger(__name__)


class KeyVaultHealthCheck(ServiceHealthChecker):
    """Secret retrieval check."""

    service = ServiceName.KEY_VAULT

    def __init__(self, secrets: SecretProvider, secret_name: Optional[str] = None):
        self.secrets = secrets
        self.secret_name = secret_name or "gemini-api-key"

    async def probe(self) -> ProbeResult:
        value = await self.secrets.verify_vault(self.secret_name)
        if not value:
            raise ValueError(f"Secret {self.secret_name} is empty")
        return ProbeResult.healthy()


__all__ = [
    "KeyVaultHealthCheck",
]
