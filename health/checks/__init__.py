# ============================================================================
# SERVICE HEALTH CHECKS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Checkers - One per external service
# PURPOSE: Concrete checks for the six pipeline dependencies
# CREATED: 17 OCT 2026
# ============================================================================
"""
Service Health Checks

Concrete checkers, one per ServiceName:
- gemini:       GeminiHealthCheck (LLM prompt round trip)
- youtube:      YouTubeQuotaHealthCheck (daily quota via Cloud Monitoring)
- twitter:      TwitterHealthCheck (OAuth token validation)
- postgres:     PostgresHealthCheck (document write/read)
- blob-storage: BlobStorageHealthCheck (container reachability)
- key-vault:    KeyVaultHealthCheck (secret retrieval)

Build a registry with every checker wired to shared collaborators:
    registry = build_default_registry(secrets, store)
"""

from typing import Optional

import httpx

from core.config import Defaults, get_defaults
from health.checks.llm import GeminiHealthCheck
from health.checks.quota import YouTubeQuotaHealthCheck, get_quota_alert_level
from health.checks.social import TwitterHealthCheck
from health.checks.documents import PostgresHealthCheck
from health.checks.storage import BlobStorageHealthCheck
from health.checks.secrets import KeyVaultHealthCheck
from health.registry import HealthCheckRegistry
from infrastructure.secrets import SecretProvider
from infrastructure.storage import BlobRepository
from repositories.document_repo import DocumentStore


def build_default_registry(
    secrets: SecretProvider,
    store: DocumentStore,
    blob_repository: Optional[BlobRepository] = None,
    defaults: Optional[Defaults] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> HealthCheckRegistry:
    """Register one checker per service, all sharing the given collaborators."""
    defaults = defaults or get_defaults()
    services = defaults.services

    registry = HealthCheckRegistry()
    checkers = [
        GeminiHealthCheck(secrets, services, http_client=http_client),
        YouTubeQuotaHealthCheck(services, defaults.quota, http_client=http_client),
        TwitterHealthCheck(secrets, services, http_client=http_client),
        PostgresHealthCheck(store),
        BlobStorageHealthCheck(blob_repository, services),
        KeyVaultHealthCheck(secrets, services.gemini_secret_name),
    ]
    for checker in checkers:
        checker.timeout_seconds = defaults.health.check_timeout_seconds
        registry.register(checker)

    return registry


__all__ = [
    "GeminiHealthCheck",
    "YouTubeQuotaHealthCheck",
    "TwitterHealthCheck",
    "PostgresHealthCheck",
    "BlobStorageHealthCheck",
    "KeyVaultHealthCheck",
    "build_default_registry",
    "get_quota_alert_level",
]
