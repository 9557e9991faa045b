# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Infrastructure - Storage and credential access
# PURPOSE: Azure Blob Storage, Key Vault secrets and repository base class
# CREATED: 17 OCT 2026
# ============================================================================
"""
Infrastructure module for the pre-flight gate.

Provides:
- BaseRepository / RepositoryError: Shared repository error handling
- BlobRepository: Azure Blob Storage container probes
- SecretProvider: Cached secret lookup (env fallback, Key Vault)

Usage:
    from infrastructure import BlobRepository, SecretProvider

    repo = BlobRepository(account_name="pipelineartifacts")
    exists = repo.container_exists("pipeline-artifacts")

    secrets = SecretProvider(vault_url="https://myvault.vault.azure.net")
    api_key = await secrets.get_secret("gemini-api-key")
"""

from infrastructure.base_repository import (
    BaseRepository,
    RepositoryError,
    ValidationError,
)
from infrastructure.storage import BlobRepository
from infrastructure.secrets import (
    SecretNotFoundError,
    SecretProvider,
    to_env_var_name,
)

__all__ = [
    # Repository base
    'BaseRepository',
    'RepositoryError',
    'ValidationError',
    # Blob Storage
    'BlobRepository',
    # Secrets
    'SecretNotFoundError',
    'SecretProvider',
    'to_env_var_name',
]
