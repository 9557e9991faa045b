# ============================================================================
# SECRET PROVIDER
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Infrastructure - Credential retrieval
# PURPOSE: Resolve API keys from cache, environment or Azure Key Vault
# CREATED: 17 OCT 2026
# ============================================================================
"""
Secret Provider

Retrieval order:
1. In-memory cache (lifetime of the provider instance)
2. Environment variable fallback (local development)
3. Azure Key Vault (production)

Secret names are kebab-case (e.g. "gemini-api-key"); the environment
fallback uses SCREAMING_SNAKE_CASE ("GEMINI_API_KEY").

Key Vault is read over its REST API with httpx and a bearer token from
azure-identity (Managed Identity in Azure, az login locally).

Usage:
    provider = SecretProvider(vault_url="https://myvault.vault.azure.net")
    api_key = await provider.get_secret("gemini-api-key")
"""

import asyncio
import os
import logging
from typing import Any, Dict, Optional

import httpx
from azure.identity import DefaultAzureCredential, ManagedIdentityCredential

from infrastructure.http import http_client_scope

logger = logging.getLogger(__name__)

# OAuth scope for Azure Key Vault data plane
KEY_VAULT_SCOPE = "https://vault.azure.net/.default"
KEY_VAULT_API_VERSION = "7.4"


class SecretNotFoundError(Exception):
    """Raised when a secret cannot be resolved from any source."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"Secret '{name}' not found")


def to_env_var_name(secret_name: str) -> str:
    """gemini-api-key -> GEMINI_API_KEY"""
    return secret_name.upper().replace("-", "_")


class SecretProvider:
    """
    Cached secret lookup.

    Cache entries never expire. get_secret(use_cache=False) and
    verify_vault() bypass the cache and refresh it; clear_cache() drops it.
    """

    def __init__(
        self,
        vault_url: Optional[str] = None,
        credential: Any = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 10.0,
    ):
        self.vault_url = vault_url.rstrip("/") if vault_url else None
        self._credential = credential
        self._http_client = http_client
        self._timeout = timeout_seconds
        self._cache: Dict[str, str] = {}

    # ========================================================================
    # CACHE
    # ========================================================================

    def clear_cache(self) -> None:
        """Forget every cached secret."""
        self._cache.clear()

    def is_cached(self, name: str) -> bool:
        return name in self._cache

    def has_secret(self, name: str) -> bool:
        """True if the secret is cached or set in the environment (no vault call)."""
        if name in self._cache:
            return True
        return bool(os.environ.get(to_env_var_name(name)))

    # ========================================================================
    # LOOKUP
    # ========================================================================

    async def get_secret(self, name: str, use_cache: bool = True) -> str:
        """
        Resolve a secret value.

        Args:
            name: Kebab-case secret name
            use_cache: False skips the cache lookup (the result is still cached)

        Raises:
            SecretNotFoundError: No cached, environment or vault value
        """
        if use_cache:
            cached = self._cache.get(name)
            if cached is not None:
                logger.debug(f"Secret cache hit: {name}")
                return cached

        env_name = to_env_var_name(name)
        env_value = os.environ.get(env_name)
        if env_value:
            self._cache[name] = env_value
            logger.debug(f"Secret {name} resolved from environment ({env_name})")
            return env_value

        if not self.vault_url:
            raise SecretNotFoundError(
                name,
                f"Cannot retrieve secret '{name}': no Key Vault configured "
                f"and no environment variable {env_name} found",
            )

        value = await self._fetch_from_vault(name)
        self._cache[name] = value
        logger.debug(f"Secret {name} resolved from Key Vault")
        return value

    async def verify_vault(self, name: str) -> str:
        """
        Read a secret straight from Key Vault, skipping cache and environment.

        Used by the Key Vault health check, which must reach the vault on
        every run. Without a vault URL this is an uncached get_secret().
        A successful read refreshes the cache.
        """
        if not self.vault_url:
            return await self.get_secret(name, use_cache=False)

        value = await self._fetch_from_vault(name)
        self._cache[name] = value
        return value

    def _get_credential(self):
        """Get Azure credential (lazy initialization)."""
        if self._credential is None:
            client_id = os.environ.get("AZURE_CLIENT_ID")
            if client_id:
                self._credential = ManagedIdentityCredential(client_id=client_id)
            else:
                self._credential = DefaultAzureCredential()
        return self._credential

    async def _fetch_from_vault(self, name: str) -> str:
        token = await asyncio.to_thread(self._get_credential().get_token, KEY_VAULT_SCOPE)
        url = f"{self.vault_url}/secrets/{name}"
        headers = {"Authorization": f"Bearer {token.token}"}
        params = {"api-version": KEY_VAULT_API_VERSION}

        async with http_client_scope(self._http_client, self._timeout) as client:
            response = await client.get(url, headers=headers, params=params)

        if response.status_code == 404:
            raise SecretNotFoundError(name)
        response.raise_for_status()

        value = response.json().get("value")
        if value is None:
            raise SecretNotFoundError(name, f"Secret '{name}' exists but has no value")
        return value


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "KEY_VAULT_SCOPE",
    "SecretNotFoundError",
    "SecretProvider",
    "to_env_var_name",
]
