# ============================================================================
# BLOB STORAGE INFRASTRUCTURE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Infrastructure - Azure Blob Storage probes
# PURPOSE: Container reachability checks for the object store
# CREATED: 17 OCT 2026
# ============================================================================
"""
Blob Storage Infrastructure

Provides BlobRepository for Azure Blob Storage:
- container_exists: Check the pipeline artifacts container exists
- list_one: Fetch at most one blob name (read permission probe)

Uses DefaultAzureCredential for authentication (works with Managed Identity).
The Azure SDK client is synchronous; async callers wrap calls in
asyncio.to_thread. A thread cannot be cancelled, so the client carries its
own connect/read timeouts and a short retry budget: a call abandoned by the
health check timeout still ends on its own.
"""

import os
import logging
import threading
from typing import Any, Dict, Optional

from azure.identity import DefaultAzureCredential, ManagedIdentityCredential
from azure.storage.blob import BlobServiceClient

from infrastructure.base_repository import BaseRepository

logger = logging.getLogger(__name__)

BLOB_CONNECTION_TIMEOUT_SECONDS = 10
BLOB_READ_TIMEOUT_SECONDS = 15
BLOB_RETRY_TOTAL = 1


# ============================================================================
# BLOB REPOSITORY
# ============================================================================

class BlobRepository(BaseRepository):
    """
    Azure Blob Storage repository.

    Multi-instance singleton pattern: one instance per storage account.

    Usage:
        repo = BlobRepository(account_name="pipelineartifacts")
        if repo.container_exists("pipeline-artifacts"):
            name = repo.list_one("pipeline-artifacts")
    """

    _instances: Dict[str, "BlobRepository"] = {}
    _instances_lock = threading.Lock()

    def __new__(cls, account_name: Optional[str] = None, **kwargs):
        """Multi-instance singleton: one instance per storage account."""
        if not account_name:
            raise ValueError(
                "BlobRepository requires an explicit account_name. "
                "Set PREFLIGHT_STORAGE_ACCOUNT."
            )

        with cls._instances_lock:
            if account_name not in cls._instances:
                instance = super().__new__(cls)
                instance._initialized = False
                cls._instances[account_name] = instance
            return cls._instances[account_name]

    def __init__(self, account_name: Optional[str] = None):
        """Initialize blob repository for storage account."""
        if getattr(self, "_initialized", False):
            return

        super().__init__()
        self.account_name = account_name

        # Lazy initialization of Azure clients
        self._blob_service: Optional[BlobServiceClient] = None
        self._credential: Any = None

        self._initialized = True
        logger.info(f"BlobRepository initialized for account: {self.account_name}")

    @classmethod
    def clear_instances(cls) -> None:
        """Drop cached per-account instances (for testing)."""
        with cls._instances_lock:
            cls._instances.clear()

    # ========================================================================
    # AZURE CLIENT INITIALIZATION
    # ========================================================================

    def _get_credential(self):
        """Get Azure credential (lazy initialization)."""
        if self._credential is None:
            client_id = os.environ.get("AZURE_CLIENT_ID")
            if client_id:
                self._credential = ManagedIdentityCredential(client_id=client_id)
                logger.debug("ManagedIdentityCredential initialized with client_id")
            else:
                self._credential = DefaultAzureCredential()
                logger.debug("DefaultAzureCredential initialized")
        return self._credential

    def _get_blob_service(self) -> BlobServiceClient:
        """Get BlobServiceClient (lazy initialization)."""
        if self._blob_service is None:
            account_url = f"https://{self.account_name}.blob.core.windows.net"
            self._blob_service = BlobServiceClient(
                account_url=account_url,
                credential=self._get_credential(),
                connection_timeout=BLOB_CONNECTION_TIMEOUT_SECONDS,
                read_timeout=BLOB_READ_TIMEOUT_SECONDS,
                retry_total=BLOB_RETRY_TOTAL,
            )
            logger.debug(f"BlobServiceClient initialized for {account_url}")
        return self._blob_service

    # ========================================================================
    # PROBES
    # ========================================================================

    def container_exists(self, container: str) -> bool:
        """Check if a container exists. Raises RepositoryError on credential or network errors."""
        with self._error_context("container probe", f"{self.account_name}/{container}"):
            return self._get_blob_service().get_container_client(container).exists()

    def list_one(self, container: str) -> Optional[str]:
        """Return the name of the first blob in a container, or None if empty."""
        with self._error_context("container list", f"{self.account_name}/{container}"):
            container_client = self._get_blob_service().get_container_client(container)
            for blob in container_client.list_blobs(results_per_page=1):
                return blob.name
        return None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "BLOB_CONNECTION_TIMEOUT_SECONDS",
    "BLOB_READ_TIMEOUT_SECONDS",
    "BLOB_RETRY_TOTAL",
    "BlobRepository",
]
