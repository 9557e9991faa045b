# ============================================================================
# OBJECT STORE HEALTH CHECK
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Checker - Azure Blob Storage
# PURPOSE: Verify the pipeline artifacts container is reachable
# CREATED: 17 OCT 2026
# ============================================================================
"""
Object Store Health Check

Checks the artifacts container exists, then lists at most one blob as a
read-permission probe. A listing failure is logged but does not fail the
check. Blob storage is DEGRADED criticality, so a failure here lands in
warnings rather than blocking the run.
"""

import asyncio
import logging
from typing import Optional

from core.config import ServiceDefaults, get_defaults
from core.contracts import ServiceName
from health.core import ProbeResult, ServiceHealthChecker
from infrastructure.storage import BlobRepository

logger = logging.getLogger(__name__)


class BlobStorageHealthCheck(ServiceHealthChecker):
    """Azure Blob Storage container check."""

    service = ServiceName.BLOB_STORAGE

    def __init__(
        self,
        repository: Optional[BlobRepository] = None,
        settings: Optional[ServiceDefaults] = None,
    ):
        self.settings = settings or get_defaults().services
        self._repository = repository

    def _get_repository(self) -> BlobRepository:
        if self._repository is None:
            if not self.settings.storage_account:
                raise ValueError("PREFLIGHT_STORAGE_ACCOUNT environment variable not set")
            self._repository = BlobRepository(account_name=self.settings.storage_account)
        return self._repository

    async def probe(self) -> ProbeResult:
        container = self.settings.storage_container
        repo = self._get_repository()

        exists = await asyncio.to_thread(repo.container_exists, container)
        if not exists:
            raise RuntimeError(f"Container {container} does not exist")

        try:
            await asyncio.to_thread(repo.list_one, container)
        except Exception as e:
            logger.warning(f"Container {container} exists but list operation failed: {e}")

        return ProbeResult.healthy(exists=True, name=container)


__all__ = [
    "BlobStorageHealthCheck",
]
