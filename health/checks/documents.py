# ============================================================================
# DOCUMENT STORE HEALTH CHECK
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Checker - PostgreSQL document store
# PURPOSE: Write-then-read round trip on a scratch document
# CREATED: 17 OCT 2026
# ============================================================================
"""
Document Store Health Check

Writes {timestamp, healthCheck, randomValue} to health-checks/{YYYY-MM-DD}
and reads it back. One scratch document per day, overwritten by each run.
"""

import logging
import random
from datetime import datetime, timezone

from core.contracts import ServiceName
from core.models import utc_now_iso
from health.core import ProbeResult, ServiceHealthChecker
from repositories.document_repo import DocumentStore

logger = logging.getLogger(__name__)

HEALTH_CHECK_COLLECTION = "health-checks"


class PostgresHealthCheck(ServiceHealthChecker):
    """Document store read/write check."""

    service = ServiceName.POSTGRES

    def __init__(self, store: DocumentStore):
        self.store = store

    async def probe(self) -> ProbeResult:
        doc_id = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        test_data = {
            "timestamp": utc_now_iso(),
            "healthCheck": True,
            "randomValue": random.random(),
        }

        await self.store.set_document(HEALTH_CHECK_COLLECTION, doc_id, test_data)
        doc = await self.store.get_document(HEALTH_CHECK_COLLECTION, doc_id)

        if doc is None:
            raise RuntimeError("Read test failed - document not found after write")

        if doc.get("healthCheck") is not True or doc.get("randomValue") != test_data["randomValue"]:
            raise RuntimeError("Read test failed - document data mismatch")

        return ProbeResult.healthy(writeOk=True, readOk=True)


__all__ = [
    "HEALTH_CHECK_COLLECTION",
    "PostgresHealthCheck",
]
