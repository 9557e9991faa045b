# ============================================================================
# INCIDENT LOGGING SERVICE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Service - Incident records for skipped runs
# PURPOSE: Open an incident in the document store when the gate skips a run
# CREATED: 17 OCT 2026
# ============================================================================
"""
Incident Logging Service

Incident ids are `{date}-{NNN}`, sequenced by counting the incidents
already stored for that date. Two incidents opened concurrently for the
same date can collide; the gate opens at most one per pipeline run.

Root cause is inferred from error text by keyword (first match wins):

    TIMEOUT           -> timeout
    RATE_LIMIT        -> rate_limit
    QUOTA             -> quota_exceeded
    AUTH              -> auth_failure
    NETWORK           -> network_error
    CONFIG            -> config_error
    DATA, INVALID     -> data_error
    RESOURCE, MEMORY  -> resource_exhausted
    DEPENDENCY        -> dependency_failure
    OUTAGE            -> api_outage

Usage:
    incidents = IncidentService(store)
    incident = await incidents.log_health_check_failure("2026-10-17", result, buffer_count=3)
"""

import logging
from typing import Optional

from core.contracts import IncidentResolution, RootCause
from core.models import (
    HEALTH_CHECK_FAILED_CODE,
    INCIDENT_COLLECTION,
    HealthCheckResult,
    Incident,
    IncidentContext,
    IncidentError,
)
from repositories.document_repo import DocumentStore

logger = logging.getLogger(__name__)

_ROOT_CAUSE_KEYWORDS = [
    (("TIMEOUT",), RootCause.TIMEOUT),
    (("RATE_LIMIT",), RootCause.RATE_LIMIT),
    (("QUOTA",), RootCause.QUOTA_EXCEEDED),
    (("AUTH",), RootCause.AUTH_FAILURE),
    (("NETWORK",), RootCause.NETWORK_ERROR),
    (("CONFIG",), RootCause.CONFIG_ERROR),
    (("DATA", "INVALID"), RootCause.DATA_ERROR),
    (("RESOURCE", "MEMORY"), RootCause.RESOURCE_EXHAUSTED),
    (("DEPENDENCY",), RootCause.DEPENDENCY_FAILURE),
    (("OUTAGE",), RootCause.API_OUTAGE),
]


def infer_root_cause(error_text: Optional[str]) -> RootCause:
    """Categorize an error code or message, e.g. "Timeout after 30000ms" -> timeout."""
    if not error_text:
        return RootCause.UNKNOWN
    normalized = error_text.upper().replace(" ", "_").replace("-", "_")
    for keywords, cause in _ROOT_CAUSE_KEYWORDS:
        if any(k in normalized for k in keywords):
            return cause
    return RootCause.UNKNOWN


def root_cause_for(result: HealthCheckResult) -> RootCause:
    """First categorizable error among the critical failures."""
    critical = set(result.critical_failures)
    for check in result.failed_checks():
        if check.service not in critical:
            continue
        cause = infer_root_cause(check.error)
        if cause != RootCause.UNKNOWN:
            return cause
    return RootCause.UNKNOWN


class IncidentService:
    """Opens incidents in the `incidents` collection."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def next_incident_id(self, date: str) -> str:
        existing = await self.store.list_documents(INCIDENT_COLLECTION, {"date": date})
        return f"{date}-{len(existing) + 1:03d}"

    async def log_health_check_failure(
        self,
        pipeline_id: str,
        result: HealthCheckResult,
        buffer_count: Optional[int] = None,
    ) -> Incident:
        """
        Open an incident for a pipeline run skipped by the health gate.

        Args:
            pipeline_id: Pipeline run id (YYYY-MM-DD), also the incident date
            result: Health result with at least one critical failure
            buffer_count: Deployable buffers, None if the count was unavailable

        Raises:
            RepositoryError: Store read or write failed
        """
        buffer_available = bool(buffer_count)
        incident = Incident(
            id=await self.next_incident_id(pipeline_id),
            date=pipeline_id,
            pipeline_id=pipeline_id,
            error=IncidentError(
                code=HEALTH_CHECK_FAILED_CODE,
                message="Health check failed: " + ", ".join(s.value for s in result.critical_failures),
            ),
            start_time=result.timestamp,
            root_cause=root_cause_for(result),
            context=IncidentContext(
                critical_failures=list(result.critical_failures),
                warnings=list(result.warnings),
                health_check_duration_ms=result.total_duration_ms,
                buffer_available=buffer_available,
                buffer_count=buffer_count,
                suggested_resolution=(
                    IncidentResolution.BUFFER_DEPLOYED if buffer_available
                    else IncidentResolution.MANUAL_REQUIRED
                ),
            ),
        )
        await self.store.set_document(INCIDENT_COLLECTION, incident.id, incident.model_dump(mode="json"))
        logger.info(
            f"Incident {incident.id} opened for {pipeline_id}",
            extra={"incident_id": incident.id, "root_cause": incident.root_cause.value},
        )
        return incident


__all__ = [
    "IncidentService",
    "infer_root_cause",
    "root_cause_for",
]
