# ============================================================================
# INCIDENT MODEL
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core model - Skipped-run incident record
# PURPOSE: Persistent trail of every pipeline run the gate skipped
# CREATED: 17 OCT 2026
# EXPORTS: INCIDENT_COLLECTION, HEALTH_CHECK_FAILED_CODE, IncidentError,
#          IncidentContext, Incident
# DEPENDENCIES: pydantic
# ============================================================================
"""
Incident Model

One incident per skipped pipeline run, stored in the `incidents`
collection under `{date}-{NNN}` where NNN is the 1-based sequence of
incidents opened that day (e.g. 2026-10-17-001).

Incidents are opened by the failure handler and stay open until an
operator closes them; the gate never updates one after writing it.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from core.contracts import AlertSeverity, IncidentResolution, RootCause, ServiceName
from core.models.health import utc_now_iso

INCIDENT_COLLECTION = "incidents"
HEALTH_CHECK_FAILED_CODE = "NEXUS_HEALTH_CHECK_FAILED"


class IncidentError(BaseModel):
    code: str
    message: str


class IncidentContext(BaseModel):
    """What the gate knew when it opened the incident."""
    critical_failures: List[ServiceName] = Field(default_factory=list)
    warnings: List[ServiceName] = Field(default_factory=list)
    health_check_duration_ms: int = 0
    buffer_available: bool = False
    buffer_count: Optional[int] = None
    suggested_resolution: IncidentResolution = IncidentResolution.MANUAL_REQUIRED


class Incident(BaseModel):
    """A skipped pipeline run."""
    id: str
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    pipeline_id: str
    stage: str = "health-check"
    error: IncidentError
    severity: AlertSeverity = AlertSeverity.CRITICAL
    start_time: str
    root_cause: RootCause = RootCause.UNKNOWN
    context: IncidentContext = Field(default_factory=IncidentContext)
    is_open: bool = True
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


__all__ = [
    "INCIDENT_COLLECTION",
    "HEALTH_CHECK_FAILED_CODE",
    "IncidentError",
    "IncidentContext",
    "Incident",
]
