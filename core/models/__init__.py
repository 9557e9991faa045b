# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# CREATED: 17 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the pre-flight health gate.
"""

from core.models.health import (
    utc_now_iso,
    IndividualHealthCheck,
    HealthCheckResult,
    HealthCheckDocument,
    QuotaAlert,
    ServiceHealthStats,
    RecurringIssue,
    DateRange,
    HealthHistorySummary,
    QuickHealthStatus,
)
from core.models.alerts import (
    FailureResponse,
    AlertField,
    Alert,
    SendResult,
    DispatchResult,
    AlertRecord,
    FailureHandlerResult,
)
from core.models.buffer import BUFFER_COLLECTION, BufferVideo, BufferDeploymentResult
from core.models.incident import (
    INCIDENT_COLLECTION,
    HEALTH_CHECK_FAILED_CODE,
    IncidentError,
    IncidentContext,
    Incident,
)

__all__ = [
    # Health
    "utc_now_iso",
    "IndividualHealthCheck",
    "HealthCheckResult",
    "HealthCheckDocument",
    "QuotaAlert",
    # History
    "ServiceHealthStats",
    "RecurringIssue",
    "DateRange",
    "HealthHistorySummary",
    "QuickHealthStatus",
    # Alerts
    "FailureResponse",
    "AlertField",
    "Alert",
    "SendResult",
    "DispatchResult",
    "AlertRecord",
    "FailureHandlerResult",
    # Buffer
    "BUFFER_COLLECTION",
    "BufferVideo",
    "BufferDeploymentResult",
    # Incidents
    "INCIDENT_COLLECTION",
    "HEALTH_CHECK_FAILED_CODE",
    "IncidentError",
    "IncidentContext",
    "Incident",
]
