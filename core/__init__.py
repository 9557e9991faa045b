# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core module initialization
# PURPOSE: Export core contracts and models
# CREATED: 17 OCT 2026
# ============================================================================

from core.contracts import (
    ServiceName,
    CheckStatus,
    ServiceCriticality,
    ResponseAction,
    AlertSeverity,
    FailurePattern,
    QuickStatus,
    BufferStatus,
    SERVICE_CRITICALITY,
    get_service_criticality,
)
from core.models import (
    IndividualHealthCheck,
    HealthCheckResult,
    HealthCheckDocument,
    HealthHistorySummary,
    FailureResponse,
    FailureHandlerResult,
)

__all__ = [
    # Enums
    "ServiceName",
    "CheckStatus",
    "ServiceCriticality",
    "ResponseAction",
    "AlertSeverity",
    "FailurePattern",
    "QuickStatus",
    "BufferStatus",
    # Policy
    "SERVICE_CRITICALITY",
    "get_service_criticality",
    # Models
    "IndividualHealthCheck",
    "HealthCheckResult",
    "HealthCheckDocument",
    "HealthHistorySummary",
    "FailureResponse",
    "FailureHandlerResult",
]
