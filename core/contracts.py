# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Foundation - Service identity, status and policy enums
# PURPOSE: Define the fixed service set and the enums shared by every layer
# CREATED: 17 OCT 2026
# EXPORTS: ServiceName, CheckStatus, ServiceCriticality, ResponseAction,
#          AlertSeverity, FailurePattern, QuickStatus, BufferStatus
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the pre-flight health gate.

The gate supports exactly six services. Their declaration order in
ServiceName is the canonical order of the `checks` list in every
HealthCheckResult, regardless of which check finishes first.

Criticality is business judgment, not something derived at runtime:
- CRITICAL:    failure blocks the pipeline run
- DEGRADED:    pipeline continues with a quality flag
- RECOVERABLE: pipeline continues normally
"""

from enum import Enum
from typing import Dict, List


# ============================================================================
# SERVICE IDENTITY
# ============================================================================

class ServiceName(str, Enum):
    """External dependencies verified before each pipeline run."""
    GEMINI = "gemini"              # LLM API
    YOUTUBE = "youtube"            # Publishing API (quota-checked)
    TWITTER = "twitter"            # Social API
    POSTGRES = "postgres"          # Document store
    BLOB_STORAGE = "blob-storage"  # Object store
    KEY_VAULT = "key-vault"        # Secrets service

    @property
    def criticality(self) -> "ServiceCriticality":
        """Business criticality of this service."""
        return SERVICE_CRITICALITY[self]

    @classmethod
    def ordered(cls) -> List["ServiceName"]:
        """All services in declaration order."""
        return list(cls)


# ============================================================================
# STATUS ENUMS
# ============================================================================

class CheckStatus(str, Enum):
    """Outcome of a single service check."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"


class ServiceCriticality(str, Enum):
    """Whether a service failure can block the pipeline."""
    CRITICAL = "CRITICAL"
    DEGRADED = "DEGRADED"
    RECOVERABLE = "RECOVERABLE"


class ResponseAction(str, Enum):
    """What the pipeline does when a service fails."""
    SKIP_PIPELINE = "skip-pipeline"
    CONTINUE_DEGRADED = "continue-degraded"
    CONTINUE_NORMAL = "continue-normal"


class AlertSeverity(str, Enum):
    """Alert severity understood by every notification channel."""
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    SUCCESS = "SUCCESS"
    INFO = "INFO"

    @property
    def color(self) -> int:
        """Discord embed color for this severity."""
        colors = {
            AlertSeverity.CRITICAL: 0xFF0000,
            AlertSeverity.WARNING: 0xFFA500,
            AlertSeverity.SUCCESS: 0x00FF00,
            AlertSeverity.INFO: 0x0099FF,
        }
        return colors[self]


class FailurePattern(str, Enum):
    """How a service's failures are distributed over a history window."""
    NONE = "none"
    INTERMITTENT = "intermittent"
    CONSISTENT = "consistent"


class QuickStatus(str, Enum):
    """Dashboard-level rollup of a history window."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


class BufferStatus(str, Enum):
    """
    Buffer video lifecycle.

    State transitions:
        ACTIVE -> DEPLOYED
               -> ARCHIVED
    """
    ACTIVE = "active"
    DEPLOYED = "deployed"
    ARCHIVED = "archived"


class RootCause(str, Enum):
    """Incident root cause category, inferred from error text."""
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    QUOTA_EXCEEDED = "quota_exceeded"
    AUTH_FAILURE = "auth_failure"
    NETWORK_ERROR = "network_error"
    CONFIG_ERROR = "config_error"
    DATA_ERROR = "data_error"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    DEPENDENCY_FAILURE = "dependency_failure"
    API_OUTAGE = "api_outage"
    UNKNOWN = "unknown"


class IncidentResolution(str, Enum):
    """What the gate expects to resolve a skipped run."""
    BUFFER_DEPLOYED = "buffer_deployed"
    MANUAL_REQUIRED = "manual_required"


# ============================================================================
# CRITICALITY POLICY
# ============================================================================

SERVICE_CRITICALITY: Dict[ServiceName, ServiceCriticality] = {
    ServiceName.GEMINI: ServiceCriticality.CRITICAL,          # No LLM = no content
    ServiceName.YOUTUBE: ServiceCriticality.CRITICAL,         # Can't publish = no video
    ServiceName.TWITTER: ServiceCriticality.RECOVERABLE,      # Social is nice-to-have
    ServiceName.POSTGRES: ServiceCriticality.CRITICAL,        # Can't persist state = fatal
    ServiceName.BLOB_STORAGE: ServiceCriticality.DEGRADED,    # Can work with degraded storage
    ServiceName.KEY_VAULT: ServiceCriticality.CRITICAL,       # No credentials = fatal
}

_missing = [s.value for s in ServiceName if s not in SERVICE_CRITICALITY]
if _missing:
    raise RuntimeError(f"No criticality defined for services: {_missing}")
del _missing


def get_service_criticality(service: ServiceName) -> ServiceCriticality:
    """Look up the criticality of a service."""
    return SERVICE_CRITICALITY[ServiceName(service)]


__all__ = [
    "ServiceName",
    "CheckStatus",
    "ServiceCriticality",
    "ResponseAction",
    "AlertSeverity",
    "FailurePattern",
    "QuickStatus",
    "BufferStatus",
    "RootCause",
    "IncidentResolution",
    "SERVICE_CRITICALITY",
    "get_service_criticality",
]
