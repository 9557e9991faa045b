# ============================================================================
# HEALTH CHECK MODELS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core model - Health check results and history rollups
# PURPOSE: Typed results for individual checks, aggregates and history
# CREATED: 17 OCT 2026
# EXPORTS: IndividualHealthCheck, HealthCheckResult, HealthCheckDocument,
#          ServiceHealthStats, RecurringIssue, DateRange,
#          HealthHistorySummary, QuickHealthStatus, QuotaAlert
# DEPENDENCIES: pydantic
# ============================================================================
"""
Health Check Models

Lifecycle:
    1. Each checker produces one IndividualHealthCheck
    2. The orchestrator builds one HealthCheckResult per pipeline run
    3. The result is persisted as a HealthCheckDocument at
       pipelines/{pipeline_id} -> health and never updated again
    4. History rollups (ServiceHealthStats, HealthHistorySummary) are
       recomputed from stored documents on every call

HealthCheckResult and HealthCheckDocument are frozen after construction.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from core.contracts import (
    AlertSeverity,
    CheckStatus,
    FailurePattern,
    QuickStatus,
    ServiceName,
)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with a Z suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ============================================================================
# INDIVIDUAL CHECK
# ============================================================================

class IndividualHealthCheck(BaseModel):
    """
    Result of one service check.

    `failed` is expected to carry an `error`, but that is not enforced.
    The youtube check always carries quotaUsed/quotaLimit/percentage in
    `metadata`.
    """
    service: ServiceName
    status: CheckStatus
    latency_ms: int = Field(default=0, ge=0)
    error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    model_config = {"frozen": True}

    @classmethod
    def failed(
        cls,
        service: ServiceName,
        error: str,
        latency_ms: int = 0,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "IndividualHealthCheck":
        """Create a failed result."""
        return cls(
            service=service,
            status=CheckStatus.FAILED,
            latency_ms=max(0, latency_ms),
            error=error,
            metadata=metadata,
        )


# ============================================================================
# AGGREGATE RESULT
# ============================================================================

class HealthCheckResult(BaseModel):
    """Aggregated result of all six checks for one pipeline run."""
    timestamp: str = Field(default_factory=utc_now_iso)
    all_passed: bool
    checks: List[IndividualHealthCheck]
    critical_failures: List[ServiceName] = Field(default_factory=list)
    warnings: List[ServiceName] = Field(default_factory=list)
    total_duration_ms: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _all_passed_matches_critical_failures(self) -> "HealthCheckResult":
        if self.all_passed != (len(self.critical_failures) == 0):
            raise ValueError("all_passed must be true exactly when there are no critical failures")
        return self

    def get_check(self, service: ServiceName) -> Optional[IndividualHealthCheck]:
        """Find the check for a service."""
        for check in self.checks:
            if check.service == service:
                return check
        return None

    def failed_checks(self) -> List[IndividualHealthCheck]:
        """Checks with status `failed`, in declaration order."""
        return [c for c in self.checks if c.status == CheckStatus.FAILED]


class HealthCheckDocument(HealthCheckResult):
    """HealthCheckResult as stored at pipelines/{pipeline_id} -> health."""
    pipeline_id: str

    @classmethod
    def from_result(cls, pipeline_id: str, result: HealthCheckResult) -> "HealthCheckDocument":
        return cls(pipeline_id=pipeline_id, **result.model_dump())


# ============================================================================
# QUOTA
# ============================================================================

class QuotaAlert(BaseModel):
    """Alert level derived from publishing quota usage."""
    severity: AlertSeverity
    message: str


# ============================================================================
# HISTORY
# ============================================================================

class ServiceHealthStats(BaseModel):
    """Per-service statistics over a history window."""
    total_checks: int = 0
    failures: int = 0
    uptime_percentage: float = 100.0
    avg_latency_ms: int = 0
    last_failure: Optional[str] = None
    failure_pattern: FailurePattern = FailurePattern.NONE


class RecurringIssue(BaseModel):
    """A service whose failures crossed the reporting threshold."""
    service: ServiceName
    frequency: int
    last_occurrence: str
    description: str


class DateRange(BaseModel):
    start: str
    end: str


class HealthHistorySummary(BaseModel):
    """Rollup of stored health documents over a window of days."""
    date_range: DateRange
    services: Dict[ServiceName, ServiceHealthStats]
    recurring_issues: List[RecurringIssue] = Field(default_factory=list)
    total_checks: int = 0
    overall_health: float = 100.0


class QuickHealthStatus(BaseModel):
    """Dashboard status derived from a HealthHistorySummary."""
    status: QuickStatus
    overall_health: float
    critical_issues: int = 0
    warnings: int = 0


__all__ = [
    "utc_now_iso",
    "IndividualHealthCheck",
    "HealthCheckResult",
    "HealthCheckDocument",
    "QuotaAlert",
    "ServiceHealthStats",
    "RecurringIssue",
    "DateRange",
    "HealthHistorySummary",
    "QuickHealthStatus",
]
