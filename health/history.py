# ============================================================================
# HEALTH HISTORY ANALYZER
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Rolling health statistics
# PURPOSE: Uptime, latency, failure patterns and recurring issues per service
# CREATED: 17 OCT 2026
# ============================================================================
"""
Health History Analyzer

Reads one stored HealthCheckDocument per calendar day in
[today - days, today] (UTC) from pipelines/{YYYY-MM-DD} -> health and
recomputes every statistic on each call. Nothing is cached.

Reads are sequential, one day at a time, to avoid bursting the document
store. A missing or unreadable day is skipped.

Failure pattern per service:
    none          zero failures
    consistent    failure rate > 50%, OR failures on 3+ consecutive days
    intermittent  anything else

A service is a recurring issue when it failed more than twice or its
failure rate is above 20%. Only `failed` counts as a failure; `degraded`
does not.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from core.contracts import CheckStatus, FailurePattern, QuickStatus, ServiceName
from core.logging import ComponentType, get_logger
from core.models import (
    DateRange,
    HealthCheckDocument,
    HealthHistorySummary,
    QuickHealthStatus,
    RecurringIssue,
    ServiceHealthStats,
)
from health.executor import HEALTH_DOCUMENT_ID, health_collection
from repositories.document_repo import DocumentStore

logger = get_logger(__name__, ComponentType.HISTORY)

DEFAULT_HISTORY_DAYS = 7

CONSISTENT_FAILURE_RATE = 0.5
CONSECUTIVE_FAILURE_DAYS = 3
RECURRING_MIN_FAILURES = 2
RECURRING_FAILURE_RATE = 0.2

QUICK_CRITICAL_UPTIME = 50.0
QUICK_DEGRADED_UPTIME = 90.0
QUICK_DEGRADED_OVERALL = 95.0


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _calendar_date(timestamp: str) -> date:
    return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).date()


def has_consecutive_failures(failure_timestamps: List[str], run_length: int = CONSECUTIVE_FAILURE_DAYS) -> bool:
    """True if failures fall on `run_length` or more consecutive calendar days."""
    if len(failure_timestamps) < run_length:
        return False

    days = sorted({_calendar_date(ts) for ts in failure_timestamps})
    consecutive = 1
    for prev, curr in zip(days, days[1:]):
        if (curr - prev).days == 1:
            consecutive += 1
            if consecutive >= run_length:
                return True
        else:
            consecutive = 1
    return False


def determine_failure_pattern(failures: int, total_checks: int, failure_timestamps: List[str]) -> FailurePattern:
    """Classify a service's failures over the window."""
    if failures == 0:
        return FailurePattern.NONE

    # Rate and consecutive-day rules are OR'ed; either one is enough.
    if failures / total_checks > CONSISTENT_FAILURE_RATE:
        return FailurePattern.CONSISTENT
    if has_consecutive_failures(failure_timestamps):
        return FailurePattern.CONSISTENT
    return FailurePattern.INTERMITTENT


def describe_issue(service: ServiceName, failures: int, pattern: FailurePattern) -> str:
    if pattern == FailurePattern.CONSISTENT:
        return f"{service.value} has consistent failures ({failures} times)"
    return f"{service.value} has intermittent issues ({failures} failures)"


def build_history_summary(
    documents: List[HealthCheckDocument],
    start: date,
    end: date,
) -> HealthHistorySummary:
    """
    Aggregate stored health documents into a HealthHistorySummary.

    Args:
        documents: Health documents in the window, one per day at most
        start: First calendar day of the window
        end: Last calendar day of the window

    Returns:
        HealthHistorySummary with an entry for every service
    """
    latencies: Dict[ServiceName, List[int]] = {s: [] for s in ServiceName}
    failure_timestamps: Dict[ServiceName, List[str]] = {s: [] for s in ServiceName}
    totals: Dict[ServiceName, int] = {s: 0 for s in ServiceName}

    for document in documents:
        for check in document.checks:
            totals[check.service] += 1
            latencies[check.service].append(check.latency_ms)
            if check.status == CheckStatus.FAILED:
                failure_timestamps[check.service].append(document.timestamp)

    services: Dict[ServiceName, ServiceHealthStats] = {}
    for service in ServiceName:
        total = totals[service]
        failures = len(failure_timestamps[service])
        observed = latencies[service]
        services[service] = ServiceHealthStats(
            total_checks=total,
            failures=failures,
            uptime_percentage=round((1 - failures / total) * 100, 1) if total else 100.0,
            avg_latency_ms=round(sum(observed) / len(observed)) if observed else 0,
            last_failure=max(failure_timestamps[service]) if failures else None,
            failure_pattern=determine_failure_pattern(failures, total, failure_timestamps[service]),
        )

    all_checks = sum(totals.values())
    all_failures = sum(stats.failures for stats in services.values())
    overall_health = round((1 - all_failures / all_checks) * 100, 1) if all_checks else 100.0

    return HealthHistorySummary(
        date_range=DateRange(start=start.isoformat(), end=end.isoformat()),
        services=services,
        recurring_issues=identify_recurring_issues(services),
        total_checks=len(documents),
        overall_health=overall_health,
    )


def identify_recurring_issues(services: Dict[ServiceName, ServiceHealthStats]) -> List[RecurringIssue]:
    """Services over the failure count or rate threshold, most frequent first."""
    issues: List[RecurringIssue] = []
    for service, stats in services.items():
        rate = stats.failures / stats.total_checks if stats.total_checks else 0.0
        if stats.failures > RECURRING_MIN_FAILURES or rate > RECURRING_FAILURE_RATE:
            issues.append(RecurringIssue(
                service=service,
                frequency=stats.failures,
                last_occurrence=stats.last_failure or "",
                description=describe_issue(service, stats.failures, stats.failure_pattern),
            ))
    # sorted() is stable: ties keep declaration order
    return sorted(issues, key=lambda issue: issue.frequency, reverse=True)


def quick_status_from_summary(summary: HealthHistorySummary) -> QuickHealthStatus:
    """Map per-service uptime to a dashboard status."""
    critical_issues = 0
    warnings = 0
    for stats in summary.services.values():
        if stats.uptime_percentage < QUICK_CRITICAL_UPTIME:
            critical_issues += 1
        elif stats.uptime_percentage < QUICK_DEGRADED_UPTIME:
            warnings += 1

    if critical_issues > 0:
        status = QuickStatus.CRITICAL
    elif warnings > 0 or summary.overall_health < QUICK_DEGRADED_OVERALL:
        status = QuickStatus.DEGRADED
    else:
        status = QuickStatus.HEALTHY

    return QuickHealthStatus(
        status=status,
        overall_health=summary.overall_health,
        critical_issues=critical_issues,
        warnings=warnings,
    )


class HealthHistoryAnalyzer:
    """Recomputes health history from the document store."""

    def __init__(self, store: DocumentStore, today: Optional[Callable[[], date]] = None):
        self.store = store
        self._today = today or _utc_today

    async def _load_day(self, day: date) -> Optional[HealthCheckDocument]:
        pipeline_id = day.isoformat()
        try:
            data = await self.store.get_document(health_collection(pipeline_id), HEALTH_DOCUMENT_ID)
        except Exception as e:
            logger.debug(f"No health check read for {pipeline_id}: {e}")
            return None

        if data is None:
            return None

        try:
            return HealthCheckDocument.model_validate(data)
        except PydanticValidationError as e:
            logger.warning(f"Skipping malformed health document for {pipeline_id}: {e.error_count()} errors")
            return None

    async def get_health_history(self, days: int = DEFAULT_HISTORY_DAYS) -> HealthHistorySummary:
        """
        Summarize health over the last `days` days.

        Args:
            days: Window length; the window covers days + 1 calendar days
                  ending today (UTC)

        Returns:
            HealthHistorySummary
        """
        if days < 0:
            raise ValueError(f"days must be non-negative, got {days}")

        end = self._today()
        start = end - timedelta(days=days)
        logger.info(f"Fetching health history for {days} days ({start} to {end})")

        documents: List[HealthCheckDocument] = []
        day = start
        while day <= end:
            document = await self._load_day(day)
            if document is not None:
                documents.append(document)
            day += timedelta(days=1)

        logger.info(f"Health history query complete: {len(documents)} documents found")
        return build_history_summary(documents, start, end)

    async def get_quick_health_status(self, days: int = DEFAULT_HISTORY_DAYS) -> QuickHealthStatus:
        """Dashboard status for the last `days` days."""
        summary = await self.get_health_history(days)
        return quick_status_from_summary(summary)


__all__ = [
    "DEFAULT_HISTORY_DAYS",
    "HealthHistoryAnalyzer",
    "build_history_summary",
    "determine_failure_pattern",
    "has_consecutive_failures",
    "identify_recurring_issues",
    "quick_status_from_summary",
]
