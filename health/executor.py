# ============================================================================
# HEALTH CHECK ORCHESTRATOR
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Concurrent service checks and aggregation
# PURPOSE: Run every checker, classify by criticality, persist the result
# CREATED: 17 OCT 2026
# ============================================================================
"""
Health Check Orchestrator

Executes the six service checks for one pipeline run:
1. One asyncio task per registered checker, all started together
2. Wait for every task (ALL_COMPLETED, never short-circuits)
3. Read results in ServiceName declaration order; a task that raised or a
   service with no checker becomes a synthesized failed entry
4. Classify by criticality:
   - failed on a CRITICAL service       -> critical_failures
   - failed on a non-CRITICAL service   -> warnings
   - degraded on any service            -> warnings
5. Persist the HealthCheckDocument at pipelines/{pipeline_id} -> health,
   strictly after aggregation; storage errors are logged, never raised

Total duration is bounded by the slowest check, not the sum of all checks.
The 120 second ceiling is soft: exceeding it is logged, never enforced.
"""

import asyncio
import time
from typing import Dict, List, Optional, Tuple

from core.config import Defaults, get_defaults
from core.contracts import CheckStatus, ServiceCriticality, ServiceName
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import HealthCheckDocument, HealthCheckResult, IndividualHealthCheck
from health.checks.quota import get_quota_alert_level
from health.registry import HealthCheckRegistry
from repositories.document_repo import DocumentStore

logger = get_logger(__name__, ComponentType.GATE)

HEALTH_DOCUMENT_ID = "health"


def health_collection(pipeline_id: str) -> str:
    """Collection holding the health document for a pipeline run."""
    return f"pipelines/{pipeline_id}"


def classify_checks(
    checks: List[IndividualHealthCheck],
) -> Tuple[List[ServiceName], List[ServiceName]]:
    """
    Split checks into critical failures and warnings.

    Returns:
        (critical_failures, warnings), each in the order of `checks`
    """
    critical_failures: List[ServiceName] = []
    warnings: List[ServiceName] = []

    for check in checks:
        if check.status == CheckStatus.FAILED:
            if check.service.criticality == ServiceCriticality.CRITICAL:
                critical_failures.append(check.service)
            else:
                warnings.append(check.service)
        elif check.status == CheckStatus.DEGRADED:
            warnings.append(check.service)

    return critical_failures, warnings


def has_critical_failures(result: HealthCheckResult) -> bool:
    """True if any CRITICAL service failed."""
    return len(result.critical_failures) > 0


def get_health_check_summary(result: HealthCheckResult) -> str:
    """
    One-line human summary.

    Examples:
        All 6 services healthy (1234ms)
        5 healthy, 1 degraded: twitter (1234ms)
        CRITICAL: 1 failed (gemini), 0 warnings (1234ms)
    """
    duration = f"({result.total_duration_ms}ms)"
    warnings = ", ".join(s.value for s in result.warnings)

    if result.all_passed and not result.warnings:
        return f"All {len(result.checks)} services healthy {duration}"

    if result.all_passed:
        healthy = len(result.checks) - len(result.warnings)
        return f"{healthy} healthy, {len(result.warnings)} degraded: {warnings} {duration}"

    failed = ", ".join(s.value for s in result.critical_failures)
    return (
        f"CRITICAL: {len(result.critical_failures)} failed ({failed}), "
        f"{len(result.warnings)} warnings {duration}"
    )


class HealthCheckOrchestrator:
    """
    Runs all registered checkers concurrently and aggregates the outcome.

    Checkers share no mutable state, so no locking is needed.
    """

    def __init__(
        self,
        registry: HealthCheckRegistry,
        store: Optional[DocumentStore] = None,
        defaults: Optional[Defaults] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            registry: Checkers to run
            store: Document store for persisting results (skipped if None)
            defaults: Duration thresholds (uses global defaults if None)
        """
        self.registry = registry
        self.store = store
        self.defaults = defaults or get_defaults()

    async def perform_health_check(self, pipeline_id: str) -> HealthCheckResult:
        """
        Check every service for a pipeline run.

        Never raises on checker failures; the only exception that escapes is
        cancellation of the caller.

        Args:
            pipeline_id: Pipeline run id (YYYY-MM-DD)

        Returns:
            Aggregated result with one check per service in declaration order
        """
        with log_context(pipeline_id=pipeline_id, component=ComponentType.GATE.value):
            start_time = time.monotonic()
            logger.info("Starting health check")

            checks = await self._run_checks(start_time)
            total_duration_ms = int((time.monotonic() - start_time) * 1000)

            critical_failures, warnings = classify_checks(checks)
            result = HealthCheckResult(
                all_passed=len(critical_failures) == 0,
                checks=checks,
                critical_failures=critical_failures,
                warnings=warnings,
                total_duration_ms=total_duration_ms,
            )

            self._log_quota_alert(result)
            self._log_duration(total_duration_ms)

            await self._persist(pipeline_id, result)

            logger.info(
                f"Health check completed: {get_health_check_summary(result)}",
                extra={
                    "all_passed": result.all_passed,
                    "critical_failures": [s.value for s in critical_failures],
                    "warnings": [s.value for s in warnings],
                    "total_duration_ms": total_duration_ms,
                    "check_results": [
                        {"service": c.service.value, "status": c.status.value, "latency_ms": c.latency_ms}
                        for c in checks
                    ],
                },
            )
            log_checkpoint("health_check_completed", {
                "all_passed": result.all_passed,
                "critical_failures": len(critical_failures),
                "warnings": len(warnings),
            })

            return result

    async def _run_checks(self, start_time: float) -> List[IndividualHealthCheck]:
        """Run checkers concurrently and collect results in declaration order."""
        tasks: Dict[ServiceName, asyncio.Task] = {
            checker.service: asyncio.create_task(checker.check())
            for checker in self.registry.get_all()
        }

        if tasks:
            try:
                await asyncio.wait(tasks.values(), return_when=asyncio.ALL_COMPLETED)
            except asyncio.CancelledError:
                for task in tasks.values():
                    task.cancel()
                raise

        checks: List[IndividualHealthCheck] = []
        for service in ServiceName.ordered():
            task = tasks.get(service)
            elapsed_ms = int((time.monotonic() - start_time) * 1000)

            if task is None:
                logger.error(f"No health check registered for {service.value}")
                checks.append(IndividualHealthCheck.failed(
                    service, "Health check not registered", latency_ms=elapsed_ms,
                ))
                continue

            error = task.exception() if not task.cancelled() else asyncio.CancelledError("cancelled")
            if error is not None:
                logger.error(
                    f"Health check {service.value} threw unhandled error: {error}",
                    extra={"service": service.value},
                )
                checks.append(IndividualHealthCheck.failed(
                    service, str(error) or type(error).__name__, latency_ms=elapsed_ms,
                ))
                continue

            checks.append(task.result())

        return checks

    def _log_quota_alert(self, result: HealthCheckResult) -> None:
        youtube = result.get_check(ServiceName.YOUTUBE)
        if youtube is None or not youtube.metadata or "percentage" not in youtube.metadata:
            return

        percentage = float(youtube.metadata["percentage"])
        alert = get_quota_alert_level(percentage, self.defaults.quota)
        if alert:
            logger.warning(
                f"YouTube quota alert: {alert.message}",
                extra={
                    "quota_percentage": round(percentage, 1),
                    "alert_severity": alert.severity.value,
                },
            )

    def _log_duration(self, total_duration_ms: int) -> None:
        health = self.defaults.health
        if total_duration_ms > health.max_total_duration_ms:
            logger.error(
                "Health check exceeded maximum duration",
                extra={
                    "total_duration_ms": total_duration_ms,
                    "max_allowed_ms": health.max_total_duration_ms,
                },
            )
        elif total_duration_ms > health.slow_warning_duration_ms:
            logger.warning(
                "Health check took longer than expected",
                extra={"total_duration_ms": total_duration_ms},
            )

    async def _persist(self, pipeline_id: str, result: HealthCheckResult) -> None:
        """Store the result; storage problems never fail the health check."""
        if self.store is None:
            logger.debug("No document store configured, skipping persistence")
            return

        document = HealthCheckDocument.from_result(pipeline_id, result)
        try:
            await self.store.set_document(
                health_collection(pipeline_id),
                HEALTH_DOCUMENT_ID,
                document.model_dump(mode="json"),
            )
            logger.debug(f"Health check results stored at {health_collection(pipeline_id)}/{HEALTH_DOCUMENT_ID}")
        except Exception as e:
            logger.warning(f"Failed to store health check results: {e}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HEALTH_DOCUMENT_ID",
    "HealthCheckOrchestrator",
    "classify_checks",
    "get_health_check_summary",
    "has_critical_failures",
    "health_collection",
]
