# ============================================================================
# HEALTH GATE MODULE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Pre-flight health checks, failure routing and history
# PURPOSE: Decide whether a pipeline run may start
# CREATED: 17 OCT 2026
# ============================================================================
"""
Health Gate Module

Pre-flight verification for the daily content pipeline:
- ServiceHealthChecker: Base class, one concrete checker per service
- HealthCheckRegistry: Checkers keyed by service
- HealthCheckOrchestrator: Concurrent fan-out, criticality classification,
  persistence at pipelines/{pipeline_id} -> health
- FailureHandler: Skip decision, buffer deployment, severity-routed alerts
- HealthHistoryAnalyzer: Uptime, failure patterns, recurring issues

Usage:
    from health import HealthCheckOrchestrator
    from health.checks import build_default_registry

    registry = build_default_registry(secrets, store)
    orchestrator = HealthCheckOrchestrator(registry, store)
    result = await orchestrator.perform_health_check("2026-10-17")

The FastAPI router lives in health.router and is imported directly.
"""

from health.core import (
    HEALTH_CHECK_TIMEOUT_SECONDS,
    ProbeResult,
    ServiceHealthChecker,
)
from health.registry import HealthCheckRegistry
from health.executor import (
    HealthCheckOrchestrator,
    classify_checks,
    get_health_check_summary,
    has_critical_failures,
)
from health.failure_handler import (
    FailureHandler,
    get_failure_response,
)
from health.history import HealthHistoryAnalyzer

__all__ = [
    # Core types
    "HEALTH_CHECK_TIMEOUT_SECONDS",
    "ProbeResult",
    "ServiceHealthChecker",
    # Registry
    "HealthCheckRegistry",
    # Orchestrator
    "HealthCheckOrchestrator",
    "classify_checks",
    "get_health_check_summary",
    "has_critical_failures",
    # Failure handling
    "FailureHandler",
    "get_failure_response",
    # History
    "HealthHistoryAnalyzer",
]
