# ============================================================================
# PRE-FLIGHT GATE ROUTER
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: API - FastAPI endpoints for the gate and its history
# PURPOSE: Liveness probe, pre-flight trigger, history and dashboard status
# CREATED: 17 OCT 2026
# ============================================================================
"""
Pre-flight Gate Router

Endpoints:
    GET  /livez                      - Liveness probe (no external calls)
    POST /preflight/{pipeline_id}    - Run the gate for a pipeline run
    GET  /health/history?days=7      - HealthHistorySummary
    GET  /health/status?days=7       - QuickHealthStatus for dashboards

Response Codes for /preflight:
    200 - All checks passed, no warnings
    206 - Proceeding with warnings (partial content)
    503 - Critical failure, pipeline skipped
    422 - pipeline_id is not YYYY-MM-DD
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Path, Query
from fastapi.responses import JSONResponse

from core.logging import ComponentType, get_logger
from core.models import HealthCheckResult
from health.history import DEFAULT_HISTORY_DAYS, HealthHistoryAnalyzer
from services.preflight import PreflightGate
from __version__ import __version__, BUILD_DATE

logger = get_logger(__name__, ComponentType.API)

health_router = APIRouter(tags=["Health"])

MAX_HISTORY_DAYS = 90

# Pipeline runs are keyed by date
PIPELINE_ID_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

_gate: Optional[PreflightGate] = None
_history: Optional[HealthHistoryAnalyzer] = None


def set_services(gate: Optional[PreflightGate], history: Optional[HealthHistoryAnalyzer]) -> None:
    """Set service instances for dependency injection."""
    global _gate, _history
    _gate = gate
    _history = history


def get_gate() -> PreflightGate:
    if _gate is None:
        raise HTTPException(500, "Pre-flight gate not initialized")
    return _gate


def get_history() -> HealthHistoryAnalyzer:
    if _history is None:
        raise HTTPException(500, "History analyzer not initialized")
    return _history


def _result_to_http_code(result: HealthCheckResult) -> int:
    """Map a health check result to an HTTP status code."""
    if not result.all_passed:
        return 503  # Service Unavailable
    if result.warnings:
        return 206  # Partial Content
    return 200


# ============================================================================
# LIVENESS PROBE
# ============================================================================

@health_router.get("/livez")
async def liveness_probe():
    """
    Liveness probe.

    Instant check with no external dependencies.
    """
    return {"status": "alive", "version": __version__, "build_date": BUILD_DATE}


# ============================================================================
# PRE-FLIGHT
# ============================================================================

@health_router.post("/preflight/{pipeline_id}")
async def run_preflight(pipeline_id: str = Path(..., pattern=PIPELINE_ID_PATTERN)):
    """
    Run all service checks for a pipeline run and route failures.

    The result is persisted at pipelines/{pipeline_id} -> health. A
    pipeline_id that is not YYYY-MM-DD is rejected with 422 before any
    check runs.
    """
    gate = get_gate()
    decision = await gate.run(pipeline_id)
    return JSONResponse(
        status_code=_result_to_http_code(decision.result),
        content=decision.to_dict(),
    )


# ============================================================================
# HISTORY
# ============================================================================

@health_router.get("/health/history")
async def health_history(days: int = Query(DEFAULT_HISTORY_DAYS, ge=0, le=MAX_HISTORY_DAYS)):
    """Per-service uptime, latency, failure patterns and recurring issues."""
    summary = await get_history().get_health_history(days)
    return summary.model_dump(mode="json")


@health_router.get("/health/status")
async def health_status(days: int = Query(DEFAULT_HISTORY_DAYS, ge=0, le=MAX_HISTORY_DAYS)):
    """Dashboard status: healthy, degraded or critical."""
    status = await get_history().get_quick_health_status(days)
    return status.model_dump(mode="json")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "health_router",
    "set_services",
]
