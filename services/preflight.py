# ============================================================================
# PRE-FLIGHT GATE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Service - Proceed / skip decision for a pipeline run
# PURPOSE: Run the health checks, route failures, report the decision
# CREATED: 17 OCT 2026
# ============================================================================
"""
Pre-flight Gate

Single entry point called before the expensive pipeline starts:

    decision = await gate.run("2026-10-17")
    if not decision.proceed:
        return  # buffer video already scheduled, operator alerted

Stage 1: HealthCheckOrchestrator runs all six checks and persists them.
Stage 2: FailureHandler is invoked only when something needs a response
         (critical failures or warnings).

The decision is to proceed unless the handler says to skip.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from core.logging import ComponentType, get_logger
from core.models import FailureHandlerResult, HealthCheckResult
from health.executor import HealthCheckOrchestrator, get_health_check_summary
from health.failure_handler import FailureHandler

logger = get_logger(__name__, ComponentType.GATE)


@dataclass
class PreflightDecision:
    """Outcome of the gate for one pipeline run."""
    pipeline_id: str
    proceed: bool
    summary: str
    result: HealthCheckResult
    handler_result: Optional[FailureHandlerResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pipeline_id": self.pipeline_id,
            "proceed": self.proceed,
            "summary": self.summary,
            "result": self.result.model_dump(mode="json"),
            "handler_result": (
                self.handler_result.model_dump(mode="json")
                if self.handler_result is not None else None
            ),
        }


class PreflightGate:
    """Health checks followed by failure routing."""

    def __init__(self, orchestrator: HealthCheckOrchestrator, failure_handler: FailureHandler):
        self.orchestrator = orchestrator
        self.failure_handler = failure_handler

    async def run(self, pipeline_id: str) -> PreflightDecision:
        result = await self.orchestrator.perform_health_check(pipeline_id)
        summary = get_health_check_summary(result)

        handler_result: Optional[FailureHandlerResult] = None
        if result.critical_failures or result.warnings:
            handler_result = await self.failure_handler.handle_health_check_failure(pipeline_id, result)

        proceed = handler_result is None or not handler_result.should_skip_pipeline
        if proceed:
            logger.info(f"Pre-flight passed for {pipeline_id}: {summary}")
        else:
            logger.warning(f"Pre-flight blocked {pipeline_id}: {summary}")

        return PreflightDecision(
            pipeline_id=pipeline_id,
            proceed=proceed,
            summary=summary,
            result=result,
            handler_result=handler_result,
        )


__all__ = [
    "PreflightDecision",
    "PreflightGate",
]
