# ============================================================================
# HEALTH CHECK FAILURE HANDLER
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Failure response routing
# PURPOSE: Decide skip vs continue, send alerts, trigger buffer deployment
# CREATED: 17 OCT 2026
# ============================================================================
"""
Health Check Failure Handler

Responses by outcome:
- Critical failures: pipeline skipped. The buffer flow counts deployable
  buffers, opens an incident and deploys a buffer (each step best-effort),
  then one CRITICAL alert lists every critical failure with the incident
  id and buffer count. With no buffer deployed an emergency alert follows;
  it is sent but not recorded in alerts_sent.
- Warnings only: one WARNING alert listing the warned services, pipeline
  continues, no deployment.
- Neither: nothing happens.

Channel selection follows the per-service FailureResponse policy: Discord
if any implicated service asks for Discord, email if any asks for email.
The document store is the one CRITICAL service that also escalates by
email. Warning alerts always go to Discord.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from core.contracts import (
    AlertSeverity,
    CheckStatus,
    ResponseAction,
    ServiceCriticality,
    ServiceName,
    get_service_criticality,
)
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import (
    Alert,
    AlertField,
    AlertRecord,
    BufferDeploymentResult,
    BufferVideo,
    FailureHandlerResult,
    FailureResponse,
    HealthCheckResult,
    Incident,
)
from services.alert_templates import render_alert
from services.notifier import AlertDispatcher

logger = get_logger(__name__, ComponentType.GATE)


# ============================================================================
# FAILURE RESPONSE POLICY
# ============================================================================

def _policy_for(service: ServiceName) -> FailureResponse:
    criticality = get_service_criticality(service)

    if criticality == ServiceCriticality.CRITICAL:
        return FailureResponse(
            action=ResponseAction.SKIP_PIPELINE,
            alert_type=AlertSeverity.CRITICAL,
            should_alert_discord=True,
            # Losing the document store means losing pipeline state
            should_alert_email=service == ServiceName.POSTGRES,
        )

    if criticality == ServiceCriticality.DEGRADED:
        return FailureResponse(
            action=ResponseAction.CONTINUE_DEGRADED,
            alert_type=AlertSeverity.WARNING,
            should_alert_discord=False,
            should_alert_email=False,
        )

    return FailureResponse(
        action=ResponseAction.CONTINUE_NORMAL,
        alert_type=AlertSeverity.WARNING,
        should_alert_discord=False,
        should_alert_email=False,
    )


FAILURE_RESPONSES: Dict[ServiceName, FailureResponse] = {
    service: _policy_for(service) for service in ServiceName
}


def get_failure_response(service: ServiceName) -> FailureResponse:
    """Static response policy for a failed service."""
    return FAILURE_RESPONSES[ServiceName(service)]


# ============================================================================
# HANDLER
# ============================================================================

class BufferDeployer(Protocol):
    """Fallback content collaborator used on critical failures."""

    async def count_available(self) -> int:
        ...

    async def get_deployment_candidate(self) -> Optional[BufferVideo]:
        ...

    async def deploy(self, candidate: BufferVideo, for_date: str) -> BufferDeploymentResult:
        ...


class IncidentLogger(Protocol):
    """Opens an incident record for a skipped run."""

    async def log_health_check_failure(
        self,
        pipeline_id: str,
        result: HealthCheckResult,
        buffer_count: Optional[int] = None,
    ) -> Incident:
        ...


@dataclass
class BufferFlowOutcome:
    """What the buffer flow found and did for one skipped run."""
    available_count: Optional[int] = None
    incident_id: Optional[str] = None
    deployment: Optional[BufferDeploymentResult] = None
    error: Optional[str] = None

    @property
    def deployed(self) -> bool:
        return self.deployment is not None and self.deployment.success


class FailureHandler:
    """Routes a HealthCheckResult to alerts, incidents and buffer deployment."""

    def __init__(
        self,
        dispatcher: AlertDispatcher,
        buffers: BufferDeployer,
        incidents: Optional[IncidentLogger] = None,
    ):
        self.dispatcher = dispatcher
        self.buffers = buffers
        self.incidents = incidents

    async def handle_health_check_failure(
        self,
        pipeline_id: str,
        result: HealthCheckResult,
    ) -> FailureHandlerResult:
        """
        Respond to a health check result.

        Args:
            pipeline_id: Pipeline run id (YYYY-MM-DD)
            result: Aggregated health check result

        Returns:
            What was decided and which alerts were sent
        """
        with log_context(pipeline_id=pipeline_id, component=ComponentType.GATE.value):
            if result.critical_failures:
                return await self._handle_critical(pipeline_id, result)

            if result.warnings:
                return await self._handle_warnings(pipeline_id, result)

            return FailureHandlerResult()

    async def _handle_critical(self, pipeline_id: str, result: HealthCheckResult) -> FailureHandlerResult:
        failed_checks = result.failed_checks()
        logger.error(
            "Critical health check failures detected - pipeline will be skipped",
            extra={
                "critical_failures": [s.value for s in result.critical_failures],
                "failure_details": [
                    {"service": c.service.value, "error": c.error} for c in failed_checks
                ],
            },
        )

        triggered = False
        outcome = BufferFlowOutcome()
        try:
            await self._run_buffer_flow(pipeline_id, result, outcome)
            triggered = True
        except Exception as e:
            outcome.error = str(e)
            logger.error(f"Failed to trigger buffer deployment: {e}")

        policies = [get_failure_response(s) for s in result.critical_failures]
        alert = Alert(
            severity=AlertSeverity.CRITICAL,
            title="Health Check Failed - Pipeline Skipped",
            description=render_alert(
                "critical",
                pipeline_id=pipeline_id,
                result=result,
                failed_checks=failed_checks,
            ),
            fields=self._fields(pipeline_id, result.critical_failures) + self._buffer_fields(outcome),
        )
        alerts = [await self._send(
            alert,
            result.critical_failures,
            discord=any(p.should_alert_discord for p in policies),
            email=any(p.should_alert_email for p in policies),
        )]

        if not outcome.deployed:
            await self._send_emergency(pipeline_id, result, outcome)

        log_checkpoint("pipeline_skipped", {
            "critical_failures": [s.value for s in result.critical_failures],
            "buffer_deployment_triggered": triggered,
            "buffer_deployed": outcome.deployed,
            "buffer_available_count": outcome.available_count,
            "incident_id": outcome.incident_id,
        })

        return FailureHandlerResult(
            should_skip_pipeline=True,
            buffer_deployment_triggered=triggered,
            buffer_deployed=outcome.deployed,
            buffer_available_count=outcome.available_count,
            incident_id=outcome.incident_id,
            alerts_sent=alerts,
        )

    async def _run_buffer_flow(
        self,
        pipeline_id: str,
        result: HealthCheckResult,
        outcome: BufferFlowOutcome,
    ) -> None:
        """
        Count buffers, open the incident, deploy a buffer.

        Store errors in the lookup or the incident write are logged and the
        flow carries on; only an unexpected error from deploy() escapes.
        """
        candidate: Optional[BufferVideo] = None
        try:
            outcome.available_count = await self.buffers.count_available()
            candidate = await self.buffers.get_deployment_candidate()
        except Exception as e:
            outcome.error = f"Buffer lookup failed: {e}"
            logger.error(f"Failed to check buffer availability: {e}")

        outcome.incident_id = await self._open_incident(pipeline_id, result, outcome.available_count)

        if candidate is None:
            return

        deployment = await self.buffers.deploy(candidate, pipeline_id)
        outcome.deployment = deployment
        if deployment.success:
            logger.info(
                f"Buffer {deployment.buffer_id} deployed for {pipeline_id}",
                extra={"video_id": deployment.video_id, "scheduled_time": deployment.scheduled_time},
            )
        else:
            outcome.error = deployment.error
            logger.error(f"Buffer deployment failed: {deployment.error}")

    async def _open_incident(
        self,
        pipeline_id: str,
        result: HealthCheckResult,
        buffer_count: Optional[int],
    ) -> Optional[str]:
        if self.incidents is None:
            return None
        try:
            incident = await self.incidents.log_health_check_failure(pipeline_id, result, buffer_count)
        except Exception as e:
            logger.error(f"Failed to log incident: {e}")
            return None
        return incident.id

    async def _send_emergency(
        self,
        pipeline_id: str,
        result: HealthCheckResult,
        outcome: BufferFlowOutcome,
    ) -> None:
        logger.error(
            "NO BUFFER DEPLOYED - Channel will miss daily upload",
            extra={"incident_id": outcome.incident_id, "error": outcome.error},
        )
        emergency = Alert(
            severity=AlertSeverity.CRITICAL,
            title="EMERGENCY: Pipeline Failed - NO BUFFERS AVAILABLE",
            description=render_alert("emergency", pipeline_id=pipeline_id, error=outcome.error),
            fields=self._fields(pipeline_id, result.critical_failures) + [
                AlertField(name="Incident ID", value=outcome.incident_id or "N/A", inline=True),
            ],
        )
        await self._send(emergency, result.critical_failures, discord=True, email=False)

    async def _handle_warnings(self, pipeline_id: str, result: HealthCheckResult) -> FailureHandlerResult:
        warned = set(result.warnings)
        warned_checks = [
            c for c in result.checks
            if c.service in warned and c.status != CheckStatus.HEALTHY
        ]
        logger.warning(
            "Non-critical health check warnings",
            extra={
                "warnings": [s.value for s in result.warnings],
                "warning_details": [
                    {"service": c.service.value, "error": c.error} for c in warned_checks
                ],
            },
        )

        policies = [get_failure_response(s) for s in result.warnings]
        alert = Alert(
            severity=AlertSeverity.WARNING,
            title="Health Check Warnings",
            description=render_alert(
                "warning",
                pipeline_id=pipeline_id,
                result=result,
                warned_checks=warned_checks,
            ),
            fields=self._fields(pipeline_id, result.warnings),
        )
        record = await self._send(
            alert,
            result.warnings,
            discord=True,
            email=any(p.should_alert_email for p in policies),
        )
        return FailureHandlerResult(alerts_sent=[record])

    async def _send(
        self,
        alert: Alert,
        services: List[ServiceName],
        discord: bool,
        email: bool,
    ) -> AlertRecord:
        dispatch = await self.dispatcher.dispatch(alert, discord=discord, email=email)
        if not dispatch.success:
            logger.error(f"Failed to send alert '{alert.title}': {dispatch.error}")
        return AlertRecord(
            severity=alert.severity,
            services=list(services),
            title=alert.title,
            channels=dispatch.channels,
            success=dispatch.success,
            error=dispatch.error,
        )

    @staticmethod
    def _fields(pipeline_id: str, services: List[ServiceName]) -> List[AlertField]:
        return [
            AlertField(name="Pipeline ID", value=pipeline_id, inline=True),
            AlertField(
                name="Affected Services",
                value=", ".join(s.value for s in services) or "None",
                inline=True,
            ),
        ]

    @staticmethod
    def _buffer_fields(outcome: BufferFlowOutcome) -> List[AlertField]:
        count = outcome.available_count
        deployed = (
            f"{outcome.deployment.buffer_id} at {outcome.deployment.scheduled_time}"
            if outcome.deployed else "None"
        )
        return [
            AlertField(name="Incident ID", value=outcome.incident_id or "N/A", inline=True),
            AlertField(name="Buffers Available", value=str(count) if count is not None else "Unknown", inline=True),
            AlertField(name="Buffer Deployed", value=deployed),
        ]


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "FAILURE_RESPONSES",
    "BufferDeployer",
    "BufferFlowOutcome",
    "FailureHandler",
    "IncidentLogger",
    "get_failure_response",
]
