# ============================================================================
# ALERT & FAILURE RESPONSE MODELS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core model - Failure policy and alert dispatch results
# PURPOSE: Typed policy entries, alert payloads and handler outcomes
# CREATED: 17 OCT 2026
# EXPORTS: FailureResponse, AlertField, Alert, SendResult, DispatchResult,
#          AlertRecord, FailureHandlerResult
# DEPENDENCIES: pydantic
# ============================================================================
"""
Alert and Failure Response Models

FailureResponse is static policy (one entry per service). Alert is what a
notification channel sends. AlertRecord/FailureHandlerResult describe what
the failure handler actually did for one pipeline run; they are returned to
the caller and not persisted.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from core.contracts import AlertSeverity, ResponseAction, ServiceName
from core.models.health import utc_now_iso


class FailureResponse(BaseModel):
    """How the gate responds when a given service fails."""
    action: ResponseAction
    alert_type: AlertSeverity
    should_alert_discord: bool
    should_alert_email: bool

    model_config = {"frozen": True}


class AlertField(BaseModel):
    """Name/value pair rendered as an embed field or an email line."""
    name: str
    value: str
    inline: bool = False


class Alert(BaseModel):
    """A notification sent to one or more channels."""
    severity: AlertSeverity
    title: str
    description: str
    fields: List[AlertField] = Field(default_factory=list)
    timestamp: str = Field(default_factory=utc_now_iso)


class SendResult(BaseModel):
    """Outcome of sending one alert on one channel."""
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None


class DispatchResult(BaseModel):
    """
    Outcome of sending one alert on every selected channel.

    Succeeds when at least one channel succeeded; `error` joins the
    failures of every channel that did not.
    """
    success: bool
    channels: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class AlertRecord(BaseModel):
    """An alert the failure handler dispatched."""
    severity: AlertSeverity
    services: List[ServiceName]
    title: str
    channels: List[str] = Field(default_factory=list)
    success: bool = False
    error: Optional[str] = None


class FailureHandlerResult(BaseModel):
    """
    What the failure handler decided and did for one health result.

    buffer_deployment_triggered means the buffer flow ran to completion;
    buffer_deployed means a buffer video was actually released. alerts_sent
    holds the primary alert only; the no-buffer emergency alert is sent
    but not recorded there.
    """
    should_skip_pipeline: bool = False
    buffer_deployment_triggered: bool = False
    buffer_deployed: bool = False
    buffer_available_count: Optional[int] = None
    incident_id: Optional[str] = None
    alerts_sent: List[AlertRecord] = Field(default_factory=list)


__all__ = [
    "FailureResponse",
    "AlertField",
    "Alert",
    "SendResult",
    "DispatchResult",
    "AlertRecord",
    "FailureHandlerResult",
]
