# ============================================================================
# FAILURE HANDLER TESTS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Tests - Skip decision, alert routing, buffer deployment
# PURPOSE: Verify responses to critical failures and warnings
# CREATED: 17 OCT 2026
# ============================================================================
"""
Failure Handler Tests

Uses a real AlertDispatcher over mocked Discord/email notifiers so the
channel selection is observable, a mocked buffer service and a mocked
incident logger.

Run with:
    pytest tests/test_failure_handler.py -v
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from core.contracts import AlertSeverity, CheckStatus, ResponseAction, ServiceName
from core.models import (
    BufferDeploymentResult,
    BufferVideo,
    HealthCheckResult,
    Incident,
    IncidentError,
    IndividualHealthCheck,
    SendResult,
)
from health.executor import classify_checks
from health.failure_handler import FAILURE_RESPONSES, FailureHandler, get_failure_response
from infrastructure.base_repository import RepositoryError
from services.notifier import AlertDispatcher


# ============================================================================
# HELPERS
# ============================================================================

def _make_notifier(channel, success=True, error=None):
    notifier = MagicMock()
    notifier.channel = channel
    notifier.send_alert = AsyncMock(return_value=SendResult(success=success, error=error))
    return notifier


def _make_buffers(candidate=True, deploy_success=True, deploy_error=None, available=3):
    buffers = MagicMock()
    buffers.count_available = AsyncMock(return_value=available)
    video = BufferVideo(id="bv-1", video_id="yt-abc", topic="ai", title="Evergreen AI explainer")
    buffers.get_deployment_candidate = AsyncMock(return_value=video if candidate else None)
    buffers.deploy = AsyncMock(return_value=BufferDeploymentResult(
        success=deploy_success,
        buffer_id="bv-1",
        video_id="yt-abc" if deploy_success else None,
        scheduled_time="2026-10-17T14:00:00.000Z" if deploy_success else None,
        error=deploy_error,
    ))
    return buffers


def _make_incidents(incident_id="2026-10-17-001", error=None):
    incidents = MagicMock()
    incidents.log_health_check_failure = AsyncMock(
        return_value=Incident(
            id=incident_id,
            date="2026-10-17",
            pipeline_id="2026-10-17",
            error=IncidentError(code="NEXUS_HEALTH_CHECK_FAILED", message="Health check failed: gemini"),
            start_time="2026-10-17T06:00:00Z",
        ),
        side_effect=error,
    )
    return incidents


def _make_handler(buffers=None, discord_success=True, email_success=True, incidents=None):
    discord = _make_notifier("discord", discord_success, None if discord_success else "Discord webhook failed: 404")
    email = _make_notifier("email", email_success, None if email_success else "SendGrid error: 500")
    handler = FailureHandler(AlertDispatcher(discord, email), buffers or _make_buffers(), incidents)
    return handler, discord, email


def _make_result(failed=(), degraded=()):
    """HealthCheckResult with the given services failed/degraded, others healthy."""
    checks = []
    for service in ServiceName:
        if service in failed:
            checks.append(IndividualHealthCheck(service=service, status=CheckStatus.FAILED, error=f"{service.value} down"))
        elif service in degraded:
            checks.append(IndividualHealthCheck(service=service, status=CheckStatus.DEGRADED, error="slow"))
        else:
            checks.append(IndividualHealthCheck(service=service, status=CheckStatus.HEALTHY, latency_ms=100))
    critical, warnings = classify_checks(checks)
    return HealthCheckResult(
        all_passed=not critical,
        checks=checks,
        critical_failures=critical,
        warnings=warnings,
        total_duration_ms=1500,
    )


def _handle(handler, result, pipeline_id="2026-10-17"):
    return asyncio.run(handler.handle_health_check_failure(pipeline_id, result))


# ============================================================================
# POLICY TABLE
# ============================================================================

class TestFailureResponses:

    def test_every_service_has_a_policy(self):
        assert set(FAILURE_RESPONSES) == set(ServiceName)

    @pytest.mark.parametrize("service", [ServiceName.GEMINI, ServiceName.YOUTUBE, ServiceName.KEY_VAULT])
    def test_critical_services_skip_without_email(self, service):
        policy = get_failure_response(service)
        assert policy.action == ResponseAction.SKIP_PIPELINE
        assert policy.alert_type == AlertSeverity.CRITICAL
        assert policy.should_alert_discord is True
        assert policy.should_alert_email is False

    def test_document_store_escalates_by_email(self):
        policy = get_failure_response(ServiceName.POSTGRES)
        assert policy.action == ResponseAction.SKIP_PIPELINE
        assert policy.should_alert_email is True

    def test_blob_storage_continues_degraded(self):
        policy = get_failure_response(ServiceName.BLOB_STORAGE)
        assert policy.action == ResponseAction.CONTINUE_DEGRADED
        assert policy.alert_type == AlertSeverity.WARNING

    def test_twitter_continues_normally(self):
        policy = get_failure_response(ServiceName.TWITTER)
        assert policy.action == ResponseAction.CONTINUE_NORMAL
        assert policy.should_alert_discord is False
        assert policy.should_alert_email is False

    def test_accepts_raw_service_value(self):
        assert get_failure_response("gemini") == get_failure_response(ServiceName.GEMINI)


# ============================================================================
# CRITICAL FAILURES
# ============================================================================

class TestCriticalFailures:

    def test_gemini_failure_skips_and_deploys_buffer(self):
        buffers = _make_buffers()
        handler, discord, email = _make_handler(buffers)

        outcome = _handle(handler, _make_result(failed=[ServiceName.GEMINI]))

        assert outcome.should_skip_pipeline is True
        assert outcome.buffer_deployment_triggered is True
        assert outcome.buffer_deployed is True
        assert len(outcome.alerts_sent) == 1

        alert = outcome.alerts_sent[0]
        assert alert.severity == AlertSeverity.CRITICAL
        assert alert.title == "Health Check Failed - Pipeline Skipped"
        assert alert.services == [ServiceName.GEMINI]
        assert alert.channels == ["discord"]
        assert alert.success is True

        discord.send_alert.assert_awaited_once()
        email.send_alert.assert_not_awaited()
        buffers.deploy.assert_awaited_once()
        assert buffers.deploy.await_args.args[1] == "2026-10-17"

    def test_alert_lists_failed_services(self):
        handler, discord, _ = _make_handler()
        _handle(handler, _make_result(failed=[ServiceName.GEMINI, ServiceName.YOUTUBE]))

        sent = discord.send_alert.await_args.args[0]
        assert "gemini: gemini down" in sent.description
        assert "youtube: youtube down" in sent.description
        assert "Pipeline 2026-10-17 health check FAILED" in sent.description
        assert {f.name: f.value for f in sent.fields}["Affected Services"] == "gemini, youtube"

    def test_postgres_failure_also_emails(self):
        handler, discord, email = _make_handler()

        outcome = _handle(handler, _make_result(failed=[ServiceName.POSTGRES]))

        assert outcome.alerts_sent[0].channels == ["discord", "email"]
        discord.send_alert.assert_awaited_once()
        email.send_alert.assert_awaited_once()

    @pytest.mark.parametrize("service", [ServiceName.GEMINI, ServiceName.YOUTUBE])
    def test_content_services_do_not_email(self, service):
        handler, _, email = _make_handler()
        _handle(handler, _make_result(failed=[service]))
        email.send_alert.assert_not_awaited()

    def test_no_buffer_sends_emergency_without_recording_it(self):
        buffers = _make_buffers(candidate=False, available=0)
        handler, discord, email = _make_handler(buffers)

        outcome = _handle(handler, _make_result(failed=[ServiceName.KEY_VAULT]))

        assert outcome.should_skip_pipeline is True
        assert outcome.buffer_deployment_triggered is True
        assert outcome.buffer_deployed is False
        assert outcome.buffer_available_count == 0
        assert [a.title for a in outcome.alerts_sent] == ["Health Check Failed - Pipeline Skipped"]

        assert discord.send_alert.await_count == 2
        emergency = discord.send_alert.await_args_list[1].args[0]
        assert emergency.title == "EMERGENCY: Pipeline Failed - NO BUFFERS AVAILABLE"
        email.send_alert.assert_not_awaited()
        buffers.deploy.assert_not_awaited()

    def test_failed_deployment_sends_emergency_with_error(self):
        buffers = _make_buffers(deploy_success=False, deploy_error="Buffer bv-1 is not available for deployment")
        handler, discord, _ = _make_handler(buffers)

        outcome = _handle(handler, _make_result(failed=[ServiceName.GEMINI]))

        assert outcome.buffer_deployment_triggered is True
        assert outcome.buffer_deployed is False
        assert len(outcome.alerts_sent) == 1
        emergency = discord.send_alert.await_args_list[1].args[0]
        assert "Buffer bv-1 is not available for deployment" in emergency.description

    def test_buffer_lookup_error_is_not_raised(self):
        buffers = _make_buffers()
        buffers.count_available.side_effect = ConnectionError("store down")
        handler, discord, _ = _make_handler(buffers)

        outcome = _handle(handler, _make_result(failed=[ServiceName.GEMINI]))

        assert outcome.should_skip_pipeline is True
        assert outcome.buffer_deployment_triggered is True
        assert outcome.buffer_deployed is False
        assert outcome.buffer_available_count is None
        assert len(outcome.alerts_sent) == 1
        sent = discord.send_alert.await_args_list[0].args[0]
        assert {f.name: f.value for f in sent.fields}["Buffers Available"] == "Unknown"
        emergency = discord.send_alert.await_args_list[1].args[0]
        assert "store down" in emergency.description

    def test_deploy_crash_leaves_flow_untriggered(self):
        buffers = _make_buffers()
        buffers.deploy.side_effect = RuntimeError("deploy crashed")
        incidents = _make_incidents()
        handler, discord, _ = _make_handler(buffers, incidents=incidents)

        outcome = _handle(handler, _make_result(failed=[ServiceName.GEMINI]))

        assert outcome.should_skip_pipeline is True
        assert outcome.buffer_deployment_triggered is False
        assert outcome.buffer_deployed is False
        assert outcome.incident_id == "2026-10-17-001"
        assert len(outcome.alerts_sent) == 1
        assert discord.send_alert.await_count == 2

    def test_alert_delivery_failure_recorded(self):
        handler, _, _ = _make_handler(discord_success=False)

        outcome = _handle(handler, _make_result(failed=[ServiceName.GEMINI]))

        assert outcome.should_skip_pipeline is True
        assert outcome.alerts_sent[0].success is False
        assert outcome.alerts_sent[0].error == "Discord: Discord webhook failed: 404"


# ============================================================================
# INCIDENTS AND ALERT FIELDS
# ============================================================================

class TestIncidentFields:

    def test_alert_carries_incident_and_buffer_count(self):
        incidents = _make_incidents()
        handler, discord, _ = _make_handler(incidents=incidents)
        result = _make_result(failed=[ServiceName.GEMINI])

        outcome = _handle(handler, result)

        assert outcome.incident_id == "2026-10-17-001"
        assert outcome.buffer_available_count == 3
        incidents.log_health_check_failure.assert_awaited_once_with("2026-10-17", result, 3)

        fields = {f.name: f.value for f in discord.send_alert.await_args.args[0].fields}
        assert fields["Pipeline ID"] == "2026-10-17"
        assert fields["Incident ID"] == "2026-10-17-001"
        assert fields["Buffers Available"] == "3"
        assert fields["Buffer Deployed"] == "bv-1 at 2026-10-17T14:00:00.000Z"

    def test_incident_opened_before_deployment(self):
        buffers = _make_buffers()
        incidents = _make_incidents()
        order = []
        incident = incidents.log_health_check_failure.return_value
        deployment = buffers.deploy.return_value

        def log_incident(*args):
            order.append("incident")
            return incident

        def deploy(*args):
            order.append("deploy")
            return deployment

        incidents.log_health_check_failure.side_effect = log_incident
        buffers.deploy.side_effect = deploy
        handler, _, _ = _make_handler(buffers, incidents=incidents)

        _handle(handler, _make_result(failed=[ServiceName.YOUTUBE]))

        assert order == ["incident", "deploy"]

    def test_incident_write_failure_reports_na(self):
        buffers = _make_buffers()
        incidents = _make_incidents(error=RepositoryError("document write failed", operation="document write"))
        handler, discord, _ = _make_handler(buffers, incidents=incidents)

        outcome = _handle(handler, _make_result(failed=[ServiceName.GEMINI]))

        assert outcome.incident_id is None
        assert outcome.buffer_deployed is True
        buffers.deploy.assert_awaited_once()
        fields = {f.name: f.value for f in discord.send_alert.await_args.args[0].fields}
        assert fields["Incident ID"] == "N/A"

    def test_without_incident_logger(self):
        handler, discord, _ = _make_handler()

        outcome = _handle(handler, _make_result(failed=[ServiceName.GEMINI]))

        assert outcome.incident_id is None
        fields = {f.name: f.value for f in discord.send_alert.await_args.args[0].fields}
        assert fields["Incident ID"] == "N/A"

    def test_emergency_alert_names_incident(self):
        handler, discord, _ = _make_handler(_make_buffers(candidate=False, available=0), incidents=_make_incidents())

        _handle(handler, _make_result(failed=[ServiceName.GEMINI]))

        emergency = discord.send_alert.await_args_list[1].args[0]
        assert {f.name: f.value for f in emergency.fields}["Incident ID"] == "2026-10-17-001"

    def test_warnings_open_no_incident(self):
        incidents = _make_incidents()
        handler, _, _ = _make_handler(incidents=incidents)

        outcome = _handle(handler, _make_result(failed=[ServiceName.TWITTER]))

        assert outcome.incident_id is None
        incidents.log_health_check_failure.assert_not_awaited()


# ============================================================================
# WARNINGS
# ============================================================================

class TestWarnings:

    def test_twitter_failure_warns_and_continues(self):
        buffers = _make_buffers()
        handler, discord, email = _make_handler(buffers)

        outcome = _handle(handler, _make_result(failed=[ServiceName.TWITTER]))

        assert outcome.should_skip_pipeline is False
        assert outcome.buffer_deployment_triggered is False
        assert len(outcome.alerts_sent) == 1
        alert = outcome.alerts_sent[0]
        assert alert.severity == AlertSeverity.WARNING
        assert alert.title == "Health Check Warnings"
        assert alert.services == [ServiceName.TWITTER]
        assert alert.channels == ["discord"]

        buffers.get_deployment_candidate.assert_not_awaited()
        email.send_alert.assert_not_awaited()

    def test_degraded_services_listed(self):
        handler, discord, _ = _make_handler()

        _handle(handler, _make_result(degraded=[ServiceName.YOUTUBE, ServiceName.BLOB_STORAGE]))

        sent = discord.send_alert.await_args.args[0]
        assert "youtube: slow" in sent.description
        assert "blob-storage: slow" in sent.description
        assert "Pipeline proceeding with quality flag" in sent.description

    def test_all_healthy_does_nothing(self):
        buffers = _make_buffers()
        handler, discord, email = _make_handler(buffers)

        outcome = _handle(handler, _make_result())

        assert outcome.should_skip_pipeline is False
        assert outcome.buffer_deployment_triggered is False
        assert outcome.alerts_sent == []
        discord.send_alert.assert_not_awaited()
        email.send_alert.assert_not_awaited()
