# ============================================================================
# HEALTH CHECK ORCHESTRATOR TESTS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Tests - Fan-out, classification and persistence
# PURPOSE: Verify concurrency, ordering, criticality and storage behavior
# CREATED: 17 OCT 2026
# ============================================================================
"""
Health Check Orchestrator Tests

Stub checkers stand in for the six services so timing, ordering and
classification can be controlled exactly.

Run with:
    pytest tests/test_orchestrator.py -v
"""

import asyncio
import time
import pytest
from unittest.mock import AsyncMock, MagicMock

from core.config import Defaults
from core.contracts import CheckStatus, ServiceName
from core.models import HealthCheckDocument, HealthCheckResult, IndividualHealthCheck
from health.core import ProbeResult, ServiceHealthChecker
from health.executor import (
    HealthCheckOrchestrator,
    classify_checks,
    get_health_check_summary,
    has_critical_failures,
)
from health.registry import HealthCheckRegistry


# ============================================================================
# HELPERS
# ============================================================================

class _StubCheck(ServiceHealthChecker):
    """Checker with a fixed outcome and optional delay."""

    def __init__(self, service, status=CheckStatus.HEALTHY, error=None, delay=0.0, raises=None, metadata=None):
        self.service = service
        self.status = status
        self.error = error
        self.delay = delay
        self.raises = raises
        self.metadata = metadata or {}

    async def probe(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises:
            raise self.raises
        return ProbeResult(status=self.status, error=self.error, metadata=dict(self.metadata))


class _ExplodingCheck(_StubCheck):
    """Checker whose check() itself raises."""

    async def check(self):
        await asyncio.sleep(self.delay)
        raise RuntimeError("checker crashed")


def _make_registry(overrides=None, delay=0.0, skip=()):
    """All six services healthy unless overridden."""
    overrides = overrides or {}
    registry = HealthCheckRegistry()
    for service in ServiceName:
        if service in skip:
            continue
        registry.register(overrides.get(service) or _StubCheck(service, delay=delay))
    return registry


def _make_store():
    store = MagicMock()
    store.set_document = AsyncMock()
    return store


def _run(registry, store=None, pipeline_id="2026-10-17"):
    orchestrator = HealthCheckOrchestrator(registry, store, Defaults())
    return asyncio.run(orchestrator.perform_health_check(pipeline_id))


def _check(service, status, error=None):
    return IndividualHealthCheck(service=service, status=status, error=error)


# ============================================================================
# AGGREGATION
# ============================================================================

class TestPerformHealthCheck:

    def test_all_healthy(self):
        result = _run(_make_registry())

        assert result.all_passed is True
        assert result.critical_failures == []
        assert result.warnings == []
        assert len(result.checks) == 6
        assert all(c.status == CheckStatus.HEALTHY for c in result.checks)

    def test_checks_run_concurrently(self):
        registry = _make_registry(delay=0.2)

        started = time.monotonic()
        result = _run(registry)
        elapsed = time.monotonic() - started

        # Six 200ms checks: bounded by the slowest, not the sum
        assert elapsed < 0.6
        assert result.total_duration_ms < 600
        assert result.total_duration_ms >= 150

    def test_declaration_order_regardless_of_completion(self):
        registry = _make_registry({
            ServiceName.GEMINI: _StubCheck(ServiceName.GEMINI, delay=0.15),
            ServiceName.YOUTUBE: _StubCheck(ServiceName.YOUTUBE, delay=0.1),
            ServiceName.TWITTER: _StubCheck(ServiceName.TWITTER, delay=0.05),
        })
        result = _run(registry)

        assert [c.service for c in result.checks] == list(ServiceName)

    def test_critical_service_failure(self):
        registry = _make_registry({
            ServiceName.GEMINI: _StubCheck(ServiceName.GEMINI, raises=RuntimeError("API key invalid")),
        })
        result = _run(registry)

        assert result.all_passed is False
        assert result.critical_failures == [ServiceName.GEMINI]
        assert result.warnings == []
        gemini = result.get_check(ServiceName.GEMINI)
        assert gemini.status == CheckStatus.FAILED
        assert gemini.error == "API key invalid"

    def test_recoverable_failure_is_warning(self):
        registry = _make_registry({
            ServiceName.TWITTER: _StubCheck(ServiceName.TWITTER, CheckStatus.FAILED, "Authentication failed (HTTP 401)"),
        })
        result = _run(registry)

        assert result.all_passed is True
        assert result.critical_failures == []
        assert result.warnings == [ServiceName.TWITTER]

    def test_degraded_critical_service_is_warning(self):
        registry = _make_registry({
            ServiceName.YOUTUBE: _StubCheck(
                ServiceName.YOUTUBE,
                CheckStatus.DEGRADED,
                "Quota usage at 70.0%",
                metadata={"quotaUsed": 7000, "quotaLimit": 10000, "percentage": 70.0},
            ),
        })
        result = _run(registry)

        assert result.all_passed is True
        assert result.warnings == [ServiceName.YOUTUBE]
        assert result.get_check(ServiceName.YOUTUBE).metadata["quotaUsed"] == 7000

    def test_checker_crash_becomes_failed_entry(self):
        registry = _make_registry({
            ServiceName.POSTGRES: _ExplodingCheck(ServiceName.POSTGRES),
        })
        result = _run(registry)

        postgres = result.get_check(ServiceName.POSTGRES)
        assert postgres.status == CheckStatus.FAILED
        assert postgres.error == "checker crashed"
        assert result.critical_failures == [ServiceName.POSTGRES]
        assert len(result.checks) == 6

    def test_missing_checker_becomes_failed_entry(self):
        result = _run(_make_registry(skip=(ServiceName.KEY_VAULT,)))

        key_vault = result.get_check(ServiceName.KEY_VAULT)
        assert key_vault.status == CheckStatus.FAILED
        assert key_vault.error == "Health check not registered"
        assert result.critical_failures == [ServiceName.KEY_VAULT]

    def test_timeout_reported_per_check(self):
        slow = _StubCheck(ServiceName.BLOB_STORAGE, delay=1.0)
        slow.timeout_seconds = 0.05
        result = _run(_make_registry({ServiceName.BLOB_STORAGE: slow}))

        blob = result.get_check(ServiceName.BLOB_STORAGE)
        assert blob.status == CheckStatus.FAILED
        assert blob.error == "Timeout after 50ms"
        # blob-storage is DEGRADED criticality: a warning, not a skip
        assert result.warnings == [ServiceName.BLOB_STORAGE]
        assert result.all_passed is True


# ============================================================================
# PERSISTENCE
# ============================================================================

class TestPersistence:

    def test_result_stored_under_pipeline(self):
        store = _make_store()
        result = _run(_make_registry(), store=store)

        store.set_document.assert_awaited_once()
        collection, doc_id, data = store.set_document.await_args.args
        assert collection == "pipelines/2026-10-17"
        assert doc_id == "health"
        assert data["pipeline_id"] == "2026-10-17"
        assert data["all_passed"] is True
        assert len(data["checks"]) == 6

        stored = HealthCheckDocument.model_validate(data)
        assert stored.checks == result.checks

    def test_storage_failure_does_not_fail_check(self):
        store = _make_store()
        store.set_document.side_effect = ConnectionError("database unavailable")

        result = _run(_make_registry(), store=store)

        assert result.all_passed is True
        assert len(result.checks) == 6

    def test_no_store_skips_persistence(self):
        result = _run(_make_registry(), store=None)
        assert result.all_passed is True


# ============================================================================
# CLASSIFICATION HELPERS
# ============================================================================

class TestClassification:

    def test_classify_checks(self):
        checks = [
            _check(ServiceName.GEMINI, CheckStatus.FAILED, "down"),
            _check(ServiceName.YOUTUBE, CheckStatus.DEGRADED),
            _check(ServiceName.TWITTER, CheckStatus.FAILED, "401"),
            _check(ServiceName.POSTGRES, CheckStatus.HEALTHY),
            _check(ServiceName.BLOB_STORAGE, CheckStatus.FAILED, "missing"),
            _check(ServiceName.KEY_VAULT, CheckStatus.HEALTHY),
        ]
        critical, warnings = classify_checks(checks)

        assert critical == [ServiceName.GEMINI]
        assert warnings == [ServiceName.YOUTUBE, ServiceName.TWITTER, ServiceName.BLOB_STORAGE]

    def test_all_passed_must_match_critical_failures(self):
        with pytest.raises(ValueError):
            HealthCheckResult(all_passed=True, checks=[], critical_failures=[ServiceName.GEMINI])

    def test_has_critical_failures(self):
        ok = HealthCheckResult(all_passed=True, checks=[])
        bad = HealthCheckResult(all_passed=False, checks=[], critical_failures=[ServiceName.KEY_VAULT])

        assert has_critical_failures(ok) is False
        assert has_critical_failures(bad) is True


class TestSummary:

    def test_all_healthy(self):
        checks = [_check(s, CheckStatus.HEALTHY) for s in ServiceName]
        result = HealthCheckResult(all_passed=True, checks=checks, total_duration_ms=1234)

        assert get_health_check_summary(result) == "All 6 services healthy (1234ms)"

    def test_warnings(self):
        checks = [_check(s, CheckStatus.HEALTHY) for s in ServiceName]
        result = HealthCheckResult(
            all_passed=True, checks=checks, warnings=[ServiceName.TWITTER], total_duration_ms=900,
        )

        assert get_health_check_summary(result) == "5 healthy, 1 degraded: twitter (900ms)"

    def test_critical(self):
        checks = [_check(s, CheckStatus.HEALTHY) for s in ServiceName]
        result = HealthCheckResult(
            all_passed=False,
            checks=checks,
            critical_failures=[ServiceName.GEMINI, ServiceName.YOUTUBE],
            warnings=[ServiceName.TWITTER],
            total_duration_ms=30050,
        )

        assert get_health_check_summary(result) == "CRITICAL: 2 failed (gemini, youtube), 1 warnings (30050ms)"
