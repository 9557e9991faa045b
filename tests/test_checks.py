# ============================================================================
# SERVICE CHECKER TESTS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Tests - One checker per external service
# PURPOSE: Verify status mapping, error messages and metadata per checker
# CREATED: 17 OCT 2026
# ============================================================================
"""
Service Checker Tests

HTTP checkers run against httpx.MockTransport; the document store, blob
repository and secret provider are mocked.

Run with:
    pytest tests/test_checks.py -v
"""

import asyncio
import json
import time
import pytest
from unittest.mock import AsyncMock, MagicMock

import httpx

from core.config import QuotaThresholds, ServiceDefaults
from core.contracts import AlertSeverity, CheckStatus, ServiceName
from health.core import ProbeResult, ServiceHealthChecker
from health.checks import build_default_registry
from health.checks.documents import HEALTH_CHECK_COLLECTION, PostgresHealthCheck
from health.checks.llm import GeminiHealthCheck, extract_text
from health.checks.quota import (
    YouTubeQuotaHealthCheck,
    classify_quota,
    extract_quota_used,
    get_quota_alert_level,
)
from health.checks.secrets import KeyVaultHealthCheck
from health.checks.social import TwitterHealthCheck, parse_access_token
from health.checks.storage import BlobStorageHealthCheck
from infrastructure.secrets import SecretNotFoundError, SecretProvider
from infrastructure import storage as storage_module
from infrastructure.storage import BlobRepository


# ============================================================================
# HELPERS
# ============================================================================

def _make_secrets(value="secret-value", error=None):
    """SecretProvider mock returning one value for every name."""
    secrets = MagicMock()
    if error:
        secrets.get_secret = AsyncMock(side_effect=error)
        secrets.verify_vault = AsyncMock(side_effect=error)
    else:
        secrets.get_secret = AsyncMock(return_value=value)
        secrets.verify_vault = AsyncMock(return_value=value)
    return secrets


def _make_client(handler):
    """AsyncClient that routes every request to `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _make_vault_credential():
    credential = MagicMock()
    credential.get_token.return_value = MagicMock(token="vault-token")
    return credential


class _GoogleCredentials:
    """google.auth credentials stand-in; each refresh hands out the next token."""

    def __init__(self, tokens, refresh_error=None):
        self._tokens = iter(tokens)
        self._refresh_error = refresh_error
        self.token = None
        self.valid = False
        self.refreshes = 0

    def refresh(self, request):
        if self._refresh_error:
            raise self._refresh_error
        self.token = next(self._tokens)
        self.valid = True
        self.refreshes += 1

    def expire(self):
        self.valid = False


def _quota_payload(used):
    return {"timeSeries": [{"points": [{"value": {"int64Value": str(used)}}]}]}


class _MemoryStore:
    """Dict-backed document store."""

    def __init__(self):
        self.docs = {}

    async def set_document(self, collection, doc_id, data):
        self.docs[(collection, doc_id)] = dict(data)

    async def get_document(self, collection, doc_id):
        return self.docs.get((collection, doc_id))


class _SlowCheck(ServiceHealthChecker):
    service = ServiceName.GEMINI

    async def probe(self):
        await asyncio.sleep(1.0)
        return ProbeResult.healthy()


# ============================================================================
# BASE CHECKER
# ============================================================================

class TestServiceHealthChecker:
    """Timeout and exception handling shared by every checker."""

    def test_timeout_becomes_failed(self):
        checker = _SlowCheck()
        checker.timeout_seconds = 0.05

        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "Timeout after 50ms"
        assert result.latency_ms >= 40

    def test_exception_becomes_failed(self):
        checker = KeyVaultHealthCheck(_make_secrets(error=SecretNotFoundError("gemini-api-key")))
        result = asyncio.run(checker.check())

        assert result.service == ServiceName.KEY_VAULT
        assert result.status == CheckStatus.FAILED
        assert result.error == "Secret 'gemini-api-key' not found"


# ============================================================================
# GEMINI
# ============================================================================

class TestGeminiHealthCheck:

    def test_healthy_response(self):
        seen = {}

        def handler(request):
            seen["key"] = request.headers.get("x-goog-api-key")
            seen["path"] = request.url.path
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "OK"}]}}],
            })

        checker = GeminiHealthCheck(_make_secrets("gem-key"), ServiceDefaults(), http_client=_make_client(handler))
        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.HEALTHY
        assert result.metadata == {"model": "gemini-2.0-flash"}
        assert seen["key"] == "gem-key"
        assert seen["path"].endswith("/models/gemini-2.0-flash:generateContent")

    def test_empty_text_fails(self):
        client = _make_client(lambda request: httpx.Response(200, json={"candidates": []}))
        checker = GeminiHealthCheck(_make_secrets(), ServiceDefaults(), http_client=client)

        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "Empty response from Gemini API"

    def test_http_error_fails(self):
        client = _make_client(lambda request: httpx.Response(503, json={"error": "unavailable"}))
        checker = GeminiHealthCheck(_make_secrets(), ServiceDefaults(), http_client=client)

        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.FAILED
        assert "503" in result.error

    def test_extract_text_joins_parts(self):
        payload = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
        assert extract_text(payload) == "ab"
        assert extract_text({}) == ""


# ============================================================================
# YOUTUBE QUOTA
# ============================================================================

class TestYouTubeQuotaHealthCheck:

    def _check(self, used):
        client = _make_client(lambda request: httpx.Response(200, json=_quota_payload(used)))
        return YouTubeQuotaHealthCheck(
            ServiceDefaults(gcp_project_id="my-project"),
            QuotaThresholds(),
            http_client=client,
            credentials=_GoogleCredentials(["token"]),
        )

    def test_low_usage_healthy(self):
        result = asyncio.run(self._check(1500).check())

        assert result.status == CheckStatus.HEALTHY
        assert result.metadata == {"quotaUsed": 1500, "quotaLimit": 10000, "percentage": 15.0}

    def test_between_tiers_degraded(self):
        result = asyncio.run(self._check(7000).check())

        assert result.status == CheckStatus.DEGRADED
        assert result.error == "Quota usage at 70.0%"

    def test_at_failure_tier_failed(self):
        result = asyncio.run(self._check(8000).check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "Quota usage at 80.0%"
        assert result.metadata["percentage"] == 80.0

    def test_missing_project_reports_zero_metadata(self):
        checker = YouTubeQuotaHealthCheck(ServiceDefaults(), QuotaThresholds(), credentials=_GoogleCredentials([]))
        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "PREFLIGHT_GCP_PROJECT_ID environment variable not set"
        assert result.metadata == {"quotaUsed": 0, "quotaLimit": 10000, "percentage": 0}

    def test_request_carries_bearer_token_and_project(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            seen["path"] = request.url.path
            seen["aligner"] = request.url.params.get("aggregation.perSeriesAligner")
            return httpx.Response(200, json=_quota_payload(0))

        checker = YouTubeQuotaHealthCheck(
            ServiceDefaults(gcp_project_id="p1"),
            http_client=_make_client(handler),
            credentials=_GoogleCredentials(["mon-token"]),
        )
        asyncio.run(checker.check())

        assert seen["auth"] == "Bearer mon-token"
        assert seen["path"].endswith("/projects/p1/timeSeries")
        assert seen["aligner"] == "ALIGN_MAX"

    def test_expired_token_refreshed_between_runs(self):
        tokens = []

        def handler(request):
            tokens.append(request.headers.get("authorization"))
            return httpx.Response(200, json=_quota_payload(0))

        credentials = _GoogleCredentials(["token-day1", "token-day2"])
        checker = YouTubeQuotaHealthCheck(
            ServiceDefaults(gcp_project_id="p1"),
            http_client=_make_client(handler),
            credentials=credentials,
        )

        async def two_runs():
            first = await checker.check()
            credentials.expire()
            return first, await checker.check()

        first, second = asyncio.run(two_runs())

        assert first.status == second.status == CheckStatus.HEALTHY
        assert tokens == ["Bearer token-day1", "Bearer token-day2"]
        assert credentials.refreshes == 2

    def test_valid_token_not_refreshed(self):
        credentials = _GoogleCredentials(["token"])
        checker = self._check(0)
        checker._credentials = credentials

        async def two_runs():
            await checker.check()
            await checker.check()

        asyncio.run(two_runs())

        assert credentials.refreshes == 1

    def test_refresh_error_fails_check(self):
        credentials = _GoogleCredentials([], refresh_error=RuntimeError("metadata server unreachable"))
        checker = YouTubeQuotaHealthCheck(ServiceDefaults(gcp_project_id="p1"), credentials=credentials)

        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "metadata server unreachable"
        assert result.metadata["quotaUsed"] == 0


class TestQuotaTiers:

    @pytest.mark.parametrize("percentage,expected", [
        (0.0, CheckStatus.HEALTHY),
        (59.9, CheckStatus.HEALTHY),
        (60.0, CheckStatus.DEGRADED),
        (79.9, CheckStatus.DEGRADED),
        (80.0, CheckStatus.FAILED),
        (120.0, CheckStatus.FAILED),
    ])
    def test_classify(self, percentage, expected):
        assert classify_quota(percentage, QuotaThresholds()) == expected

    def test_alert_levels(self):
        assert get_quota_alert_level(59.9, QuotaThresholds()) is None

        warning = get_quota_alert_level(65.0, QuotaThresholds())
        assert warning.severity == AlertSeverity.WARNING
        assert warning.message == "YouTube API quota at 65.0% - Approaching limit"

        critical = get_quota_alert_level(85.0, QuotaThresholds())
        assert critical.severity == AlertSeverity.CRITICAL
        assert critical.message == "YouTube API quota at 85.0% - Pipeline will be skipped"

    def test_extract_quota_used(self):
        assert extract_quota_used({}) == 0
        assert extract_quota_used({"timeSeries": [{"points": []}]}) == 0
        assert extract_quota_used({"timeSeries": [{"points": [{"value": {"doubleValue": 42.7}}]}]}) == 42


# ============================================================================
# TWITTER
# ============================================================================

class TestTwitterHealthCheck:

    def _check(self, status_code, credentials="raw-token"):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(status_code, json={})

        checker = TwitterHealthCheck(_make_secrets(credentials), ServiceDefaults(), http_client=_make_client(handler))
        return checker, seen

    def test_success_healthy(self):
        checker, seen = self._check(200)
        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.HEALTHY
        assert seen["auth"] == "Bearer raw-token"

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_auth_failure_failed(self, status_code):
        checker, _ = self._check(status_code)
        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.FAILED
        assert result.error == f"Authentication failed (HTTP {status_code})"

    def test_rate_limited_degraded(self):
        checker, _ = self._check(429)
        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.DEGRADED
        assert result.error == "Rate limited (HTTP 429)"

    def test_other_status_degraded(self):
        checker, _ = self._check(500)
        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.DEGRADED
        assert result.error == "HTTP 500"

    def test_json_credentials(self):
        checker, seen = self._check(200, credentials=json.dumps({"access_token": "from-json"}))
        asyncio.run(checker.check())
        assert seen["auth"] == "Bearer from-json"

    def test_parse_access_token(self):
        assert parse_access_token('{"accessToken": "camel"}') == "camel"
        assert parse_access_token("plain") == "plain"
        assert parse_access_token('["not", "a", "dict"]') == '["not", "a", "dict"]'


# ============================================================================
# POSTGRES
# ============================================================================

class TestPostgresHealthCheck:

    def test_write_then_read_healthy(self):
        store = _MemoryStore()
        result = asyncio.run(PostgresHealthCheck(store).check())

        assert result.status == CheckStatus.HEALTHY
        assert result.metadata == {"writeOk": True, "readOk": True}
        [(collection, doc_id)] = store.docs.keys()
        assert collection == HEALTH_CHECK_COLLECTION
        assert len(doc_id) == len("2026-10-17")

    def test_missing_document_fails(self):
        store = MagicMock()
        store.set_document = AsyncMock()
        store.get_document = AsyncMock(return_value=None)

        result = asyncio.run(PostgresHealthCheck(store).check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "Read test failed - document not found after write"

    def test_mismatch_fails(self):
        store = MagicMock()
        store.set_document = AsyncMock()
        store.get_document = AsyncMock(return_value={"healthCheck": True, "randomValue": -1})

        result = asyncio.run(PostgresHealthCheck(store).check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "Read test failed - document data mismatch"

    def test_write_error_fails(self):
        store = MagicMock()
        store.set_document = AsyncMock(side_effect=ConnectionError("connection refused"))

        result = asyncio.run(PostgresHealthCheck(store).check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "connection refused"


# ============================================================================
# BLOB STORAGE
# ============================================================================

class TestBlobStorageHealthCheck:

    def test_existing_container_healthy(self):
        repo = MagicMock()
        repo.container_exists.return_value = True
        repo.list_one.return_value = "a.mp4"

        result = asyncio.run(BlobStorageHealthCheck(repo, ServiceDefaults()).check())

        assert result.status == CheckStatus.HEALTHY
        assert result.metadata == {"exists": True, "name": "pipeline-artifacts"}

    def test_missing_container_fails(self):
        repo = MagicMock()
        repo.container_exists.return_value = False

        result = asyncio.run(BlobStorageHealthCheck(repo, ServiceDefaults()).check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "Container pipeline-artifacts does not exist"

    def test_list_failure_still_healthy(self):
        repo = MagicMock()
        repo.container_exists.return_value = True
        repo.list_one.side_effect = PermissionError("list denied")

        result = asyncio.run(BlobStorageHealthCheck(repo, ServiceDefaults()).check())

        assert result.status == CheckStatus.HEALTHY

    def test_unconfigured_account_fails(self):
        result = asyncio.run(BlobStorageHealthCheck(None, ServiceDefaults()).check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "PREFLIGHT_STORAGE_ACCOUNT environment variable not set"

    def test_blocking_sdk_call_reported_on_time(self):
        def hang(container):
            time.sleep(0.5)
            return True

        repo = MagicMock()
        repo.container_exists.side_effect = hang
        checker = BlobStorageHealthCheck(repo, ServiceDefaults())
        checker.timeout_seconds = 0.05

        result = asyncio.run(checker.check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "Timeout after 50ms"
        assert result.latency_ms < 400

    def test_blob_client_bounds_abandoned_calls(self, monkeypatch):
        client_cls = MagicMock()
        monkeypatch.setattr(storage_module, "BlobServiceClient", client_cls)
        monkeypatch.setattr(storage_module, "DefaultAzureCredential", MagicMock())
        monkeypatch.delenv("AZURE_CLIENT_ID", raising=False)
        BlobRepository.clear_instances()

        BlobRepository(account_name="pipelineartifacts")._get_blob_service()
        BlobRepository.clear_instances()

        kwargs = client_cls.call_args.kwargs
        assert kwargs["account_url"] == "https://pipelineartifacts.blob.core.windows.net"
        assert kwargs["connection_timeout"] == storage_module.BLOB_CONNECTION_TIMEOUT_SECONDS
        assert kwargs["read_timeout"] == storage_module.BLOB_READ_TIMEOUT_SECONDS
        assert kwargs["retry_total"] == storage_module.BLOB_RETRY_TOTAL


# ============================================================================
# KEY VAULT
# ============================================================================

class TestKeyVaultHealthCheck:

    def test_secret_retrieved_healthy(self):
        secrets = _make_secrets("value")
        result = asyncio.run(KeyVaultHealthCheck(secrets).check())

        assert result.status == CheckStatus.HEALTHY
        secrets.verify_vault.assert_awaited_once_with("gemini-api-key")
        secrets.get_secret.assert_not_awaited()

    def test_empty_secret_fails(self):
        result = asyncio.run(KeyVaultHealthCheck(_make_secrets(""), "gemini-api-key").check())

        assert result.status == CheckStatus.FAILED
        assert result.error == "Secret gemini-api-key is empty"

    def test_vault_outage_detected_on_later_run(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        responses = iter([httpx.Response(200, json={"value": "key"}), httpx.Response(503)])
        provider = SecretProvider(
            vault_url="https://preflight-kv.vault.azure.net",
            credential=_make_vault_credential(),
            http_client=_make_client(lambda request: next(responses)),
        )
        checker = KeyVaultHealthCheck(provider)

        async def two_runs():
            return await checker.check(), await checker.check()

        first, second = asyncio.run(two_runs())

        assert first.status == CheckStatus.HEALTHY
        assert second.status == CheckStatus.FAILED
        assert "503" in second.error

    def test_environment_value_does_not_mask_vault(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        provider = SecretProvider(
            vault_url="https://preflight-kv.vault.azure.net",
            credential=_make_vault_credential(),
            http_client=_make_client(handler),
        )

        result = asyncio.run(KeyVaultHealthCheck(provider).check())

        assert result.status == CheckStatus.FAILED
        assert len(calls) == 1


# ============================================================================
# DEFAULT REGISTRY
# ============================================================================

class TestBuildDefaultRegistry:

    def test_registers_every_service_in_order(self):
        registry = build_default_registry(_make_secrets(), _MemoryStore())

        assert len(registry) == len(ServiceName)
        assert registry.missing() == []
        assert [c.service for c in registry.get_all()] == list(ServiceName)
