# ============================================================================
# PUBLISHING QUOTA HEALTH CHECK
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Checker - YouTube Data API quota
# PURPOSE: Classify today's quota usage into healthy / degraded / failed
# CREATED: 17 OCT 2026
# ============================================================================
"""
Publishing Quota Health Check

The YouTube Data API exposes no quota endpoint, so usage is read from
Cloud Monitoring: the serviceruntime quota/allocation/usage time series for
youtube.googleapis.com, aligned with ALIGN_MAX over the last 24 hours.

Quota tiers (percent of the 10,000 unit daily limit):
    < 60        healthy
    60 - 80     degraded (WARNING alert)
    >= 80       failed   (CRITICAL alert, pipeline skipped)

Credentials come from google.auth.default() (service account, workload
identity or gcloud ADC) and are refreshed whenever they are no longer
valid, so access tokens that expire after an hour never reach the API.

Every result carries quotaUsed, quotaLimit and percentage in metadata,
zeros when the probe itself failed.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import google.auth
import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest

from core.config import QuotaThresholds, ServiceDefaults, get_defaults
from core.contracts import AlertSeverity, CheckStatus, ServiceName
from core.models import QuotaAlert
from health.core import ProbeResult, ServiceHealthChecker
from infrastructure.http import http_client_scope

logger = logging.getLogger(__name__)

QUOTA_METRIC_FILTER = (
    'metric.type="serviceruntime.googleapis.com/quota/allocation/usage" '
    'AND resource.labels.service="youtube.googleapis.com"'
)

MONITORING_READ_SCOPE = "https://www.googleapis.com/auth/monitoring.read"


def classify_quota(percentage: float, thresholds: Optional[QuotaThresholds] = None) -> CheckStatus:
    """Map a quota percentage to a check status."""
    thresholds = thresholds or get_defaults().quota
    if percentage >= thresholds.failed_at:
        return CheckStatus.FAILED
    if percentage >= thresholds.healthy_below:
        return CheckStatus.DEGRADED
    return CheckStatus.HEALTHY


def get_quota_alert_level(
    percentage: float,
    thresholds: Optional[QuotaThresholds] = None,
) -> Optional[QuotaAlert]:
    """
    Alert level for a quota percentage.

    Returns:
        CRITICAL at or above the failure threshold, WARNING at or above the
        healthy ceiling, otherwise None
    """
    thresholds = thresholds or get_defaults().quota
    if percentage >= thresholds.failed_at:
        return QuotaAlert(
            severity=AlertSeverity.CRITICAL,
            message=f"YouTube API quota at {percentage:.1f}% - Pipeline will be skipped",
        )
    if percentage >= thresholds.healthy_below:
        return QuotaAlert(
            severity=AlertSeverity.WARNING,
            message=f"YouTube API quota at {percentage:.1f}% - Approaching limit",
        )
    return None


def extract_quota_used(payload: Dict[str, Any]) -> int:
    """Read the first point of the first time series; 0 when absent."""
    series = payload.get("timeSeries") or []
    if not series:
        return 0
    points = series[0].get("points") or []
    if not points:
        return 0
    value = points[0].get("value") or {}
    if value.get("int64Value") is not None:
        return int(value["int64Value"])
    if value.get("doubleValue") is not None:
        return int(value["doubleValue"])
    return 0


def _rfc3339(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


class YouTubeQuotaHealthCheck(ServiceHealthChecker):
    """YouTube publishing quota check via Cloud Monitoring."""

    service = ServiceName.YOUTUBE

    def __init__(
        self,
        settings: Optional[ServiceDefaults] = None,
        thresholds: Optional[QuotaThresholds] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        credentials: Any = None,
    ):
        self.settings = settings or get_defaults().services
        self.thresholds = thresholds or get_defaults().quota
        self._http_client = http_client
        self._credentials = credentials

    def failure_metadata(self) -> Dict[str, Any]:
        return {"quotaUsed": 0, "quotaLimit": self.thresholds.daily_limit, "percentage": 0}

    def _get_credentials(self):
        """Application default credentials (lazy initialization)."""
        if self._credentials is None:
            self._credentials, _ = google.auth.default(scopes=[MONITORING_READ_SCOPE])
        return self._credentials

    async def _access_token(self) -> str:
        credentials = self._get_credentials()
        if not credentials.valid:
            await asyncio.to_thread(credentials.refresh, GoogleAuthRequest())
            logger.debug("Cloud Monitoring credentials refreshed")
        return credentials.token

    async def probe(self) -> ProbeResult:
        project_id = self.settings.gcp_project_id
        if not project_id:
            raise ValueError("PREFLIGHT_GCP_PROJECT_ID environment variable not set")

        token = await self._access_token()
        now = datetime.now(timezone.utc)
        params = {
            "filter": QUOTA_METRIC_FILTER,
            "interval.startTime": _rfc3339(now - timedelta(days=1)),
            "interval.endTime": _rfc3339(now),
            "aggregation.alignmentPeriod": "86400s",
            "aggregation.perSeriesAligner": "ALIGN_MAX",
        }
        url = f"{self.settings.monitoring_base_url}/projects/{project_id}/timeSeries"

        async with http_client_scope(self._http_client, self.timeout_seconds) as client:
            response = await client.get(
                url,
                headers={"Authorization": f"Bearer {token}"},
                params=params,
            )
            response.raise_for_status()
            payload = response.json()

        quota_used = extract_quota_used(payload)
        quota_limit = self.thresholds.daily_limit
        percentage = (quota_used / quota_limit) * 100
        status = classify_quota(percentage, self.thresholds)

        metadata = {"quotaUsed": quota_used, "quotaLimit": quota_limit, "percentage": percentage}
        logger.info(
            f"YouTube quota at {percentage:.1f}% ({quota_used}/{quota_limit})",
            extra=metadata,
        )

        if status == CheckStatus.FAILED:
            return ProbeResult.failed(f"Quota usage at {percentage:.1f}%", **metadata)
        if status == CheckStatus.DEGRADED:
            return ProbeResult.degraded(f"Quota usage at {percentage:.1f}%", **metadata)
        return ProbeResult.healthy(**metadata)


__all__ = [
    "MONITORING_READ_SCOPE",
    "YouTubeQuotaHealthCheck",
    "classify_quota",
    "extract_quota_used",
    "get_quota_alert_level",
]
