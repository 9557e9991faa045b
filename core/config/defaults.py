# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for timeouts, quota tiers, alerts, backends
# CREATED: 17 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the pre-flight health gate.
These can be overridden via PREFLIGHT_* environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class HealthCheckDefaults:
    """
    Defaults for check execution.

    The per-check timeout bounds every checker. The ceiling on the whole
    batch is soft: exceeding it is logged, never enforced.
    """
    check_timeout_seconds: float = 30.0
    max_total_duration_ms: int = 120_000
    slow_warning_duration_ms: int = 90_000

    @property
    def check_timeout_ms(self) -> int:
        return int(self.check_timeout_seconds * 1000)

    @classmethod
    def from_env(cls) -> "HealthCheckDefaults":
        """Create from environment variables."""
        return cls(
            check_timeout_seconds=float(os.getenv("PREFLIGHT_CHECK_TIMEOUT_SECONDS", 30.0)),
            max_total_duration_ms=int(os.getenv("PREFLIGHT_MAX_TOTAL_DURATION_MS", 120_000)),
        )


@dataclass(frozen=True)
class QuotaThresholds:
    """
    Publishing quota tiers (percent of the daily limit).

    - below healthy_below: healthy
    - between the two: degraded, WARNING alert
    - at or above failed_at: failed, CRITICAL alert
    """
    healthy_below: float = 60.0
    failed_at: float = 80.0
    daily_limit: int = 10_000

    @classmethod
    def from_env(cls) -> "QuotaThresholds":
        """Create from environment variables."""
        return cls(
            healthy_below=float(os.getenv("PREFLIGHT_QUOTA_HEALTHY_BELOW", 60.0)),
            failed_at=float(os.getenv("PREFLIGHT_QUOTA_FAILED_AT", 80.0)),
            daily_limit=int(os.getenv("PREFLIGHT_QUOTA_DAILY_LIMIT", 10_000)),
        )


@dataclass(frozen=True)
class RetryConfig:
    """Exponential backoff for a notification channel."""
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 8.0

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after a failed attempt (0-based)."""
        return min(self.base_delay_seconds * (2 ** attempt), self.max_delay_seconds)


@dataclass(frozen=True)
class AlertDefaults:
    """
    Defaults for alert delivery.

    Discord allows 5 webhook requests per 2 second window.
    """
    discord_webhook_url: Optional[str] = None
    operator_email: Optional[str] = None
    from_email: str = "alerts@preflight.local"
    sendgrid_url: str = "https://api.sendgrid.com/v3/mail/send"
    sendgrid_secret_name: str = "sendgrid-api-key"
    request_timeout_seconds: float = 10.0
    discord_max_requests: int = 5
    discord_window_seconds: float = 2.0
    discord_retry: RetryConfig = field(default_factory=RetryConfig)
    email_retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_env(cls) -> "AlertDefaults":
        """Create from environment variables."""
        return cls(
            discord_webhook_url=os.getenv("PREFLIGHT_DISCORD_WEBHOOK_URL"),
            operator_email=os.getenv("PREFLIGHT_OPERATOR_EMAIL"),
            from_email=os.getenv("PREFLIGHT_FROM_EMAIL", "alerts@preflight.local"),
        )


@dataclass(frozen=True)
class ServiceDefaults:
    """Endpoints and names for the six checked services."""
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_secret_name: str = "gemini-api-key"
    twitter_url: str = "https://api.twitter.com/2/users/me"
    twitter_secret_name: str = "twitter-oauth"
    monitoring_base_url: str = "https://monitoring.googleapis.com/v3"
    gcp_project_id: Optional[str] = None
    storage_account: Optional[str] = None
    storage_container: str = "pipeline-artifacts"
    key_vault_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ServiceDefaults":
        """Create from environment variables."""
        return cls(
            gemini_model=os.getenv("PREFLIGHT_GEMINI_MODEL", "gemini-2.0-flash"),
            gcp_project_id=os.getenv("PREFLIGHT_GCP_PROJECT_ID"),
            storage_account=os.getenv("PREFLIGHT_STORAGE_ACCOUNT"),
            storage_container=os.getenv("PREFLIGHT_STORAGE_CONTAINER", "pipeline-artifacts"),
            key_vault_url=os.getenv("PREFLIGHT_KEY_VAULT_URL"),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    health: HealthCheckDefaults = field(default_factory=HealthCheckDefaults)
    quota: QuotaThresholds = field(default_factory=QuotaThresholds)
    alerts: AlertDefaults = field(default_factory=AlertDefaults)
    services: ServiceDefaults = field(default_factory=ServiceDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            health=HealthCheckDefaults.from_env(),
            quota=QuotaThresholds.from_env(),
            alerts=AlertDefaults.from_env(),
            services=ServiceDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HealthCheckDefaults",
    "QuotaThresholds",
    "RetryConfig",
    "AlertDefaults",
    "ServiceDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
