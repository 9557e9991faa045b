# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 17 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the pre-flight gate.
"""

from core.config.defaults import (
    HealthCheckDefaults,
    QuotaThresholds,
    RetryConfig,
    AlertDefaults,
    ServiceDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

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
