# ============================================================================
# HEALTH CHECK REGISTRY
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Infrastructure - Checker registration
# PURPOSE: Hold one checker per service, returned in declaration order
# CREATED: 17 OCT 2026
# ============================================================================
"""
Health Check Registry

Holds the checker instance for each service. Checkers are returned in
ServiceName declaration order regardless of registration order, which
fixes the order of the `checks` list in every HealthCheckResult.

Usage:
    registry = HealthCheckRegistry()
    registry.register(GeminiHealthCheck(secrets))

    for checker in registry.get_all():
        ...
"""

import logging
from typing import Dict, List, Optional

from core.contracts import ServiceName
from health.core import ServiceHealthChecker

logger = logging.getLogger(__name__)


class HealthCheckRegistry:
    """Registry of service checkers keyed by ServiceName."""

    def __init__(self):
        self._checks: Dict[ServiceName, ServiceHealthChecker] = {}

    def register(self, checker: ServiceHealthChecker) -> None:
        """Register a checker instance, replacing any existing one for its service."""
        if checker.service in self._checks:
            logger.warning(f"Overwriting health check: {checker.service.value}")

        self._checks[checker.service] = checker
        logger.debug(
            f"Registered health check: {checker.service.value} "
            f"(timeout={checker.timeout_seconds}s)"
        )

    def unregister(self, service: ServiceName) -> bool:
        """
        Remove a checker.

        Returns:
            True if a checker was removed
        """
        return self._checks.pop(service, None) is not None

    def get(self, service: ServiceName) -> Optional[ServiceHealthChecker]:
        """Get the checker for a service."""
        return self._checks.get(service)

    def get_all(self) -> List[ServiceHealthChecker]:
        """Registered checkers in declaration order."""
        return [self._checks[s] for s in ServiceName.ordered() if s in self._checks]

    def missing(self) -> List[ServiceName]:
        """Services with no registered checker."""
        return [s for s in ServiceName.ordered() if s not in self._checks]

    def clear(self) -> None:
        """Remove all registered checks."""
        self._checks.clear()

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, service: ServiceName) -> bool:
        return service in self._checks


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HealthCheckRegistry",
]
