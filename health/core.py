# ============================================================================
# HEALTH CHECK CORE TYPES
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Infrastructure - Base class for service checkers
# PURPOSE: Checker interface, probe results and timeout handling
# CREATED: 17 OCT 2026
# ============================================================================
"""
Health Check Core Types

Defines the checker interface every service health check implements.

A checker subclasses ServiceHealthChecker and implements probe(). The base
class check() wraps probe() so that a checker never raises:
- probe() runs under asyncio.wait_for; on timeout the probe is cancelled
  and the result is failed with "Timeout after {ms}ms"
- cancellation stops awaits, not threads: work a probe hands to
  asyncio.to_thread (blob SDK calls, Azure and Google token fetches) keeps
  running after the timeout until the blocking call returns. The result is
  still reported on time; the thread is bounded by the client's own
  timeouts, not by this one
- any exception from probe() becomes a failed result carrying the message
- latency is measured around the whole probe

Status values:
- healthy: Service fully operational
- degraded: Operational with warnings (rate limited, quota approaching)
- failed: Service unusable for this pipeline run
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core.contracts import CheckStatus, ServiceName
from core.models import IndividualHealthCheck

logger = logging.getLogger(__name__)

# Per-check timeout. The whole batch has no hard timeout.
HEALTH_CHECK_TIMEOUT_SECONDS = 30.0


@dataclass
class ProbeResult:
    """Outcome of a probe, before latency and service are attached."""
    status: CheckStatus
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def healthy(cls, **metadata) -> "ProbeResult":
        """Create healthy result."""
        return cls(status=CheckStatus.HEALTHY, metadata=metadata)

    @classmethod
    def degraded(cls, error: Optional[str] = None, **metadata) -> "ProbeResult":
        """Create degraded result."""
        return cls(status=CheckStatus.DEGRADED, error=error, metadata=metadata)

    @classmethod
    def failed(cls, error: str, **metadata) -> "ProbeResult":
        """Create failed result."""
        return cls(status=CheckStatus.FAILED, error=error, metadata=metadata)


def timeout_message(timeout_seconds: float) -> str:
    return f"Timeout after {int(timeout_seconds * 1000)}ms"


class ServiceHealthChecker(ABC):
    """
    Base class for service health checks.

    Attributes:
        service: The service this checker verifies
        timeout_seconds: Max probe time before cancellation

    Example:
        class PostgresHealthCheck(ServiceHealthChecker):
            service = ServiceName.POSTGRES

            async def probe(self) -> ProbeResult:
                await store.get_document("health-checks", "today")
                return ProbeResult.healthy()
    """

    service: ServiceName
    timeout_seconds: float = HEALTH_CHECK_TIMEOUT_SECONDS

    @abstractmethod
    async def probe(self) -> ProbeResult:
        """
        Verify the service.

        May raise; check() converts exceptions into failed results.
        """
        pass

    def failure_metadata(self) -> Optional[Dict[str, Any]]:
        """Metadata attached when the probe raised or timed out."""
        return None

    async def check(self) -> IndividualHealthCheck:
        """Run the probe with a timeout. Never raises."""
        start_time = time.monotonic()

        try:
            result = await asyncio.wait_for(self.probe(), timeout=self.timeout_seconds)

        except asyncio.TimeoutError:
            latency_ms = int((time.monotonic() - start_time) * 1000)
            logger.error(
                f"Health check {self.service.value} timed out after {self.timeout_seconds}s",
                extra={"service": self.service.value, "latency_ms": latency_ms},
            )
            return IndividualHealthCheck.failed(
                self.service,
                timeout_message(self.timeout_seconds),
                latency_ms=latency_ms,
                metadata=self.failure_metadata(),
            )

        except Exception as e:
            latency_ms = int((time.monotonic() - start_time) * 1000)
            logger.error(
                f"Health check {self.service.value} failed: {e}",
                extra={"service": self.service.value, "latency_ms": latency_ms},
            )
            return IndividualHealthCheck.failed(
                self.service,
                str(e) or type(e).__name__,
                latency_ms=latency_ms,
                metadata=self.failure_metadata(),
            )

        latency_ms = int((time.monotonic() - start_time) * 1000)
        log = logger.info if result.status == CheckStatus.HEALTHY else logger.warning
        log(
            f"Health check {self.service.value}: {result.status.value} ({latency_ms}ms)",
            extra={"service": self.service.value, "latency_ms": latency_ms},
        )

        return IndividualHealthCheck(
            service=self.service,
            status=result.status,
            latency_ms=latency_ms,
            error=result.error,
            metadata=result.metadata or None,
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HEALTH_CHECK_TIMEOUT_SECONDS",
    "ProbeResult",
    "ServiceHealthChecker",
    "timeout_message",
]
