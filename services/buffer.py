# ============================================================================
# BUFFER DEPLOYMENT SERVICE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Service - Fallback content selection and deployment
# PURPOSE: Pick and release a pre-produced video when the pipeline is skipped
# CREATED: 17 OCT 2026
# ============================================================================
"""
Buffer Deployment Service

Selection rule: among available buffers (status active, not used), take
the one deployed the fewest times, oldest first on ties.

Deployment marks the buffer used/deployed and schedules it for 14:00 UTC
on the pipeline date. The buffer document is re-read before the update so
a buffer consumed by another caller is rejected.
"""

import logging
from typing import List, Optional

from core.contracts import BufferStatus
from core.models import BUFFER_COLLECTION, BufferDeploymentResult, BufferVideo, utc_now_iso
from repositories.document_repo import DocumentStore

logger = logging.getLogger(__name__)

PUBLISH_TIME_UTC = "14:00:00.000Z"


class BufferExhaustedError(Exception):
    """Raised when no buffer video is available for deployment."""


class BufferDeploymentService:
    """Fallback video selection and deployment over the document store."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def list_available(self) -> List[BufferVideo]:
        """Available buffers, in deployment preference order."""
        docs = await self.store.list_documents(
            BUFFER_COLLECTION,
            {"status": BufferStatus.ACTIVE.value, "used": False},
        )
        buffers = [BufferVideo.model_validate(doc) for doc in docs]
        available = [b for b in buffers if b.is_available]
        return sorted(available, key=lambda b: (b.deployment_count, b.created_date))

    async def count_available(self) -> int:
        """Number of buffers that could be deployed right now."""
        count = len(await self.list_available())
        if count == 0:
            logger.warning("Buffer pool is empty")
        return count

    async def select_for_deployment(self) -> BufferVideo:
        """
        Select the next buffer to deploy.

        Raises:
            BufferExhaustedError: No buffer available
        """
        available = await self.list_available()
        if not available:
            raise BufferExhaustedError("No buffer videos available for deployment")
        return available[0]

    async def get_deployment_candidate(self) -> Optional[BufferVideo]:
        """Next buffer to deploy, or None when exhausted or unreadable."""
        try:
            return await self.select_for_deployment()
        except BufferExhaustedError:
            logger.warning("No buffer candidates available")
        except Exception as e:
            logger.error(f"Error getting buffer candidate: {e}")
        return None

    async def deploy(self, candidate: BufferVideo, for_date: str) -> BufferDeploymentResult:
        """
        Mark a buffer deployed for a pipeline date.

        Returns:
            BufferDeploymentResult; failures are returned, never raised
        """
        try:
            doc = await self.store.get_document(BUFFER_COLLECTION, candidate.id)
            if doc is None:
                return BufferDeploymentResult(
                    success=False,
                    buffer_id=candidate.id,
                    error=f"Buffer {candidate.id} not found",
                )

            buffer = BufferVideo.model_validate(doc)
            if not buffer.is_available:
                return BufferDeploymentResult(
                    success=False,
                    buffer_id=candidate.id,
                    error=(
                        f"Buffer {candidate.id} is not available for deployment "
                        f"(status: {buffer.status.value}, used: {buffer.used})"
                    ),
                )

            updated = await self.store.update_document(BUFFER_COLLECTION, buffer.id, {
                "used": True,
                "used_date": utc_now_iso(),
                "status": BufferStatus.DEPLOYED.value,
                "deployment_count": buffer.deployment_count + 1,
            })
            if not updated:
                return BufferDeploymentResult(
                    success=False,
                    buffer_id=candidate.id,
                    error=f"Buffer {candidate.id} not found",
                )

        except Exception as e:
            logger.error(f"Failed to deploy buffer {candidate.id}: {e}")
            return BufferDeploymentResult(
                success=False,
                buffer_id=candidate.id,
                error=f"Failed to deploy buffer: {e}",
            )

        scheduled_time = f"{for_date}T{PUBLISH_TIME_UTC}"
        logger.info(
            f"Buffer deployed: {buffer.id} ({buffer.video_id}) for {scheduled_time}",
            extra={"buffer_id": buffer.id, "video_id": buffer.video_id, "for_date": for_date},
        )
        return BufferDeploymentResult(
            success=True,
            buffer_id=buffer.id,
            video_id=buffer.video_id,
            scheduled_time=scheduled_time,
            previous_status=buffer.status,
        )


__all__ = [
    "BufferDeploymentService",
    "BufferExhaustedError",
    "PUBLISH_TIME_UTC",
]
