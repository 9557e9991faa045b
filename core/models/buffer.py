# ============================================================================
# BUFFER VIDEO MODEL
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core model - Pre-produced fallback content
# PURPOSE: Track buffer videos deployed when the daily pipeline cannot run
# CREATED: 17 OCT 2026
# EXPORTS: BufferVideo, BufferDeploymentResult, BUFFER_COLLECTION
# DEPENDENCIES: pydantic
# ============================================================================
"""
Buffer Video Model

Buffer videos are already-uploaded private/unlisted videos that can be
released when the pipeline is skipped. Stored in the `buffer-videos`
collection of the document store, keyed by `id`.

Available for deployment means: status == active and used == False.
"""

from typing import Optional

from pydantic import BaseModel, Field

from core.contracts import BufferStatus
from core.models.health import utc_now_iso

BUFFER_COLLECTION = "buffer-videos"


class BufferVideo(BaseModel):
    """A pre-produced fallback video."""
    id: str = Field(..., max_length=64)
    video_id: str = Field(..., max_length=32, description="Platform video ID (already uploaded)")
    topic: str
    title: str = Field(..., max_length=100)
    created_date: str = Field(default_factory=utc_now_iso)
    used: bool = False
    used_date: Optional[str] = None
    deployment_count: int = Field(default=0, ge=0)
    status: BufferStatus = BufferStatus.ACTIVE

    @property
    def is_available(self) -> bool:
        return self.status == BufferStatus.ACTIVE and not self.used


class BufferDeploymentResult(BaseModel):
    """Outcome of deploying one buffer video."""
    success: bool
    buffer_id: str
    video_id: Optional[str] = None
    scheduled_time: Optional[str] = None
    previous_status: Optional[BufferStatus] = None
    error: Optional[str] = None


__all__ = [
    "BUFFER_COLLECTION",
    "BufferVideo",
    "BufferDeploymentResult",
]
