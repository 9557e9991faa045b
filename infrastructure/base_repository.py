# ============================================================================
# BASE REPOSITORY - ERROR HANDLING PATTERNS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Infrastructure - Shared repository error handling
# PURPOSE: One exception type for every storage failure the gate can hit
# CREATED: 17 OCT 2026
# ============================================================================
"""
Base Repository Patterns

Storage repositories (PostgreSQL documents, Blob containers) wrap driver
calls in `_error_context`, so callers see RepositoryError no matter which
driver failed. The postgres health checker and the orchestrator's
persistence step both rely on that: they catch one type and turn it into
a failed check or a logged persistence error.

Errors carry the operation and the document path:

    RepositoryError("document write failed for pipelines/2026-10-17/health: ...",
                    operation="document write",
                    entity_id="pipelines/2026-10-17/health")
"""

import logging
from abc import ABC
from contextlib import contextmanager
from typing import Any, Optional

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """A storage operation failed."""

    def __init__(self, message: str, operation: Optional[str] = None, entity_id: Optional[str] = None):
        self.operation = operation
        self.entity_id = entity_id
        super().__init__(message)


class ValidationError(RepositoryError):
    """A document was rejected before reaching storage."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message, operation="validate")


def document_path(collection: str, doc_id: str) -> str:
    """Full path of a document, e.g. "buffer-videos/bv-001"."""
    return f"{collection.rstrip('/')}/{doc_id}"


class BaseRepository(ABC):
    """Error wrapping and operation logging for storage repositories."""

    def __init__(self):
        self.logger = logging.getLogger(f"repositories.{self.__class__.__name__}")

    @contextmanager
    def _error_context(self, operation: str, entity_id: Optional[str] = None):
        """
        Re-raise driver errors as RepositoryError.

        RepositoryError subclasses raised inside the block pass through.

        Example:
            with self._error_context("document write", "pipelines/2026-10-17/health"):
                await conn.execute(...)
        """
        try:
            yield
        except RepositoryError:
            raise
        except Exception as e:
            target = f" for {entity_id}" if entity_id else ""
            message = f"{operation} failed{target}: {e}"
            self.logger.error(message)
            raise RepositoryError(message, operation=operation, entity_id=entity_id) from e

    def _log_operation(self, success: bool, operation: str, entity_id: str, **details: Any) -> None:
        """Debug line on success, warning when the target was missing."""
        suffix = f" | {details}" if details else ""
        if success:
            self.logger.debug(f"{operation}: {entity_id}{suffix}")
        else:
            self.logger.warning(f"{operation} found nothing: {entity_id}{suffix}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "BaseRepository",
    "RepositoryError",
    "ValidationError",
    "document_path",
]
