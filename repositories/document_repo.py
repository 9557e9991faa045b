# ============================================================================
# DOCUMENT REPOSITORY
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - JSONB document CRUD operations
# PURPOSE: Collection/document storage for health results and buffer videos
# CREATED: 17 OCT 2026
# ============================================================================
"""
Document Repository

Collection/document storage backed by one JSONB table. A collection is a
path string (e.g. "pipelines/2026-10-17", "buffer-videos") and a document
is addressed by its id within that collection:

    pipelines/{pipeline_id}  -> health        (HealthCheckDocument)
    health-checks            -> {YYYY-MM-DD}  (round-trip scratch doc)
    buffer-videos            -> {buffer_id}   (BufferVideo)

Consumers depend on the DocumentStore protocol so tests can pass an
in-memory fake or an AsyncMock.
"""

from typing import Any, Dict, List, Optional, Protocol

from psycopg import sql as psycopg_sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from infrastructure.base_repository import BaseRepository, ValidationError, document_path
from .database import TABLE_DOCUMENTS


class DocumentStore(Protocol):
    """Minimal document store contract used by the gate."""

    async def set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        ...

    async def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def update_document(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        ...

    async def list_documents(
        self,
        collection: str,
        match: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        ...


class DocumentRepository(BaseRepository):
    """PostgreSQL implementation of DocumentStore."""

    def __init__(self, pool: AsyncConnectionPool):
        super().__init__()
        self.pool = pool

    async def set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """
        Create or fully replace a document.

        Args:
            collection: Collection path
            doc_id: Document id within the collection
            data: JSON-serializable document body
        """
        if not isinstance(data, dict):
            raise ValidationError("Document body must be an object", field="data", value=type(data).__name__)

        entity_id = document_path(collection, doc_id)
        with self._error_context("document write", entity_id):
            async with self.pool.connection() as conn:
                await conn.execute(
                    psycopg_sql.SQL(
                        """
                        INSERT INTO {} (collection, doc_id, data, updated_at)
                        VALUES (%(collection)s, %(doc_id)s, %(data)s, now())
                        ON CONFLICT (collection, doc_id)
                        DO UPDATE SET data = EXCLUDED.data, updated_at = now()
                        """
                    ).format(TABLE_DOCUMENTS),
                    {"collection": collection, "doc_id": doc_id, "data": Json(data)},
                )
        self._log_operation(True, "document write", entity_id)

    async def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Read a document.

        Returns:
            Document body or None if it does not exist
        """
        entity_id = document_path(collection, doc_id)
        with self._error_context("document read", entity_id):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    psycopg_sql.SQL(
                        "SELECT data FROM {} WHERE collection = %s AND doc_id = %s"
                    ).format(TABLE_DOCUMENTS),
                    (collection, doc_id),
                )
                row = await result.fetchone()

        if row is None:
            return None
        return row["data"]

    async def update_document(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        """
        Merge top-level fields into an existing document.

        Returns:
            True if the document existed and was updated
        """
        entity_id = document_path(collection, doc_id)
        with self._error_context("document update", entity_id):
            async with self.pool.connection() as conn:
                result = await conn.execute(
                    psycopg_sql.SQL(
                        """
                        UPDATE {}
                        SET data = data || %(fields)s, updated_at = now()
                        WHERE collection = %(collection)s AND doc_id = %(doc_id)s
                        """
                    ).format(TABLE_DOCUMENTS),
                    {"collection": collection, "doc_id": doc_id, "fields": Json(fields)},
                )
                updated = result.rowcount > 0

        self._log_operation(updated, "document update", entity_id, fields=sorted(fields))
        return updated

    async def list_documents(
        self,
        collection: str,
        match: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        List documents in a collection, optionally filtered by containment.

        Args:
            collection: Collection path
            match: Top-level field values every returned document must have

        Returns:
            Document bodies ordered by document id
        """
        with self._error_context("document list", collection):
            async with self.pool.connection() as conn:
                conn.row_factory = dict_row
                result = await conn.execute(
                    psycopg_sql.SQL(
                        """
                        SELECT data FROM {}
                        WHERE collection = %(collection)s AND data @> %(match)s
                        ORDER BY doc_id
                        """
                    ).format(TABLE_DOCUMENTS),
                    {"collection": collection, "match": Json(match or {})},
                )
                rows = await result.fetchall()

        return [row["data"] for row in rows]


__all__ = [
    "DocumentStore",
    "DocumentRepository",
]
