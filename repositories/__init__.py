# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Database access layer
# PURPOSE: Document storage for health results and buffer videos
# CREATED: 17 OCT 2026
# ============================================================================
"""
Repositories Module

Provides document storage backed by PostgreSQL JSONB.
Uses psycopg3 async with connection pooling.

Usage:
    from repositories import DocumentRepository, get_pool

    pool = await get_pool()
    store = DocumentRepository(pool)
    doc = await store.get_document("pipelines/2026-10-17", "health")
"""

from .database import PoolSettings, get_pool, init_pool, close_pool, ensure_schema
from .document_repo import DocumentStore, DocumentRepository

__all__ = [
    "PoolSettings",
    "get_pool",
    "init_pool",
    "close_pool",
    "ensure_schema",
    "DocumentStore",
    "DocumentRepository",
]
