# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Async PostgreSQL pool for the document store
# PURPOSE: One psycopg3 pool per process plus the documents table DDL
# CREATED: 17 OCT 2026
# ============================================================================
"""
Database Connection Pool

The gate's document store is a single JSONB table:

    {PREFLIGHT_DB_SCHEMA}.documents(collection, doc_id, data, updated_at)

Connection settings (PoolSettings.from_env):
    DATABASE_URL                  full conninfo, wins over everything else
    POSTGRES_HOST/PORT/DB/USER    components for password or token auth
    POSTGRES_PASSWORD             password auth (local dev)
    USE_MANAGED_IDENTITY=true     Entra ID token as password (Azure)
    PREFLIGHT_DB_POOL_MIN/MAX     pool bounds (default 1/5)

The gate holds at most a handful of connections: one write per run plus a
week of sequential history reads.

Usage:
    pool = await init_pool()
    await ensure_schema(pool)
    store = DocumentRepository(pool)
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from azure.identity import DefaultAzureCredential, ManagedIdentityCredential
from psycopg import sql as psycopg_sql
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)

# OAuth scope for Azure Database for PostgreSQL
POSTGRES_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"

SCHEMA = os.environ.get("PREFLIGHT_DB_SCHEMA", "preflight")

# Use with psycopg sql.SQL().format() for injection-safe queries
TABLE_DOCUMENTS = psycopg_sql.Identifier(SCHEMA, "documents")

_pool: Optional[AsyncConnectionPool] = None


@dataclass(frozen=True)
class PoolSettings:
    """Where and how to connect."""
    host: str = "localhost"
    port: str = "5432"
    dbname: str = "postgres"
    user: str = "postgres"
    password: str = ""
    sslmode: str = "require"
    database_url: Optional[str] = None
    use_managed_identity: bool = False
    min_size: int = 1
    max_size: int = 5

    @classmethod
    def from_env(cls) -> "PoolSettings":
        return cls(
            host=os.environ.get("POSTGRES_HOST", cls.host),
            port=os.environ.get("POSTGRES_PORT", cls.port),
            dbname=os.environ.get("POSTGRES_DB", cls.dbname),
            user=os.environ.get("POSTGRES_IDENTITY_NAME", os.environ.get("POSTGRES_USER", cls.user)),
            password=os.environ.get("POSTGRES_PASSWORD", ""),
            sslmode=os.environ.get("POSTGRES_SSLMODE", cls.sslmode),
            database_url=os.environ.get("DATABASE_URL") or None,
            use_managed_identity=os.environ.get("USE_MANAGED_IDENTITY", "false").lower() == "true",
            min_size=int(os.environ.get("PREFLIGHT_DB_POOL_MIN", cls.min_size)),
            max_size=int(os.environ.get("PREFLIGHT_DB_POOL_MAX", cls.max_size)),
        )

    def conninfo(self) -> str:
        """
        Build the connection string.

        Priority: DATABASE_URL, then a Managed Identity token, then password.
        A failed token fetch falls back to password auth.
        """
        if self.database_url:
            return self.database_url

        password = self.password
        if self.use_managed_identity:
            try:
                password = _managed_identity_token()
                logger.info("Using Managed Identity for PostgreSQL authentication")
            except Exception as e:
                logger.error(f"Managed identity auth failed: {e}, falling back to password auth")

        return (
            f"host={self.host} port={self.port} dbname={self.dbname} "
            f"user={self.user} password={password} sslmode={self.sslmode}"
        )


def _managed_identity_token() -> str:
    client_id = os.environ.get("AZURE_CLIENT_ID")
    if client_id:
        credential = ManagedIdentityCredential(client_id=client_id)
    else:
        credential = DefaultAzureCredential()
    return credential.get_token(POSTGRES_SCOPE).token


def _safe_conninfo(conninfo: str) -> str:
    """Strip credentials from a connection string for logging."""
    if "@" in conninfo:
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        return conninfo.split("password=")[0] + "password=***"
    return conninfo


async def init_pool(settings: Optional[PoolSettings] = None) -> AsyncConnectionPool:
    """
    Open the process-wide pool. A second call returns the existing pool.

    Args:
        settings: Connection settings (defaults to PoolSettings.from_env())
    """
    global _pool

    if _pool is not None:
        logger.warning("Pool already initialized, returning existing pool")
        return _pool

    settings = settings or PoolSettings.from_env()
    conninfo = settings.conninfo()
    logger.info(f"Opening document store pool: {_safe_conninfo(conninfo)}")

    pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=settings.min_size,
        max_size=settings.max_size,
        open=False,
    )
    await pool.open()
    _pool = pool
    logger.info(f"Document store pool open (min={settings.min_size}, max={settings.max_size})")
    return _pool


async def get_pool() -> AsyncConnectionPool:
    """Get the process-wide pool, opening it on first use."""
    if _pool is None:
        return await init_pool()
    return _pool


async def close_pool() -> None:
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Document store pool closed")


# ============================================================================
# SCHEMA
# ============================================================================

async def ensure_schema(pool: AsyncConnectionPool) -> None:
    """Create the schema and documents table if they do not exist."""
    async with pool.connection() as conn:
        await conn.execute(
            psycopg_sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(
                psycopg_sql.Identifier(SCHEMA)
            )
        )
        await conn.execute(
            psycopg_sql.SQL(
                """
                CREATE TABLE IF NOT EXISTS {} (
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                    PRIMARY KEY (collection, doc_id)
                )
                """
            ).format(TABLE_DOCUMENTS)
        )
        # list_documents filters with data @> match
        await conn.execute(
            psycopg_sql.SQL(
                "CREATE INDEX IF NOT EXISTS documents_data_gin ON {} USING GIN (data jsonb_path_ops)"
            ).format(TABLE_DOCUMENTS)
        )
    logger.info(f"Document store schema ready: {SCHEMA}.documents")


__all__ = [
    "POSTGRES_SCOPE",
    "SCHEMA",
    "TABLE_DOCUMENTS",
    "PoolSettings",
    "init_pool",
    "get_pool",
    "close_pool",
    "ensure_schema",
]
