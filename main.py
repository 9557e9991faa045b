# ============================================================================
# PRE-FLIGHT GATE - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - FastAPI application entry point
# PURPOSE: Wire checkers, orchestrator, failure handler and history
# CREATED: 17 OCT 2026
# ============================================================================
"""
Pre-flight Gate Main Application

FastAPI application that:
1. Initializes the PostgreSQL document store
2. Wires the six service checkers into the orchestrator
3. Wires alert channels, buffer deployment and incident logging into the
   failure handler
4. Exposes the gate and its history over HTTP

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE, EPOCH
from core.config import get_defaults
from core.logging import configure_logging, get_logger
from health import FailureHandler, HealthCheckOrchestrator, HealthHistoryAnalyzer
from health.checks import build_default_registry
from health.router import health_router, set_services
from infrastructure import SecretProvider
from repositories import DocumentRepository, close_pool, ensure_schema, init_pool
from services import (
    AlertDispatcher,
    BufferDeploymentService,
    DiscordNotifier,
    EmailNotifier,
    IncidentService,
)
from services.preflight import PreflightGate

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Initializes services on startup, cleans up on shutdown.
    """
    logger.info(f"Starting Pre-flight Gate v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")
    defaults = get_defaults()

    # Initialize database pool and document table
    pool = await init_pool()
    await ensure_schema(pool)
    logger.info("Document store initialized")

    store = DocumentRepository(pool)
    secrets = SecretProvider(vault_url=defaults.services.key_vault_url)

    # Stage 1: checks
    registry = build_default_registry(secrets, store, defaults=defaults)
    missing = registry.missing()
    if missing:
        logger.warning(f"No checker registered for: {[s.value for s in missing]}")
    orchestrator = HealthCheckOrchestrator(registry, store, defaults)
    logger.info(f"Health checks initialized ({len(registry)} checks registered)")

    # Stage 2: failure routing
    dispatcher = AlertDispatcher(
        DiscordNotifier(settings=defaults.alerts),
        EmailNotifier(secrets, settings=defaults.alerts),
    )
    failure_handler = FailureHandler(dispatcher, BufferDeploymentService(store), IncidentService(store))

    set_services(
        gate=PreflightGate(orchestrator, failure_handler),
        history=HealthHistoryAnalyzer(store),
    )

    yield

    # Shutdown
    logger.info("Shutting down Pre-flight Gate...")
    set_services(gate=None, history=None)
    await close_pool()
    logger.info("Pre-flight Gate stopped")


# Create FastAPI app
app = FastAPI(
    title="Pre-flight Gate",
    description=f"Epoch {EPOCH} pre-flight health gate for the daily pipeline",
    version=__version__,
    lifespan=lifespan,
)

# Gate routes (no prefix - /livez, /preflight, /health/*)
app.include_router(health_router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Pre-flight Gate",
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
        "docs": "/docs",
    }


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
