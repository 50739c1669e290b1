"""FastAPI application for the status migrator API.

Provides the main application instance with the job router and domain
exception handlers configured. The orchestrator is built from config in
the lifespan unless one was attached to ``app.state`` beforehand.
"""

import logging
import os
import sys
import time as _time
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

from fastapi import FastAPI, Request

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
# Ensure our application loggers are captured
logging.getLogger("src").setLevel(logging.INFO)
from fastapi.responses import JSONResponse

from src.api.routes import jobs
from src.api.schemas import HealthResponse
from src.errors.domain import DomainError, NotFoundError, UpdateRejected, ValidationError
from src.errors.registry import get_error

logger = logging.getLogger(__name__)

# Module-level state for health endpoint
_startup_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan: build the engine on startup, close the client on shutdown."""
    global _startup_time

    from src.cli.config import resolve_config
    from src.cli.factory import get_client, get_orchestrator

    _startup_time = _time.time()
    owned_client = None

    if getattr(app.state, "orchestrator", None) is None:
        cfg = resolve_config(os.environ.get("STATUSMIGRATOR_CONFIG_PATH"))
        owned_client = get_client(cfg)
        app.state.orchestrator = get_orchestrator(cfg, owned_client)
        app.state.platform = owned_client.platform_name
        logger.info(
            "Status migrator API ready (platform=%s, concurrency=%d, item_cap=%d)",
            owned_client.platform_name,
            cfg.engine.concurrency,
            cfg.engine.item_cap,
        )

    yield

    # --- Shutdown ---
    orchestrator = app.state.orchestrator
    current = orchestrator.current_job
    if current is not None and current.is_running:
        logger.warning("Shutting down with job %s still '%s'", current.id, current.phase.value)
        await orchestrator.cancel(current)
        await orchestrator.wait(current)
    if owned_client is not None:
        await owned_client.aclose()
        app.state.orchestrator = None


app = FastAPI(
    title="Status Migrator API",
    description="Bulk financial-status migration for store orders",
    version="0.1.0",
    lifespan=lifespan,
)


def _status_code_for(exc: DomainError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, UpdateRejected):
        return 409
    return 500


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Handle DomainError exceptions with consistent format.

    Args:
        request: The incoming request.
        exc: The DomainError exception.

    Returns:
        JSONResponse with error code, message, and remediation.
    """
    status_code = _status_code_for(exc)
    if status_code == 500:
        logger.error("Unhandled domain error on %s: %s", request.url.path, exc.message)
    error_def = get_error(exc.code)
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": exc.code,
            "message": exc.message,
            "remediation": error_def.remediation if error_def else None,
        },
    )


# Include routers
app.include_router(jobs.router, prefix="/api/v1")


@app.get("/health", response_model=HealthResponse)
def health_check(request: Request) -> HealthResponse:
    """Health check endpoint with engine status."""
    uptime = int(_time.time() - _startup_time) if _startup_time else 0

    try:
        version = _pkg_version("order-status-migrator")
    except PackageNotFoundError:
        version = "unknown"

    orchestrator = getattr(request.app.state, "orchestrator", None)
    current = orchestrator.current_job if orchestrator else None
    return HealthResponse(
        status="healthy",
        version=version,
        uptime_seconds=uptime,
        platform=getattr(request.app.state, "platform", None),
        current_job_id=current.id if current else None,
        current_job_phase=current.phase.value if current else None,
    )
