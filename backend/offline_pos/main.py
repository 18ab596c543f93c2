"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from offline_pos.api.routes import api_router
from offline_pos.core.config import settings
from offline_pos.core.exceptions import (
    DiscrepancyValidationError,
    OfflineStorageError,
    ReconciliationNotVerifiedError,
    RemoteServiceError,
    TransactionNotFoundError,
)
from offline_pos.core.logging_config import configure_logging
from offline_pos.core.rate_limit import limiter
from offline_pos.db.session import build_engine, build_session_factory, init_db
from offline_pos.services.offline_mode_service import OfflineModeManager

configure_logging(settings)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Offline POS sync service")

    engine = build_engine(settings.database_url)
    init_db(engine)
    session_factory = build_session_factory(engine)

    manager = OfflineModeManager.from_settings(settings, session_factory)
    await manager.start()

    app.state.engine = engine
    app.state.offline_manager = manager

    yield

    await manager.stop()
    engine.dispose()
    logger.info("Shutting down Offline POS sync service")


app = FastAPI(
    title="Offline POS Sync",
    description="Offline transaction queue and sync engine for the retail POS",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ==================== Error mapping ====================

@app.exception_handler(TransactionNotFoundError)
async def transaction_not_found_handler(request: Request, exc: TransactionNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(DiscrepancyValidationError)
async def discrepancy_validation_handler(request: Request, exc: DiscrepancyValidationError):
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})


@app.exception_handler(ReconciliationNotVerifiedError)
async def reconciliation_not_verified_handler(request: Request, exc: ReconciliationNotVerifiedError):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "unverified_product_ids": exc.product_ids},
    )


@app.exception_handler(OfflineStorageError)
async def storage_error_handler(request: Request, exc: OfflineStorageError):
    logger.error(f"Local storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Local storage unavailable"},
    )


@app.exception_handler(RemoteServiceError)
async def remote_error_handler(request: Request, exc: RemoteServiceError):
    logger.warning(f"Remote POS API error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)})


# CORS middleware. Origins configured via CORS_ORIGINS env variable.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.api_route("/health", methods=["GET", "HEAD"])
def health_check():
    """Basic liveness check; also answers the HEAD probes other tills send."""
    return {"status": "healthy", "version": VERSION}


@app.get("/health/ready")
def readiness_check(request: Request):
    """Readiness probe with local database and connectivity state."""
    checks = {"database": "unknown", "network": "unknown"}

    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        checks["database"] = "not initialised"
    else:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            checks["database"] = "healthy"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            checks["database"] = "unhealthy"

    manager = getattr(request.app.state, "offline_manager", None)
    if manager is not None:
        checks["network"] = "online" if manager.monitor.is_online else "offline"

    # Being offline is a normal operating mode, only the database gates readiness
    return {
        "status": "ready" if checks["database"] == "healthy" else "degraded",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
