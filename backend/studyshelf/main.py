"""Main FastAPI application."""

import logging
import re
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import engine, Base, get_db, is_sqlite, DATABASE_URL
from .api import directories_router, documents_router, summaries_router
from .core.config import settings, ConfigurationError, Environment
from .core.logging_config import OnceGate, setup_logging
from .middleware.exception_handler import shelf_exception_handler
from .middleware.request_context import RequestContextMiddleware
from .exceptions import ShelfException
from . import models  # noqa: F401  (registers tables on Base.metadata)

# Setup logging first
setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# Storage layout is logged once per process, however many times the app starts.
storage_banner = OnceGate()


def _mask_url(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:***@', url)


def _validate_database_connection() -> None:
    """Test that the database is reachable. Exits with a clear message on failure."""
    masked = _mask_url(DATABASE_URL)
    logger.info(f"Connecting to database: {masked}")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
    except SQLAlchemyError as e:
        if is_sqlite():
            hint = "Check that the directory exists and is writable."
        else:
            hint = "Verify the server is running and DATABASE_URL credentials are correct."
        logger.critical(
            f"Database connection failed.\n"
            f"  DATABASE_URL: {masked}\n"
            f"  {hint}\n"
            f"  Error: {e}"
        )
        raise SystemExit(1) from e


_validate_database_connection()
Base.metadata.create_all(bind=engine)


def _log_storage_layout() -> None:
    logger.info(
        "Storage layout",
        extra={
            "storage_root": str(settings.storage_root_path),
            "uploads_dir": str(settings.uploads_path),
            "storage_mode_policy": settings.storage_mode_policy.value,
            "max_inflight_per_user": settings.max_inflight_per_user,
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle for the StudyShelf API."""
    logger.info(f"Environment: {settings.environment.value}")
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical(f"STARTUP BLOCKED: {e}")
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT:
        if settings.jwt_secret_key == "dev-insecure-key-change-me" and settings.auth_enabled:
            logger.critical(
                "SECURITY: AUTH_ENABLED=true but JWT_SECRET_KEY is the default. "
                "Anyone can forge tokens. Generate a secure key: openssl rand -hex 32"
            )
        if not settings.auth_enabled:
            logger.warning(
                "SECURITY: Authentication is disabled (AUTH_ENABLED=false). "
                "The user is taken from the X-User-Id header."
            )

    settings.storage_root_path.mkdir(parents=True, exist_ok=True)
    settings.uploads_path.mkdir(parents=True, exist_ok=True)
    storage_banner.run(_log_storage_layout)

    yield


app = FastAPI(
    title="StudyShelf API",
    description=(
        "Per-user study library. Folders and PDF documents live in a relational "
        "tree mirrored onto a sandboxed directory tree on disk, or only on disk "
        "for users without the mirrored storage mode.\n\n"
        "**Authentication:** When `AUTH_ENABLED=true`, every storage endpoint requires a "
        "`Bearer` token. When `AUTH_ENABLED=false` (default), the user id is read from "
        "the `X-User-Id` header."
    ),
    version=VERSION,
    lifespan=lifespan,
)

# Middleware stack (outermost first: CORS wraps request context).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id", "X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(ShelfException, shelf_exception_handler)

db_type = "SQLite" if is_sqlite() else DATABASE_URL.split(":", 1)[0]
logger.info(
    "StudyShelf API started | env=%s | db=%s | auth=%s | storage_mode_policy=%s",
    settings.environment.value,
    db_type,
    "enabled" if settings.auth_enabled else "disabled",
    settings.storage_mode_policy.value,
)

app.include_router(directories_router)
app.include_router(documents_router)
app.include_router(summaries_router)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": "StudyShelf API",
        "version": VERSION,
        "status": "running"
    }


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check with database and storage status.

    Returns a degraded status instead of a 5xx so load balancers can still probe.
    """
    db_status = "ok"
    document_count = 0
    try:
        db.execute(text("SELECT 1"))
        document_count = db.execute(text("SELECT COUNT(*) FROM documents")).scalar() or 0
    except SQLAlchemyError as e:
        logger.warning("Health check database probe failed", extra={"error": str(e)})
        db_status = "error"

    storage_status = "ok" if settings.storage_root_path.is_dir() else "missing"

    return {
        "status": "healthy" if db_status == "ok" and storage_status == "ok" else "degraded",
        "db": db_status,
        "storage": storage_status,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": VERSION,
        "document_count": document_count,
    }
