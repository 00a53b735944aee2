"""
FastAPI application initialization and configuration.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from core.config import settings
from core.face_verification import UnavailableFaceVerifier
from core.geofence import Geofence
from core.realtime import ChangeFeed
from core.storage import create_blob_store
from database.engine import init_db, close_db, seed_admin_users
from api.routes import health
from api.routes.v1 import (
    access_requests,
    admin_users,
    applications,
    auth,
    interviewers,
    realtime,
)

# Import middleware components
from core.middleware import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    StructuredLoggingMiddleware,
    setup_logging,
)

# Setup structured logging (do this first, before anything else)
setup_logging(
    log_level=settings.log_level,
    json_logs=settings.json_logs,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
    await init_db()
    await seed_admin_users(settings.admin_emails)

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")
    await close_db()


def create_app() -> FastAPI:
    """Build the application with its per-instance change feed and adapters."""
    app = FastAPI(
        title=settings.app_name,
        description="Location-gated access requests, admin review and applicant tracking",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.change_feed = ChangeFeed()
    app.state.geofence = Geofence.from_settings(settings)
    app.state.blob_store = create_blob_store(settings)
    app.state.face_verifier = UnavailableFaceVerifier()

    # Setup error handlers (before middleware)
    setup_error_handlers(app)

    # Add middleware (order matters - they execute in reverse order)
    # 1. Error handling middleware (innermost - turns domain errors into responses)
    app.add_middleware(
        ErrorHandlingMiddleware,
        debug=settings.debug,
    )

    # 2. Structured logging middleware (logs all requests/responses)
    app.add_middleware(
        StructuredLoggingMiddleware,
        log_request_body=settings.log_request_body,
        log_response_body=settings.log_response_body,
        max_body_size=settings.log_max_body_size,
    )

    # 3. CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check routes
    app.include_router(health.router, tags=["Health"])

    # API v1 routes
    prefix = settings.api_v1_prefix
    app.include_router(
        auth.router,
        prefix=f"{prefix}/auth",
        tags=["Authentication"],
    )
    app.include_router(
        access_requests.router,
        prefix=f"{prefix}/access-requests",
        tags=["Access Requests"],
    )
    app.include_router(
        admin_users.router,
        prefix=f"{prefix}/admin-users",
        tags=["Admin Users"],
    )
    app.include_router(
        applications.router,
        prefix=f"{prefix}/applications",
        tags=["Applications"],
    )
    app.include_router(
        interviewers.router,
        prefix=f"{prefix}/interviewers",
        tags=["Applications"],
    )
    app.include_router(
        realtime.router,
        prefix=prefix,
        tags=["Realtime"],
    )

    # Locally stored blobs are served from /media
    if settings.storage_backend == "local":
        media_root = Path(settings.storage_path)
        media_root.mkdir(parents=True, exist_ok=True)
        app.mount("/media", StaticFiles(directory=media_root), name="media")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
