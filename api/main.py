"""
FastAPI application initialization and configuration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import health
from api.routes.v1 import auth, dashboard, jobs, resumes
from core.config import settings
from core.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    StructuredLoggingMiddleware,
    setup_error_handlers,
    setup_logging,
)
from database.engine import AsyncSessionLocal, close_db, init_db
from database.seed import seed_database

# Setup structured logging (do this first, before anything else)
setup_logging(
    log_level=settings.log_level,
    json_logs=settings.json_logs,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
    await init_db()

    if settings.seed_on_startup:
        async with AsyncSessionLocal() as db:
            await seed_database(
                db,
                admin_email=settings.seed_admin_email or None,
                admin_password=settings.seed_admin_password or None,
            )

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await close_db()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Job requisition approval workflow",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Setup error handlers (before middleware)
    setup_error_handlers(app)

    # Middleware executes in reverse order of registration
    # 1. Error handling (outermost, catches everything that escapes)
    app.add_middleware(ErrorHandlingMiddleware, debug=settings.debug)

    # 2. Structured request logging
    app.add_middleware(
        StructuredLoggingMiddleware,
        log_request_body=settings.log_request_body,
        max_body_size=settings.log_max_body_size,
    )

    # 3. Authentication (resolves scope["user_id"])
    app.add_middleware(
        AuthenticationMiddleware,
        jwt_secret=settings.jwt_secret_key,
        jwt_algorithm=settings.jwt_algorithm,
    )

    # 4. CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(
        auth.router,
        prefix=f"{settings.api_v1_prefix}/auth",
        tags=["Authentication"],
    )
    app.include_router(
        jobs.router,
        prefix=f"{settings.api_v1_prefix}/jobs",
        tags=["Jobs"],
    )
    app.include_router(
        dashboard.router,
        prefix=f"{settings.api_v1_prefix}/dashboard",
        tags=["Dashboard"],
    )
    app.include_router(
        resumes.router,
        prefix=f"{settings.api_v1_prefix}/resumes",
        tags=["Resumes"],
    )
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
