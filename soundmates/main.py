"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from soundmates.api import router as api_router
from soundmates.core.config import get_settings
from soundmates.core.database import Database
from soundmates.core.logging import get_logger, setup_logging
from soundmates.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from soundmates.services.batch import BatchGuard

settings = get_settings()

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database at startup and dispose of it at shutdown."""
    logger.info(
        f"Starting {settings.APP_NAME}",
        extra={
            "extra_fields": {
                "environment": settings.ENVIRONMENT,
                "debug": settings.DEBUG,
                "attribute_schema": settings.ATTRIBUTE_SCHEMA,
            }
        },
    )

    # Tests install their own Database before startup
    owns_db = getattr(app.state, "db", None) is None
    if owns_db:
        app.state.db = Database(settings.DATABASE_URL)

        try:
            app.state.db.create_all()
            logger.info("Database tables verified/created")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")
    if owns_db:
        app.state.db.dispose()
        app.state.db = None


app = FastAPI(
    title=settings.APP_NAME,
    description="Pairs listeners by shared music taste and groups them into communities",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)
app.state.db = None
app.state.batch_guard = BatchGuard()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health/ready")
def readiness_check():
    """Readiness check: verifies the database answers queries."""
    try:
        with app.state.db.session() as db:
            db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "disconnected"

    status = "ready" if db_status == "connected" else "not_ready"

    return {
        "status": status,
        "checks": {
            "database": db_status,
        },
    }


app.include_router(api_router, prefix=settings.API_V1_PREFIX)
