"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linkdeck.api.v1.router import router as v1_router
from linkdeck.core.config import get_settings
from linkdeck.core.database import async_session_factory, close_db, init_db
from linkdeck.core.errors import register_exception_handlers
from linkdeck.core.middleware import SecurityHeadersMiddleware
from linkdeck.core.observability import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    setup_observability,
)
from linkdeck.core.rate_limit import limiter
from linkdeck.core.redis import close_redis
from linkdeck.services.bootstrap import bootstrap

settings = get_settings()

# Get logger (will be configured by setup_observability)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    logger.info("Starting Linkdeck API", version=settings.app_version)
    if settings.auto_create_tables:
        await init_db()
        logger.info("Database tables created")
    async with async_session_factory() as session:
        await bootstrap(session, settings)
    yield
    # Shutdown
    logger.info("Shutting down Linkdeck API")
    await close_redis()
    logger.info("Redis connection closed")
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Curated link directory with favorites and click statistics",
    lifespan=lifespan,
)

# Set up observability (logging, tracing, metrics, Sentry)
setup_observability(app)

# Envelope-shaped error responses
register_exception_handlers(app)

# Rate limiter state (429s are rendered by the envelope handlers)
app.state.limiter = limiter

# Middleware stack (order matters - first added = outermost = runs last on request, first on response)

# Request logging middleware (logs all requests with timing)
app.add_middleware(RequestLoggingMiddleware)

# Request ID middleware (adds unique ID to each request)
app.add_middleware(RequestIDMiddleware)

# Security headers middleware
app.add_middleware(
    SecurityHeadersMiddleware,
    enable_hsts=not settings.debug,  # Enable HSTS in production
)

# CORS middleware (innermost - runs first on request)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "X-Request-ID"],
)

# Include routers
app.include_router(v1_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Welcome to Linkdeck API", "version": settings.app_version}


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    uvicorn.run("linkdeck.main:app", host=settings.host, port=settings.port, reload=settings.debug)
