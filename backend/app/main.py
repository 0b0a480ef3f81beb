"""Playbook Execution Engine - FastAPI Application."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

import db.database
from actions.registry import get_action_registry
from api.routes import health
from api.v1.router import api_v1_router
from app.config import get_settings
from core.logging_config import setup_logging
from core.middleware import RequestTrackingMiddleware, setup_exception_handlers
from db.database import close_db, init_db
from playbook.cascade import CascadeRunner, InMemoryCascadeQueue, create_cascade_publisher
from playbook.orchestrator import PlaybookOrchestrator
from playbook.retry_strategies import RetryStrategy

logger = structlog.get_logger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"

        if get_settings().is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


def configure_state(app: FastAPI, session_factory, publisher=None, action_registry=None) -> PlaybookOrchestrator:
    """Attach the session factory, orchestrator and cascade publisher to app.state.

    Called by the lifespan; tests call it directly with their own
    session factory since ASGI test transports skip the lifespan.
    """
    registry = action_registry or get_action_registry()
    orchestrator = PlaybookOrchestrator(session_factory, registry, publisher)
    app.state.session_factory = session_factory
    app.state.action_registry = registry
    app.state.cascade_publisher = publisher
    app.state.orchestrator = orchestrator
    return orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    setup_logging()

    try:
        settings.validate_secrets()
    except RuntimeError as e:
        logger.critical("Startup aborted", error=str(e))
        raise

    await init_db()

    publisher = create_cascade_publisher(settings.CASCADE_BACKEND)
    session_factory = db.database.AsyncSessionLocal
    orchestrator = configure_state(app, session_factory, publisher)

    if isinstance(publisher, InMemoryCascadeQueue):
        runner = CascadeRunner(orchestrator, session_factory, RetryStrategy.from_settings(settings))
        publisher.start(runner.process)

    logger.info(
        "Application started",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        cascade_backend=settings.CASCADE_BACKEND,
        actions=len(orchestrator.registry.list_all()),
    )
    yield

    if isinstance(publisher, InMemoryCascadeQueue):
        await publisher.stop()
    await close_db()
    logger.info("Application shut down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Multi-tenant SOAR playbook execution engine: ordered steps, "
                    "conditional branching, approval and analyst-input gates.",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestTrackingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    setup_exception_handlers(app)

    # Unversioned health probes for load balancers
    app.include_router(health.router, prefix="/api")

    app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)

    return app


app = create_app()
