from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.api.v1.router import api_router
from app.core.exceptions import AppError, error_envelope
from app.core.log import configure_logging
from app.database import async_session_factory, init_db
from app.events.bus import EventBus
from app.jobs.queue import JobQueue, QueueRegistry
from app.jobs.report_jobs import REPORT_QUEUE, build_report_handlers
from app.jobs.scheduler import start_scheduler, shutdown_scheduler
from app.jobs.worker import Worker
from app.middleware import (
    activity_log_middleware,
    idempotency_middleware,
    rate_limit_middleware,
    security_headers_middleware,
    timeout_middleware,
)
from app.observers import register_observers
from app.services.cache_service import CacheService, get_cache
from app.services.email_service import EmailService, get_email_service
from app.services.token_service import RefreshTokenStore

logger = logging.getLogger(__name__)


def init_app_state(
    app: FastAPI,
    email_service: Optional[EmailService] = None,
    cache: Optional[CacheService] = None,
    start_background: bool = True,
) -> None:
    """
    Build the per-process collaborators and attach them to ``app.state``:
    event bus with observers, cache, refresh-token store, job queues and the
    report worker. Background tasks (worker loop, scheduler) start only when
    ``start_background`` is set.
    """
    email_service = email_service or get_email_service()
    cache = cache or get_cache()

    bus = EventBus()
    register_observers(bus, email_service)

    queues = QueueRegistry()
    report_queue = queues.register(JobQueue(REPORT_QUEUE))

    app.state.event_bus = bus
    app.state.email_service = email_service
    app.state.cache = cache
    app.state.token_store = RefreshTokenStore(cache)
    app.state.queues = queues
    app.state.report_worker = Worker(
        report_queue,
        build_report_handlers(async_session_factory, email_service=email_service),
    )

    if start_background:
        if settings.RUN_WORKER_IN_PROCESS:
            app.state.report_worker.start()
        if settings.SCHEDULER_ENABLED:
            start_scheduler(queues)


async def shutdown_app_state(app: FastAPI) -> None:
    await app.state.report_worker.stop()
    shutdown_scheduler()
    await app.state.event_bus.drain()
    await app.state.queues.close()
    backend = app.state.cache.backend
    if hasattr(backend, "close"):
        await backend.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create tables
    - Wire event bus, cache, queues and observers
    - Start the in-process report worker and the scheduler
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()
    init_app_state(app)

    yield

    await shutdown_app_state(app)
    logger.info("Shutting down...")


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(exc.status_code, message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content=error_envelope(400, "Validation failed", details))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=error_envelope(500, "Internal server error"))


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Vendors, warehouses, fares, orders, shipments, CSV reports and dashboards.",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Innermost first: the last middleware added wraps all the others
    app.middleware("http")(timeout_middleware)
    app.middleware("http")(idempotency_middleware)
    app.middleware("http")(rate_limit_middleware)
    app.middleware("http")(activity_log_middleware)
    app.middleware("http")(security_headers_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check with database and cache validation."""
        health_status = {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {
                "database": "unknown",
                "cache": "unknown",
            }
        }

        try:
            async with async_session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
                health_status["checks"]["database"] = "connected"
        except Exception as e:
            health_status["status"] = "unhealthy"
            health_status["checks"]["database"] = f"error: {e}"

        cache = getattr(request.app.state, "cache", None)
        if cache is not None and await cache.ping():
            health_status["checks"]["cache"] = "connected"
        else:
            health_status["status"] = "unhealthy"
            health_status["checks"]["cache"] = "unavailable"

        if health_status["status"] == "unhealthy":
            return JSONResponse(status_code=503, content=health_status)
        return health_status

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "api": "/api/v1",
        }

    return app


app = create_app()
