"""EventHub FastAPI application factory."""

import logging
import os
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest, multiprocess
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text

from app.config import Settings, get_settings
from app.dependencies import get_session_factory, init_db, shutdown_db
from app.errors import DomainError, domain_error_handler
from app.middleware.error_handler import ErrorHandlerMiddleware
from app.middleware.logging import LoggingMiddleware, setup_logging
from app.middleware.rate_limit import EXEMPT_PATHS, RateLimitMiddleware
from app.routers import admin, events, messages, notifications, proposals, ws
from app.services.ws_manager import ws_manager

logger = logging.getLogger(__name__)

SERVICE_NAME = "eventhub-api"
VERSION = "1.0.0"

API_ROUTERS = (events.router, proposals.router, notifications.router, messages.router, admin.router)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(debug=settings.debug)
    logger.info("Starting EventHub API (env=%s)", settings.app_env)

    init_db(settings)
    try:
        await ws_manager.start()
    except Exception as e:
        # Chat still persists; only live delivery is lost
        logger.warning("Chat fan-out unavailable: %s", e)

    yield

    await ws_manager.stop()
    await shutdown_db()
    logger.info("EventHub API stopped")


async def _probe_database(settings: Settings) -> str:
    try:
        async with get_session_factory(settings)() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        return f"error: {type(e).__name__}"
    return "ok"


async def _probe_redis(settings: Settings) -> str:
    client = aioredis.from_url(settings.redis_url, decode_responses=True)
    try:
        await client.ping()
    except Exception as e:
        return f"error: {type(e).__name__}"
    finally:
        await client.aclose()
    return "ok"


def _render_metrics() -> bytes:
    """Exposition for this process, or for all workers when PROMETHEUS_MULTIPROC_DIR is set."""
    if not os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        return generate_latest()
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    return generate_latest(registry)


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    # Starlette runs the last-added middleware first: CORS, rate limit, logging, errors
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RateLimitMiddleware, settings=settings)

    origins = settings.cors_origins
    wildcard = origins == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[] if wildcard else origins,
        allow_origin_regex=r".*" if wildcard else None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
        max_age=600,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Event marketplace: organizers post requirements, vendors send proposals",
        version=VERSION,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )
    app.add_exception_handler(DomainError, domain_error_handler)
    _install_middleware(app, settings)

    for router in API_ROUTERS:
        app.include_router(router, prefix=settings.api_prefix)
    app.include_router(ws.router)

    @app.get("/")
    async def root():
        return {"status": "running", "service": SERVICE_NAME, "version": VERSION}

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": SERVICE_NAME}

    @app.get("/health/ready")
    async def health_ready():
        """Readiness: 200 only when both PostgreSQL and Redis answer."""
        checks = {
            "database": await _probe_database(settings),
            "redis": await _probe_redis(settings),
        }
        ready = all(result == "ok" for result in checks.values())
        return JSONResponse(
            status_code=200 if ready else 503,
            content={"status": "ready" if ready else "degraded", "checks": checks},
        )

    Instrumentator(
        excluded_handlers=[*EXEMPT_PATHS, "/docs", "/redoc", "/openapi.json"],
    ).instrument(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(content=_render_metrics(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
