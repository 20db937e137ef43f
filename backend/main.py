"""
Surge Predictor - FastAPI Backend Application

Wires the upstream signal clients and the fusion engine into a FastAPI app:
logging, middleware, exception handlers and routers.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from api.v1 import health_router, surge_router
from config.settings import Settings, settings
from integrations.base import RetryConfig
from integrations.events_client import EventsClient
from integrations.weather_service import WeatherService
from middleware.tracing import TracingMiddleware
from services.signal_fusion_service import SignalFusionEngine


def configure_logging(production: bool) -> None:
    """JSON logs everywhere; production drops the costlier processors."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
    ]
    if not production:
        processors += [
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
        ]
    processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging(settings.is_production)
logger = structlog.get_logger()


# ============================================================================
# LIFECYCLE
# ============================================================================


def build_engine(app: FastAPI, config: Settings = settings) -> SignalFusionEngine:
    """Create the upstream clients and the fusion engine on ``app.state``."""
    retries = RetryConfig(max_retries=config.upstream_max_retries)

    app.state.events_client = EventsClient(
        base_url=config.events_service_url,
        timeout=config.events_timeout_seconds,
        retry_config=retries,
    )
    app.state.weather_service = WeatherService(
        base_url=config.weather_base_url,
        latitude=config.weather_latitude,
        longitude=config.weather_longitude,
        timeout=config.weather_timeout_seconds,
        cache_ttl_seconds=config.weather_cache_ttl_seconds,
        retry_config=retries,
    )
    app.state.fusion_engine = SignalFusionEngine(
        events_provider=app.state.events_client,
        weather_provider=app.state.weather_service,
    )
    return app.state.fusion_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "surge_predictor_starting",
        environment=settings.environment,
        events_service_url=settings.events_service_url,
        weather_base_url=settings.weather_base_url,
    )
    build_engine(app)

    yield

    for name in ("events_client", "weather_service"):
        client = getattr(app.state, name, None)
        if client is None:
            continue
        try:
            await client.close()
        except Exception as e:
            logger.error("upstream_client_close_failed", client=name, error=str(e))

    logger.info("surge_predictor_stopped")


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================


async def handle_validation_error(request: Request, exc: RequestValidationError):
    # Raw input and ctx (may hold exception objects) are never echoed back
    errors = [
        {key: value for key, value in err.items() if key not in ("input", "ctx")}
        for err in exc.errors()
    ]
    logger.warning("request_validation_failed", path=request.url.path, errors=errors)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    detail = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail},
    )


# ============================================================================
# APPLICATION
# ============================================================================


def create_app() -> FastAPI:
    docs_enabled = not settings.is_production
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Hourly demand surge forecasting from events, weather and trading patterns",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )
    application.add_middleware(GZipMiddleware, minimum_size=1000)
    application.add_middleware(TracingMiddleware, log_requests=not settings.is_production)

    application.add_exception_handler(RequestValidationError, handle_validation_error)
    application.add_exception_handler(Exception, handle_unexpected_error)

    @application.get("/", tags=["Root"])
    async def root():
        """Service information and entry points"""
        info = {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "health": "/health",
            "forecast": "/surge/forecast",
            "peak": "/surge/peak",
        }
        if docs_enabled:
            info["docs"] = "/docs"
        return info

    application.include_router(health_router)
    application.include_router(surge_router)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.backend_port,
        reload=settings.is_development,
        log_level="info",
    )
