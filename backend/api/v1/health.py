"""
Health Check API

Reports liveness and whether each upstream signal source is reachable.
The endpoint always answers 200 so that the service stays in rotation while
forecasting in degraded mode.

Routes
------
GET /health      - service status plus events/weather dependency status
GET /health/live - liveness probe
"""

import asyncio
from typing import Dict

from fastapi import APIRouter, Depends

import structlog

from api.dependencies import get_events_client, get_weather_service
from config.settings import get_settings
from integrations.events_client import EventsClient
from integrations.weather_service import WeatherService

logger = structlog.get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/health", tags=["Health"])

UP = "UP"
DOWN = "DOWN"


def _dependency_status(result) -> str:
    if isinstance(result, BaseException):
        logger.warning(
            "health_check_dependency_raised",
            error=str(result),
            error_type=type(result).__name__,
        )
        return DOWN
    return UP if result.is_available else DOWN


@router.get("", summary="Service health with dependency status")
async def health_check(
    events_client: EventsClient = Depends(get_events_client),
    weather_service: WeatherService = Depends(get_weather_service),
) -> Dict:
    events_result, weather_result = await asyncio.gather(
        events_client.get_today_events(),
        weather_service.get_hourly_weather(),
        return_exceptions=True,
    )

    dependencies = {
        "events": _dependency_status(events_result),
        "weather": _dependency_status(weather_result),
    }
    if DOWN in dependencies.values():
        logger.info("health_check_degraded", **dependencies)

    return {
        "status": "OK",
        "service": settings.app_name,
        "version": settings.app_version,
        "dependencies": dependencies,
    }


@router.get("/live", summary="Liveness check")
async def liveness_check():
    """Liveness check - verify application is running"""
    return {"status": "alive"}
