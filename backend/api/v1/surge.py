"""
Surge API Endpoints

Hourly surge forecast and peak-hour lookup for a venue.

Routes
------
GET /surge/forecast - per-hour surge scores, intensities and labels
GET /surge/peak     - busiest hour of the forecast window
"""

from fastapi import APIRouter, Depends, Query

import structlog

from api.dependencies import get_fusion_engine
from config.settings import get_settings
from models.surge import ForecastResponse, PeakResponse
from services.signal_fusion_service import SignalFusionEngine

logger = structlog.get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/surge", tags=["Surge"])


@router.get(
    "/forecast",
    response_model=ForecastResponse,
    summary="Get hourly surge forecast",
    responses={
        200: {"description": "Forecast generated (possibly with reduced confidence)"},
        422: {"description": "Invalid hours parameter"},
    },
)
async def get_surge_forecast(
    pub_id: str = Query(
        settings.default_pub_id,
        alias="pubId",
        min_length=1,
        description="Venue identifier",
    ),
    hours: int = Query(
        settings.default_forecast_hours,
        ge=1,
        le=settings.max_forecast_hours,
        description="Number of hours to forecast, starting at the current hour",
    ),
    engine: SignalFusionEngine = Depends(get_fusion_engine),
):
    """
    Forecast demand surge for the next ``hours`` hours.

    Always answers 200: when the events directory or the weather provider is
    unreachable the affected signals fall back to defaults and the
    ``confidence`` field drops to MEDIUM or LOW.
    """
    logger.debug("surge_forecast_requested", pub_id=pub_id, hours=hours)
    return await engine.get_forecast(pub_id, hours)


@router.get(
    "/peak",
    response_model=PeakResponse,
    summary="Get peak surge hour",
    responses={
        200: {"description": "Peak hour identified"},
        422: {"description": "Invalid hours parameter"},
    },
)
async def get_surge_peak(
    pub_id: str = Query(
        settings.default_pub_id,
        alias="pubId",
        min_length=1,
        description="Venue identifier",
    ),
    hours: int = Query(
        settings.default_forecast_hours,
        ge=1,
        le=settings.max_forecast_hours,
        description="Forecast window to search for the peak",
    ),
    engine: SignalFusionEngine = Depends(get_fusion_engine),
):
    """Return the highest-scoring hour; ties go to the earliest hour."""
    logger.debug("surge_peak_requested", pub_id=pub_id, hours=hours)
    return await engine.get_peak(pub_id, hours)
