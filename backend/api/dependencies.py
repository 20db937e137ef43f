"""
API Dependencies

FastAPI dependency providers for the surge engine and its upstream clients.
Instances are created once in the application lifespan and stored on
``app.state``; tests swap them out through ``app.dependency_overrides``.
"""

from fastapi import HTTPException, Request, status

from integrations.events_client import EventsClient
from integrations.weather_service import WeatherService
from services.signal_fusion_service import SignalFusionEngine


def _from_state(request: Request, name: str):
    instance = getattr(request.app.state, name, None)
    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return instance


def get_events_client(request: Request) -> EventsClient:
    """Events directory client shared across requests."""
    return _from_state(request, "events_client")


def get_weather_service(request: Request) -> WeatherService:
    """Open-Meteo client shared across requests."""
    return _from_state(request, "weather_service")


def get_fusion_engine(request: Request) -> SignalFusionEngine:
    """
    Get the SignalFusionEngine instance.

    Returns:
        SignalFusionEngine wired to the shared upstream clients
    """
    return _from_state(request, "fusion_engine")
