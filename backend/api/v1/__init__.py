"""
API v1 Routers

Version 1 of the Surge Predictor API.
"""

from api.v1.health import router as health_router
from api.v1.surge import router as surge_router

__all__ = ["health_router", "surge_router"]
