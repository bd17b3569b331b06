"""API endpoints."""

from coinpulse.api.routes import get_analysis_service, router

__all__ = [
    "get_analysis_service",
    "router",
]
