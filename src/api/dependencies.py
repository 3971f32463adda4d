"""
FastAPI dependencies resolving the long-lived service objects.

``main.py`` stores them on ``app.state`` during startup; tests replace them
through ``app.dependency_overrides``.
"""

from fastapi import HTTPException, Request, status

from engine import ArbitrageEngine
from markets.registry import MarketRegistry


def get_registry(request: Request) -> MarketRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Marketplaces not initialized",
        )
    return registry


def get_engine(request: Request) -> ArbitrageEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Engine not initialized",
        )
    return engine
