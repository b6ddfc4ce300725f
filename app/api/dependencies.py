"""
app/api/dependencies.py

Shared FastAPI dependencies.

Process-wide collaborators (backends, caches, the rate limiter and the
narrator) are created by ``create_app`` and stored on ``app.state``; routers
reach them only through these functions so tests can override them.
"""

from __future__ import annotations

from datetime import date

from fastapi import HTTPException, Query, Request, status

from app.config import AISettings, EngineSettings, get_ai_settings, get_engine_settings
from app.domain.errors import InvalidPeriodError
from app.domain.metrics import Period
from app.domain.normalizer import build_period
from app.providers.base import Backends
from app.stores.rate_limiter import TenantRateLimiter
from app.stores.ttl_cache import TTLCache
from llm_synthesis.narrator import BaseNarrator


def get_backends(request: Request) -> Backends:
    return request.app.state.backends


def get_insight_cache(request: Request) -> TTLCache:
    return request.app.state.insight_cache


def get_rate_limiter(request: Request) -> TenantRateLimiter:
    return request.app.state.rate_limiter


def get_narrator(request: Request) -> BaseNarrator:
    narrator = getattr(request.app.state, "narrator", None)
    if narrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Narrator is not configured.",
        )
    return narrator


def engine_settings() -> EngineSettings:
    return get_engine_settings()


def ai_settings() -> AISettings:
    return get_ai_settings()


def get_period(
    start_date: date = Query(..., description="Inclusive window start (YYYY-MM-DD)."),
    end_date: date = Query(..., description="Inclusive window end (YYYY-MM-DD)."),
) -> Period:
    """
    Validate the requested window before any provider is called.
    """

    try:
        return build_period(start_date, end_date)
    except InvalidPeriodError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
