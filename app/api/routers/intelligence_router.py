"""
app/api/routers/intelligence_router.py

Cognitive analysis and AI narrative endpoints.

``GET /intelligence`` is all-or-nothing: a failed required source maps to
502 and any other failure inside the analysis maps to a generic 500 with no
partial body. Persistence of the result runs in the background and never
affects the response.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import (
    ai_settings,
    engine_settings,
    get_backends,
    get_insight_cache,
    get_narrator,
    get_period,
    get_rate_limiter,
)
from app.config import AISettings, EngineSettings
from app.domain.errors import (
    InvalidPeriodError,
    NarratorError,
    RateLimitExceededError,
    RequiredSourceError,
)
from app.domain.metrics import Period
from app.domain.normalizer import build_period
from app.providers.base import Backends
from app.schemas.intelligence import IntelligenceResponse, NarrativeRequest, NarrativeResponse
from app.services.intelligence_service import run_intelligence
from app.services.narrative_service import generate_narrative
from app.stores.rate_limiter import TenantRateLimiter
from app.stores.ttl_cache import TTLCache
from llm_synthesis.narrator import BaseNarrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["intelligence"])


@router.get(
    "/intelligence",
    response_model=IntelligenceResponse,
    status_code=status.HTTP_200_OK,
)
async def get_intelligence(
    tenant_id: str = Query(..., min_length=1),
    period: Period = Depends(get_period),
    backends: Backends = Depends(get_backends),
    settings: EngineSettings = Depends(engine_settings),
) -> IntelligenceResponse:
    try:
        result = await run_intelligence(backends, tenant_id, period, settings=settings)
    except RequiredSourceError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception(
            "Intelligence computation failed tenant=%s period=%s..%s",
            tenant_id,
            period.start,
            period.end,
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute intelligence.",
        ) from exc

    return IntelligenceResponse(tenant_id=tenant_id, period=period.as_dict(), **result.to_dict())


@router.post(
    "/intelligence/narrative",
    response_model=NarrativeResponse,
    status_code=status.HTTP_200_OK,
)
async def post_narrative(
    body: NarrativeRequest,
    backends: Backends = Depends(get_backends),
    narrator: BaseNarrator = Depends(get_narrator),
    cache: TTLCache = Depends(get_insight_cache),
    rate_limiter: TenantRateLimiter = Depends(get_rate_limiter),
    engine: EngineSettings = Depends(engine_settings),
    ai: AISettings = Depends(ai_settings),
) -> NarrativeResponse:
    """
    Narrate the intelligence result for a window.

    Raises HTTP 429 (with ``Retry-After``) when the tenant's hourly quota is
    used, 502 when a required source fails and 503 when the narrator fails
    or times out.
    """
    try:
        period = build_period(body.start_date, body.end_date)
    except InvalidPeriodError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        outcome = await generate_narrative(
            backends=backends,
            narrator=narrator,
            cache=cache,
            rate_limiter=rate_limiter,
            tenant_id=body.tenant_id,
            period=period,
            engine_settings=engine,
            ai_settings=ai,
        )
    except RateLimitExceededError as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=str(exc),
            headers={"Retry-After": str(exc.retry_after_seconds)},
        ) from exc
    except RequiredSourceError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except NarratorError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc

    return NarrativeResponse(
        tenant_id=body.tenant_id,
        period=period.as_dict(),
        health_score=outcome.health_score,
        cached=outcome.cached,
        narrative=outcome.narrative,
    )
