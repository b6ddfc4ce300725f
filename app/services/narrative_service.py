"""
app/services/narrative_service.py

AI narrative for an intelligence result.

Cached per (tenant, start, end), rate limited per tenant on the
``insights`` bucket, and bounded by a wall-clock timeout. A cache hit does
not consume quota. The deterministic analysis is computed first and is
never altered by the narrator.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from app.config import AISettings, EngineSettings
from app.domain.errors import NarratorError, RateLimitExceededError
from app.domain.metrics import Period
from app.logging_utils import log_event
from app.providers.base import Backends
from app.services.intelligence_service import run_intelligence
from app.stores.rate_limiter import TenantRateLimiter
from app.stores.ttl_cache import TTLCache
from llm_synthesis.narrator import BaseNarrator
from llm_synthesis.schema import NarrativeOutput

logger = logging.getLogger(__name__)

RATE_LIMIT_BUCKET = "insights"


@dataclass(frozen=True)
class NarrativeResult:
    narrative: NarrativeOutput
    health_score: float
    cached: bool


def _cache_key(tenant_id: str, period: Period) -> tuple[str, str, str, str]:
    return ("narrative", tenant_id, period.start.isoformat(), period.end.isoformat())


async def generate_narrative(
    *,
    backends: Backends,
    narrator: BaseNarrator,
    cache: TTLCache,
    rate_limiter: TenantRateLimiter,
    tenant_id: str,
    period: Period,
    engine_settings: EngineSettings,
    ai_settings: AISettings,
) -> NarrativeResult:
    """
    Return the narrative for *tenant_id* and *period*.

    Raises
    ------
    RateLimitExceededError
        The tenant has used its hourly ``insights`` quota.
    RequiredSourceError
        The underlying analysis could not fetch a required source.
    NarratorError
        The narrator failed or exceeded ``ai_settings.timeout_seconds``.
    """
    key = _cache_key(tenant_id, period)
    cached = cache.get(key)
    if cached is not None:
        return NarrativeResult(narrative=cached[0], health_score=cached[1], cached=True)

    try:
        rate_limiter.acquire(tenant_id, RATE_LIMIT_BUCKET)
    except RateLimitExceededError as exc:
        log_event(
            logger,
            logging.WARNING,
            "ratelimit.rejected",
            tenant_id=tenant_id,
            bucket=exc.bucket,
            limit=exc.limit,
            retry_after_seconds=exc.retry_after_seconds,
        )
        raise

    result = await run_intelligence(backends, tenant_id, period, settings=engine_settings, persist=False)

    try:
        narrative = await asyncio.wait_for(narrator.narrate(result), timeout=ai_settings.timeout_seconds)
    except asyncio.TimeoutError as exc:
        log_event(
            logger,
            logging.WARNING,
            "narrative.timeout",
            tenant_id=tenant_id,
            timeout_seconds=ai_settings.timeout_seconds,
        )
        raise NarratorError(f"Narrative generation exceeded {ai_settings.timeout_seconds:.0f}s.") from exc
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            logging.WARNING,
            "narrative.failed",
            tenant_id=tenant_id,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        raise NarratorError("Narrative generation failed.") from exc

    cache.set(key, (narrative, result.health_score), ai_settings.cache_ttl_seconds)

    try:
        await backends.sink.log_action(
            tenant_id,
            "narrative.generated",
            entity_type="period",
            entity_id=f"{period.start.isoformat()}..{period.end.isoformat()}",
            payload={"health_score": result.health_score, "tone": narrative.tone},
        )
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            logging.WARNING,
            "action_log.failed",
            tenant_id=tenant_id,
            error_type=type(exc).__name__,
            error=str(exc),
        )

    return NarrativeResult(narrative=narrative, health_score=result.health_score, cached=False)
