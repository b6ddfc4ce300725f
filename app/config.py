"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class EngineSettings:
    """
    Thresholds and caps for the deterministic analysis core.
    """

    roas_target: float = 7.0
    cpa_ceiling: float = 80.0
    max_insights: int = 12
    max_alerts: int = 15
    persistence_enabled: bool = True
    snapshot_sku_limit: int = 50
    snapshot_batch_size: int = 10


@dataclass(frozen=True)
class AISettings:
    """
    Narrator adapter selection, quotas and caching.
    """

    adapter: str = "openai"
    model: str = "gpt-4o-mini"
    api_key: str | None = None
    chat_limit_per_hour: int = 30
    insights_limit_per_hour: int = 12
    cache_ttl_seconds: float = 300.0
    timeout_seconds: float = 20.0


@lru_cache(maxsize=1)
def get_engine_settings() -> EngineSettings:
    """
    Return cached engine settings from environment variables.
    """

    return EngineSettings(
        roas_target=max(0.1, _get_float_env("ENGINE_ROAS_TARGET", 7.0)),
        cpa_ceiling=max(0.1, _get_float_env("ENGINE_CPA_CEILING", 80.0)),
        max_insights=max(1, _get_int_env("ENGINE_MAX_INSIGHTS", 12)),
        max_alerts=max(1, _get_int_env("ENGINE_MAX_ALERTS", 15)),
        persistence_enabled=_get_bool_env("ENGINE_PERSISTENCE_ENABLED", True),
        snapshot_sku_limit=max(0, _get_int_env("ENGINE_SNAPSHOT_SKU_LIMIT", 50)),
        snapshot_batch_size=max(1, _get_int_env("ENGINE_SNAPSHOT_BATCH_SIZE", 10)),
    )


@lru_cache(maxsize=1)
def get_ai_settings() -> AISettings:
    """
    Return cached narrator settings. The API key falls back from
    ``LLM_API_KEY`` to ``OPENAI_API_KEY``.
    """

    return AISettings(
        adapter=_get_str_env("LLM_ADAPTER", "openai").lower(),
        model=_get_str_env("LLM_MODEL", "gpt-4o-mini"),
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        chat_limit_per_hour=max(1, _get_int_env("AI_CHAT_LIMIT_PER_HOUR", 30)),
        insights_limit_per_hour=max(1, _get_int_env("AI_INSIGHTS_LIMIT_PER_HOUR", 12)),
        cache_ttl_seconds=max(1.0, _get_float_env("AI_CACHE_TTL_SECONDS", 300.0)),
        timeout_seconds=max(1.0, _get_float_env("AI_TIMEOUT_SECONDS", 20.0)),
    )


@dataclass(frozen=True)
class MetricsGatewaySettings:
    """
    HTTP behaviour for the metrics gateway that fronts the ad and
    web-analytics platforms.
    """

    base_url: str | None = None
    api_token: str | None = None
    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0
    response_cache_ttl_seconds: float = 120.0


@lru_cache(maxsize=1)
def get_metrics_gateway_settings() -> MetricsGatewaySettings:
    """
    Return metrics gateway settings. ``base_url`` is ``None`` when
    ``METRICS_GATEWAY_URL`` is unset, in which case the app runs on the
    in-memory providers.
    """

    return MetricsGatewaySettings(
        base_url=_get_optional_str_env("METRICS_GATEWAY_URL"),
        api_token=_get_optional_str_env("METRICS_GATEWAY_TOKEN"),
        timeout_seconds=max(1.0, _get_float_env("METRICS_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("METRICS_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("METRICS_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("METRICS_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("METRICS_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
        response_cache_ttl_seconds=max(0.0, _get_float_env("METRICS_RESPONSE_CACHE_TTL_SECONDS", 120.0)),
    )
