"""
app/providers/http_gateway.py

Ad, web-analytics and catalog providers backed by a JSON metrics gateway.

The gateway exposes one GET endpoint per provider method, e.g.
``/ads/account?tenant_id=..&start_date=..&end_date=..``. Requests run in a
worker thread so the event loop is not blocked, retry with exponential
backoff on transient failures and are cached per (endpoint, params) in the
shared :class:`TTLCache`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping, Sequence

import requests

from app.config import MetricsGatewaySettings
from app.domain.errors import ProviderError
from app.domain.metrics import Period
from app.providers.base import AdsMetricsProvider, RawRow, SkuReferenceStore, WebAnalyticsProvider
from app.stores.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class MetricsGatewayClient:
    """
    Shared HTTP mechanics: rate limiting, retries, JSON decoding, caching.
    """

    def __init__(
        self,
        *,
        settings: MetricsGatewaySettings,
        cache: TTLCache | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not settings.base_url:
            raise ValueError("MetricsGatewayClient requires a base_url.")
        self._base_url = settings.base_url.rstrip("/")
        self._settings = settings
        self._cache = cache
        self._session = session or requests.Session()
        self._min_request_interval_seconds = (
            1.0 / settings.rate_limit_per_second if settings.rate_limit_per_second > 0 else 0.0
        )
        self._last_request_monotonic: float = 0.0

    async def get_json(self, source: str, path: str, params: dict[str, Any]) -> Any:
        cache_key = (path, tuple(sorted(params.items())))
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached

        payload = await asyncio.to_thread(self._request_json, source, path, params)

        if self._cache is not None and payload is not None:
            self._cache.set(cache_key, payload, self._settings.response_cache_ttl_seconds)
        return payload

    def _request_json(self, source: str, path: str, params: dict[str, Any]) -> Any:
        url = f"{self._base_url}{path}"
        headers = {"Accept": "application/json"}
        if self._settings.api_token:
            headers["Authorization"] = f"Bearer {self._settings.api_token}"

        last_error: Exception | None = None
        for attempt in range(self._settings.max_retries + 1):
            self._apply_rate_limit()
            try:
                response = self._session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self._settings.timeout_seconds,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable HTTP status code: {response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                try:
                    return response.json()
                except ValueError as exc:
                    raise ProviderError(source, "response was not valid JSON") from exc
            except requests.HTTPError as exc:
                last_error = exc
                status_code = exc.response.status_code if exc.response is not None else None
                if status_code not in RETRYABLE_STATUS_CODES:
                    logger.error(
                        "Gateway request failed source=%s status=%s url=%s error=%s",
                        source,
                        status_code,
                        url,
                        exc,
                    )
                    raise ProviderError(source, f"non-retryable status {status_code}") from exc
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = exc

            if attempt >= self._settings.max_retries:
                break

            backoff_seconds = self._settings.backoff_initial_seconds * (self._settings.backoff_multiplier**attempt)
            logger.warning(
                "Gateway request retry source=%s attempt=%s/%s wait_seconds=%.2f url=%s",
                source,
                attempt + 1,
                self._settings.max_retries,
                backoff_seconds,
                url,
            )
            time.sleep(backoff_seconds)

        raise ProviderError(source, "request failed after retries") from last_error

    def _apply_rate_limit(self) -> None:
        if self._min_request_interval_seconds <= 0:
            return
        now = time.monotonic()
        remaining = self._min_request_interval_seconds - (now - self._last_request_monotonic)
        if remaining > 0:
            time.sleep(remaining)
        self._last_request_monotonic = time.monotonic()


def _window_params(tenant_id: str, period: Period) -> dict[str, Any]:
    return {
        "tenant_id": tenant_id,
        "start_date": period.start.isoformat(),
        "end_date": period.end.isoformat(),
    }


def _as_rows(source: str, payload: Any) -> list[RawRow]:
    if payload is None:
        return []
    if isinstance(payload, dict) and "rows" in payload:
        payload = payload["rows"]
    if not isinstance(payload, list):
        raise ProviderError(source, "expected a list of rows")
    return [row for row in payload if isinstance(row, dict)]


def _as_object(source: str, payload: Any) -> RawRow | None:
    if payload is None or payload == {}:
        return None
    if not isinstance(payload, dict):
        raise ProviderError(source, "expected a JSON object")
    return payload


class GatewayAdsProvider(AdsMetricsProvider):
    def __init__(self, client: MetricsGatewayClient) -> None:
        self._client = client

    async def account_totals(self, tenant_id: str, period: Period) -> RawRow | None:
        payload = await self._client.get_json("account", "/ads/account", _window_params(tenant_id, period))
        return _as_object("account", payload)

    async def all_sku_metrics(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        payload = await self._client.get_json("skus", "/ads/skus", _window_params(tenant_id, period))
        return _as_rows("skus", payload)

    async def all_campaign_metrics(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        payload = await self._client.get_json("campaigns", "/ads/campaigns", _window_params(tenant_id, period))
        return _as_rows("campaigns", payload)

    async def daily_series(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        payload = await self._client.get_json("daily_series", "/ads/daily", _window_params(tenant_id, period))
        return _as_rows("daily_series", payload)


class GatewayWebAnalyticsProvider(WebAnalyticsProvider):
    def __init__(self, client: MetricsGatewayClient) -> None:
        self._client = client

    async def summary(self, tenant_id: str, period: Period) -> RawRow | None:
        payload = await self._client.get_json("web_summary", "/web/summary", _window_params(tenant_id, period))
        return _as_object("web_summary", payload)

    async def channel_acquisition(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        payload = await self._client.get_json("channels", "/web/channels", _window_params(tenant_id, period))
        return _as_rows("channels", payload)

    async def cohort_retention(self, tenant_id: str, period: Period) -> RawRow | None:
        payload = await self._client.get_json("retention", "/web/retention", _window_params(tenant_id, period))
        return _as_object("retention", payload)

    async def funnel_steps(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        payload = await self._client.get_json("funnel", "/web/funnel", _window_params(tenant_id, period))
        return _as_rows("funnel", payload)


class GatewaySkuReferenceStore(SkuReferenceStore):
    """
    Catalog extras from ``/catalog/skus``. Accepts either a ``{sku: {...}}``
    object or a list of rows carrying a ``sku`` key.
    """

    def __init__(self, client: MetricsGatewayClient) -> None:
        self._client = client

    async def load_sku_extras(self, tenant_id: str) -> Mapping[str, RawRow]:
        payload = await self._client.get_json("sku_extras", "/catalog/skus", {"tenant_id": tenant_id})
        if isinstance(payload, dict) and "rows" not in payload:
            return {str(sku): row for sku, row in payload.items() if isinstance(row, dict)}
        return {
            str(row["sku"]): row
            for row in _as_rows("sku_extras", payload)
            if row.get("sku") is not None
        }
