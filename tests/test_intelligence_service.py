"""
tests/test_intelligence_service.py

Pytest tests for the request-path services over in-memory backends.

Coverage
--------
- build_context: comparison window, SKU extras, planning cascade
- Optional source failure degrades with a structured log line
- Malformed optional payloads fall back to their defaults
- Required source failure raises RequiredSourceError
- Missing account data: error for intelligence, silent for alerts
- Cart abandonment filled from funnel steps
- run_intelligence schedules persistence unless disabled
- Planning service validation and round trip
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from datetime import date

import pytest

from app.config import EngineSettings
from app.domain.errors import RequiredSourceError, UnknownPlanningMetricError
from app.domain.metrics import Period
from app.providers.memory import InMemoryInsightSink, PeriodPayload, build_memory_backends, window_key
from app.services.alert_service import compute_alerts
from app.services.intelligence_service import build_context, run_intelligence
from app.services.persistence import drain_pending
from app.services.planning_service import get_month_plan, get_year_plan, save_month_plan
from planning import cascade

TENANT = "t1"
PERIOD = Period(start=date(2026, 3, 1), end=date(2026, 3, 15))
PREVIOUS = Period(start=date(2026, 2, 14), end=date(2026, 2, 28))


def _windows() -> dict:
    current = PeriodPayload(
        account={"costBRL": 1260.21, "conversionValue": 6000, "clicks": 800, "conversions": 20},
        skus=[{"sku": "A", "spend": 93.33, "conversions": 0, "clicks": 40}],
        campaigns=[{"campaignId": "c1", "campaignName": "Brand", "cost": 500, "conversionValue": 3000, "conversions": 10}],
        daily=[
            {"date": "2026-03-01", "spend": 90, "revenue": 500, "conversions": 2},
            {"date": "2026-03-02", "spend": 80, "revenue": 420, "conversions": 2},
        ],
        web_summary={"sessions": 4000, "users": 3000, "purchases": 20, "purchaseRevenue": 6000, "bounceRate": 48},
        channels=[{"channel": "Paid Search", "sessions": 2500}, {"channel": "Organic Search", "sessions": 1500}],
        retention={"totalUsers": 3000, "returningUsers": 600},
        funnel=[{"step": "add_to_cart", "count": 200}, {"step": "purchase", "count": 20}],
    )
    previous = PeriodPayload(
        account={"spend": 1223.50, "revenue": 9053, "clicks": 800, "conversions": 20},
        skus=[{"sku": "A", "spend": 80, "revenue": 400, "conversions": 1.5}],
    )
    return {window_key(TENANT, PERIOD): current, window_key(TENANT, PREVIOUS): previous}


def _events(caplog: pytest.LogCaptureFixture) -> list[dict]:
    events = []
    for record in caplog.records:
        try:
            events.append(json.loads(record.getMessage()))
        except ValueError:
            continue
    return events


# ---------------------------------------------------------------------------
# build_context
# ---------------------------------------------------------------------------


class TestBuildContext:
    def test_full_context(self) -> None:
        backends = build_memory_backends(_windows(), extras={TENANT: {"A": {"marginPct": 40, "stock": 12}}})
        context = asyncio.run(build_context(backends, TENANT, PERIOD))

        assert context.account.roas == 4.76
        assert context.previous.account.roas == 7.4
        assert context.skus[0].margin_pct == 40.0
        assert context.previous.skus[0].stock == 12.0
        assert [d.day.day for d in context.daily_series] == [1, 2]
        assert context.retention.return_rate == 20.0
        assert len(context.channels) == 2

    def test_cart_abandonment_from_funnel(self) -> None:
        context = asyncio.run(build_context(build_memory_backends(_windows()), TENANT, PERIOD))
        assert context.web.cart_abandonment_rate == 90.0

    def test_planning_is_cascaded(self) -> None:
        backends = build_memory_backends(_windows())
        asyncio.run(
            backends.planning_store.save_month(
                TENANT, 2026, 3, {cascade.CAPTURED_REVENUE: 150000, cascade.TOTAL_INVESTMENT: 20000}
            )
        )
        context = asyncio.run(build_context(backends, TENANT, PERIOD))
        assert context.planning[cascade.CAPTURED_ROAS] == 7.5

    @pytest.mark.parametrize("source", ["campaigns", "web_summary", "channels", "retention", "funnel", "sku_extras"])
    def test_optional_failure_degrades(self, source: str, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="app.services.intelligence_service")
        backends = build_memory_backends(_windows(), failing={source})

        context = asyncio.run(build_context(backends, TENANT, PERIOD))

        assert context.account is not None
        failed = [e for e in _events(caplog) if e["event"] == "fetch.optional_failed"]
        assert failed and failed[0]["source"] == source

    @pytest.mark.parametrize(
        ("field_name", "bad_value", "source"),
        [
            ("retention", 42, "retention"),
            ("channels", [3], "channels"),
            ("web_summary", 7, "web_summary"),
            ("funnel", [None], "funnel"),
            ("daily", [5], "daily_series"),
        ],
    )
    def test_malformed_optional_payload_degrades(
        self, field_name: str, bad_value: object, source: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.WARNING, logger="app.services.intelligence_service")
        windows = _windows()
        current = windows[window_key(TENANT, PERIOD)]
        windows[window_key(TENANT, PERIOD)] = dataclasses.replace(current, **{field_name: bad_value})

        context = asyncio.run(build_context(build_memory_backends(windows), TENANT, PERIOD))

        assert context.account.roas == 4.76
        failed = [e for e in _events(caplog) if e["event"] == "normalize.optional_failed"]
        assert [e["source"] for e in failed] == [source]
        assert failed[0]["error_type"] == "TypeError"

    def test_malformed_payload_falls_back_to_default(self) -> None:
        windows = _windows()
        current = windows[window_key(TENANT, PERIOD)]
        windows[window_key(TENANT, PERIOD)] = dataclasses.replace(current, retention=42, funnel=[None])

        context = asyncio.run(build_context(build_memory_backends(windows), TENANT, PERIOD))

        assert context.retention is None
        # The summary survives; only the funnel-derived fill is skipped.
        assert context.web is not None
        assert context.web.cart_abandonment_rate == 0.0

    def test_malformed_sku_extras_use_catalog_defaults(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="app.services.intelligence_service")
        backends = build_memory_backends(_windows(), extras={TENANT: {"A": 5}})

        context = asyncio.run(build_context(backends, TENANT, PERIOD))

        assert context.skus[0].margin_pct == 30.0
        assert [e["source"] for e in _events(caplog) if e["event"] == "normalize.optional_failed"] == [
            "sku_extras"
        ]

    def test_campaign_failure_empties_both_windows(self) -> None:
        backends = build_memory_backends(_windows(), failing={"campaigns"})
        context = asyncio.run(build_context(backends, TENANT, PERIOD))
        assert context.campaigns == ()
        assert context.previous.campaigns == ()

    @pytest.mark.parametrize("source", ["account", "skus"])
    def test_required_failure(self, source: str) -> None:
        backends = build_memory_backends(_windows(), failing={source})
        with pytest.raises(RequiredSourceError) as exc_info:
            asyncio.run(build_context(backends, TENANT, PERIOD))
        assert exc_info.value.source == source

    def test_missing_account_data(self) -> None:
        backends = build_memory_backends({})
        with pytest.raises(RequiredSourceError):
            asyncio.run(build_context(backends, TENANT, PERIOD))

    def test_missing_account_allowed_for_alerts(self) -> None:
        context = asyncio.run(build_context(build_memory_backends({}), TENANT, PERIOD, require_account=False))
        assert context.account is None


# ---------------------------------------------------------------------------
# run_intelligence / compute_alerts
# ---------------------------------------------------------------------------


class TestRunIntelligence:
    def test_persists_in_background(self) -> None:
        sink = InMemoryInsightSink()
        backends = build_memory_backends(_windows(), sink=sink)

        async def scenario():
            result = await run_intelligence(backends, TENANT, PERIOD, settings=EngineSettings())
            await drain_pending()
            return result

        result = asyncio.run(scenario())
        assert len(sink.insights) == len(result.insights)
        assert (TENANT, PERIOD.end, "account") in sink.snapshots

    def test_persistence_disabled(self) -> None:
        sink = InMemoryInsightSink()
        backends = build_memory_backends(_windows(), sink=sink)

        async def scenario():
            await run_intelligence(backends, TENANT, PERIOD, settings=EngineSettings(persistence_enabled=False))
            await drain_pending()

        asyncio.run(scenario())
        assert sink.insights == []
        assert sink.snapshots == {}

    def test_sink_failure_does_not_affect_result(self) -> None:
        backends = build_memory_backends(_windows(), sink=InMemoryInsightSink(fail_with=RuntimeError("db down")))

        async def scenario():
            result = await run_intelligence(backends, TENANT, PERIOD, settings=EngineSettings())
            await drain_pending()
            return result

        result = asyncio.run(scenario())
        assert 0.0 <= result.health_score <= 100.0

    def test_alerts_include_scenarios(self) -> None:
        payload = asyncio.run(compute_alerts(build_memory_backends(_windows()), TENANT, PERIOD))
        ids = [alert["id"] for alert in payload["alerts"]]
        assert "acct-roas-drop" in ids
        assert "sku-A-zero-conv" in ids
        assert payload["summary"]["total"] == len(ids)
        assert payload["period"]["start"] == "2026-03-01"

    def test_alerts_without_account(self) -> None:
        payload = asyncio.run(compute_alerts(build_memory_backends({}), TENANT, PERIOD))
        assert payload["alerts"] == []
        assert payload["summary"]["total"] == 0


# ---------------------------------------------------------------------------
# Planning service
# ---------------------------------------------------------------------------


class TestPlanningService:
    def test_save_and_read_month(self) -> None:
        store = build_memory_backends().planning_store
        payload = asyncio.run(
            save_month_plan(store, TENANT, 2026, 3, {cascade.CAPTURED_REVENUE: 150000, cascade.TOTAL_INVESTMENT: 20000})
        )
        assert payload["stored"] == {cascade.CAPTURED_REVENUE: 150000.0, cascade.TOTAL_INVESTMENT: 20000.0}
        assert payload["metrics"][cascade.CAPTURED_ROAS] == 7.5
        assert cascade.BILLED_REVENUE not in payload["metrics"]

    def test_unknown_metric(self) -> None:
        store = build_memory_backends().planning_store
        with pytest.raises(UnknownPlanningMetricError):
            asyncio.run(save_month_plan(store, TENANT, 2026, 3, {"bogus": 1.0}))

    def test_invalid_month(self) -> None:
        store = build_memory_backends().planning_store
        with pytest.raises(ValueError):
            asyncio.run(get_month_plan(store, TENANT, 2026, 13))

    def test_year(self) -> None:
        store = build_memory_backends().planning_store
        asyncio.run(save_month_plan(store, TENANT, 2026, 1, {cascade.TOTAL_INVESTMENT: 1000}))
        asyncio.run(save_month_plan(store, TENANT, 2026, 2, {cascade.TOTAL_INVESTMENT: 3000}))

        payload = asyncio.run(get_year_plan(store, TENANT, 2026))

        assert sorted(payload["months"], key=int) == [str(m) for m in range(1, 13)]
        assert payload["totals"][cascade.TOTAL_INVESTMENT] == 4000.0
        assert payload["average"][cascade.TOTAL_INVESTMENT] == 2000.0
