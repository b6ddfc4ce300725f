"""
tests/test_persistence.py

Pytest unit tests for fire-and-forget result persistence.

Coverage
--------
- Insights and snapshots are written for the period end date
- SKU snapshots are capped, ordered by spend and batched
- A failing sink is logged and never raises
- No account means no snapshots
- schedule_persistence runs detached; drain_pending waits for it
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import Sequence

import pytest

from app.config import EngineSettings
from app.domain.errors import PersistenceError
from app.domain.metrics import AccountMetrics, AnalysisContext, Period, SkuMetrics
from app.providers.memory import InMemoryInsightSink
from app.services.persistence import drain_pending, persist_result, schedule_persistence
from intelligence.engine import analyze

PERIOD = Period(start=date(2026, 3, 1), end=date(2026, 3, 15))


class RecordingSink(InMemoryInsightSink):
    def __init__(self, fail_with: Exception | None = None) -> None:
        super().__init__(fail_with)
        self.batches: list[list[str]] = []

    async def append_daily_snapshot(
        self,
        tenant_id: str,
        day: date,
        account: AccountMetrics,
        skus: Sequence[SkuMetrics],
    ) -> int:
        self.batches.append([sku.sku for sku in skus])
        return await super().append_daily_snapshot(tenant_id, day, account, skus)


@pytest.fixture()
def context() -> AnalysisContext:
    return AnalysisContext(
        tenant_id="t1",
        period=PERIOD,
        account=AccountMetrics.build(spend=2000, revenue=6000, conversions=40, clicks=2000),
        skus=tuple(
            SkuMetrics.build(sku=f"S{i}", spend=100 * i, revenue=500 * i, conversions=i) for i in range(1, 6)
        ),
    )


def _events(caplog: pytest.LogCaptureFixture) -> list[dict]:
    events = []
    for record in caplog.records:
        try:
            events.append(json.loads(record.getMessage()))
        except ValueError:
            continue
    return events


# ---------------------------------------------------------------------------
# persist_result
# ---------------------------------------------------------------------------


class TestPersistResult:
    def test_writes_insights_and_snapshots(self, context: AnalysisContext) -> None:
        sink = RecordingSink()
        result = analyze(context)

        asyncio.run(persist_result(sink, context, result, EngineSettings()))

        assert len(sink.insights) == len(result.insights)
        assert ("t1", PERIOD.end, "account") in sink.snapshots
        assert ("t1", PERIOD.end, "sku:S5") in sink.snapshots

    def test_caps_and_batches_by_spend(self, context: AnalysisContext) -> None:
        sink = RecordingSink()
        settings = EngineSettings(snapshot_sku_limit=3, snapshot_batch_size=2)

        asyncio.run(persist_result(sink, context, analyze(context), settings))

        assert sink.batches == [["S5", "S4"], ["S3"]]
        assert ("t1", PERIOD.end, "sku:S1") not in sink.snapshots

    def test_account_without_skus(self, context: AnalysisContext) -> None:
        sink = RecordingSink()
        bare = AnalysisContext(tenant_id="t1", period=PERIOD, account=context.account)

        asyncio.run(persist_result(sink, bare, analyze(bare), EngineSettings()))

        assert sink.batches == [[]]
        assert ("t1", PERIOD.end, "account") in sink.snapshots

    def test_failure_is_logged_not_raised(
        self, context: AnalysisContext, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.INFO, logger="app.services.persistence")
        sink = RecordingSink(fail_with=PersistenceError("insights.append failed"))

        asyncio.run(persist_result(sink, context, analyze(context), EngineSettings()))

        events = [e["event"] for e in _events(caplog)]
        assert "persistence.failed" in events
        assert "persistence.completed" not in events

    def test_success_is_logged(self, context: AnalysisContext, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="app.services.persistence")
        asyncio.run(persist_result(RecordingSink(), context, analyze(context), EngineSettings()))
        completed = [e for e in _events(caplog) if e["event"] == "persistence.completed"]
        assert len(completed) == 1
        assert completed[0]["tenant_id"] == "t1"


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


class TestSchedulePersistence:
    def test_detached_task_completes(self, context: AnalysisContext) -> None:
        sink = RecordingSink()
        result = analyze(context)

        async def scenario() -> bool:
            task = schedule_persistence(sink, context, result, EngineSettings())
            await drain_pending()
            return task.done()

        assert asyncio.run(scenario()) is True
        assert sink.batches

    def test_drain_with_nothing_pending(self) -> None:
        asyncio.run(drain_pending())
