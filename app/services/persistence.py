"""
app/services/persistence.py

Fire-and-forget storage of insights and daily metric snapshots.

The request path calls :func:`schedule_persistence` and returns without
awaiting it. Writes happen in a detached asyncio task; any failure is logged
and dropped. Nothing is retried, and no ordering is guaranteed relative to
the HTTP response.
"""

from __future__ import annotations

import asyncio
import logging

from app.config import EngineSettings
from app.domain.metrics import AnalysisContext
from app.logging_utils import log_event
from app.providers.base import InsightSink
from intelligence.types import IntelligenceResult

logger = logging.getLogger(__name__)

# Strong references so pending tasks are not garbage collected mid-flight.
_PENDING: set[asyncio.Task[None]] = set()


async def persist_result(
    sink: InsightSink,
    context: AnalysisContext,
    result: IntelligenceResult,
    settings: EngineSettings,
) -> None:
    """
    Write *result* to *sink*. Never raises.

    Insights are appended first. Then one snapshot for the account and one
    per SKU (highest spend first, capped at ``settings.snapshot_sku_limit``)
    are upserted for ``period.end``, in batches of
    ``settings.snapshot_batch_size``.
    """
    tenant_id = context.tenant_id
    period = context.period
    try:
        written = await sink.append_insights(tenant_id, period, result.insights)

        snapshots = 0
        if context.account is not None:
            skus = sorted(context.skus, key=lambda sku: sku.spend, reverse=True)
            skus = skus[: settings.snapshot_sku_limit]
            batch_size = max(1, settings.snapshot_batch_size)
            batches = [skus[start : start + batch_size] for start in range(0, len(skus), batch_size)] or [[]]
            # The account row is upserted with every batch.
            for batch in batches:
                snapshots += await sink.append_daily_snapshot(tenant_id, period.end, context.account, batch)
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            logging.WARNING,
            "persistence.failed",
            tenant_id=tenant_id,
            period_start=period.start,
            period_end=period.end,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return

    log_event(
        logger,
        logging.INFO,
        "persistence.completed",
        tenant_id=tenant_id,
        period_start=period.start,
        period_end=period.end,
        insights=written,
        snapshots=snapshots,
    )


def schedule_persistence(
    sink: InsightSink,
    context: AnalysisContext,
    result: IntelligenceResult,
    settings: EngineSettings,
) -> asyncio.Task[None]:
    """
    Start :func:`persist_result` as a detached task on the running loop.
    """
    task = asyncio.get_running_loop().create_task(persist_result(sink, context, result, settings))
    _PENDING.add(task)
    task.add_done_callback(_PENDING.discard)
    return task


async def drain_pending(timeout_seconds: float = 5.0) -> None:
    """
    Wait briefly for in-flight persistence tasks, e.g. at shutdown.
    """
    if not _PENDING:
        return
    _, pending = await asyncio.wait(set(_PENDING), timeout=timeout_seconds)
    if pending:
        logger.warning("Abandoning %d unfinished persistence task(s) at shutdown", len(pending))
