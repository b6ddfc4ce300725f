"""
app/providers/sql.py

PostgreSQL-backed planning store and insight sink.

Each call opens its own session in a worker thread, commits on success and
rolls back on failure. SQLAlchemy errors surface as
:class:`~app.domain.errors.PersistenceError`.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Mapping, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.errors import PersistenceError
from app.domain.metrics import AccountMetrics, Period, SkuMetrics
from app.providers.base import InsightSink, PlanningStore
from db.repositories.insight_repository import InsightRepository
from db.repositories.planning_repository import PlanningRepository
from db.repositories.snapshot_repository import (
    ACCOUNT_SCOPE,
    SnapshotRepository,
    account_snapshot,
    sku_scope,
    sku_snapshot,
)
from db.session import SessionLocal
from intelligence.types import Insight

logger = logging.getLogger(__name__)

T = TypeVar("T")
SessionFactory = Callable[[], Session]


class _SessionRunner:
    def __init__(self, session_factory: SessionFactory = SessionLocal) -> None:
        self._session_factory = session_factory

    def _run_sync(self, operation: str, work: Callable[[Session], T]) -> T:
        session = self._session_factory()
        try:
            result = work(session)
            session.commit()
            return result
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Database operation failed operation=%s error=%s", operation, exc)
            raise PersistenceError(f"{operation} failed") from exc
        finally:
            session.close()

    async def _run(self, operation: str, work: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._run_sync, operation, work)


class SqlPlanningStore(_SessionRunner, PlanningStore):
    async def load_month(self, tenant_id: str, year: int, month: int, plan_type: str = "target") -> dict[str, float]:
        return await self._run(
            "planning.load_month",
            lambda session: PlanningRepository(session).get_month(
                tenant_id=tenant_id, year=year, month=month, plan_type=plan_type
            ),
        )

    async def load_year(self, tenant_id: str, year: int, plan_type: str = "target") -> dict[int, dict[str, float]]:
        return await self._run(
            "planning.load_year",
            lambda session: PlanningRepository(session).get_year(
                tenant_id=tenant_id, year=year, plan_type=plan_type
            ),
        )

    async def save_month(
        self,
        tenant_id: str,
        year: int,
        month: int,
        values: Mapping[str, float],
        *,
        plan_type: str = "target",
        source: str = "manual",
    ) -> None:
        await self._run(
            "planning.save_month",
            lambda session: PlanningRepository(session).upsert_month(
                tenant_id=tenant_id,
                year=year,
                month=month,
                values=values,
                plan_type=plan_type,
                source=source,
            ),
        )


class SqlInsightSink(_SessionRunner, InsightSink):
    async def append_insights(self, tenant_id: str, period: Period, insights: Sequence[Insight]) -> int:
        if not insights:
            return 0
        return await self._run(
            "insights.append",
            lambda session: InsightRepository(session).add_insights(
                tenant_id=tenant_id,
                period_start=period.start,
                period_end=period.end,
                insights=insights,
            ),
        )

    async def append_daily_snapshot(
        self,
        tenant_id: str,
        day: date,
        account: AccountMetrics,
        skus: Sequence[SkuMetrics],
    ) -> int:
        scoped: list[tuple[str, dict[str, Any]]] = [(ACCOUNT_SCOPE, account_snapshot(account))]
        scoped.extend((sku_scope(sku.sku), sku_snapshot(sku)) for sku in skus)
        return await self._run(
            "snapshots.upsert",
            lambda session: SnapshotRepository(session).upsert_snapshots(
                tenant_id=tenant_id,
                snapshot_date=day,
                scoped=scoped,
            ),
        )

    async def log_action(
        self,
        tenant_id: str,
        action: str,
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        await self._run(
            "action_logs.append",
            lambda session: InsightRepository(session).add_action(
                tenant_id=tenant_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                payload=payload,
            ),
        )
