"""
db/repositories/planning_repository.py

Persistence for sparse monthly planning values.

The caller controls commit/rollback; this repository never commits.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Mapping

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.planning_entry import UPSERT_CONSTRAINT, PlanningEntry


class PlanningRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert_month(
        self,
        *,
        tenant_id: str,
        year: int,
        month: int,
        values: Mapping[str, float],
        plan_type: str,
        source: str,
    ) -> int:
        """
        Insert or overwrite one row per metric in *values*.

        Returns
        -------
        int
            Number of rows written (inserted + updated).
        """
        if not values:
            return 0

        payloads = [
            {
                "id": uuid.uuid4(),
                "tenant_id": tenant_id,
                "year": year,
                "month": month,
                "metric": metric,
                "value": float(value),
                "source": source,
                "plan_type": plan_type,
            }
            for metric, value in values.items()
        ]
        stmt = insert(PlanningEntry).values(payloads)
        stmt = stmt.on_conflict_do_update(
            constraint=UPSERT_CONSTRAINT,
            set_={
                "value": stmt.excluded.value,
                "source": stmt.excluded.source,
                "updated_at": datetime.now(timezone.utc),
            },
        ).returning(PlanningEntry.id)
        return len(self._session.scalars(stmt).all())

    def get_month(self, *, tenant_id: str, year: int, month: int, plan_type: str) -> dict[str, float]:
        stmt = select(PlanningEntry.metric, PlanningEntry.value).where(
            PlanningEntry.tenant_id == tenant_id,
            PlanningEntry.year == year,
            PlanningEntry.month == month,
            PlanningEntry.plan_type == plan_type,
        )
        return {metric: float(value) for metric, value in self._session.execute(stmt).all()}

    def get_year(self, *, tenant_id: str, year: int, plan_type: str) -> dict[int, dict[str, float]]:
        stmt = (
            select(PlanningEntry.month, PlanningEntry.metric, PlanningEntry.value)
            .where(
                PlanningEntry.tenant_id == tenant_id,
                PlanningEntry.year == year,
                PlanningEntry.plan_type == plan_type,
            )
            .order_by(PlanningEntry.month, PlanningEntry.metric)
        )
        year_data: dict[int, dict[str, float]] = {}
        for month, metric, value in self._session.execute(stmt).all():
            year_data.setdefault(int(month), {})[metric] = float(value)
        return year_data
