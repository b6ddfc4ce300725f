"""
db/repositories/insight_repository.py

Append-only writes for engine insights and the action audit log.

The caller controls commit/rollback; this repository never commits.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Mapping, Sequence

from sqlalchemy.orm import Session

from db.models.action_log import ActionLog
from db.models.insight import InsightRecord
from intelligence.types import Insight


def insight_to_record(tenant_id: str, period_start: date, period_end: date, insight: Insight) -> InsightRecord:
    return InsightRecord(
        tenant_id=tenant_id,
        period_start=period_start,
        period_end=period_end,
        insight_key=insight.id,
        category=insight.category,
        severity=insight.severity,
        title=insight.title[:255],
        description=insight.description,
        source=insight.source,
        metrics=dict(insight.metrics),
        recommendations=[asdict(rec) for rec in insight.recommendations],
        financial_impact=asdict(insight.financial_impact),
    )


class InsightRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add_insights(
        self,
        *,
        tenant_id: str,
        period_start: date,
        period_end: date,
        insights: Sequence[Insight],
    ) -> int:
        records = [insight_to_record(tenant_id, period_start, period_end, insight) for insight in insights]
        self._session.add_all(records)
        self._session.flush()
        return len(records)

    def add_action(
        self,
        *,
        tenant_id: str,
        action: str,
        entity_type: str | None,
        entity_id: str | None,
        payload: Mapping[str, Any] | None,
    ) -> ActionLog:
        row = ActionLog(
            tenant_id=tenant_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=dict(payload or {}),
        )
        self._session.add(row)
        self._session.flush()
        return row
