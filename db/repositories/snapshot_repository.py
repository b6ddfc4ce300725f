"""
db/repositories/snapshot_repository.py

Upserts for daily metric snapshots.

The caller controls commit/rollback; this repository never commits.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any, Sequence

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.metrics import AccountMetrics, SkuMetrics
from db.models.metric_snapshot import UPSERT_CONSTRAINT, MetricSnapshot

ACCOUNT_SCOPE = "account"


def sku_scope(sku: str) -> str:
    return f"sku:{sku}"


def account_snapshot(account: AccountMetrics) -> dict[str, Any]:
    return {
        "spend": account.spend,
        "revenue": account.revenue,
        "impressions": account.impressions,
        "clicks": account.clicks,
        "conversions": account.conversions,
        "roas": account.roas,
        "cpa": account.cpa,
        "ctr": account.ctr,
    }


def sku_snapshot(sku: SkuMetrics) -> dict[str, Any]:
    return {
        "name": sku.name,
        "spend": sku.spend,
        "revenue": sku.revenue,
        "conversions": sku.conversions,
        "roas": sku.roas,
        "cpa": sku.cpa,
        "margin_pct": sku.margin_pct,
        "stock": sku.stock,
        "status": sku.status,
    }


class SnapshotRepository:
    """
    Upsert semantics: a row whose ``(tenant_id, snapshot_date, scope)``
    already exists has its ``metrics`` replaced.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert_snapshots(
        self,
        *,
        tenant_id: str,
        snapshot_date: date,
        scoped: Sequence[tuple[str, dict[str, Any]]],
    ) -> int:
        if not scoped:
            return 0

        # Last occurrence of a scope wins; Postgres rejects one statement
        # touching the same conflict key twice.
        deduped = dict(scoped)
        payloads = [
            {
                "id": uuid.uuid4(),
                "tenant_id": tenant_id,
                "snapshot_date": snapshot_date,
                "scope": scope,
                "metrics": metrics,
            }
            for scope, metrics in deduped.items()
        ]
        stmt = insert(MetricSnapshot).values(payloads)
        stmt = stmt.on_conflict_do_update(
            constraint=UPSERT_CONSTRAINT,
            set_={
                "metrics": stmt.excluded.metrics,
                "updated_at": datetime.now(timezone.utc),
            },
        ).returning(MetricSnapshot.id)
        return len(self._session.scalars(stmt).all())

