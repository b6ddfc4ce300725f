"""
db/models/metric_snapshot.py

Daily metric snapshot per tenant and scope.

``scope`` is ``"account"`` or ``"sku:<sku>"``. Re-running the analysis for
the same day overwrites ``metrics`` in place.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import Date, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

UPSERT_CONSTRAINT = "uq_metric_snapshots_tenant_date_scope"


class MetricSnapshot(Base, TimestampMixin):
    __tablename__ = "metric_snapshots"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)
    scope: Mapped[str] = mapped_column(String(160), nullable=False)
    metrics: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "snapshot_date", "scope", name=UPSERT_CONSTRAINT),
        Index("ix_metric_snapshots_tenant_scope_date", "tenant_id", "scope", "snapshot_date"),
    )
