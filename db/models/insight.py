"""
db/models/insight.py

Append-only history of engine insights.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import Date, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin


class InsightRecord(Base, CreatedAtMixin):
    __tablename__ = "insights"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    insight_key: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Engine insight id, e.g. 'pg-roas' or 'alert-sku-zero-conv-123'",
    )
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False)

    metrics: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    recommendations: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    financial_impact: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    __table_args__ = (
        Index("ix_insights_tenant_period", "tenant_id", "period_start", "period_end"),
        Index("ix_insights_tenant_severity_created_at", "tenant_id", "severity", "created_at"),
    )
