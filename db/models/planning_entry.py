"""
db/models/planning_entry.py

One planned metric value for one tenant month.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Float, Index, SmallInteger, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

UPSERT_CONSTRAINT = "uq_planning_entries_tenant_month_metric"


class PlanningEntry(Base, TimestampMixin):
    """
    Sparse key/value storage: only metrics the user entered are stored, the
    cascade derives the rest on read.
    """

    __tablename__ = "planning_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    metric: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="manual")
    plan_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="target",
        comment="Only 'target' is read by the engine",
    )

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "year",
            "month",
            "metric",
            "plan_type",
            name=UPSERT_CONSTRAINT,
        ),
        Index("ix_planning_entries_tenant_year", "tenant_id", "year"),
    )
