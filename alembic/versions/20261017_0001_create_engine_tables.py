"""create planning, insight, snapshot and action log tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "planning_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("year", sa.SmallInteger(), nullable=False),
        sa.Column("month", sa.SmallInteger(), nullable=False),
        sa.Column("metric", sa.String(length=64), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("plan_type", sa.String(length=16), nullable=False,
                  comment="Only 'target' is read by the engine"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id", name="pk_planning_entries"),
        sa.UniqueConstraint(
            "tenant_id",
            "year",
            "month",
            "metric",
            "plan_type",
            name="uq_planning_entries_tenant_month_metric",
        ),
    )
    op.create_index("ix_planning_entries_tenant_year", "planning_entries", ["tenant_id", "year"])

    op.create_table(
        "insights",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("insight_key", sa.String(length=128), nullable=False,
                  comment="Engine insight id, e.g. 'pg-roas' or 'alert-sku-zero-conv-123'"),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("metrics", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("recommendations", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("financial_impact", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_insights"),
    )
    op.create_index("ix_insights_tenant_period", "insights", ["tenant_id", "period_start", "period_end"])
    op.create_index(
        "ix_insights_tenant_severity_created_at",
        "insights",
        ["tenant_id", "severity", "created_at"],
    )

    op.create_table(
        "metric_snapshots",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("scope", sa.String(length=160), nullable=False),
        sa.Column("metrics", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id", name="pk_metric_snapshots"),
        sa.UniqueConstraint(
            "tenant_id",
            "snapshot_date",
            "scope",
            name="uq_metric_snapshots_tenant_date_scope",
        ),
    )
    op.create_index(
        "ix_metric_snapshots_tenant_scope_date",
        "metric_snapshots",
        ["tenant_id", "scope", "snapshot_date"],
    )

    op.create_table(
        "action_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=True),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_action_logs"),
    )
    op.create_index("ix_action_logs_tenant_created_at", "action_logs", ["tenant_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_action_logs_tenant_created_at", table_name="action_logs")
    op.drop_table("action_logs")
    op.drop_index("ix_metric_snapshots_tenant_scope_date", table_name="metric_snapshots")
    op.drop_table("metric_snapshots")
    op.drop_index("ix_insights_tenant_severity_created_at", table_name="insights")
    op.drop_index("ix_insights_tenant_period", table_name="insights")
    op.drop_table("insights")
    op.drop_index("ix_planning_entries_tenant_year", table_name="planning_entries")
    op.drop_table("planning_entries")
