"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.action_log import ActionLog
from db.models.insight import InsightRecord
from db.models.metric_snapshot import MetricSnapshot
from db.models.planning_entry import PlanningEntry

__all__ = [
    "ActionLog",
    "InsightRecord",
    "MetricSnapshot",
    "PlanningEntry",
]
