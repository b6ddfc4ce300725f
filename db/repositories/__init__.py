"""
Repository layer exports.
"""

from db.repositories.insight_repository import InsightRepository
from db.repositories.planning_repository import PlanningRepository
from db.repositories.snapshot_repository import SnapshotRepository

__all__ = [
    "InsightRepository",
    "PlanningRepository",
    "SnapshotRepository",
]
