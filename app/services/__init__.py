"""
app/services package marker.
"""

from app.services.alert_service import compute_alerts
from app.services.intelligence_service import build_context, run_intelligence
from app.services.narrative_service import NarrativeResult, generate_narrative
from app.services.persistence import persist_result, schedule_persistence
from app.services.planning_service import get_month_plan, get_year_plan, save_month_plan

__all__ = [
    "NarrativeResult",
    "build_context",
    "compute_alerts",
    "generate_narrative",
    "get_month_plan",
    "get_year_plan",
    "persist_result",
    "run_intelligence",
    "save_month_plan",
    "schedule_persistence",
]
