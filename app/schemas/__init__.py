"""
app/schemas package marker.
"""

from app.schemas.alerts import AlertsResponse, AlertSummary
from app.schemas.intelligence import IntelligenceResponse, NarrativeRequest, NarrativeResponse
from app.schemas.planning import PlanningMonthRequest, PlanningMonthResponse, PlanningYearResponse

__all__ = [
    "AlertSummary",
    "AlertsResponse",
    "IntelligenceResponse",
    "NarrativeRequest",
    "NarrativeResponse",
    "PlanningMonthRequest",
    "PlanningMonthResponse",
    "PlanningYearResponse",
]
