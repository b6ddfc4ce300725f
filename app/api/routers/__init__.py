"""
app/api/routers package marker.
"""

from app.api.routers.alerts_router import router as alerts_router
from app.api.routers.intelligence_router import router as intelligence_router
from app.api.routers.planning_router import router as planning_router

__all__ = [
    "alerts_router",
    "intelligence_router",
    "planning_router",
]
