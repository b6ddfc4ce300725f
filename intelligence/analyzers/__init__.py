"""
intelligence/analyzers

Registry of the insight analyzers run by the cognitive engine, in the
order their output is concatenated.
"""

from __future__ import annotations

from intelligence.analyzers.composition import CompositionAnalyzer
from intelligence.analyzers.efficiency import EfficiencyAnalyzer
from intelligence.analyzers.opportunity import OpportunityAnalyzer
from intelligence.analyzers.planning_gap import PlanningGapAnalyzer
from intelligence.analyzers.risk import RiskAnalyzer
from intelligence.base import BaseAnalyzer

ANALYZERS: tuple[BaseAnalyzer, ...] = (
    PlanningGapAnalyzer(),
    EfficiencyAnalyzer(),
    OpportunityAnalyzer(),
    RiskAnalyzer(),
    CompositionAnalyzer(),
)

__all__ = [
    "ANALYZERS",
    "CompositionAnalyzer",
    "EfficiencyAnalyzer",
    "OpportunityAnalyzer",
    "PlanningGapAnalyzer",
    "RiskAnalyzer",
]
