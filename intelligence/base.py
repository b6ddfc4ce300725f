"""
intelligence/base.py

Abstract base class for insight analyzers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.metrics import AnalysisContext
from intelligence.types import Insight, InsightCategory


class BaseAnalyzer(ABC):
    """
    Contract for one insight analyzer.

    Subclasses read an :class:`AnalysisContext` and return zero or more
    :class:`Insight` records. An analyzer whose inputs are absent returns an
    empty list rather than raising.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`analyze`.
    """

    category: InsightCategory

    @abstractmethod
    def analyze(self, context: AnalysisContext) -> list[Insight]:
        """
        Produce insights for *context*.

        Parameters
        ----------
        context:
            Aggregated metrics for one tenant and period. Optional sources
            (web analytics, channels, retention, planning) may be empty.

        Returns
        -------
        list[Insight]
            Insights in emission order; the engine handles sorting and caps.
        """
