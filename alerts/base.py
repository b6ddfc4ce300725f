"""
alerts/base.py

Abstract base class for per-scope alert rule engines, plus the helpers
they share.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from alerts.types import SmartAlert
from app.domain.metrics import DailyMetrics, PeriodSnapshot, RetentionSummary


@dataclass(frozen=True)
class AlertInputs:
    """
    Everything a rule engine may read. Rule engines must not mutate it.
    """

    current: PeriodSnapshot
    previous: PeriodSnapshot
    daily_series: tuple[DailyMetrics, ...] = ()
    retention: RetentionSummary | None = None


class BaseAlertRules(ABC):
    """
    Contract for one alert scope.

    Implementations are stateless and deterministic: identical inputs yield
    an identical list in an identical order. No I/O, no logging, and no
    side effects are permitted inside :meth:`evaluate`.
    """

    scope: str

    @abstractmethod
    def evaluate(self, inputs: AlertInputs) -> list[SmartAlert]:
        """
        Return the alerts raised for this scope, in emission order.
        """


def band(value: float, bands: list[tuple[float, str]]) -> str | None:
    """
    Return the label of the first ``(threshold, label)`` pair with
    ``value <= threshold``, or ``None``.

    Bands for declines are listed from most to least severe, e.g.
    ``[(-20.0, "danger"), (-10.0, "warn")]``.
    """
    for threshold, label in bands:
        if value <= threshold:
            return label
    return None


def band_at_least(value: float, bands: list[tuple[float, str]]) -> str | None:
    """
    Mirror of :func:`band` for increases: first pair with ``value >= threshold``.
    """
    for threshold, label in bands:
        if value >= threshold:
            return label
    return None


def round_delta(value: float) -> float:
    return round(value, 1)


def fmt_pct(value: float) -> str:
    return f"{abs(value):.1f}%"


def fmt_money(value: float) -> str:
    return f"{value:,.2f}"
