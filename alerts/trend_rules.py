"""
alerts/trend_rules.py

Intra-period trend alerts from the current daily series.

These are the only alerts driven by the shape of the series rather than a
period-over-period delta. For each watched metric the series is scanned for
a run of consecutive day-over-day moves in one direction; the first time
the run reaches its minimum length one alert is emitted and the scan for
that metric stops.

A day whose ratio is undefined (zero denominator) breaks the run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from alerts.base import AlertInputs, BaseAlertRules, round_delta
from alerts.types import SEVERITY_DANGER, SEVERITY_WARN, Severity, SmartAlert
from app.domain.metrics import DailyMetrics
from kpi.ratios import pct_delta, round2

MIN_SERIES_LENGTH: int = 3


def _daily_roas(day: DailyMetrics) -> float | None:
    return day.revenue / day.spend if day.spend > 0 else None


def _daily_cpa(day: DailyMetrics) -> float | None:
    return day.spend / day.conversions if day.conversions > 0 else None


def _daily_revenue(day: DailyMetrics) -> float | None:
    return day.revenue


@dataclass(frozen=True)
class TrendWatch:
    """
    One watched metric: how to read it, which direction is bad, and how
    many consecutive bad moves trigger an alert.
    """

    alert_id: str
    metric: str
    label: str
    extract: Callable[[DailyMetrics], float | None]
    declining: bool
    min_run: int
    severity: Severity
    recommendation: str


TREND_WATCHES: tuple[TrendWatch, ...] = (
    TrendWatch(
        alert_id="trend-roas-decline",
        metric="roas",
        label="ROAS declining",
        extract=_daily_roas,
        declining=True,
        min_run=3,
        severity=SEVERITY_WARN,
        recommendation="Review campaigns and SKUs before the decline deepens",
    ),
    TrendWatch(
        alert_id="trend-cpa-rise",
        metric="cpa",
        label="CPA rising",
        extract=_daily_cpa,
        declining=False,
        min_run=3,
        severity=SEVERITY_WARN,
        recommendation="Tighten targeting and review bids on the costliest campaigns",
    ),
    TrendWatch(
        alert_id="trend-rev-decline",
        metric="revenue",
        label="Revenue declining",
        extract=_daily_revenue,
        declining=True,
        min_run=4,
        severity=SEVERITY_DANGER,
        recommendation="Check stock, pricing and site health; revenue is falling every day",
    ),
)


class TrendAlertRules(BaseAlertRules):
    scope = "trend"

    def evaluate(self, inputs: AlertInputs) -> list[SmartAlert]:
        series = inputs.daily_series
        if len(series) < MIN_SERIES_LENGTH:
            return []

        alerts: list[SmartAlert] = []
        for watch in TREND_WATCHES:
            alert = self._scan(series, watch)
            if alert is not None:
                alerts.append(alert)
        return alerts

    @staticmethod
    def _scan(series: tuple[DailyMetrics, ...], watch: TrendWatch) -> SmartAlert | None:
        run = 0
        run_start: float | None = None
        for index in range(1, len(series)):
            current = watch.extract(series[index])
            previous = watch.extract(series[index - 1])
            if current is None or previous is None:
                run = 0
                continue

            moved = current < previous if watch.declining else current > previous
            if not moved:
                run = 0
                continue

            if run == 0:
                run_start = previous
            run += 1

            if run >= watch.min_run:
                start_value = run_start if run_start is not None else previous
                return SmartAlert(
                    id=watch.alert_id,
                    category="trend",
                    severity=watch.severity,
                    title=f"{watch.label} for {run + 1} consecutive days",
                    description=(
                        f"{watch.metric} moved from {start_value:.2f} to {current:.2f} "
                        f"between {series[index - run].day.isoformat()} and {series[index].day.isoformat()}."
                    ),
                    metric=watch.metric,
                    current_value=round2(current),
                    previous_value=round2(start_value),
                    delta_pct=round_delta(pct_delta(current, start_value)),
                    recommendation=watch.recommendation,
                )
        return None
