"""
intelligence/trend.py

Direction of a daily metric series.

The slope of an ordinary least-squares fit is expressed as percent of the
series mean per day, then cross-checked against the 7-day moving average
so that a single spike does not flip the classification.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from app.domain.metrics import DailyMetrics
from intelligence.types import TrendClassification, TrendData

MIN_POINTS: int = 3
MA_WINDOW: int = 7
SLOPE_THRESHOLD_PCT: float = 1.5
MA_TOLERANCE: float = 0.05


def moving_average(values: Sequence[float], window: int = MA_WINDOW) -> float:
    if not values:
        return 0.0
    tail = values[-window:]
    return float(np.mean(tail))


def slope_pct(values: Sequence[float]) -> float:
    """Least-squares slope as percent of the mean per step."""
    if len(values) < MIN_POINTS:
        return 0.0
    y = np.asarray(values, dtype=float)
    mean = float(y.mean())
    if mean == 0:
        return 0.0
    x = np.arange(len(y), dtype=float)
    slope = float(np.polyfit(x, y, 1)[0])
    return slope / mean * 100


def classify_trend(slope: float, ma: float, previous_ma: float) -> TrendClassification:
    if slope > SLOPE_THRESHOLD_PCT and ma >= previous_ma * (1 - MA_TOLERANCE):
        return "improving"
    if slope < -SLOPE_THRESHOLD_PCT and ma <= previous_ma * (1 + MA_TOLERANCE):
        return "declining"
    return "stable"


def analyze_trend(values: Sequence[float]) -> TrendData | None:
    """
    Classify *values* (chronological). ``None`` when fewer than three points.
    """
    values = list(values)
    if len(values) < MIN_POINTS:
        return None

    slope = slope_pct(values)
    ma = moving_average(values)
    earlier = values[:-MA_WINDOW] if len(values) > MA_WINDOW else values[: len(values) // 2]
    previous_ma = moving_average(earlier) if earlier else ma

    return TrendData(
        classification=classify_trend(slope, ma, previous_ma),
        slope_pct=round(slope, 2),
        moving_avg_7d=round(ma, 2),
        previous_moving_avg_7d=round(previous_ma, 2),
        data_points=len(values),
    )


def analyze_revenue_trend(series: Sequence[DailyMetrics]) -> TrendData | None:
    return analyze_trend([day.revenue for day in series])
