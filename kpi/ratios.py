"""
kpi/ratios.py

Safe ratio and delta helpers shared by every marketing metric.

All helpers are total: zero or non-finite denominators yield ``0.0`` and no
helper ever returns NaN or Infinity.
"""

from __future__ import annotations

import math


def round2(value: float) -> float:
    """Round *value* to 2 decimal places, mapping non-finite values to 0."""
    if value is None or not math.isfinite(value):
        return 0.0
    return round(value, 2)


def safe_div(numerator: float, denominator: float) -> float:
    """
    Divide *numerator* by *denominator*, returning ``0.0`` when the result
    is undefined.
    """
    if not denominator or not math.isfinite(denominator):
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def pct_delta(current: float, previous: float) -> float:
    """
    Signed percentage change from *previous* to *current*.

    Returns ``0.0`` when *previous* is zero, regardless of *current*.
    """
    if previous == 0:
        return 0.0
    return safe_div(current - previous, previous) * 100.0


def compute_roas(revenue: float, spend: float) -> float:
    """ROAS rounded to 2 dp; ``0`` when there is no spend."""
    if spend <= 0:
        return 0.0
    return max(0.0, round2(revenue / spend))


def compute_cpa(spend: float, conversions: float) -> float:
    """CPA rounded to 2 dp; ``0`` when there are no conversions."""
    if conversions <= 0:
        return 0.0
    return max(0.0, round2(spend / conversions))


def compute_ctr(clicks: float, impressions: float) -> float:
    """Click-through rate in percent, rounded to 2 dp."""
    if impressions <= 0:
        return 0.0
    return max(0.0, round2(clicks / impressions * 100.0))


def compute_conversion_rate(conversions: float, clicks: float) -> float:
    """Conversions per click in percent (unrounded)."""
    if clicks <= 0:
        return 0.0
    return safe_div(conversions, clicks) * 100.0
