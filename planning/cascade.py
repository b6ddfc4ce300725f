"""
planning/cascade.py

Monthly commercial target cascade.

Expands a sparse map of user-entered planning inputs into every metric that
can be derived from them. Each derived metric is defined by a formula over
named dependencies; a formula fires only when all of its dependencies are
present, so a missing input leaves its dependants absent instead of zero.

Formulas never overwrite a value already in the map. Because of that the
cascade is idempotent, and a user may enter a normally derived figure (for
example ``captured_revenue``) directly and still get its dependants.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping

from kpi.ratios import safe_div

PlanningMetrics = dict[str, float]

# ---------------------------------------------------------------------------
# Metric names
# ---------------------------------------------------------------------------

RETENTION_SHARE = "retention_share"
APPROVAL_RATE = "approval_rate"
AVERAGE_TICKET = "average_ticket"
CONVERSION_RATE = "conversion_rate"
TOTAL_INVESTMENT = "total_investment"
MEDIA_INVESTMENT = "media_investment"
EMAIL_INVESTMENT = "email_investment"
BOOST_INVESTMENT = "boost_investment"
ORGANIC_SESSIONS = "organic_sessions"
MEDIA_CPS = "media_cps"

MEDIA_SESSIONS = "media_sessions"
SESSIONS = "sessions"
CAPTURED_ORDERS = "captured_orders"
CAPTURED_REVENUE = "captured_revenue"
ACQUISITION_SHARE = "acquisition_share"
ACQUISITION_REVENUE = "acquisition_revenue"
ACQUISITION_ORDERS = "acquisition_orders"
RETENTION_REVENUE = "retention_revenue"
RETENTION_ORDERS = "retention_orders"
BILLED_REVENUE = "billed_revenue"
CANCELLED_REVENUE = "cancelled_revenue"
BILLED_ORDERS = "billed_orders"
CPA = "cpa"
GENERAL_CPS = "general_cps"
CAPTURED_ROAS = "captured_roas"
BILLED_ROAS = "billed_roas"
MONTH_OVER_MONTH = "month_over_month"

INPUT_METRICS: tuple[str, ...] = (
    RETENTION_SHARE,
    APPROVAL_RATE,
    AVERAGE_TICKET,
    CONVERSION_RATE,
    TOTAL_INVESTMENT,
    MEDIA_INVESTMENT,
    EMAIL_INVESTMENT,
    BOOST_INVESTMENT,
    ORGANIC_SESSIONS,
    MEDIA_CPS,
)

# Rate-like inputs are averaged, not summed, when aggregating a year.
RATE_INPUTS: frozenset[str] = frozenset({RETENTION_SHARE, APPROVAL_RATE, CONVERSION_RATE, MEDIA_CPS})


def _currency(value: float) -> float:
    return round(value, 2)


def _count(value: float) -> float:
    return float(round(value))


def _identity(value: float) -> float:
    return value


@dataclass(frozen=True)
class DerivedMetric:
    """
    One node of the cascade: ``name = rounding(formula(*deps))``.
    """

    name: str
    dependencies: tuple[str, ...]
    formula: Callable[..., float]
    rounding: Callable[[float], float] = _identity
    label: str = ""


# Listed in topological order: every dependency is either an input or a
# metric defined earlier in this tuple.
CASCADE: tuple[DerivedMetric, ...] = (
    DerivedMetric(MEDIA_SESSIONS, (MEDIA_INVESTMENT, MEDIA_CPS), safe_div, _count, "Media investment / media CPS"),
    DerivedMetric(SESSIONS, (MEDIA_SESSIONS, ORGANIC_SESSIONS), lambda m, o: m + o, label="Media + organic sessions"),
    DerivedMetric(CAPTURED_ORDERS, (SESSIONS, CONVERSION_RATE), lambda s, c: s * c, label="Sessions x conversion rate"),
    DerivedMetric(CAPTURED_REVENUE, (CAPTURED_ORDERS, AVERAGE_TICKET), lambda o, t: o * t, _currency, "Captured orders x average ticket"),
    DerivedMetric(ACQUISITION_SHARE, (RETENTION_SHARE,), lambda r: 1 - r, label="1 - retention share"),
    DerivedMetric(ACQUISITION_REVENUE, (CAPTURED_REVENUE, ACQUISITION_SHARE), lambda r, a: r * a, _currency, "Captured revenue x acquisition share"),
    DerivedMetric(ACQUISITION_ORDERS, (ACQUISITION_REVENUE, AVERAGE_TICKET), safe_div, _count, "Acquisition revenue / average ticket"),
    DerivedMetric(RETENTION_REVENUE, (CAPTURED_REVENUE, RETENTION_SHARE), lambda r, s: r * s, _currency, "Captured revenue x retention share"),
    DerivedMetric(RETENTION_ORDERS, (RETENTION_REVENUE, AVERAGE_TICKET), safe_div, _count, "Retention revenue / average ticket"),
    DerivedMetric(BILLED_REVENUE, (CAPTURED_REVENUE, APPROVAL_RATE), lambda r, a: r * a, _currency, "Captured revenue x approval rate"),
    DerivedMetric(CANCELLED_REVENUE, (CAPTURED_REVENUE, BILLED_REVENUE), lambda c, b: c - b, _currency, "Captured - billed revenue"),
    DerivedMetric(BILLED_ORDERS, (BILLED_REVENUE, AVERAGE_TICKET), safe_div, _count, "Billed revenue / average ticket"),
    DerivedMetric(CPA, (TOTAL_INVESTMENT, CAPTURED_ORDERS), safe_div, _currency, "Total investment / captured orders"),
    DerivedMetric(GENERAL_CPS, (TOTAL_INVESTMENT, SESSIONS), safe_div, _currency, "Total investment / sessions"),
    DerivedMetric(CAPTURED_ROAS, (CAPTURED_REVENUE, TOTAL_INVESTMENT), safe_div, _currency, "Captured revenue / total investment"),
    DerivedMetric(BILLED_ROAS, (BILLED_REVENUE, TOTAL_INVESTMENT), safe_div, _currency, "Billed revenue / total investment"),
)

DERIVED_METRICS: tuple[str, ...] = tuple(node.name for node in CASCADE)
KNOWN_METRICS: frozenset[str] = frozenset(INPUT_METRICS) | frozenset(DERIVED_METRICS) | {MONTH_OVER_MONTH}


# ---------------------------------------------------------------------------
# Month
# ---------------------------------------------------------------------------


def compute_target_month(inputs: Mapping[str, float]) -> PlanningMetrics:
    """
    Return *inputs* extended with every derivable cascade metric.

    Parameters
    ----------
    inputs:
        Sparse metric-name -> value map for one month. ``None`` values are
        treated as absent.

    Returns
    -------
    dict[str, float]
        A new map; *inputs* is not mutated. Values already present are
        carried through unchanged.
    """
    values: PlanningMetrics = {
        key: float(value) for key, value in inputs.items() if value is not None
    }
    for node in CASCADE:
        if node.name in values:
            continue
        if not all(dep in values for dep in node.dependencies):
            continue
        args = [values[dep] for dep in node.dependencies]
        values[node.name] = node.rounding(node.formula(*args))
    return values


# ---------------------------------------------------------------------------
# Year
# ---------------------------------------------------------------------------


def _inputs_only(month_values: Mapping[str, float] | None) -> PlanningMetrics:
    return {
        key: float(value)
        for key, value in (month_values or {}).items()
        if key in INPUT_METRICS and value is not None
    }


def compute_target_totals(year_data: Mapping[int, Mapping[str, float]]) -> PlanningMetrics:
    """
    Aggregate twelve months of inputs and cascade the aggregate.

    Amount inputs are summed; rate inputs are averaged over the months that
    supply them.
    """
    totals: PlanningMetrics = {}
    rate_sums: dict[str, tuple[float, int]] = {}

    for month in range(1, 13):
        for key, value in _inputs_only(year_data.get(month)).items():
            if key in RATE_INPUTS:
                total, count = rate_sums.get(key, (0.0, 0))
                rate_sums[key] = (total + value, count + 1)
            else:
                totals[key] = totals.get(key, 0.0) + value

    for key, (total, count) in rate_sums.items():
        if count > 0:
            totals[key] = total / count

    return compute_target_month(totals)


def compute_target_average(year_data: Mapping[int, Mapping[str, float]]) -> PlanningMetrics:
    """
    Average monthly inputs over months that carry any data, then cascade.
    """
    months_with_data = sum(1 for month in range(1, 13) if year_data.get(month))
    if months_with_data == 0:
        return {}

    totals = compute_target_totals(year_data)
    averaged: PlanningMetrics = {}
    for key in INPUT_METRICS:
        if key not in totals:
            continue
        if key in RATE_INPUTS:
            averaged[key] = totals[key]
        else:
            averaged[key] = round(totals[key] / months_with_data, 2)
    return compute_target_month(averaged)


@dataclass(frozen=True)
class TargetYear:
    months: dict[int, PlanningMetrics]
    totals: PlanningMetrics
    average: PlanningMetrics


def compute_target_full_year(year_data: Mapping[int, Mapping[str, float]]) -> TargetYear:
    """
    Cascade each month, add month-over-month revenue growth, and attach the
    totals and average columns.
    """
    months: dict[int, PlanningMetrics] = {
        month: compute_target_month(year_data.get(month) or {}) for month in range(1, 13)
    }

    for month in range(2, 13):
        current = months[month].get(CAPTURED_REVENUE)
        previous = months[month - 1].get(CAPTURED_REVENUE)
        if current is not None and previous is not None and previous > 0:
            months[month][MONTH_OVER_MONTH] = current / previous - 1

    return TargetYear(
        months=months,
        totals=compute_target_totals(year_data),
        average=compute_target_average(year_data),
    )
