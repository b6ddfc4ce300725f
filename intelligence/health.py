"""
intelligence/health.py

Composite 0-100 health score and top-priority selection.

The score starts at 100 and subtracts one bounded penalty per dimension:

    penalty = weight x clamp(shortfall / scale, 0, 1)

Every shortfall is a non-increasing function of "how close the metric is
to its target", so moving any single input toward its target can never
lower the score. A dimension whose input is missing contributes nothing;
spend without conversions counts as an infinite CPA (full CPA penalty).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from alerts.types import SEVERITY_DANGER, SEVERITY_WARN, SmartAlert, severity_rank
from app.domain.metrics import AccountMetrics, AnalysisContext
from planning import cascade

BASELINE: float = 100.0

WEIGHT_ROAS: float = 25.0
WEIGHT_CPA: float = 15.0
WEIGHT_ALERTS: float = 25.0
WEIGHT_RETENTION: float = 15.0
WEIGHT_FUNNEL: float = 20.0

DEFAULT_ROAS_TARGET: float = 7.0
DEFAULT_CPA_CEILING: float = 80.0
IDEAL_RETURN_RATE: float = 25.0
DEFAULT_CONVERSION_TARGET: float = 0.015

DANGER_ALERT_LOAD: int = 2
WARN_ALERT_LOAD: int = 1
ALERT_LOAD_SATURATION: int = 8


@dataclass(frozen=True)
class HealthInputs:
    """
    Flat view of the metrics the score reads.

    ``cpa``, ``return_rate`` and ``conversion_rate`` are ``None`` when the
    underlying source is missing or undefined.
    """

    roas: float | None = None
    roas_target: float = DEFAULT_ROAS_TARGET
    cpa: float | None = None
    cpa_ceiling: float = DEFAULT_CPA_CEILING
    danger_alerts: int = 0
    warn_alerts: int = 0
    return_rate: float | None = None
    conversion_rate: float | None = None
    conversion_target: float = DEFAULT_CONVERSION_TARGET


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _penalty(weight: float, shortfall: float, scale: float) -> float:
    if scale <= 0:
        return 0.0
    return weight * _clamp01(shortfall / scale)


def compute_health_score(inputs: HealthInputs) -> float:
    """
    Score *inputs* on a 0-100 scale, rounded to one decimal.
    """
    penalty = 0.0

    if inputs.roas is not None:
        penalty += _penalty(WEIGHT_ROAS, inputs.roas_target - inputs.roas, inputs.roas_target)

    if inputs.cpa is not None:
        penalty += _penalty(WEIGHT_CPA, inputs.cpa - inputs.cpa_ceiling, inputs.cpa_ceiling)

    load = DANGER_ALERT_LOAD * inputs.danger_alerts + WARN_ALERT_LOAD * inputs.warn_alerts
    penalty += _penalty(WEIGHT_ALERTS, load, ALERT_LOAD_SATURATION)

    if inputs.return_rate is not None:
        penalty += _penalty(WEIGHT_RETENTION, IDEAL_RETURN_RATE - inputs.return_rate, IDEAL_RETURN_RATE)

    if inputs.conversion_rate is not None:
        penalty += _penalty(
            WEIGHT_FUNNEL,
            inputs.conversion_target - inputs.conversion_rate,
            inputs.conversion_target,
        )

    return round(max(0.0, min(100.0, BASELINE - penalty)), 1)


def _effective_cpa(account: AccountMetrics | None) -> float | None:
    """
    CPA for scoring. Spend with no conversions is an unbounded CPA, so the
    first conversion can only lower it.
    """
    if account is None or account.spend <= 0:
        return None
    if account.conversions <= 0:
        return math.inf
    return account.cpa


def health_inputs_from_context(
    context: AnalysisContext,
    alerts: Iterable[SmartAlert],
    *,
    default_roas_target: float = DEFAULT_ROAS_TARGET,
    default_cpa_ceiling: float = DEFAULT_CPA_CEILING,
) -> HealthInputs:
    """
    Build :class:`HealthInputs`. Planning targets override the defaults.
    """
    account = context.account
    web = context.web
    planning = context.planning
    alerts = list(alerts)

    return HealthInputs(
        roas=account.roas if account is not None and account.spend > 0 else None,
        roas_target=planning.get(cascade.CAPTURED_ROAS) or default_roas_target,
        cpa=_effective_cpa(account),
        cpa_ceiling=planning.get(cascade.CPA) or default_cpa_ceiling,
        danger_alerts=sum(1 for alert in alerts if alert.severity == SEVERITY_DANGER),
        warn_alerts=sum(1 for alert in alerts if alert.severity == SEVERITY_WARN),
        return_rate=context.retention.return_rate if context.retention is not None else None,
        conversion_rate=web.conversion_rate if web is not None and web.sessions > 0 else None,
        conversion_target=planning.get(cascade.CONVERSION_RATE) or DEFAULT_CONVERSION_TARGET,
    )


def select_top_priority(alerts: Iterable[SmartAlert]) -> SmartAlert | None:
    """
    Most severe negative alert; larger ``|delta_pct|`` breaks ties, then
    input order. ``None`` when no danger/warn alert exists.
    """
    negatives = [alert for alert in alerts if alert.is_negative]
    if not negatives:
        return None
    return min(negatives, key=lambda alert: (severity_rank(alert.severity), -abs(alert.delta_pct)))
