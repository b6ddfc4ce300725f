"""
intelligence/summary.py

Executive summary for an intelligence result.

A headline naming the strategic mode and main constraint, the single top
action, the first quick win and a short list of labelled key metrics, each
with an ok/warn/danger status.
"""

from __future__ import annotations

from typing import Sequence

from alerts.base import fmt_money
from alerts.types import SEVERITY_DANGER, SmartAlert
from app.domain.metrics import AccountMetrics
from intelligence.types import (
    Bottleneck,
    ExecutiveSummary,
    Insight,
    KeyMetric,
    MetricStatus,
    ModeAssessment,
    PacingProjection,
    RankedDecision,
)
from planning import cascade

MODE_LABELS = {
    "scale": "Scale",
    "optimize": "Optimize",
    "protect": "Protect",
    "restructure": "Restructure",
}

BOTTLENECK_LABELS = {
    "traffic": "Traffic",
    "conversion": "Conversion",
    "aov": "Average order value",
    "margin": "Margin",
    "budget": "Budget",
}

NO_ACTION = "No priority actions right now"

# (ok at or above, warn at or above); below the second value is danger.
HEALTH_BANDS: tuple[float, float] = (75.0, 50.0)
MODE_SCORE_BANDS: tuple[float, float] = (75.0, 50.0)

_PACING_STATUS: dict[str, MetricStatus] = {"on_track": "ok", "at_risk": "warn", "off_track": "danger"}


def _status(value: float, bands: tuple[float, float]) -> MetricStatus:
    ok_at, warn_at = bands
    if value >= ok_at:
        return "ok"
    if value >= warn_at:
        return "warn"
    return "danger"


def build_headline(
    health_score: float,
    mode: ModeAssessment | None,
    bottleneck: Bottleneck | None,
    top_priority: SmartAlert | None,
) -> str:
    parts: list[str] = []
    if mode is not None:
        parts.append(f"Mode: {MODE_LABELS.get(mode.mode, mode.mode)}")
    if bottleneck is not None:
        parts.append(f"Main constraint: {BOTTLENECK_LABELS.get(bottleneck.constraint, bottleneck.constraint)}")
    if not parts:
        parts.append(f"Health score {health_score:.0f}/100")
    if top_priority is not None:
        parts.append(f"Watch: {top_priority.title}")
    return ". ".join(parts)


def build_top_action(decisions: Sequence[RankedDecision]) -> str:
    """
    Action of the highest-ranked decision, with its monthly impact when
    positive.
    """
    if not decisions:
        return NO_ACTION
    insight = decisions[0].insight
    action = insight.recommendations[0].action if insight.recommendations else insight.title
    net = insight.financial_impact.net_impact
    if net > 0:
        return f"{action} (estimated impact {fmt_money(net)}/month)"
    return action


def build_key_metrics(
    health_score: float,
    account: AccountMetrics | None,
    mode: ModeAssessment | None,
    decisions: Sequence[RankedDecision],
    pacing: Sequence[PacingProjection],
    roas_target: float,
    cpa_ceiling: float,
) -> list[KeyMetric]:
    metrics = [KeyMetric("Health score", f"{health_score:.0f}/100", _status(health_score, HEALTH_BANDS))]

    if account is not None and account.spend > 0:
        metrics.append(
            KeyMetric("ROAS", f"{account.roas:.2f}", "ok" if account.roas >= roas_target else "warn")
        )
        if account.conversions > 0:
            metrics.append(
                KeyMetric("CPA", fmt_money(account.cpa), "ok" if account.cpa <= cpa_ceiling else "warn")
            )
        else:
            metrics.append(KeyMetric("CPA", "no conversions", "danger"))

    if mode is not None:
        metrics.append(KeyMetric("Strategic score", f"{mode.score}/100", _status(mode.score, MODE_SCORE_BANDS)))

    revenue_pacing = next((p for p in pacing if p.metric == cascade.CAPTURED_REVENUE), None)
    if revenue_pacing is not None:
        metrics.append(
            KeyMetric(
                "Revenue projection",
                fmt_money(revenue_pacing.projected_end_of_month),
                _PACING_STATUS[revenue_pacing.scenario],
            )
        )

    opportunity = sum(
        d.insight.financial_impact.net_impact for d in decisions if d.insight.financial_impact.net_impact > 0
    )
    if opportunity > 0:
        metrics.append(KeyMetric("Total opportunity", fmt_money(opportunity), "ok"))

    risk = sum(
        abs(d.insight.financial_impact.net_impact) for d in decisions if d.insight.severity == SEVERITY_DANGER
    )
    if risk > 0:
        metrics.append(KeyMetric("Identified risk", fmt_money(risk), "danger"))

    return metrics


def build_executive_summary(
    *,
    health_score: float,
    account: AccountMetrics | None,
    top_priority: SmartAlert | None,
    quick_wins: Sequence[Insight],
    decisions: Sequence[RankedDecision],
    mode: ModeAssessment | None,
    bottleneck: Bottleneck | None,
    pacing: Sequence[PacingProjection],
    roas_target: float,
    cpa_ceiling: float,
) -> ExecutiveSummary:
    """
    Assemble the :class:`ExecutiveSummary` from already computed parts.

    Pure formatting: nothing here changes the score, ranking or alerts.
    """
    quick_win = None
    if quick_wins:
        first = quick_wins[0]
        quick_win = next((rec.action for rec in first.recommendations if rec.is_quick_win), first.title)

    return ExecutiveSummary(
        headline=build_headline(health_score, mode, bottleneck, top_priority),
        top_action=build_top_action(decisions),
        quick_win=quick_win,
        key_metrics=tuple(
            build_key_metrics(health_score, account, mode, decisions, pacing, roas_target, cpa_ceiling)
        ),
    )
