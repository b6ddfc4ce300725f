"""
intelligence/engine.py

Cognitive analysis engine.

Pipeline for one :class:`AnalysisContext`:

1. Smart alerts for the current period against the previous one.
2. Insights from every registered analyzer, plus one per negative alert.
3. Correlation of related insights, then ranking by expected value.
4. Strategy layer: trend, strategic mode, bottleneck, pacing.
5. Health score, top priority and quick wins.
6. Executive summary of the above.

:func:`analyze` is pure and synchronous. :func:`analyze_cognitive` wraps it
for async callers and hands the finished result to an optional persistence
hook without awaiting it.
"""

from __future__ import annotations

import logging
from typing import Callable

from alerts.detector import MAX_ALERTS, compute_all_smart_alerts
from alerts.types import severity_rank
from app.domain.errors import RequiredSourceError
from app.domain.metrics import AnalysisContext, PeriodSnapshot
from intelligence.alert_insights import insights_from_alerts
from intelligence.analyzers import ANALYZERS
from intelligence.correlation import correlate_insights
from intelligence.health import (
    DEFAULT_CPA_CEILING,
    DEFAULT_ROAS_TARGET,
    compute_health_score,
    health_inputs_from_context,
    select_top_priority,
)
from intelligence.pacing import compute_pacing_projections
from intelligence.ranker import rank_decisions
from intelligence.strategy import detect_bottleneck, detect_strategic_mode
from intelligence.summary import build_executive_summary
from intelligence.trend import analyze_revenue_trend
from intelligence.types import Insight, IntelligenceResult, RankedDecision

logger = logging.getLogger(__name__)

MAX_INSIGHTS: int = 12
MAX_QUICK_WINS: int = 3

PersistHook = Callable[[AnalysisContext, IntelligenceResult], None]


def _is_quick_win(insight: Insight) -> bool:
    return any(rec.is_quick_win for rec in insight.recommendations)


def select_quick_wins(
    decisions: list[RankedDecision],
    allowed_ids: set[str] | None = None,
    limit: int = MAX_QUICK_WINS,
) -> list[Insight]:
    """
    First *limit* insights in ranker order that carry a low-effort,
    non-low-impact recommendation.
    """
    wins: list[Insight] = []
    for decision in decisions:
        insight = decision.insight
        if allowed_ids is not None and insight.id not in allowed_ids:
            continue
        if _is_quick_win(insight):
            wins.append(insight)
            if len(wins) == limit:
                break
    return wins


def analyze(
    context: AnalysisContext,
    *,
    max_insights: int = MAX_INSIGHTS,
    max_alerts: int = MAX_ALERTS,
    roas_target: float = DEFAULT_ROAS_TARGET,
    cpa_ceiling: float = DEFAULT_CPA_CEILING,
) -> IntelligenceResult:
    """
    Run the full analysis for *context*.

    Parameters
    ----------
    context:
        Aggregated inputs. ``account`` is required; every other source may
        be empty and only narrows the analysis.
    max_insights, max_alerts:
        Output caps applied after severity-major sorting.
    roas_target, cpa_ceiling:
        Health-score targets used when planning does not set them.

    Returns
    -------
    IntelligenceResult

    Raises
    ------
    RequiredSourceError
        If ``context.account`` is ``None``.
    """
    if context.account is None:
        raise RequiredSourceError("account")

    current = PeriodSnapshot(account=context.account, campaigns=context.campaigns, skus=context.skus)
    alerts = compute_all_smart_alerts(
        current,
        context.previous,
        context.daily_series,
        context.retention,
        max_alerts=max_alerts,
    )

    raw: list[Insight] = []
    for analyzer in ANALYZERS:
        raw.extend(analyzer.analyze(context))
    raw.extend(insights_from_alerts(alerts))

    correlated = correlate_insights(raw)
    decisions = rank_decisions(correlated)

    insights = sorted(correlated, key=lambda insight: severity_rank(insight.severity))[:max_insights]
    kept_ids = {insight.id for insight in insights}

    trend = analyze_revenue_trend(context.daily_series)
    health_inputs = health_inputs_from_context(
        context,
        alerts,
        default_roas_target=roas_target,
        default_cpa_ceiling=cpa_ceiling,
    )
    health_score = compute_health_score(health_inputs)
    top_priority = select_top_priority(alerts)
    quick_wins = select_quick_wins(decisions, kept_ids)
    mode = detect_strategic_mode(context, trend)
    bottleneck = detect_bottleneck(context)
    pacing = compute_pacing_projections(context)

    return IntelligenceResult(
        health_score=health_score,
        top_priority=top_priority,
        quick_wins=tuple(quick_wins),
        insights=tuple(insights),
        alerts=tuple(alerts),
        decisions=tuple(decisions),
        mode=mode,
        bottleneck=bottleneck,
        pacing=tuple(pacing),
        trend=trend,
        executive_summary=build_executive_summary(
            health_score=health_score,
            account=context.account,
            top_priority=top_priority,
            quick_wins=quick_wins,
            decisions=decisions,
            mode=mode,
            bottleneck=bottleneck,
            pacing=pacing,
            roas_target=health_inputs.roas_target,
            cpa_ceiling=health_inputs.cpa_ceiling,
        ),
    )


async def analyze_cognitive(
    context: AnalysisContext,
    *,
    persist: PersistHook | None = None,
    max_insights: int = MAX_INSIGHTS,
    max_alerts: int = MAX_ALERTS,
    roas_target: float = DEFAULT_ROAS_TARGET,
    cpa_ceiling: float = DEFAULT_CPA_CEILING,
) -> IntelligenceResult:
    """
    Async entry point used by the request path.

    The computation itself does no I/O. When *persist* is given it is
    called once with the finished result and is expected to return
    immediately (scheduling its own background work).
    """
    result = analyze(
        context,
        max_insights=max_insights,
        max_alerts=max_alerts,
        roas_target=roas_target,
        cpa_ceiling=cpa_ceiling,
    )
    logger.debug(
        "Analysis for tenant=%s period=%s..%s: health=%.1f insights=%d alerts=%d",
        context.tenant_id,
        context.period.start,
        context.period.end,
        result.health_score,
        len(result.insights),
        len(result.alerts),
    )
    if persist is not None:
        persist(context, result)
    return result
