"""
tests/test_intelligence_engine.py

Pytest unit tests for the cognitive analysis engine and its stages.

All tests are pure Python; contexts are built from metric records.

Coverage
--------
- analyze() requires an account and degrades when other sources are missing
- Analyzer output on a stressed account (risk, composition, efficiency)
- Correlation links trigger and evidence insights
- Ranker score formula and ordering
- Quick wins: low effort, bounded, restricted to kept insights
- Output caps and severity-major insight order
- Determinism across calls
- Trend classification, pacing projections, strategic mode and bottleneck
- analyze_cognitive invokes the persistence hook once
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import date

import pytest

from alerts.types import severity_rank
from app.domain.errors import RequiredSourceError
from app.domain.metrics import (
    AccountMetrics,
    AnalysisContext,
    CampaignMetrics,
    ChannelData,
    Period,
    WebAnalyticsSummary,
)
from intelligence.correlation import correlate_insights
from intelligence.engine import MAX_QUICK_WINS, analyze, analyze_cognitive, select_quick_wins
from intelligence.financial_impact import impact
from intelligence.pacing import compute_pacing_projections, project_metric
from intelligence.ranker import rank_decisions
from intelligence.strategy import detect_bottleneck, detect_strategic_mode
from intelligence.trend import analyze_trend
from intelligence.types import Insight, Recommendation, TrendData
from planning import cascade

PERIOD = Period(start=date(2026, 3, 1), end=date(2026, 3, 15))


def _insight(
    insight_id: str,
    *,
    category: str = "risk",
    severity: str = "warn",
    net: float = 100.0,
    confidence: float = 0.5,
    effort: str = "medium",
    impact_level: str = "high",
) -> Insight:
    return Insight(
        id=insight_id,
        category=category,
        severity=severity,
        title=insight_id,
        description="",
        metrics={},
        recommendations=(Recommendation(action="act", impact=impact_level, effort=effort),),
        source="pattern",
        financial_impact=impact(net, 0, confidence, "short", "test"),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def stressed() -> AnalysisContext:
    """Low ROAS, poor traffic quality, heavy paid dependence, one wasted campaign."""
    return AnalysisContext(
        tenant_id="t1",
        period=PERIOD,
        account=AccountMetrics.build(spend=2000, revenue=6000, conversions=40, clicks=2000, impressions=80000),
        campaigns=(
            CampaignMetrics.build(campaign_id="c1", name="Generic", spend=300, conversions=0),
            CampaignMetrics.build(campaign_id="c2", name="Brand", spend=1700, revenue=6000, conversions=40),
        ),
        web=WebAnalyticsSummary(
            sessions=5000,
            users=4000,
            purchases=40,
            purchase_revenue=6000,
            bounce_rate=0.7,
            cart_abandonment_rate=80.0,
        ),
        channels=(
            ChannelData(channel="Paid Search", sessions=4000),
            ChannelData(channel="Organic Search", sessions=1000),
        ),
    )


@pytest.fixture()
def healthy() -> AnalysisContext:
    return AnalysisContext(
        tenant_id="t1",
        period=PERIOD,
        account=AccountMetrics.build(spend=1000, revenue=10000, conversions=50, clicks=2500),
    )


# ---------------------------------------------------------------------------
# analyze()
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_requires_account(self) -> None:
        with pytest.raises(RequiredSourceError):
            analyze(AnalysisContext(tenant_id="t1", period=PERIOD, account=None))

    def test_account_only_degrades(self, healthy: AnalysisContext) -> None:
        result = analyze(healthy)
        assert result.alerts == ()
        assert result.bottleneck is None
        assert result.pacing == ()
        assert result.trend is None
        assert result.mode is not None
        assert 0.0 <= result.health_score <= 100.0

    def test_stressed_insights(self, stressed: AnalysisContext) -> None:
        ids = {insight.id for insight in analyze(stressed).insights}
        assert {"risk-roas-critical", "risk-bounce", "risk-cart-abandon", "comp-paid-heavy", "eff-zero-conv"} <= ids

    def test_insights_severity_major(self, stressed: AnalysisContext) -> None:
        ranks = [severity_rank(i.severity) for i in analyze(stressed).insights]
        assert ranks == sorted(ranks)

    def test_insight_cap(self, stressed: AnalysisContext) -> None:
        result = analyze(stressed, max_insights=2)
        assert len(result.insights) == 2

    def test_quick_wins(self, stressed: AnalysisContext) -> None:
        result = analyze(stressed)
        kept = {insight.id for insight in result.insights}
        assert 0 < len(result.quick_wins) <= MAX_QUICK_WINS
        for insight in result.quick_wins:
            assert insight.id in kept
            assert any(rec.effort == "low" and rec.impact != "low" for rec in insight.recommendations)

    def test_decisions_ranked(self, stressed: AnalysisContext) -> None:
        decisions = analyze(stressed).decisions
        assert [d.rank for d in decisions] == list(range(1, len(decisions) + 1))
        scores = [d.score for d in decisions]
        assert scores == sorted(scores, reverse=True)

    def test_deterministic(self, stressed: AnalysisContext) -> None:
        first = analyze(stressed)
        second = analyze(stressed)
        assert first.insights == second.insights
        assert first.decisions == second.decisions
        assert first.health_score == second.health_score

    def test_stressed_scores_below_healthy(self, stressed: AnalysisContext, healthy: AnalysisContext) -> None:
        assert analyze(stressed).health_score < analyze(healthy).health_score

    def test_to_dict_serializes_timestamp(self, healthy: AnalysisContext) -> None:
        payload = analyze(healthy).to_dict()
        assert isinstance(payload["generated_at"], str)
        assert payload["health_score"] == analyze(healthy).health_score


class TestAnalyzeCognitive:
    def test_persist_hook_called_once(self, healthy: AnalysisContext) -> None:
        calls: list[tuple] = []

        result = asyncio.run(analyze_cognitive(healthy, persist=lambda ctx, res: calls.append((ctx, res))))

        assert len(calls) == 1
        assert calls[0][0] is healthy
        assert calls[0][1] is result

    def test_without_hook(self, healthy: AnalysisContext) -> None:
        result = asyncio.run(analyze_cognitive(healthy))
        assert result.health_score == analyze(healthy).health_score


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------


class TestCorrelation:
    def test_traffic_quality(self, stressed: AnalysisContext) -> None:
        by_id = {i.id: i for i in analyze(stressed).insights}
        bounce = by_id["risk-bounce"]
        paid = by_id["comp-paid-heavy"]
        assert bounce.correlation_id == "traffic-quality"
        assert "comp-paid-heavy" in bounce.related_ids
        assert paid.root_cause.startswith("Related to:")
        assert "risk-bounce" in paid.related_ids

    def test_uncorrelated_pass_through(self) -> None:
        lone = _insight("risk-concentration")
        assert correlate_insights([lone]) == [lone]

    def test_trigger_without_evidence(self) -> None:
        trigger = _insight("risk-bounce", category="risk")
        [result] = correlate_insights([trigger])
        assert result.root_cause is None

    def test_order_and_length_preserved(self) -> None:
        items = [
            _insight("comp-paid-heavy", category="composition"),
            _insight("x", category="opportunity"),
            _insight("risk-bounce", category="risk"),
        ]
        assert [i.id for i in correlate_insights(items)] == ["comp-paid-heavy", "x", "risk-bounce"]


# ---------------------------------------------------------------------------
# Ranker and quick wins
# ---------------------------------------------------------------------------


class TestRanker:
    def test_score_formula(self) -> None:
        [decision] = rank_decisions([_insight("a", severity="danger", net=1000, confidence=0.8, effort="low")])
        assert decision.score == pytest.approx(1000 * 0.8 * 3 / 1.0)
        assert decision.urgency == 3
        assert decision.effort == 1.0

    def test_ordering_and_ties(self) -> None:
        decisions = rank_decisions(
            [
                _insight("small", net=10),
                _insight("tie-1", net=500),
                _insight("tie-2", net=500),
            ]
        )
        assert [d.insight.id for d in decisions] == ["tie-1", "tie-2", "small"]

    def test_negative_impact_uses_magnitude(self) -> None:
        [decision] = rank_decisions([_insight("neg", net=-200)])
        assert decision.impact == 200.0

    def test_select_quick_wins_respects_filter(self) -> None:
        decisions = rank_decisions(
            [
                _insight("a", net=900, effort="low"),
                _insight("b", net=800, effort="high"),
                _insight("c", net=700, effort="low"),
                _insight("d", net=600, effort="low", impact_level="low"),
            ]
        )
        assert [i.id for i in select_quick_wins(decisions)] == ["a", "c"]
        assert [i.id for i in select_quick_wins(decisions, allowed_ids={"c"})] == ["c"]
        assert [i.id for i in select_quick_wins(decisions, limit=1)] == ["a"]


# ---------------------------------------------------------------------------
# Trend, pacing, strategy
# ---------------------------------------------------------------------------


class TestTrend:
    def test_too_short(self) -> None:
        assert analyze_trend([1.0, 2.0]) is None

    def test_improving(self) -> None:
        trend = analyze_trend([100, 110, 120, 130, 140, 150, 160, 170, 180, 190])
        assert trend.classification == "improving"
        assert trend.slope_pct > 0
        assert trend.data_points == 10

    def test_declining(self) -> None:
        trend = analyze_trend([190, 180, 170, 160, 150, 140, 130, 120, 110, 100])
        assert trend.classification == "declining"

    def test_flat_is_stable(self) -> None:
        assert analyze_trend([100.0] * 8).classification == "stable"

    def test_all_zero_is_stable(self) -> None:
        assert analyze_trend([0.0, 0.0, 0.0]).classification == "stable"


class TestPacing:
    def test_on_track(self) -> None:
        projection = project_metric(
            metric="captured_revenue", label="Revenue", current_value=50, target=100, day_of_month=15, days_in_month=30
        )
        assert projection.projected_end_of_month == 100.0
        assert projection.scenario == "on_track"

    def test_at_risk_and_off_track(self) -> None:
        at_risk = project_metric(
            metric="m", label="m", current_value=45, target=100, day_of_month=15, days_in_month=30
        )
        off_track = project_metric(
            metric="m", label="m", current_value=20, target=100, day_of_month=15, days_in_month=30
        )
        assert at_risk.scenario == "at_risk"
        assert off_track.scenario == "off_track"

    def test_zero_target_skipped(self) -> None:
        assert project_metric(
            metric="m", label="m", current_value=20, target=0, day_of_month=15, days_in_month=30
        ) is None

    def test_projections_follow_planning(self, stressed: AnalysisContext) -> None:
        context = replace(stressed, planning={cascade.CAPTURED_REVENUE: 100000.0, cascade.SESSIONS: 10000.0})
        metrics = [p.metric for p in compute_pacing_projections(context)]
        assert metrics == [cascade.CAPTURED_REVENUE, cascade.SESSIONS]


class TestStrategy:
    def test_healthy_scales(self, healthy: AnalysisContext) -> None:
        assessment = detect_strategic_mode(healthy)
        assert assessment.mode == "scale"
        assert 0 <= assessment.score <= 100

    def test_critical_restructures(self) -> None:
        context = AnalysisContext(
            tenant_id="t1",
            period=PERIOD,
            account=AccountMetrics.build(spend=1000, revenue=1000, conversions=5),
        )
        trend = TrendData(
            classification="declining", slope_pct=-5.0, moving_avg_7d=50, previous_moving_avg_7d=80, data_points=10
        )
        assert detect_strategic_mode(context, trend).mode == "restructure"

    def test_bottleneck_requires_web(self, healthy: AnalysisContext) -> None:
        assert detect_bottleneck(healthy) is None

    def test_bottleneck_default_traffic(self, stressed: AnalysisContext) -> None:
        bottleneck = detect_bottleneck(stressed)
        assert bottleneck.constraint == "traffic"
        assert 0.0 <= bottleneck.severity <= 1.0

    def test_bottleneck_underspent_budget(self, stressed: AnalysisContext) -> None:
        context = replace(stressed, planning={cascade.MEDIA_INVESTMENT: 10000.0})
        assert detect_bottleneck(context).constraint == "budget"
