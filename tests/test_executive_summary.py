"""
tests/test_executive_summary.py

Pytest unit tests for the executive summary attached to every
intelligence result.

Coverage
--------
- Headline: mode and constraint labels, health fallback, top priority
- Top action: empty decisions, positive impact suffix, plain action
- Key metrics: health bands, ROAS/CPA against targets, zero conversions,
  revenue pacing, opportunity and risk totals
- analyze() attaches a summary consistent with the rest of the result
"""

from __future__ import annotations

from datetime import date

import pytest

from alerts.types import SmartAlert
from app.domain.metrics import AccountMetrics, AnalysisContext, Period, WebAnalyticsSummary
from intelligence.engine import analyze
from intelligence.financial_impact import impact
from intelligence.pacing import project_metric
from intelligence.ranker import rank_decisions
from intelligence.summary import NO_ACTION, build_headline, build_key_metrics, build_top_action
from intelligence.types import Insight, ModeAssessment, Recommendation
from planning import cascade

PERIOD = Period(start=date(2026, 3, 1), end=date(2026, 3, 15))


def _insight(insight_id: str, *, severity: str = "warn", net: float = 100.0) -> Insight:
    return Insight(
        id=insight_id,
        category="risk",
        severity=severity,
        title=f"Title {insight_id}",
        description="",
        metrics={},
        recommendations=(Recommendation(action=f"Fix {insight_id}", impact="high", effort="low"),),
        source="pattern",
        financial_impact=impact(net, 0, 0.8, "short", "test"),
    )


def _alert() -> SmartAlert:
    return SmartAlert(
        id="acct-roas-drop",
        category="account",
        severity="danger",
        title="Account ROAS down 35.7%",
        description="",
        metric="roas",
        current_value=4.76,
        previous_value=7.4,
        delta_pct=-35.7,
    )


def _metric(metrics, label: str):
    return next(m for m in metrics if m.label == label)


# ---------------------------------------------------------------------------
# Headline and top action
# ---------------------------------------------------------------------------


class TestHeadline:
    def test_health_fallback(self) -> None:
        assert build_headline(80.4, None, None, None) == "Health score 80/100"

    def test_mode_and_top_priority(self) -> None:
        mode = ModeAssessment(mode="protect", confidence=0.7, score=45, signals=(), description="")
        headline = build_headline(50.0, mode, None, _alert())
        assert headline == "Mode: Protect. Watch: Account ROAS down 35.7%"


class TestTopAction:
    def test_no_decisions(self) -> None:
        assert build_top_action([]) == NO_ACTION

    def test_positive_impact_suffix(self) -> None:
        decisions = rank_decisions([_insight("a", net=1500.0)])
        assert build_top_action(decisions) == "Fix a (estimated impact 1,500.00/month)"

    def test_zero_impact_plain_action(self) -> None:
        decisions = rank_decisions([_insight("a", net=0.0)])
        assert build_top_action(decisions) == "Fix a"


# ---------------------------------------------------------------------------
# Key metrics
# ---------------------------------------------------------------------------


class TestKeyMetrics:
    @pytest.mark.parametrize(("score", "status"), [(90.0, "ok"), (75.0, "ok"), (60.0, "warn"), (49.9, "danger")])
    def test_health_bands(self, score: float, status: str) -> None:
        metrics = build_key_metrics(score, None, None, [], [], 7.0, 80.0)
        assert metrics[0].label == "Health score"
        assert metrics[0].status == status

    def test_account_against_targets(self) -> None:
        account = AccountMetrics.build(spend=1000, revenue=8000, conversions=10)
        metrics = build_key_metrics(80.0, account, None, [], [], 7.0, 80.0)

        assert _metric(metrics, "ROAS").value == "8.00"
        assert _metric(metrics, "ROAS").status == "ok"
        assert _metric(metrics, "CPA").value == "100.00"
        assert _metric(metrics, "CPA").status == "warn"

    def test_zero_conversions(self) -> None:
        account = AccountMetrics.build(spend=1000, revenue=0, conversions=0)
        metrics = build_key_metrics(50.0, account, None, [], [], 7.0, 80.0)
        assert _metric(metrics, "CPA").status == "danger"

    def test_no_account_metrics_without_spend(self) -> None:
        metrics = build_key_metrics(100.0, AccountMetrics.build(spend=0, revenue=0), None, [], [], 7.0, 80.0)
        assert [m.label for m in metrics] == ["Health score"]

    def test_revenue_pacing(self) -> None:
        projection = project_metric(
            metric=cascade.CAPTURED_REVENUE,
            label="Captured revenue",
            current_value=10000,
            target=100000,
            day_of_month=15,
            days_in_month=31,
            is_currency=True,
        )
        metrics = build_key_metrics(80.0, None, None, [], [projection], 7.0, 80.0)
        assert _metric(metrics, "Revenue projection").status == "danger"

    def test_opportunity_and_risk_totals(self) -> None:
        decisions = rank_decisions(
            [
                _insight("a", severity="danger", net=500.0),
                _insight("b", severity="warn", net=250.0),
                _insight("c", severity="danger", net=-100.0),
            ]
        )
        metrics = build_key_metrics(60.0, None, None, decisions, [], 7.0, 80.0)

        assert _metric(metrics, "Total opportunity").value == "750.00"
        assert _metric(metrics, "Identified risk").value == "600.00"
        assert _metric(metrics, "Identified risk").status == "danger"


# ---------------------------------------------------------------------------
# analyze()
# ---------------------------------------------------------------------------


class TestSummaryOnResult:
    @pytest.fixture()
    def context(self) -> AnalysisContext:
        return AnalysisContext(
            tenant_id="t1",
            period=PERIOD,
            account=AccountMetrics.build(spend=2000, revenue=6000, conversions=40, clicks=2000),
            web=WebAnalyticsSummary(
                sessions=5000,
                users=4000,
                purchases=40,
                purchase_revenue=6000,
                bounce_rate=0.7,
                cart_abandonment_rate=80.0,
            ),
        )

    def test_attached_and_consistent(self, context: AnalysisContext) -> None:
        result = analyze(context)
        summary = result.executive_summary

        assert summary is not None
        assert summary.headline.startswith("Mode: ")
        assert summary.key_metrics[0].value == f"{result.health_score:.0f}/100"
        assert _metric(summary.key_metrics, "ROAS").value == "3.00"
        assert summary.top_action == build_top_action(result.decisions)
        if result.quick_wins:
            assert summary.quick_win is not None
        else:
            assert summary.quick_win is None

    def test_planning_target_used_for_roas_status(self, context: AnalysisContext) -> None:
        planned = AnalysisContext(
            tenant_id=context.tenant_id,
            period=context.period,
            account=context.account,
            web=context.web,
            planning={cascade.CAPTURED_ROAS: 2.5},
        )
        summary = analyze(planned).executive_summary
        assert _metric(summary.key_metrics, "ROAS").status == "ok"

    def test_serialized(self, context: AnalysisContext) -> None:
        payload = analyze(context).to_dict()["executive_summary"]
        assert set(payload) == {"headline", "top_action", "quick_win", "key_metrics"}
        assert payload["key_metrics"][0]["label"] == "Health score"
