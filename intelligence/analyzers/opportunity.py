"""
intelligence/analyzers/opportunity.py

Growth room the account is leaving on the table.
"""

from __future__ import annotations

from alerts.types import SEVERITY_SUCCESS
from app.domain.metrics import AnalysisContext
from intelligence.base import BaseAnalyzer
from intelligence.financial_impact import UNDERINVESTMENT_DISCOUNT, impact, quantify_underinvestment
from intelligence.types import Insight, Recommendation
from kpi.status import STATUS_ESCALATE

STAR_MIN_ROAS: float = 8.0
STAR_MIN_CONVERSIONS: float = 2.0
STAR_SPEND_SHARE_OF_AVG: float = 0.5
MAX_SCALABLE_SKUS: int = 5
SCALABLE_UPLIFT: float = 0.2
GROWTH_MIN_ROAS: float = 8.0
GROWTH_MIN_SPEND: float = 1000.0
GROWTH_BUDGET_STEP: float = 0.2
# Diminishing-returns factor on extra account-level budget.
GROWTH_DISCOUNT: float = 0.7


class OpportunityAnalyzer(BaseAnalyzer):
    category = "opportunity"

    def analyze(self, context: AnalysisContext) -> list[Insight]:
        account = context.account
        skus = list(context.skus)
        if account is None or not skus:
            return []

        insights: list[Insight] = []

        spending = [s for s in skus if s.spend > 0]
        avg_spend = sum(s.spend for s in skus) / max(len(spending), 1)
        stars = sorted(
            (
                s
                for s in spending
                if s.roas > STAR_MIN_ROAS
                and s.spend < avg_spend * STAR_SPEND_SHARE_OF_AVG
                and s.conversions >= STAR_MIN_CONVERSIONS
            ),
            key=lambda s: -s.roas,
        )
        if stars:
            top = stars[0]
            base = quantify_underinvestment(top.spend, avg_spend, top.roas)
            total_gain = sum(
                min(avg_spend - s.spend, s.spend * 2) * s.roas * UNDERINVESTMENT_DISCOUNT for s in stars
            )
            insights.append(
                Insight(
                    id="opp-underinvested",
                    category="opportunity",
                    severity=SEVERITY_SUCCESS,
                    title=f"{len(stars)} SKU(s) with high ROAS and low investment",
                    description=(
                        f"{top.name} returns ROAS {top.roas:.1f} on only {top.spend:,.2f} "
                        f"(average {avg_spend:,.2f})."
                    ),
                    metrics={"current": top.roas, "entity_name": top.name},
                    recommendations=(
                        Recommendation(
                            action=f'Raise budget for "{top.name}" (ROAS {top.roas:.1f})',
                            impact="high",
                            effort="low",
                            steps=tuple(
                                f'Scale "{s.name}": ROAS {s.roas:.1f}, spend {s.spend:,.2f}' for s in stars[:3]
                            ),
                        ),
                    ),
                    source="pattern",
                    financial_impact=impact(
                        total_gain,
                        0,
                        base.confidence,
                        base.timeframe,
                        f"{len(stars)} under-invested SKUs: potential +{total_gain:,.2f} revenue",
                    ),
                )
            )

        scalable = [s for s in skus if s.status == STATUS_ESCALATE]
        if 0 < len(scalable) <= MAX_SCALABLE_SKUS:
            scalable_revenue = sum(s.revenue for s in scalable)
            gain = scalable_revenue * SCALABLE_UPLIFT
            insights.append(
                Insight(
                    id="opp-scalable",
                    category="opportunity",
                    severity=SEVERITY_SUCCESS,
                    title=f"{len(scalable)} SKU(s) ready to scale",
                    description=(
                        "Healthy ROAS, margin and stock: "
                        f"{', '.join(s.name for s in scalable)}. Combined revenue {scalable_revenue:,.2f}."
                    ),
                    metrics={"current": scalable_revenue},
                    recommendations=(
                        Recommendation(
                            action="Increase investment in SKUs marked escalate",
                            impact="high",
                            effort="low",
                        ),
                    ),
                    source="pattern",
                    financial_impact=impact(
                        gain,
                        0,
                        0.45,
                        "short",
                        f"+{SCALABLE_UPLIFT:.0%} on {scalable_revenue:,.2f} = +{gain:,.2f}",
                    ),
                )
            )

        if account.roas > GROWTH_MIN_ROAS and account.spend > GROWTH_MIN_SPEND:
            extra_budget = account.spend * GROWTH_BUDGET_STEP
            gain = extra_budget * account.roas * GROWTH_DISCOUNT
            insights.append(
                Insight(
                    id="opp-growth",
                    category="opportunity",
                    severity=SEVERITY_SUCCESS,
                    title=f"Account ROAS of {account.roas:.1f} leaves room to grow",
                    description=(
                        f"With ROAS above {GROWTH_MIN_ROAS:.0f} there is room to raise investment "
                        "while staying profitable. Test new audiences or creatives."
                    ),
                    metrics={"current": account.roas},
                    recommendations=(
                        Recommendation(
                            action=f"Test a {GROWTH_BUDGET_STEP:.0%} increase in total budget",
                            impact="medium",
                            effort="low",
                        ),
                    ),
                    source="pattern",
                    financial_impact=impact(
                        gain,
                        0,
                        0.4,
                        "short",
                        f"+{extra_budget:,.2f} budget x ROAS {account.roas:.1f} x {GROWTH_DISCOUNT:.0%} = +{gain:,.2f}",
                    ),
                )
            )

        return insights
