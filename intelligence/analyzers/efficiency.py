"""
intelligence/analyzers/efficiency.py

Finds ad spend that is not paying back: non-converting campaigns,
high-spend low-ROAS campaigns, expensive SKUs and budget concentrated in
low-return SKUs.
"""

from __future__ import annotations

from alerts.types import SEVERITY_DANGER, SEVERITY_WARN
from app.domain.metrics import AnalysisContext
from intelligence.base import BaseAnalyzer
from intelligence.financial_impact import impact, quantify_budget_reallocation, quantify_wasted_spend
from intelligence.types import Insight, Recommendation
from kpi.ratios import safe_div
from kpi.status import MAINTAIN_ROAS_BELOW, PAUSE_CPA_ABOVE, PAUSE_ROAS_BELOW

ZERO_CONV_MIN_SPEND: float = 200.0
LOW_ROAS_CAMPAIGN_MIN_SPEND: float = 500.0
LOW_ROAS_CAMPAIGN_CEILING: float = 3.0
HIGH_CPA_MIN_SPEND: float = 300.0
LOW_ROAS_BUDGET_SHARE: float = 40.0
MIN_SKUS_FOR_DISTRIBUTION: int = 4
FALLBACK_LOW_ROAS: float = 2.0


def _names(items: list, limit: int = 3) -> str:
    shown = ", ".join(item.name for item in items[:limit])
    extra = len(items) - limit
    return f"{shown} and {extra} more" if extra > 0 else shown


class EfficiencyAnalyzer(BaseAnalyzer):
    category = "efficiency"

    def analyze(self, context: AnalysisContext) -> list[Insight]:
        account = context.account
        if account is None or account.spend == 0:
            return []

        insights: list[Insight] = []
        campaigns = list(context.campaigns)
        skus = list(context.skus)

        zero_conv = [c for c in campaigns if c.spend > ZERO_CONV_MIN_SPEND and c.conversions == 0]
        if zero_conv:
            waste = sum(c.spend for c in zero_conv)
            insights.append(
                Insight(
                    id="eff-zero-conv",
                    category="efficiency",
                    severity=SEVERITY_DANGER,
                    title=f"{len(zero_conv)} campaign(s) without conversions spending {waste:,.2f}",
                    description=f"Campaigns: {_names(zero_conv)}.",
                    metrics={"current": waste, "entity_name": zero_conv[0].name},
                    recommendations=(
                        Recommendation(
                            action="Pause non-converting campaigns now",
                            impact="high",
                            effort="low",
                            steps=tuple(f'Pause "{c.name}" ({c.spend:,.2f} spent)' for c in zero_conv[:3]),
                        ),
                    ),
                    source="pattern",
                    financial_impact=quantify_wasted_spend(waste),
                )
            )

        wasteful = [
            c
            for c in campaigns
            if c.spend > LOW_ROAS_CAMPAIGN_MIN_SPEND and c.roas < LOW_ROAS_CAMPAIGN_CEILING and c.conversions > 0
        ]
        if wasteful:
            waste = sum(c.spend for c in wasteful)
            avg_roas = sum(c.roas for c in wasteful) / len(wasteful)
            strong = [c.roas for c in campaigns if c.roas > MAINTAIN_ROAS_BELOW]
            to_roas = max(strong) if strong else MAINTAIN_ROAS_BELOW
            insights.append(
                Insight(
                    id="eff-low-roas-camp",
                    category="efficiency",
                    severity=SEVERITY_WARN,
                    title=f"{waste:,.2f} invested in campaigns with ROAS below {LOW_ROAS_CAMPAIGN_CEILING:.0f}",
                    description=(
                        f"{len(wasteful)} campaign(s) averaging ROAS {avg_roas:.1f}. "
                        "Consider redistributing budget."
                    ),
                    metrics={
                        "current": round(avg_roas, 2),
                        "target": PAUSE_ROAS_BELOW,
                        "gap": round(safe_div(avg_roas - PAUSE_ROAS_BELOW, PAUSE_ROAS_BELOW) * 100, 1),
                    },
                    recommendations=(
                        Recommendation(
                            action=f"Move budget to campaigns with ROAS above {MAINTAIN_ROAS_BELOW:.0f}",
                            impact="high",
                            effort="medium",
                            steps=tuple(f'Cut budget on "{c.name}" (ROAS {c.roas:.1f})' for c in wasteful[:3]),
                        ),
                    ),
                    source="pattern",
                    financial_impact=quantify_budget_reallocation(waste, avg_roas, to_roas),
                )
            )

        high_cpa = [s for s in skus if s.cpa > PAUSE_CPA_ABOVE and s.spend > HIGH_CPA_MIN_SPEND]
        if high_cpa:
            worst = max(high_cpa, key=lambda s: s.cpa)
            saving = sum((s.cpa - PAUSE_CPA_ABOVE) * s.conversions for s in high_cpa)
            insights.append(
                Insight(
                    id="eff-high-cpa-sku",
                    category="efficiency",
                    severity=SEVERITY_WARN,
                    title=f"{len(high_cpa)} SKU(s) with CPA above {PAUSE_CPA_ABOVE:,.0f}",
                    description=f"Worst: {worst.name} with CPA {worst.cpa:,.2f} and ROAS {worst.roas:.1f}.",
                    metrics={"current": worst.cpa, "target": PAUSE_CPA_ABOVE, "entity_name": worst.name},
                    recommendations=(
                        Recommendation(
                            action=f"Review ads for SKU {worst.sku}",
                            impact="medium",
                            effort="medium",
                        ),
                    ),
                    source="pattern",
                    financial_impact=impact(
                        0,
                        saving,
                        0.5,
                        "short",
                        f"CPA down to {PAUSE_CPA_ABOVE:,.0f} on {len(high_cpa)} SKUs saves {saving:,.2f}",
                    ),
                )
            )

        if len(skus) >= MIN_SKUS_FOR_DISTRIBUTION:
            total_spend = sum(s.spend for s in skus)
            low = [s for s in skus if s.roas < PAUSE_ROAS_BELOW and s.spend > 0]
            low_spend = sum(s.spend for s in low)
            share = safe_div(low_spend, total_spend) * 100
            if share > LOW_ROAS_BUDGET_SHARE:
                high = [s.roas for s in skus if s.roas > MAINTAIN_ROAS_BELOW]
                avg_high = sum(high) / len(high) if high else MAINTAIN_ROAS_BELOW
                avg_low = sum(s.roas for s in low) / len(low) if low else FALLBACK_LOW_ROAS
                insights.append(
                    Insight(
                        id="eff-budget-dist",
                        category="efficiency",
                        severity=SEVERITY_WARN,
                        title=f"{share:.0f}% of spend in SKUs with ROAS below {PAUSE_ROAS_BELOW:.0f}",
                        description=(
                            f"{low_spend:,.2f} of {total_spend:,.2f} sits in {len(low)} low-return SKUs."
                        ),
                        metrics={"current": round(share, 1), "target": 20.0, "gap": round(share - 20.0, 1)},
                        recommendations=(
                            Recommendation(
                                action=f"Move budget to SKUs with ROAS above {MAINTAIN_ROAS_BELOW:.0f}",
                                impact="high",
                                effort="medium",
                            ),
                        ),
                        source="pattern",
                        financial_impact=quantify_budget_reallocation(low_spend * 0.5, avg_low, avg_high),
                    )
                )

        return insights
