"""
intelligence/analyzers/risk.py

Negative patterns that threaten the account: unprofitable ROAS, SKUs that
should be paused, weak landing traffic, checkout drop-off and revenue
concentrated in a single SKU.
"""

from __future__ import annotations

from alerts.types import SEVERITY_DANGER, SEVERITY_WARN
from app.domain.metrics import AnalysisContext
from intelligence.base import BaseAnalyzer
from intelligence.financial_impact import (
    TARGET_BOUNCE_RATE,
    TARGET_CART_ABANDONMENT,
    impact,
    quantify_bounce_impact,
    quantify_cart_abandonment,
    quantify_concentration_risk,
    quantify_pause_skus,
)
from intelligence.types import Insight, Recommendation
from kpi.ratios import safe_div
from kpi.status import PAUSE_ROAS_BELOW, STATUS_PAUSE

CRITICAL_ROAS_MIN_SPEND: float = 500.0
PAUSE_SKUS_MIN_SPEND: float = 500.0
BOUNCE_WARN: float = 0.55
BOUNCE_DANGER: float = 0.65
CART_WARN: float = 75.0
CART_DANGER: float = 85.0
CONCENTRATION_MIN_SKUS: int = 6
CONCENTRATION_SHARE: float = 50.0


class RiskAnalyzer(BaseAnalyzer):
    category = "risk"

    def analyze(self, context: AnalysisContext) -> list[Insight]:
        account = context.account
        if account is None:
            return []

        insights: list[Insight] = []
        skus = list(context.skus)
        web = context.web

        if account.spend > CRITICAL_ROAS_MIN_SPEND and account.roas < PAUSE_ROAS_BELOW:
            lost = max(account.spend * (PAUSE_ROAS_BELOW - account.roas), 0.0)
            insights.append(
                Insight(
                    id="risk-roas-critical",
                    category="risk",
                    severity=SEVERITY_DANGER,
                    title=f"Account ROAS at {account.roas:.1f}, below the pause limit ({PAUSE_ROAS_BELOW:.1f})",
                    description=(
                        f"Spend of {account.spend:,.2f} returned {account.revenue:,.2f} in revenue. "
                        "The operation risks running at a loss."
                    ),
                    metrics={"current": account.roas, "target": PAUSE_ROAS_BELOW},
                    recommendations=(
                        Recommendation(
                            action="Urgent review of every campaign",
                            impact="high",
                            effort="high",
                            steps=(
                                "Pause campaigns with ROAS below 3",
                                "Lower bids by 20% on the remaining campaigns",
                                "Focus budget on the top 5 SKUs by ROAS",
                            ),
                        ),
                    ),
                    source="pattern",
                    financial_impact=impact(
                        lost,
                        0,
                        0.6,
                        "immediate",
                        f"ROAS {account.roas:.1f} vs breakeven {PAUSE_ROAS_BELOW:.1f}: {lost:,.2f} revenue gap",
                    ),
                )
            )

        to_pause = [s for s in skus if s.status == STATUS_PAUSE]
        paused_spend = sum(s.spend for s in to_pause)
        if to_pause and paused_spend > PAUSE_SKUS_MIN_SPEND:
            avg_roas = sum(s.roas * s.spend for s in to_pause) / max(paused_spend, 1.0)
            insights.append(
                Insight(
                    id="risk-pause-skus",
                    category="risk",
                    severity=SEVERITY_WARN,
                    title=f"{len(to_pause)} SKU(s) should be paused, {paused_spend:,.2f} at risk",
                    description=(
                        "SKUs below the performance floor: "
                        f"{', '.join(s.name for s in to_pause[:3])}."
                    ),
                    metrics={"current": paused_spend, "entity_name": to_pause[0].name},
                    recommendations=(
                        Recommendation(
                            action="Pause ads for SKUs with status pause",
                            impact="high",
                            effort="low",
                            steps=tuple(
                                f'Pause "{s.name}" (ROAS {s.roas:.1f}, CPA {s.cpa:,.2f})' for s in to_pause[:3]
                            ),
                        ),
                    ),
                    source="pattern",
                    financial_impact=quantify_pause_skus(paused_spend, avg_roas),
                )
            )

        if web is not None and web.bounce_rate > BOUNCE_WARN:
            insights.append(
                Insight(
                    id="risk-bounce",
                    category="risk",
                    severity=SEVERITY_DANGER if web.bounce_rate > BOUNCE_DANGER else SEVERITY_WARN,
                    title=f"Bounce rate at {web.bounce_rate:.1%}",
                    description=(
                        "More than half of visitors leave without interacting. This points to "
                        "experience, speed or traffic relevance problems."
                    ),
                    metrics={"current": web.bounce_rate, "target": TARGET_BOUNCE_RATE},
                    recommendations=(
                        Recommendation(
                            action="Improve the landing page experience",
                            impact="high",
                            effort="high",
                            steps=(
                                "Measure page load speed",
                                "Check ad-to-landing relevance",
                                "Strengthen the above-the-fold call to action",
                            ),
                        ),
                    ),
                    source="pattern",
                    financial_impact=quantify_bounce_impact(web, account),
                )
            )

        if web is not None and web.cart_abandonment_rate > CART_WARN:
            insights.append(
                Insight(
                    id="risk-cart-abandon",
                    category="risk",
                    severity=SEVERITY_DANGER if web.cart_abandonment_rate > CART_DANGER else SEVERITY_WARN,
                    title=f"Cart abandonment at {web.cart_abandonment_rate:.1f}%",
                    description=(
                        "Most shoppers who add to cart do not complete the purchase. "
                        "Investigate checkout, shipping and payment."
                    ),
                    metrics={"current": web.cart_abandonment_rate, "target": TARGET_CART_ABANDONMENT},
                    recommendations=(
                        Recommendation(
                            action="Optimize the checkout funnel",
                            impact="high",
                            effort="medium",
                            steps=(
                                "Simplify checkout steps",
                                "Offer free shipping above a threshold",
                                "Add payment options",
                            ),
                        ),
                    ),
                    source="pattern",
                    financial_impact=quantify_cart_abandonment(web),
                )
            )

        if len(skus) >= CONCENTRATION_MIN_SKUS:
            ranked = sorted(skus, key=lambda s: -s.revenue)
            total_revenue = sum(s.revenue for s in ranked)
            if total_revenue > 0:
                top = ranked[0]
                share = safe_div(top.revenue, total_revenue) * 100
                if share > CONCENTRATION_SHARE:
                    insights.append(
                        Insight(
                            id="risk-concentration",
                            category="risk",
                            severity=SEVERITY_WARN,
                            title=f"{share:.0f}% of revenue comes from one SKU",
                            description=(
                                f'"{top.name}" carries more than half of revenue. '
                                "A drop in this product hits the whole account."
                            ),
                            metrics={"current": round(share, 1), "target": 30.0, "entity_name": top.name},
                            recommendations=(
                                Recommendation(
                                    action="Spread investment across more SKUs",
                                    impact="medium",
                                    effort="medium",
                                ),
                            ),
                            source="pattern",
                            financial_impact=quantify_concentration_risk(top.revenue, total_revenue),
                        )
                    )

        return insights
