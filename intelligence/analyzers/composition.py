"""
intelligence/analyzers/composition.py

Traffic mix across acquisition channels.
"""

from __future__ import annotations

from alerts.types import SEVERITY_SUCCESS, SEVERITY_WARN
from app.domain.metrics import AnalysisContext
from intelligence.base import BaseAnalyzer
from intelligence.financial_impact import ZERO_IMPACT
from intelligence.types import Insight, Recommendation
from kpi.ratios import safe_div

PAID_CHANNELS: frozenset[str] = frozenset(
    {"Cross-network", "Paid Search", "Paid Social", "Paid Shopping", "Paid Other", "Display"}
)
ORGANIC_CHANNELS: frozenset[str] = frozenset({"Organic Search", "Organic Social"})
DIRECT_CHANNEL = "Direct"

PAID_HEAVY_SHARE: float = 70.0
ORGANIC_STRONG_SHARE: float = 40.0
ORGANIC_STRONG_MAX_PAID: float = 30.0
DIRECT_STRONG_SHARE: float = 25.0
BEST_CHANNEL_MIN_SESSIONS: float = 50.0
BEST_CHANNEL_LIFT: float = 1.5


class CompositionAnalyzer(BaseAnalyzer):
    category = "composition"

    def analyze(self, context: AnalysisContext) -> list[Insight]:
        channels = list(context.channels)
        web = context.web
        if not channels or web is None:
            return []

        total = sum(c.sessions for c in channels)
        if total == 0:
            return []

        paid = sum(c.sessions for c in channels if c.channel in PAID_CHANNELS)
        organic = sum(c.sessions for c in channels if c.channel in ORGANIC_CHANNELS)
        direct = sum(c.sessions for c in channels if c.channel == DIRECT_CHANNEL)
        paid_pct = paid / total * 100
        organic_pct = organic / total * 100
        direct_pct = direct / total * 100

        insights: list[Insight] = []

        if paid_pct > PAID_HEAVY_SHARE:
            insights.append(
                Insight(
                    id="comp-paid-heavy",
                    category="composition",
                    severity=SEVERITY_WARN,
                    title=f"{paid_pct:.0f}% of traffic is paid",
                    description=(
                        f"Organic brings only {organic_pct:.0f}% of sessions. "
                        "SEO investment can lower acquisition cost over time."
                    ),
                    metrics={"current": round(paid_pct, 1), "target": 50.0},
                    recommendations=(
                        Recommendation(
                            action="Invest in SEO and content to grow organic traffic",
                            impact="high",
                            effort="high",
                            steps=(
                                "Optimize product pages for search",
                                "Publish related content",
                                "Improve site speed",
                            ),
                        ),
                    ),
                    source="pattern",
                    financial_impact=ZERO_IMPACT,
                )
            )

        if organic_pct > ORGANIC_STRONG_SHARE and paid_pct < ORGANIC_STRONG_MAX_PAID:
            insights.append(
                Insight(
                    id="comp-organic-strong",
                    category="composition",
                    severity=SEVERITY_SUCCESS,
                    title=f"Strong organic base at {organic_pct:.0f}% of traffic",
                    description="Paid media can capture incremental demand on top of this base.",
                    metrics={"current": round(organic_pct, 1)},
                    recommendations=(),
                    source="pattern",
                    financial_impact=ZERO_IMPACT,
                )
            )

        if direct_pct > DIRECT_STRONG_SHARE:
            insights.append(
                Insight(
                    id="comp-direct-strong",
                    category="composition",
                    severity=SEVERITY_SUCCESS,
                    title=f"{direct_pct:.0f}% direct traffic",
                    description="Good brand recall. This traffic carries no acquisition cost.",
                    metrics={"current": round(direct_pct, 1)},
                    recommendations=(),
                    source="pattern",
                    financial_impact=ZERO_IMPACT,
                )
            )

        converting = [c for c in channels if c.sessions > BEST_CHANNEL_MIN_SESSIONS and c.conversions > 0]
        if len(converting) > 1 and context.account is not None:
            best = max(converting, key=lambda c: c.conversions / c.sessions)
            best_rate = best.conversions / best.sessions * 100
            avg_rate = safe_div(web.purchases, web.sessions) * 100
            if avg_rate > 0 and best_rate > avg_rate * BEST_CHANNEL_LIFT:
                insights.append(
                    Insight(
                        id="comp-best-channel",
                        category="composition",
                        severity=SEVERITY_SUCCESS,
                        title=(
                            f'Channel "{best.channel}" converts at {best_rate:.2f}%, '
                            f"{best_rate / avg_rate:.1f}x the average"
                        ),
                        description=(
                            f"Conversion rate {best_rate:.2f}% vs site average {avg_rate:.2f}%. "
                            "Consider directing more budget to this channel."
                        ),
                        metrics={
                            "current": round(best_rate, 2),
                            "target": round(avg_rate, 2),
                            "entity_name": best.channel,
                        },
                        recommendations=(
                            Recommendation(
                                action=f'Increase investment in "{best.channel}"',
                                impact="high",
                                effort="low",
                            ),
                        ),
                        source="pattern",
                        financial_impact=ZERO_IMPACT,
                    )
                )

        return insights
