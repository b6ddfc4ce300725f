"""
intelligence/analyzers/planning_gap.py

Compares month-to-date performance with the cascaded monthly targets.

Amount targets (revenue, spend, sessions) are prorated by how far into the
month the period ends; ratio targets (ROAS, conversion rate, ticket, CPA)
are compared directly. A target that is absent or zero is skipped.
"""

from __future__ import annotations

from alerts.types import SEVERITY_DANGER, SEVERITY_SUCCESS, SEVERITY_WARN, Severity
from app.domain.metrics import AnalysisContext
from intelligence.base import BaseAnalyzer
from intelligence.financial_impact import (
    ZERO_IMPACT,
    average_order_value,
    impact,
    quantify_revenue_gap,
)
from intelligence.types import Insight, Recommendation
from planning import cascade
from kpi.ratios import safe_div

REVENUE_GAP_TRIGGER: float = 10.0
ROAS_GAP_TRIGGER: float = 15.0
BUDGET_GAP_TRIGGER: float = 20.0
CONVERSION_GAP_TRIGGER: float = -15.0
TICKET_GAP_TRIGGER: float = 15.0
SESSIONS_GAP_TRIGGER: float = 15.0
CPA_GAP_TRIGGER: float = 20.0

FALLBACK_CONVERSION_RATE: float = 0.02

# (upper bound, severity) for gaps where negative is bad.
SHORTFALL_BANDS: list[tuple[float, Severity]] = [
    (-20.0, SEVERITY_DANGER),
    (0.0, SEVERITY_WARN),
]


def _shortfall_severity(gap: float) -> Severity:
    for threshold, label in SHORTFALL_BANDS:
        if gap < threshold:
            return label
    return SEVERITY_SUCCESS


def _gap_pct(actual: float, target: float) -> float:
    return safe_div(actual - target, target) * 100


def _target(planning: dict[str, float], *names: str) -> float:
    for name in names:
        value = planning.get(name)
        if value:
            return value
    return 0.0


class PlanningGapAnalyzer(BaseAnalyzer):
    category = "planning_gap"

    def analyze(self, context: AnalysisContext) -> list[Insight]:
        if context.account is None and context.web is None:
            return []

        insights: list[Insight] = []
        for check in (
            self._revenue,
            self._roas,
            self._budget,
            self._conversion,
            self._ticket,
            self._sessions,
            self._cpa,
        ):
            insight = check(context)
            if insight is not None:
                insights.append(insight)
        return insights

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    @staticmethod
    def _revenue(context: AnalysisContext) -> Insight | None:
        target = _target(context.planning, cascade.CAPTURED_REVENUE)
        account = context.account
        if not target or account is None:
            return None

        period = context.period
        pace = period.day_of_month / period.days_in_month
        prorated = target * pace
        gap = _gap_pct(account.revenue, prorated)
        if abs(gap) <= REVENUE_GAP_TRIGGER:
            return None

        remaining = period.days_in_month - period.day_of_month
        daily_needed = safe_div(target - account.revenue, remaining)
        billed = context.planning.get(cascade.BILLED_REVENUE)
        billed_note = f" Billed revenue target: {billed:,.2f}." if billed is not None else ""

        if gap < 0:
            title = f"Captured revenue {abs(gap):.0f}% behind planned pace"
            description = (
                f"Actual {account.revenue:,.2f} vs expected {prorated:,.2f} "
                f"(monthly target {target:,.2f}).{billed_note} "
                f"{target - account.revenue:,.2f} still to capture this month."
            )
            recommendations = (
                Recommendation(
                    action=f"Raise captured revenue by {daily_needed:,.2f}/day to reach the target",
                    impact="high",
                    effort="medium",
                ),
            )
        else:
            title = f"Captured revenue {gap:.0f}% ahead of planned pace"
            description = (
                f"Actual {account.revenue:,.2f} vs expected {prorated:,.2f}. "
                f"On course to beat the {target:,.2f} target.{billed_note}"
            )
            recommendations = ()

        return Insight(
            id="pg-revenue-captured",
            category="planning_gap",
            severity=_shortfall_severity(gap),
            title=title,
            description=description,
            metrics={"current": account.revenue, "target": target, "gap": round(gap, 1)},
            recommendations=recommendations,
            source="planning",
            financial_impact=quantify_revenue_gap(
                account.revenue, target, period.day_of_month, period.days_in_month
            ),
        )

    @staticmethod
    def _roas(context: AnalysisContext) -> Insight | None:
        target = _target(context.planning, cascade.CAPTURED_ROAS)
        account = context.account
        if not target or account is None or account.spend <= 0:
            return None

        gap = _gap_pct(account.roas, target)
        if abs(gap) <= ROAS_GAP_TRIGGER:
            return None

        gain = max(account.spend * target - account.revenue, 0.0)
        recommendations: tuple[Recommendation, ...] = ()
        if gap < -20:
            recommendations = (
                Recommendation(
                    action="Review campaigns with ROAS below 5",
                    impact="high",
                    effort="low",
                    steps=(
                        "List campaigns with ROAS < 5",
                        "Pause those spending over 500 without conversions",
                    ),
                ),
            )

        return Insight(
            id="pg-roas",
            category="planning_gap",
            severity=_shortfall_severity(gap),
            title=(
                f"ROAS {abs(gap):.0f}% below target" if gap < 0 else f"ROAS {gap:.0f}% above target"
            ),
            description=f"Current ROAS {account.roas:.1f} vs target {target:.1f}.",
            metrics={"current": account.roas, "target": target, "gap": round(gap, 1)},
            recommendations=recommendations,
            source="planning",
            financial_impact=impact(
                gain,
                0,
                0.5,
                "short",
                f"ROAS {account.roas:.1f} -> {target:.1f}: +{gain:,.2f}",
            ),
        )

    @staticmethod
    def _budget(context: AnalysisContext) -> Insight | None:
        target = _target(context.planning, cascade.MEDIA_INVESTMENT, cascade.TOTAL_INVESTMENT)
        account = context.account
        if not target or account is None:
            return None

        period = context.period
        expected = target * period.day_of_month / period.days_in_month
        gap = _gap_pct(account.spend, expected)
        if abs(gap) <= BUDGET_GAP_TRIGGER:
            return None

        if gap > 0:
            overspend = account.spend - expected
            severity: Severity = SEVERITY_DANGER if gap > 40 else SEVERITY_WARN
            title = f"Ad spend {gap:.0f}% ahead of planned pace"
            recommendation = Recommendation(
                action="Trim daily budgets to stay within the monthly plan",
                impact="medium",
                effort="low",
            )
            financial = impact(0, overspend, 0.7, "immediate", f"Overspend of {overspend:,.2f} in the period")
        else:
            underspend = expected - account.spend
            gain = underspend * account.roas
            severity = SEVERITY_SUCCESS
            title = f"Ad spend {abs(gap):.0f}% behind planned pace"
            recommendation = Recommendation(
                action="Spend below plan may cap revenue; review budget distribution",
                impact="medium",
                effort="low",
            )
            financial = impact(
                gain,
                0,
                0.5,
                "short",
                f"+{underspend:,.2f} spend x ROAS {account.roas:.1f} = +{gain:,.2f}",
            )

        return Insight(
            id="pg-budget",
            category="planning_gap",
            severity=severity,
            title=title,
            description=(
                f"Spend {account.spend:,.2f} vs expected {expected:,.2f} by day "
                f"{period.day_of_month}. Monthly budget: {target:,.2f}."
            ),
            metrics={"current": account.spend, "target": target, "gap": round(gap, 1)},
            recommendations=(recommendation,),
            source="planning",
            financial_impact=financial,
        )

    @staticmethod
    def _conversion(context: AnalysisContext) -> Insight | None:
        target = _target(context.planning, cascade.CONVERSION_RATE)
        web = context.web
        if not target or web is None or web.sessions <= 0:
            return None

        actual = web.conversion_rate
        gap = _gap_pct(actual, target)
        if gap >= CONVERSION_GAP_TRIGGER:
            return None

        aov = average_order_value(web, context.account)
        extra_orders = web.sessions * (target - actual)
        gain = extra_orders * aov

        return Insight(
            id="pg-conversion",
            category="planning_gap",
            severity=SEVERITY_DANGER if gap < -25 else SEVERITY_WARN,
            title=f"Conversion rate {abs(gap):.0f}% below plan",
            description=f"Conversion rate {actual:.2%} vs planned {target:.2%}.",
            metrics={"current": actual, "target": target, "gap": round(gap, 1)},
            recommendations=(
                Recommendation(
                    action="Investigate bottlenecks in the conversion funnel",
                    impact="high",
                    effort="medium",
                    steps=(
                        "Check cart abandonment",
                        "Review the checkout page",
                        "Compare prices with competitors",
                    ),
                ),
            ),
            source="planning",
            financial_impact=impact(
                gain,
                0,
                0.4,
                "medium",
                f"+{extra_orders:,.0f} orders x {aov:,.2f} = {gain:,.2f}",
            ),
        )

    @staticmethod
    def _ticket(context: AnalysisContext) -> Insight | None:
        target = _target(context.planning, cascade.AVERAGE_TICKET)
        account = context.account
        if not target or account is None or account.conversions <= 0:
            return None

        actual = account.revenue / account.conversions
        gap = _gap_pct(actual, target)
        if abs(gap) <= TICKET_GAP_TRIGGER:
            return None

        if gap < 0:
            gain = (target - actual) * account.conversions
            financial = impact(
                gain,
                0,
                0.4,
                "medium",
                f"+{target - actual:,.2f}/order x {account.conversions:,.0f} orders = {gain:,.2f}",
            )
            recommendations: tuple[Recommendation, ...] = (
                Recommendation(
                    action="Promote higher-value SKUs and bundles to lift the ticket",
                    impact="medium",
                    effort="medium",
                    steps=("Review the product mix sold", "Create bundles", "Revisit upsell strategy"),
                ),
            )
            title = f"Average ticket {abs(gap):.0f}% below plan"
        else:
            financial = ZERO_IMPACT
            recommendations = ()
            title = f"Average ticket {gap:.0f}% above plan"

        return Insight(
            id="pg-ticket",
            category="planning_gap",
            severity=_shortfall_severity(gap),
            title=title,
            description=f"Average ticket {actual:,.2f} vs planned {target:,.2f}.",
            metrics={"current": actual, "target": target, "gap": round(gap, 1)},
            recommendations=recommendations,
            source="planning",
            financial_impact=financial,
        )

    @staticmethod
    def _sessions(context: AnalysisContext) -> Insight | None:
        target = _target(context.planning, cascade.SESSIONS)
        web = context.web
        if not target or web is None:
            return None

        period = context.period
        prorated = target * period.day_of_month / period.days_in_month
        gap = _gap_pct(web.sessions, prorated)
        if abs(gap) <= SESSIONS_GAP_TRIGGER:
            return None

        if gap < 0:
            conversion = web.conversion_rate or FALLBACK_CONVERSION_RATE
            aov = average_order_value(web, context.account)
            missing = max(target - web.sessions, 0.0)
            gain = missing * conversion * aov
            financial = impact(
                gain,
                0,
                0.35,
                "medium",
                f"{missing:,.0f} sessions x {conversion:.2%} x {aov:,.2f} = {gain:,.2f}",
            )
            recommendations: tuple[Recommendation, ...] = (
                Recommendation(
                    action="Increase media investment or improve CTR to generate more sessions",
                    impact="high",
                    effort="medium",
                ),
            )
            title = f"Sessions {abs(gap):.0f}% behind planned pace"
        else:
            financial = ZERO_IMPACT
            recommendations = ()
            title = f"Sessions {gap:.0f}% ahead of planned pace"

        return Insight(
            id="pg-sessions",
            category="planning_gap",
            severity=_shortfall_severity(gap),
            title=title,
            description=(
                f"Sessions {web.sessions:,.0f} vs expected {prorated:,.0f} "
                f"(monthly target {target:,.0f})."
            ),
            metrics={"current": web.sessions, "target": target, "gap": round(gap, 1)},
            recommendations=recommendations,
            source="planning",
            financial_impact=financial,
        )

    @staticmethod
    def _cpa(context: AnalysisContext) -> Insight | None:
        target = _target(context.planning, cascade.CPA)
        account = context.account
        if not target or account is None or account.conversions <= 0:
            return None

        gap = _gap_pct(account.cpa, target)
        if gap <= CPA_GAP_TRIGGER:
            return None

        saving = (account.cpa - target) * account.conversions

        return Insight(
            id="pg-cpa",
            category="planning_gap",
            severity=SEVERITY_DANGER if gap > 40 else SEVERITY_WARN,
            title=f"CPA {gap:.0f}% above plan",
            description=f"CPA {account.cpa:,.2f} vs planned {target:,.2f}.",
            metrics={"current": account.cpa, "target": target, "gap": round(gap, 1)},
            recommendations=(
                Recommendation(
                    action=f"Bring CPA from {account.cpa:,.2f} down to {target:,.2f}",
                    impact="high",
                    effort="medium",
                    steps=(
                        "Pause campaigns with CPA above 100",
                        "Tune bids on mid-performing campaigns",
                        "Improve ad quality",
                    ),
                ),
            ),
            source="planning",
            financial_impact=impact(
                0,
                saving,
                0.5,
                "short",
                f"({account.cpa:,.2f} - {target:,.2f}) x {account.conversions:,.0f} conversions = {saving:,.2f}",
            ),
        )
