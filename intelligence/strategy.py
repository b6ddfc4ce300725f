"""
intelligence/strategy.py

Strategic stance and primary bottleneck.

``detect_strategic_mode`` scores six weighted signals on a 0-100 scale and
maps the weighted mean onto scale / optimize / protect / restructure.
``detect_bottleneck`` decomposes revenue as sessions x conversion x order
value and picks the component whose +10% moves revenue the most.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.metrics import AnalysisContext
from intelligence.financial_impact import impact
from intelligence.types import Bottleneck, BottleneckType, ModeAssessment, StrategicMode, TrendData
from kpi.status import PAUSE_CPA_ABOVE, STATUS_ESCALATE, STATUS_PAUSE
from planning import cascade

# ---------------------------------------------------------------------------
# Strategic mode
# ---------------------------------------------------------------------------

WEIGHT_ROAS: float = 0.25
WEIGHT_PACING: float = 0.25
WEIGHT_CPA: float = 0.15
WEIGHT_MARGIN: float = 0.12
WEIGHT_SKU_MIX: float = 0.10
WEIGHT_TREND: float = 0.13

# (minimum ratio, score); first match wins.
ROAS_VS_TARGET_SCORES: list[tuple[float, int]] = [(1.0, 100), (0.8, 60), (0.6, 30)]
ROAS_ABSOLUTE_SCORES: list[tuple[float, int]] = [(8.0, 100), (5.0, 60), (3.0, 30)]
PACING_SCORES: list[tuple[float, int]] = [(1.0, 100), (0.9, 70), (0.8, 40)]
MARGIN_SCORES: list[tuple[float, int]] = [(30.0, 100), (25.0, 70), (20.0, 40)]
FLOOR_SCORE: int = 10

# (maximum CPA/target ratio, score)
CPA_SCORES: list[tuple[float, int]] = [(1.0, 100), (1.2, 60), (1.5, 30)]

TREND_SCORES: dict[str, int] = {"improving": 90, "stable": 60, "declining": 20}
NO_TREND_SCORE: int = 60

# (minimum score, mode, description)
MODE_BANDS: list[tuple[float, StrategicMode, str]] = [
    (75.0, "scale", "Healthy performance: time to raise investment and capture growth"),
    (50.0, "optimize", "Moderate performance: improve efficiency before scaling"),
    (25.0, "protect", "Below expectations: cut waste and protect margin"),
]
FALLBACK_MODE: tuple[StrategicMode, str] = (
    "restructure",
    "Critical performance: urgent action needed on several fronts",
)


@dataclass(frozen=True)
class Signal:
    label: str
    score: int
    weight: float


def _score_at_least(value: float, bands: list[tuple[float, int]], floor: int) -> int:
    for threshold, score in bands:
        if value >= threshold:
            return score
    return floor


def _score_at_most(value: float, bands: list[tuple[float, int]], floor: int) -> int:
    for threshold, score in bands:
        if value <= threshold:
            return score
    return floor


def _collect_signals(context: AnalysisContext, trend: TrendData | None) -> list[Signal]:
    account = context.account
    planning = context.planning
    signals: list[Signal] = []

    if account is not None:
        target_roas = planning.get(cascade.CAPTURED_ROAS)
        if target_roas:
            score = _score_at_least(account.roas / target_roas, ROAS_VS_TARGET_SCORES, FLOOR_SCORE)
            signals.append(Signal(f"ROAS {account.roas:.1f} vs target {target_roas:.1f}", score, WEIGHT_ROAS))
        else:
            score = _score_at_least(account.roas, ROAS_ABSOLUTE_SCORES, FLOOR_SCORE)
            signals.append(Signal(f"ROAS {account.roas:.1f} (no target set)", score, WEIGHT_ROAS))

        target_revenue = planning.get(cascade.CAPTURED_REVENUE)
        if target_revenue:
            period = context.period
            expected = target_revenue * period.day_of_month / period.days_in_month
            ratio = account.revenue / expected if expected > 0 else 1.0
            score = _score_at_least(ratio, PACING_SCORES, 15)
            signals.append(Signal(f"Revenue pacing at {ratio:.0%} of plan", score, WEIGHT_PACING))

        if account.conversions > 0:
            target_cpa = planning.get(cascade.CPA) or PAUSE_CPA_ABOVE
            ratio = account.cpa / target_cpa if target_cpa > 0 else 1.0
            score = _score_at_most(ratio, CPA_SCORES, FLOOR_SCORE)
            signals.append(Signal(f"CPA {account.cpa:,.0f} vs target {target_cpa:,.0f}", score, WEIGHT_CPA))

        if account.revenue > 0:
            margin = (account.revenue - account.spend) / account.revenue * 100
            score = _score_at_least(margin, MARGIN_SCORES, 15)
            signals.append(Signal(f"Gross margin after ads {margin:.0f}%", score, WEIGHT_MARGIN))

    if context.skus:
        total = len(context.skus)
        escalate = sum(1 for s in context.skus if s.status == STATUS_ESCALATE)
        pause = sum(1 for s in context.skus if s.status == STATUS_PAUSE)
        health = (escalate - pause) / total
        if health > 0.3:
            score = 100
        elif health > 0.1:
            score = 70
        elif health >= 0:
            score = 40
        else:
            score = 15
        signals.append(Signal(f"SKUs: {escalate} escalate, {pause} pause of {total}", score, WEIGHT_SKU_MIX))

    if trend is not None:
        signals.append(
            Signal(
                f"Trend {trend.classification} ({trend.slope_pct:+.1f}%/day)",
                TREND_SCORES[trend.classification],
                WEIGHT_TREND,
            )
        )
    else:
        signals.append(Signal("Trend: no daily history", NO_TREND_SCORE, WEIGHT_TREND))

    return signals


def detect_strategic_mode(context: AnalysisContext, trend: TrendData | None = None) -> ModeAssessment:
    """
    Weighted-signal stance for the account.

    Signals without data are left out and the remaining weights are
    renormalised, so the score stays on the 0-100 scale.
    """
    signals = _collect_signals(context, trend)

    total_weight = sum(signal.weight for signal in signals)
    weighted = sum(signal.score * signal.weight for signal in signals) / total_weight

    mode, description = FALLBACK_MODE
    for threshold, band_mode, band_description in MODE_BANDS:
        if weighted >= threshold:
            mode, description = band_mode, band_description
            break

    return ModeAssessment(
        mode=mode,
        confidence=min(0.5 + len(signals) / 5 * 0.4, 0.9),
        score=round(weighted),
        signals=tuple(f"{signal.label} -> score {signal.score}" for signal in signals),
        description=description,
    )


# ---------------------------------------------------------------------------
# Bottleneck
# ---------------------------------------------------------------------------

SIMULATED_LIFT: float = 0.1
MARGIN_CONSTRAINT_BELOW: float = 25.0
MARGIN_IMPROVEMENT: float = 0.05
BUDGET_UNDERPACE: float = 0.8


@dataclass(frozen=True)
class _Simulation:
    constraint: BottleneckType
    label: str
    gain: float
    unlock_action: str


def detect_bottleneck(context: AnalysisContext) -> Bottleneck | None:
    """
    Primary revenue constraint, or ``None`` without account and session data.
    """
    account = context.account
    web = context.web
    if account is None or web is None or web.sessions == 0:
        return None

    sessions = web.sessions
    conversion = web.conversion_rate
    aov = web.avg_order_value or account.revenue / max(account.conversions, 1)
    revenue = account.revenue
    period = context.period
    pace = period.day_of_month / period.days_in_month

    target_revenue = context.planning.get(cascade.CAPTURED_REVENUE)
    revenue_target = target_revenue * pace if target_revenue else revenue * 1.2
    revenue_gap = max(revenue_target - revenue, 0.0)

    base = sessions * conversion * aov
    simulations = [
        _Simulation("traffic", "Sessions", base * SIMULATED_LIFT,
                    "Increase media investment or CTR to bring more traffic"),
        _Simulation("conversion", "Conversion rate", base * SIMULATED_LIFT,
                    "Optimize the conversion funnel: landing pages, checkout, UX"),
        _Simulation("aov", "Average order value", base * SIMULATED_LIFT,
                    "Push upsell, cross-sell and bundles to raise the ticket"),
    ]

    if account.spend > 0 and revenue > 0:
        margin = (revenue - account.spend) / revenue * 100
        if margin < MARGIN_CONSTRAINT_BELOW:
            simulations.append(
                _Simulation("margin", "Margin", revenue * MARGIN_IMPROVEMENT,
                            "Lower CPA by pausing inefficient campaigns or renegotiating costs")
            )

    budget = context.planning.get(cascade.MEDIA_INVESTMENT) or context.planning.get(cascade.TOTAL_INVESTMENT)
    if budget and account.spend > 0:
        expected_spend = budget * pace
        if account.spend < expected_spend * BUDGET_UNDERPACE:
            simulations.append(
                _Simulation("budget", "Budget", (expected_spend - account.spend) * account.roas,
                            "Invest the planned budget; spend is behind pace")
            )

    # Stable sort: on equal gains the earlier component wins.
    primary = sorted(simulations, key=lambda sim: -sim.gain)[0]
    severity = min(revenue_gap / revenue_target, 1.0) if revenue_target > 0 else 0.5

    return Bottleneck(
        constraint=primary.constraint,
        severity=round(severity, 3),
        explanation=(
            f"Primary constraint: {primary.label}. A 10% improvement here adds "
            f"{primary.gain:,.2f} in revenue."
        ),
        financial_impact=impact(primary.gain, 0, 0.6, "short", f"+10% {primary.label} = +{primary.gain:,.2f} revenue"),
        unlock_action=primary.unlock_action,
    )
