"""
intelligence/types.py

Result types produced by the cognitive analysis engine.

All records are frozen; enrichment steps (correlation, ranking) return new
instances via :func:`dataclasses.replace` rather than mutating.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from alerts.types import Severity, SmartAlert

InsightCategory = Literal["planning_gap", "efficiency", "opportunity", "risk", "composition"]
InsightSource = Literal["planning", "alert", "pattern"]
ImpactLevel = Literal["high", "medium", "low"]
EffortLevel = Literal["low", "medium", "high"]
Timeframe = Literal["immediate", "short", "medium"]
StrategicMode = Literal["scale", "optimize", "protect", "restructure"]
BottleneckType = Literal["traffic", "conversion", "aov", "margin", "budget"]
PacingScenario = Literal["on_track", "at_risk", "off_track"]
TrendClassification = Literal["improving", "stable", "declining"]
MetricStatus = Literal["ok", "warn", "danger"]


@dataclass(frozen=True)
class Recommendation:
    action: str
    impact: ImpactLevel
    effort: EffortLevel
    steps: tuple[str, ...] = ()

    @property
    def is_quick_win(self) -> bool:
        """Low effort with a non-trivial expected impact."""
        return self.effort == "low" and self.impact != "low"


@dataclass(frozen=True)
class FinancialImpact:
    """
    Estimated monthly value of acting on an insight.

    ``net_impact`` is always ``revenue_gain + cost_saving``.
    """

    revenue_gain: float
    cost_saving: float
    net_impact: float
    confidence: float
    timeframe: Timeframe
    calculation: str


@dataclass(frozen=True)
class Insight:
    """
    One structured finding with its recommendations and estimated impact.
    """

    id: str
    category: InsightCategory
    severity: Severity
    title: str
    description: str
    metrics: dict[str, Any]
    recommendations: tuple[Recommendation, ...]
    source: InsightSource
    financial_impact: FinancialImpact
    root_cause: str | None = None
    related_ids: tuple[str, ...] = ()
    correlation_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RankedDecision:
    rank: int
    insight: Insight
    score: float
    impact: float
    confidence: float
    urgency: int
    effort: float


@dataclass(frozen=True)
class ModeAssessment:
    mode: StrategicMode
    confidence: float
    score: int
    signals: tuple[str, ...]
    description: str


@dataclass(frozen=True)
class Bottleneck:
    constraint: BottleneckType
    severity: float
    explanation: str
    financial_impact: FinancialImpact
    unlock_action: str


@dataclass(frozen=True)
class PacingProjection:
    metric: str
    label: str
    target: float
    current_value: float
    projected_end_of_month: float
    projected_gap: float
    projected_gap_currency: float
    daily_rate_needed: float
    current_daily_rate: float
    confidence: float
    scenario: PacingScenario


@dataclass(frozen=True)
class TrendData:
    classification: TrendClassification
    slope_pct: float
    moving_avg_7d: float
    previous_moving_avg_7d: float
    data_points: int


@dataclass(frozen=True)
class KeyMetric:
    label: str
    value: str
    status: MetricStatus


@dataclass(frozen=True)
class ExecutiveSummary:
    """
    One-screen digest of a result. ``quick_win`` is ``None`` when the
    result has no quick wins.
    """

    headline: str
    top_action: str
    quick_win: str | None
    key_metrics: tuple[KeyMetric, ...]


@dataclass(frozen=True)
class IntelligenceResult:
    """
    Output of :func:`intelligence.engine.analyze_cognitive`.
    """

    health_score: float
    top_priority: SmartAlert | None
    quick_wins: tuple[Insight, ...]
    insights: tuple[Insight, ...]
    alerts: tuple[SmartAlert, ...] = ()
    decisions: tuple[RankedDecision, ...] = ()
    mode: ModeAssessment | None = None
    bottleneck: Bottleneck | None = None
    pacing: tuple[PacingProjection, ...] = ()
    trend: TrendData | None = None
    executive_summary: ExecutiveSummary | None = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["generated_at"] = self.generated_at.isoformat()
        return payload
