"""
intelligence/alert_insights.py

Lifts negative smart alerts into insight records so they are ranked next
to analyzer output.
"""

from __future__ import annotations

from typing import Iterable

from alerts.types import SEVERITY_DANGER, SmartAlert
from intelligence.financial_impact import ZERO_IMPACT
from intelligence.types import Insight, InsightCategory, Recommendation

_CATEGORY_BY_SCOPE: dict[str, InsightCategory] = {
    "account": "risk",
    "campaign": "efficiency",
    "sku": "efficiency",
    "trend": "risk",
    "retention": "risk",
}


def insights_from_alerts(alerts: Iterable[SmartAlert]) -> list[Insight]:
    """
    One insight per danger/warn alert, in alert order.
    """
    insights: list[Insight] = []
    for alert in alerts:
        if not alert.is_negative:
            continue

        recommendations: tuple[Recommendation, ...] = ()
        if alert.recommendation:
            recommendations = (
                Recommendation(
                    action=alert.recommendation,
                    impact="high" if alert.severity == SEVERITY_DANGER else "medium",
                    effort="low",
                ),
            )

        metrics = {
            "metric": alert.metric,
            "current": alert.current_value,
            "previous": alert.previous_value,
            "delta_pct": alert.delta_pct,
        }
        if alert.entity_name:
            metrics["entity_name"] = alert.entity_name

        insights.append(
            Insight(
                id=f"alert-{alert.id}",
                category=_CATEGORY_BY_SCOPE.get(alert.category, "risk"),
                severity=alert.severity,
                title=alert.title,
                description=alert.description,
                metrics=metrics,
                recommendations=recommendations,
                source="alert",
                financial_impact=ZERO_IMPACT,
                related_ids=(alert.id,),
            )
        )
    return insights
