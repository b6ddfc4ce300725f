"""
intelligence/ranker.py

Orders insights by expected value of acting on them.

    score = |net impact| x confidence x urgency / mean effort

Ties keep input order.
"""

from __future__ import annotations

from typing import Iterable

from intelligence.types import Insight, RankedDecision

URGENCY_BY_SEVERITY: dict[str, int] = {"danger": 3, "warn": 2}
DEFAULT_URGENCY: int = 1

EFFORT_BY_LEVEL: dict[str, float] = {"low": 1.0, "medium": 2.0, "high": 3.0}
DEFAULT_EFFORT: float = 2.0


def _mean_effort(insight: Insight) -> float:
    efforts = [EFFORT_BY_LEVEL.get(rec.effort, DEFAULT_EFFORT) for rec in insight.recommendations]
    return sum(efforts) / len(efforts) if efforts else DEFAULT_EFFORT


def rank_decisions(insights: Iterable[Insight]) -> list[RankedDecision]:
    scored: list[tuple[float, float, float, int, float, Insight]] = []
    for insight in insights:
        net = abs(insight.financial_impact.net_impact)
        confidence = insight.financial_impact.confidence
        urgency = URGENCY_BY_SEVERITY.get(insight.severity, DEFAULT_URGENCY)
        effort = _mean_effort(insight)
        score = net * confidence * urgency / effort
        scored.append((round(score, 2), round(net, 2), confidence, urgency, effort, insight))

    scored.sort(key=lambda item: -item[0])

    return [
        RankedDecision(
            rank=position,
            insight=insight,
            score=score,
            impact=net,
            confidence=confidence,
            urgency=urgency,
            effort=effort,
        )
        for position, (score, net, confidence, urgency, effort, insight) in enumerate(scored, start=1)
    ]
