"""
intelligence/correlation.py

Links insights that explain each other.

Each causal pattern pairs a *trigger* insight with *evidence* insights by
category and id prefix. When both sides are present the trigger receives the
pattern's root-cause sentence and the evidence ids; each evidence insight
points back at the trigger. The first pattern to claim an insight wins.
Uncorrelated insights pass through unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Pattern

from alerts.types import SEVERITY_DANGER, SEVERITY_SUCCESS, SEVERITY_WARN
from intelligence.types import Insight

# Higher is more severe.
_SEVERITY_LEVEL: dict[str, int] = {SEVERITY_SUCCESS: 0, SEVERITY_WARN: 1, SEVERITY_DANGER: 2}


@dataclass(frozen=True)
class Selector:
    category: str
    id_pattern: Pattern[str] | None = None
    min_severity: str | None = None

    def matches(self, insight: Insight) -> bool:
        if insight.category != self.category:
            return False
        if self.id_pattern is not None and not self.id_pattern.match(insight.id):
            return False
        if self.min_severity is not None:
            return _SEVERITY_LEVEL.get(insight.severity, 0) >= _SEVERITY_LEVEL[self.min_severity]
        return True


@dataclass(frozen=True)
class CausalPattern:
    id: str
    trigger: Selector
    evidence: Selector
    root_cause: str


CAUSAL_PATTERNS: tuple[CausalPattern, ...] = (
    CausalPattern(
        id="budget-misallocation",
        trigger=Selector("planning_gap", re.compile(r"^pg-(revenue|roas)"), SEVERITY_WARN),
        evidence=Selector("efficiency", re.compile(r"^eff-(zero-conv|low-roas|budget-dist)")),
        root_cause="Revenue trails the target because part of the budget sits in low-return SKUs or campaigns",
    ),
    CausalPattern(
        id="traffic-quality",
        trigger=Selector("risk", re.compile(r"^risk-bounce")),
        evidence=Selector("composition", re.compile(r"^comp-paid-heavy")),
        root_cause="High bounce combined with heavy paid dependence points to a traffic quality problem",
    ),
    CausalPattern(
        id="reallocation-opportunity",
        trigger=Selector("opportunity", re.compile(r"^opp-(underinvested|scalable)")),
        evidence=Selector("efficiency", re.compile(r"^eff-(zero-conv|low-roas|high-cpa|budget-dist)")),
        root_cause="High-potential SKUs are under-invested while budget is wasted on inefficient ones",
    ),
    CausalPattern(
        id="conversion-bottleneck",
        trigger=Selector("risk", re.compile(r"^risk-cart-abandon")),
        evidence=Selector("planning_gap", re.compile(r"^pg-(revenue|conversion)")),
        root_cause="A funnel conversion problem is contributing to the revenue gap against plan",
    ),
)


def correlate_insights(insights: list[Insight]) -> list[Insight]:
    """
    Return *insights* with root causes and related ids filled in.

    Order and length are preserved.
    """
    links: dict[str, tuple[str, tuple[str, ...], str]] = {}

    for pattern in CAUSAL_PATTERNS:
        triggers = [insight for insight in insights if pattern.trigger.matches(insight)]
        if not triggers:
            continue
        evidence = [insight for insight in insights if pattern.evidence.matches(insight)]
        if not evidence:
            continue

        evidence_ids = tuple(insight.id for insight in evidence)
        for trigger in triggers:
            links.setdefault(trigger.id, (pattern.root_cause, evidence_ids, pattern.id))
            for item in evidence:
                links.setdefault(item.id, (f"Related to: {trigger.title}", (trigger.id,), pattern.id))

    correlated: list[Insight] = []
    for insight in insights:
        link = links.get(insight.id)
        if link is None:
            correlated.append(insight)
            continue
        root_cause, related_ids, correlation_id = link
        correlated.append(
            replace(
                insight,
                root_cause=root_cause,
                related_ids=insight.related_ids + related_ids,
                correlation_id=correlation_id,
            )
        )
    return correlated
