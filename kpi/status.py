"""
kpi/status.py

SKU investment status classifier.

Maps (ROAS, CPA, margin %, stock, conversions) to one of three actions.
Rules are evaluated top to bottom; the first matching rule wins:

    1. conversions == 0 and roas == 0   -> pause
    2. roas < 5 or cpa > 80             -> pause
    3. roas < 7 or margin_pct < 25      -> maintain
    4. stock > 20                       -> escalate
    5. otherwise                        -> maintain
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal

Status = Literal["escalate", "maintain", "pause"]

STATUS_ESCALATE: Status = "escalate"
STATUS_MAINTAIN: Status = "maintain"
STATUS_PAUSE: Status = "pause"

PAUSE_ROAS_BELOW: float = 5.0
PAUSE_CPA_ABOVE: float = 80.0
MAINTAIN_ROAS_BELOW: float = 7.0
MAINTAIN_MARGIN_BELOW: float = 25.0
ESCALATE_STOCK_ABOVE: float = 20.0


@dataclass(frozen=True)
class StatusInputs:
    roas: float
    cpa: float
    margin_pct: float
    stock: float
    conversions: float


@dataclass(frozen=True)
class StatusRule:
    name: str
    predicate: Callable[[StatusInputs], bool]
    outcome: Status


STATUS_RULES: tuple[StatusRule, ...] = (
    StatusRule(
        name="no_signal",
        predicate=lambda s: s.conversions == 0 and s.roas == 0,
        outcome=STATUS_PAUSE,
    ),
    StatusRule(
        name="unprofitable",
        predicate=lambda s: s.roas < PAUSE_ROAS_BELOW or s.cpa > PAUSE_CPA_ABOVE,
        outcome=STATUS_PAUSE,
    ),
    StatusRule(
        name="thin_return_or_margin",
        predicate=lambda s: s.roas < MAINTAIN_ROAS_BELOW or s.margin_pct < MAINTAIN_MARGIN_BELOW,
        outcome=STATUS_MAINTAIN,
    ),
    StatusRule(
        name="healthy_with_stock",
        predicate=lambda s: s.stock > ESCALATE_STOCK_ABOVE,
        outcome=STATUS_ESCALATE,
    ),
)

_FALLBACK_RULE = "default"


def explain_status(
    roas: float,
    cpa: float,
    margin_pct: float,
    stock: float,
    conversions: float,
) -> tuple[Status, str]:
    """
    Classify and return ``(status, rule_name)`` for the first rule that fired.
    """
    inputs = StatusInputs(
        roas=roas,
        cpa=cpa,
        margin_pct=margin_pct,
        stock=stock,
        conversions=conversions,
    )
    for rule in STATUS_RULES:
        if rule.predicate(inputs):
            return rule.outcome, rule.name
    return STATUS_MAINTAIN, _FALLBACK_RULE


def classify_status(
    roas: float,
    cpa: float,
    margin_pct: float,
    stock: float,
    conversions: float,
) -> Status:
    """
    Return the investment status for one SKU.

    Total over all finite inputs; no hidden state.
    """
    status, _ = explain_status(roas, cpa, margin_pct, stock, conversions)
    return status
