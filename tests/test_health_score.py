"""
tests/test_health_score.py

Pytest unit tests for the composite health score and top-priority
selection.

Coverage
--------
- Perfect inputs score 100; missing dimensions add no penalty
- Score stays within 0..100
- Monotonicity: moving any one input toward its target never lowers the score
- Planning targets override the defaults
- Spend without conversions is scored as an unbounded CPA
- Top priority prefers severity, then |delta_pct|, then input order
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import date

import pytest

from alerts.types import SmartAlert
from app.domain.metrics import AccountMetrics, AnalysisContext, Period, RetentionSummary, WebAnalyticsSummary
from intelligence.health import (
    HealthInputs,
    compute_health_score,
    health_inputs_from_context,
    select_top_priority,
)
from planning import cascade


def _alert(alert_id: str, severity: str, delta: float = 0.0) -> SmartAlert:
    return SmartAlert(
        id=alert_id,
        category="account",
        severity=severity,
        title=alert_id,
        description="",
        metric="roas",
        current_value=0.0,
        previous_value=0.0,
        delta_pct=delta,
    )


BASE = HealthInputs(
    roas=4.0,
    cpa=120.0,
    danger_alerts=2,
    warn_alerts=1,
    return_rate=10.0,
    conversion_rate=0.005,
)


# ---------------------------------------------------------------------------
# Score
# ---------------------------------------------------------------------------


class TestComputeHealthScore:
    def test_no_inputs_is_perfect(self) -> None:
        assert compute_health_score(HealthInputs()) == 100.0

    def test_on_target_is_perfect(self) -> None:
        inputs = HealthInputs(roas=7.0, cpa=80.0, return_rate=25.0, conversion_rate=0.015)
        assert compute_health_score(inputs) == 100.0

    def test_worst_case_is_zero(self) -> None:
        inputs = HealthInputs(
            roas=0.0, cpa=1000.0, danger_alerts=10, warn_alerts=10, return_rate=0.0, conversion_rate=0.0
        )
        assert compute_health_score(inputs) == 0.0

    def test_rounded_to_one_decimal(self) -> None:
        score = compute_health_score(BASE)
        assert score == round(score, 1)
        assert 0.0 <= score <= 100.0

    @pytest.mark.parametrize(
        ("field", "better"),
        [
            ("roas", 6.0),
            ("cpa", 90.0),
            ("danger_alerts", 1),
            ("warn_alerts", 0),
            ("return_rate", 20.0),
            ("conversion_rate", 0.012),
        ],
    )
    def test_monotonic(self, field: str, better: float) -> None:
        improved = replace(BASE, **{field: better})
        assert compute_health_score(improved) >= compute_health_score(BASE)

    def test_more_alerts_never_helps(self) -> None:
        worse = replace(BASE, danger_alerts=BASE.danger_alerts + 1)
        assert compute_health_score(worse) <= compute_health_score(BASE)


class TestHealthInputsFromContext:
    def _context(self, planning: dict[str, float] | None = None) -> AnalysisContext:
        return AnalysisContext(
            tenant_id="t1",
            period=Period(start=date(2026, 3, 1), end=date(2026, 3, 15)),
            account=AccountMetrics.build(spend=1000, revenue=6000, conversions=20),
            web=WebAnalyticsSummary(sessions=2000, users=1500, purchases=30, purchase_revenue=6000),
            retention=RetentionSummary(total_users=1500, new_users=1200, returning_users=300, return_rate=20.0),
            planning=planning or {},
        )

    def test_defaults(self) -> None:
        inputs = health_inputs_from_context(self._context(), [_alert("a", "danger"), _alert("b", "warn")])
        assert inputs.roas == 6.0
        assert inputs.roas_target == 7.0
        assert inputs.cpa == 50.0
        assert inputs.danger_alerts == 1
        assert inputs.warn_alerts == 1
        assert inputs.return_rate == 20.0
        assert inputs.conversion_rate == pytest.approx(0.015)

    def test_planning_overrides_targets(self) -> None:
        planning = {cascade.CAPTURED_ROAS: 5.0, cascade.CPA: 40.0, cascade.CONVERSION_RATE: 0.02}
        inputs = health_inputs_from_context(self._context(planning), [])
        assert inputs.roas_target == 5.0
        assert inputs.cpa_ceiling == 40.0
        assert inputs.conversion_target == 0.02

    def test_missing_sources(self) -> None:
        context = AnalysisContext(
            tenant_id="t1",
            period=Period(start=date(2026, 3, 1), end=date(2026, 3, 15)),
            account=AccountMetrics.build(),
        )
        inputs = health_inputs_from_context(context, [])
        assert inputs.roas is None
        assert inputs.cpa is None
        assert inputs.return_rate is None
        assert inputs.conversion_rate is None

    def test_spend_without_conversions_takes_full_cpa_penalty(self) -> None:
        context = AnalysisContext(
            tenant_id="t1",
            period=Period(start=date(2026, 3, 1), end=date(2026, 3, 15)),
            account=AccountMetrics.build(spend=1000, revenue=0, conversions=0),
        )
        inputs = health_inputs_from_context(context, [])
        assert inputs.cpa == math.inf
        # ROAS 0 costs 25 and the CPA penalty is capped at 15.
        assert compute_health_score(inputs) == 60.0

    def test_more_conversions_never_lower_the_score(self) -> None:
        scores = []
        for conversions in (0, 1, 2, 5, 10, 12, 13, 20, 50):
            context = AnalysisContext(
                tenant_id="t1",
                period=Period(start=date(2026, 3, 1), end=date(2026, 3, 15)),
                account=AccountMetrics.build(spend=1000, revenue=0, conversions=conversions),
            )
            scores.append(compute_health_score(health_inputs_from_context(context, [])))
        assert scores == sorted(scores)
        assert scores[0] == 60.0
        assert scores[-1] == 75.0


# ---------------------------------------------------------------------------
# Top priority
# ---------------------------------------------------------------------------


class TestSelectTopPriority:
    def test_none_without_negative_alerts(self) -> None:
        assert select_top_priority([_alert("good", "success")]) is None
        assert select_top_priority([]) is None

    def test_danger_beats_larger_warn(self) -> None:
        alerts = [_alert("w", "warn", -90.0), _alert("d", "danger", -21.0)]
        assert select_top_priority(alerts).id == "d"

    def test_larger_delta_breaks_tie(self) -> None:
        alerts = [_alert("small", "danger", -21.0), _alert("big", "danger", -50.0)]
        assert select_top_priority(alerts).id == "big"

    def test_input_order_breaks_full_tie(self) -> None:
        alerts = [_alert("first", "warn", -12.0), _alert("second", "warn", 12.0)]
        assert select_top_priority(alerts).id == "first"
