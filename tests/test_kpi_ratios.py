"""
tests/test_kpi_ratios.py

Pytest unit tests for the shared ratio helpers and the SKU status
classifier.

Coverage
--------
- round2 / safe_div never return NaN or Infinity
- pct_delta with a zero previous value
- ROAS, CPA, CTR and conversion rate with zero denominators
- Status rules: no signal, unprofitable, thin margin, escalate, fallback
- explain_status reports the rule that fired
"""

from __future__ import annotations

import math

import pytest

from kpi.ratios import (
    compute_conversion_rate,
    compute_cpa,
    compute_ctr,
    compute_roas,
    pct_delta,
    round2,
    safe_div,
)
from kpi.status import (
    STATUS_ESCALATE,
    STATUS_MAINTAIN,
    STATUS_PAUSE,
    classify_status,
    explain_status,
)


# ---------------------------------------------------------------------------
# Ratio helpers
# ---------------------------------------------------------------------------


class TestSafeArithmetic:
    @pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
    def test_round2_maps_non_finite_to_zero(self, value: float) -> None:
        assert round2(value) == 0.0

    def test_round2_rounds_two_places(self) -> None:
        assert round2(4.7612) == 4.76

    @pytest.mark.parametrize("denominator", [0, 0.0, math.inf, math.nan])
    def test_safe_div_undefined_is_zero(self, denominator: float) -> None:
        assert safe_div(10.0, denominator) == 0.0

    def test_safe_div_normal(self) -> None:
        assert safe_div(9.0, 3.0) == pytest.approx(3.0)


class TestPctDelta:
    def test_zero_previous_is_zero(self) -> None:
        assert pct_delta(500.0, 0.0) == 0.0

    def test_decline(self) -> None:
        assert pct_delta(80.0, 100.0) == pytest.approx(-20.0)

    def test_increase(self) -> None:
        assert pct_delta(150.0, 100.0) == pytest.approx(50.0)


class TestMarketingRatios:
    def test_roas(self) -> None:
        assert compute_roas(6000.0, 1260.21) == 4.76

    def test_roas_without_spend(self) -> None:
        assert compute_roas(500.0, 0.0) == 0.0

    def test_cpa(self) -> None:
        assert compute_cpa(100.0, 3.0) == 33.33

    def test_cpa_without_conversions(self) -> None:
        assert compute_cpa(100.0, 0.0) == 0.0

    def test_ctr_is_percent(self) -> None:
        assert compute_ctr(25.0, 1000.0) == 2.5

    def test_ctr_without_impressions(self) -> None:
        assert compute_ctr(25.0, 0.0) == 0.0

    def test_conversion_rate(self) -> None:
        assert compute_conversion_rate(5.0, 200.0) == pytest.approx(2.5)

    def test_conversion_rate_without_clicks(self) -> None:
        assert compute_conversion_rate(5.0, 0.0) == 0.0


# ---------------------------------------------------------------------------
# Status classifier
# ---------------------------------------------------------------------------


class TestClassifyStatus:
    @pytest.mark.parametrize(
        ("roas", "cpa", "margin", "stock", "conversions", "expected"),
        [
            (0.0, 0.0, 30.0, 0.0, 0.0, STATUS_PAUSE),
            (4.9, 20.0, 40.0, 50.0, 3.0, STATUS_PAUSE),
            (9.0, 81.0, 40.0, 50.0, 3.0, STATUS_PAUSE),
            (6.0, 30.0, 20.0, 0.0, 5.0, STATUS_MAINTAIN),
            (8.0, 30.0, 20.0, 50.0, 5.0, STATUS_MAINTAIN),
            (8.0, 20.0, 30.0, 25.0, 5.0, STATUS_ESCALATE),
            (8.0, 20.0, 30.0, 20.0, 5.0, STATUS_MAINTAIN),
        ],
    )
    def test_rules(
        self,
        roas: float,
        cpa: float,
        margin: float,
        stock: float,
        conversions: float,
        expected: str,
    ) -> None:
        assert classify_status(roas, cpa, margin, stock, conversions) == expected

    def test_explain_no_signal(self) -> None:
        assert explain_status(0.0, 0.0, 30.0, 0.0, 0.0) == (STATUS_PAUSE, "no_signal")

    def test_explain_fallback(self) -> None:
        status, rule = explain_status(8.0, 20.0, 30.0, 5.0, 5.0)
        assert status == STATUS_MAINTAIN
        assert rule == "default"

    def test_deterministic(self) -> None:
        first = classify_status(8.0, 20.0, 30.0, 25.0, 5.0)
        second = classify_status(8.0, 20.0, 30.0, 25.0, 5.0)
        assert first == second == STATUS_ESCALATE
