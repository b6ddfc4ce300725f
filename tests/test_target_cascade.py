"""
tests/test_target_cascade.py

Pytest unit tests for the monthly planning target cascade.

Coverage
--------
- Absent inputs leave dependants absent (never zero)
- Full cascade from the ten inputs
- Directly entered derived values are not overwritten
- Idempotency
- Year totals sum amounts and average rates
- Average column and month-over-month growth
"""

from __future__ import annotations

import pytest

from planning import cascade
from planning.cascade import (
    compute_target_average,
    compute_target_full_year,
    compute_target_month,
    compute_target_totals,
)


FULL_INPUTS = {
    cascade.MEDIA_INVESTMENT: 10000.0,
    cascade.MEDIA_CPS: 2.0,
    cascade.ORGANIC_SESSIONS: 5000.0,
    cascade.CONVERSION_RATE: 0.02,
    cascade.AVERAGE_TICKET: 250.0,
    cascade.RETENTION_SHARE: 0.3,
    cascade.APPROVAL_RATE: 0.9,
    cascade.TOTAL_INVESTMENT: 12000.0,
}


# ---------------------------------------------------------------------------
# Month
# ---------------------------------------------------------------------------


class TestComputeTargetMonth:
    def test_captured_revenue_and_investment_only(self) -> None:
        result = compute_target_month({cascade.CAPTURED_REVENUE: 150000, cascade.TOTAL_INVESTMENT: 20000})
        assert result[cascade.CAPTURED_ROAS] == pytest.approx(7.5)
        assert cascade.BILLED_REVENUE not in result
        assert cascade.BILLED_ROAS not in result

    def test_empty_inputs(self) -> None:
        assert compute_target_month({}) == {}

    def test_none_values_are_absent(self) -> None:
        result = compute_target_month({cascade.MEDIA_INVESTMENT: 1000.0, cascade.MEDIA_CPS: None})
        assert cascade.MEDIA_CPS not in result
        assert cascade.MEDIA_SESSIONS not in result

    def test_full_cascade(self) -> None:
        result = compute_target_month(FULL_INPUTS)
        assert result[cascade.MEDIA_SESSIONS] == 5000.0
        assert result[cascade.SESSIONS] == 10000.0
        assert result[cascade.CAPTURED_ORDERS] == pytest.approx(200.0)
        assert result[cascade.CAPTURED_REVENUE] == 50000.0
        assert result[cascade.ACQUISITION_SHARE] == pytest.approx(0.7)
        assert result[cascade.ACQUISITION_REVENUE] == 35000.0
        assert result[cascade.RETENTION_REVENUE] == 15000.0
        assert result[cascade.BILLED_REVENUE] == 45000.0
        assert result[cascade.CANCELLED_REVENUE] == 5000.0
        assert result[cascade.BILLED_ORDERS] == 180.0
        assert result[cascade.CPA] == 60.0
        assert result[cascade.GENERAL_CPS] == 1.2
        assert result[cascade.CAPTURED_ROAS] == 4.17
        assert result[cascade.BILLED_ROAS] == 3.75

    def test_inputs_not_mutated(self) -> None:
        inputs = dict(FULL_INPUTS)
        compute_target_month(inputs)
        assert inputs == FULL_INPUTS

    def test_entered_derived_value_wins(self) -> None:
        inputs = dict(FULL_INPUTS)
        inputs[cascade.CAPTURED_REVENUE] = 60000.0
        result = compute_target_month(inputs)
        assert result[cascade.CAPTURED_REVENUE] == 60000.0
        assert result[cascade.BILLED_REVENUE] == 54000.0

    def test_idempotent(self) -> None:
        once = compute_target_month(FULL_INPUTS)
        twice = compute_target_month(once)
        assert once == twice

    def test_zero_cps_does_not_raise(self) -> None:
        result = compute_target_month({cascade.MEDIA_INVESTMENT: 1000.0, cascade.MEDIA_CPS: 0.0})
        assert result[cascade.MEDIA_SESSIONS] == 0.0


# ---------------------------------------------------------------------------
# Year
# ---------------------------------------------------------------------------


class TestYearAggregation:
    def test_totals_sum_amounts_and_average_rates(self) -> None:
        year = {
            1: {cascade.TOTAL_INVESTMENT: 1000.0, cascade.CONVERSION_RATE: 0.02},
            2: {cascade.TOTAL_INVESTMENT: 3000.0, cascade.CONVERSION_RATE: 0.04},
        }
        totals = compute_target_totals(year)
        assert totals[cascade.TOTAL_INVESTMENT] == 4000.0
        assert totals[cascade.CONVERSION_RATE] == pytest.approx(0.03)

    def test_totals_ignore_derived_entries(self) -> None:
        totals = compute_target_totals({1: {cascade.CAPTURED_REVENUE: 1000.0}})
        assert cascade.CAPTURED_REVENUE not in totals

    def test_average_over_months_with_data(self) -> None:
        year = {
            1: {cascade.TOTAL_INVESTMENT: 1000.0},
            3: {cascade.TOTAL_INVESTMENT: 3000.0},
        }
        average = compute_target_average(year)
        assert average[cascade.TOTAL_INVESTMENT] == 2000.0

    def test_average_of_empty_year(self) -> None:
        assert compute_target_average({}) == {}

    def test_full_year_has_twelve_months_and_growth(self) -> None:
        january = dict(FULL_INPUTS)
        february = dict(FULL_INPUTS)
        february[cascade.AVERAGE_TICKET] = 275.0
        result = compute_target_full_year({1: january, 2: february})

        assert sorted(result.months) == list(range(1, 13))
        assert result.months[3] == {}
        assert result.months[2][cascade.MONTH_OVER_MONTH] == pytest.approx(0.1)
        assert cascade.MONTH_OVER_MONTH not in result.months[1]
