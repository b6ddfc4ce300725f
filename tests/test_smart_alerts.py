"""
tests/test_smart_alerts.py

Pytest unit tests for the smart alert detector and its rule scopes.

All tests are pure Python; inputs are built directly from metric records.

Coverage
--------
- Account ROAS collapse raises exactly one danger alert
- Account conversion-rate decline bands
- SKU spending without conversions raises a danger alert
- SKU revenue drop; a ROAS gain stops further SKU checks
- Zero previous value yields a zero delta and no alert
- Absent previous period yields no comparison alerts
- Campaign join on id; unmatched campaigns are skipped
- Campaign low ROAS on product channels and the five-alert cap
- Trend runs over the daily series (revenue, ROAS, CPA)
- Retention bands, low repurchase and low LTV
- Severity-major ordering, stability and the output cap
- summarize_alerts counts
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from alerts.detector import compute_all_smart_alerts, summarize_alerts
from alerts.types import SEVERITY_DANGER, SEVERITY_SUCCESS, SEVERITY_WARN, severity_rank
from app.domain.metrics import (
    AccountMetrics,
    CampaignMetrics,
    DailyMetrics,
    PeriodSnapshot,
    RetentionSummary,
    SkuMetrics,
)


def _days(values: list[tuple[float, float, float]]) -> list[DailyMetrics]:
    start = date(2026, 3, 1)
    return [
        DailyMetrics(day=start + timedelta(days=i), spend=spend, revenue=revenue, conversions=conversions)
        for i, (spend, revenue, conversions) in enumerate(values)
    ]


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------


class TestAccountAlerts:
    def test_roas_collapse_is_single_danger(self) -> None:
        current = PeriodSnapshot(account=AccountMetrics.build(spend=1260.21, revenue=6000))
        previous = PeriodSnapshot(account=AccountMetrics.build(spend=1223.50, revenue=9053))

        alerts = compute_all_smart_alerts(current, previous)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.id == "acct-roas-drop"
        assert alert.category == "account"
        assert alert.severity == SEVERITY_DANGER
        assert alert.current_value == pytest.approx(4.76)
        assert alert.previous_value == pytest.approx(7.40)
        assert alert.delta_pct == pytest.approx(-35.7)

    def test_mild_decline_is_warn(self) -> None:
        current = PeriodSnapshot(account=AccountMetrics.build(spend=1000, revenue=8500))
        previous = PeriodSnapshot(account=AccountMetrics.build(spend=1000, revenue=10000))
        alerts = compute_all_smart_alerts(current, previous)
        assert [a.id for a in alerts] == ["acct-roas-warn"]
        assert alerts[0].severity == SEVERITY_WARN

    def test_spend_spike_is_never_danger(self) -> None:
        current = PeriodSnapshot(account=AccountMetrics.build(spend=2000, revenue=16000))
        previous = PeriodSnapshot(account=AccountMetrics.build(spend=1000, revenue=8000))
        alerts = compute_all_smart_alerts(current, previous)
        assert [a.id for a in alerts] == ["acct-spend-spike"]
        assert alerts[0].severity == SEVERITY_WARN

    @pytest.mark.parametrize(
        ("conversions", "expected_id", "severity", "delta"),
        [
            (10, "acct-cr-drop", SEVERITY_DANGER, -50.0),
            (16, "acct-cr-warn", SEVERITY_WARN, -20.0),
        ],
    )
    def test_conversion_rate_decline(
        self, conversions: float, expected_id: str, severity: str, delta: float
    ) -> None:
        current = PeriodSnapshot(
            account=AccountMetrics.build(spend=100, revenue=700, clicks=1000, conversions=conversions)
        )
        previous = PeriodSnapshot(account=AccountMetrics.build(spend=100, revenue=700, clicks=1000, conversions=20))

        alerts = compute_all_smart_alerts(current, previous)

        assert [a.id for a in alerts] == [expected_id]
        assert alerts[0].severity == severity
        assert alerts[0].metric == "conversion_rate"
        assert alerts[0].delta_pct == pytest.approx(delta)

    def test_zero_previous_yields_no_alert(self) -> None:
        current = PeriodSnapshot(account=AccountMetrics.build(spend=1000, revenue=5000))
        previous = PeriodSnapshot(account=AccountMetrics.build())
        assert compute_all_smart_alerts(current, previous) == []

    def test_absent_previous_period(self) -> None:
        current = PeriodSnapshot(account=AccountMetrics.build(spend=1000, revenue=5000))
        assert compute_all_smart_alerts(current, PeriodSnapshot()) == []


# ---------------------------------------------------------------------------
# SKU
# ---------------------------------------------------------------------------


class TestSkuAlerts:
    def test_zero_conversion_with_spend(self) -> None:
        current = PeriodSnapshot(skus=(SkuMetrics.build(sku="X", spend=93.33, conversions=0),))
        previous = PeriodSnapshot(skus=(SkuMetrics.build(sku="X", spend=80, revenue=400, conversions=1.5),))

        alerts = compute_all_smart_alerts(current, previous)

        assert len(alerts) == 1
        assert alerts[0].id == "sku-X-zero-conv"
        assert alerts[0].severity == SEVERITY_DANGER
        assert alerts[0].delta_pct == -100.0
        assert alerts[0].entity_id == "X"

    def test_sku_missing_from_previous_is_skipped(self) -> None:
        current = PeriodSnapshot(skus=(SkuMetrics.build(sku="NEW", spend=200, conversions=0),))
        previous = PeriodSnapshot(skus=(SkuMetrics.build(sku="OLD", spend=200, revenue=900, conversions=3),))
        assert compute_all_smart_alerts(current, previous) == []

    def test_low_spend_is_skipped(self) -> None:
        current = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=5, revenue=5, conversions=1),))
        previous = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=5, revenue=50, conversions=1),))
        assert compute_all_smart_alerts(current, previous) == []

    def test_roas_gain_is_success(self) -> None:
        current = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=100, revenue=1000, conversions=4),))
        previous = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=100, revenue=600, conversions=3),))
        alerts = compute_all_smart_alerts(current, previous)
        assert [a.id for a in alerts] == ["sku-A-roas-up"]
        assert alerts[0].severity == SEVERITY_SUCCESS

    def test_roas_gain_stops_further_checks(self) -> None:
        # Revenue fell 60% but ROAS rose 60% on a smaller budget.
        current = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=50, revenue=400, conversions=5),))
        previous = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=200, revenue=1000, conversions=5),))

        alerts = compute_all_smart_alerts(current, previous)

        assert [a.id for a in alerts] == ["sku-A-roas-up"]
        assert alerts[0].delta_pct == pytest.approx(60.0)

    @pytest.mark.parametrize(
        ("current_spend", "expected"),
        [
            # Same ROAS, less revenue: only the revenue rule fires.
            (60, [("sku-A-rev-drop", SEVERITY_WARN, -33.3)]),
            # Same spend: ROAS and revenue both fall a third.
            (90, [("sku-A-roas-drop", SEVERITY_DANGER, -33.3), ("sku-A-rev-drop", SEVERITY_WARN, -33.3)]),
        ],
    )
    def test_revenue_drop(self, current_spend: float, expected: list[tuple[str, str, float]]) -> None:
        current = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=current_spend, revenue=600, conversions=5),))
        previous = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=90, revenue=900, conversions=5),))

        alerts = compute_all_smart_alerts(current, previous)

        assert [(a.id, a.severity) for a in alerts] == [(i, s) for i, s, _ in expected]
        assert [a.delta_pct for a in alerts] == pytest.approx([d for _, _, d in expected])

    def test_revenue_drop_needs_meaningful_previous_revenue(self) -> None:
        current = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=10, revenue=50, conversions=1),))
        previous = PeriodSnapshot(skus=(SkuMetrics.build(sku="A", spend=10, revenue=100, conversions=1),))
        alerts = compute_all_smart_alerts(current, previous)
        assert "sku-A-rev-drop" not in [a.id for a in alerts]

    def test_at_most_five_sku_alerts(self) -> None:
        current = PeriodSnapshot(
            skus=tuple(SkuMetrics.build(sku=f"S{i}", spend=100 + i, conversions=0) for i in range(8))
        )
        previous = PeriodSnapshot(
            skus=tuple(SkuMetrics.build(sku=f"S{i}", spend=100, revenue=500, conversions=2) for i in range(8))
        )
        alerts = compute_all_smart_alerts(current, previous)
        assert len(alerts) == 5
        # Highest current spend first.
        assert alerts[0].id == "sku-S7-zero-conv"


# ---------------------------------------------------------------------------
# Campaign
# ---------------------------------------------------------------------------


class TestCampaignAlerts:
    def test_joined_on_campaign_id(self) -> None:
        current = PeriodSnapshot(
            campaigns=(
                CampaignMetrics.build(campaign_id="c1", spend=120, conversions=0),
                CampaignMetrics.build(campaign_id="c2", spend=120, conversions=0),
            )
        )
        previous = PeriodSnapshot(
            campaigns=(CampaignMetrics.build(campaign_id="c1", spend=100, revenue=500, conversions=2),)
        )
        alerts = compute_all_smart_alerts(current, previous)
        assert [a.id for a in alerts] == ["camp-c1-zero-conv"]

    def test_cpa_spike(self) -> None:
        current = PeriodSnapshot(
            campaigns=(CampaignMetrics.build(campaign_id="c1", spend=200, revenue=2000, conversions=2),)
        )
        previous = PeriodSnapshot(
            campaigns=(CampaignMetrics.build(campaign_id="c1", spend=200, revenue=2000, conversions=4),)
        )
        alerts = compute_all_smart_alerts(current, previous)
        assert any(a.metric == "cpa" and a.severity == SEVERITY_DANGER for a in alerts)

    @pytest.mark.parametrize("channel_type", ["PERFORMANCE_MAX", "Shopping"])
    def test_low_roas_on_product_channels(self, channel_type: str) -> None:
        campaign = CampaignMetrics.build(
            campaign_id="c1", name="Catalog", channel_type=channel_type, spend=100, revenue=200, conversions=5
        )
        alerts = compute_all_smart_alerts(PeriodSnapshot(campaigns=(campaign,)), PeriodSnapshot(campaigns=(campaign,)))

        assert [a.id for a in alerts] == ["camp-c1-low-roas"]
        assert alerts[0].severity == SEVERITY_WARN
        assert alerts[0].current_value == pytest.approx(2.0)
        assert alerts[0].delta_pct == 0.0

    def test_low_roas_ignored_on_search(self) -> None:
        campaign = CampaignMetrics.build(
            campaign_id="c1", channel_type="SEARCH", spend=100, revenue=200, conversions=5
        )
        assert compute_all_smart_alerts(PeriodSnapshot(campaigns=(campaign,)), PeriodSnapshot(campaigns=(campaign,))) == []

    def test_at_most_five_campaign_alerts(self) -> None:
        current = PeriodSnapshot(
            campaigns=tuple(CampaignMetrics.build(campaign_id=f"c{i}", spend=100, conversions=0) for i in range(6))
        )
        previous = PeriodSnapshot(
            campaigns=tuple(
                CampaignMetrics.build(campaign_id=f"c{i}", spend=100, revenue=500, conversions=2) for i in range(6)
            )
        )

        alerts = compute_all_smart_alerts(current, previous)

        assert [a.id for a in alerts] == [f"camp-c{i}-zero-conv" for i in range(5)]
        assert all(a.severity == SEVERITY_DANGER and a.delta_pct == -100.0 for a in alerts)


# ---------------------------------------------------------------------------
# Trend
# ---------------------------------------------------------------------------


class TestTrendAlerts:
    def test_revenue_decline_run(self) -> None:
        series = _days([(100, 1000, 10), (100, 900, 10), (100, 800, 10), (100, 700, 10), (100, 600, 10)])
        alerts = compute_all_smart_alerts(PeriodSnapshot(), PeriodSnapshot(), series)
        ids = [a.id for a in alerts]
        assert "trend-rev-decline" in ids
        assert "trend-roas-decline" in ids
        assert alerts[0].id == "trend-rev-decline"

    def test_cpa_rise_run(self) -> None:
        # CPA 10.00 -> 12.50 -> 16.67 -> 20.00 with flat revenue and spend.
        series = _days([(100, 1000, 10), (100, 1000, 8), (100, 1000, 6), (100, 1000, 5)])

        alerts = compute_all_smart_alerts(PeriodSnapshot(), PeriodSnapshot(), series)

        assert [a.id for a in alerts] == ["trend-cpa-rise"]
        assert alerts[0].severity == SEVERITY_WARN
        assert alerts[0].previous_value == pytest.approx(10.0)
        assert alerts[0].current_value == pytest.approx(20.0)
        assert alerts[0].delta_pct == pytest.approx(100.0)

    def test_short_series_yields_nothing(self) -> None:
        series = _days([(100, 1000, 10), (100, 500, 10)])
        assert compute_all_smart_alerts(PeriodSnapshot(), PeriodSnapshot(), series) == []

    def test_undefined_day_breaks_run(self) -> None:
        series = _days([(100, 1000, 10), (100, 900, 10), (0, 0, 0), (100, 800, 10), (100, 700, 10)])
        alerts = compute_all_smart_alerts(PeriodSnapshot(), PeriodSnapshot(), series)
        assert "trend-roas-decline" not in [a.id for a in alerts]


# ---------------------------------------------------------------------------
# Retention
# ---------------------------------------------------------------------------


class TestRetentionAlerts:
    @pytest.mark.parametrize(
        ("return_rate", "expected_id"),
        [
            (10.0, "ret-return-rate-danger"),
            (20.0, "ret-return-rate-warn"),
            (40.0, "ret-return-rate-healthy"),
        ],
    )
    def test_return_rate_bands(self, return_rate: float, expected_id: str) -> None:
        retention = RetentionSummary(
            total_users=1000,
            new_users=600,
            returning_users=400,
            return_rate=return_rate,
            repurchase_estimate=2.0,
        )
        alerts = compute_all_smart_alerts(PeriodSnapshot(), PeriodSnapshot(), retention=retention)
        assert [a.id for a in alerts] == [expected_id]

    def test_between_bands_is_silent(self) -> None:
        retention = RetentionSummary(
            total_users=1000, new_users=700, returning_users=300, return_rate=30.0, repurchase_estimate=2.0
        )
        assert compute_all_smart_alerts(PeriodSnapshot(), PeriodSnapshot(), retention=retention) == []

    def test_low_repurchase(self) -> None:
        retention = RetentionSummary(
            total_users=1000, new_users=700, returning_users=300, return_rate=30.0, repurchase_estimate=0.4
        )
        alerts = compute_all_smart_alerts(PeriodSnapshot(), PeriodSnapshot(), retention=retention)
        assert [a.id for a in alerts] == ["ret-repurchase-low"]

    @pytest.mark.parametrize(
        ("revenue", "purchasers", "expected_ids"),
        [
            (1000.0, 10.0, ["ret-ltv-low"]),
            (3000.0, 10.0, []),
            (0.0, 10.0, []),
            (1000.0, 0.0, []),
        ],
    )
    def test_low_ltv(self, revenue: float, purchasers: float, expected_ids: list[str]) -> None:
        retention = RetentionSummary(
            total_users=1000,
            new_users=700,
            returning_users=300,
            return_rate=30.0,
            purchasers=purchasers,
            revenue=revenue,
            repurchase_estimate=2.0,
        )
        alerts = compute_all_smart_alerts(PeriodSnapshot(), PeriodSnapshot(), retention=retention)

        assert [a.id for a in alerts] == expected_ids
        if expected_ids:
            assert alerts[0].severity == SEVERITY_WARN
            assert alerts[0].current_value == pytest.approx(100.0)
            assert alerts[0].delta_pct == 0.0


# ---------------------------------------------------------------------------
# Ordering, cap and summary
# ---------------------------------------------------------------------------


class TestDetectorContract:
    @pytest.fixture()
    def mixed(self) -> tuple[PeriodSnapshot, PeriodSnapshot, list[DailyMetrics], RetentionSummary]:
        current = PeriodSnapshot(
            account=AccountMetrics.build(spend=2000, revenue=8000, clicks=1000, conversions=10),
            skus=(SkuMetrics.build(sku="A", spend=100, revenue=1000, conversions=4),),
        )
        previous = PeriodSnapshot(
            account=AccountMetrics.build(spend=1000, revenue=8000, clicks=1000, conversions=20),
            skus=(SkuMetrics.build(sku="A", spend=100, revenue=600, conversions=3),),
        )
        series = _days([(100, 1000, 10), (100, 900, 10), (100, 800, 10), (100, 700, 10)])
        retention = RetentionSummary(
            total_users=1000, new_users=600, returning_users=400, return_rate=40.0, repurchase_estimate=2.0
        )
        return current, previous, series, retention

    def test_severity_major_order(self, mixed) -> None:
        alerts = compute_all_smart_alerts(*mixed)
        ranks = [severity_rank(a.severity) for a in alerts]
        assert ranks == sorted(ranks)

    def test_stable_across_calls(self, mixed) -> None:
        first = compute_all_smart_alerts(*mixed)
        second = compute_all_smart_alerts(*mixed)
        assert first == second

    def test_cap(self, mixed) -> None:
        alerts = compute_all_smart_alerts(*mixed, max_alerts=2)
        assert len(alerts) == 2

    def test_summary_counts(self, mixed) -> None:
        alerts = compute_all_smart_alerts(*mixed)
        summary = summarize_alerts(alerts)
        assert summary["total"] == len(alerts)
        assert summary["danger"] + summary["warn"] + summary["info"] + summary["success"] == len(alerts)
