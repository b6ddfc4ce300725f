"""
alerts/account_rules.py

Account-level period-over-period alerts.

Rules evaluated (in order)
--------------------------
1. ROAS delta     <= -20% danger, <= -10% warn, >= +20% success.
2. Spend delta    >= +40% warn. A spend increase alone is never danger.
3. Conv. rate     <= -25% danger, <= -15% warn (conversions per click).

No alerts are raised when either period has no account data.
"""

from __future__ import annotations

from alerts.base import AlertInputs, BaseAlertRules, band, band_at_least, fmt_money, fmt_pct, round_delta
from alerts.types import SEVERITY_DANGER, SEVERITY_SUCCESS, SEVERITY_WARN, SmartAlert
from app.domain.metrics import AccountMetrics
from kpi.ratios import compute_conversion_rate, pct_delta, round2, safe_div

ROAS_DECLINE_BANDS: list[tuple[float, str]] = [(-20.0, SEVERITY_DANGER), (-10.0, SEVERITY_WARN)]
ROAS_GAIN_BANDS: list[tuple[float, str]] = [(20.0, SEVERITY_SUCCESS)]
SPEND_SPIKE_BANDS: list[tuple[float, str]] = [(40.0, SEVERITY_WARN)]
CONVERSION_RATE_DECLINE_BANDS: list[tuple[float, str]] = [(-25.0, SEVERITY_DANGER), (-15.0, SEVERITY_WARN)]

_ID_SUFFIX = {SEVERITY_DANGER: "drop", SEVERITY_WARN: "warn", SEVERITY_SUCCESS: "up"}


class AccountAlertRules(BaseAlertRules):
    scope = "account"

    def evaluate(self, inputs: AlertInputs) -> list[SmartAlert]:
        current = inputs.current.account
        previous = inputs.previous.account
        if current is None or previous is None:
            return []

        alerts: list[SmartAlert] = []
        for check in (self._roas, self._spend, self._conversion_rate):
            alert = check(current, previous)
            if alert is not None:
                alerts.append(alert)
        return alerts

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    @staticmethod
    def _roas(current: AccountMetrics, previous: AccountMetrics) -> SmartAlert | None:
        cur_roas = safe_div(current.revenue, current.spend)
        prev_roas = safe_div(previous.revenue, previous.spend)
        delta = pct_delta(cur_roas, prev_roas)
        severity = band(delta, ROAS_DECLINE_BANDS) or band_at_least(delta, ROAS_GAIN_BANDS)
        if severity is None:
            return None

        if severity == SEVERITY_SUCCESS:
            title = f"Account ROAS up {fmt_pct(delta)} vs previous period"
            recommendation = None
        elif severity == SEVERITY_DANGER:
            title = f"Account ROAS dropped {fmt_pct(delta)} vs previous period"
            recommendation = "Review the worst performing campaigns and pause those with the lowest ROAS"
        else:
            title = f"Account ROAS declining: {fmt_pct(delta)} below previous period"
            recommendation = "Monitor daily and consider adjusting bids"

        return SmartAlert(
            id=f"acct-roas-{_ID_SUFFIX[severity]}",
            category="account",
            severity=severity,
            title=title,
            description=f"Current ROAS: {cur_roas:.2f} vs previous: {prev_roas:.2f}.",
            metric="roas",
            current_value=round2(cur_roas),
            previous_value=round2(prev_roas),
            delta_pct=round_delta(delta),
            recommendation=recommendation,
        )

    @staticmethod
    def _spend(current: AccountMetrics, previous: AccountMetrics) -> SmartAlert | None:
        delta = pct_delta(current.spend, previous.spend)
        severity = band_at_least(delta, SPEND_SPIKE_BANDS)
        if severity is None:
            return None
        return SmartAlert(
            id="acct-spend-spike",
            category="account",
            severity=severity,
            title=f"Total account spend up {fmt_pct(delta)}",
            description=f"Current spend: {fmt_money(current.spend)} vs previous: {fmt_money(previous.spend)}.",
            metric="spend",
            current_value=round2(current.spend),
            previous_value=round2(previous.spend),
            delta_pct=round_delta(delta),
            recommendation="Check whether budgets changed or new campaigns are consuming spend",
        )

    @staticmethod
    def _conversion_rate(current: AccountMetrics, previous: AccountMetrics) -> SmartAlert | None:
        cur_rate = compute_conversion_rate(current.conversions, current.clicks)
        prev_rate = compute_conversion_rate(previous.conversions, previous.clicks)
        delta = pct_delta(cur_rate, prev_rate)
        severity = band(delta, CONVERSION_RATE_DECLINE_BANDS)
        if severity is None:
            return None
        return SmartAlert(
            id=f"acct-cr-{_ID_SUFFIX[severity]}",
            category="account",
            severity=severity,
            title=f"Conversion rate fell {fmt_pct(delta)}",
            description=f"Current rate: {cur_rate:.1f}% vs previous: {prev_rate:.1f}%.",
            metric="conversion_rate",
            current_value=round2(cur_rate),
            previous_value=round2(prev_rate),
            delta_pct=round_delta(delta),
            recommendation=(
                "Check for site, pricing or availability changes"
                if severity == SEVERITY_DANGER
                else None
            ),
        )

