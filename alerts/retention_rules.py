"""
alerts/retention_rules.py

Retention alerts from the cohort summary, when one is supplied.

- Return rate: < 15% danger, < 25% warn, >= 35% success. At most one of these.
- Repurchase estimate < 1 purchase per returning buyer: warn.
- Revenue per purchaser between 0 and 150 (exclusive): warn.
"""

from __future__ import annotations

from alerts.base import AlertInputs, BaseAlertRules, fmt_money
from alerts.types import SEVERITY_DANGER, SEVERITY_SUCCESS, SEVERITY_WARN, SmartAlert
from kpi.ratios import round2, safe_div

IDEAL_RETURN_RATE: float = 25.0

RETURN_RATE_BANDS: list[tuple[float, str]] = [
    (15.0, SEVERITY_DANGER),
    (IDEAL_RETURN_RATE, SEVERITY_WARN),
]
HEALTHY_RETURN_RATE: float = 35.0
MIN_REPURCHASE_ESTIMATE: float = 1.0
LOW_LTV_CEILING: float = 150.0

_RETURN_RATE_COPY: dict[str, tuple[str, str, str | None]] = {
    SEVERITY_DANGER: (
        "ret-return-rate-danger",
        "Very low return rate",
        "Launch email and remarketing flows for recent buyers",
    ),
    SEVERITY_WARN: (
        "ret-return-rate-warn",
        "Return rate below ideal",
        "Strengthen post-purchase engagement and loyalty offers",
    ),
    SEVERITY_SUCCESS: (
        "ret-return-rate-healthy",
        "Healthy return rate",
        None,
    ),
}


def _return_rate_severity(return_rate: float) -> str | None:
    for threshold, label in RETURN_RATE_BANDS:
        if return_rate < threshold:
            return label
    if return_rate >= HEALTHY_RETURN_RATE:
        return SEVERITY_SUCCESS
    return None


class RetentionAlertRules(BaseAlertRules):
    scope = "retention"

    def evaluate(self, inputs: AlertInputs) -> list[SmartAlert]:
        summary = inputs.retention
        if summary is None:
            return []

        alerts: list[SmartAlert] = []

        severity = _return_rate_severity(summary.return_rate)
        if severity is not None:
            alert_id, title, recommendation = _RETURN_RATE_COPY[severity]
            alerts.append(
                SmartAlert(
                    id=alert_id,
                    category="retention",
                    severity=severity,
                    title=title,
                    description=(
                        f"{summary.return_rate:.1f}% of users return to the site "
                        f"(ideal is above {IDEAL_RETURN_RATE:.0f}%)."
                    ),
                    metric="return_rate",
                    current_value=round2(summary.return_rate),
                    previous_value=0.0,
                    delta_pct=0.0,
                    recommendation=recommendation,
                )
            )

        if summary.repurchase_estimate < MIN_REPURCHASE_ESTIMATE:
            alerts.append(
                SmartAlert(
                    id="ret-repurchase-low",
                    category="retention",
                    severity=SEVERITY_WARN,
                    title="Low repurchase frequency",
                    description=(
                        f"Estimated {summary.repurchase_estimate:.2f} purchases per returning customer."
                    ),
                    metric="repurchase_frequency",
                    current_value=round2(summary.repurchase_estimate),
                    previous_value=0.0,
                    delta_pct=0.0,
                    recommendation="Add cross-sell, bundles and post-purchase automations",
                )
            )

        ltv = safe_div(summary.revenue, summary.purchasers)
        if 0 < ltv < LOW_LTV_CEILING:
            alerts.append(
                SmartAlert(
                    id="ret-ltv-low",
                    category="retention",
                    severity=SEVERITY_WARN,
                    title="Low average revenue per purchaser",
                    description=f"Average of {fmt_money(ltv)} per purchaser in the period.",
                    metric="ltv",
                    current_value=round2(ltv),
                    previous_value=0.0,
                    delta_pct=0.0,
                    recommendation="Focus on raising average ticket and purchase frequency",
                )
            )

        return alerts
