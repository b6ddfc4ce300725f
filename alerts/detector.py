"""
alerts/detector.py

Runs every alert scope and returns one ranked list.

Scopes run in a fixed order (account, campaign, sku, trend, retention);
their outputs are concatenated, stable-sorted severity-major
(danger > warn > info > success) and capped. The detector keeps no state
and never mutates its inputs.
"""

from __future__ import annotations

from typing import Iterable

from alerts.account_rules import AccountAlertRules
from alerts.base import AlertInputs, BaseAlertRules
from alerts.campaign_rules import CampaignAlertRules
from alerts.retention_rules import RetentionAlertRules
from alerts.sku_rules import SkuAlertRules
from alerts.trend_rules import TrendAlertRules
from alerts.types import SEVERITY_ORDER, SmartAlert, sort_by_severity
from app.domain.metrics import DailyMetrics, PeriodSnapshot, RetentionSummary

MAX_ALERTS: int = 15

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_RULES: tuple[BaseAlertRules, ...] = (
    AccountAlertRules(),
    CampaignAlertRules(),
    SkuAlertRules(),
    TrendAlertRules(),
    RetentionAlertRules(),
)


def compute_all_smart_alerts(
    current: PeriodSnapshot,
    previous: PeriodSnapshot,
    daily_series: Iterable[DailyMetrics] = (),
    retention: RetentionSummary | None = None,
    *,
    max_alerts: int = MAX_ALERTS,
) -> list[SmartAlert]:
    """
    Compare *current* against *previous* and return ranked alerts.

    Parameters
    ----------
    current, previous:
        Metrics for the analysed window and the equal-length window before
        it. A scope whose previous-period data is absent yields no alerts.
    daily_series:
        Current-period daily points in chronological order.
    retention:
        Optional cohort summary; retention alerts are skipped when ``None``.
    max_alerts:
        Cap applied after sorting.

    Returns
    -------
    list[SmartAlert]
        Severity-major, input order preserved within a severity.
    """
    inputs = AlertInputs(
        current=current,
        previous=previous,
        daily_series=tuple(daily_series),
        retention=retention,
    )

    collected: list[SmartAlert] = []
    for rules in _RULES:
        collected.extend(rules.evaluate(inputs))

    return sort_by_severity(collected)[:max_alerts]


def summarize_alerts(alerts: Iterable[SmartAlert]) -> dict[str, int]:
    """
    Count alerts per severity, plus a ``total`` key.
    """
    summary = {severity: 0 for severity in SEVERITY_ORDER}
    total = 0
    for alert in alerts:
        summary[alert.severity] = summary.get(alert.severity, 0) + 1
        total += 1
    summary["total"] = total
    return summary
