"""
alerts/types.py

Smart alert record and the severity/category vocabularies.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal

Severity = Literal["danger", "warn", "info", "success"]
AlertCategory = Literal["account", "campaign", "sku", "trend", "retention"]

SEVERITY_DANGER: Severity = "danger"
SEVERITY_WARN: Severity = "warn"
SEVERITY_INFO: Severity = "info"
SEVERITY_SUCCESS: Severity = "success"

# Lower sorts first.
SEVERITY_ORDER: dict[str, int] = {
    SEVERITY_DANGER: 0,
    SEVERITY_WARN: 1,
    SEVERITY_INFO: 2,
    SEVERITY_SUCCESS: 3,
}

NEGATIVE_SEVERITIES: frozenset[str] = frozenset({SEVERITY_DANGER, SEVERITY_WARN})


@dataclass(frozen=True)
class SmartAlert:
    """
    One period-over-period or trend anomaly.

    ``delta_pct`` is the signed percent change previous -> current,
    rounded to one decimal. It is ``0`` when the previous value is zero.
    """

    id: str
    category: AlertCategory
    severity: Severity
    title: str
    description: str
    metric: str
    current_value: float
    previous_value: float
    delta_pct: float
    entity_name: str | None = None
    entity_id: str | None = None
    recommendation: str | None = None

    @property
    def is_negative(self) -> bool:
        return self.severity in NEGATIVE_SEVERITIES

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def severity_rank(severity: str) -> int:
    """Sort key for a severity label; unknown labels sort with ``info``."""
    return SEVERITY_ORDER.get(severity, SEVERITY_ORDER[SEVERITY_INFO])


def sort_by_severity(alerts: list[SmartAlert]) -> list[SmartAlert]:
    """
    Stable severity-major sort. Input order is preserved within ties.
    """
    return sorted(alerts, key=lambda alert: severity_rank(alert.severity))
