"""
app/services/planning_service.py

Read and write monthly commercial targets.

Only the stored inputs are persisted; derived metrics are recomputed by the
target cascade on every read.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from app.domain.errors import UnknownPlanningMetricError
from app.providers.base import PlanningStore
from planning.cascade import (
    KNOWN_METRICS,
    compute_target_full_year,
    compute_target_month,
)

logger = logging.getLogger(__name__)

PLAN_TYPE_TARGET = "target"


def _validate_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}.")


async def get_month_plan(store: PlanningStore, tenant_id: str, year: int, month: int) -> dict[str, Any]:
    """
    Return the stored inputs and the cascaded metrics for one month.
    """
    _validate_month(month)
    stored = await store.load_month(tenant_id, year, month, PLAN_TYPE_TARGET)
    return {
        "tenant_id": tenant_id,
        "year": year,
        "month": month,
        "stored": dict(stored),
        "metrics": compute_target_month(stored),
    }


async def get_year_plan(store: PlanningStore, tenant_id: str, year: int) -> dict[str, Any]:
    """
    Return every month cascaded plus the ``totals`` and ``average`` columns.
    """
    stored = await store.load_year(tenant_id, year, PLAN_TYPE_TARGET)
    target_year = compute_target_full_year(stored)
    return {
        "tenant_id": tenant_id,
        "year": year,
        "months": {str(month): values for month, values in target_year.months.items()},
        "totals": target_year.totals,
        "average": target_year.average,
    }


async def save_month_plan(
    store: PlanningStore,
    tenant_id: str,
    year: int,
    month: int,
    values: Mapping[str, float],
    *,
    source: str = "manual",
) -> dict[str, Any]:
    """
    Upsert planning values and return the refreshed month.

    Any metric the cascade knows may be stored, including derived ones;
    a stored value takes precedence over its formula.

    Raises
    ------
    UnknownPlanningMetricError
        If *values* names a metric outside the cascade vocabulary.
    """
    _validate_month(month)
    unknown = sorted(key for key in values if key not in KNOWN_METRICS)
    if unknown:
        raise UnknownPlanningMetricError(f"Unknown planning metric(s): {', '.join(unknown)}.")

    await store.save_month(tenant_id, year, month, values, plan_type=PLAN_TYPE_TARGET, source=source)
    logger.info(
        "Saved %d planning value(s) tenant=%s year=%s month=%s source=%s",
        len(values),
        tenant_id,
        year,
        month,
        source,
    )
    return await get_month_plan(store, tenant_id, year, month)
