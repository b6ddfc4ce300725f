"""
app/services/alert_service.py

Smart alerts for one tenant and window.
"""

from __future__ import annotations

import logging
from typing import Any

from alerts.detector import compute_all_smart_alerts, summarize_alerts
from app.config import EngineSettings, get_engine_settings
from app.domain.metrics import Period, PeriodSnapshot
from app.providers.base import Backends
from app.services.intelligence_service import build_context

logger = logging.getLogger(__name__)


async def compute_alerts(
    backends: Backends,
    tenant_id: str,
    period: Period,
    *,
    settings: EngineSettings | None = None,
) -> dict[str, Any]:
    """
    Return ``{"alerts", "summary", "period"}`` for *period* compared with
    the equal-length window before it.

    A tenant with no account data for the window gets no account-scope
    alerts rather than an error.
    """
    settings = settings or get_engine_settings()
    context = await build_context(backends, tenant_id, period, require_account=False)

    current = PeriodSnapshot(account=context.account, campaigns=context.campaigns, skus=context.skus)
    alerts = compute_all_smart_alerts(
        current,
        context.previous,
        context.daily_series,
        context.retention,
        max_alerts=settings.max_alerts,
    )
    logger.info(
        "Computed %d alert(s) for tenant=%s period=%s..%s",
        len(alerts),
        tenant_id,
        period.start,
        period.end,
    )
    return {
        "alerts": [alert.to_dict() for alert in alerts],
        "summary": summarize_alerts(alerts),
        "period": period.as_dict(),
    }
