"""
app/api/routers/alerts_router.py

Smart alert endpoint.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import engine_settings, get_backends, get_period
from app.config import EngineSettings
from app.domain.errors import RequiredSourceError
from app.domain.metrics import Period
from app.providers.base import Backends
from app.schemas.alerts import AlertsResponse
from app.services.alert_service import compute_alerts

logger = logging.getLogger(__name__)

router = APIRouter(tags=["alerts"])


@router.get(
    "/alerts",
    response_model=AlertsResponse,
    status_code=status.HTTP_200_OK,
)
async def get_alerts(
    tenant_id: str = Query(..., min_length=1),
    period: Period = Depends(get_period),
    backends: Backends = Depends(get_backends),
    settings: EngineSettings = Depends(engine_settings),
) -> AlertsResponse:
    """
    Period-over-period smart alerts for *tenant_id*.

    Raises HTTP 400/422 for a missing, malformed or reversed date range.
    Raises HTTP 502 when account or SKU metrics cannot be fetched.
    """
    try:
        payload = await compute_alerts(backends, tenant_id, period, settings=settings)
    except RequiredSourceError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    return AlertsResponse(**payload)
