"""
app/api/routers/planning_router.py

Monthly commercial target endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from app.api.dependencies import get_backends
from app.domain.errors import UnknownPlanningMetricError
from app.providers.base import Backends
from app.schemas.planning import PlanningMonthRequest, PlanningMonthResponse, PlanningYearResponse
from app.services.planning_service import get_month_plan, get_year_plan, save_month_plan

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/planning", tags=["planning"])

@router.get("/{year}/{month}", response_model=PlanningMonthResponse)
async def read_month(
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    tenant_id: str = Query(..., min_length=1),
    backends: Backends = Depends(get_backends),
) -> PlanningMonthResponse:
    payload = await get_month_plan(backends.planning_store, tenant_id, year, month)
    return PlanningMonthResponse(**payload)


@router.get("/{year}", response_model=PlanningYearResponse)
async def read_year(
    year: int = Path(..., ge=2000, le=2100),
    tenant_id: str = Query(..., min_length=1),
    backends: Backends = Depends(get_backends),
) -> PlanningYearResponse:
    payload = await get_year_plan(backends.planning_store, tenant_id, year)
    return PlanningYearResponse(**payload)


@router.put("/{year}/{month}", response_model=PlanningMonthResponse)
async def write_month(
    body: PlanningMonthRequest,
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
    tenant_id: str = Query(..., min_length=1),
    backends: Backends = Depends(get_backends),
) -> PlanningMonthResponse:
    """
    Upsert target inputs; returns the month re-cascaded.

    Raises HTTP 422 when a metric name is not part of the target cascade.
    """
    try:
        payload = await save_month_plan(
            backends.planning_store,
            tenant_id,
            year,
            month,
            body.values,
            source=body.source,
        )
    except UnknownPlanningMetricError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    return PlanningMonthResponse(**payload)
