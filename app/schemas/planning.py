"""
Schemas for planning target endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PlanningMonthRequest(BaseModel):
    values: dict[str, float] = Field(min_length=1)
    source: str = Field(default="manual", min_length=1, max_length=32)


class PlanningMonthResponse(BaseModel):
    tenant_id: str
    year: int
    month: int
    stored: dict[str, float] = Field(default_factory=dict)
    metrics: dict[str, float] = Field(default_factory=dict)


class PlanningYearResponse(BaseModel):
    tenant_id: str
    year: int
    months: dict[str, dict[str, float]]
    totals: dict[str, float] = Field(default_factory=dict)
    average: dict[str, float] = Field(default_factory=dict)
