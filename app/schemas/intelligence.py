"""
Schemas for intelligence and narrative endpoints.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from llm_synthesis.schema import NarrativeOutput


class IntelligenceResponse(BaseModel):
    tenant_id: str
    period: dict[str, Any]
    health_score: float = Field(ge=0.0, le=100.0)
    top_priority: dict[str, Any] | None = None
    quick_wins: list[dict[str, Any]] = Field(default_factory=list)
    insights: list[dict[str, Any]] = Field(default_factory=list)
    alerts: list[dict[str, Any]] = Field(default_factory=list)
    decisions: list[dict[str, Any]] = Field(default_factory=list)
    mode: dict[str, Any] | None = None
    bottleneck: dict[str, Any] | None = None
    pacing: list[dict[str, Any]] = Field(default_factory=list)
    trend: dict[str, Any] | None = None
    executive_summary: dict[str, Any] | None = None
    generated_at: datetime


class NarrativeRequest(BaseModel):
    tenant_id: str = Field(min_length=1)
    start_date: date
    end_date: date


class NarrativeResponse(BaseModel):
    tenant_id: str
    period: dict[str, Any]
    health_score: float
    cached: bool
    narrative: NarrativeOutput
