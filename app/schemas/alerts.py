"""
Schemas for the smart alert endpoint.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class AlertSummary(BaseModel):
    danger: int = 0
    warn: int = 0
    info: int = 0
    success: int = 0
    total: int = 0


class AlertsResponse(BaseModel):
    alerts: list[dict[str, Any]] = Field(default_factory=list)
    summary: AlertSummary
    period: dict[str, Any]
