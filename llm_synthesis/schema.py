"""Structured output schema for intelligence narratives."""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


class NarrativeOutput(BaseModel):
    """Only allowed output contract for the narrator."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    headline: str = Field(min_length=1, max_length=200)
    summary: str = Field(min_length=1)
    key_points: List[str] = Field(min_length=1, max_length=5)
    priority_action: str = Field(min_length=1)
    tone: Literal["positive", "neutral", "cautious", "critical"]
    confidence_score: float = Field(strict=True, ge=0.0, le=1.0)
