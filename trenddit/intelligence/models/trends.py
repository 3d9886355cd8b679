"""Trend models for streamed batch generation."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .common import clamp


class TrendCategory(str, Enum):
    CONSUMER = "consumer"
    COMPETITION = "competition"
    ECONOMY = "economy"
    REGULATION = "regulation"


class Trend(BaseModel):
    """A generated market trend."""

    id: str
    category: TrendCategory
    title: str
    summary: str
    impact_score: float = Field(default=7.0, ge=1.0, le=10.0)
    source: str = "Industry Analysis"
    source_url: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("impact_score", mode="before")
    @classmethod
    def _clamp_impact(cls, value: Any) -> float:
        return clamp(value, 1.0, 10.0, default=7.0)


class TrendProfile(BaseModel):
    """Company profile used to focus trend generation."""

    industry: str
    market: Optional[str] = None
    customer: Optional[str] = None
    business_size: Optional[str] = None


class TrendBatch(BaseModel):
    """One category-scoped unit of streamed output. Transient."""

    batch_id: str
    trends: list[Trend] = Field(default_factory=list)
    category: Optional[TrendCategory] = None
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    is_complete: bool = True
    error: Optional[str] = None

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value: Any) -> float:
        return clamp(value, default=0.0)


class BatchProgress(BaseModel):
    total_batches: int
    completed_batches: int
    progress: float = Field(ge=0.0, le=1.0)
    estimated_time_remaining_ms: float = Field(default=0.0, ge=0.0)

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value: Any) -> float:
        return clamp(value, default=0.0)
