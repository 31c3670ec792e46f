"""
Pydantic schemas for seed records, observation loading and API responses.
"""
import math
from datetime import datetime
from typing import Optional, List
from pydantic import AliasChoices, BaseModel, Field, field_validator
from league.core.models import Polarity, RegionType, RunStatus


# =============================================================================
# Reference seed records
# =============================================================================


class RegionIn(BaseModel):
    """Reference record for a region."""
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1)
    code: Optional[str] = Field(default=None, validation_alias=AliasChoices("code", "code_mospi"))
    region_type: RegionType = Field(default=RegionType.STATE, alias="type")
    population: Optional[int] = Field(default=None, ge=0)
    area_sq_km: Optional[float] = Field(default=None, ge=0)
    zone: Optional[str] = Field(default=None, alias="region")

    model_config = {"populate_by_name": True}

    @field_validator("code", mode="before")
    @classmethod
    def coerce_code(cls, v):
        # codes arrive as numbers in some source files
        return str(v) if v is not None else None


class CategoryIn(BaseModel):
    """Reference record for a category."""
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    sort_order: int = 0
    weight: float = Field(default=1.0, ge=0.0, le=10.0)


class MetricIn(BaseModel):
    """Reference record for a metric."""
    id: str = Field(..., min_length=1, max_length=128)
    category_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    unit: Optional[str] = None
    source: Optional[str] = None
    polarity: Polarity = Polarity.POSITIVE
    weight: float = Field(default=1.0, ge=0.0, le=10.0)
    description: Optional[str] = None
    source_url: Optional[str] = None
    is_featured: bool = False


# =============================================================================
# Observations
# =============================================================================


class ObservationIn(BaseModel):
    """
    A typed raw observation, validated before it reaches the store.

    Blank disaggregation values are stored as NULL so that a "combined"
    figure is always recognisable by all four fields being unset.
    """
    metric_id: str = Field(..., min_length=1)
    region_id: str = Field(..., min_length=1)
    year: int = Field(..., ge=1900, le=2200)
    value: float
    period_label: Optional[str] = None
    gender: Optional[str] = None
    sector: Optional[str] = None
    age_group: Optional[str] = None
    social_group: Optional[str] = None
    status: str = "final"
    source_ref: Optional[str] = None

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("value must be a finite number")
        return v

    @field_validator("gender", "sector", "age_group", "social_group", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


# =============================================================================
# API responses
# =============================================================================


class RankingEntry(BaseModel):
    """One ranked region at any level."""
    id: str
    name: str
    region_type: Optional[str] = None
    score: float
    display_score: str
    rank: int
    tier: Optional[str] = None
    metrics_count: Optional[int] = None
    raw_value: Optional[float] = None


class RankingsResponse(BaseModel):
    year: Optional[int] = None
    total: int
    rankings: List[RankingEntry]


class ScoringRunResponse(BaseModel):
    """Response schema for scoring run information."""
    id: int
    status: RunStatus
    year: Optional[int] = None

    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    metrics_scored: Optional[int] = None
    metrics_skipped: Optional[int] = None
    metric_scores_count: Optional[int] = None
    category_scores_count: Optional[int] = None
    overall_scores_count: Optional[int] = None
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}
