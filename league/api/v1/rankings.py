"""
League rankings API endpoints.

Read-only access to overall, category and metric rankings, region
profiles and side-by-side comparison for the latest (or a given) year.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from league.core.database import get_db
from league.core.models import Category, Metric
from league.core.schemas import RankingsResponse
from league.scoring.tiers import TIER_NAMES
from league.services.rankings import RankingsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Rankings"])


# ---------------------------------------------------------------------------
# GET /rankings
# ---------------------------------------------------------------------------

@router.get(
    "/rankings",
    response_model=RankingsResponse,
    summary="Overall league table",
    response_description="Regions ordered by overall score",
)
def get_overall_rankings(
    year: Optional[int] = Query(None, description="Scoring year (defaults to latest scored)"),
    tier: Optional[str] = Query(None, description="Filter by tier (Champion, Contender, Rising, Developing)"),
    db: Session = Depends(get_db),
):
    """Return the overall league table with score, rank and tier per region."""
    if tier and tier not in TIER_NAMES:
        raise HTTPException(status_code=400, detail=f"Unknown tier '{tier}'. Expected one of {TIER_NAMES}")
    return RankingsService(db).overall_rankings(year=year, tier=tier)


# ---------------------------------------------------------------------------
# GET /rankings/categories/{category_id}
# ---------------------------------------------------------------------------

@router.get(
    "/rankings/categories/{category_id}",
    response_model=RankingsResponse,
    summary="Category league table",
)
def get_category_rankings(
    category_id: str,
    year: Optional[int] = Query(None, description="Scoring year (defaults to latest scored)"),
    db: Session = Depends(get_db),
):
    """Return regions ranked within one category."""
    if db.get(Category, category_id) is None:
        raise HTTPException(status_code=404, detail=f"Category {category_id} not found")
    return RankingsService(db).category_rankings(category_id, year=year)


# ---------------------------------------------------------------------------
# GET /metrics/{metric_id}/rankings
# ---------------------------------------------------------------------------

@router.get(
    "/metrics/{metric_id}/rankings",
    summary="Metric league table",
    response_description="Metric details and regions ranked on it, with raw values",
)
def get_metric_rankings(
    metric_id: str,
    year: Optional[int] = Query(None, description="Scoring year (defaults to latest scored)"),
    db: Session = Depends(get_db),
):
    """Return one metric's normalized scores and raw values per region."""
    metric = db.get(Metric, metric_id)
    if metric is None:
        raise HTTPException(status_code=404, detail=f"Metric {metric_id} not found")

    service = RankingsService(db)
    data = service.metric_rankings(metric_id, year=year)
    data["metric"] = service.metric_info(metric)
    return data


# ---------------------------------------------------------------------------
# GET /regions/{region_id}
# ---------------------------------------------------------------------------

@router.get(
    "/regions/{region_id}",
    summary="Region profile",
    response_description="Overall score (null when unscored) and per-category scores",
)
def get_region_profile(
    region_id: str,
    year: Optional[int] = Query(None, description="Scoring year (defaults to latest scored)"),
    db: Session = Depends(get_db),
):
    """
    Return a region's overall and category scores.

    A region without an overall score is returned with `overall: null`.
    """
    profile = RankingsService(db).region_profile(region_id, year=year)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Region {region_id} not found")
    return profile


# ---------------------------------------------------------------------------
# GET /compare
# ---------------------------------------------------------------------------

@router.get(
    "/compare",
    summary="Compare regions by category",
)
def compare_regions(
    regions: Optional[str] = Query(None, description="Comma-separated region ids (default: all)"),
    year: Optional[int] = Query(None, description="Scoring year (defaults to latest scored)"),
    db: Session = Depends(get_db),
):
    """Return category scores keyed by region for side-by-side comparison."""
    region_ids = [r.strip() for r in regions.split(",") if r.strip()] if regions else None
    return RankingsService(db).comparison(region_ids=region_ids, year=year)
