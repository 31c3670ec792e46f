"""
Read-side queries over the computed score tables.

These shape the rows the website and the JSON export consume: every level
is a list of `{id, name, score, display_score, rank, tier}` entries joined
with reference names. A region without an overall score is a normal state
and comes back as `None`, not an error.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from league.core.models import (
    Category,
    CategoryScore,
    Metric,
    MetricScore,
    OverallScore,
    Region,
)

logger = logging.getLogger(__name__)


def format_score(score: float) -> str:
    """Scores are stored to 2 decimals and shown to 1."""
    return f"{score:.1f}"


def _value(enum_or_str) -> Optional[str]:
    if enum_or_str is None:
        return None
    return getattr(enum_or_str, "value", enum_or_str)


class RankingsService:
    """Query rankings and region profiles for a scored year."""

    def __init__(self, db: Session):
        self.db = db

    def get_latest_scored_year(self) -> Optional[int]:
        return self.db.query(func.max(OverallScore.year)).scalar()

    def _resolve_year(self, year: Optional[int]) -> Optional[int]:
        return year if year is not None else self.get_latest_scored_year()

    # ------------------------------------------------------------------
    # Reference lookups
    # ------------------------------------------------------------------

    def list_regions(self) -> List[Region]:
        return self.db.query(Region).order_by(Region.name).all()

    def list_categories(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.sort_order, Category.id).all()

    def list_metrics(self, category_id: Optional[str] = None) -> List[Metric]:
        query = self.db.query(Metric)
        if category_id:
            query = query.filter(Metric.category_id == category_id)
        return query.order_by(Metric.category_id, Metric.id).all()

    @staticmethod
    def metric_info(metric: Metric) -> Dict[str, Any]:
        return {
            "id": metric.id,
            "name": metric.name,
            "unit": metric.unit,
            "source": metric.source,
            "polarity": _value(metric.polarity),
            "category_id": metric.category_id,
            "weight": metric.weight,
            "description": metric.description,
            "source_url": metric.source_url,
        }

    # ------------------------------------------------------------------
    # Rankings
    # ------------------------------------------------------------------

    def overall_rankings(self, year: Optional[int] = None, tier: Optional[str] = None) -> Dict[str, Any]:
        year = self._resolve_year(year)
        if year is None:
            return {"year": None, "total": 0, "rankings": []}

        query = (
            self.db.query(OverallScore, Region)
            .join(Region, Region.id == OverallScore.region_id)
            .filter(OverallScore.year == year)
        )
        if tier:
            query = query.filter(OverallScore.tier == tier)

        rankings = [
            {
                "id": region.id,
                "name": region.name,
                "region_type": _value(region.region_type),
                "zone": region.zone,
                "score": overall.score,
                "display_score": format_score(overall.score),
                "rank": overall.rank,
                "tier": overall.tier,
            }
            for overall, region in query.order_by(OverallScore.rank).all()
        ]
        return {"year": year, "total": len(rankings), "rankings": rankings}

    def category_rankings(self, category_id: str, year: Optional[int] = None) -> Dict[str, Any]:
        year = self._resolve_year(year)
        if year is None:
            return {"year": None, "total": 0, "rankings": []}

        rows = (
            self.db.query(CategoryScore, Region)
            .join(Region, Region.id == CategoryScore.region_id)
            .filter(CategoryScore.category_id == category_id, CategoryScore.year == year)
            .order_by(CategoryScore.rank)
            .all()
        )
        rankings = [
            {
                "id": region.id,
                "name": region.name,
                "region_type": _value(region.region_type),
                "score": cs.score,
                "display_score": format_score(cs.score),
                "rank": cs.rank,
                "metrics_count": cs.metrics_count,
            }
            for cs, region in rows
        ]
        return {"year": year, "total": len(rankings), "rankings": rankings}

    def metric_rankings(self, metric_id: str, year: Optional[int] = None) -> Dict[str, Any]:
        year = self._resolve_year(year)
        if year is None:
            return {"year": None, "total": 0, "rankings": []}

        rows = (
            self.db.query(MetricScore, Region)
            .join(Region, Region.id == MetricScore.region_id)
            .filter(MetricScore.metric_id == metric_id, MetricScore.year == year)
            .order_by(MetricScore.rank)
            .all()
        )
        rankings = [
            {
                "id": region.id,
                "name": region.name,
                "region_type": _value(region.region_type),
                "raw_value": ms.raw_value,
                "score": ms.norm_score,
                "display_score": format_score(ms.norm_score),
                "rank": ms.rank,
            }
            for ms, region in rows
        ]
        return {"year": year, "total": len(rankings), "rankings": rankings}

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def region_profile(self, region_id: str, year: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        Overall and per-category scores for one region.

        Returns None only when the region itself is unknown; an unscored
        region gets `overall: None` and an empty category list.
        """
        region = self.db.get(Region, region_id)
        if region is None:
            return None

        year = self._resolve_year(year)
        overall = None
        categories: List[Dict[str, Any]] = []

        if year is not None:
            row = (
                self.db.query(OverallScore)
                .filter(OverallScore.region_id == region_id, OverallScore.year == year)
                .first()
            )
            if row is not None:
                overall = {
                    "score": row.score,
                    "display_score": format_score(row.score),
                    "rank": row.rank,
                    "tier": row.tier,
                }

            cat_rows = (
                self.db.query(CategoryScore, Category)
                .join(Category, Category.id == CategoryScore.category_id)
                .filter(CategoryScore.region_id == region_id, CategoryScore.year == year)
                .order_by(Category.sort_order, Category.id)
                .all()
            )
            categories = [
                {
                    "id": cat.id,
                    "name": cat.name,
                    "score": cs.score,
                    "display_score": format_score(cs.score),
                    "rank": cs.rank,
                    "metrics_count": cs.metrics_count,
                }
                for cs, cat in cat_rows
            ]

        return {
            "year": year,
            "region": {
                "id": region.id,
                "name": region.name,
                "region_type": _value(region.region_type),
                "zone": region.zone,
                "population": region.population,
                "area_sq_km": region.area_sq_km,
            },
            "overall": overall,
            "categories": categories,
        }

    def comparison(self, region_ids: Optional[List[str]] = None, year: Optional[int] = None) -> Dict[str, Any]:
        """Category scores keyed by region then category, for side-by-side views."""
        year = self._resolve_year(year)
        regions = self.list_regions()
        if region_ids:
            wanted = set(region_ids)
            regions = [r for r in regions if r.id in wanted]

        scores: Dict[str, Dict[str, float]] = {r.id: {} for r in regions}
        if year is not None and regions:
            rows = (
                self.db.query(CategoryScore.region_id, CategoryScore.category_id, CategoryScore.score)
                .filter(CategoryScore.year == year, CategoryScore.region_id.in_(list(scores)))
                .all()
            )
            for region_id, category_id, score in rows:
                scores[region_id][category_id] = score

        return {
            "year": year,
            "regions": [
                {"id": r.id, "name": r.name, "region_type": _value(r.region_type)}
                for r in regions
            ],
            "scores": scores,
        }
