"""
Post-scoring data validation.

Checks coverage and score sanity for the scored year:
- Regions with any data
- Metrics with any data
- Metrics observed in too few regions
- Tier distribution
- Extreme overall scores (> 95 or < 5)
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from league.core.config import Settings, get_settings
from league.core.models import Metric, Observation, OverallScore, Region

logger = logging.getLogger(__name__)

EXTREME_HIGH = 95.0
EXTREME_LOW = 5.0


class ValidationResult:
    """Result of a single validation check."""

    def __init__(
        self,
        check_name: str,
        passed: bool,
        message: str,
        severity: str = "warning",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.check_name = check_name
        self.passed = passed
        self.message = message
        self.severity = severity  # "info", "warning", "error"
        self.details = details or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "check_name": self.check_name,
            "passed": self.passed,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class DataValidator:
    """
    Validates coverage and score distribution after a scoring run.

    Each low-coverage metric and each extreme score counts as one warning;
    the validation fails on any error or when warnings exceed the
    configured maximum.
    """

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.results: List[ValidationResult] = []
        self.warnings = 0

    def _resolve_year(self) -> Optional[int]:
        scored = self.db.query(func.max(OverallScore.year)).scalar()
        if scored is not None:
            return scored
        return self.db.query(func.max(Observation.year)).scalar()

    def validate(self, year: Optional[int] = None) -> Dict[str, Any]:
        """Run every check for the year (defaults to the latest scored year)."""
        self.results = []
        self.warnings = 0

        year = year if year is not None else self._resolve_year()
        if year is None:
            self.results.append(
                ValidationResult(
                    check_name="data_present",
                    passed=False,
                    message="No data found",
                    severity="error",
                )
            )
            return self._report(None)

        self._check_regions_with_data(year)
        self._check_metrics_with_data(year)
        self._check_low_coverage(year)
        self._check_tier_distribution(year)
        self._check_extreme_scores(year)

        return self._report(year)

    def _report(self, year: Optional[int]) -> Dict[str, Any]:
        errors = [r for r in self.results if not r.passed and r.severity == "error"]
        passed = not errors and self.warnings <= self.settings.validation_max_warnings

        if errors:
            status = "failed"
        elif not passed:
            status = "too_many_warnings"
        elif self.warnings:
            status = "warning"
        else:
            status = "passed"

        logger.info(f"Validation complete: {self.warnings} warnings, status={status}")
        return {
            "year": year,
            "status": status,
            "passed": passed,
            "warnings": self.warnings,
            "max_warnings": self.settings.validation_max_warnings,
            "checks": [r.to_dict() for r in self.results],
        }

    def _check_regions_with_data(self, year: int) -> None:
        with_data = (
            self.db.query(func.count(func.distinct(Observation.region_id)))
            .filter(Observation.year == year)
            .scalar()
        ) or 0
        total = self.db.query(func.count(Region.id)).scalar() or 0
        minimum = self.settings.validation_min_regions
        passed = with_data >= minimum
        if not passed:
            self.warnings += 1

        self.results.append(
            ValidationResult(
                check_name="regions_with_data",
                passed=passed,
                message=f"Regions with data: {with_data}/{total}",
                severity="warning" if not passed else "info",
                details={"with_data": with_data, "total": total, "minimum": minimum},
            )
        )

    def _check_metrics_with_data(self, year: int) -> None:
        with_data = (
            self.db.query(func.count(func.distinct(Observation.metric_id)))
            .filter(Observation.year == year)
            .scalar()
        ) or 0
        total = self.db.query(func.count(Metric.id)).scalar() or 0

        self.results.append(
            ValidationResult(
                check_name="metrics_with_data",
                passed=True,
                message=f"Metrics with data: {with_data}/{total}",
                severity="info",
                details={"with_data": with_data, "total": total},
            )
        )

    def _check_low_coverage(self, year: int) -> None:
        threshold = self.settings.validation_low_coverage
        region_count = func.count(func.distinct(Observation.region_id))
        rows = (
            self.db.query(Metric.id, Metric.name, region_count.label("region_count"))
            .outerjoin(
                Observation,
                and_(Observation.metric_id == Metric.id, Observation.year == year),
            )
            .group_by(Metric.id, Metric.name)
            .having(region_count < threshold)
            .order_by(region_count, Metric.id)
            .all()
        )
        low = [
            {"metric_id": r.id, "name": r.name, "region_count": r.region_count}
            for r in rows
        ]
        self.warnings += len(low)

        self.results.append(
            ValidationResult(
                check_name="low_coverage_metrics",
                passed=not low,
                message=f"Metrics with low coverage (<{threshold} regions): {len(low)}",
                severity="warning" if low else "info",
                details={"threshold": threshold, "metrics": low},
            )
        )

    def _check_tier_distribution(self, year: int) -> None:
        rows = (
            self.db.query(OverallScore.tier, func.count(OverallScore.region_id))
            .filter(OverallScore.year == year)
            .group_by(OverallScore.tier)
            .all()
        )
        distribution = {tier: count for tier, count in rows}

        self.results.append(
            ValidationResult(
                check_name="tier_distribution",
                passed=True,
                message=f"Score distribution: {distribution}",
                severity="info",
                details={"distribution": distribution},
            )
        )

    def _check_extreme_scores(self, year: int) -> None:
        rows = (
            self.db.query(Region.id, Region.name, OverallScore.score, OverallScore.tier)
            .join(OverallScore, OverallScore.region_id == Region.id)
            .filter(
                OverallScore.year == year,
                (OverallScore.score > EXTREME_HIGH) | (OverallScore.score < EXTREME_LOW),
            )
            .order_by(OverallScore.score)
            .all()
        )
        extremes = [
            {"region_id": r.id, "name": r.name, "score": r.score, "tier": r.tier}
            for r in rows
        ]
        self.warnings += len(extremes)

        self.results.append(
            ValidationResult(
                check_name="extreme_scores",
                passed=not extremes,
                message=f"Extreme overall scores (>{EXTREME_HIGH:g} or <{EXTREME_LOW:g}): {len(extremes)}",
                severity="warning" if extremes else "info",
                details={"regions": extremes},
            )
        )
