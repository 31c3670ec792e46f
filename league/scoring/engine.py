"""
League scoring engine: pipeline orchestrator.

Reads observations for one year, computes normalized scores per metric,
aggregates them into category scores and overall scores, then writes the
results back to the score tables. Every run is recorded in scoring_runs.

Stages run strictly in order:

    select_period -> clear_prior_results -> score_all_metrics
        -> aggregate_categories -> aggregate_overall

Each write stage replaces the rows for the year inside one transaction.
Any failure rolls the stage back, marks the run failed and propagates.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from league.core.config import Settings, get_settings
from league.core.errors import NoScorableDataError, StoreError
from league.core.models import (
    Category,
    CategoryScore,
    Metric,
    MetricScore,
    Observation,
    OverallScore,
    Region,
    RunStatus,
    ScoringRun,
)
from league.scoring.aggregators import (
    CategoryDef,
    CategoryScoreResult,
    OverallScoreResult,
    aggregate_categories,
    aggregate_overall,
)
from league.scoring.metric_scorer import (
    MetricDef,
    MetricScoreResult,
    ObservationRow,
    score_metric,
)
from league.scoring.tiers import TIER_DESCRIPTIONS, TIER_NAMES

logger = logging.getLogger(__name__)


@dataclass
class MetricStageResult:
    """Output of the metric stage, including which metrics were skipped."""

    results: List[MetricScoreResult] = field(default_factory=list)
    scored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class ScoringEngine:
    """Compute metric, category and overall scores for the best-covered year."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Store helpers
    # ------------------------------------------------------------------

    def _read(self, stage: str, year: Optional[int], fn):
        try:
            return fn()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to read from store: {e}", year=year, stage=stage, original=e) from e

    def _replace_rows(self, model, year: int, rows: List[Dict[str, Any]], stage: str) -> int:
        """Delete the year's rows from `model` and insert `rows`, in one transaction."""
        try:
            self.db.query(model).filter(model.year == year).delete(synchronize_session=False)
            if rows:
                self.db.bulk_insert_mappings(model, rows)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[{stage}] write failed for year {year}: {e}")
            raise StoreError(f"Failed to write {model.__tablename__}: {e}", year=year, stage=stage, original=e) from e
        return len(rows)

    def _metric_defs(self, year: Optional[int]) -> Dict[str, MetricDef]:
        metrics = self._read("load_reference", year, lambda: self.db.query(Metric).all())
        return {
            m.id: MetricDef(id=m.id, category_id=m.category_id, polarity=m.polarity, weight=m.weight)
            for m in metrics
        }

    def _category_defs(self, year: Optional[int]) -> Dict[str, CategoryDef]:
        categories = self._read("load_reference", year, lambda: self.db.query(Category).all())
        return {
            c.id: CategoryDef(id=c.id, weight=c.weight, sort_order=c.sort_order)
            for c in categories
        }

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def select_period(self) -> int:
        """
        Pick the year with the most distinct metrics having data.

        Ties go to the most recent year, so a sparsely covered latest year
        does not win over a well covered earlier one.
        """
        query = text("""
            SELECT o.year, COUNT(DISTINCT o.metric_id) AS metric_count
            FROM observations o
            JOIN metrics m ON m.id = o.metric_id
            GROUP BY o.year
            ORDER BY metric_count DESC, o.year DESC
            LIMIT 1
        """)
        row = self._read("select_period", None, lambda: self.db.execute(query).fetchone())
        if row is None:
            raise NoScorableDataError(
                "No observations found. Load reference data and observations first.",
                stage="select_period",
            )
        year, metric_count = int(row[0]), int(row[1])
        logger.info(f"Selected year {year} ({metric_count} metrics with data)")
        return year

    def clear_prior_results(self, year: int) -> None:
        """Delete every score row for the year in one transaction."""
        try:
            for model in (OverallScore, CategoryScore, MetricScore):
                self.db.query(model).filter(model.year == year).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to clear prior results: {e}", year=year, stage="clear_prior_results", original=e) from e
        logger.info(f"Cleared prior scores for year {year}")

    def score_all_metrics(self, year: int) -> MetricStageResult:
        """Score every metric with observations in the year and store the rows."""
        metrics = self._metric_defs(year)

        rows = self._read(
            "score_metrics",
            year,
            lambda: (
                self.db.query(
                    Observation.id,
                    Observation.metric_id,
                    Observation.region_id,
                    Observation.value,
                    Observation.gender,
                    Observation.sector,
                    Observation.age_group,
                    Observation.social_group,
                )
                .filter(Observation.year == year)
                .order_by(Observation.metric_id, Observation.id)
                .all()
            ),
        )

        by_metric: Dict[str, List[ObservationRow]] = defaultdict(list)
        for r in rows:
            by_metric[r.metric_id].append(
                ObservationRow(
                    seq=r.id,
                    region_id=r.region_id,
                    value=r.value,
                    gender=r.gender,
                    sector=r.sector,
                    age_group=r.age_group,
                    social_group=r.social_group,
                )
            )

        known = [metric_id for metric_id in sorted(by_metric) if metric_id in metrics]
        if not known:
            raise NoScorableDataError(
                "No observations for any known metric", year=year, stage="score_metrics"
            )
        logger.info(f"Found {len(known)} metrics with data")

        stage = MetricStageResult()
        for metric_id in known:
            results = score_metric(
                metrics[metric_id],
                by_metric[metric_id],
                prefer=self.settings.observation_preference,
                min_regions=self.settings.min_regions_per_metric,
                lower_pct=self.settings.lower_percentile,
                upper_pct=self.settings.upper_percentile,
            )
            if results:
                stage.results.extend(results)
                stage.scored.append(metric_id)
            else:
                stage.skipped.append(metric_id)

        if stage.skipped:
            logger.info(
                f"Skipped {len(stage.skipped)} metric(s) with fewer than "
                f"{self.settings.min_regions_per_metric} regions: {', '.join(stage.skipped)}"
            )

        written = self._replace_rows(
            MetricScore,
            year,
            [
                {
                    "metric_id": r.metric_id,
                    "region_id": r.region_id,
                    "year": year,
                    "raw_value": r.raw_value,
                    "norm_score": r.score,
                    "rank": r.rank,
                }
                for r in stage.results
            ],
            stage="score_metrics",
        )
        logger.info(f"Wrote {written} metric scores ({len(stage.scored)} metrics)")
        return stage

    def aggregate_categories(self, year: int) -> List[CategoryScoreResult]:
        """Aggregate the stored metric scores for the year into category scores."""
        metrics = self._metric_defs(year)
        categories = self._category_defs(year)

        stored = self._read(
            "aggregate_categories",
            year,
            lambda: self.db.query(MetricScore).filter(MetricScore.year == year).all(),
        )
        metric_scores = [
            MetricScoreResult(
                metric_id=ms.metric_id,
                region_id=ms.region_id,
                raw_value=ms.raw_value,
                score=ms.norm_score,
                rank=ms.rank,
            )
            for ms in stored
        ]

        results = aggregate_categories(metric_scores, metrics, categories.values())
        written = self._replace_rows(
            CategoryScore,
            year,
            [
                {
                    "category_id": r.category_id,
                    "region_id": r.region_id,
                    "year": year,
                    "score": r.score,
                    "rank": r.rank,
                    "metrics_count": r.metrics_count,
                }
                for r in results
            ],
            stage="aggregate_categories",
        )
        logger.info(
            f"Wrote {written} category scores "
            f"({len({r.category_id for r in results})} categories)"
        )
        return results

    def aggregate_overall(self, year: int) -> List[OverallScoreResult]:
        """Aggregate the stored category scores for the year into overall scores."""
        categories = self._category_defs(year)

        stored = self._read(
            "aggregate_overall",
            year,
            lambda: self.db.query(CategoryScore).filter(CategoryScore.year == year).all(),
        )
        category_scores = [
            CategoryScoreResult(
                category_id=cs.category_id,
                region_id=cs.region_id,
                score=cs.score,
                rank=cs.rank,
                metrics_count=cs.metrics_count,
            )
            for cs in stored
        ]

        results = aggregate_overall(category_scores, categories)
        written = self._replace_rows(
            OverallScore,
            year,
            [
                {
                    "region_id": r.region_id,
                    "year": year,
                    "score": r.score,
                    "rank": r.rank,
                    "tier": r.tier,
                }
                for r in results
            ],
            stage="aggregate_overall",
        )
        logger.info(f"Wrote {written} overall scores")
        return results

    # ------------------------------------------------------------------
    # Run tracking
    # ------------------------------------------------------------------

    def _start_run(self) -> ScoringRun:
        run = ScoringRun(status=RunStatus.RUNNING, started_at=datetime.utcnow())
        try:
            self.db.add(run)
            self.db.commit()
            self.db.refresh(run)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to create scoring run record: {e}", stage="start_run", original=e) from e
        return run

    def _finish_run(self, run: ScoringRun, status: RunStatus, **fields: Any) -> None:
        run.status = status
        run.completed_at = datetime.utcnow()
        for key, value in fields.items():
            setattr(run, key, value)
        self.db.commit()

    def _top_regions(self, year: int, limit: int = 5) -> List[Dict[str, Any]]:
        rows = self._read(
            "summary",
            year,
            lambda: (
                self.db.query(OverallScore.rank, OverallScore.score, OverallScore.tier, Region.id, Region.name)
                .join(Region, Region.id == OverallScore.region_id)
                .filter(OverallScore.year == year)
                .order_by(OverallScore.rank)
                .limit(limit)
                .all()
            ),
        )
        return [
            {"rank": r.rank, "region_id": r.id, "name": r.name, "score": r.score, "tier": r.tier}
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> Dict[str, Any]:
        """
        Run the full pipeline for the automatically selected year.

        Returns a summary with the year, per-level row counts, skipped
        metrics, tier distribution and the top 5 regions.

        Raises:
            NoScorableDataError: nothing to score
            StoreError: the store could not be read or written
        """
        logger.info("=== Computing Scores ===")
        run = self._start_run()
        run_id = run.id
        year: Optional[int] = None

        try:
            year = self.select_period()
            run.year = year
            self.clear_prior_results(year)

            logger.info("Step 1: Computing metric scores...")
            metric_stage = self.score_all_metrics(year)

            logger.info("Step 2: Computing category scores...")
            category_results = self.aggregate_categories(year)

            logger.info("Step 3: Computing overall scores...")
            overall_results = self.aggregate_overall(year)

            top_5 = self._top_regions(year)
        except Exception as e:
            logger.error(f"Scoring run {run_id} failed: {e}")
            self.db.rollback()
            try:
                self._finish_run(run, RunStatus.FAILED, year=year, error_message=str(e))
            except SQLAlchemyError as record_error:
                self.db.rollback()
                logger.error(f"Could not record failure of run {run_id}: {record_error}")
            raise

        tier_distribution = {tier: 0 for tier in TIER_NAMES}
        for r in overall_results:
            tier_distribution[r.tier] += 1

        try:
            self._finish_run(
                run,
                RunStatus.SUCCESS,
                metrics_scored=len(metric_stage.scored),
                metrics_skipped=len(metric_stage.skipped),
                metric_scores_count=len(metric_stage.results),
                category_scores_count=len(category_results),
                overall_scores_count=len(overall_results),
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"Failed to record run completion: {e}", year=year, stage="finish_run", original=e) from e

        logger.info("=== Scoring Complete ===")
        logger.info(f"  Metric scores:   {len(metric_stage.results)}")
        logger.info(f"  Category scores: {len(category_results)}")
        logger.info(f"  Overall scores:  {len(overall_results)}")
        for entry in top_5:
            logger.info(f"  #{entry['rank']} {entry['name']}: {entry['score']:.1f} ({entry['tier']})")

        return {
            "run_id": run_id,
            "year": year,
            "metrics_with_data": len(metric_stage.scored) + len(metric_stage.skipped),
            "metrics_scored": len(metric_stage.scored),
            "metrics_skipped": len(metric_stage.skipped),
            "skipped_metric_ids": metric_stage.skipped,
            "metric_scores": len(metric_stage.results),
            "category_scores": len(category_results),
            "overall_scores": len(overall_results),
            "tier_distribution": tier_distribution,
            "top_5": top_5,
        }

    def get_methodology(self) -> Dict[str, Any]:
        """Return scoring methodology documentation for the active settings."""
        s = self.settings
        tie_break = "most recently" if s.observation_preference == "latest" else "earliest"
        return {
            "description": (
                "Regions are scored per metric on a 0-100 scale using min-max "
                f"normalization after capping outliers at the P{s.lower_percentile:g} and "
                f"P{s.upper_percentile:g} percentiles. Metrics where lower is better are inverted. "
                "Category scores are weighted averages of metric scores; the "
                "overall score is a weighted average of category scores."
            ),
            "period_selection": (
                "The year with the most metrics having data; ties go to the "
                "most recent year."
            ),
            "observation_selection": (
                "One value per region: a combined figure is preferred over "
                f"disaggregated ones, then the {tie_break} ingested row."
            ),
            "coverage": f"A metric needs data for at least {s.min_regions_per_metric} regions to be scored.",
            "degenerate_distribution": "If all capped values are equal, every region scores 50.",
            "tie_break": "Equal scores are ranked by ascending region id.",
            "tiers": TIER_DESCRIPTIONS,
        }
