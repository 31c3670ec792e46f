"""
SQLAlchemy models for the league tables.

Reference tables (regions, categories, metrics) are seeded once.
Observations are append-only facts loaded from external sources.
Score tables are derived state, rebuilt for one year per scoring run.
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, BigInteger, String, Float, Text, DateTime, Boolean,
    Enum, ForeignKey, UniqueConstraint, Index,
)
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


class RegionType(str, enum.Enum):
    """Administrative classification of a region."""
    STATE = "state"
    UNION_TERRITORY = "ut"


class Polarity(str, enum.Enum):
    """Direction in which a metric improves."""
    POSITIVE = "positive"  # higher raw value is better
    NEGATIVE = "negative"  # lower raw value is better


class RunStatus(str, enum.Enum):
    """Scoring run status enumeration - ONLY these values allowed."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


# =============================================================================
# Reference data
# =============================================================================


class Region(Base):
    """A state or union territory being ranked."""
    __tablename__ = "regions"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(32), nullable=True)  # code used by the statistics office
    region_type = Column(
        Enum(RegionType, native_enum=False, length=10,
             values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RegionType.STATE,
    )
    population = Column(BigInteger, nullable=True)
    area_sq_km = Column(Float, nullable=True)
    zone = Column(String(64), nullable=True)  # geographic grouping, e.g. "North"

    def __repr__(self) -> str:
        return f"<Region(id={self.id}, name={self.name}, type={self.region_type})>"


class Category(Base):
    """A group of related metrics, weighted into the overall score."""
    __tablename__ = "categories"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(64), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    weight = Column(Float, nullable=False, default=1.0)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, sort_order={self.sort_order}, weight={self.weight})>"


class Metric(Base):
    """A single measured indicator belonging to one category."""
    __tablename__ = "metrics"

    id = Column(String(128), primary_key=True)
    category_id = Column(String(64), ForeignKey("categories.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    unit = Column(String(64), nullable=True)
    source = Column(String(255), nullable=True)
    polarity = Column(
        Enum(Polarity, native_enum=False, length=10,
             values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Polarity.POSITIVE,
    )
    weight = Column(Float, nullable=False, default=1.0)
    description = Column(Text, nullable=True)
    source_url = Column(String(500), nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return (
            f"<Metric(id={self.id}, category_id={self.category_id}, "
            f"polarity={self.polarity}, weight={self.weight})>"
        )


# =============================================================================
# Raw observations
# =============================================================================


class Observation(Base):
    """
    One raw value for a (metric, region, year), optionally disaggregated.

    The autoincrement id is the ingestion sequence used to break ties
    between equally eligible rows.
    """
    __tablename__ = "observations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    metric_id = Column(String(128), ForeignKey("metrics.id"), nullable=False)
    region_id = Column(String(64), ForeignKey("regions.id"), nullable=False)
    year = Column(Integer, nullable=False)
    period_label = Column(String(32), nullable=True)  # e.g. "2022-23"
    value = Column(Float, nullable=False)

    # Disaggregation dimensions (all NULL for a combined figure)
    gender = Column(String(32), nullable=True)
    sector = Column(String(32), nullable=True)
    age_group = Column(String(32), nullable=True)
    social_group = Column(String(32), nullable=True)

    status = Column(String(20), nullable=False, default="final")
    source_ref = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint(
            "metric_id", "region_id", "year", "period_label",
            "gender", "sector", "age_group", "social_group",
            name="uq_observation_slice",
        ),
        Index("idx_obs_metric_year", "metric_id", "year"),
        Index("idx_obs_region_year", "region_id", "year"),
    )

    @property
    def is_combined(self) -> bool:
        return (
            self.gender is None and self.sector is None
            and self.age_group is None and self.social_group is None
        )

    def __repr__(self) -> str:
        return (
            f"<Observation(id={self.id}, metric_id={self.metric_id}, "
            f"region_id={self.region_id}, year={self.year}, value={self.value})>"
        )


# =============================================================================
# Computed scores
# =============================================================================


class MetricScore(Base):
    __tablename__ = "metric_scores"

    metric_id = Column(String(128), ForeignKey("metrics.id"), primary_key=True)
    region_id = Column(String(64), ForeignKey("regions.id"), primary_key=True)
    year = Column(Integer, primary_key=True)
    raw_value = Column(Float, nullable=False)  # pre-cap, for display
    norm_score = Column(Float, nullable=False)
    rank = Column(Integer, nullable=False)


class CategoryScore(Base):
    __tablename__ = "category_scores"

    category_id = Column(String(64), ForeignKey("categories.id"), primary_key=True)
    region_id = Column(String(64), ForeignKey("regions.id"), primary_key=True)
    year = Column(Integer, primary_key=True)
    score = Column(Float, nullable=False)
    rank = Column(Integer, nullable=False)
    metrics_count = Column(Integer, nullable=False, default=0)


class OverallScore(Base):
    __tablename__ = "overall_scores"

    region_id = Column(String(64), ForeignKey("regions.id"), primary_key=True)
    year = Column(Integer, primary_key=True)
    score = Column(Float, nullable=False)
    rank = Column(Integer, nullable=False)
    tier = Column(String(20), nullable=False)


# =============================================================================
# Run tracking
# =============================================================================


class ScoringRun(Base):
    """
    Tracks all scoring runs.

    Every pipeline invocation creates and updates a run record.
    """
    __tablename__ = "scoring_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(
        Enum(RunStatus, native_enum=False, length=20,
             values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RunStatus.PENDING,
        index=True
    )
    year = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Results
    metrics_scored = Column(Integer, nullable=True)
    metrics_skipped = Column(Integer, nullable=True)
    metric_scores_count = Column(Integer, nullable=True)
    category_scores_count = Column(Integer, nullable=True)
    overall_scores_count = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<ScoringRun(id={self.id}, year={self.year}, "
            f"status={self.status}, created_at={self.created_at})>"
        )
