"""
Per-metric scoring.

Picks one observation per region, caps outliers at the configured
percentiles, normalizes onto 0-100 using the metric's polarity and ranks
the regions. A metric observed in too few regions yields no scores.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from league.core.models import Polarity
from league.scoring.stats import (
    LOWER_PERCENTILE,
    UPPER_PERCENTILE,
    cap_outliers,
    normalize,
    rank_descending,
)

logger = logging.getLogger(__name__)

MIN_REGIONS = 2


@dataclass(frozen=True)
class MetricDef:
    """The parts of a metric the scorer needs."""

    id: str
    category_id: str
    polarity: Polarity = Polarity.POSITIVE
    weight: float = 1.0


@dataclass(frozen=True)
class ObservationRow:
    """One observation as read from the store; `seq` is the ingestion order."""

    seq: int
    region_id: str
    value: float
    gender: Optional[str] = None
    sector: Optional[str] = None
    age_group: Optional[str] = None
    social_group: Optional[str] = None

    @property
    def is_combined(self) -> bool:
        return (
            self.gender is None and self.sector is None
            and self.age_group is None and self.social_group is None
        )


@dataclass(frozen=True)
class MetricScoreResult:
    metric_id: str
    region_id: str
    raw_value: float
    score: float
    rank: int


def select_observations(
    observations: Iterable[ObservationRow],
    prefer: str = "latest",
) -> List[ObservationRow]:
    """
    Choose exactly one observation per region.

    A combined row (no disaggregation set) beats any disaggregated row.
    Among equally eligible rows the most recently ingested wins, or the
    earliest when `prefer` is "earliest". Output is ordered by region id.
    """
    if prefer not in ("latest", "earliest"):
        raise ValueError(f"prefer must be 'latest' or 'earliest', got {prefer!r}")

    def sort_key(obs: ObservationRow):
        seq = -obs.seq if prefer == "latest" else obs.seq
        return (0 if obs.is_combined else 1, seq)

    chosen: Dict[str, ObservationRow] = {}
    for obs in observations:
        current = chosen.get(obs.region_id)
        if current is None or sort_key(obs) < sort_key(current):
            chosen[obs.region_id] = obs

    return [chosen[region_id] for region_id in sorted(chosen)]


def score_metric(
    metric: MetricDef,
    observations: Iterable[ObservationRow],
    prefer: str = "latest",
    min_regions: int = MIN_REGIONS,
    lower_pct: float = LOWER_PERCENTILE,
    upper_pct: float = UPPER_PERCENTILE,
) -> List[MetricScoreResult]:
    """Score one metric for one year; returns results in rank order."""
    selected = select_observations(observations, prefer=prefer)
    if len(selected) < min_regions:
        logger.debug(
            f"Skipping metric {metric.id}: {len(selected)} region(s) with data, "
            f"need {min_regions}"
        )
        return []

    raw_values = [obs.value for obs in selected]
    capped, low, high = cap_outliers(raw_values, lower_pct, upper_pct)
    if low == high:
        logger.info(
            f"Metric {metric.id} has a degenerate distribution "
            f"(P{lower_pct:g} == P{upper_pct:g} == {low}); all regions score 50"
        )

    scored = [
        (obs.region_id, normalize(capped_value, low, high, metric.polarity))
        for obs, capped_value in zip(selected, capped)
    ]
    raw_by_region = {obs.region_id: obs.value for obs in selected}

    return [
        MetricScoreResult(
            metric_id=metric.id,
            region_id=region_id,
            raw_value=raw_by_region[region_id],
            score=score,
            rank=rank,
        )
        for region_id, score, rank in rank_descending(scored)
    ]
