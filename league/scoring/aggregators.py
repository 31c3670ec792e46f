"""
Category and overall aggregation.

Both stages group their inputs into a map owned by the call, combine each
group with a weighted average and rank the results. Nothing is carried
between calls.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Tuple

from league.scoring.metric_scorer import MetricDef, MetricScoreResult
from league.scoring.stats import rank_descending, weighted_average
from league.scoring.tiers import get_tier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryDef:
    id: str
    weight: float = 1.0
    sort_order: int = 0


@dataclass(frozen=True)
class CategoryScoreResult:
    category_id: str
    region_id: str
    score: float
    rank: int
    metrics_count: int


@dataclass(frozen=True)
class OverallScoreResult:
    region_id: str
    score: float
    rank: int
    tier: str


def aggregate_categories(
    metric_scores: Iterable[MetricScoreResult],
    metrics: Mapping[str, MetricDef],
    categories: Iterable[CategoryDef],
) -> List[CategoryScoreResult]:
    """
    Combine metric scores into one score per (category, region).

    Each region's category score is the weighted average of the metric
    scores it has in that category, weighted by metric weight. Regions
    with no metric scores in a category get no row for it. Categories are
    emitted in sort order, each ranked independently.
    """
    grouped: Dict[str, Dict[str, List[Tuple[float, float]]]] = defaultdict(
        lambda: defaultdict(list)
    )
    for ms in metric_scores:
        metric = metrics.get(ms.metric_id)
        if metric is None:
            logger.warning(f"Metric score for unknown metric {ms.metric_id} ignored")
            continue
        grouped[metric.category_id][ms.region_id].append((ms.score, metric.weight))

    results: List[CategoryScoreResult] = []
    for category in sorted(categories, key=lambda c: (c.sort_order, c.id)):
        by_region = grouped.get(category.id)
        if not by_region:
            continue

        scored = [
            (region_id, weighted_average(by_region[region_id]))
            for region_id in sorted(by_region)
        ]
        for region_id, score, rank in rank_descending(scored):
            results.append(
                CategoryScoreResult(
                    category_id=category.id,
                    region_id=region_id,
                    score=score,
                    rank=rank,
                    metrics_count=len(by_region[region_id]),
                )
            )

    return results


def aggregate_overall(
    category_scores: Iterable[CategoryScoreResult],
    categories: Mapping[str, CategoryDef],
) -> List[OverallScoreResult]:
    """
    Combine category scores into one overall score per region.

    The overall score is the average of the categories a region has,
    weighted by each category's weight. Results are ranked and tiered.
    """
    by_region: Dict[str, List[Tuple[float, float]]] = defaultdict(list)
    for cs in category_scores:
        category = categories.get(cs.category_id)
        if category is None:
            logger.warning(f"Category score for unknown category {cs.category_id} ignored")
            continue
        by_region[cs.region_id].append((cs.score, category.weight))

    scored = [
        (region_id, weighted_average(by_region[region_id]))
        for region_id in sorted(by_region)
    ]
    return [
        OverallScoreResult(region_id=region_id, score=score, rank=rank, tier=get_tier(score))
        for region_id, score, rank in rank_descending(scored)
    ]
