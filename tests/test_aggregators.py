"""
Unit tests for category and overall aggregation.
"""
import pytest

from league.scoring.aggregators import (
    CategoryDef,
    CategoryScoreResult,
    aggregate_categories,
    aggregate_overall,
)
from league.scoring.metric_scorer import MetricDef, MetricScoreResult


def _ms(metric_id, region_id, score):
    return MetricScoreResult(metric_id=metric_id, region_id=region_id, raw_value=score, score=score, rank=0)


def _cs(category_id, region_id, score):
    return CategoryScoreResult(category_id=category_id, region_id=region_id, score=score, rank=0, metrics_count=1)


@pytest.fixture
def metrics():
    return {
        "m1": MetricDef(id="m1", category_id="c1", weight=1.5),
        "m2": MetricDef(id="m2", category_id="c1", weight=0.5),
        "m3": MetricDef(id="m3", category_id="c2", weight=1.0),
    }


@pytest.fixture
def categories():
    return {
        "c1": CategoryDef(id="c1", weight=2.0, sort_order=1),
        "c2": CategoryDef(id="c2", weight=1.0, sort_order=0),
    }


class TestAggregateCategories:

    @pytest.mark.unit
    def test_weighted_by_metric_weight(self, metrics, categories):
        results = aggregate_categories(
            [_ms("m1", "r1", 80.0), _ms("m2", "r1", 40.0)],
            metrics,
            categories.values(),
        )

        assert len(results) == 1
        assert results[0].category_id == "c1"
        assert results[0].score == 70.0
        assert results[0].metrics_count == 2
        assert results[0].rank == 1

    @pytest.mark.unit
    def test_missing_metric_uses_available_ones(self, metrics, categories):
        results = aggregate_categories(
            [_ms("m1", "r1", 80.0), _ms("m2", "r1", 40.0), _ms("m1", "r2", 80.0)],
            metrics,
            categories.values(),
        )

        by_region = {r.region_id: r for r in results}
        assert by_region["r2"].score == 80.0
        assert by_region["r2"].metrics_count == 1
        assert by_region["r2"].rank == 1
        assert by_region["r1"].rank == 2

    @pytest.mark.unit
    def test_region_without_metrics_gets_no_row(self, metrics, categories):
        results = aggregate_categories([_ms("m3", "r1", 60.0)], metrics, categories.values())

        assert [(r.category_id, r.region_id) for r in results] == [("c2", "r1")]

    @pytest.mark.unit
    def test_categories_emitted_in_sort_order(self, metrics, categories):
        results = aggregate_categories(
            [_ms("m1", "r1", 80.0), _ms("m3", "r1", 60.0)],
            metrics,
            categories.values(),
        )

        assert [r.category_id for r in results] == ["c2", "c1"]

    @pytest.mark.unit
    def test_unknown_metric_ignored(self, metrics, categories):
        results = aggregate_categories(
            [_ms("m1", "r1", 80.0), _ms("ghost", "r1", 10.0)],
            metrics,
            categories.values(),
        )

        assert len(results) == 1
        assert results[0].score == 80.0

    @pytest.mark.unit
    def test_each_call_starts_empty(self, metrics, categories):
        aggregate_categories([_ms("m1", "r1", 80.0)], metrics, categories.values())
        results = aggregate_categories([_ms("m1", "r2", 20.0)], metrics, categories.values())

        assert [r.region_id for r in results] == ["r2"]


class TestAggregateOverall:

    @pytest.mark.unit
    def test_weighted_by_category_weight(self, categories):
        results = aggregate_overall([_cs("c1", "r1", 90.0), _cs("c2", "r1", 60.0)], categories)

        assert len(results) == 1
        assert results[0].score == 80.0
        assert results[0].tier == "Champion"

    @pytest.mark.unit
    def test_single_category_passes_through(self, categories):
        results = aggregate_overall([_cs("c2", "r1", 52.5)], categories)

        assert results[0].score == 52.5
        assert results[0].tier == "Rising"

    @pytest.mark.unit
    def test_ranked_with_tiers(self, categories):
        results = aggregate_overall(
            [_cs("c1", "r1", 40.0), _cs("c1", "r2", 65.0), _cs("c1", "r3", 65.0)],
            categories,
        )

        assert [(r.region_id, r.rank, r.tier) for r in results] == [
            ("r2", 1, "Contender"),
            ("r3", 2, "Contender"),
            ("r1", 3, "Developing"),
        ]

    @pytest.mark.unit
    def test_empty_input(self, categories):
        assert aggregate_overall([], categories) == []


class TestSingleContributor:
    """A lone contributor passes through unchanged whatever its weight."""

    @pytest.mark.unit
    @pytest.mark.parametrize("weight", [0.3, 1.0, 1.5])
    def test_category_single_metric(self, weight):
        metrics = {"m1": MetricDef(id="m1", category_id="c1", weight=weight)}
        categories = [CategoryDef(id="c1")]

        results = aggregate_categories([_ms("m1", "r1", 63.27)], metrics, categories)

        assert results[0].score == 63.27

    @pytest.mark.unit
    @pytest.mark.parametrize("weight", [0.3, 1.0, 1.5])
    def test_overall_single_category(self, weight):
        categories = {"c1": CategoryDef(id="c1", weight=weight)}

        results = aggregate_overall([_cs("c1", "r1", 41.5)], categories)

        assert results[0].score == 41.5
        assert results[0].tier == "Developing"
