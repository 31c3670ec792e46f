"""
Unit tests for reference seeding and observation loading.
"""
import json

import pytest
from pydantic import ValidationError

from league.core.errors import ReferenceDataError
from league.core.models import Category, Metric, Observation, Polarity, Region, RegionType
from league.core.seed import add_observations, load_reference_dir, seed_reference


class TestSeedReference:

    @pytest.mark.unit
    def test_counts_and_rows(self, test_db, reference_records):
        counts = seed_reference(
            test_db,
            reference_records["regions"],
            reference_records["categories"],
            reference_records["metrics"],
        )

        assert counts == {"regions": 4, "categories": 2, "metrics": 4}
        assert test_db.query(Region).count() == 4

        region = test_db.get(Region, "rc")
        assert region.region_type == RegionType.UNION_TERRITORY
        assert region.zone == "East"
        assert test_db.get(Metric, "imr").polarity == Polarity.NEGATIVE

    @pytest.mark.unit
    def test_reseed_updates_in_place(self, reference_data, reference_records):
        categories = reference_records["categories"]
        categories[0]["weight"] = 2.5

        seed_reference(reference_data, [], categories, [])

        assert reference_data.query(Category).count() == 2
        assert reference_data.get(Category, "health").weight == 2.5

    @pytest.mark.unit
    def test_metric_with_unknown_category(self, test_db, reference_records):
        metrics = [{"id": "m", "category_id": "nope", "name": "Orphan"}]

        with pytest.raises(ReferenceDataError):
            seed_reference(test_db, [], reference_records["categories"], metrics)

    @pytest.mark.unit
    def test_metric_can_reference_existing_category(self, reference_data):
        metrics = [{"id": "new_metric", "category_id": "health", "name": "New"}]

        seed_reference(reference_data, [], [], metrics)

        assert reference_data.get(Metric, "new_metric").category_id == "health"

    @pytest.mark.unit
    def test_invalid_record(self, test_db):
        with pytest.raises(ReferenceDataError) as exc_info:
            seed_reference(test_db, [{"id": "x", "name": ""}], [], [])

        assert "region record #0" in str(exc_info.value)

    @pytest.mark.unit
    def test_numeric_code_coerced(self, test_db):
        seed_reference(test_db, [{"id": "x", "name": "X", "code": 9}], [], [])

        assert test_db.get(Region, "x").code == "9"

    @pytest.mark.unit
    def test_source_field_names_accepted(self, test_db):
        seed_reference(test_db, [{"id": "x", "name": "X", "code_mospi": 32, "type": "ut", "region": "South"}], [], [])

        region = test_db.get(Region, "x")
        assert region.code == "32"
        assert region.region_type == RegionType.UNION_TERRITORY
        assert region.zone == "South"


class TestLoadReferenceDir:

    @pytest.mark.unit
    def test_loads_files(self, test_db, tmp_path, reference_records):
        for kind, records in reference_records.items():
            (tmp_path / f"{kind}.json").write_text(json.dumps(records), encoding="utf-8")

        counts = load_reference_dir(test_db, tmp_path)

        assert counts["metrics"] == 4

    @pytest.mark.unit
    def test_missing_file(self, test_db, tmp_path):
        (tmp_path / "regions.json").write_text("[]", encoding="utf-8")

        with pytest.raises(ReferenceDataError):
            load_reference_dir(test_db, tmp_path)

    @pytest.mark.unit
    def test_malformed_file(self, test_db, tmp_path, reference_records):
        for kind, records in reference_records.items():
            (tmp_path / f"{kind}.json").write_text(json.dumps(records), encoding="utf-8")
        (tmp_path / "categories.json").write_text("{broken", encoding="utf-8")

        with pytest.raises(ReferenceDataError) as exc_info:
            load_reference_dir(test_db, tmp_path)

        assert "categories.json" in str(exc_info.value)


class TestAddObservations:

    @pytest.mark.unit
    def test_blank_dimensions_stored_as_null(self, reference_data):
        add_observations(reference_data, [
            {"metric_id": "imr", "region_id": "ra", "year": 2022, "value": 10.0, "gender": "  "},
        ])

        obs = reference_data.query(Observation).one()
        assert obs.gender is None
        assert obs.is_combined
        assert obs.status == "final"

    @pytest.mark.unit
    def test_insertion_order_is_sequence(self, reference_data):
        count = add_observations(reference_data, [
            {"metric_id": "imr", "region_id": "ra", "year": 2022, "value": 1.0},
            {"metric_id": "imr", "region_id": "rb", "year": 2022, "value": 2.0},
        ])

        rows = reference_data.query(Observation).order_by(Observation.id).all()
        assert count == 2
        assert [r.region_id for r in rows] == ["ra", "rb"]

    @pytest.mark.unit
    def test_non_finite_value_rejected(self, reference_data):
        with pytest.raises(ValidationError):
            add_observations(reference_data, [
                {"metric_id": "imr", "region_id": "ra", "year": 2022, "value": float("nan")},
            ])
        assert reference_data.query(Observation).count() == 0
