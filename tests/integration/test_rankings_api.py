"""
Integration tests for the league API endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from league.core.database import get_db
from league.main import app


@pytest.fixture
def client(clean_env, monkeypatch, test_db):
    """Create test client with overridden database."""
    monkeypatch.setenv("DATABASE_URL", "sqlite://")

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def scored_client(client, league_data):
    response = client.post("/api/v1/scores/compute")
    assert response.status_code == 200
    return client


class TestServiceEndpoints:

    @pytest.mark.integration
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "Region League API"

    @pytest.mark.integration
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"


class TestScoresEndpoints:

    @pytest.mark.integration
    def test_compute_without_data(self, client):
        response = client.post("/api/v1/scores/compute")

        assert response.status_code == 409
        assert response.json()["detail"]["error_type"] == "NoScorableDataError"

    @pytest.mark.integration
    def test_compute(self, client, league_data):
        response = client.post("/api/v1/scores/compute")

        assert response.status_code == 200
        data = response.json()
        assert data["year"] == 2022
        assert data["overall_scores"] == 3
        assert data["skipped_metric_ids"] == ["sparse"]

    @pytest.mark.integration
    def test_runs(self, scored_client):
        response = scored_client.get("/api/v1/scores/runs")

        assert response.status_code == 200
        runs = response.json()
        assert len(runs) == 1
        assert runs[0]["status"] == "success"
        assert runs[0]["year"] == 2022

    @pytest.mark.integration
    def test_methodology(self, client):
        response = client.get("/api/v1/scores/methodology")

        assert response.status_code == 200
        assert "Champion" in response.json()["tiers"]


class TestRankingsEndpoints:

    @pytest.mark.integration
    def test_rankings_empty(self, client):
        response = client.get("/api/v1/rankings")

        assert response.status_code == 200
        assert response.json() == {"year": None, "total": 0, "rankings": []}

    @pytest.mark.integration
    def test_rankings(self, scored_client):
        response = scored_client.get("/api/v1/rankings")

        assert response.status_code == 200
        data = response.json()
        assert data["year"] == 2022
        assert [(r["id"], r["rank"], r["tier"]) for r in data["rankings"]] == [
            ("ra", 1, "Champion"),
            ("rb", 2, "Rising"),
            ("rc", 3, "Developing"),
        ]

    @pytest.mark.integration
    def test_rankings_tier_filter(self, scored_client):
        response = scored_client.get("/api/v1/rankings", params={"tier": "Champion"})

        assert response.status_code == 200
        assert response.json()["total"] == 1

    @pytest.mark.integration
    def test_rankings_unknown_tier(self, scored_client):
        response = scored_client.get("/api/v1/rankings", params={"tier": "Legend"})

        assert response.status_code == 400

    @pytest.mark.integration
    def test_rankings_other_year_empty(self, scored_client):
        response = scored_client.get("/api/v1/rankings", params={"year": 2021})

        assert response.status_code == 200
        assert response.json()["total"] == 0

    @pytest.mark.integration
    def test_category_rankings(self, scored_client):
        response = scored_client.get("/api/v1/rankings/categories/health")

        assert response.status_code == 200
        assert [r["id"] for r in response.json()["rankings"]] == ["ra", "rb", "rc"]

    @pytest.mark.integration
    def test_category_not_found(self, scored_client):
        response = scored_client.get("/api/v1/rankings/categories/nope")

        assert response.status_code == 404

    @pytest.mark.integration
    def test_metric_rankings(self, scored_client):
        response = scored_client.get("/api/v1/metrics/life_expectancy/rankings")

        assert response.status_code == 200
        data = response.json()
        assert data["metric"]["name"] == "Life expectancy"
        assert data["rankings"][0]["id"] == "rc"
        assert data["rankings"][-1]["raw_value"] == 60.0

    @pytest.mark.integration
    def test_metric_not_found(self, scored_client):
        response = scored_client.get("/api/v1/metrics/nope/rankings")

        assert response.status_code == 404

    @pytest.mark.integration
    def test_region_profile(self, scored_client):
        response = scored_client.get("/api/v1/regions/rb")

        assert response.status_code == 200
        data = response.json()
        assert data["region"]["name"] == "Beta"
        assert data["overall"]["tier"] == "Rising"
        assert len(data["categories"]) == 2

    @pytest.mark.integration
    def test_region_unscored(self, scored_client):
        response = scored_client.get("/api/v1/regions/rd")

        assert response.status_code == 200
        assert response.json()["overall"] is None

    @pytest.mark.integration
    def test_region_not_found(self, scored_client):
        response = scored_client.get("/api/v1/regions/zz")

        assert response.status_code == 404

    @pytest.mark.integration
    def test_compare(self, scored_client):
        response = scored_client.get("/api/v1/compare", params={"regions": "ra,rc"})

        assert response.status_code == 200
        data = response.json()
        assert [r["id"] for r in data["regions"]] == ["ra", "rc"]
        assert data["scores"]["rc"] == {"health": 50.0, "education": 0.0}
