"""
Pytest configuration and shared fixtures.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from league.core.config import Settings, reset_settings
from league.core.database import reset_engine
from league.core.models import Base
from league.core.seed import add_observations, seed_reference


@pytest.fixture(scope="function")
def clean_env(monkeypatch):
    """
    Clean environment for testing.

    Removes all league-related env vars to ensure clean state.
    """
    env_vars = [
        "DATABASE_URL",
        "LOG_LEVEL",
        "LOWER_PERCENTILE",
        "UPPER_PERCENTILE",
        "MIN_REGIONS_PER_METRIC",
        "OBSERVATION_PREFERENCE",
        "EXPORT_DIR",
        "VALIDATION_MIN_REGIONS",
        "VALIDATION_LOW_COVERAGE",
        "VALIDATION_MAX_WARNINGS",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)

    # Reset settings and engine singletons
    reset_settings()
    reset_engine()

    yield

    # Reset again after test
    reset_settings()
    reset_engine()


@pytest.fixture(scope="function")
def test_db():
    """
    Create an in-memory SQLite database for testing.

    Fresh database for each test. StaticPool keeps a single connection so
    the API test client (which runs routes in worker threads) sees the
    same data.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(test_db):
    """
    Alias for test_db fixture.
    """
    yield test_db


@pytest.fixture
def settings():
    """Settings with defaults, independent of the environment and .env."""
    return Settings(_env_file=None, database_url="sqlite://")


# =============================================================================
# League data fixtures
# =============================================================================

REGIONS = [
    {"id": "ra", "name": "Alpha", "type": "state", "population": 1000000, "region": "North"},
    {"id": "rb", "name": "Beta", "type": "state", "population": 2000000, "region": "South"},
    {"id": "rc", "name": "Gamma", "type": "ut", "population": 300000, "region": "East"},
    {"id": "rd", "name": "Delta", "type": "ut", "population": 50000, "region": "West"},
]

CATEGORIES = [
    {"id": "health", "name": "Health", "sort_order": 1, "weight": 1.0, "icon": "heart"},
    {"id": "education", "name": "Education", "sort_order": 2, "weight": 1.0, "icon": "book"},
]

METRICS = [
    {"id": "imr", "category_id": "health", "name": "Infant mortality rate",
     "unit": "per 1000 live births", "polarity": "negative", "weight": 1.0},
    {"id": "life_expectancy", "category_id": "health", "name": "Life expectancy",
     "unit": "years", "polarity": "positive", "weight": 1.0},
    {"id": "literacy", "category_id": "education", "name": "Literacy rate",
     "unit": "%", "polarity": "positive", "weight": 1.0},
    {"id": "sparse", "category_id": "education", "name": "Sparse survey",
     "unit": "%", "polarity": "positive", "weight": 1.0},
]


def _obs(metric_id, region_id, year, value, **extra):
    record = {"metric_id": metric_id, "region_id": region_id, "year": year, "value": value}
    record.update(extra)
    return record


@pytest.fixture
def reference_data(test_db):
    """Seed four regions, two categories and four metrics."""
    seed_reference(test_db, REGIONS, CATEGORIES, METRICS)
    return test_db


@pytest.fixture
def league_data(reference_data):
    """
    Observations for 2021 (one metric) and 2022 (four metrics).

    Expected 2022 outcome:
        health:    ra 50, rb 50, rc 50 (tie, ranked by region id)
        education: ra 100, rb 50, rc 0 ("sparse" has one region and is skipped)
        overall:   ra 75 Champion, rb 50 Rising, rc 25 Developing
        rd has no observations and is never scored.
    """
    records = [
        _obs("imr", "ra", 2021, 12.0),
        _obs("imr", "rb", 2021, 40.0),
        _obs("imr", "rc", 2021, 80.0),

        _obs("imr", "ra", 2022, 10.0),
        _obs("imr", "rb", 2022, 50.0),
        _obs("imr", "rc", 2022, 90.0),
        _obs("life_expectancy", "ra", 2022, 60.0),
        _obs("life_expectancy", "rb", 2022, 70.0),
        _obs("life_expectancy", "rc", 2022, 80.0),
        # disaggregated row ingested later must not beat the combined figure
        _obs("life_expectancy", "ra", 2022, 999.0, gender="female"),
        _obs("literacy", "ra", 2022, 90.0),
        _obs("literacy", "rb", 2022, 80.0),
        _obs("literacy", "rc", 2022, 70.0),
        _obs("sparse", "ra", 2022, 5.0),
    ]
    add_observations(reference_data, records)
    return reference_data


@pytest.fixture
def reference_records():
    """Fresh copies of the reference seed records."""
    return {
        "regions": [dict(r) for r in REGIONS],
        "categories": [dict(c) for c in CATEGORIES],
        "metrics": [dict(m) for m in METRICS],
    }
