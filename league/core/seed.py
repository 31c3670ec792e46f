"""
Reference data seeding and observation loading.

Reference files live in one directory:

    regions.json     [{"id", "name", "type", "population", ...}, ...]
    categories.json  [{"id", "name", "sort_order", "weight", ...}, ...]
    metrics.json     [{"id", "category_id", "polarity", "weight", ...}, ...]

Every record is validated with the pydantic schemas before it is written.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from league.core.errors import ReferenceDataError, StoreError
from league.core.models import Category, Metric, Observation, Region
from league.core.schemas import CategoryIn, MetricIn, ObservationIn, RegionIn

logger = logging.getLogger(__name__)

REFERENCE_FILES = {
    "regions": "regions.json",
    "categories": "categories.json",
    "metrics": "metrics.json",
}


def _validate(schema, records: Iterable[Dict[str, Any]], kind: str) -> List:
    validated = []
    for i, record in enumerate(records):
        try:
            validated.append(schema.model_validate(record))
        except ValidationError as e:
            raise ReferenceDataError(f"Invalid {kind} record #{i}: {e}") from e
    return validated


def seed_reference(
    db: Session,
    regions: Iterable[Dict[str, Any]],
    categories: Iterable[Dict[str, Any]],
    metrics: Iterable[Dict[str, Any]],
) -> Dict[str, int]:
    """
    Upsert regions, categories and metrics.

    Records are merged by primary key, so re-seeding updates names, weights
    and ordering in place without touching observations or scores.

    Raises:
        ReferenceDataError: a record fails validation or a metric names an
            unknown category
        StoreError: the write failed (nothing is committed)
    """
    region_rows = _validate(RegionIn, regions, "region")
    category_rows = _validate(CategoryIn, categories, "category")
    metric_rows = _validate(MetricIn, metrics, "metric")

    try:
        known_categories = {c.id for c in category_rows}
        known_categories.update(cid for (cid,) in db.query(Category.id).all())
        for m in metric_rows:
            if m.category_id not in known_categories:
                raise ReferenceDataError(
                    f"Metric {m.id} references unknown category {m.category_id}"
                )

        for r in region_rows:
            db.merge(Region(**r.model_dump()))
        for c in category_rows:
            db.merge(Category(**c.model_dump()))
        db.flush()
        for m in metric_rows:
            db.merge(Metric(**m.model_dump()))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to seed reference data: {e}", stage="seed", original=e) from e

    counts = {
        "regions": len(region_rows),
        "categories": len(category_rows),
        "metrics": len(metric_rows),
    }
    logger.info(
        f"Seeded {counts['regions']} regions, {counts['categories']} categories, "
        f"{counts['metrics']} metrics"
    )
    return counts


def load_reference_dir(db: Session, reference_dir: Union[str, Path]) -> Dict[str, int]:
    """Read the three reference JSON files from a directory and seed them."""
    reference_dir = Path(reference_dir)
    payload: Dict[str, List[Dict[str, Any]]] = {}
    for kind, filename in REFERENCE_FILES.items():
        path = reference_dir / filename
        if not path.exists():
            raise ReferenceDataError(f"Missing reference file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            try:
                payload[kind] = json.load(f)
            except json.JSONDecodeError as e:
                raise ReferenceDataError(f"Malformed reference file {path}: {e}") from e

    return seed_reference(db, payload["regions"], payload["categories"], payload["metrics"])


def add_observations(db: Session, records: Iterable[Union[ObservationIn, Dict[str, Any]]]) -> int:
    """
    Append validated observations in insertion order.

    The insertion order becomes the ingestion sequence used to break ties
    between equally eligible observations at scoring time.

    Raises:
        pydantic.ValidationError: a record is malformed
        StoreError: the insert failed (nothing is committed)
    """
    rows = [
        r if isinstance(r, ObservationIn) else ObservationIn.model_validate(r)
        for r in records
    ]
    try:
        for r in rows:
            db.add(Observation(**r.model_dump()))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"Failed to add observations: {e}", stage="load_observations", original=e) from e

    logger.info(f"Added {len(rows)} observations")
    return len(rows)
