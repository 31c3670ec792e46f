"""
Scoring pipeline API endpoints.

Trigger a scoring run, inspect past runs and read the methodology.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from league.core.database import get_db
from league.core.errors import NoScorableDataError, StoreError
from league.core.models import ScoringRun
from league.core.schemas import ScoringRunResponse
from league.scoring.engine import ScoringEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scores", tags=["Scoring"])


# ---------------------------------------------------------------------------
# GET /scores/methodology
# ---------------------------------------------------------------------------

@router.get(
    "/methodology",
    summary="Scoring methodology",
    response_description="Normalization, aggregation, coverage and tier rules",
)
def get_methodology(db: Session = Depends(get_db)):
    """Return the scoring methodology for the active configuration."""
    return ScoringEngine(db).get_methodology()


# ---------------------------------------------------------------------------
# POST /scores/compute
# ---------------------------------------------------------------------------

@router.post(
    "/compute",
    summary="Recompute all scores",
    response_description="Run summary",
)
def compute_scores(db: Session = Depends(get_db)):
    """
    Run the scoring pipeline for the best-covered year.

    Prior scores for that year are replaced. Runs synchronously; the
    pipeline is a bounded batch over local data.
    """
    try:
        return ScoringEngine(db).run()
    except NoScorableDataError as e:
        raise HTTPException(status_code=409, detail=e.to_dict())
    except StoreError as e:
        logger.error(f"Scoring run failed: {e}")
        raise HTTPException(status_code=500, detail=e.to_dict())


# ---------------------------------------------------------------------------
# GET /scores/runs
# ---------------------------------------------------------------------------

@router.get(
    "/runs",
    response_model=List[ScoringRunResponse],
    summary="Recent scoring runs",
)
def list_runs(
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Return the most recent scoring runs, newest first."""
    return (
        db.query(ScoringRun)
        .order_by(ScoringRun.id.desc())
        .limit(limit)
        .all()
    )
