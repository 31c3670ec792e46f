"""
Error hierarchy for the scoring pipeline.

Only the orchestration boundary raises these. The pure scoring functions
never fail on well-formed input; empty metrics and unscored regions are
expected states, not errors.
"""

from typing import Optional, Dict, Any


class ScoringError(Exception):
    """
    Base exception for a failed scoring run.

    Attributes:
        message: Human-readable error description
        year: The scoring period, if one was selected
        stage: Pipeline stage that failed (e.g. 'score_metrics')
    """

    def __init__(
        self,
        message: str,
        year: Optional[int] = None,
        stage: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.year = year
        self.stage = stage

    def __str__(self) -> str:
        parts = [self.message]
        if self.stage:
            parts.insert(0, f"[{self.stage}]")
        if self.year is not None:
            parts.append(f"(year {self.year})")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "year": self.year,
            "stage": self.stage,
        }


class NoScorableDataError(ScoringError):
    """
    There is nothing to score.

    Raised when the observations table is empty, or when the chosen year
    has no observations for any known metric.
    """


class StoreError(ScoringError):
    """
    The backing store could not be read or written.

    Wraps the underlying SQLAlchemy error; the failing stage has been
    rolled back before this is raised.
    """

    def __init__(
        self,
        message: str,
        year: Optional[int] = None,
        stage: Optional[str] = None,
        original: Optional[Exception] = None,
    ):
        super().__init__(message, year=year, stage=stage)
        self.original = original


class ReferenceDataError(ScoringError):
    """Reference seed data is inconsistent (e.g. metric with unknown category)."""
