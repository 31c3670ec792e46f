"""
Command-line entry points.

Usage:
    league-compute                       # compute scores for the best-covered year
    league compute                       # same
    league seed --reference-dir data/reference
    league validate
    league export --output-dir public/data
    league pipeline                      # compute, validate, export

Every command exits 0 on success and 1 on failure.
"""

import argparse
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from league.core.config import get_settings
from league.core.database import create_tables, get_session_factory
from league.core.errors import ScoringError
from league.core.seed import load_reference_dir
from league.scoring.engine import ScoringEngine
from league.services.export import JsonExportService
from league.services.validation import DataValidator

logger = logging.getLogger("league.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _with_session(fn: Callable[[Session], int]) -> int:
    """Open a session, run `fn`, translate failures into exit status 1."""
    try:
        settings = get_settings()
    except ValidationError as e:
        _configure_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        return 1

    _configure_logging(settings.log_level)
    try:
        create_tables()
        db = get_session_factory()()
    except SQLAlchemyError as e:
        logger.error(f"Database unavailable: {e}")
        return 1

    try:
        return fn(db)
    except ScoringError as e:
        logger.error(f"FAILED: {e}")
        return 1
    except SQLAlchemyError as e:
        logger.error(f"FAILED: database error: {e}")
        return 1
    except OSError as e:
        logger.error(f"FAILED: {e}")
        return 1
    finally:
        db.close()


def _run_compute(db: Session) -> Dict[str, Any]:
    summary = ScoringEngine(db).run()
    logger.info(
        f"Scored year {summary['year']}: {summary['metrics_scored']} metrics, "
        f"{summary['overall_scores']} regions ({summary['metrics_skipped']} metrics skipped)"
    )
    return summary


def _compute(db: Session) -> int:
    _run_compute(db)
    return 0


def _seed(db: Session, reference_dir: str) -> int:
    load_reference_dir(db, reference_dir)
    return 0


def _validate(db: Session, year: Optional[int] = None) -> int:
    report = DataValidator(db).validate(year=year)
    for check in report["checks"]:
        level = logging.INFO if check["passed"] else logging.WARNING
        logger.log(level, check["message"])
    if not report["passed"]:
        logger.error(f"Validation failed ({report['status']}, {report['warnings']} warnings)")
        return 1
    return 0


def _export(db: Session, output_dir: Optional[str] = None, year: Optional[int] = None) -> int:
    JsonExportService(db, output_dir=output_dir).export_all(year=year)
    return 0


def _pipeline(db: Session, output_dir: Optional[str] = None) -> int:
    """Compute, then validate and export the year that was just scored."""
    logger.info("▶ Compute Scores")
    year = _run_compute(db)["year"]

    steps = [
        ("Validate Data", lambda s: _validate(s, year)),
        ("Generate JSON", lambda s: _export(s, output_dir, year)),
    ]
    for name, step in steps:
        logger.info(f"▶ {name}")
        if step(db) != 0:
            logger.error(f"✗ FAILED: {name}")
            return 1
    logger.info("✓ Pipeline complete")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="league",
        description="Rank regions across human-development metrics",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("compute", help="Compute scores for the best-covered year")

    seed = sub.add_parser("seed", help="Seed regions, categories and metrics")
    seed.add_argument(
        "--reference-dir",
        default="data/reference",
        help="Directory holding regions.json, categories.json and metrics.json",
    )

    sub.add_parser("validate", help="Check coverage and score sanity")

    export = sub.add_parser("export", help="Write JSON bundles for the website")
    export.add_argument("--output-dir", default=None, help="Output directory (default: EXPORT_DIR)")

    pipeline = sub.add_parser("pipeline", help="Compute, validate and export")
    pipeline.add_argument("--output-dir", default=None, help="Output directory (default: EXPORT_DIR)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    command = args.command or "compute"

    if command == "compute":
        return _with_session(_compute)
    if command == "seed":
        return _with_session(lambda db: _seed(db, args.reference_dir))
    if command == "validate":
        return _with_session(_validate)
    if command == "export":
        return _with_session(lambda db: _export(db, args.output_dir))
    if command == "pipeline":
        return _with_session(lambda db: _pipeline(db, args.output_dir))
    return 1


def compute_main() -> None:
    """Console entry point: compute scores, no flags."""
    sys.exit(_with_session(_compute))


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
