"""
Static JSON bundle export.

Writes the latest scored year to a directory the website reads directly:

    overall.json              overall rankings
    categories/<id>.json      category rankings plus the category's metrics
    regions/<id>.json         region profile (overall is null when unscored)
    metrics/<id>.json         metric rankings with raw values
    compare.json              category scores keyed by region
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from league.core.config import get_settings
from league.services.rankings import RankingsService

logger = logging.getLogger(__name__)


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


class JsonExportService:
    """Export computed rankings to JSON files."""

    def __init__(self, db: Session, output_dir: Optional[Union[str, Path]] = None):
        self.db = db
        self.output_dir = Path(output_dir or get_settings().export_dir)
        self.rankings = RankingsService(db)

    def export_all(self, year: Optional[int] = None) -> Dict[str, Any]:
        """
        Write every bundle for the year (defaults to the latest scored year).

        Returns counts of files written per kind. When nothing has been
        scored yet, nothing is written.
        """
        year = year if year is not None else self.rankings.get_latest_scored_year()
        if year is None:
            logger.warning("No scores found. Run compute first.")
            return {"year": None, "files_written": 0}

        logger.info(f"Exporting JSON bundles for year {year} to {self.output_dir}")
        counts = {
            "overall": self._export_overall(year),
            "categories": self._export_categories(year),
            "regions": self._export_regions(year),
            "metrics": self._export_metrics(year),
            "compare": self._export_compare(year),
        }
        total = sum(counts.values())
        logger.info(f"JSON export complete: {total} files")
        return {"year": year, "files_written": total, "by_kind": counts}

    def _export_overall(self, year: int) -> int:
        data = self.rankings.overall_rankings(year)
        write_json(self.output_dir / "overall.json", {"year": year, "rankings": data["rankings"]})
        return 1

    def _export_categories(self, year: int) -> int:
        written = 0
        for category in self.rankings.list_categories():
            data = self.rankings.category_rankings(category.id, year)
            if not data["rankings"]:
                continue
            write_json(
                self.output_dir / "categories" / f"{category.id}.json",
                {
                    "year": year,
                    "category": {
                        "id": category.id,
                        "name": category.name,
                        "description": category.description,
                        "icon": category.icon,
                        "weight": category.weight,
                    },
                    "rankings": data["rankings"],
                    "metrics": [
                        self.rankings.metric_info(m)
                        for m in self.rankings.list_metrics(category.id)
                    ],
                },
            )
            written += 1
        logger.info(f"  Exported {written} category files")
        return written

    def _export_regions(self, year: int) -> int:
        written = 0
        for region in self.rankings.list_regions():
            profile = self.rankings.region_profile(region.id, year)
            write_json(self.output_dir / "regions" / f"{region.id}.json", profile)
            written += 1
        logger.info(f"  Exported {written} region files")
        return written

    def _export_metrics(self, year: int) -> int:
        written = 0
        for metric in self.rankings.list_metrics():
            data = self.rankings.metric_rankings(metric.id, year)
            if not data["rankings"]:
                continue
            write_json(
                self.output_dir / "metrics" / f"{metric.id}.json",
                {"year": year, "metric": self.rankings.metric_info(metric), "rankings": data["rankings"]},
            )
            written += 1
        logger.info(f"  Exported {written} metric files")
        return written

    def _export_compare(self, year: int) -> int:
        write_json(self.output_dir / "compare.json", self.rankings.comparison(year=year))
        return 1
