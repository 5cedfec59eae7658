"""
CRAWL — JSON Export
Writes the run's records as an indented JSON array for the local dashboard,
and copies that file into the dashboard's static data directory.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_PATH = "data/investors.json"
FRONTEND_DATA_DIR = "frontend/public/data"


class JSONWriter:
    """Exports dataset items to a single JSON file."""

    def __init__(self, output_path: str = DEFAULT_EXPORT_PATH):
        self.output_path = Path(output_path)

    def write(self, items: list) -> Optional[str]:
        """
        Write items as an indented JSON array.

        Returns:
            Path to the written file, or None if the write failed.
            A failed export never fails the run: the dataset is the source of truth.
        """
        try:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.output_path, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError) as e:
            logger.error(f"  ❌  Error exporting to JSON: {e}")
            return None

        logger.info(f"  💾  Exported {len(items)} investors → {self.output_path}")
        return str(self.output_path)


def read_export(path: str = DEFAULT_EXPORT_PATH) -> list:
    """Load an exported JSON array."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a JSON array")
    return data


def copy_export(source: str = DEFAULT_EXPORT_PATH, target_dir: str = FRONTEND_DATA_DIR) -> Path:
    """
    Copy the export into the dashboard's static directory.

    Raises:
        FileNotFoundError: no export exists yet
    """
    source_path = Path(source)
    if not source_path.exists():
        raise FileNotFoundError(f"No data file found at {source_path}")

    target = Path(target_dir)
    target.mkdir(parents=True, exist_ok=True)
    target_file = target / source_path.name
    shutil.copyfile(source_path, target_file)
    logger.info(f"  ✅  Data copied to {target_file}")
    return target_file
