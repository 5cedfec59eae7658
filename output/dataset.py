"""
CRAWL — Dataset
Append-only record store for one crawl run, kept as JSON lines so every
pushed record survives a crash mid-run.
"""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class Dataset:
    """
    Output sink for extracted records.

    push_data() appends and fsyncs one record per call; get_data() reads
    everything back in insertion order. With persist=False records only live
    in memory (dry runs).
    """

    def __init__(self, storage_dir: str = "storage", name: str = "default", persist: bool = True):
        self.name = name
        self.persist = persist
        self.path = Path(storage_dir) / "datasets" / name / "items.jsonl"
        self._memory = []
        if self.persist:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def push_data(self, item: dict):
        if not self.persist:
            self._memory.append(dict(item))
            return
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(item, ensure_ascii=False) + "\n")
            f.flush()
            os.fsync(f.fileno())

    def get_data(self) -> list:
        if not self.persist:
            return [dict(item) for item in self._memory]
        if not self.path.exists():
            return []
        items = []
        with open(self.path, encoding="utf-8") as f:
            for line_no, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    items.append(json.loads(line))
                except json.JSONDecodeError as e:
                    # A torn final line from a killed run
                    logger.warning(f"  ⚠️  Skipping unreadable dataset line {line_no} in {self.path}: {e}")
        return items

    def purge(self):
        """Start the run with an empty dataset."""
        self._memory = []
        if self.persist and self.path.exists():
            self.path.unlink()
            logger.info(f"  🧹  Purged dataset '{self.name}'")

    def __len__(self) -> int:
        return len(self.get_data())
