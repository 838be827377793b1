from __future__ import annotations

import json
import logging
from pathlib import Path

from .errors import CheckpointCorrupt
from .records import StoredResult
from .storage import read_json_array, write_json_array


class ProgressStore:
    def __init__(self, path: Path, logger: logging.Logger | None = None) -> None:
        self.path = path
        self.logger = logger or logging.getLogger("crawler.address_converter")

    def load(self) -> list[StoredResult]:
        if not self.path.exists():
            return []
        try:
            rows = read_json_array(self.path)
        except (json.JSONDecodeError, ValueError, UnicodeDecodeError) as exc:
            raise CheckpointCorrupt(f"Checkpoint {self.path} is unreadable: {exc}") from exc

        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                raise CheckpointCorrupt(f"Checkpoint {self.path} element {index} is not an object")
        return rows

    def last_processed_id(self) -> int | None:
        rows = self.load()
        if not rows:
            return None
        last_id = rows[-1].get("pref_old_id")
        if isinstance(last_id, bool) or not isinstance(last_id, int):
            raise CheckpointCorrupt(f"Checkpoint {self.path} last element has no integer pref_old_id")
        return last_id

    def persist_checkpoint(self, rows: list[StoredResult]) -> None:
        count = write_json_array(self.path, rows)
        self.logger.info("Progress saved (%d items) to %s", count, self.path)
