from __future__ import annotations

import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable


def timestamp_suffix() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S_%f")


def read_json_array(path: Path) -> list[Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array in {path}, got {type(data).__name__}")
    return data


def write_json_array(path: Path, rows: Iterable[dict[str, Any]]) -> int:
    payload = list(rows)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return len(payload)


def create_backup(path: Path, logger: logging.Logger) -> Path | None:
    if not path.exists():
        return None
    backup_path = path.with_name(f"{path.name}.backup.{timestamp_suffix()}")
    shutil.copyfile(path, backup_path)
    logger.info("Created backup at: %s", backup_path)
    return backup_path


def write_partial(directory: Path, rows: list[dict[str, Any]], logger: logging.Logger) -> Path | None:
    if not rows:
        return None
    partial_path = directory / f"partial_results_{timestamp_suffix()}.json"
    try:
        write_json_array(partial_path, rows)
    except OSError:
        logger.exception("Failed to save partial results to %s", partial_path)
        return None
    logger.info("Saved partial results (%d items) to: %s", len(rows), partial_path)
    return partial_path
