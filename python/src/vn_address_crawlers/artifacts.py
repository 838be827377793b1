from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path

from selenium.webdriver.remote.webdriver import WebDriver

from .records import InputRecord


def _slug(value: str) -> str:
    return re.sub(r"[^\w]+", "_", value, flags=re.UNICODE).strip("_").lower()[:60]


class ArtifactWriter:
    """Page snapshots for records that exhausted their retries."""

    def __init__(self, run_dir: Path) -> None:
        self.run_dir = run_dir
        self.steps_dir = self.run_dir / "steps"
        self.steps_dir.mkdir(parents=True, exist_ok=True)
        self._counter = 0

    def capture_failure(self, driver: WebDriver, record: InputRecord, error: Exception) -> dict[str, str]:
        self._counter += 1
        step_prefix = f"{self._counter:03d}_{record.pref_old_id}_{_slug(record.pref_name)}"

        png_path = self.steps_dir / f"{step_prefix}.png"
        html_path = self.steps_dir / f"{step_prefix}.html"
        meta_path = self.steps_dir / f"{step_prefix}.json"

        driver.save_screenshot(str(png_path))
        html_path.write_text(driver.page_source, encoding="utf-8")

        metadata = {
            "city_name": record.city_name,
            "pref_old_id": record.pref_old_id,
            "pref_name": record.pref_name,
            "error_type": type(error).__name__,
            "error": str(error),
            "captured_at": datetime.now(timezone.utc).isoformat(),
            "url": driver.current_url,
            "title": driver.title,
            "png": str(png_path),
            "html": str(html_path),
        }
        meta_path.write_text(json.dumps(metadata, ensure_ascii=False, indent=2), encoding="utf-8")

        return {"png": str(png_path), "html": str(html_path), "meta": str(meta_path)}
