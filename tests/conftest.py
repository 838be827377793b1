from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Callable

import pytest

from vn_address_crawlers import locators
from vn_address_crawlers.config import PROFILES, Settings
from vn_address_crawlers.errors import WorkflowError
from vn_address_crawlers.locators import Locator
from vn_address_crawlers.records import InputRecord
from vn_address_crawlers.workflow import WorkflowOutcome

FAST_PROFILE = replace(PROFILES["balanced"], operation_delay=0, item_delay=0, timeout_seconds=1)


class FakeSession:
    """In-memory stand-in for BrowserSession; clickable locators are listed up front."""

    def __init__(
        self,
        *,
        clickable: set[Locator] | None = None,
        visible: set[Locator] | None = None,
        texts: dict[Locator, list[str]] | None = None,
    ) -> None:
        self.clickable = clickable or set()
        self.visible = visible or set()
        self.texts = texts or {}
        self.clicks: list[Locator] = []
        self.urls: list[str] = []
        self.pauses: list[float] = []
        self.open_count = 0
        self.close_count = 0
        self.refresh_count = 0
        self.is_open = False

    @property
    def driver(self):
        raise RuntimeError("fake session has no driver")

    def open(self) -> None:
        self.open_count += 1
        self.is_open = True

    def close(self) -> None:
        if self.is_open:
            self.close_count += 1
        self.is_open = False

    def refresh(self) -> None:
        self.refresh_count += 1

    def navigate(self, url: str) -> None:
        self.urls.append(url)

    def try_click(self, locator: Locator, timeout_seconds: float | None = None) -> bool:
        self.clicks.append(locator)
        return locator in self.clickable

    def read_texts(self, locator: Locator) -> list[str]:
        return list(self.texts.get(locator, []))

    def wait_until(self, predicate, timeout_seconds: float | None = None) -> bool:
        return bool(predicate(self))

    def is_visible(self, locator: Locator) -> bool:
        return locator in self.visible

    def pause(self, seconds: float) -> None:
        self.pauses.append(seconds)


def site_session(
    *,
    city: str = "Hà Nội",
    prefectures: tuple[str, ...] = ("Quận Ba Đình",),
    result_text: str | None = "Phường Ngọc Hà, Thành phố Hà Nội",
    result_visible: bool = True,
    notice: bool = False,
) -> FakeSession:
    clickable: set[Locator] = {
        locators.selector_button(locators.CITY_PLACEHOLDER),
        locators.selector_button(locators.PREFECTURE_PLACEHOLDER),
        locators.selector_button(locators.WARD_PLACEHOLDER),
        locators.option_by_label(city),
        locators.FIRST_OPTION,
        locators.CONVERT_BUTTON,
    }
    clickable.update(locators.option_by_label(label) for label in prefectures)
    if notice:
        clickable.add(locators.NOTICE_CLOSE_BUTTON)

    texts: dict[Locator, list[str]] = {}
    if result_text is not None:
        texts[locators.NEW_ADDRESS_PARAGRAPHS] = [locators.NEW_ADDRESS_LABEL, result_text, "Sao chép"]

    return FakeSession(
        clickable=clickable,
        visible={locators.RESULT_MARKER} if result_visible else set(),
        texts=texts,
    )


class FakeWorkflow:
    """Returns a canned outcome per pref_old_id, or raises for ids in ``failing``."""

    def __init__(
        self,
        *,
        failing: set[int] | None = None,
        fallback_ids: set[int] | None = None,
        on_convert: Callable[[InputRecord], None] | None = None,
    ) -> None:
        self.failing = failing or set()
        self.fallback_ids = fallback_ids or set()
        self.on_convert = on_convert
        self.calls: list[int] = []

    def convert(self, session, record: InputRecord) -> WorkflowOutcome:
        self.calls.append(record.pref_old_id)
        if self.on_convert is not None:
            self.on_convert(record)
        if record.pref_old_id in self.failing:
            raise WorkflowError(f"site rejected {record.pref_name}")
        if record.pref_old_id in self.fallback_ids:
            return WorkflowOutcome(
                new_name=f"Phường Mới {record.pref_old_id}",
                used_fallback=True,
                prefecture_label=record.pref_name.replace("Huyện ", "Thị xã ", 1),
            )
        return WorkflowOutcome(
            new_name=f"Phường Mới {record.pref_old_id}",
            used_fallback=False,
            prefecture_label=record.pref_name,
        )


def make_records(ids) -> list[dict[str, object]]:
    return [
        {"city_name": "Hà Nội", "pref_old_id": pref_id, "pref_name": f"Quận Số {pref_id}"}
        for pref_id in ids
    ]


def write_json(path: Path, payload) -> Path:
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "out").mkdir()
    return tmp_path


@pytest.fixture()
def make_settings(workspace: Path) -> Callable[..., Settings]:
    def _make(**overrides) -> Settings:
        values = dict(
            base_url="https://converter.test/",
            input_file=workspace / "input.json",
            output_file=workspace / "out" / "converted_addresses.json",
            progress_file=workspace / "out" / "progress.json",
            max_attempts=2,
            on_exhausted="record",
            profile=FAST_PROFILE,
        )
        values.update(overrides)
        return Settings(**values)

    return _make
