from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Union

from .errors import InputOrderError, ValidationError

ERROR_PREFIX = "ERROR: "

StoredResult = dict[str, Any]


@dataclass(frozen=True)
class InputRecord:
    city_name: str
    pref_old_id: int
    pref_name: str

    @classmethod
    def from_raw(cls, raw: object) -> InputRecord:
        if not isinstance(raw, dict):
            raise ValidationError(f"record is not an object: {raw!r}")

        city_name = raw.get("city_name")
        pref_name = raw.get("pref_name")
        pref_old_id = raw.get("pref_old_id")

        if not isinstance(city_name, str) or not city_name:
            raise ValidationError("city_name is missing or empty")
        if not isinstance(pref_name, str) or not pref_name:
            raise ValidationError("pref_name is missing or empty")
        # bool is an int subclass; reject it explicitly.
        if isinstance(pref_old_id, bool) or not isinstance(pref_old_id, int):
            raise ValidationError(f"pref_old_id must be an integer, got {pref_old_id!r}")

        return cls(city_name=city_name, pref_old_id=pref_old_id, pref_name=pref_name)


@dataclass(frozen=True)
class Converted:
    record: InputRecord
    new_name: str
    fallback_label: str | None = None

    @property
    def ok(self) -> bool:
        return True

    def to_json(self) -> StoredResult:
        payload: StoredResult = {
            "city_name": self.record.city_name,
            "pref_old_id": self.record.pref_old_id,
            "pref_old_name": self.record.pref_name,
            "pref_new_name": self.new_name,
        }
        if self.fallback_label is not None:
            payload["pref_new_fallback"] = self.new_name
        return payload


@dataclass(frozen=True)
class Failed:
    record: InputRecord
    error: Exception

    @property
    def ok(self) -> bool:
        return False

    def to_json(self) -> StoredResult:
        return {
            "city_name": self.record.city_name,
            "pref_old_id": self.record.pref_old_id,
            "pref_old_name": self.record.pref_name,
            "pref_new_name": f"{ERROR_PREFIX}{self.error}",
        }


ConversionResult = Union[Converted, Failed]


def is_poisoned(stored: StoredResult) -> bool:
    return str(stored.get("pref_new_name", "")).startswith(ERROR_PREFIX.strip())


def validate_records(raw_records: Iterable[object], logger: logging.Logger) -> list[InputRecord]:
    raw_list = list(raw_records)
    valid: list[InputRecord] = []
    for index, raw in enumerate(raw_list):
        try:
            valid.append(InputRecord.from_raw(raw))
        except ValidationError as exc:
            logger.warning("Skipping invalid record at index %d: %s (%r)", index, exc, raw)

    logger.info("Validated %d out of %d records", len(valid), len(raw_list))
    return valid


def ensure_non_decreasing_ids(records: list[InputRecord]) -> None:
    for previous, current in zip(records, records[1:]):
        if current.pref_old_id < previous.pref_old_id:
            raise InputOrderError(
                "Input records must be non-decreasing in pref_old_id to resume: "
                f"{current.pref_old_id} follows {previous.pref_old_id} "
                f"({current.city_name} / {current.pref_name})"
            )


def filter_from_cursor(records: list[InputRecord], cursor: int) -> list[InputRecord]:
    return [record for record in records if record.pref_old_id >= cursor]
