from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from selenium.common.exceptions import WebDriverException

from .artifacts import ArtifactWriter
from .config import Settings
from .errors import InvalidCursor, NoValidRecords, RetryExhaustedError
from .progress import ProgressStore
from .records import (
    ConversionResult,
    Converted,
    Failed,
    InputRecord,
    StoredResult,
    ensure_non_decreasing_ids,
    filter_from_cursor,
    is_poisoned,
    validate_records,
)
from .retry import RetryPolicy
from .session import BrowserSession
from .storage import create_backup, read_json_array, write_json_array, write_partial
from .workflow import ConversionWorkflow

REFRESH_SETTLE_SECONDS = 2.0


@dataclass(frozen=True)
class RunOptions:
    resume: bool = False
    start_from: int | None = None


@dataclass(frozen=True)
class RunSummary:
    processed: int
    succeeded: int
    failed: int
    skipped: int
    output_path: Path | None


class ConversionPipeline:
    """Run every input record through the converter, one at a time.

    The pipeline owns the browser session and is the only writer of the
    checkpoint and the output file. Results loaded from a checkpoint are
    kept apart from this run's results and always stay in front of them.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        session: BrowserSession,
        workflow: ConversionWorkflow,
        retry: RetryPolicy,
        progress: ProgressStore,
        logger: logging.Logger | None = None,
        artifacts: ArtifactWriter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.session = session
        self.workflow = workflow
        self.retry = retry
        self.progress = progress
        self.logger = logger or logging.getLogger("crawler.address_converter")
        self.artifacts = artifacts
        self.sleep = sleep
        self.previous: list[StoredResult] = []
        self.results: list[ConversionResult] = []

    def merged_rows(self) -> list[StoredResult]:
        return [*self.previous, *(result.to_json() for result in self.results)]

    def load_records(self) -> list[InputRecord]:
        self.logger.info("Reading input data from: %s", self.settings.input_file)
        raw_records = read_json_array(self.settings.input_file)
        self.logger.info("Loaded %d raw records", len(raw_records))
        records = validate_records(raw_records, self.logger)
        if not records:
            raise NoValidRecords(f"No valid input data found in {self.settings.input_file}")
        return records

    def resolve_cursor(self, options: RunOptions) -> int | None:
        if options.start_from is not None:
            if isinstance(options.start_from, bool) or not isinstance(options.start_from, int) or options.start_from < 1:
                raise InvalidCursor(f"start-from must be a positive integer, got {options.start_from!r}")
            self.logger.info("Starting from specified pref_old_id: %d", options.start_from)
            return options.start_from

        if options.resume:
            last_id = self.progress.last_processed_id()
            if last_id is None:
                self.logger.info("No progress found at %s; starting from the beginning", self.progress.path)
                return None
            self.previous = self.progress.load()
            self.logger.info(
                "Resuming from progress: %d stored results, starting from pref_old_id %d",
                len(self.previous),
                last_id + 1,
            )
            return last_id + 1

        return None

    def convert_one(self, record: InputRecord) -> ConversionResult:
        label = f"{record.city_name} - {record.pref_name}"
        self.logger.info("Processing: %s (pref_old_id=%d)", label, record.pref_old_id)
        try:
            outcome = self.retry.run(
                self.session,
                lambda session: self.workflow.convert(session, record),
                label=label,
            )
        except RetryExhaustedError as exc:
            self.capture_failure(record, exc.last_error)
            if self.settings.on_exhausted == "abort":
                raise
            self.logger.error("Failed to process %s after %d attempts: %s", label, exc.attempts, exc)
            return Failed(record=record, error=exc.last_error)

        fallback = outcome.prefecture_label if outcome.used_fallback else None
        self.logger.info(
            "Converted %s -> %s%s",
            record.pref_name,
            outcome.new_name,
            f" (fallback label {fallback})" if fallback else "",
        )
        return Converted(record=record, new_name=outcome.new_name, fallback_label=fallback)

    def capture_failure(self, record: InputRecord, error: Exception) -> None:
        if self.artifacts is None or not self.session.is_open:
            return
        try:
            created = self.artifacts.capture_failure(self.session.driver, record, error)
        except Exception:
            self.logger.exception("Failed to write error artifacts for pref_old_id=%d", record.pref_old_id)
            return
        self.logger.info("Failure artifacts saved: %s", created)

    def process(self, records: list[InputRecord]) -> None:
        total = len(records)
        for index, record in enumerate(records):
            self.logger.info("Progress: %d/%d", index + 1, total)
            if index > 0 and index % self.settings.refresh_every == 0:
                self.logger.info("Refreshing browser session at item %d", index + 1)
                try:
                    self.session.refresh()
                except WebDriverException as exc:
                    self.logger.error("Periodic session refresh failed: %s: %s", type(exc).__name__, exc)
                self.sleep(REFRESH_SETTLE_SECONDS)

            self.results.append(self.convert_one(record))

            if (index + 1) % self.settings.checkpoint_every == 0:
                self.progress.persist_checkpoint(self.merged_rows())
            if index + 1 < total:
                self.sleep(self.settings.profile.item_delay)

    def run(self, options: RunOptions | None = None) -> RunSummary:
        options = options or RunOptions()
        self.previous = []
        self.results = []
        output_path = self.settings.output_file

        try:
            records = self.load_records()
            cursor = self.resolve_cursor(options)
            skipped = 0
            if cursor is not None:
                ensure_non_decreasing_ids(records)
                remaining = filter_from_cursor(records, cursor)
                skipped = len(records) - len(remaining)
                records = remaining
                self.logger.info("Filtered data: %d items remaining (skipped %d items)", len(records), skipped)
                if not records:
                    self.logger.info("No items to process - everything before pref_old_id %d is complete", cursor)
                    return RunSummary(processed=0, succeeded=0, failed=0, skipped=skipped, output_path=None)

            self.session.open()
            self.process(records)

            rows = self.merged_rows()
            self.progress.persist_checkpoint(rows)
            create_backup(output_path, self.logger)
            write_json_array(output_path, rows)
            self.logger.info("Saved %d converted records to %s", len(rows), output_path)
        except Exception as exc:
            self.logger.error("Run aborted: %s: %s", type(exc).__name__, exc)
            write_partial(output_path.parent, [result.to_json() for result in self.results], self.logger)
            raise
        finally:
            self.session.close()

        failed = sum(1 for row in rows if is_poisoned(row))
        summary = RunSummary(
            processed=len(self.results),
            succeeded=len(rows) - failed,
            failed=failed,
            skipped=skipped,
            output_path=output_path,
        )
        self.log_summary(summary, total=len(rows))
        return summary

    def log_summary(self, summary: RunSummary, *, total: int) -> None:
        self.logger.info("PROCESSING SUMMARY")
        self.logger.info("Successful conversions: %d", summary.succeeded)
        self.logger.info("Failed conversions: %d", summary.failed)
        self.logger.info("Total in output: %d (processed this run: %d)", total, summary.processed)
        self.logger.info("Results saved to: %s", summary.output_path)
