from __future__ import annotations

import argparse
import os
from datetime import datetime
from pathlib import Path
from typing import Sequence

from .artifacts import ArtifactWriter
from .config import (
    DEFAULT_BASE_URL,
    ON_EXHAUSTED_CHOICES,
    Settings,
    load_env,
    override_profile,
    resolve_profile,
)
from .errors import ConverterError, InvalidCursor
from .logging_utils import build_logger
from .pipeline import ConversionPipeline, RunOptions
from .progress import ProgressStore
from .retry import RetryPolicy
from .session import DEFAULT_BLOCKED_TYPES, BrowserSession
from .workflow import ConversionWorkflow

SLUG = "address_converter"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Convert old Vietnamese district names to current ones via address-converter.io.vn"
    )
    parser.add_argument("--run-id", default=datetime.now().strftime("%Y%m%d_%H%M%S"))
    parser.add_argument("--base-url", default=os.getenv("CONVERTER_BASE_URL", DEFAULT_BASE_URL))
    parser.add_argument("--input", default=os.getenv("CONVERTER_INPUT_FILE", "city_pref_names.json"))
    parser.add_argument("--output", default=os.getenv("CONVERTER_OUTPUT_FILE", "converted_addresses.json"))
    parser.add_argument("--progress", default=os.getenv("CONVERTER_PROGRESS_FILE", "progress.json"))
    parser.add_argument("--storage-dir", default=os.getenv("CRAWLER_STORAGE_DIR", "storage"))
    parser.add_argument(
        "--max-attempts",
        default=os.getenv("CONVERTER_MAX_ATTEMPTS", "3"),
        help="Conversion attempts per record before giving up.",
    )
    parser.add_argument(
        "--on-exhausted",
        choices=ON_EXHAUSTED_CHOICES,
        default=os.getenv("CONVERTER_ON_EXHAUSTED", "record"),
        help="record: store an ERROR result and continue; abort: stop the run.",
    )
    parser.add_argument(
        "--timeout",
        default=os.getenv("CRAWLER_TIMEOUT_SECONDS") or None,
        help="Override the profile's wait timeout (seconds).",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--speed", action="store_true", help="Shorter delays, resource blocking.")
    mode.add_argument("--debug", action="store_true", help="Visible browser, longer delays.")

    display = parser.add_mutually_exclusive_group()
    display.add_argument("--headless", action="store_true", help="Force headless Chrome")
    display.add_argument("--headed", action="store_true", help="Force headed mode")

    parser.add_argument("--resume", action="store_true", help="Resume after the last checkpointed pref_old_id.")
    parser.add_argument("--start-from", default=None, help="Process records with pref_old_id >= this value.")
    parser.add_argument("--no-artifacts", action="store_true", help="Do not snapshot pages of failed records.")
    return parser.parse_args(argv)


def parse_start_from(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise InvalidCursor(f"Invalid --start-from value {value!r}. Must be a positive integer.") from exc
    if parsed < 1:
        raise InvalidCursor(f"Invalid --start-from value {value!r}. Must be a positive integer.")
    return parsed


def resolve_headless(args: argparse.Namespace) -> bool | None:
    if args.headed:
        return False
    if args.headless:
        return True
    return None


def parse_max_attempts(value: str | int) -> int:
    try:
        parsed = int(str(value).strip())
    except ValueError as exc:
        raise ConverterError(f"Invalid max attempts {value!r}. Must be a positive integer.") from exc
    if parsed < 1:
        raise ConverterError(f"Invalid max attempts {value!r}. Must be a positive integer.")
    return parsed


def parse_timeout(value: str | float | None) -> float | None:
    if value is None:
        return None
    try:
        parsed = float(str(value).strip())
    except ValueError as exc:
        raise ConverterError(f"Invalid timeout {value!r}. Expected seconds.") from exc
    if parsed <= 0:
        raise ConverterError(f"Invalid timeout {value!r}. Expected seconds.")
    return parsed


def parse_on_exhausted(value: str) -> str:
    if value not in ON_EXHAUSTED_CHOICES:
        raise ConverterError(
            f"Invalid on-exhausted policy {value!r}. Expected one of: {', '.join(ON_EXHAUSTED_CHOICES)}."
        )
    return value


def build_settings(args: argparse.Namespace) -> Settings:
    profile = resolve_profile(speed=args.speed, debug=args.debug)
    profile = override_profile(
        profile,
        timeout_seconds=parse_timeout(args.timeout),
        headless=resolve_headless(args),
    )
    return Settings(
        base_url=args.base_url,
        input_file=Path(args.input),
        output_file=Path(args.output),
        progress_file=Path(args.progress),
        max_attempts=parse_max_attempts(args.max_attempts),
        on_exhausted=parse_on_exhausted(args.on_exhausted),
        profile=profile,
    )


def build_pipeline(settings: Settings, logger, run_dir: Path | None) -> ConversionPipeline:
    profile = settings.profile
    session = BrowserSession(
        headless=profile.headless,
        timeout_seconds=profile.timeout_seconds,
        blocked_types=DEFAULT_BLOCKED_TYPES if profile.block_resources else (),
        logger=logger,
    )
    workflow = ConversionWorkflow(
        base_url=settings.base_url,
        timeout_seconds=profile.timeout_seconds,
        operation_delay=profile.operation_delay,
        logger=logger,
    )
    return ConversionPipeline(
        settings=settings,
        session=session,
        workflow=workflow,
        retry=RetryPolicy(max_attempts=settings.max_attempts, logger=logger),
        progress=ProgressStore(settings.progress_file, logger=logger),
        logger=logger,
        artifacts=ArtifactWriter(run_dir) if run_dir is not None else None,
    )


def main(argv: Sequence[str] | None = None) -> int:
    load_env(Path.cwd())
    args = parse_args(argv)

    run_dir = Path(args.storage_dir) / "crawlers" / SLUG / args.run_id
    logger = build_logger(run_dir / "crawler.log")
    logger.info("Vietnamese Address Converter Scraper, run_id=%s", args.run_id)

    try:
        start_from = parse_start_from(args.start_from)
        settings = build_settings(args)
        logger.info(
            "Mode: %s (headless=%s, timeout=%gs, operation_delay=%gs, item_delay=%gs)",
            settings.profile.name.upper(),
            settings.profile.headless,
            settings.profile.timeout_seconds,
            settings.profile.operation_delay,
            settings.profile.item_delay,
        )
        logger.info("Retry policy: %d attempts, on exhaustion=%s", settings.max_attempts, settings.on_exhausted)

        pipeline = build_pipeline(settings, logger, None if args.no_artifacts else run_dir)
        pipeline.run(RunOptions(resume=args.resume, start_from=start_from))
        logger.info("Application completed successfully")
        return 0
    except Exception as exc:
        logger.exception("Application failed: %s: %r", type(exc).__name__, exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
