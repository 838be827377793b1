import os
import subprocess
import sys
from pathlib import Path

import pytest

from vn_address_crawlers.cli import build_settings, main, parse_args, parse_start_from
from vn_address_crawlers.errors import ConverterError, InvalidCursor

RUN_CRAWLER = Path(__file__).resolve().parents[1] / "python" / "run_crawler.py"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ("SPEED_MODE", "DEBUG_MODE", "CRAWLER_TIMEOUT_SECONDS", "CONVERTER_MAX_ATTEMPTS", "CONVERTER_ON_EXHAUSTED"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_parse_start_from_accepts_positive_integers() -> None:
    assert parse_start_from(None) is None
    assert parse_start_from("42") == 42


@pytest.mark.parametrize("value", ["0", "-3", "abc", "1.5", ""])
def test_parse_start_from_rejects_invalid_values(value: str) -> None:
    with pytest.raises(InvalidCursor):
        parse_start_from(value)


def test_profiles_and_overrides() -> None:
    assert build_settings(parse_args([])).profile.name == "balanced"

    speed = build_settings(parse_args(["--speed", "--timeout", "5", "--headed"])).profile
    assert speed.name == "speed"
    assert speed.timeout_seconds == 5
    assert speed.headless is False

    debug = build_settings(parse_args(["--debug"])).profile
    assert debug.headless is False
    assert debug.block_resources is False


def test_speed_mode_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPEED_MODE", "true")

    assert build_settings(parse_args([])).profile.name == "speed"


def test_on_exhausted_defaults_to_record() -> None:
    settings = build_settings(parse_args(["--max-attempts", "1"]))

    assert settings.on_exhausted == "record"
    assert settings.max_attempts == 1


def test_main_rejects_invalid_start_from(tmp_path: Path) -> None:
    exit_code = main(["--start-from=abc", "--storage-dir", str(tmp_path / "storage")])

    assert exit_code == 1
    assert list((tmp_path / "storage" / "crawlers" / "address_converter").glob("*/crawler.log"))


def test_main_fails_on_missing_input(tmp_path: Path) -> None:
    exit_code = main(
        [
            "--input",
            str(tmp_path / "missing.json"),
            "--storage-dir",
            str(tmp_path / "storage"),
            "--no-artifacts",
        ]
    )

    assert exit_code == 1


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("CONVERTER_MAX_ATTEMPTS", "abc"),
        ("CONVERTER_MAX_ATTEMPTS", "0"),
        ("CRAWLER_TIMEOUT_SECONDS", "soon"),
        ("CONVERTER_ON_EXHAUSTED", "Abort"),
    ],
)
def test_malformed_environment_settings_are_rejected(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConverterError):
        build_settings(parse_args([]))


def test_main_reports_malformed_environment_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CONVERTER_MAX_ATTEMPTS", "abc")

    exit_code = main(["--storage-dir", str(tmp_path / "storage")])

    assert exit_code == 1
    log_files = list((tmp_path / "storage" / "crawlers" / "address_converter").glob("*/crawler.log"))
    assert "Invalid max attempts 'abc'" in log_files[0].read_text(encoding="utf-8")


def test_run_crawler_script_runs_from_a_plain_checkout(tmp_path: Path) -> None:
    env = {key: value for key, value in os.environ.items() if key != "PYTHONPATH"}
    result = subprocess.run(
        [sys.executable, str(RUN_CRAWLER), "--start-from=abc", "--storage-dir", str(tmp_path / "storage")],
        cwd=tmp_path,
        env=env,
        capture_output=True,
        text=True,
    )

    assert result.returncode == 1
    assert "ModuleNotFoundError" not in result.stderr
    assert list((tmp_path / "storage" / "crawlers" / "address_converter").glob("*/crawler.log"))
