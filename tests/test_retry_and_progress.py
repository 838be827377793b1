from pathlib import Path

import pytest
from selenium.common.exceptions import WebDriverException

from conftest import FakeSession, write_json
from vn_address_crawlers.errors import CheckpointCorrupt, ElementNotFound, RetryExhaustedError
from vn_address_crawlers.progress import ProgressStore
from vn_address_crawlers.retry import RetryPolicy


def failing_fn(failures: int):
    calls = {"count": 0}

    def _fn(session):
        calls["count"] += 1
        if calls["count"] <= failures:
            raise ElementNotFound(f"missing option #{calls['count']}")
        return "ok"

    return _fn, calls


def test_retry_exhaustion_backs_off_and_refreshes_every_second_failure() -> None:
    sleeps: list[float] = []
    session = FakeSession()
    fn, calls = failing_fn(failures=10)
    policy = RetryPolicy(max_attempts=3, sleep=sleeps.append)

    with pytest.raises(RetryExhaustedError) as excinfo:
        policy.run(session, fn)

    assert calls["count"] == 3
    assert sleeps == [2.0, 4.0]
    assert session.refresh_count == 1
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.last_error, ElementNotFound)
    assert str(excinfo.value) == "missing option #3"


def test_retry_returns_first_success() -> None:
    sleeps: list[float] = []
    session = FakeSession()
    fn, calls = failing_fn(failures=1)

    result = RetryPolicy(max_attempts=3, sleep=sleeps.append).run(session, fn)

    assert result == "ok"
    assert calls["count"] == 2
    assert sleeps == [2.0]
    assert session.refresh_count == 0


def test_single_attempt_never_sleeps() -> None:
    sleeps: list[float] = []
    fn, _calls = failing_fn(failures=1)

    with pytest.raises(RetryExhaustedError):
        RetryPolicy(max_attempts=1, sleep=sleeps.append).run(FakeSession(), fn)

    assert sleeps == []


def test_last_processed_id_missing_or_empty(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.json")
    assert store.last_processed_id() is None

    write_json(store.path, [])
    assert store.last_processed_id() is None


def test_last_processed_id_reads_last_element(tmp_path: Path) -> None:
    store = ProgressStore(tmp_path / "progress.json")
    store.persist_checkpoint(
        [
            {"city_name": "Hà Nội", "pref_old_id": 3, "pref_old_name": "A", "pref_new_name": "B"},
            {"city_name": "Hà Nội", "pref_old_id": 9, "pref_old_name": "C", "pref_new_name": "D"},
        ]
    )

    assert store.last_processed_id() == 9
    assert len(store.load()) == 2


def test_corrupt_checkpoint_is_surfaced(tmp_path: Path) -> None:
    path = tmp_path / "progress.json"
    path.write_text("[{not json", encoding="utf-8")

    with pytest.raises(CheckpointCorrupt):
        ProgressStore(path).last_processed_id()

    write_json(path, {"pref_old_id": 1})
    with pytest.raises(CheckpointCorrupt):
        ProgressStore(path).last_processed_id()

    write_json(path, [{"pref_old_id": "x"}])
    with pytest.raises(CheckpointCorrupt):
        ProgressStore(path).last_processed_id()


class FailingRelaunchSession(FakeSession):
    def refresh(self) -> None:
        self.refresh_count += 1
        raise WebDriverException("chrome failed to start")


def test_failed_refresh_leaves_the_next_attempt_in_charge() -> None:
    session = FailingRelaunchSession()
    fn, calls = failing_fn(failures=2)

    result = RetryPolicy(max_attempts=3, sleep=lambda _s: None).run(session, fn)

    assert result == "ok"
    assert calls["count"] == 3
    assert session.refresh_count == 1


def test_failed_refresh_then_exhaustion_reports_the_attempt_error() -> None:
    fn, _calls = failing_fn(failures=10)

    with pytest.raises(RetryExhaustedError) as excinfo:
        RetryPolicy(max_attempts=3, sleep=lambda _s: None).run(FailingRelaunchSession(), fn)

    assert isinstance(excinfo.value.last_error, ElementNotFound)
