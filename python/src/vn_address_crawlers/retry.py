from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from selenium.common.exceptions import WebDriverException

from .errors import RetryExhaustedError
from .session import BrowserSession

T = TypeVar("T")


class RetryPolicy:
    """Run one conversion attempt at a time, up to ``max_attempts``.

    After failed attempt ``n`` (when more remain) it sleeps
    ``backoff_base ** n`` seconds, and every ``refresh_every``-th failure it
    rebuilds the browser session before trying again.
    """

    def __init__(
        self,
        *,
        max_attempts: int,
        backoff_base: float = 2.0,
        refresh_every: int = 2,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.refresh_every = refresh_every
        self.sleep = sleep
        self.logger = logger or logging.getLogger("crawler.address_converter")

    def backoff_seconds(self, attempt: int) -> float:
        return self.backoff_base**attempt

    def run(self, session: BrowserSession, fn: Callable[[BrowserSession], T], *, label: str = "") -> T:
        attempt = 0
        while True:
            attempt += 1
            try:
                return fn(session)
            except Exception as exc:
                self.logger.error(
                    "Attempt %d/%d failed for %s: %s: %s",
                    attempt,
                    self.max_attempts,
                    label or "<item>",
                    type(exc).__name__,
                    exc,
                )
                if attempt >= self.max_attempts:
                    raise RetryExhaustedError(self.max_attempts, exc) from exc

            delay = self.backoff_seconds(attempt)
            self.logger.info("Waiting %.0fs before retry...", delay)
            self.sleep(delay)
            if self.refresh_every and attempt % self.refresh_every == 0:
                self.refresh_session(session)

    def refresh_session(self, session: BrowserSession) -> None:
        # A closed session makes the next attempt fail on its own.
        try:
            session.refresh()
        except WebDriverException as exc:
            self.logger.error("Session refresh failed: %s: %s", type(exc).__name__, exc)
