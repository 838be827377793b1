from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

from selenium import webdriver
from selenium.common.exceptions import (
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from .locators import Locator

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

# URL patterns blocked through CDP per resource type.
RESOURCE_URL_PATTERNS: dict[str, tuple[str, ...]] = {
    "image": ("*.png", "*.jpg", "*.jpeg", "*.gif", "*.webp", "*.svg", "*.ico", "*.avif"),
    "media": ("*.mp4", "*.webm", "*.ogg", "*.mp3", "*.wav", "*.m4a"),
    "font": ("*.woff", "*.woff2", "*.ttf", "*.otf"),
}
DEFAULT_BLOCKED_TYPES = frozenset({"image", "media"})


def build_driver(headless: bool) -> WebDriver:
    options = ChromeOptions()
    options.add_argument("--window-size=1280,720")
    options.add_argument("--disable-gpu")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-extensions")
    options.add_argument("--disable-background-networking")
    options.add_argument("--disable-background-timer-throttling")
    options.add_argument("--disable-backgrounding-occluded-windows")
    options.add_argument("--disable-renderer-backgrounding")
    options.add_argument(f"--user-agent={USER_AGENT}")
    if headless:
        options.add_argument("--headless=new")
    return webdriver.Chrome(options=options)


def wait_dom_ready(driver: WebDriver, timeout_seconds: float) -> None:
    WebDriverWait(driver, timeout_seconds).until(
        lambda d: d.execute_script("return document.readyState") == "complete"
    )


class BrowserSession:
    """Single Chrome session shared by the pipeline, workflow and retry policy.

    ``refresh`` always quits the driver and builds a new one; there is no
    partial reset.
    """

    def __init__(
        self,
        *,
        headless: bool,
        timeout_seconds: float,
        blocked_types: Iterable[str] = (),
        logger: logging.Logger | None = None,
        driver_factory: Callable[[bool], WebDriver] = build_driver,
    ) -> None:
        self.headless = headless
        self.timeout_seconds = timeout_seconds
        self.blocked_types = frozenset(blocked_types)
        self.logger = logger or logging.getLogger("crawler.address_converter")
        self.driver_factory = driver_factory
        self._driver: WebDriver | None = None

    @property
    def driver(self) -> WebDriver:
        if self._driver is None:
            raise RuntimeError("Browser session is not open")
        return self._driver

    @property
    def is_open(self) -> bool:
        return self._driver is not None

    def open(self) -> None:
        self.logger.info("Opening browser session (headless=%s)", self.headless)
        self._driver = self.driver_factory(self.headless)
        self._driver.set_page_load_timeout(self.timeout_seconds)
        if self.blocked_types:
            self.block_resource_types(self.blocked_types)

    def close(self) -> None:
        if self._driver is None:
            return
        try:
            self._driver.quit()
        except WebDriverException:
            self.logger.warning("Driver quit failed; session discarded anyway.")
        finally:
            self._driver = None
        self.logger.info("Browser session closed")

    def refresh(self) -> None:
        self.logger.info("Refreshing browser session")
        self.close()
        self.open()

    def block_resource_types(self, types: Iterable[str]) -> None:
        patterns: list[str] = []
        for resource_type in sorted(set(types)):
            patterns.extend(RESOURCE_URL_PATTERNS.get(resource_type, ()))
        if not patterns:
            return
        self.driver.execute_cdp_cmd("Network.enable", {})
        self.driver.execute_cdp_cmd("Network.setBlockedURLs", {"urls": patterns})
        self.logger.info("Blocking resource types: %s", ", ".join(sorted(set(types))))

    def navigate(self, url: str) -> None:
        self.driver.get(url)
        wait_dom_ready(self.driver, self.timeout_seconds)

    def try_click(self, locator: Locator, timeout_seconds: float | None = None) -> bool:
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        try:
            element = WebDriverWait(self.driver, timeout).until(EC.element_to_be_clickable(locator))
        except TimeoutException:
            return False

        try:
            element.click()
        except WebDriverException:
            self.logger.warning("Standard click failed, retrying via JS click.")
            self.driver.execute_script("arguments[0].click();", element)
        return True

    def read_texts(self, locator: Locator) -> list[str]:
        texts: list[str] = []
        for element in self.driver.find_elements(*locator):
            try:
                texts.append(element.text or "")
            except WebDriverException:
                continue
        return texts

    def wait_until(self, predicate: Callable[[BrowserSession], bool], timeout_seconds: float | None = None) -> bool:
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        try:
            WebDriverWait(self.driver, timeout).until(lambda _driver: predicate(self))
        except TimeoutException:
            return False
        return True

    def is_visible(self, locator: Locator) -> bool:
        try:
            return any(element.is_displayed() for element in self.driver.find_elements(*locator))
        except StaleElementReferenceException:
            return False

    def pause(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)
