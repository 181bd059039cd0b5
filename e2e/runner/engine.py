# Where: e2e/runner/engine.py
# What: Browser automation engine selection exposed to tests as a pytest plugin.
# Why: Engine, browser filter and headless mode travel as an explicit object, not global state.
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import pytest

from e2e.runner import constants
from e2e.runner.models import EngineConfig

logger = logging.getLogger(__name__)

BROWSERS_MARKER = "browsers"

_PLAYWRIGHT_BROWSERS = {
    constants.BROWSER_CHROME: "chromium",
    constants.BROWSER_FIREFOX: "firefox",
    constants.BROWSER_SAFARI: "webkit",
}


def select_browsers(declared: tuple[str, ...] | list[str], config: EngineConfig) -> list[str]:
    """Browsers a test should run against: its declared set narrowed by the filter."""
    candidates = list(declared) if declared else [constants.DEFAULT_BROWSER]
    return [name for name in candidates if config.allows(name)]


@contextmanager
def _playwright_page(browser: str, headless: bool) -> Iterator[object]:
    from playwright.sync_api import sync_playwright

    with sync_playwright() as pw:
        launcher = getattr(pw, _PLAYWRIGHT_BROWSERS[browser])
        instance = launcher.launch(headless=headless)
        try:
            yield instance.new_page()
        finally:
            instance.close()


def _selenium_driver(browser: str, headless: bool):
    from selenium import webdriver

    if browser == constants.BROWSER_FIREFOX:
        options = webdriver.FirefoxOptions()
        if headless:
            options.add_argument("-headless")
        return webdriver.Firefox(options=options)
    if browser == constants.BROWSER_SAFARI:
        if headless:
            logger.warning("Safari does not support headless mode; launching with UI")
        return webdriver.Safari()
    options = webdriver.ChromeOptions()
    if headless:
        options.add_argument("--headless=new")
    return webdriver.Chrome(options=options)


@contextmanager
def open_browser(config: EngineConfig, browser: str) -> Iterator[object]:
    """Yield a Playwright ``Page`` or a Selenium ``WebDriver`` for ``browser``."""
    if browser not in constants.BROWSERS:
        raise ValueError(f"unsupported browser: {browser}")
    logger.debug("Launching %s via %s (headless=%s)", browser, config.engine, config.headless)
    if config.engine == constants.ENGINE_PLAYWRIGHT:
        with _playwright_page(browser, config.headless) as page:
            yield page
        return
    if config.engine == constants.ENGINE_SELENIUM:
        driver = _selenium_driver(browser, config.headless)
        try:
            yield driver
        finally:
            driver.quit()
        return
    raise ValueError(f"unsupported engine: {config.engine}")


class EnginePlugin:
    def __init__(self, config: EngineConfig, *, server_url: str) -> None:
        self.config = config
        self.base_url = server_url

    def pytest_configure(self, config) -> None:
        config.addinivalue_line(
            "markers",
            f"{BROWSERS_MARKER}(*names): browsers the test supports "
            f"({', '.join(constants.BROWSERS)})",
        )

    def pytest_generate_tests(self, metafunc) -> None:
        if "browser_name" not in metafunc.fixturenames:
            return
        marker = metafunc.definition.get_closest_marker(BROWSERS_MARKER)
        declared = tuple(marker.args) if marker else ()
        names = select_browsers(declared, self.config)
        metafunc.parametrize("browser_name", names, ids=names)

    @pytest.fixture(scope="session")
    def engine_config(self) -> EngineConfig:
        return self.config

    @pytest.fixture(scope="session")
    def server_url(self) -> str:
        return self.base_url

    @pytest.fixture
    def browser_name(self) -> str:
        return constants.DEFAULT_BROWSER

    @pytest.fixture
    def controller(self, engine_config: EngineConfig, browser_name: str):
        with open_browser(engine_config, browser_name) as handle:
            yield handle
