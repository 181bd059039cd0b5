# Where: e2e/runner/constants.py
# What: Fixed values shared by the E2E runner modules.
# Why: Keep host/port, thresholds and option vocabularies in one place.
from __future__ import annotations

HOST = "localhost"
PORT = 8000

# e2e tests have a different standard for when a test is too slow.
SLOW_TEST_THRESHOLD_SECONDS = 2.5
CI_TEST_RETRIES = 2

ENGINE_PLAYWRIGHT = "playwright"
ENGINE_SELENIUM = "selenium"
ENGINES = (ENGINE_PLAYWRIGHT, ENGINE_SELENIUM)
DEFAULT_ENGINE = ENGINE_SELENIUM

BROWSER_CHROME = "chrome"
BROWSER_FIREFOX = "firefox"
BROWSER_SAFARI = "safari"
BROWSERS = (BROWSER_CHROME, BROWSER_FIREFOX, BROWSER_SAFARI)
DEFAULT_BROWSER = BROWSER_CHROME

CONFIG_PROD = "prod"
CONFIG_CANARY = "canary"
CONFIG_VARIANTS = (CONFIG_PROD, CONFIG_CANARY)
DEFAULT_CONFIG = CONFIG_PROD

REPORTER_CI = "ci"
REPORTER_NAMES = "names"

ENV_CONFIG_FILE = "E2E_CONFIG_FILE"
ENV_STATUS_URL = "E2E_STATUS_URL"
ENV_CI_MARKERS = ("CI", "TRAVIS")

WATCH_COOLDOWN_SECONDS = 1.0
SERVER_READY_TIMEOUT_SECONDS = 10.0
