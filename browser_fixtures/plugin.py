"""
pytest plugin wiring the browser test environment into the test lifecycle.

Enable it from a conftest.py:

    pytest_plugins = ["browser_fixtures.plugin"]

Provides:
- test_state: Session-scoped TestState with both fixture servers running
- browser_hooks: Module-scoped opt-in fixture that launches the browser
- page_hooks: Function-scoped opt-in fixture with a fresh context and page
- golden: Golden-file comparator for the configured product
- harness_config: The resolved HarnessConfig

Every test gets freshly reset fixture servers and has leftover
unittest.mock patches stopped after it finishes. Test modules opt into a
browser with:

    pytestmark = pytest.mark.usefixtures("page_hooks")
"""

from __future__ import annotations

import logging
import os
from unittest import mock

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from browser_fixtures.configurations.harness_config import (
    BrowserNotInstalledError,
    HarnessConfig,
)
from browser_fixtures.coverage import ApiCoverage
from browser_fixtures.golden import GoldenComparator
from browser_fixtures.registration import DESELECT_MARKER
from browser_fixtures.server.fixture_server import FixtureServerError
from browser_fixtures.session import TestState
from browser_fixtures.utils.logging_utils import setup_logger

logger = logging.getLogger(__name__)

DEFAULT_ASSETS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "assets")

harness_config_key = pytest.StashKey[HarnessConfig]()
golden_key = pytest.StashKey[GoldenComparator]()
coverage_key = pytest.StashKey[ApiCoverage]()


def pytest_addoption(parser):
    parser.addini(
        "fixture_assets_dir",
        "Directory served by the fixture servers (defaults to the bundled assets)",
        default="",
    )
    parser.addini(
        "golden_root",
        "Directory holding golden-<product> and output-<product> (relative to rootdir)",
        default="tests",
    )
    parser.addini("fixture_tls_cert", "Certificate file for the HTTPS fixture server", default="")
    parser.addini("fixture_tls_key", "Key file for the HTTPS fixture server", default="")
    parser.addini("harness_log_file", "Write browser_fixtures logs to this file", default="")


def _resolve_path(config, value: str) -> str:
    if os.path.isabs(value):
        return value
    return os.path.join(str(config.rootpath), value)


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        f"{DESELECT_MARKER}: drop the test from the run without reporting it as skipped",
    )

    log_file = config.getini("harness_log_file")
    if log_file:
        setup_logger("browser_fixtures", _resolve_path(config, log_file), level=logging.DEBUG)

    harness_config = HarnessConfig.from_env()
    config.stash[harness_config_key] = harness_config

    golden = GoldenComparator.for_product(
        _resolve_path(config, config.getini("golden_root")),
        harness_config.product_suffix,
    )
    golden.clear_output()
    config.stash[golden_key] = golden

    if harness_config.coverage:
        coverage = ApiCoverage()
        coverage.activate()
        config.stash[coverage_key] = coverage


def pytest_unconfigure(config):
    coverage = config.stash.get(coverage_key, None)
    if coverage is not None:
        coverage.deactivate()


def _resolve_binary(harness_config: HarnessConfig) -> str | None:
    if harness_config.executable_path:
        return harness_config.executable_path

    try:
        with sync_playwright() as playwright:
            return harness_config.browser_type(playwright).executable_path
    except PlaywrightError as e:
        logger.warning(f"Could not resolve the {harness_config.product} executable: {e}")
        return None


def pytest_report_header(config):
    harness_config = config.stash.get(harness_config_key, None)
    if harness_config is not None:
        return harness_config.describe(_resolve_binary(harness_config))


def pytest_collection_modifyitems(config, items):
    selected, deselected = [], []
    for item in items:
        if item.get_closest_marker(DESELECT_MARKER) is not None:
            deselected.append(item)
        else:
            selected.append(item)

    if deselected:
        config.hook.pytest_deselected(items=deselected)
        items[:] = selected


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    coverage = config.stash.get(coverage_key, None)
    if coverage is not None:
        terminalreporter.write_sep("-", "browser API coverage")
        terminalreporter.write_line(coverage.report())


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def harness_config(pytestconfig) -> HarnessConfig:
    return pytestconfig.stash[harness_config_key]


@pytest.fixture(scope="session")
def golden(pytestconfig) -> GoldenComparator:
    return pytestconfig.stash[golden_key]


@pytest.fixture(scope="session")
def test_state(pytestconfig, harness_config):
    """
    Start both fixture servers once for the session and expose the shared state.

    A port that cannot be bound aborts the whole run.
    """
    assets_dir = pytestconfig.getini("fixture_assets_dir")
    assets_dir = _resolve_path(pytestconfig, assets_dir) if assets_dir else DEFAULT_ASSETS_DIR

    state = TestState(config=harness_config)
    try:
        state.start_servers(
            assets_dir,
            cert=pytestconfig.getini("fixture_tls_cert") or None,
            key=pytestconfig.getini("fixture_tls_key") or None,
        )
    except FixtureServerError as e:
        pytest.exit(str(e), returncode=pytest.ExitCode.INTERNAL_ERROR)

    yield state

    state.stop_servers()


@pytest.fixture(autouse=True)
def _fixture_server_reset(test_state):
    """Give every test clean fixture servers and undo its leftover mock patches."""
    test_state.reset_servers()

    yield

    mock.patch.stopall()


@pytest.fixture(scope="module")
def browser_hooks(test_state, playwright):
    """
    Launch the configured browser once for the test module.

    The binary check runs here rather than at import time; a missing browser
    aborts the whole run.
    """
    try:
        executable_path = test_state.config.verify_installation(playwright)
    except BrowserNotInstalledError as e:
        pytest.exit(str(e), returncode=pytest.ExitCode.USAGE_ERROR)
    logger.debug(f"Launching browser from {executable_path}")

    browser = test_state.launch_browser(playwright)

    yield browser

    test_state.close_browser()


@pytest.fixture
def page_hooks(browser_hooks, test_state):
    """Fresh isolated browser context and page for each test."""
    page = test_state.open_page()

    yield page

    test_state.close_page()
