"""
E2E test configuration.

These tests drive a real browser. When the configured browser has not been
downloaded (``playwright install``) they are skipped here instead of
aborting the run, so the unit tests can still be run on their own.
"""

from __future__ import annotations

import pytest

from browser_fixtures.configurations.harness_config import (
    BrowserNotInstalledError,
    HarnessConfig,
)


def _browser_available(harness_config):
    from playwright.sync_api import sync_playwright

    try:
        with sync_playwright() as playwright:
            harness_config.verify_installation(playwright)
    except BrowserNotInstalledError:
        return False
    return True


def pytest_collection_modifyitems(config, items):
    e2e_items = [item for item in items if "/e2e/" in item.nodeid.replace("\\", "/")]
    if not e2e_items:
        return

    harness_config = HarnessConfig.from_env()
    if _browser_available(harness_config):
        return

    skip = pytest.mark.skip(
        reason=f"{harness_config.browser_type_name} is not installed; run 'playwright install'"
    )
    for item in e2e_items:
        item.add_marker(skip)
