"""
Shared state for a browser test session.

A single TestState is built when the session starts and handed to tests
through the ``test_state`` fixture. It is only mutated by the lifecycle
methods below, which the pytest plugin calls in a fixed order:

    start_servers -> [launch_browser] -> (reset_servers -> [open_page] -> test
    -> [close_page])* -> [close_browser] -> stop_servers
"""

from __future__ import annotations

import dataclasses
import logging
import os

from browser_fixtures.configurations.configuration_constants import ServerDefaults
from browser_fixtures.configurations.harness_config import HarnessConfig
from browser_fixtures.server.fixture_server import FixtureServer, start_fixture_servers

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class TestState:
    __test__ = False

    config: HarnessConfig
    package_path: str = os.path.dirname(os.path.abspath(__file__))
    playwright: object = None
    server: FixtureServer | None = None
    https_server: FixtureServer | None = None
    browser: object = None
    context: object = None
    page: object = None

    @property
    def is_firefox(self) -> bool:
        return self.config.is_firefox

    @property
    def is_chrome(self) -> bool:
        return self.config.is_chrome

    @property
    def is_headless(self) -> bool:
        return self.config.headless

    @property
    def launch_options(self) -> dict:
        return self.config.launch_options()

    # ------------------------------------------------------------------
    # Servers: session scope
    # ------------------------------------------------------------------

    def start_servers(
        self,
        assets_dir: str,
        cache_dir: str | None = None,
        port: int = ServerDefaults.Port,
        cert: str | None = None,
        key: str | None = None,
    ):
        self.server, self.https_server = start_fixture_servers(
            assets_dir, cache_dir, port=port, cert=cert, key=key
        )

    def reset_servers(self):
        self.server.reset()
        self.https_server.reset()

    def stop_servers(self):
        try:
            if self.server is not None:
                self.server.stop()
        finally:
            self.server = None
            https_server, self.https_server = self.https_server, None
            if https_server is not None:
                https_server.stop()

    # ------------------------------------------------------------------
    # Browser: suite scope, opt-in
    # ------------------------------------------------------------------

    def launch_browser(self, playwright):
        self.playwright = playwright
        browser_type = self.config.browser_type(playwright)
        self.browser = browser_type.launch(**self.config.launch_options())
        logger.info(f"Launched {self.config.product} {self.browser.version}")
        return self.browser

    def close_browser(self):
        if self.browser is None:
            return
        try:
            self.browser.close()
        finally:
            self.browser = None

    # ------------------------------------------------------------------
    # Context and page: test scope, opt-in
    # ------------------------------------------------------------------

    def open_page(self):
        if self.browser is None:
            raise RuntimeError("open_page() requires a launched browser")
        self.context = self.browser.new_context()
        self.page = self.context.new_page()
        return self.page

    def close_page(self):
        """Close the per-test context. Failures are logged, never raised."""
        context = self.context
        self.context = None
        self.page = None
        if context is None:
            return
        try:
            context.close()
        except Exception:
            logger.exception("Failed to close browser context during teardown")
