"""
Shared pytest fixtures for browser_fixtures tests.

The plugin itself (browser_fixtures.plugin) is enabled from the root
conftest.py, so every test here already runs against the session's
fixture servers on ports 8907/8908.

Provides:
- assets_dir: The bundled asset directory served by the fixture servers
- spare_port: A free port for tests that start their own servers
- make_config: Build a HarnessConfig from an explicit environment dict
"""

from __future__ import annotations

import pytest

from browser_fixtures.configurations.harness_config import HarnessConfig
from browser_fixtures.plugin import DEFAULT_ASSETS_DIR
from tests.fixtures.http_helpers import is_port_free


@pytest.fixture(scope="session")
def assets_dir():
    return DEFAULT_ASSETS_DIR


@pytest.fixture
def spare_port():
    """A port pair (port, port + 1) that is not used by the session servers."""
    for port in range(8920, 8990, 2):
        if is_port_free(port) and is_port_free(port + 1):
            return port
    pytest.skip("No free port pair available for a standalone fixture server")


@pytest.fixture
def make_config():
    def _make(**environ):
        return HarnessConfig.from_env(environ)

    return _make
