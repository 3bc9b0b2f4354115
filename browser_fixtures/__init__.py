from __future__ import annotations

from browser_fixtures.configurations.harness_config import (
    BrowserNotInstalledError,
    HarnessConfig,
)
from browser_fixtures.registration import Registrar, registrar_from_env
from browser_fixtures.server.fixture_server import (
    FixtureServer,
    FixtureServerError,
    ServerResetError,
    start_fixture_servers,
)
from browser_fixtures.session import TestState

__all__ = [
    "BrowserNotInstalledError",
    "FixtureServer",
    "FixtureServerError",
    "ServerResetError",
    "HarnessConfig",
    "Registrar",
    "TestState",
    "registrar_from_env",
    "start_fixture_servers",
]
