"""
Environment-driven configuration for browser test runs.

The configuration is resolved once per pytest process from environment
variables and never mutated afterwards:

    PRODUCT=firefox HEADLESS=false pytest tests/e2e

Recognised variables:
    - PRODUCT (or PUPPETEER_PRODUCT / BROWSER_PRODUCT): "firefox" selects
      Firefox, anything else runs against Chromium.
    - ALT_INSTALL: marks the browser install as non-standard.
    - HEADLESS: "true" (default) launches headless.
    - BINARY: launch the browser from this path instead of the managed download.
    - EXTRA_LAUNCH_OPTIONS: JSON object merged into the launch options.
    - DUMPIO: forward the browser's stdio.
    - COVERAGE: track which browser API methods the tests call.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import types
from typing import Any, Mapping

from browser_fixtures.configurations.configuration_constants import EnvVars, Products

logger = logging.getLogger(__name__)


class BrowserNotInstalledError(RuntimeError):
    """Raised when the managed browser binary has not been downloaded."""


def _parse_extra_launch_options(raw: str | None) -> dict:
    try:
        options = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        logger.warning(f"Error parsing {EnvVars.ExtraLaunchOptions}: {e}. Skipping.")
        return {}

    if not isinstance(options, dict):
        logger.warning(
            f"Error parsing {EnvVars.ExtraLaunchOptions}: expected a JSON object, "
            f"got {type(options).__name__}. Skipping."
        )
        return {}

    return options


def _resolve_product(environ: Mapping[str, str]) -> str:
    value = environ.get(EnvVars.Product)
    for fallback in EnvVars.ProductFallbacks:
        if value:
            break
        value = environ.get(fallback)

    if value and value.strip().lower() == Products.Firefox:
        return Products.Firefox
    return Products.Chromium


@dataclasses.dataclass(frozen=True)
class HarnessConfig:
    product: str = Products.Chromium
    headless: bool = True
    executable_path: str | None = None
    # Read-only view; left out of the hash since its values may be lists
    extra_launch_options: Mapping[str, Any] = dataclasses.field(
        default_factory=dict, hash=False
    )
    alternative_install: bool = False
    dumpio: bool = False
    coverage: bool = False

    def __post_init__(self):
        object.__setattr__(
            self,
            "extra_launch_options",
            types.MappingProxyType(dict(self.extra_launch_options)),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> HarnessConfig:
        if environ is None:
            environ = os.environ

        return cls(
            product=_resolve_product(environ),
            headless=(environ.get(EnvVars.Headless) or "true").strip().lower()
            == "true",
            executable_path=environ.get(EnvVars.Binary) or None,
            extra_launch_options=_parse_extra_launch_options(
                environ.get(EnvVars.ExtraLaunchOptions)
            ),
            alternative_install=bool(environ.get(EnvVars.AlternativeInstall)),
            dumpio=bool(environ.get(EnvVars.DumpIO)),
            coverage=bool(environ.get(EnvVars.Coverage)),
        )

    @property
    def is_firefox(self) -> bool:
        return self.product == Products.Firefox

    @property
    def is_chrome(self) -> bool:
        return self.product == Products.Chromium

    @property
    def regular_install(self) -> bool:
        return not self.alternative_install and self.executable_path is None

    @property
    def product_suffix(self) -> str:
        return self.product.lower()

    @property
    def browser_type_name(self) -> str:
        """Name of the Playwright browser type attribute for this product."""
        return "firefox" if self.is_firefox else "chromium"

    def default_launch_options(self) -> dict[str, Any]:
        options = {
            "handle_sigint": False,
            "executable_path": self.executable_path,
            "slow_mo": 0,
            "headless": self.headless,
        }
        if self.dumpio:
            options["env"] = {**os.environ, "DEBUG": "pw:browser*"}
        return options

    def launch_options(self) -> dict[str, Any]:
        """Default launch options with EXTRA_LAUNCH_OPTIONS merged over them."""
        return {**self.default_launch_options(), **self.extra_launch_options}

    def browser_type(self, playwright):
        return getattr(playwright, self.browser_type_name)

    def verify_installation(self, playwright) -> str:
        """
        Check that the browser binary the tests will launch exists.

        Returns the executable path. A BINARY override is trusted as-is;
        otherwise the managed download location must contain the binary.
        """
        if self.executable_path:
            logger.warning(
                f"WARN: running {self.product} tests with {self.executable_path}"
            )
            return self.executable_path

        executable_path = self.browser_type(playwright).executable_path
        if not executable_path or not os.path.exists(executable_path):
            raise BrowserNotInstalledError(
                f"Browser is not downloaded at {executable_path}. "
                f"Run 'playwright install {self.browser_type_name}' "
                f"and try to re-run tests"
            )
        return executable_path

    def describe(self, binary: str | None = None) -> str:
        binary = self.executable_path or binary
        if binary and os.path.isabs(binary):
            try:
                binary = os.path.relpath(binary, os.getcwd())
            except ValueError:
                pass
        return (
            "Running unit tests with:\n"
            f"  -> product: {self.product}\n"
            f"  -> binary: {binary or '<managed download>'}"
        )
