"""
Conditional test registration.

A Registrar is built from a resolved HarnessConfig and hands out decorators
that either leave a test active or mark it skipped. Conditions are evaluated
when the decorator is applied (at import/collection time), not when the
test runs.

    registrar = registrar_from_env()

    @registrar.fails_firefox
    def test_pdf_generation(test_state): ...

    @registrar.fails_windows_until(datetime.datetime(2026, 12, 1))
    def test_file_chooser(test_state): ...
"""

from __future__ import annotations

import datetime
import sys
from typing import Callable, TypeVar

import pytest

from browser_fixtures.configurations.harness_config import HarnessConfig

T = TypeVar("T")

DESELECT_MARKER = "deselect_unsupported_product"


def _as_datetime(value: datetime.date | datetime.datetime) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.combine(value, datetime.time.min)


class Registrar:
    def __init__(
        self,
        config: HarnessConfig,
        platform: str | None = None,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ):
        self.config = config
        self.platform = sys.platform if platform is None else platform
        self.clock = clock

    @staticmethod
    def _skip(obj: T, reason: str) -> T:
        return pytest.mark.skip(reason=reason)(obj)

    # Predicates

    def within_windows_deferral(self, until: datetime.date | datetime.datetime) -> bool:
        return self.platform == "win32" and self.clock() < _as_datetime(until)

    # Test-level helpers

    def fails_firefox(self, obj: T) -> T:
        if self.config.is_firefox:
            return self._skip(obj, "fails on Firefox")
        return obj

    def chrome_only(self, obj: T) -> T:
        if not self.config.is_chrome:
            return self._skip(obj, "Chromium only")
        return obj

    def only_regular_install(self, obj: T) -> T:
        if not self.config.regular_install:
            return self._skip(obj, "requires the regular managed browser install")
        return obj

    def fails_windows_until(
        self, until: datetime.date | datetime.datetime
    ) -> Callable[[T], T]:
        # Evaluated now, when the decorator is created
        deferred = self.within_windows_deferral(until)

        def decorator(obj: T) -> T:
            if deferred:
                return self._skip(obj, f"fails on Windows until {until}")
            return obj

        return decorator

    # Suite-level helpers, for classes or a module's ``pytestmark``

    def describe_fails_firefox(self, obj: T) -> T:
        return self.fails_firefox(obj)

    def describe_chrome_only(self, obj: T) -> T:
        """Drop the suite entirely on non-Chromium runs; it is not reported as skipped."""
        if not self.config.is_chrome:
            return getattr(pytest.mark, DESELECT_MARKER)(obj)
        return obj


def registrar_from_env() -> Registrar:
    return Registrar(HarnessConfig.from_env())
