"""
Browser API coverage tracking.

When COVERAGE is set, the public methods of the Playwright Browser,
BrowserContext and Page classes are wrapped so that every call made by the
test suite is counted. Methods that were never called are reported at the
end of the run.
"""

from __future__ import annotations

import collections
import functools
import inspect
import logging

logger = logging.getLogger(__name__)


def _default_classes() -> list[type]:
    from playwright.sync_api import Browser, BrowserContext, Page

    return [Browser, BrowserContext, Page]


class ApiCoverage:
    def __init__(self, classes: list[type] | None = None):
        self.classes = classes if classes is not None else _default_classes()
        self.calls: collections.Counter = collections.Counter()
        self._originals: list[tuple[type, str, object]] = []

    @property
    def active(self) -> bool:
        return bool(self._originals)

    def _wrap(self, name: str, method):
        @functools.wraps(method)
        def wrapper(*args, **kwargs):
            self.calls[name] += 1
            return method(*args, **kwargs)

        return wrapper

    def tracked_methods(self) -> list[str]:
        names = []
        for cls in self.classes:
            for attr, value in vars(cls).items():
                if attr.startswith("_") or not inspect.isfunction(value):
                    continue
                names.append(f"{cls.__name__}.{attr}")
        return sorted(names)

    def activate(self):
        if self.active:
            return
        for cls in self.classes:
            for attr, value in list(vars(cls).items()):
                if attr.startswith("_") or not inspect.isfunction(value):
                    continue
                self._originals.append((cls, attr, value))
                setattr(cls, attr, self._wrap(f"{cls.__name__}.{attr}", value))
        logger.info(f"Tracking coverage of {len(self._originals)} browser API methods")

    def deactivate(self):
        for cls, attr, value in self._originals:
            setattr(cls, attr, value)
        self._originals = []

    def uncovered(self) -> list[str]:
        return [name for name in self.tracked_methods() if not self.calls[name]]

    def report(self) -> str:
        tracked = self.tracked_methods()
        missing = self.uncovered()
        lines = [f"Browser API coverage: {len(tracked) - len(missing)}/{len(tracked)} methods called"]
        lines.extend(f"  uncovered: {name}" for name in missing)
        return "\n".join(lines)
