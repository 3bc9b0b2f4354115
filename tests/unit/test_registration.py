"""Unit tests for conditional test registration helpers."""

from __future__ import annotations

import datetime
from unittest.mock import MagicMock

import pytest

from browser_fixtures import plugin
from browser_fixtures.configurations.harness_config import HarnessConfig
from browser_fixtures.registration import DESELECT_MARKER, Registrar, registrar_from_env

CHROMIUM = HarnessConfig()
FIREFOX = HarnessConfig(product="firefox")
NOW = datetime.datetime(2026, 6, 1, 12, 0)


def _marks(obj):
    return [mark.name for mark in getattr(obj, "pytestmark", [])]


def _fresh_body():
    def test_something():
        pass

    return test_something


def test_fails_firefox():
    assert _marks(Registrar(CHROMIUM).fails_firefox(_fresh_body())) == []
    assert _marks(Registrar(FIREFOX).fails_firefox(_fresh_body())) == ["skip"]


def test_chrome_only():
    assert _marks(Registrar(CHROMIUM).chrome_only(_fresh_body())) == []
    assert _marks(Registrar(FIREFOX).chrome_only(_fresh_body())) == ["skip"]


@pytest.mark.parametrize(
    "config,active",
    [
        (HarnessConfig(), True),
        (HarnessConfig(alternative_install=True), False),
        (HarnessConfig(executable_path="/usr/bin/chromium"), False),
    ],
)
def test_only_regular_install(config, active):
    marks = _marks(Registrar(config).only_regular_install(_fresh_body()))
    assert (marks == []) is active


def test_skip_reason_is_recorded():
    test = Registrar(FIREFOX).fails_firefox(_fresh_body())
    assert test.pytestmark[0].kwargs["reason"] == "fails on Firefox"


def test_decorated_function_is_returned_unchanged():
    body = _fresh_body()
    assert Registrar(CHROMIUM).fails_firefox(body) is body


# ---------------------------------------------------------------------------
# Date-gated skip
# ---------------------------------------------------------------------------


def test_windows_deferral_past_cutoff_is_active():
    registrar = Registrar(CHROMIUM, platform="win32", clock=lambda: NOW)
    test = registrar.fails_windows_until(datetime.datetime(2026, 1, 1))(_fresh_body())

    assert _marks(test) == []


def test_windows_deferral_future_cutoff_is_skipped():
    registrar = Registrar(CHROMIUM, platform="win32", clock=lambda: NOW)
    test = registrar.fails_windows_until(datetime.datetime(2027, 1, 1))(_fresh_body())

    assert _marks(test) == ["skip"]


def test_windows_deferral_ignores_other_platforms():
    registrar = Registrar(CHROMIUM, platform="linux", clock=lambda: NOW)
    test = registrar.fails_windows_until(datetime.datetime(2027, 1, 1))(_fresh_body())

    assert _marks(test) == []


def test_windows_deferral_accepts_plain_dates():
    registrar = Registrar(CHROMIUM, platform="win32", clock=lambda: NOW)

    assert registrar.within_windows_deferral(datetime.date(2026, 6, 2))
    assert not registrar.within_windows_deferral(datetime.date(2026, 6, 1))


def test_windows_deferral_is_evaluated_at_registration():
    now = [NOW]
    registrar = Registrar(CHROMIUM, platform="win32", clock=lambda: now[0])
    decorator = registrar.fails_windows_until(datetime.datetime(2026, 7, 1))

    now[0] = datetime.datetime(2026, 8, 1)

    assert _marks(decorator(_fresh_body())) == ["skip"]


# ---------------------------------------------------------------------------
# Suite-level helpers
# ---------------------------------------------------------------------------


def test_describe_fails_firefox_marks_class():
    class TestSuite:
        def test_a(self):
            pass

    assert _marks(Registrar(FIREFOX).describe_fails_firefox(TestSuite)) == ["skip"]


def test_describe_chrome_only_deselects_instead_of_skipping():
    class TestSuite:
        def test_a(self):
            pass

    assert _marks(Registrar(FIREFOX).describe_chrome_only(TestSuite)) == [DESELECT_MARKER]


def test_describe_chrome_only_leaves_chromium_suites_alone():
    class TestSuite:
        def test_a(self):
            pass

    assert _marks(Registrar(CHROMIUM).describe_chrome_only(TestSuite)) == []


def _item(deselected):
    item = MagicMock()
    item.get_closest_marker.side_effect = (
        lambda name: MagicMock() if deselected and name == DESELECT_MARKER else None
    )
    return item


def test_collection_drops_deselected_items():
    kept, dropped = _item(False), _item(True)
    items = [kept, dropped]
    config = MagicMock()

    plugin.pytest_collection_modifyitems(config, items)

    assert items == [kept]
    config.hook.pytest_deselected.assert_called_once_with(items=[dropped])


def test_collection_without_deselected_items_is_untouched():
    items = [_item(False), _item(False)]
    config = MagicMock()

    plugin.pytest_collection_modifyitems(config, list(items))

    config.hook.pytest_deselected.assert_not_called()


def test_registrar_from_env(monkeypatch):
    monkeypatch.setenv("PRODUCT", "firefox")
    assert registrar_from_env().config.is_firefox
