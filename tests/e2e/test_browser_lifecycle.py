"""
Browser tests for the suite-scoped browser hook on its own.

No per-test context is created; tests open their own when they need one.
"""

from __future__ import annotations

import pytest

pytestmark = [pytest.mark.usefixtures("browser_hooks"), pytest.mark.timeout(60)]

_browsers = []


def test_browser_is_launched(test_state):
    assert test_state.browser is not None
    assert test_state.browser.is_connected()
    assert test_state.context is None
    assert test_state.page is None
    _browsers.append(test_state.browser)


def test_browser_is_shared_within_module(test_state):
    assert _browsers == [test_state.browser]


def test_incognito_contexts_do_not_share_cookies(test_state):
    browser = test_state.browser
    first = browser.new_context()
    second = browser.new_context()
    try:
        page = first.new_page()
        page.goto(test_state.server.empty_page)
        page.evaluate("() => { document.cookie = 'name=value'; }")

        other = second.new_page()
        other.goto(test_state.server.empty_page)
        assert other.evaluate("() => document.cookie") == ""
    finally:
        first.close()
        second.close()


def test_https_server_with_ignored_certificate_errors(test_state):
    context = test_state.browser.new_context(ignore_https_errors=True)
    try:
        page = context.new_page()
        response = page.goto(test_state.https_server.empty_page)
        assert response.status == 200
    finally:
        context.close()
