"""
Shared pytest configuration.

Command-line options:

``--scenario``  name of a scenario in ``web.config.json`` for the
                config-driven journey in ``tests/e2e``.
``--e2e``       enable tests marked ``e2e``; they need the application
                at ``E2E_BASE_URL`` to be running.

Most tests run without a browser against the in-memory ``FakePage``
defined here. ``fake_expect`` swaps Playwright's ``expect`` for a
version that evaluates assertions against the fake page state.
"""

import re
from collections import deque
from contextlib import contextmanager

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from e2ekit.core.config import get_settings
from e2ekit.runner.browser import context_options, launch_browser


def pytest_addoption(parser):
    """Hook to add custom command-line options to pytest."""
    parser.addoption("--scenario", action="store", default=None)
    parser.addoption("--e2e", action="store_true", default=False)


def pytest_collection_modifyitems(config, items):
    if config.getoption("--e2e"):
        return
    skip = pytest.mark.skip(reason="needs a live application; pass --e2e to run")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(scope="session")
def scenario_name(pytestconfig):
    """Scenario selected with ``--scenario`` (defaults to ``smoke-home``)."""
    return pytestconfig.getoption("--scenario") or "smoke-home"


# -- real browser --------------------------------------------------------------


@pytest.fixture(scope="session")
def playwright_instance():
    with sync_playwright() as p:
        yield p


@pytest.fixture(scope="session")
def browser(playwright_instance):
    try:
        browser = launch_browser(playwright_instance, get_settings())
    except PlaywrightError as e:
        pytest.skip(f"Chromium is not installed: {e}")
    yield browser
    browser.close()


@pytest.fixture
def page(browser):
    context = browser.new_context(**context_options(get_settings()))
    page = context.new_page()
    yield page
    context.close()


# -- fakes ---------------------------------------------------------------------


class FakeResponse:
    def __init__(self, url, status=200):
        self.url = url
        self.status = status


class FakeLocator:
    def __init__(self, page, selector):
        self.page = page
        self.selector = selector

    @property
    def first(self):
        return self

    def _act(self, *record):
        self.page.calls.append(record)
        if self.selector in self.page.broken:
            raise PlaywrightTimeoutError(f"Timeout waiting for locator({self.selector!r})")
        hook = self.page.on_action.get((record[0], self.selector))
        if hook:
            hook(self.page)

    def click(self, timeout=None, **kwargs):
        self._act("click", self.selector)

    def fill(self, value, timeout=None, **kwargs):
        self._act("fill", self.selector, value)

    def set_input_files(self, files, timeout=None, **kwargs):
        self._act("set_input_files", self.selector, files)


class FakeContext:
    def __init__(self):
        self.cookie_jar = []

    def cookies(self):
        return [dict(c) for c in self.cookie_jar]


class _ResponseInfo:
    value = None


class FakePage:
    """
    Just enough of ``playwright.sync_api.Page`` for the runner.

    ``elements`` maps selector -> {"visible", "text", "attrs", "count"}.
    ``responses`` is the queue of network responses the page will see.
    """

    def __init__(self):
        self.url = "about:blank"
        self.calls = []
        self.elements = {}
        self.responses = deque()
        self.broken = set()
        self.on_action = {}
        self.context = FakeContext()
        self.local_storage = {}
        self.session_storage = {}
        self.screenshot_error = None
        self.wait_timeouts = []

    def add_element(self, selector, text="", visible=True, attrs=None, count=1):
        self.elements[selector] = {"text": text, "visible": visible, "attrs": attrs or {}, "count": count}

    def queue_response(self, url, status=200):
        self.responses.append(FakeResponse(url, status))

    def locator(self, selector):
        return FakeLocator(self, selector)

    def goto(self, url, wait_until=None, timeout=None, **kwargs):
        self.calls.append(("goto", url, wait_until, timeout))
        self.url = url

    def screenshot(self, full_page=False, **kwargs):
        self.calls.append(("screenshot", full_page))
        if self.screenshot_error:
            raise self.screenshot_error
        return b"\x89PNG-fake"

    def _next_response(self, predicate, timeout):
        self.wait_timeouts.append(timeout)
        while self.responses:
            response = self.responses.popleft()
            if predicate is None or predicate(response):
                return response
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded while waiting for event \"response\"")

    def wait_for_event(self, event, predicate=None, timeout=None):
        assert event == "response"
        return self._next_response(predicate, timeout)

    @contextmanager
    def expect_response(self, url_or_predicate, timeout=None):
        info = _ResponseInfo()
        yield info
        info.value = self._next_response(url_or_predicate, timeout)

    def evaluate(self, expression, arg=None):
        self.calls.append(("evaluate", tuple(arg or ())))
        keys = list(arg or [])
        return {
            "local": [k for k in keys if k in self.local_storage],
            "session": [k for k in keys if k in self.session_storage],
        }


def _text_matches(expected, actual, exact=False):
    if isinstance(expected, re.Pattern):
        return expected.search(actual or "") is not None
    return expected == actual if exact else expected in (actual or "")


class _FakeAssertions:
    def __init__(self, recorder, target):
        self.recorder = recorder
        self.target = target

    def _check(self, name, ok, *args):
        self.recorder.calls.append((name, getattr(self.target, "selector", "page"), args))
        if not ok:
            raise AssertionError(f"{name} failed for {getattr(self.target, 'selector', 'page')}: {args}")

    def _element(self):
        return self.target.page.elements.get(self.target.selector)

    def to_have_url(self, expected, timeout=None):
        self._check("to_have_url", _text_matches(expected, self.target.url, exact=True), expected)

    def not_to_have_url(self, expected, timeout=None):
        self._check("not_to_have_url", not _text_matches(expected, self.target.url, exact=True), expected)

    def to_be_visible(self, timeout=None):
        el = self._element()
        self._check("to_be_visible", bool(el and el["visible"]))

    def to_contain_text(self, expected, timeout=None):
        el = self._element()
        self._check("to_contain_text", bool(el) and _text_matches(expected, el["text"]), expected)

    def to_have_attribute(self, name, value, timeout=None):
        el = self._element()
        actual = el["attrs"].get(name) if el else None
        self._check("to_have_attribute", actual is not None and _text_matches(value, actual, exact=True), name, value)

    def to_have_count(self, count, timeout=None):
        el = self._element()
        self._check("to_have_count", (el["count"] if el else 0) == count, count)


class FakeExpect:
    def __init__(self):
        self.calls = []

    def __call__(self, target):
        return _FakeAssertions(self, target)


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def fake_expect(monkeypatch):
    from e2ekit.runner import auth, web

    recorder = FakeExpect()
    monkeypatch.setattr(web, "expect", recorder)
    monkeypatch.setattr(auth, "expect", recorder)
    return recorder


class RecordingReporter:
    def __init__(self):
        self.attachments = []

    def attach(self, name, body, content_type):
        self.attachments.append((name, body, content_type))


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Run in an empty directory with none of the E2E_* variables set."""
    for var in ("E2E_BASE_URL", "E2E_PROTECTED_PATH", "E2E_USER_EMAIL", "E2E_USER_PASSWORD", "E2E_CONFIG_DIR"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("ARTIFACT_ROOT", str(tmp_path / "artifacts"))
    monkeypatch.chdir(tmp_path)
    return tmp_path
