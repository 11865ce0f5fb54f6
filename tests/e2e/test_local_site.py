"""
Real-browser checks against a throwaway static site.

The site is served from a temporary directory with ``http.server``; the
tests skip when Chromium is not installed (``playwright install chromium``).
"""

import threading
from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer

import pytest

from e2ekit.runner.web import WebAutomation, WebConfig

pytestmark = pytest.mark.browser

INDEX = """<!doctype html>
<html>
<head><title>Local site</title></head>
<body>
  <h1 id="title">Welcome back, Ada</h1>
  <ul>
    <li class="item">one</li>
    <li class="item">two</li>
    <li class="item">three</li>
  </ul>
  <a id="docs" href="/docs/intro">Docs</a>
  <form onsubmit="return false">
    <input id="a">
    <input id="b">
  </form>
  <button id="ping" onclick="setTimeout(() => fetch('/api/ping.json'), 100)">Ping</button>
  <script>
    window.__order = [];
    for (const id of ["a", "b"]) {
      document.getElementById(id).addEventListener("input", () => window.__order.push(id));
    }
  </script>
</body>
</html>
"""


class _QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format, *args):
        pass


@pytest.fixture(scope="module")
def local_site(tmp_path_factory):
    root = tmp_path_factory.mktemp("site")
    (root / "index.html").write_text(INDEX, encoding="utf-8")
    (root / "api").mkdir()
    (root / "api" / "ping.json").write_text('{"ok": true}', encoding="utf-8")

    server = ThreadingHTTPServer(("127.0.0.1", 0), partial(_QuietHandler, directory=str(root)))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def web(page, local_site, reporter):
    return WebAutomation(page, WebConfig(base_url=local_site, default_timeout=5000), reporter)


def test_goto_root_and_body_visible(web):
    web.run_scenario([{"action": "goto", "target": "/"}, {"action": "expect-visible", "target": "body"}])


def test_fill_form_order_in_browser(web, page):
    web.run_scenario(
        [
            {"action": "goto", "target": "/", "waitUntil": "load"},
            {"action": "fill-form", "fields": {"#a": "x", "#b": "y"}},
        ]
    )
    assert page.evaluate("window.__order") == ["a", "b"]
    assert page.input_value("#a") == "x"
    assert page.input_value("#b") == "y"


def test_assertions_in_browser(web, local_site):
    web.run_scenario(
        [
            {"action": "goto", "target": local_site + "/index.html"},
            {"action": "expect-text", "target": "#title", "value": {"pattern": "welcome back", "flags": "i"}},
            {"action": "expect-count", "target": "li.item", "count": 3},
            {"action": "expect-attribute", "target": "#docs", "name": "href", "value": "/docs/intro"},
            {"action": "expect-url-contains", "value": "/index.html"},
        ]
    )


def test_wait_for_response_in_browser(web):
    web.run_scenario(
        [
            {"action": "goto", "target": "/"},
            {"action": "click", "target": "#ping"},
            {"action": "wait-for-response", "url": "/api/ping.json", "status": 200},
        ]
    )


def test_failure_screenshot_is_attached(page, local_site, reporter):
    web = WebAutomation(page, WebConfig(base_url=local_site, default_timeout=1000), reporter)
    web.goto("/")
    with pytest.raises(AssertionError):
        web.expect_visible("#does-not-exist")
    name, body, content_type = reporter.attachments[0]
    assert name == "failure-expect-visible-#does-not-exist"
    assert body.startswith(b"\x89PNG")
    assert content_type == "image/png"
