"""
Browser session setup shared by the CLI and the pytest fixtures.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from playwright.sync_api import Browser, Page, Playwright, sync_playwright

from e2ekit.core.config import Settings, get_settings

DEFAULT_VIEWPORT = {"width": 1440, "height": 900}


def context_options(settings: Settings, base_url: Optional[str] = None) -> Dict[str, Any]:
    # base_url lets ``page.goto("/login")`` resolve without the harness joining it
    return {
        "viewport": DEFAULT_VIEWPORT,
        "base_url": base_url or settings.E2E_BASE_URL,
    }


def launch_browser(p: Playwright, settings: Settings) -> Browser:
    return p.chromium.launch(headless=settings.PLAYWRIGHT_HEADLESS)


@contextmanager
def open_browser_page(settings: Optional[Settings] = None, base_url: Optional[str] = None) -> Iterator[Page]:
    """Launch Chromium, open one context and page, and tear it all down afterwards."""
    settings = settings or get_settings()
    with sync_playwright() as p:
        browser = launch_browser(p, settings)
        context = browser.new_context(**context_options(settings, base_url))
        try:
            yield context.new_page()
        finally:
            context.close()
            browser.close()
