"""
Config-driven browser journeys on top of Playwright.

``WebAutomation`` wraps a Playwright ``Page`` with a small set of
primitives (navigate, click, fill, a handful of assertions, network
waits). Each primitive is bounded by the configured default timeout and
captures a failure screenshot before re-raising. ``run_scenario``
interprets a list of step records from ``web.config.json`` by
dispatching each one to the matching primitive.

Typical pytest usage::

    def test_smoke(page):
        suite = web_suite()
        suite.run_scenario(page, "smoke-home")
"""

from __future__ import annotations

import re
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union
from urllib.parse import urljoin

from loguru import logger
from playwright.sync_api import Locator, Page, Response
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import expect
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from e2ekit.core.config import Settings, get_settings
from e2ekit.core.merge import deep_merge, load_override_file
from e2ekit.core.patterns import TextMatch, as_pattern, contains_pattern, describe, matches
from e2ekit.runner.artifact_collector import AllureReporter, Reporter, capture_failure, write_step_log
from e2ekit.runner.errors import ConfigError, MissingScenarioError, UnsupportedStepError
from e2ekit.runner.steps import (
    ClickStep,
    ExpectAttributeStep,
    ExpectCountStep,
    ExpectTextStep,
    ExpectToastStep,
    ExpectUrlContainsStep,
    ExpectVisibleStep,
    FillFormStep,
    FillStep,
    GotoStep,
    StepBase,
    UploadFileStep,
    WaitForRequestsStep,
    WaitForResponseStep,
    WaitUntil,
    expected_statuses,
    parse_step,
)

WEB_CONFIG_FILE = "web.config.json"

# Lower bound for a single wait inside ``wait_for_requests``.
MIN_RESPONSE_SLICE_MS = 500

_FULL_URL = re.compile(r"^https?://", re.IGNORECASE)


class WebConfig(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    base_url: str
    default_timeout: float = Field(default=30_000, gt=0)
    screenshot_on_failure: bool = True
    scenarios: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)


def default_web_config(settings: Settings) -> Dict[str, Any]:
    return {
        "baseUrl": settings.E2E_BASE_URL,
        "defaultTimeout": 30_000,
        "screenshotOnFailure": True,
        "scenarios": {},
    }


def load_web_config(directory: Optional[str] = None, settings: Optional[Settings] = None) -> WebConfig:
    """
    Resolve the web configuration: defaults, then ``web.config.json``.

    :raises ConfigError: If the override file is malformed or yields an invalid config
    """
    settings = settings or get_settings()
    override = load_override_file(WEB_CONFIG_FILE, directory or settings.E2E_CONFIG_DIR or None)
    merged = deep_merge(default_web_config(settings), override)
    try:
        return WebConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"{WEB_CONFIG_FILE}: {e}") from e


def is_full_url(target: str) -> bool:
    return bool(_FULL_URL.match(target))


class WebAutomation:
    """Primitive browser actions against one page, plus the scenario interpreter."""

    def __init__(
        self,
        page: Page,
        config: WebConfig,
        reporter: Optional[Reporter] = None,
        run_dir: Optional[str] = None,
    ) -> None:
        self.page = page
        self.config = config
        self.reporter = reporter
        self.run_dir = run_dir

    @property
    def timeout(self) -> float:
        return self.config.default_timeout

    def resolve(self, target: str) -> str:
        return target if is_full_url(target) else urljoin(self.config.base_url, target)

    def locator(self, selector: str) -> Locator:
        return self.page.locator(selector)

    @contextmanager
    def run_with_artifacts(self, label: str) -> Iterator[None]:
        try:
            yield
        except Exception:
            if self.config.screenshot_on_failure:
                capture_failure(self.page, label, self.reporter, self.run_dir)
            raise

    # -- primitives ---------------------------------------------------------

    def goto(self, target: str, wait_until: WaitUntil = "networkidle", label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or f"goto-{target}"):
            self.page.goto(self.resolve(target), wait_until=wait_until, timeout=self.timeout)

    def click(self, target: str, label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or f"click-{target}"):
            self.locator(target).click(timeout=self.timeout)

    def fill(self, target: str, value: str, label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or f"fill-{target}"):
            self.locator(target).fill(value, timeout=self.timeout)

    def fill_form(self, fields: Mapping[str, str], label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or "fill-form"):
            for selector, value in fields.items():
                logger.debug("fill {}", selector)
                self.locator(selector).fill(value, timeout=self.timeout)

    def expect_visible(self, target: str, label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or f"expect-visible-{target}"):
            expect(self.locator(target)).to_be_visible(timeout=self.timeout)

    def expect_text(self, target: str, value: TextMatch, as_regex: bool = False, label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or f"expect-text-{target}"):
            expected = as_pattern(value) if as_regex else value
            expect(self.locator(target)).to_contain_text(expected, timeout=self.timeout)

    def expect_url_contains(self, value: TextMatch, label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or f"expect-url-{describe(value)}"):
            expect(self.page).to_have_url(contains_pattern(value), timeout=self.timeout)

    def expect_attribute(self, target: str, name: str, value: TextMatch, label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or f"expect-attr-{name}-{target}"):
            expect(self.locator(target)).to_have_attribute(name, as_pattern(value), timeout=self.timeout)

    def expect_count(self, target: str, count: int, label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or f"expect-count-{target}"):
            expect(self.locator(target)).to_have_count(count, timeout=self.timeout)

    def upload_file(self, target: str, files: Union[str, Sequence[str]], label: Optional[str] = None) -> None:
        paths = [files] if isinstance(files, str) else list(files)
        resolved = [p if Path(p).is_absolute() else str(Path.cwd() / p) for p in paths]
        with self.run_with_artifacts(label or f"upload-{target}"):
            self.locator(target).set_input_files(resolved, timeout=self.timeout)

    def _next_response(self, url: TextMatch, timeout: float) -> Response:
        return self.page.wait_for_event("response", predicate=lambda r: matches(url, r.url), timeout=timeout)

    def wait_for_response(
        self,
        url: TextMatch,
        status: Union[int, List[int]] = 200,
        label: Optional[str] = None,
    ) -> Response:
        statuses = expected_statuses(status)
        with self.run_with_artifacts(label or f"wait-response-{describe(url)}"):
            response = self._next_response(url, self.timeout)
            if response.status not in statuses:
                raise AssertionError(
                    f"response {response.url} returned {response.status}, expected one of {statuses}"
                )
        return response

    def wait_for_requests(
        self,
        url: TextMatch,
        status: Union[int, List[int], None] = None,
        at_least: int = 1,
        timeout: Optional[float] = None,
        label: Optional[str] = None,
    ) -> List[int]:
        """
        Wait until ``at_least`` responses matching ``url`` have been seen.

        Each wait gets ``timeout / at_least`` (at least 500ms). A slow early
        response therefore eats into the budget of the later ones, and the
        loop stops once the overall timeout has elapsed.

        :return: Observed status codes, in arrival order
        """
        statuses = expected_statuses(status)
        timeout = timeout or self.timeout
        slice_ms = max(MIN_RESPONSE_SLICE_MS, timeout / at_least)
        seen: List[int] = []

        with self.run_with_artifacts(label or f"wait-requests-{describe(url)}"):
            started = time.monotonic()
            while (time.monotonic() - started) * 1000 < timeout:
                try:
                    response = self._next_response(url, slice_ms)
                except PlaywrightTimeoutError:
                    break
                seen.append(response.status)
                if statuses is not None and response.status not in statuses:
                    raise AssertionError(
                        f"response {response.url} returned {response.status}, expected one of {statuses}"
                    )
                if len(seen) >= at_least:
                    break
            if len(seen) < at_least:
                raise AssertionError(
                    f"expected at least {at_least} responses matching {describe(url)} "
                    f"within {timeout:.0f}ms, saw {len(seen)}"
                )
        return seen

    def expect_toast(self, target: str, value: Optional[TextMatch] = None, label: Optional[str] = None) -> None:
        with self.run_with_artifacts(label or f"expect-toast-{target}"):
            toast = self.locator(target)
            expect(toast).to_be_visible(timeout=self.timeout)
            if value:
                expect(toast).to_contain_text(as_pattern(value), timeout=self.timeout)

    # -- scenarios ----------------------------------------------------------

    def run_step(self, step: StepBase) -> None:
        label = step.label
        if isinstance(step, GotoStep):
            self.goto(step.target, step.wait_until, label=label)
        elif isinstance(step, ClickStep):
            self.click(step.target, label=label)
        elif isinstance(step, FillStep):
            self.fill(step.target, step.value, label=label)
        elif isinstance(step, FillFormStep):
            self.fill_form(step.form_fields, label=step.display_label)
        elif isinstance(step, ExpectVisibleStep):
            self.expect_visible(step.target, label=label)
        elif isinstance(step, ExpectTextStep):
            self.expect_text(step.target, step.value, step.as_regex, label=label)
        elif isinstance(step, ExpectUrlContainsStep):
            self.expect_url_contains(step.value, label=label)
        elif isinstance(step, ExpectAttributeStep):
            self.expect_attribute(step.target, step.name, step.value, label=label)
        elif isinstance(step, ExpectCountStep):
            self.expect_count(step.target, step.count, label=label)
        elif isinstance(step, UploadFileStep):
            self.upload_file(step.target, step.files, label=label)
        elif isinstance(step, WaitForResponseStep):
            self.wait_for_response(step.url, step.status, label=label)
        elif isinstance(step, WaitForRequestsStep):
            self.wait_for_requests(step.url, step.status, step.at_least, step.timeout, label=label)
        elif isinstance(step, ExpectToastStep):
            self.expect_toast(step.target, step.value, label=label)
        else:
            raise UnsupportedStepError(getattr(step, "action", type(step).__name__))

    def run_scenario(self, steps: Sequence[Union[StepBase, Mapping[str, Any]]]) -> None:
        """
        Execute ``steps`` in order. The first failure aborts the scenario.

        :raises UnsupportedStepError: On an action outside the vocabulary
        :raises StepValidationError: On a known action with bad fields
        """
        total = len(steps)
        for i, raw in enumerate(steps, start=1):
            step = parse_step(raw)
            label = step.display_label
            logger.info("step {}/{}: {}", i, total, label)
            started = time.monotonic()
            status = "FAILED"
            try:
                self.run_step(step)
                status = "PASSED"
            finally:
                write_step_log(
                    self.run_dir,
                    {
                        "i": i,
                        "action": step.action,  # type: ignore[attr-defined]
                        "label": label,
                        "status": status,
                        "duration_ms": int((time.monotonic() - started) * 1000),
                    },
                )


class WebSuite:
    """Resolved web config plus helpers to build automations and run named scenarios."""

    def __init__(self, config: WebConfig, reporter: Optional[Reporter] = None, run_dir: Optional[str] = None) -> None:
        self.config = config
        self.reporter = reporter
        self.run_dir = run_dir

    def scenario_names(self) -> List[str]:
        return sorted(self.config.scenarios)

    def has_scenario(self, name: str) -> bool:
        return bool(self.config.scenarios.get(name))

    def create(self, page: Page) -> WebAutomation:
        return WebAutomation(page, self.config, self.reporter, self.run_dir)

    def run_scenario(self, page: Page, name: str) -> None:
        steps = self.config.scenarios.get(name)
        if not steps:
            raise MissingScenarioError(name, WEB_CONFIG_FILE)
        logger.info("Running scenario {} ({} steps)", name, len(steps))
        self.create(page).run_scenario(steps)


def web_suite(
    reporter: Optional[Reporter] = None,
    directory: Optional[str] = None,
    run_dir: Optional[str] = None,
) -> WebSuite:
    """Load ``web.config.json`` once and report failures to Allure unless told otherwise."""
    return WebSuite(load_web_config(directory), reporter or AllureReporter(), run_dir)
