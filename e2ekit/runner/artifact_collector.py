"""
Failure artifacts and step logs.

On failure the runner takes a full-page screenshot, attaches it to the
test report and (when a run directory is configured) writes it next to
``step_log.jsonl``. Collection is best effort: anything that goes wrong
here is logged and dropped so the original failure is what the test
reports.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional, Protocol

import allure
from loguru import logger
from playwright.sync_api import Page

from e2ekit.core.storage import artifact_path


class Reporter(Protocol):
    def attach(self, name: str, body: bytes, content_type: str) -> None: ...


class AllureReporter:
    """Attach artifacts to the current Allure test case."""

    _types = {
        "image/png": allure.attachment_type.PNG,
        "application/json": allure.attachment_type.JSON,
        "text/plain": allure.attachment_type.TEXT,
    }

    def attach(self, name: str, body: bytes, content_type: str) -> None:
        allure.attach(body, name=name, attachment_type=self._types.get(content_type, allure.attachment_type.PNG))


def capture_failure(
    page: Page,
    label: str,
    reporter: Optional[Reporter],
    run_dir: Optional[str] = None,
) -> Optional[str]:
    """
    Screenshot ``page`` and hand it to ``reporter`` as ``failure-<label>``.

    :return: Path of the saved screenshot when ``run_dir`` is set
    """
    if reporter is None and run_dir is None:
        return None
    name = f"failure-{label}"
    try:
        body = page.screenshot(full_page=True)
    except Exception as e:
        logger.debug("Failure screenshot for {} not captured: {}", label, e)
        return None

    saved: Optional[str] = None
    if run_dir:
        try:
            saved = artifact_path(run_dir, f"{name}.png")
            with open(saved, "wb") as f:
                f.write(body)
        except OSError as e:
            logger.debug("Could not write {}: {}", name, e)
            saved = None
    if reporter is not None:
        try:
            reporter.attach(name, body, "image/png")
        except Exception as e:
            logger.debug("Reporter rejected attachment {}: {}", name, e)
    return saved


def write_step_log(run_dir: Optional[str], entry: Dict[str, Any]) -> None:
    """Append one JSON line to ``<run_dir>/step_log.jsonl``."""
    if not run_dir:
        return
    try:
        with open(os.path.join(run_dir, "step_log.jsonl"), "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    except OSError as e:
        logger.debug("Step log not written: {}", e)
