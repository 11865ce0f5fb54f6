"""
Command line entry point.

Usage:
  python -m e2ekit list
  python -m e2ekit validate [scenario]
  python -m e2ekit run smoke-home
  python -m e2ekit run-file ./scenarios/checkout.yaml
  python -m e2ekit pytest smoke-home --alluredir ./allure-results
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import List, Optional

from loguru import logger
from playwright.sync_api import Error as PlaywrightError

from e2ekit.core.config import get_settings
from e2ekit.core.logging import configure_logging
from e2ekit.core.storage import get_run_dir, list_artifacts, new_run_id
from e2ekit.runner.browser import open_browser_page
from e2ekit.runner.errors import E2EKitError, MissingScenarioError
from e2ekit.runner.pytest_entry import run_scenario_pytest
from e2ekit.runner.scenario import load_scenario
from e2ekit.runner.scenario_validator import validate_scenarios, validate_steps
from e2ekit.runner.web import WebAutomation, WebSuite, load_web_config

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="e2ekit", description="Config-driven Playwright journeys")
    ap.add_argument("--config-dir", default=None, help="Directory holding web.config.json (default: cwd)")
    ap.add_argument("--log-level", default=None, help="Log level (default: E2E_LOG_LEVEL or INFO)")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List scenarios defined in web.config.json")

    p_validate = sub.add_parser("validate", help="Check scenarios without a browser")
    p_validate.add_argument("scenario", nargs="?", help="Only validate this scenario")

    p_run = sub.add_parser("run", help="Run a named scenario in a fresh browser")
    p_run.add_argument("scenario")

    p_file = sub.add_parser("run-file", help="Run a scenario from a JSON/YAML file")
    p_file.add_argument("path")

    p_pytest = sub.add_parser("pytest", help="Run a named scenario through pytest")
    p_pytest.add_argument("scenario")
    p_pytest.add_argument("--alluredir", default=None)
    return ap


def _cmd_list(config_dir: Optional[str]) -> int:
    config = load_web_config(config_dir)
    for name in sorted(config.scenarios):
        print(f"{name}\t{len(config.scenarios[name])} steps")
    return EXIT_OK


def _cmd_validate(config_dir: Optional[str], scenario: Optional[str]) -> int:
    config = load_web_config(config_dir)
    if scenario:
        if scenario not in config.scenarios:
            raise MissingScenarioError(scenario)
        ok, errors = validate_steps(config.scenarios[scenario])
        report = {} if ok else {scenario: errors}
    else:
        report = validate_scenarios(config.scenarios)

    for name, errors in report.items():
        for err in errors:
            logger.error("{}: {}", name, err)
    if report:
        return EXIT_CONFIG
    logger.info("{} scenario(s) OK", 1 if scenario else len(config.scenarios))
    return EXIT_OK


def _report_artifacts(run_dir: str) -> None:
    files = list_artifacts(run_dir)
    if files:
        logger.info("Artifacts in {}: {}", run_dir, ", ".join(files))


def _cmd_run(config_dir: Optional[str], name: str) -> int:
    config = load_web_config(config_dir)
    run_dir = get_run_dir(new_run_id(name))
    suite = WebSuite(config, reporter=None, run_dir=run_dir)
    try:
        with open_browser_page(base_url=config.base_url) as page:
            suite.run_scenario(page, name)
    finally:
        _report_artifacts(run_dir)
    logger.info("Scenario {} passed", name)
    return EXIT_OK


def _cmd_run_file(config_dir: Optional[str], path: str) -> int:
    scenario = load_scenario(path)
    config = load_web_config(config_dir)
    if scenario.base_url:
        config = config.model_copy(update={"base_url": scenario.base_url})
    run_dir = get_run_dir(new_run_id(scenario.name))
    try:
        with open_browser_page(base_url=config.base_url) as page:
            WebAutomation(page, config, reporter=None, run_dir=run_dir).run_scenario(scenario.steps)
    finally:
        _report_artifacts(run_dir)
    logger.info("Scenario {} passed", scenario.name)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level or get_settings().E2E_LOG_LEVEL)

    try:
        if args.command == "list":
            return _cmd_list(args.config_dir)
        if args.command == "validate":
            return _cmd_validate(args.config_dir, args.scenario)
        if args.command == "run":
            return _cmd_run(args.config_dir, args.scenario)
        if args.command == "run-file":
            return _cmd_run_file(args.config_dir, args.path)
        if args.command == "pytest":
            if args.config_dir:
                os.environ["E2E_CONFIG_DIR"] = args.config_dir
            allure_dir = Path(args.alluredir) if args.alluredir else None
            return run_scenario_pytest(args.scenario, allure_dir)
    except E2EKitError as e:
        logger.error("{}", e)
        return EXIT_CONFIG
    except (AssertionError, PlaywrightError) as e:
        logger.error("Scenario failed: {}", e)
        return EXIT_FAILED
    return EXIT_CONFIG


if __name__ == "__main__":
    raise SystemExit(main())
