"""
Run a named scenario through pytest programmatically.

The CLI ``run`` command drives the browser directly. This entry point
goes through ``tests/e2e/test_web_smoke.py`` instead, so the run gets
the usual pytest reporting and an Allure results directory.
"""

from pathlib import Path
from typing import List, Optional

import pytest

SCENARIO_TEST = "tests/e2e/test_web_smoke.py::test_config_driven_scenario"


def run_scenario_pytest(scenario: str, allure_dir: Optional[Path] = None, extra_args: Optional[List[str]] = None) -> int:
    """
    Execute pytest for the given scenario name.

    :param scenario: Scenario name from ``web.config.json``
    :param allure_dir: Directory where Allure results should be stored
    :return: Exit code returned by pytest
    """
    args: List[str] = [SCENARIO_TEST, f"--scenario={scenario}", "--e2e", "-q"]
    if allure_dir is not None:
        args.append(f"--alluredir={allure_dir}")
    args.extend(extra_args or [])
    return int(pytest.main(args))
