"""
Static checks for scenarios, without a browser.

The runner only discovers a bad step when it gets to it. These helpers
walk a whole scenario up front and report every problem at once, which
is what the ``validate`` command prints.
"""

from typing import Any, Dict, List, Mapping, Sequence, Tuple

from e2ekit.runner.errors import StepValidationError, UnsupportedStepError
from e2ekit.runner.steps import STEP_ACTIONS, parse_step


def validate_steps(steps: Any) -> Tuple[bool, List[str]]:
    """
    Validate a scenario's step list.

    :return: ``(is_valid, errors)``, one message per problem found
    """
    errors: List[str] = []

    if not isinstance(steps, list):
        return False, ["steps must be a list"]
    if len(steps) == 0:
        return False, ["steps must contain at least one step"]

    for i, step in enumerate(steps, start=1):
        try:
            parse_step(step)
        except UnsupportedStepError as e:
            errors.append(f"Step {i}: {e} (supported: {', '.join(STEP_ACTIONS)})")
        except StepValidationError as e:
            errors.append(f"Step {i}: {e}")

    return len(errors) == 0, errors


def validate_scenarios(scenarios: Mapping[str, Sequence[Any]]) -> Dict[str, List[str]]:
    """Validate every named scenario; only scenarios with problems are returned."""
    report: Dict[str, List[str]] = {}
    for name, steps in scenarios.items():
        ok, errors = validate_steps(steps)
        if not ok:
            report[name] = errors
    return report
