"""
Errors raised by the harness itself.

Assertion failures are not listed here: they surface as ``AssertionError``
or Playwright's ``TimeoutError`` and are re-raised untouched.
"""


class E2EKitError(Exception):
    """Base class for harness errors."""


class ConfigError(E2EKitError):
    """An override file is malformed or the merged config is invalid."""


class StepValidationError(E2EKitError):
    """A step with a known action is missing fields or has bad values."""


class UnsupportedStepError(E2EKitError):
    def __init__(self, action: object) -> None:
        self.action = action
        super().__init__(f"Unsupported step action: {action}")


class MissingScenarioError(E2EKitError):
    def __init__(self, name: str, source: str = "web.config.json") -> None:
        self.name = name
        super().__init__(f'Scenario "{name}" not found in {source}')
