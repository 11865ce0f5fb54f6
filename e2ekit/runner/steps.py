"""
The closed vocabulary of scenario steps.

A scenario in ``web.config.json`` is a list of objects, each with an
``action`` discriminator and the fields that action needs. Steps are
kept as raw dicts in the config and parsed one at a time when the
runner reaches them, so an unknown action only fails once execution
gets that far.

Example::

    {"action": "goto", "target": "/"}
    {"action": "fill-form", "fields": {"#email": "qa@example.com", "#pw": "x"}}
    {"action": "expect-text", "target": "h1", "value": {"pattern": "welcome", "flags": "i"}}
    {"action": "wait-for-requests", "url": "/api/items", "atLeast": 3, "status": [200, 204]}
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from e2ekit.core.patterns import as_pattern, coerce_text_match
from e2ekit.runner.errors import StepValidationError, UnsupportedStepError

WaitUntil = Literal["load", "domcontentloaded", "networkidle", "commit"]
TextMatchField = Annotated[Any, BeforeValidator(coerce_text_match)]


class StepBase(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    label: Optional[str] = None

    @property
    def display_label(self) -> str:
        return self.label or self.action  # type: ignore[attr-defined]


class GotoStep(StepBase):
    action: Literal["goto"]
    target: str
    wait_until: WaitUntil = "networkidle"


class ClickStep(StepBase):
    action: Literal["click"]
    target: str


class FillStep(StepBase):
    action: Literal["fill"]
    target: str
    value: str


class FillFormStep(StepBase):
    action: Literal["fill-form"]
    form_fields: Dict[str, str] = Field(alias="fields")


class ExpectVisibleStep(StepBase):
    action: Literal["expect-visible"]
    target: str


class ExpectTextStep(StepBase):
    action: Literal["expect-text"]
    target: str
    value: TextMatchField
    as_regex: bool = False

    @model_validator(mode="after")
    def _regex_compiles(self) -> ExpectTextStep:
        if self.as_regex:
            as_pattern(self.value)
        return self


class ExpectUrlContainsStep(StepBase):
    action: Literal["expect-url-contains"]
    value: TextMatchField


class ExpectAttributeStep(StepBase):
    action: Literal["expect-attribute"]
    target: str
    name: str
    # bare strings are regular expressions here, not exact values
    value: TextMatchField

    @model_validator(mode="after")
    def _regex_compiles(self) -> ExpectAttributeStep:
        as_pattern(self.value)
        return self


class ExpectCountStep(StepBase):
    action: Literal["expect-count"]
    target: str
    count: int = Field(ge=0)


class UploadFileStep(StepBase):
    action: Literal["upload-file"]
    target: str
    files: Union[str, List[str]]


class WaitForResponseStep(StepBase):
    action: Literal["wait-for-response"]
    url: TextMatchField
    status: Union[int, List[int]] = 200


class WaitForRequestsStep(StepBase):
    action: Literal["wait-for-requests"]
    url: TextMatchField
    status: Optional[Union[int, List[int]]] = None
    at_least: int = Field(default=1, ge=1)
    timeout: Optional[float] = Field(default=None, gt=0)


class ExpectToastStep(StepBase):
    action: Literal["expect-toast"]
    target: str
    value: Optional[TextMatchField] = None

    @model_validator(mode="after")
    def _regex_compiles(self) -> ExpectToastStep:
        if self.value:
            as_pattern(self.value)
        return self


Step = Annotated[
    Union[
        GotoStep,
        ClickStep,
        FillStep,
        FillFormStep,
        ExpectVisibleStep,
        ExpectTextStep,
        ExpectUrlContainsStep,
        ExpectAttributeStep,
        ExpectCountStep,
        UploadFileStep,
        WaitForResponseStep,
        WaitForRequestsStep,
        ExpectToastStep,
    ],
    Field(discriminator="action"),
]

STEP_ACTIONS = (
    "goto",
    "click",
    "fill",
    "fill-form",
    "expect-visible",
    "expect-text",
    "expect-url-contains",
    "expect-attribute",
    "expect-count",
    "upload-file",
    "wait-for-response",
    "wait-for-requests",
    "expect-toast",
)

_step_adapter: TypeAdapter[Step] = TypeAdapter(Step)


def _summarize(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        # first loc element is the union tag
        loc = ".".join(str(p) for p in err["loc"][1:]) or "<step>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_step(raw: Union[StepBase, Mapping[str, Any]]) -> StepBase:
    """
    Turn a raw step record into its typed model.

    :raises UnsupportedStepError: If ``action`` is not part of the vocabulary
    :raises StepValidationError: If a known action is missing fields
    """
    if isinstance(raw, StepBase):
        return raw
    if not isinstance(raw, Mapping):
        raise StepValidationError(f"step must be an object, got {type(raw).__name__}")

    action = raw.get("action")
    if action not in STEP_ACTIONS:
        raise UnsupportedStepError(action)
    try:
        return _step_adapter.validate_python(dict(raw))
    except ValidationError as e:
        raise StepValidationError(f"{action}: {_summarize(e)}") from e


def expected_statuses(status: Union[int, List[int], None]) -> Optional[List[int]]:
    if status is None:
        return None
    if isinstance(status, list):
        return status
    return [status]
