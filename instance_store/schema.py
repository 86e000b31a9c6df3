"""
Instance Schema

Structural validation of submitted instance documents.

The validated model is the canonical value: unknown keys are dropped and
field order follows the declaration order below.
"""

from __future__ import annotations
from typing import Any, List

from pydantic import (
    BaseModel, ConfigDict, StrictBool, StrictStr, ValidationError,
    field_serializer, field_validator
)

from .contracts import Error, ErrorCode, Result


_EXPONENT_THRESHOLD = 1e21


def _sorted_keys(value: Any) -> Any:
    """
    Recursively sort object keys inside free-form values.

    Integral floats collapse to ints so `1.0` and `1` serialize alike. Past
    1e21 floats keep exponent notation.
    """
    if isinstance(value, float) and value.is_integer() and abs(value) < _EXPONENT_THRESHOLD:
        return int(value)
    if isinstance(value, dict):
        return {key: _sorted_keys(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [_sorted_keys(item) for item in value]
    return value


class ColumnFilter(BaseModel):
    """Per-column filter state. `value` is opaque JSON."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: StrictStr
    value: Any = None

    @field_serializer("value")
    def _stable_value(self, value: Any) -> Any:
        return _sorted_keys(value)


class InstanceDocument(BaseModel):
    """A saved table view."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    version: Any
    filter: StrictStr
    columns: List[ColumnFilter]
    pricingUnit: StrictStr
    costDuration: StrictStr
    region: StrictStr
    reservedTerm: StrictStr
    compareOn: StrictBool
    selected: List[StrictStr]
    visibleColumns: List[StrictStr]

    @field_validator("version")
    @classmethod
    def _version_is_one(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value != 1:
            raise ValueError("Version must be 1")
        return 1


def _format_issue(issue: dict) -> str:
    path = ".".join(str(part) for part in issue.get("loc", ()))
    message = issue.get("msg", "Invalid value")
    return f"{path}: {message}" if path else message


def validate(document: Any) -> Result:
    """
    Validate a decoded JSON value.

    Returns Result.success(InstanceDocument) or Result.failure(Error) whose
    reasons name the offending field of each issue.
    """
    try:
        instance = InstanceDocument.model_validate(document)
    except ValidationError as e:
        reasons = tuple(_format_issue(issue) for issue in e.errors())
        return Result.failure(Error.create(
            ErrorCode.SCHEMA_VIOLATION,
            "Schema violation",
            reasons
        ))
    return Result.success(instance)
