"""
Error taxonomy for the policy engine.

Every failure the core can report is a ``PolicyError`` subclass. Each kind
carries a stable integer ``code`` so binding layers can surface it without
depending on class names, plus whatever context (axis, attribute, code,
position) the caller needs to act on it.
"""

from __future__ import annotations

from typing import Any


class PolicyError(Exception):
    """Base class for all policy engine failures."""

    code = 1
    kind = "PolicyError"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.kind,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class DuplicateAxisName(PolicyError):
    code = 10
    kind = "DuplicateAxisName"

    def __init__(self, axis: str):
        super().__init__(f"axis {axis!r} already exists", axis=axis)
        self.axis = axis


class DuplicateAttribute(PolicyError):
    code = 11
    kind = "DuplicateAttribute"

    def __init__(self, axis: str, attribute: str):
        super().__init__(
            f"attribute {attribute!r} is declared more than once on axis {axis!r}",
            axis=axis, attribute=attribute,
        )
        self.axis = axis
        self.attribute = attribute


class UnknownAttribute(PolicyError):
    code = 20
    kind = "UnknownAttribute"

    def __init__(self, axis: str, attribute: str, version: int | None = None):
        label = f"{axis}::{attribute}"
        if version is not None:
            message = f"attribute {label!r} has no version {version}"
        else:
            message = f"attribute {label!r} not found"
        super().__init__(message, axis=axis, attribute=attribute, version=version)
        self.axis = axis
        self.attribute = attribute
        self.version = version


class UnknownAxis(PolicyError):
    code = 21
    kind = "UnknownAxis"

    def __init__(self, axis: str):
        super().__init__(f"axis {axis!r} not found", axis=axis)
        self.axis = axis


class UnknownCode(PolicyError):
    code = 22
    kind = "UnknownCode"

    def __init__(self, value: int):
        super().__init__(f"code {value} was never issued", value=value)
        self.value = value


class InvalidPolicy(PolicyError):
    """Unsatisfiable or empty access policy."""

    code = 30
    kind = "InvalidPolicy"


class ParseError(PolicyError):
    code = 31
    kind = "ParseError"

    def __init__(self, reason: str, expression: str = "", position: int | None = None):
        where = f" at position {position}" if position is not None else ""
        super().__init__(
            f"invalid boolean expression{where}: {reason}",
            expression=expression, position=position,
        )
        self.reason = reason
        self.expression = expression
        self.position = position


class RotationInProgress(PolicyError):
    code = 40
    kind = "RotationInProgress"

    def __init__(self, axis: str, attribute: str, version: int):
        super().__init__(
            f"attribute '{axis}::{attribute}' is still in its rotation window "
            f"(version {version}); clear old rotations first",
            axis=axis, attribute=attribute, version=version,
        )
        self.axis = axis
        self.attribute = attribute
        self.version = version


class RotationLimitExceeded(PolicyError):
    code = 41
    kind = "RotationLimitExceeded"

    def __init__(self, axis: str, attribute: str, limit: int):
        super().__init__(
            f"attribute '{axis}::{attribute}' reached its limit of {limit} rotations",
            axis=axis, attribute=attribute, limit=limit,
        )
        self.axis = axis
        self.attribute = attribute
        self.limit = limit


class SerializationError(PolicyError):
    """Corrupt or version-mismatched persisted bytes."""

    code = 50
    kind = "SerializationError"

