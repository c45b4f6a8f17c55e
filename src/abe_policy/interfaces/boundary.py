"""
Byte-level boundary operations.

Foreign-function and WebAssembly bindings call these with serialized inputs
and receive an ``Outcome``: either the serialized result or an error code and
message. Inputs are never modified; every mutating operation returns a new
serialized policy.

Wire forms:
  policy          canonical JSON produced by ``Policy.to_bytes``
  axis            JSON ``{"name", "attributes", "hierarchical"}``
  attribute(s)    JSON ``"Axis::Name"`` or a list of them
  access policy   binary AST JSON (``{"And": [...]}``) or the textual grammar
  combinations    JSON list of code lists
"""

from __future__ import annotations

import functools
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from ..access.expression import AccessPolicy, from_bytes
from ..access.parser import parse
from ..access.resolver import CombinationResolver
from ..attribute import Attribute
from ..errors import PolicyError, SerializationError
from ..policy.models import DEFAULT_MAX_ROTATIONS, Policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """Result of a boundary call. ``error_code`` 0 means success."""
    data: bytes = b""
    error_code: int = 0
    error_kind: str = ""
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error_code == 0

    def unwrap(self) -> bytes:
        """Return ``data`` or raise a PolicyError carrying the reported code."""
        if self.ok:
            return self.data
        error = PolicyError(self.message)
        error.code = self.error_code
        error.kind = self.error_kind
        raise error

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True}
        return {"ok": False, "error": self.error_kind, "code": self.error_code, "message": self.message}


def boundary(fn: Callable[..., bytes]) -> Callable[..., Outcome]:
    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Outcome:
        try:
            return Outcome(data=fn(*args, **kwargs))
        except PolicyError as exc:
            logger.warning("%s failed: %s: %s", fn.__name__, exc.kind, exc.message)
            return Outcome(error_code=exc.code, error_kind=exc.kind, message=exc.message)
    return wrapper


def _json(data: bytes, what: str) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SerializationError(f"{what} is not valid JSON: {exc}") from exc


def _attributes(data: bytes) -> list[Attribute]:
    decoded = _json(data, "attribute list")
    if isinstance(decoded, str):
        decoded = [decoded]
    if not isinstance(decoded, list) or not all(isinstance(a, str) for a in decoded):
        raise SerializationError("attributes must be a string or a list of strings")
    return [Attribute.parse(a) for a in decoded]


def _access_policy(data: bytes) -> AccessPolicy:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SerializationError(f"access policy is not UTF-8: {exc}") from exc
    if text.lstrip().startswith(("{", "\"")):
        return from_bytes(data)
    return parse(text)


@boundary
def new_policy(axes: bytes, max_rotations: int = DEFAULT_MAX_ROTATIONS) -> bytes:
    decoded = _json(axes, "axis list")
    if not isinstance(decoded, list):
        raise SerializationError("axes must be a JSON list")
    policy = Policy(max_rotations=max_rotations)
    for axis in decoded:
        if not isinstance(axis, dict):
            raise SerializationError(f"malformed axis {axis!r}")
        policy.add_axis(axis)
    return policy.to_bytes()


@boundary
def add_axis(policy_bytes: bytes, axis: bytes) -> bytes:
    policy = Policy.from_bytes(policy_bytes)
    decoded = _json(axis, "axis")
    if not isinstance(decoded, dict):
        raise SerializationError("axis must be a JSON object")
    policy.add_axis(decoded)
    return policy.to_bytes()


@boundary
def rotate(policy_bytes: bytes, attributes: bytes) -> bytes:
    policy = Policy.from_bytes(policy_bytes)
    policy.rotate_many(_attributes(attributes))
    return policy.to_bytes()


@boundary
def clear_old_rotations(policy_bytes: bytes, attributes: bytes) -> bytes:
    policy = Policy.from_bytes(policy_bytes)
    for attribute in _attributes(attributes):
        policy.clear_old_rotations(attribute)
    return policy.to_bytes()


@boundary
def hybridization_hint(policy_bytes: bytes, attribute: bytes) -> bytes:
    policy = Policy.from_bytes(policy_bytes)
    hints = {str(a): policy.hybridization_hint(a).to_dict() for a in _attributes(attribute)}
    return json.dumps(hints, sort_keys=True, separators=(",", ":")).encode("utf-8")


@boundary
def attribute_combinations(
    policy_bytes: bytes, access_policy: bytes, follow_hierarchy: bool = True
) -> bytes:
    policy = Policy.from_bytes(policy_bytes)
    resolver = CombinationResolver(policy, follow_hierarchy)
    combinations = resolver.resolve(_access_policy(access_policy))
    for term in resolver.discarded:
        logger.debug(
            "discarded unsatisfiable term %s",
            {axis: sorted(str(a) for a in values) for axis, values in term.items()},
        )
    return json.dumps([list(c) for c in combinations], separators=(",", ":")).encode("utf-8")


@boundary
def parse_access_policy(text: str | bytes) -> bytes:
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SerializationError(f"expression is not UTF-8: {exc}") from exc
    return parse(text).to_bytes()
