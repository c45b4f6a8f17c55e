"""
The policy aggregate.

A ``Policy`` owns its axes, the encoding table and the per-attribute rotation
state, and is the value persisted and passed across the binding boundary.
A Policy is a single mutable resource: callers that mutate it from several
threads must serialise writers, and readers that run during a rotation
should work on ``copy()``.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

import yaml

from ..access.expression import AccessPolicy
from ..access.parser import parse
from ..access.resolver import CombinationResolver
from ..attribute import Attribute, coerce
from ..errors import (
    DuplicateAttribute,
    DuplicateAxisName,
    InvalidPolicy,
    SerializationError,
    UnknownAxis,
)
from .axis import PolicyAxis, check_rotation_limit
from .encoding import EncodingTable, Triple
from .rotation import HybridizationHint, RotationManager, RotationState

FORMAT_VERSION = 1
DEFAULT_MAX_ROTATIONS = 100

AttributeLike = Attribute | str | tuple[str, str]


class Policy:
    """Axes, attribute codes and rotation state."""

    def __init__(
        self,
        axes: Iterable[PolicyAxis] | None = None,
        max_rotations: int = DEFAULT_MAX_ROTATIONS,
    ):
        self.max_rotations = check_rotation_limit(max_rotations)
        self._axes: dict[str, PolicyAxis] = {}
        self.table = EncodingTable()
        self.states: dict[Attribute, RotationState] = {}
        self.rotation = RotationManager(self.table, self.states)
        for axis in axes or []:
            self.add_axis(axis)

    # --- Axes ---

    def add_axis(self, axis: PolicyAxis | dict[str, Any]) -> None:
        if isinstance(axis, dict):
            axis = PolicyAxis.from_dict(axis)
        if axis.name in self._axes:
            raise DuplicateAxisName(axis.name)
        limit = self.max_rotations if axis.max_rotations is None else axis.max_rotations
        self._axes[axis.name] = axis
        for name in axis.attribute_names:
            self.table.allocate(axis.name, name, 1)
            self.states[Attribute(axis.name, name)] = RotationState(max_rotations=limit)

    def axes(self) -> list[PolicyAxis]:
        return list(self._axes.values())

    def axis(self, name: str) -> PolicyAxis:
        try:
            return self._axes[name]
        except KeyError:
            raise UnknownAxis(name) from None

    def attributes(self) -> list[Attribute]:
        return [a for axis in self._axes.values() for a in axis.qualified()]

    # --- Codes ---

    def encode(self, axis: str, attribute: str, version: int) -> int:
        return self.table.encode(axis, attribute, version)

    def decode(self, code: int) -> Triple:
        return self.table.decode(code)

    def attribute_current_value(self, attribute: AttributeLike) -> int:
        attribute = coerce(attribute)
        state = self.rotation.state(attribute)
        return self.table.encode(attribute.axis, attribute.name, state.version)

    def attribute_values(self, attribute: AttributeLike) -> list[int]:
        """Every code the attribute has held, current first."""
        attribute = coerce(attribute)
        self.rotation.state(attribute)
        versions = self.table.versions(attribute.axis, attribute.name)
        return [versions[v] for v in sorted(versions, reverse=True)]

    def attributes_values(self, attributes: Iterable[AttributeLike]) -> list[int]:
        return [self.attribute_current_value(a) for a in attributes]

    # --- Rotation ---

    def rotate(self, attribute: AttributeLike) -> int:
        """Issue a new code for ``attribute`` and open its hybridization window."""
        return self.rotation.rotate(coerce(attribute))

    def rotate_many(self, attributes: Iterable[AttributeLike]) -> list[int]:
        return self.rotation.rotate_many(coerce(a) for a in attributes)

    def clear_old_rotations(self, attribute: AttributeLike) -> bool:
        return self.rotation.clear_old_rotations(coerce(attribute))

    def hybridization_hint(self, attribute: AttributeLike) -> HybridizationHint:
        return self.rotation.hint(coerce(attribute))

    def rotation_state(self, attribute: AttributeLike) -> RotationState:
        return self.rotation.state(coerce(attribute))

    # --- Combinations ---

    def to_attribute_combinations(
        self, access_policy: AccessPolicy | str, follow_hierarchy: bool = True
    ) -> list[tuple[int, ...]]:
        if isinstance(access_policy, str):
            access_policy = parse(access_policy)
        return CombinationResolver(self, follow_hierarchy).resolve(access_policy)

    def attribute_combinations(
        self, access_policy: AccessPolicy | str, follow_hierarchy: bool = True
    ) -> list[tuple[Attribute, ...]]:
        if isinstance(access_policy, str):
            access_policy = parse(access_policy)
        return CombinationResolver(self, follow_hierarchy).attribute_combinations(access_policy)

    # --- Serialization ---

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Policy):
            return NotImplemented
        return (
            self.max_rotations == other.max_rotations
            and self.axes() == other.axes()
            and self.table == other.table
            and self.states == other.states
        )

    def __repr__(self) -> str:
        return (
            f"Policy(axes={[a.name for a in self.axes()]}, "
            f"last_code={self.table.last_code}, max_rotations={self.max_rotations})"
        )

    def copy(self) -> Policy:
        return Policy.from_dict(self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {
            "format_version": FORMAT_VERSION,
            "max_rotations": self.max_rotations,
            "last_code": self.table.last_code,
            "axes": [a.to_dict() for a in self._axes.values()],
            "codes": self.table.to_list(),
            "rotations": [
                {"axis": attr.axis, "attribute": attr.name, **state.to_dict()}
                for attr, state in self.states.items()
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Policy:
        if not isinstance(data, dict):
            raise SerializationError("serialized policy must be a mapping")
        version = data.get("format_version")
        if version != FORMAT_VERSION:
            raise SerializationError(
                f"unsupported policy format version {version!r} (expected {FORMAT_VERSION})"
            )
        try:
            policy = cls(max_rotations=int(data["max_rotations"]))
            for axis_data in data["axes"]:
                axis = PolicyAxis.from_dict(axis_data)
                if axis.name in policy._axes:
                    raise SerializationError(f"axis {axis.name!r} appears twice")
                policy._axes[axis.name] = axis
            table = EncodingTable.from_list(data["codes"], int(data["last_code"]))
            states: dict[Attribute, RotationState] = {}
            for r in data["rotations"]:
                attribute = Attribute(str(r["axis"]), str(r["attribute"]))
                if attribute in states:
                    raise SerializationError(f"rotation state of {attribute} appears twice")
                states[attribute] = RotationState.from_dict(r)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SerializationError(f"malformed serialized policy: {exc}") from exc
        except (DuplicateAttribute, InvalidPolicy) as exc:
            raise SerializationError(f"invalid axis declaration: {exc}") from exc

        declared = set(policy.attributes())
        if set(states) != declared:
            raise SerializationError("rotation state does not match the declared attributes")
        if {Attribute(ax, at) for (ax, at, _), _code in table.items()} != declared:
            raise SerializationError("code table does not match the declared attributes")
        for attribute, state in states.items():
            issued = table.versions(attribute.axis, attribute.name)
            if set(issued) != set(range(1, state.version + 1)):
                raise SerializationError(f"code history of {attribute} is inconsistent")

        policy.table = table
        policy.states = states
        policy.rotation = RotationManager(table, states)
        return policy

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> Policy:
        try:
            decoded = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SerializationError(f"policy bytes are not valid JSON: {exc}") from exc
        return cls.from_dict(decoded)

    # --- Declarative YAML form ---

    def to_yaml(self) -> str:
        """Export the axis declarations. Codes are not part of this form."""
        data = {
            "max_rotations": self.max_rotations,
            "axes": [a.to_dict() for a in self._axes.values()],
        }
        return yaml.dump(data, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> Policy:
        try:
            data = yaml.safe_load(yaml_str) or {}
        except yaml.YAMLError as exc:
            raise SerializationError(f"invalid YAML policy declaration: {exc}") from exc
        if not isinstance(data, dict):
            raise SerializationError("YAML policy declaration must be a mapping")
        try:
            policy = cls(max_rotations=int(data.get("max_rotations", DEFAULT_MAX_ROTATIONS)))
        except (TypeError, ValueError, InvalidPolicy) as exc:
            raise SerializationError(f"invalid max_rotations in YAML declaration: {exc}") from exc
        for axis_data in data.get("axes") or []:
            try:
                policy.add_axis(axis_data)
            except (KeyError, TypeError, AttributeError) as exc:
                raise SerializationError(f"malformed axis declaration {axis_data!r}") from exc
        return policy

    def summary(self) -> dict[str, Any]:
        return {
            "total_axes": len(self._axes),
            "total_attributes": len(self.states),
            "issued_codes": len(self.table),
            "last_code": self.table.last_code,
            "rotating": sorted(str(a) for a, s in self.states.items() if s.rotating),
            "axes": [
                {
                    "name": a.name,
                    "hierarchical": a.hierarchical,
                    "attribute_count": len(a),
                }
                for a in self._axes.values()
            ],
        }
