"""
Attribute rotation.

Each attribute follows a two-phase state machine::

    Stable(v) --rotate--> Rotating(v + 1, previous=v) --clear--> Stable(v + 1)

While rotating, encryptors are told to target both the previous and the new
code (the hybridization window), so holders of either decryption capability
can still read content produced during the migration. The window closes only
on an explicit ``clear_old_rotations``; the old code stays decodable forever.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable

from ..attribute import Attribute
from ..errors import (
    RotationInProgress,
    RotationLimitExceeded,
    SerializationError,
    UnknownAttribute,
)
from .encoding import EncodingTable


class HintKind(str, Enum):
    SINGLE_VERSION = "single_version"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class HybridizationHint:
    """Which codes new ciphertext for an attribute must target."""
    kind: HintKind
    new_code: int
    old_code: int | None = None

    @classmethod
    def single(cls, code: int) -> HybridizationHint:
        return cls(HintKind.SINGLE_VERSION, code)

    @classmethod
    def hybrid(cls, old_code: int, new_code: int) -> HybridizationHint:
        return cls(HintKind.HYBRID, new_code, old_code)

    @property
    def is_hybrid(self) -> bool:
        return self.kind is HintKind.HYBRID

    @property
    def codes(self) -> tuple[int, ...]:
        if self.old_code is None:
            return (self.new_code,)
        return (self.old_code, self.new_code)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "new_code": self.new_code, "old_code": self.old_code}


@dataclass(frozen=True)
class RotationState:
    """Current version of one attribute and, mid-rotation, the one before it."""
    version: int = 1
    previous_version: int | None = None
    max_rotations: int = 100

    @property
    def rotating(self) -> bool:
        return self.previous_version is not None

    @property
    def rotations(self) -> int:
        return self.version - 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "previous_version": self.previous_version,
            "max_rotations": self.max_rotations,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RotationState:
        try:
            previous = data.get("previous_version")
            state = cls(
                version=int(data["version"]),
                previous_version=None if previous is None else int(previous),
                max_rotations=int(data["max_rotations"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SerializationError(f"malformed rotation state {data!r}") from exc
        if state.max_rotations < 0:
            raise SerializationError(f"negative rotation limit in {data!r}")
        if state.version < 1 or (state.rotating and state.previous_version != state.version - 1):
            raise SerializationError(f"inconsistent rotation state {data!r}")
        return state


class RotationManager:
    """Drives rotation state transitions against an encoding table."""

    def __init__(self, table: EncodingTable, states: dict[Attribute, RotationState]):
        self.table = table
        self.states = states

    def state(self, attribute: Attribute) -> RotationState:
        try:
            return self.states[attribute]
        except KeyError:
            raise UnknownAttribute(attribute.axis, attribute.name) from None

    def check(self, attribute: Attribute) -> RotationState:
        """Raise if ``attribute`` cannot be rotated right now."""
        state = self.state(attribute)
        if state.rotating:
            raise RotationInProgress(attribute.axis, attribute.name, state.version)
        if state.rotations >= state.max_rotations:
            raise RotationLimitExceeded(attribute.axis, attribute.name, state.max_rotations)
        return state

    def rotate(self, attribute: Attribute) -> int:
        state = self.check(attribute)
        new_version = state.version + 1
        new_code = self.table.allocate(attribute.axis, attribute.name, new_version)
        self.states[attribute] = replace(
            state, version=new_version, previous_version=state.version
        )
        return new_code

    def rotate_many(self, attributes: Iterable[Attribute]) -> list[int]:
        """Rotate several attributes; nothing changes unless all can rotate."""
        attributes = list(attributes)
        seen: set[Attribute] = set()
        for attribute in attributes:
            state = self.check(attribute)
            if attribute in seen:
                raise RotationInProgress(attribute.axis, attribute.name, state.version + 1)
            seen.add(attribute)
        return [self.rotate(a) for a in attributes]

    def clear_old_rotations(self, attribute: Attribute) -> bool:
        """Close the hybridization window. Returns False if none was open."""
        state = self.state(attribute)
        if not state.rotating:
            return False
        self.states[attribute] = replace(state, previous_version=None)
        return True

    def hint(self, attribute: Attribute) -> HybridizationHint:
        state = self.state(attribute)
        new_code = self.table.encode(attribute.axis, attribute.name, state.version)
        if not state.rotating:
            return HybridizationHint.single(new_code)
        old_code = self.table.encode(attribute.axis, attribute.name, state.previous_version)
        return HybridizationHint.hybrid(old_code, new_code)
