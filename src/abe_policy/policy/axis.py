"""
Policy axes.

An axis is one classification dimension (e.g. "Department") holding an
ordered list of attribute names. On a hierarchical axis the order is a rank:
earlier names are lower, and a higher attribute grants every attribute at or
below it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..attribute import RESERVED, Attribute
from ..errors import DuplicateAttribute, InvalidPolicy, SerializationError, UnknownAttribute


def _check_name(kind: str, name: str) -> str:
    name = name.strip() if isinstance(name, str) else name
    if not isinstance(name, str) or not name:
        raise InvalidPolicy(f"{kind} name must be a non-empty string")
    for token in RESERVED:
        if token in name:
            raise InvalidPolicy(f"{kind} name {name!r} contains reserved token {token!r}")
    return name


def check_rotation_limit(value: Any, optional: bool = False) -> int | None:
    """Validate a per-attribute rotation cap: a non-negative int, or None when optional."""
    if value is None and optional:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidPolicy(f"max_rotations must be a non-negative integer, got {value!r}")
    if value < 0:
        raise InvalidPolicy(f"max_rotations must be >= 0, got {value}")
    return value


@dataclass(frozen=True)
class PolicyAxis:
    """A named, optionally hierarchical group of attribute names."""
    name: str
    attribute_names: tuple[str, ...]
    hierarchical: bool = False
    max_rotations: int | None = None  # None = policy default

    def __post_init__(self):
        object.__setattr__(self, "name", _check_name("axis", self.name))
        names = tuple(_check_name("attribute", n) for n in self.attribute_names)
        seen: set[str] = set()
        for n in names:
            if n in seen:
                raise DuplicateAttribute(self.name, n)
            seen.add(n)
        if not names:
            raise InvalidPolicy(f"axis {self.name!r} declares no attributes")
        check_rotation_limit(self.max_rotations, optional=True)
        object.__setattr__(self, "attribute_names", names)

    @classmethod
    def new(
        cls,
        name: str,
        attribute_names: list[str] | tuple[str, ...],
        is_hierarchical: bool = False,
        max_rotations: int | None = None,
    ) -> PolicyAxis:
        return cls(name, tuple(attribute_names), is_hierarchical, max_rotations)

    def __len__(self) -> int:
        return len(self.attribute_names)

    def attributes(self) -> list[str]:
        return list(self.attribute_names)

    def qualified(self) -> list[Attribute]:
        return [Attribute(self.name, n) for n in self.attribute_names]

    def rank(self, attribute_name: str) -> int:
        try:
            return self.attribute_names.index(attribute_name)
        except ValueError:
            raise UnknownAttribute(self.name, attribute_name) from None

    def implies(self, lower: str, higher: str) -> bool:
        """True when holding ``higher`` grants ``lower``.

        Flat axes only imply identity.
        """
        lo, hi = self.rank(lower), self.rank(higher)
        if not self.hierarchical:
            return lo == hi
        return hi >= lo

    def at_or_below(self, attribute_name: str) -> list[str]:
        """Names granted by ``attribute_name``, lowest rank first."""
        idx = self.rank(attribute_name)
        if not self.hierarchical:
            return [attribute_name]
        return list(self.attribute_names[: idx + 1])

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "attributes": list(self.attribute_names),
            "hierarchical": self.hierarchical,
        }
        if self.max_rotations is not None:
            data["max_rotations"] = self.max_rotations
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyAxis:
        try:
            attributes = data.get("attributes", [])
            if isinstance(attributes, str):
                raise TypeError("attributes must be a list")
            hierarchical = data.get("hierarchical", False)
            if not isinstance(hierarchical, bool):
                raise TypeError("hierarchical must be a boolean")
            return cls(
                name=data["name"],
                attribute_names=tuple(attributes),
                hierarchical=hierarchical,
                max_rotations=data.get("max_rotations"),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise SerializationError(f"malformed axis declaration {data!r}") from exc
