"""Attribute identifiers: an (axis, name) pair written ``Axis::Name``."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import ParseError

SEPARATOR = "::"
RESERVED = ("&", "|", "(", ")", SEPARATOR)


@dataclass(frozen=True, order=True)
class Attribute:
    """A named value on one axis, e.g. ``Department::Marketing``."""
    axis: str
    name: str

    def __str__(self) -> str:
        return f"{self.axis}{SEPARATOR}{self.name}"

    @classmethod
    def parse(cls, text: str) -> Attribute:
        parts = text.split(SEPARATOR)
        if len(parts) != 2:
            raise ParseError(f"{text!r} does not respect the format <axis::name>", text)
        axis, name = parts[0].strip(), parts[1].strip()
        if not axis or not name:
            raise ParseError(f"{text!r} has an empty axis or attribute name", text)
        return cls(axis, name)


def coerce(value: Attribute | str | tuple[str, str]) -> Attribute:
    """Accept an Attribute, an ``Axis::Name`` string or an (axis, name) pair."""
    if isinstance(value, Attribute):
        return value
    if isinstance(value, str):
        return Attribute.parse(value)
    axis, name = value
    return Attribute(axis, name)
