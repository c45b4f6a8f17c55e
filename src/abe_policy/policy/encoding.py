"""
Attribute encoding table.

Bijective mapping between ``(axis, attribute, version)`` triples and integer
codes. Codes are handed out sequentially from a monotonically increasing
counter and are never freed or reassigned, so a stale ciphertext can never
decrypt under a code that now means something else.
"""

from __future__ import annotations

from typing import Any

from ..errors import DuplicateAttribute, SerializationError, UnknownAttribute, UnknownCode

Triple = tuple[str, str, int]


class EncodingTable:
    """Sequential, append-only code allocator."""

    def __init__(self):
        self.last_code = 0
        self._codes: dict[Triple, int] = {}
        self._triples: dict[int, Triple] = {}
        self._declared: set[tuple[str, str]] = set()

    def __len__(self) -> int:
        return len(self._codes)

    def __contains__(self, value: int) -> bool:
        return value in self._triples

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EncodingTable):
            return NotImplemented
        return self.last_code == other.last_code and self._codes == other._codes

    def allocate(self, axis: str, attribute: str, version: int) -> int:
        key = (axis, attribute, version)
        if key in self._codes:
            raise DuplicateAttribute(axis, f"{attribute} (version {version})")
        self.last_code += 1
        self._codes[key] = self.last_code
        self._triples[self.last_code] = key
        self._declared.add((axis, attribute))
        return self.last_code

    def encode(self, axis: str, attribute: str, version: int) -> int:
        try:
            return self._codes[(axis, attribute, version)]
        except KeyError:
            if (axis, attribute) in self._declared:
                raise UnknownAttribute(axis, attribute, version) from None
            raise UnknownAttribute(axis, attribute) from None

    def decode(self, value: int) -> Triple:
        try:
            return self._triples[value]
        except KeyError:
            raise UnknownCode(value) from None

    def versions(self, axis: str, attribute: str) -> dict[int, int]:
        """Every issued version of an attribute mapped to its code."""
        if (axis, attribute) not in self._declared:
            raise UnknownAttribute(axis, attribute)
        return {
            v: c for (ax, at, v), c in self._codes.items()
            if ax == axis and at == attribute
        }

    def items(self) -> list[tuple[Triple, int]]:
        return sorted(self._codes.items(), key=lambda kv: kv[1])

    def to_list(self) -> list[dict[str, Any]]:
        return [
            {"axis": ax, "attribute": at, "version": v, "code": c}
            for (ax, at, v), c in self.items()
        ]

    @classmethod
    def from_list(cls, entries: list[dict[str, Any]], last_code: int) -> EncodingTable:
        table = cls()
        for entry in entries:
            try:
                key = (str(entry["axis"]), str(entry["attribute"]), int(entry["version"]))
                value = int(entry["code"])
            except (KeyError, TypeError, ValueError) as exc:
                raise SerializationError(f"malformed code table entry {entry!r}") from exc
            if key in table._codes or value in table._triples:
                raise SerializationError(f"code table entry {entry!r} is not unique")
            if value < 1 or value > last_code:
                raise SerializationError(
                    f"code {value} lies outside the allocated range 1..{last_code}"
                )
            table._codes[key] = value
            table._triples[value] = key
            table._declared.add(key[:2])
        table.last_code = last_code
        return table
