"""
Access policy expressions.

An access policy is a positive boolean formula over attributes: leaves name
an ``Axis::Name`` attribute (or ``All``, every attribute), internal nodes are
binary ``And`` / ``Or``. Nodes are plain frozen dataclasses; evaluators walk
them by structural recursion on the node type, driven by an explicit stack so
that long parsed chains stay within the interpreter's recursion limit.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

from ..attribute import Attribute, coerce
from ..errors import InvalidPolicy, ParseError, SerializationError

ALL_TOKEN = "*"


class _Node:
    """Shared behaviour of every expression node."""

    _axes: frozenset[str]
    _hash: int

    def __and__(self, other: AccessPolicy) -> And:
        return And(self, other)

    def __or__(self, other: AccessPolicy) -> Or:
        return Or(self, other)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Node):
            return NotImplemented
        pending = [(self, other)]
        while pending:
            a, b = pending.pop()
            if a is b:
                continue
            if type(a) is not type(b) or a._hash != b._hash:
                return False
            if isinstance(a, Attr):
                if a.attribute != b.attribute:
                    return False
            elif isinstance(a, (And, Or)):
                pending.append((a.left, b.left))
                pending.append((a.right, b.right))
        return True

    def __hash__(self) -> int:
        return self._hash

    def attributes(self) -> list[Attribute]:
        """All attributes referenced, sorted."""
        return sorted(set(_leaves(self)))

    def axes(self) -> set[str]:
        return set(self._axes)

    def to_dict(self) -> Any:
        return to_dict(self)

    def to_bytes(self) -> bytes:
        return to_json(self).encode("utf-8")

    def to_text(self) -> str:
        return to_text(self)

    def equivalent(self, other: AccessPolicy) -> bool:
        """Equality modulo associativity and commutativity of And / Or."""
        return _canonical(self) == _canonical(other)

    def __str__(self) -> str:
        return to_text(self)


@dataclass(frozen=True, eq=False)
class Attr(_Node):
    attribute: Attribute
    _axes: frozenset[str] = field(init=False, repr=False)
    _hash: int = field(init=False, repr=False)

    def __post_init__(self):
        attribute = coerce(self.attribute)
        object.__setattr__(self, "attribute", attribute)
        object.__setattr__(self, "_axes", frozenset((attribute.axis,)))
        object.__setattr__(self, "_hash", hash(("Attr", attribute)))


@dataclass(frozen=True, eq=False)
class All(_Node):
    """Every attribute of the policy; resolves to the empty combination."""
    _axes: frozenset[str] = field(init=False, repr=False, default=frozenset())
    _hash: int = field(init=False, repr=False, default=hash("All"))


@dataclass(frozen=True, eq=False)
class And(_Node):
    left: AccessPolicy
    right: AccessPolicy
    _axes: frozenset[str] = field(init=False, repr=False)
    _hash: int = field(init=False, repr=False)

    def __post_init__(self):
        left_axes, right_axes = self.left._axes, self.right._axes
        if len(left_axes) == 1 and left_axes == right_axes:
            (axis,) = left_axes
            raise InvalidPolicy(
                f"cannot AND attributes of the same axis {axis!r}: "
                f"'{self.left}' & '{self.right}' is unsatisfiable",
                axis=axis,
            )
        object.__setattr__(self, "_axes", left_axes | right_axes)
        object.__setattr__(self, "_hash", hash(("And", self.left._hash, self.right._hash)))


@dataclass(frozen=True, eq=False)
class Or(_Node):
    left: AccessPolicy
    right: AccessPolicy
    _axes: frozenset[str] = field(init=False, repr=False)
    _hash: int = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "_axes", self.left._axes | self.right._axes)
        object.__setattr__(self, "_hash", hash(("Or", self.left._hash, self.right._hash)))


AccessPolicy = Union[Attr, All, And, Or]

Operand = Union[Attr, All, And, Or, Attribute, str]


def _node(value: Operand) -> AccessPolicy:
    if isinstance(value, _Node):
        return value
    return Attr(coerce(value))


def attr(axis: str, name: str | None = None) -> Attr:
    """``attr("Dept", "IT")`` or ``attr("Dept::IT")``."""
    if name is None:
        return Attr(Attribute.parse(axis))
    return Attr(Attribute(axis, name))


def and_(left: Operand, right: Operand) -> And:
    return And(_node(left), _node(right))


def or_(left: Operand, right: Operand) -> Or:
    return Or(_node(left), _node(right))


def _balanced(combine, nodes: list[AccessPolicy]) -> AccessPolicy:
    while len(nodes) > 1:
        paired = [combine(nodes[i], nodes[i + 1]) for i in range(0, len(nodes) - 1, 2)]
        if len(nodes) % 2:
            paired.append(nodes[-1])
        nodes = paired
    return nodes[0]


def from_axes(axes_attributes: dict[str, list[str]]) -> AccessPolicy:
    """OR the attributes of each axis together, then AND the axes.

    Both levels are built as balanced trees, so the depth grows with the
    logarithm of the attribute count.
    """
    if not axes_attributes:
        raise InvalidPolicy("no axis given")
    per_axis = []
    for axis, names in axes_attributes.items():
        if not names:
            raise InvalidPolicy(f"no attribute given for axis {axis!r}", axis=axis)
        per_axis.append(_balanced(Or, [Attr(Attribute(axis, n)) for n in names]))
    return _balanced(And, per_axis)


def postorder(root: AccessPolicy) -> Iterator[AccessPolicy]:
    """Yield nodes children first, left to right."""
    stack: list[tuple[AccessPolicy, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if isinstance(node, (And, Or)) and not expanded:
            stack.append((node, True))
            stack.append((node.right, False))
            stack.append((node.left, False))
        else:
            yield node


def _leaves(node: AccessPolicy) -> list[Attribute]:
    return [n.attribute for n in postorder(node) if isinstance(n, Attr)]


def _canonical(root: AccessPolicy) -> Any:
    done: dict[int, Any] = {}
    for node in postorder(root):
        if isinstance(node, Attr):
            done[id(node)] = node.attribute
        elif isinstance(node, All):
            done[id(node)] = ("All",)
        else:
            kind = type(node).__name__
            parts: set[Any] = set()
            for child in (done[id(node.left)], done[id(node.right)]):
                if isinstance(child, tuple) and child[0] == kind:
                    parts |= child[1]
                else:
                    parts.add(child)
            done[id(node)] = (kind, frozenset(parts))
    return done[id(root)]


# --- Canonical forms ---

def to_text(root: AccessPolicy) -> str:
    """Canonical text: every nested binary node is parenthesised."""
    done: dict[int, str] = {}
    for node in postorder(root):
        if isinstance(node, Attr):
            done[id(node)] = str(node.attribute)
        elif isinstance(node, All):
            done[id(node)] = ALL_TOKEN
        else:
            op = "&" if isinstance(node, And) else "|"
            left, right = (
                f"({done[id(n)]})" if isinstance(n, (And, Or)) else done[id(n)]
                for n in (node.left, node.right)
            )
            done[id(node)] = f"{left} {op} {right}"
    return done[id(root)]


def to_json(root: AccessPolicy) -> str:
    """Compact JSON AST, identical to ``json.dumps(to_dict(root), separators=(",", ":"))``."""
    done: dict[int, str] = {}
    for node in postorder(root):
        if isinstance(node, Attr):
            done[id(node)] = '{"Attr":' + json.dumps(str(node.attribute)) + "}"
        elif isinstance(node, All):
            done[id(node)] = '"All"'
        else:
            kind = "And" if isinstance(node, And) else "Or"
            done[id(node)] = (
                '{"' + kind + '":[' + done[id(node.left)] + "," + done[id(node.right)] + "]}"
            )
    return done[id(root)]


def to_dict(root: AccessPolicy) -> Any:
    done: dict[int, Any] = {}
    for node in postorder(root):
        if isinstance(node, Attr):
            done[id(node)] = {"Attr": str(node.attribute)}
        elif isinstance(node, All):
            done[id(node)] = "All"
        else:
            kind = "And" if isinstance(node, And) else "Or"
            done[id(node)] = {kind: [done[id(node.left)], done[id(node.right)]]}
    return done[id(root)]


def from_dict(data: Any) -> AccessPolicy:
    stack: list[tuple[Any, bool]] = [(data, False)]
    built: list[AccessPolicy] = []
    while stack:
        item, expanded = stack.pop()
        if item == "All":
            built.append(All())
            continue
        if not isinstance(item, dict) or len(item) != 1:
            raise SerializationError(f"malformed access policy node {item!r}")
        ((kind, value),) = item.items()
        if kind == "Attr":
            if not isinstance(value, str):
                raise SerializationError(f"malformed attribute leaf {value!r}")
            try:
                built.append(Attr(Attribute.parse(value)))
            except ParseError as exc:
                raise SerializationError(f"malformed attribute leaf {value!r}") from exc
        elif kind in ("And", "Or"):
            if expanded:
                right, left = built.pop(), built.pop()
                built.append(And(left, right) if kind == "And" else Or(left, right))
                continue
            if not isinstance(value, list) or len(value) != 2:
                raise SerializationError(f"{kind} node needs exactly two operands")
            stack.append((item, True))
            stack.append((value[1], False))
            stack.append((value[0], False))
        else:
            raise SerializationError(f"unknown access policy node {kind!r}")
    return built[0]


def from_bytes(data: bytes) -> AccessPolicy:
    try:
        decoded = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SerializationError(f"access policy bytes are not valid JSON: {exc}") from exc
    except RecursionError as exc:
        raise SerializationError("access policy AST is nested too deeply") from exc
    return from_dict(decoded)
