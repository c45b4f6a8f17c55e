"""
Combination resolver.

Expands an access policy into disjunctive normal form against a policy and
flattens every conjunctive term into concrete tuples of current attribute
codes. A term maps each axis it constrains to the set of attributes that
satisfy it; on hierarchical axes a leaf also admits every lower-ranked
attribute. ``All`` constrains no axis and resolves to the single empty
combination.

Output ordering: each combination is a tuple of codes in ascending order and
the combination list is deduplicated and sorted, so repeated calls (and calls
after unrelated rotations) yield identical sequences.
"""

from __future__ import annotations

from itertools import product
from typing import TYPE_CHECKING

from ..attribute import Attribute
from .expression import AccessPolicy, All, And, Attr, Or, postorder

if TYPE_CHECKING:
    from ..policy.models import Policy

Term = dict[str, frozenset[Attribute]]


class CombinationResolver:
    """Evaluates access policies against one policy snapshot."""

    def __init__(self, policy: Policy, follow_hierarchy: bool = True):
        self.policy = policy
        self.follow_hierarchy = follow_hierarchy
        # conjunctive terms dropped because an axis intersection was empty
        self.discarded: list[Term] = []

    def terms(self, root: AccessPolicy) -> list[Term]:
        done: dict[int, list[Term]] = {}
        for node in postorder(root):
            if isinstance(node, Attr):
                done[id(node)] = [self._leaf(node.attribute)]
            elif isinstance(node, All):
                # no axis constrained: a single unrestricted term
                done[id(node)] = [{}]
            elif isinstance(node, Or):
                done[id(node)] = done[id(node.left)] + done[id(node.right)]
            elif isinstance(node, And):
                merged_terms = []
                for t_left in done[id(node.left)]:
                    for t_right in done[id(node.right)]:
                        merged = _merge(t_left, t_right)
                        if any(not values for values in merged.values()):
                            self.discarded.append(merged)
                        else:
                            merged_terms.append(merged)
                done[id(node)] = merged_terms
            else:
                raise TypeError(f"not an access policy node: {node!r}")
        return done[id(root)]

    def _leaf(self, attribute: Attribute) -> Term:
        axis = self.policy.axis(attribute.axis)
        if self.follow_hierarchy:
            names = axis.at_or_below(attribute.name)
        else:
            axis.rank(attribute.name)
            names = [attribute.name]
        return {axis.name: frozenset(Attribute(axis.name, n) for n in names)}

    def attribute_combinations(self, node: AccessPolicy) -> list[tuple[Attribute, ...]]:
        """Every satisfying attribute set, each ordered by current code."""
        code_of = self.policy.attribute_current_value
        combos: set[tuple[Attribute, ...]] = set()
        for term in self.terms(node):
            per_axis = [sorted(term[axis], key=code_of) for axis in sorted(term)]
            for combo in product(*per_axis):
                combos.add(tuple(sorted(combo, key=code_of)))
        return sorted(combos, key=lambda combo: [code_of(a) for a in combo])

    def resolve(self, node: AccessPolicy) -> list[tuple[int, ...]]:
        """Every satisfying combination as a sorted tuple of current codes."""
        code_of = self.policy.attribute_current_value
        return [tuple(code_of(a) for a in combo) for combo in self.attribute_combinations(node)]


def _merge(left: Term, right: Term) -> Term:
    merged = dict(left)
    for axis, values in right.items():
        merged[axis] = merged[axis] & values if axis in merged else values
    return merged
