"""Serialized entry points for foreign bindings."""

from .boundary import (
    Outcome,
    add_axis,
    attribute_combinations,
    clear_old_rotations,
    hybridization_hint,
    new_policy,
    parse_access_policy,
    rotate,
)

__all__ = [
    "Outcome", "add_axis", "attribute_combinations", "clear_old_rotations",
    "hybridization_hint", "new_policy", "parse_access_policy", "rotate",
]
