"""Access policy expressions and their resolution into attribute combinations."""

from .expression import AccessPolicy, All, And, Attr, Or, and_, attr, from_axes, or_
from .parser import parse
from .resolver import CombinationResolver

__all__ = [
    "AccessPolicy", "All", "And", "Attr", "Or", "and_", "attr", "from_axes", "or_",
    "parse", "CombinationResolver",
]
