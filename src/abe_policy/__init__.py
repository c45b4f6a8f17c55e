"""
ABE-Policy: policy algebra for attribute-based encryption.

Axes of categorized attributes, stable integer attribute codes, boolean
access policies resolved into the attribute combinations an ABE scheme
encrypts under, and two-phase attribute rotation.
"""

from .attribute import Attribute
from .access import AccessPolicy, CombinationResolver, and_, attr, from_axes, or_, parse
from .errors import PolicyError
from .policy import HybridizationHint, Policy, PolicyAxis

__version__ = "0.1.0"

__all__ = [
    "Attribute", "AccessPolicy", "CombinationResolver", "and_", "attr", "from_axes",
    "or_", "parse", "PolicyError", "HybridizationHint", "Policy", "PolicyAxis",
]
