"""Policy aggregate: axes, attribute encoding and rotation."""

from .axis import PolicyAxis
from .encoding import EncodingTable
from .models import Policy
from .rotation import HintKind, HybridizationHint, RotationManager, RotationState

__all__ = [
    "Policy", "PolicyAxis", "EncodingTable",
    "HintKind", "HybridizationHint", "RotationManager", "RotationState",
]
