"""Child kinds managed by the pulp operator."""

from .base import ChildKind
from .registry import KindRegistry

__all__ = ["ChildKind", "KindRegistry"]
