from __future__ import annotations
from typing import Any, Set
from nanohll.lib.abstractsketch import AbstractSketch
from nanohll.lib.hashing import canonical_bytes

class ExactCounter(AbstractSketch):
    """Exact distinct counter, used as ground truth for HyperLogLog."""

    def __init__(self):
        """Initialize exact counter."""
        super().__init__()
        self.elements: Set[bytes] = set()

    def add(self, value: Any) -> None:
        """Add a value to the counter.

        Values are stored by their canonical bytes, so ``1`` and ``"1"``
        are distinct exactly when HyperLogLog treats them as distinct.
        """
        self.elements.add(canonical_bytes(value))

    def count(self) -> int:
        """Return exact cardinality."""
        return len(self.elements)

    def merge(self, other: 'ExactCounter') -> None:
        """Merge another counter into this one."""
        if not isinstance(other, ExactCounter):
            raise TypeError("Can only merge with another ExactCounter")
        self.elements.update(other.elements)
