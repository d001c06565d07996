from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Iterable
from nanohll.lib.hashing import canonical_bytes, hash64, DEFAULT_SEED

class AbstractSketch(ABC):
    """Base class for distinct-element counters."""

    @abstractmethod
    def add(self, value: Any) -> None:
        """Add a value with a canonical byte representation."""
        pass

    def add_str(self, s: str) -> None:
        """Add a string to the sketch."""
        self.add(s)

    def add_batch(self, values: Iterable[Any]) -> None:
        """Add multiple values to the sketch.

        Args:
            values: Iterable of values to add to the sketch
        """
        for value in values:
            self.add(value)

    @abstractmethod
    def count(self) -> int:
        """Return the (estimated) number of distinct values added."""
        pass

    @abstractmethod
    def merge(self, other: 'AbstractSketch') -> None:
        """Merge another sketch of the same kind into this one."""
        pass

    def hash_value(self, value: Any) -> int:
        """Hash a value using the instance's seed.

        Args:
            value: Value to hash

        Returns:
            64-bit hash value as integer
        """
        seed = getattr(self, 'seed', DEFAULT_SEED)
        return hash64(canonical_bytes(value), seed=seed)
