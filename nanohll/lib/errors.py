"""Exceptions raised by nanohll."""


class HLLError(Exception):
    """Base class for all nanohll errors."""
    pass


class ConfigError(HLLError, ValueError):
    """Invalid configuration, e.g. a precision outside [4, 16]."""
    pass


class PrecisionMismatchError(HLLError, ValueError):
    """Merge attempted between sketches of different precision."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Cannot merge HyperLogLog sketches with different precisions "
            f"({expected} vs {actual})")
        self.expected = expected
        self.actual = actual


class FormatError(HLLError, ValueError):
    """Malformed serialized sketch."""
    pass


class StorageError(HLLError):
    """A storage backend failed to read or write a sketch."""
    pass


class NotFoundError(StorageError, KeyError):
    """No sketch is stored under the requested key."""

    def __init__(self, key: str):
        super().__init__(f"HyperLogLog not found: {key}")
        self.key = key

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class InvalidKeyError(HLLError, ValueError):
    """A key cannot be used to address a sketch."""
    pass
