from __future__ import annotations
import json
import math
from typing import Any, Dict, Mapping, Union
import numpy as np # type: ignore
from nanohll.lib.abstractsketch import AbstractSketch
from nanohll.lib.errors import ConfigError, FormatError, PrecisionMismatchError
from nanohll.lib.hashing import bucket_and_rank, max_rank, DEFAULT_SEED

MIN_PRECISION = 4
MAX_PRECISION = 16

# Classical Flajolet et al. constants; the large range correction assumes a
# 32-bit hash space
TWO_POW_32 = float(1 << 32)
LARGE_RANGE_THRESHOLD = TWO_POW_32 / 30.0


class HyperLogLog(AbstractSketch):
    """HyperLogLog cardinality estimator with one byte per register."""

    seed = DEFAULT_SEED

    def __init__(self, precision: int = 14):
        """Initialize an empty HyperLogLog sketch.

        Args:
            precision: Number of bits for register indexing (4-16).
                      The sketch holds 2^precision registers and has a
                      standard error of about 1.04/sqrt(2^precision).

        Raises:
            ConfigError: If precision is not an integer in [4, 16]
        """
        super().__init__()

        if isinstance(precision, bool) or not isinstance(precision, (int, np.integer)):
            raise ConfigError(f"Precision must be an integer, got {precision!r}")
        if precision < MIN_PRECISION or precision > MAX_PRECISION:
            raise ConfigError(
                f"Precision must be between {MIN_PRECISION} and {MAX_PRECISION}, got {precision}")

        self.precision = int(precision)
        self.num_registers = 1 << self.precision
        self.max_rank = max_rank(self.precision)
        self.registers = np.zeros(self.num_registers, dtype=np.uint8)
        self.alpha_mm = self._get_alpha(self.num_registers)

    @staticmethod
    def _get_alpha(m: int) -> float:
        """Get alpha constant based on number of registers."""
        if m == 16:
            return 0.673
        elif m == 32:
            return 0.697
        elif m == 64:
            return 0.709
        else:
            return 0.7213 / (1.0 + 1.079 / m)

    @property
    def standard_error(self) -> float:
        """Relative standard error of the estimate at this precision."""
        return 1.04 / math.sqrt(self.num_registers)

    def add(self, value: Any) -> None:
        """Add a value to the sketch.

        The value is converted to its canonical bytes and hashed; at most one
        register changes.

        Args:
            value: Any value accepted by ``canonical_bytes``
        """
        bucket, rank = bucket_and_rank(self.hash_value(value), self.precision)
        if rank > self.registers[bucket]:
            self.registers[bucket] = rank

    def add_str(self, s: str) -> None:
        """Add a string to the sketch."""
        if not isinstance(s, str):
            raise TypeError(f"add_str expects str, got {type(s).__name__}")
        self.add(s)

    def raw_estimate(self) -> float:
        """Calculate the raw cardinality estimate before corrections.

        Returns:
            alpha_m * m^2 / sum(2^-register)
        """
        m = float(self.num_registers)
        # Cast before negating; uint8 negation wraps
        harmonic_sum = np.sum(np.exp2(-self.registers.astype(np.float64)))
        return self.alpha_mm * m * m / float(harmonic_sum)

    def count(self) -> int:
        """Estimate the number of distinct values added.

        Uses linear counting while the raw estimate is at most 2.5m and some
        register is still zero, and the large range correction above
        2^32/30.

        Returns:
            Estimate rounded to the nearest non-negative integer
        """
        m = float(self.num_registers)
        estimate = self.raw_estimate()

        # Small range correction
        if estimate <= 2.5 * m:
            zeros = int(np.count_nonzero(self.registers == 0))
            if zeros > 0:
                return int(round(m * math.log(m / zeros)))

        # Large range correction
        if estimate > LARGE_RANGE_THRESHOLD:
            log_arg = 1.0 - estimate / TWO_POW_32
            # Undefined once the estimate reaches 2^32; keep the raw value
            if log_arg > 0.0:
                estimate = -TWO_POW_32 * math.log(log_arg)

        return max(0, int(round(estimate)))

    def merge(self, other: 'HyperLogLog') -> None:
        """Merge another HLL sketch into this one.

        Takes the element-wise maximum of the two register arrays in place.
        The result equals the sketch of the union of both inputs.

        Args:
            other: Another HyperLogLog sketch to merge into this one

        Raises:
            TypeError: If other is not a HyperLogLog
            PrecisionMismatchError: If the sketches have different precision
                values; this sketch is left unchanged
        """
        if not isinstance(other, HyperLogLog):
            raise TypeError("Can only merge with another HyperLogLog sketch")
        if self.precision != other.precision:
            raise PrecisionMismatchError(self.precision, other.precision)

        np.maximum(self.registers, other.registers, out=self.registers)

    def is_empty(self) -> bool:
        """Check if sketch is empty."""
        return not self.registers.any()

    def copy(self) -> 'HyperLogLog':
        """Return an independent sketch with the same registers."""
        clone = type(self)(self.precision)
        clone.registers = self.registers.copy()
        return clone

    __copy__ = copy

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HyperLogLog):
            return NotImplemented
        return (self.precision == other.precision
                and np.array_equal(self.registers, other.registers))

    # Mutable
    __hash__ = None # type: ignore

    def __repr__(self) -> str:
        return f"HyperLogLog(precision={self.precision})"

    @classmethod
    def _restore(cls, precision: Any, registers: np.ndarray) -> 'HyperLogLog':
        """Build a sketch from deserialized parts, validating all of them."""
        try:
            sketch = cls(precision)
        except ConfigError as exc:
            raise FormatError(f"Invalid precision in serialized sketch: {precision!r}") from exc

        if registers.shape != (sketch.num_registers,):
            raise FormatError(
                f"Expected {sketch.num_registers} registers for precision "
                f"{sketch.precision}, got {registers.size}")
        if registers.size and (registers.min() < 0 or registers.max() > sketch.max_rank):
            raise FormatError(
                f"Register values must lie in [0, {sketch.max_rank}] for precision {sketch.precision}")

        sketch.registers = registers.astype(np.uint8)
        return sketch

    def to_bytes(self) -> bytes:
        """Serialize as one precision byte followed by the raw registers."""
        return bytes([self.precision]) + self.registers.tobytes()

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray, memoryview]) -> 'HyperLogLog':
        """Load a sketch written by ``to_bytes``.

        Args:
            data: Serialized sketch

        Returns:
            HyperLogLog with the stored precision and registers

        Raises:
            FormatError: If the header or length is wrong
        """
        data = bytes(data)
        if not data:
            raise FormatError("Serialized HyperLogLog is empty")
        registers = np.frombuffer(data, dtype=np.uint8)[1:]
        return cls._restore(data[0], registers)

    def to_structured(self) -> Dict[str, Any]:
        """Return the ``{precision, registers}`` form used for interchange."""
        return {
            'precision': self.precision,
            'registers': self.registers.tolist(),
        }

    @classmethod
    def from_structured(cls, obj: Mapping[str, Any]) -> 'HyperLogLog':
        """Load a sketch from its ``{precision, registers}`` form.

        An ``m`` field, when present, must equal 2^precision.

        Raises:
            FormatError: If fields are missing, mistyped or inconsistent
        """
        if not isinstance(obj, Mapping):
            raise FormatError(f"Expected a mapping, got {type(obj).__name__}")
        try:
            precision = obj['precision']
            registers = obj['registers']
        except KeyError as exc:
            raise FormatError(f"Missing field {exc.args[0]!r} in serialized HyperLogLog") from exc

        if not isinstance(registers, (list, tuple)):
            raise FormatError("Field 'registers' must be a list of integers")
        if not all(isinstance(r, (int, np.integer)) and not isinstance(r, bool) for r in registers):
            raise FormatError("Field 'registers' must be a list of integers")

        try:
            values = np.array(registers, dtype=np.int64)
        except OverflowError as exc:
            raise FormatError("Register value out of range") from exc
        sketch = cls._restore(precision, values)

        if 'm' in obj and obj['m'] != sketch.num_registers:
            raise FormatError(
                f"Field 'm' is {obj['m']!r}, expected {sketch.num_registers}")
        return sketch

    def to_json(self) -> str:
        """Serialize the structured form as a JSON document."""
        return json.dumps(self.to_structured(), separators=(',', ':'))

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> 'HyperLogLog':
        """Load a sketch from a JSON document written by ``to_json``."""
        try:
            obj = json.loads(text)
        except ValueError as exc:
            raise FormatError(f"Invalid JSON for HyperLogLog: {exc}") from exc
        return cls.from_structured(obj)
