"""Hashing and bucketing for HyperLogLog sketches.

Every element is first converted to a canonical byte string, then hashed to a
64-bit value with xxHash64.  The low ``precision`` bits of the hash select a
register and the remaining bits give the element's rank.
"""
from __future__ import annotations
import struct
from functools import singledispatch
from typing import Tuple
import numpy as np # type: ignore
import xxhash # type: ignore

HASH_BITS = 64
DEFAULT_SEED = 0


@singledispatch
def canonical_bytes(value) -> bytes:
    """Convert a value to the byte string that gets hashed.

    Objects defining ``__bytes__`` are accepted as they are.  Other types can
    be supported with ``canonical_bytes.register``.

    Raises:
        TypeError: If the value has no canonical byte representation
    """
    if hasattr(type(value), '__bytes__'):
        return bytes(value)
    raise TypeError(
        f"Cannot convert {type(value).__name__} to bytes for hashing")


@canonical_bytes.register(bytes)
@canonical_bytes.register(bytearray)
@canonical_bytes.register(memoryview)
def _(value) -> bytes:
    return bytes(value)


@canonical_bytes.register(str)
def _(value: str) -> bytes:
    return value.encode('utf-8')


@canonical_bytes.register(bool)
def _(value: bool) -> bytes:
    return b'\x01' if value else b'\x00'


@canonical_bytes.register(int)
def _(value: int) -> bytes:
    # 8 bytes covers every 64-bit integer; wider values grow as needed
    length = max(8, (value.bit_length() + 8) // 8)
    return value.to_bytes(length, byteorder='little', signed=True)


@canonical_bytes.register(float)
def _(value: float) -> bytes:
    return struct.pack('<d', value)


@canonical_bytes.register(np.integer)
def _(value) -> bytes:
    return canonical_bytes(int(value))


@canonical_bytes.register(np.floating)
def _(value) -> bytes:
    return canonical_bytes(float(value))


def hash64(data: bytes, seed: int = DEFAULT_SEED) -> int:
    """64-bit xxHash of a byte string.

    Args:
        data: Bytes to hash
        seed: Hash seed

    Returns:
        Unsigned 64-bit hash value as integer
    """
    hasher = xxhash.xxh64(seed=seed)
    hasher.update(data)
    return hasher.intdigest()


def max_rank(precision: int) -> int:
    """Largest rank a register can hold at this precision."""
    return HASH_BITS - precision + 1


def bucket_and_rank(hash_value: int, precision: int) -> Tuple[int, int]:
    """Split a 64-bit hash into a register index and a rank.

    The index is the low ``precision`` bits.  The rank is one more than the
    number of leading zeros in the remaining ``64 - precision`` bits, so an
    all-zero remainder gives ``max_rank(precision)``.

    Args:
        hash_value: Unsigned 64-bit hash
        precision: Number of index bits

    Returns:
        Tuple of (bucket index, rank)
    """
    bucket = hash_value & ((1 << precision) - 1)
    remainder = hash_value >> precision
    rank = (HASH_BITS - precision) - remainder.bit_length() + 1
    return bucket, rank
