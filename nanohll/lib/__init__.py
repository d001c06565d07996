from .hyperloglog import HyperLogLog
from .exact import ExactCounter
from .hashing import canonical_bytes, hash64, bucket_and_rank

__all__ = [
    'HyperLogLog',
    'ExactCounter',
    'canonical_bytes',
    'hash64',
    'bucket_and_rank',
]
