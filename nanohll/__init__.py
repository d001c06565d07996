"""
nanohll - HyperLogLog cardinality estimation with pluggable storage
"""

from nanohll.lib.hyperloglog import HyperLogLog
from nanohll.lib.exact import ExactCounter
from nanohll.lib.errors import (
    HLLError,
    ConfigError,
    PrecisionMismatchError,
    FormatError,
    StorageError,
    NotFoundError,
    InvalidKeyError,
)
from nanohll.lib.storage import Storage, MemoryStorage, FileStorage, create_storage
from nanohll.lib.commands import HLLService
from nanohll.lib.config import Settings, StorageBackend

__version__ = '0.1.0'

__all__ = [
    'HyperLogLog',
    'ExactCounter',
    'HLLError',
    'ConfigError',
    'PrecisionMismatchError',
    'FormatError',
    'StorageError',
    'NotFoundError',
    'InvalidKeyError',
    'Storage',
    'MemoryStorage',
    'FileStorage',
    'create_storage',
    'HLLService',
    'Settings',
    'StorageBackend',
]
