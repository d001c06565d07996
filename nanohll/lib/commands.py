"""
nanohll command layer

Redis-style HyperLogLog commands (PFADD, PFCOUNT, PFMERGE plus EXISTS,
DELETE and KEYS) over a ``Storage`` backend.  The layer is transport
neutral: a front end calls these methods and maps raised errors to its own
status codes with ``status_code``.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Sequence, Union

import structlog # type: ignore

from nanohll.lib.errors import (
    ConfigError,
    InvalidKeyError,
    NotFoundError,
    PrecisionMismatchError,
)
from nanohll.lib.hyperloglog import HyperLogLog
from nanohll.lib.storage import Storage, validate_key

logger = structlog.get_logger(__name__)

DEFAULT_PRECISION = 14


def status_code(exc: BaseException) -> int:
    """HTTP-style status code for an error raised by a command."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (InvalidKeyError, ConfigError, PrecisionMismatchError)):
        return 400
    return 500


def split_keys(keys: Union[str, Iterable[str]]) -> List[str]:
    """Accept one key, a comma separated string, or a sequence of keys."""
    if isinstance(keys, str):
        return [k for k in keys.split(",") if k]
    return list(keys)


class HLLService:
    """Keyed HyperLogLog commands with per-key write locking."""

    def __init__(self, storage: Storage, default_precision: int = DEFAULT_PRECISION):
        """
        Args:
            storage: Backend holding the sketches
            default_precision: Precision for keys created by ``pfadd``

        Raises:
            ConfigError: If default_precision is out of range
        """
        # Fail early rather than on the first pfadd
        HyperLogLog(default_precision)
        self.storage = storage
        self.default_precision = default_precision
        # key -> [lock, number of callers holding or waiting on it]
        self._locks: Dict[str, List[Any]] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        """Hold the write lock for key; the entry is dropped once unused."""
        with self._locks_guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def pfadd(self, key: str, elements: Iterable[Any]) -> int:
        """Add elements to the sketch at key, creating it when missing.

        Returns:
            Number of elements processed

        Raises:
            TypeError: If elements is a single str or bytes value
        """
        validate_key(key)
        if isinstance(elements, (str, bytes, bytearray)):
            raise TypeError(
                f"pfadd expects an iterable of elements, got a single {type(elements).__name__}")
        with self._locked(key):
            try:
                hll = self.storage.load(key)
            except NotFoundError:
                hll = HyperLogLog(self.default_precision)
                logger.debug("sketch_created", key=key, precision=self.default_precision)

            added = 0
            for element in elements:
                hll.add(element)
                added += 1

            self.storage.store(key, hll)
        logger.debug("elements_added", key=key, elements=added)
        return added

    def _load_union(self, keys: Sequence[str]) -> HyperLogLog:
        merged = self.storage.load(keys[0])
        for key in keys[1:]:
            merged.merge(self.storage.load(key))
        return merged

    def pfcount(self, keys: Union[str, Iterable[str]]) -> int:
        """Estimate the cardinality of the union of one or more keys.

        Returns:
            Estimate, or 0 when no keys are given

        Raises:
            NotFoundError: If any key is missing
            PrecisionMismatchError: If the sketches differ in precision
        """
        key_list = split_keys(keys)
        if not key_list:
            return 0
        return self._load_union(key_list).count()

    def pfmerge(self, dest_key: str, source_keys: Union[str, Iterable[str]]) -> HyperLogLog:
        """Merge the source sketches and store the result at dest_key.

        The previous value of dest_key is replaced, not merged in, unless
        dest_key is one of the sources.

        Returns:
            The merged sketch
        """
        validate_key(dest_key)
        key_list = split_keys(source_keys)
        if not key_list:
            raise InvalidKeyError("No source keys provided")

        with self._locked(dest_key):
            merged = self._load_union(key_list)
            self.storage.store(dest_key, merged)
        logger.info("sketches_merged", dest=dest_key, sources=key_list)
        return merged

    def exists(self, key: str) -> bool:
        return self.storage.exists(key)

    def delete(self, key: str) -> None:
        with self._locked(validate_key(key)):
            self.storage.delete(key)
        logger.info("sketch_deleted", key=key)

    def list_keys(self) -> List[str]:
        return self.storage.list_keys()
