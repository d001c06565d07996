"""
nanohll storage backends

Keyed persistence for HyperLogLog sketches.  Backends are interchangeable
implementations of ``Storage`` and are chosen at start-up by
``create_storage``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Union
import os
import tempfile

import structlog # type: ignore

from nanohll.lib.config import Settings, StorageBackend, parse_backend
from nanohll.lib.errors import ConfigError, InvalidKeyError, NotFoundError, StorageError
from nanohll.lib.hyperloglog import HyperLogLog

logger = structlog.get_logger(__name__)

FILE_SUFFIX = ".hll"
TEMP_SUFFIX = ".tmp"


def validate_key(key: str) -> str:
    """Check that a key can name a sketch in every backend.

    Raises:
        InvalidKeyError: For empty keys, non-strings, path separators, NUL
            characters, or the names ``.`` and ``..``
    """
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(f"Key must be a non-empty string, got {key!r}")
    if "/" in key or "\\" in key or "\x00" in key or key in (".", ".."):
        raise InvalidKeyError(f"Invalid key: {key!r}")
    return key


class Storage(ABC):
    """Storage backend for HyperLogLog sketches."""

    @abstractmethod
    def store(self, key: str, hll: HyperLogLog) -> None:
        """Store a sketch under the given key, replacing any previous one."""
        pass

    @abstractmethod
    def load(self, key: str) -> HyperLogLog:
        """Load the sketch stored under key.

        Raises:
            NotFoundError: If nothing is stored under key
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the sketch stored under key; missing keys are ignored."""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if a key exists."""
        pass

    @abstractmethod
    def list_keys(self) -> List[str]:
        """List all keys in sorted order."""
        pass


class MemoryStorage(Storage):
    """In-process storage, mainly for tests and short-lived services.

    Sketches are kept as ``to_bytes`` snapshots so a loaded sketch never
    aliases the stored one.
    """

    def __init__(self):
        self._data: Dict[str, bytes] = {}

    def store(self, key: str, hll: HyperLogLog) -> None:
        self._data[validate_key(key)] = hll.to_bytes()
        logger.debug("sketch_stored", backend="memory", key=key, precision=hll.precision)

    def load(self, key: str) -> HyperLogLog:
        try:
            payload = self._data[validate_key(key)]
        except KeyError:
            raise NotFoundError(key) from None
        return HyperLogLog.from_bytes(payload)

    def delete(self, key: str) -> None:
        if self._data.pop(validate_key(key), None) is not None:
            logger.debug("sketch_deleted", backend="memory", key=key)

    def exists(self, key: str) -> bool:
        return validate_key(key) in self._data

    def list_keys(self) -> List[str]:
        return sorted(self._data)


class FileStorage(Storage):
    """File-based storage: one JSON document per key in a base directory."""

    def __init__(self, base_path: Union[str, Path]):
        """Create the base directory if needed.

        Args:
            base_path: Directory holding ``<key>.hll`` files

        Raises:
            StorageError: If the directory cannot be created
        """
        self.base_path = Path(base_path)
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create storage directory {self.base_path}: {exc}") from exc

    def _key_to_path(self, key: str) -> Path:
        return self.base_path / f"{validate_key(key)}{FILE_SUFFIX}"

    def store(self, key: str, hll: HyperLogLog) -> None:
        path = self._key_to_path(key)
        tmp_name = None
        try:
            # Write beside the target and rename so readers never see a partial file
            fd, tmp_name = tempfile.mkstemp(dir=self.base_path, prefix=".", suffix=TEMP_SUFFIX)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(hll.to_json())
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Failed to store {key!r}: {exc}") from exc
        logger.debug("sketch_stored", backend="file", key=key, path=str(path))

    def load(self, key: str) -> HyperLogLog:
        path = self._key_to_path(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFoundError(key) from None
        except OSError as exc:
            raise StorageError(f"Failed to load {key!r}: {exc}") from exc
        logger.debug("sketch_loaded", backend="file", key=key)
        return HyperLogLog.from_json(text)

    def delete(self, key: str) -> None:
        path = self._key_to_path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"Failed to delete {key!r}: {exc}") from exc
        logger.debug("sketch_deleted", backend="file", key=key)

    def exists(self, key: str) -> bool:
        return self._key_to_path(key).is_file()

    def list_keys(self) -> List[str]:
        try:
            entries = list(self.base_path.iterdir())
        except OSError as exc:
            raise StorageError(f"Failed to list {self.base_path}: {exc}") from exc
        return sorted(
            entry.name[:-len(FILE_SUFFIX)]
            for entry in entries
            if entry.is_file() and entry.name.endswith(FILE_SUFFIX)
        )


def create_storage(settings: Settings) -> Storage:
    """Build the storage backend named by the settings.

    Raises:
        ConfigError: If the backend is unknown
    """
    backend = parse_backend(settings.backend)
    if backend is StorageBackend.MEMORY:
        logger.info("using_memory_storage")
        return MemoryStorage()
    if backend is StorageBackend.FILE:
        logger.info("using_file_storage", path=str(settings.data_dir))
        return FileStorage(settings.data_dir)
    raise ConfigError(f"Unsupported storage backend: {backend}")
