"""
nanohll process configuration

Settings for the storage backend and logging, read from environment
variables.  The HyperLogLog core never reads the environment; everything
here is handed to constructors explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional
import os

from nanohll.lib.errors import ConfigError
from nanohll.lib.hyperloglog import MIN_PRECISION, MAX_PRECISION

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class StorageBackend(str, Enum):
    """Supported storage backends."""
    MEMORY = "memory"
    FILE = "file"


@dataclass
class Settings:
    """Runtime settings for storage, the command layer and logging."""
    backend: StorageBackend = StorageBackend.FILE
    data_dir: Path = field(default_factory=lambda: Path("./data"))
    default_precision: int = 14
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.backend = parse_backend(self.backend)
        self.data_dir = Path(self.data_dir)
        if not MIN_PRECISION <= self.default_precision <= MAX_PRECISION:
            raise ConfigError(
                f"Default precision must be between {MIN_PRECISION} and "
                f"{MAX_PRECISION}, got {self.default_precision}")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Create settings from environment variables.

        ``NANOHLL_*`` names take priority over the shorter
        ``STORAGE_BACKEND`` / ``FILE_STORAGE_PATH`` names.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}

        backend = env.get("NANOHLL_STORAGE_BACKEND") or env.get("STORAGE_BACKEND")
        if backend:
            kwargs["backend"] = backend

        data_dir = env.get("NANOHLL_DATA_DIR") or env.get("FILE_STORAGE_PATH")
        if data_dir:
            kwargs["data_dir"] = Path(data_dir)

        if precision := env.get("NANOHLL_PRECISION"):
            try:
                kwargs["default_precision"] = int(precision)
            except ValueError as exc:
                raise ConfigError(f"NANOHLL_PRECISION must be an integer, got {precision!r}") from exc

        if log_level := env.get("NANOHLL_LOG_LEVEL"):
            kwargs["log_level"] = log_level

        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to a plain dictionary."""
        return {
            "backend": self.backend.value,
            "data_dir": str(self.data_dir),
            "default_precision": self.default_precision,
            "log_level": self.log_level,
        }


def parse_backend(value: Any) -> StorageBackend:
    """Turn a backend name into a StorageBackend."""
    if isinstance(value, StorageBackend):
        return value
    try:
        return StorageBackend(str(value).lower())
    except ValueError as exc:
        choices = ", ".join(b.value for b in StorageBackend)
        raise ConfigError(f"Unknown storage backend {value!r} (choose from {choices})") from exc
