"""
Key-value storage for the persisted exercise and workout collections.

Two implementations of the KeyValueStorage protocol from
core.tracking.migration:
- FileKeyValueStorage keeps one JSON file per key in a data directory
- MockKeyValueStorage keeps everything in memory for development and tests

Writes are synchronous and durable before they return. There is only ever
one writer (the store), so no locking is done here.
"""

import logging
import os
import re
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Optional

from velovibe.core.tracking.migration import KeyValueStorage


logger = logging.getLogger(__name__)


_VALID_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


def _check_key(key: str) -> None:
    # Keys become file names; keep them from escaping the data directory.
    if not _VALID_KEY.match(key) or key in (".", ".."):
        raise StorageError(f"Invalid storage key: {key!r}")


class FileKeyValueStorage:
    """
    Stores each key as `<data_dir>/<key>.json`.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash mid-write never leaves a half-written file.
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir).expanduser()
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self._data_dir}: {e}") from e
        logger.info("Using file storage", extra={"data_dir": str(self._data_dir)})

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        _check_key(key)
        return self._data_dir / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            # Reported as an empty payload so migration takes its unparsable
            # path; nothing decoded from the bad bytes is ever written back.
            logger.warning("Stored file is not valid UTF-8", extra={"path": str(path), "error": str(e)})
            return ""
        except OSError as e:
            raise StorageError(f"Read failed for {key}: {e}") from e

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            with NamedTemporaryFile(
                "w",
                dir=self._data_dir,
                prefix=f".{key}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
            ) as tmp:
                tmp.write(value)
                tmp.flush()
                os.fsync(tmp.fileno())
                temp_path = Path(tmp.name)
            temp_path.replace(path)
        except OSError as e:
            logger.error("Storage write failed", extra={"key": key, "error": str(e)})
            raise StorageError(f"Write failed for {key}: {e}") from e

        logger.debug("Stored value", extra={"key": key, "size_bytes": len(value)})


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockKeyValueStorage:
    """
    In-memory storage for local development and tests.

    Counts writes so tests can check that an operation did (or didn't)
    touch storage.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self.write_count = 0
        logger.info("Initialized mock storage (in-memory)")

    def read(self, key: str) -> Optional[str]:
        _check_key(key)
        return self._values.get(key)

    def write(self, key: str, value: str) -> None:
        _check_key(key)
        self._values[key] = value
        self.write_count += 1


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage(
    data_dir: Optional[str] = None,
    mock_mode: bool = False,
) -> KeyValueStorage:
    """
    Create storage based on configuration.

    Args:
        data_dir: Directory for JSON files (required if not mock_mode)
        mock_mode: If True, return in-memory storage

    Returns:
        KeyValueStorage implementation (file or mock)
    """
    if mock_mode:
        return MockKeyValueStorage()

    if not data_dir:
        raise ValueError("data_dir is required when not in mock mode")

    return FileKeyValueStorage(Path(data_dir))
