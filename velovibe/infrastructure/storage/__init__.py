"""
Key-value storage for exercises and workouts.

File-backed JSON storage with an in-memory mode for local development.
"""

from .client import (
    FileKeyValueStorage,
    MockKeyValueStorage,
    StorageError,
    create_storage,
)

__all__ = ["FileKeyValueStorage", "MockKeyValueStorage", "StorageError", "create_storage"]
