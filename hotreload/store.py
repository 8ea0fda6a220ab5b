"""In-process blob store used as a backing store for delegates.

The store is a namespaced key/value map of raw bytes. Keys are namespace
paths; values carry a format version alongside the contents so entries written
by an older layout can be told apart from current ones.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol
from typing import runtime_checkable

from .exceptions import BackendError
from .exceptions import InvalidArgumentError
from .naming import validate_path

logger = logging.getLogger(__name__)

CURRENT_VERSION = 1


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for namespaced blob stores consumed by StoreDelegate."""

    namespace: str

    def get(self, path: str) -> bytes | None:
        """Return contents for ``path`` or None."""
        ...

    def put(self, path: str, contents: bytes) -> None:
        """Insert or overwrite ``path``."""
        ...

    def delete(self, path: str) -> None:
        """Remove ``path``; no-op if absent."""
        ...

    def get_many(self, paths: Iterable[str]) -> dict[str, bytes]:
        """Return contents for every present path."""
        ...

    def put_many(self, contents: Mapping[str, bytes]) -> None:
        """Insert or overwrite every path in ``contents``."""
        ...

    def delete_many(self, paths: Iterable[str]) -> None:
        """Remove every path; absent paths are ignored."""
        ...


@dataclass(frozen=True)
class _Entry:
    contents: bytes
    version: int = CURRENT_VERSION


class InMemoryBlobStore:
    """Thread-safe in-memory BlobStore.

    Contract:
    - Inputs: namespace paths (str), contents (bytes)
    - Outputs: stored bytes, or None when absent
    - Side effects: mutates the in-process map only
    - Errors: InvalidArgumentError for empty paths or non-bytes contents,
      BackendError when a batch exceeds max_batch_size
    """

    def __init__(self, namespace: str = "resources", max_batch_size: int | None = None):
        """Initialize an empty store.

        Args:
            namespace: Name distinguishing this store from others (used in locators)
            max_batch_size: Maximum number of paths per batched call (None = unlimited)
        """
        if not namespace:
            raise InvalidArgumentError("namespace must not be empty")
        self.namespace = namespace
        self.max_batch_size = max_batch_size
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(path: str) -> str:
        return "/" + validate_path(path)

    @staticmethod
    def _check_contents(path: str, contents: bytes) -> bytes:
        if not isinstance(contents, bytes | bytearray | memoryview):
            raise InvalidArgumentError(f"contents for {path} must be bytes")
        return bytes(contents)

    def _check_batch(self, size: int) -> None:
        if self.max_batch_size is not None and size > self.max_batch_size:
            raise BackendError(
                f"batch of {size} exceeds limit {self.max_batch_size} for store '{self.namespace}'"
            )

    def get(self, path: str) -> bytes | None:
        key = self._key(path)
        with self._lock:
            entry = self._entries.get(key)
        return entry.contents if entry is not None else None

    def put(self, path: str, contents: bytes) -> None:
        key = self._key(path)
        entry = _Entry(self._check_contents(path, contents))
        with self._lock:
            self._entries[key] = entry
        logger.debug(f"[store:{self.namespace}] put {path} ({len(entry.contents)} bytes)")

    def delete(self, path: str) -> None:
        key = self._key(path)
        with self._lock:
            self._entries.pop(key, None)
        logger.debug(f"[store:{self.namespace}] delete {path}")

    def get_many(self, paths: Iterable[str]) -> dict[str, bytes]:
        keys = {self._key(path): path for path in paths}
        self._check_batch(len(keys))
        with self._lock:
            found = {keys[key]: self._entries[key].contents for key in keys if key in self._entries}
        return found

    def put_many(self, contents: Mapping[str, bytes]) -> None:
        self._check_batch(len(contents))
        entries = {
            self._key(path): _Entry(self._check_contents(path, data)) for path, data in contents.items()
        }
        with self._lock:
            self._entries.update(entries)
        logger.debug(f"[store:{self.namespace}] put {len(entries)} entries")

    def delete_many(self, paths: Iterable[str]) -> None:
        keys = [self._key(path) for path in paths]
        self._check_batch(len(keys))
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)
        logger.debug(f"[store:{self.namespace}] delete {len(keys)} entries")

    def paths(self) -> list[str]:
        """List stored paths in sorted order."""
        with self._lock:
            return sorted(key[1:] for key in self._entries)

    def __contains__(self, path: str) -> bool:
        return self.get(path) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"InMemoryBlobStore(namespace={self.namespace!r}, entries={len(self)})"
