from __future__ import annotations

import logging
import os
import tempfile
import threading
from typing import Dict, Protocol, Tuple

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """A blob store operation failed."""


class BlobStore(Protocol):
    def ensure_container(self, container: str) -> None:
        ...

    def put(self, container: str, key: str, data: bytes, overwrite: bool = True) -> None:
        ...

    def get(self, container: str, key: str) -> bytes:
        ...

    def exists(self, container: str, key: str) -> bool:
        ...


def _check_name(kind: str, value: str) -> None:
    if not value or value.startswith(("/", "\\")) or ".." in value.replace("\\", "/").split("/"):
        raise StorageError(f"Invalid {kind}: {value!r}")


class LocalBlobStore:
    """Containers are directories under ``root``; keys are relative file paths.

    Writes go to a temporary file next to the target and are moved into place
    with ``os.replace``, so a reader never sees a partially written object.
    """

    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    def path(self, container: str, key: str = "") -> str:
        _check_name("container", container)
        if key:
            _check_name("key", key)
            return os.path.join(self.root, container, *key.replace("\\", "/").split("/"))
        return os.path.join(self.root, container)

    def ensure_container(self, container: str) -> None:
        try:
            os.makedirs(self.path(container), exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create container {container!r}: {e}") from e

    def put(self, container: str, key: str, data: bytes, overwrite: bool = True) -> None:
        target = self.path(container, key)
        if not overwrite and os.path.exists(target):
            raise StorageError(f"Blob already exists: {container}/{key}")
        tmp_path = None
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", dir=os.path.dirname(target))
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, target)
            tmp_path = None
        except OSError as e:
            raise StorageError(f"Failed to write {container}/{key}: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
        logger.debug("Wrote %d bytes to %s", len(data), target)

    def get(self, container: str, key: str) -> bytes:
        try:
            with open(self.path(container, key), "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Failed to read {container}/{key}: {e}") from e

    def exists(self, container: str, key: str) -> bool:
        return os.path.isfile(self.path(container, key))


class MemoryBlobStore:
    """In-process store with the same contract as ``LocalBlobStore``."""

    def __init__(self) -> None:
        self.containers: set = set()
        self.blobs: Dict[Tuple[str, str], bytes] = {}
        self._lock = threading.Lock()

    def ensure_container(self, container: str) -> None:
        _check_name("container", container)
        with self._lock:
            self.containers.add(container)

    def put(self, container: str, key: str, data: bytes, overwrite: bool = True) -> None:
        _check_name("key", key)
        with self._lock:
            if container not in self.containers:
                raise StorageError(f"Container does not exist: {container!r}")
            if not overwrite and (container, key) in self.blobs:
                raise StorageError(f"Blob already exists: {container}/{key}")
            self.blobs[(container, key)] = bytes(data)

    def get(self, container: str, key: str) -> bytes:
        with self._lock:
            try:
                return self.blobs[(container, key)]
            except KeyError:
                raise StorageError(f"Blob not found: {container}/{key}") from None

    def exists(self, container: str, key: str) -> bool:
        with self._lock:
            return (container, key) in self.blobs
