"""Key-addressed blob stores for input and output artifacts."""

from .blob import BlobStore, LocalBlobStore, MemoryBlobStore, StorageError

__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "MemoryBlobStore",
    "StorageError",
]
