"""Blob storage interfaces."""

from abc import ABC, abstractmethod


class BlobStorageError(Exception):
    """Raised when the storage backend fails an operation."""


class BlobNotFoundError(BlobStorageError):
    """Raised when the addressed blob does not exist."""


class BlobStore(ABC):
    """Delete-only view of durable blob storage."""

    default_bucket: str | None = None

    @abstractmethod
    async def delete(self, bucket: str, path: str) -> None:
        """Delete ``path`` in ``bucket``; raise BlobNotFoundError if it is absent."""


__all__ = ["BlobNotFoundError", "BlobStorageError", "BlobStore"]
