"""Blob storage adapters."""

from .base import BlobNotFoundError, BlobStorageError, BlobStore
from .firebase_storage import FirebaseBlobStore
from .memory import InMemoryBlobStore

__all__ = [
    "BlobNotFoundError",
    "BlobStorageError",
    "BlobStore",
    "FirebaseBlobStore",
    "InMemoryBlobStore",
]
