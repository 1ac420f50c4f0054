"""In-memory blob storage for local development and tests."""

from dataclasses import dataclass, field

from app.adapters.storage.base import BlobNotFoundError, BlobStorageError, BlobStore


@dataclass(slots=True)
class InMemoryBlobStore(BlobStore):
    default_bucket: str | None = None
    blobs: set[tuple[str, str]] = field(default_factory=set)
    delete_calls: list[tuple[str, str]] = field(default_factory=list)
    outage_message: str | None = None

    def put(self, bucket: str, path: str) -> None:
        self.blobs.add((bucket, path))

    async def delete(self, bucket: str, path: str) -> None:
        self.delete_calls.append((bucket, path))
        if self.outage_message is not None:
            raise BlobStorageError(self.outage_message)
        key = (bucket, path)
        if key not in self.blobs:
            raise BlobNotFoundError(path)
        self.blobs.discard(key)


__all__ = ["InMemoryBlobStore"]
