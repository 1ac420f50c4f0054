"""Firebase Cloud Storage adapter."""

from __future__ import annotations

import asyncio

from app.adapters.storage.base import BlobNotFoundError, BlobStorageError, BlobStore


class FirebaseBlobStore(BlobStore):
    """Deletes objects through the Firebase Admin storage client."""

    def __init__(self, default_bucket: str | None = None) -> None:
        self.default_bucket = default_bucket

    def _delete_sync(self, bucket: str, path: str) -> None:
        try:
            import firebase_admin
            from firebase_admin import storage
            from google.api_core import exceptions as gcloud_exceptions
        except ImportError as exc:  # pragma: no cover - depends on optional package
            raise BlobStorageError("Firebase storage client is unavailable") from exc

        if not firebase_admin._apps:
            firebase_admin.initialize_app()

        try:
            storage.bucket(bucket).blob(path).delete()
        except gcloud_exceptions.NotFound as exc:
            raise BlobNotFoundError(path) from exc
        except gcloud_exceptions.GoogleAPIError as exc:  # pragma: no cover - provider exception surface
            raise BlobStorageError(str(exc)) from exc

    async def delete(self, bucket: str, path: str) -> None:
        await asyncio.to_thread(self._delete_sync, bucket, path)


__all__ = ["FirebaseBlobStore"]
