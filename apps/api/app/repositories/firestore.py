"""Firestore-backed record store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from app.repositories.base import RecordStore, RecordStoreError, Snapshot, SnapshotListener, Unsubscribe

logger = logging.getLogger(__name__)


class FirestoreRecordStore(RecordStore):
    """Maps record operations onto one Firestore collection.

    The Admin SDK client is synchronous, so calls run in worker threads.
    """

    def __init__(self, collection: str, *, project_id: str | None = None, client: Any | None = None) -> None:
        self._collection_name = collection
        self._project_id = project_id
        self._client = client

    def _db(self) -> Any:
        if self._client is not None:
            return self._client
        try:
            import firebase_admin
            from firebase_admin import firestore
        except ImportError as exc:  # pragma: no cover - depends on optional package
            raise RecordStoreError("Firestore client is unavailable") from exc

        if not firebase_admin._apps:
            options = {"projectId": self._project_id} if self._project_id else None
            firebase_admin.initialize_app(options=options)
        self._client = firestore.client()
        return self._client

    def _doc(self, item_id: str) -> Any:
        return self._db().collection(self._collection_name).document(item_id)

    async def _call(self, operation: str, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except RecordStoreError:
            raise
        except Exception as exc:  # provider exception surface
            logger.warning("record_store.failed operation=%s error=%s", operation, type(exc).__name__)
            raise RecordStoreError(f"Firestore {operation} failed: {exc}") from exc

    async def create(self, data: dict[str, Any], *, item_id: str | None = None) -> str:
        def _create() -> str:
            collection = self._db().collection(self._collection_name)
            ref = collection.document(item_id) if item_id else collection.document()
            ref.create(data)
            return ref.id

        return await self._call("create", _create)

    async def get(self, item_id: str) -> Snapshot:
        def _get() -> Snapshot:
            snapshot = self._doc(item_id).get()
            return snapshot.to_dict() if snapshot.exists else None

        return await self._call("get", _get)

    async def merge(self, item_id: str, fields: dict[str, Any]) -> None:
        await self._call("merge", lambda: self._doc(item_id).set(fields, merge=True))

    async def delete(self, item_id: str) -> None:
        await self._call("delete", lambda: self._doc(item_id).delete())

    def subscribe(self, item_id: str, listener: SnapshotListener) -> Unsubscribe:
        def on_snapshot(documents: list[Any], _changes: Any, _read_time: Any) -> None:
            # A deleted or never-created document arrives as an empty batch.
            existing = [document for document in documents if document.exists]
            listener(existing[-1].to_dict() if existing else None)

        watch = self._doc(item_id).on_snapshot(on_snapshot)
        return watch.unsubscribe

    async def aclose(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await asyncio.to_thread(self._client.close)


__all__ = ["FirestoreRecordStore"]
