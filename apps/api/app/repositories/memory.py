"""In-memory record store used for local development and tests."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from app.repositories.base import RecordStore, RecordStoreError, Snapshot, SnapshotListener, Unsubscribe


@dataclass(slots=True)
class InMemoryRecordStore(RecordStore):
    """Simple, deterministic document store with live listeners.

    ``merge_failure_message`` makes the next merge raise once, mimicking a
    backend outage.
    """

    documents: dict[str, dict[str, Any]] = field(default_factory=dict)
    listeners: dict[str, list[SnapshotListener]] = field(default_factory=dict)
    write_count: int = 0
    merge_failure_message: str | None = None

    def _snapshot(self, item_id: str) -> Snapshot:
        document = self.documents.get(item_id)
        return copy.deepcopy(document) if document is not None else None

    def _notify(self, item_id: str) -> None:
        for listener in list(self.listeners.get(item_id, [])):
            listener(self._snapshot(item_id))

    async def create(self, data: dict[str, Any], *, item_id: str | None = None) -> str:
        new_id = item_id or str(uuid4())
        self.documents[new_id] = copy.deepcopy(data)
        self.write_count += 1
        self._notify(new_id)
        return new_id

    async def get(self, item_id: str) -> Snapshot:
        return self._snapshot(item_id)

    async def merge(self, item_id: str, fields: dict[str, Any]) -> None:
        if self.merge_failure_message is not None:
            message = self.merge_failure_message
            self.merge_failure_message = None
            raise RecordStoreError(message)

        document = self.documents.setdefault(item_id, {})
        document.update(copy.deepcopy(fields))
        self.write_count += 1
        self._notify(item_id)

    async def delete(self, item_id: str) -> None:
        if self.documents.pop(item_id, None) is None:
            return
        self.write_count += 1
        self._notify(item_id)

    def subscribe(self, item_id: str, listener: SnapshotListener) -> Unsubscribe:
        self.listeners.setdefault(item_id, []).append(listener)
        listener(self._snapshot(item_id))

        def unsubscribe() -> None:
            registered = self.listeners.get(item_id, [])
            if listener in registered:
                registered.remove(listener)

        return unsubscribe


__all__ = ["InMemoryRecordStore"]
