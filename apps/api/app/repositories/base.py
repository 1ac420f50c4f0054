"""Canonical record store interface."""

from abc import ABC, abstractmethod
from typing import Any, Callable

Snapshot = dict[str, Any] | None
SnapshotListener = Callable[[Snapshot], None]
Unsubscribe = Callable[[], None]


class RecordStoreError(Exception):
    """Raised when the document store cannot complete a read or write."""


class RecordStore(ABC):
    """Single-document operations over the media item collection.

    Writers only ever merge named fields; no method replaces a whole
    document that already exists.
    """

    @abstractmethod
    async def create(self, data: dict[str, Any], *, item_id: str | None = None) -> str:
        """Create a document and return its id."""

    @abstractmethod
    async def get(self, item_id: str) -> Snapshot:
        """Return the current document data, or None when absent."""

    @abstractmethod
    async def merge(self, item_id: str, fields: dict[str, Any]) -> None:
        """Set ``fields`` on the document, creating it when it does not exist."""

    @abstractmethod
    async def delete(self, item_id: str) -> None:
        """Hard-delete the document; deleting an absent document is a no-op."""

    @abstractmethod
    def subscribe(self, item_id: str, listener: SnapshotListener) -> Unsubscribe:
        """Deliver the current snapshot now and again after every change."""

    async def aclose(self) -> None:
        """Release client resources."""


__all__ = ["RecordStore", "RecordStoreError", "Snapshot", "SnapshotListener", "Unsubscribe"]
