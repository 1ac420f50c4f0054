"""Observation-side gate for one media item's processing lifecycle.

The gate follows a single record through store snapshots, holds an
interaction lock while the item is in flight and releases it on any
terminal transition or when closed. A failed item only offers deletion.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import Any, Callable

from pydantic import ValidationError

from app.client.progress import stage_label, stage_progress
from app.domain.media_fsm import IN_FLIGHT_STATES
from app.repositories.base import RecordStore, Snapshot, Unsubscribe
from app.schemas.media import MediaItem, MediaStatus

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    UNKNOWN = "unknown"
    IN_FLIGHT = "in_flight"
    READY = "ready"
    FAILED = "failed"
    DELETED = "deleted"


_GATE_TRANSITIONS: dict[GateState, frozenset[GateState]] = {
    GateState.UNKNOWN: frozenset({GateState.IN_FLIGHT, GateState.READY, GateState.FAILED, GateState.DELETED}),
    GateState.IN_FLIGHT: frozenset({GateState.IN_FLIGHT, GateState.READY, GateState.FAILED, GateState.DELETED}),
    GateState.READY: frozenset({GateState.READY, GateState.DELETED}),
    GateState.FAILED: frozenset({GateState.FAILED, GateState.DELETED}),
    GateState.DELETED: frozenset({GateState.DELETED}),
}


def gate_transition_allowed(current: GateState, target: GateState) -> bool:
    return target in _GATE_TRANSITIONS[current]


class GateActionError(Exception):
    """Raised when a gate action is not available in the current state."""


class InteractionLock:
    """Holder-tracked UI lock; released holders can never leak a lock."""

    def __init__(self) -> None:
        self._holders: set[int] = set()
        self._mutex = threading.Lock()

    @property
    def locked(self) -> bool:
        with self._mutex:
            return bool(self._holders)

    def acquire(self, holder: object) -> None:
        with self._mutex:
            self._holders.add(id(holder))

    def release(self, holder: object) -> None:
        with self._mutex:
            self._holders.discard(id(holder))


class PendingItems:
    """Session bookkeeping of the item the user just submitted."""

    def __init__(self, item_id: str | None = None) -> None:
        self.item_id = item_id

    def remember(self, item_id: str) -> None:
        self.item_id = item_id

    def clear(self, item_id: str) -> bool:
        if self.item_id is not None and self.item_id == item_id:
            self.item_id = None
            return True
        return False


@dataclass(frozen=True, slots=True)
class GateView:
    state: GateState
    status: MediaStatus | None = None
    stage: str | None = None
    progress: int | None = None
    label: str | None = None

    @property
    def blocking(self) -> bool:
        return self.state in (GateState.UNKNOWN, GateState.IN_FLIGHT)

    @property
    def can_delete(self) -> bool:
        return self.state == GateState.FAILED


def _state_for(status: MediaStatus | None) -> GateState:
    if status is None or status in IN_FLIGHT_STATES:
        return GateState.IN_FLIGHT
    if status == MediaStatus.READY:
        return GateState.READY
    if status == MediaStatus.FAILED:
        return GateState.FAILED
    return GateState.DELETED


class ClientGate:
    def __init__(
        self,
        item_id: str,
        store: RecordStore,
        *,
        lock: InteractionLock,
        pending: PendingItems | None = None,
        on_done: Callable[[], Any] | None = None,
    ) -> None:
        self.item_id = item_id
        self._store = store
        self._lock = lock
        self._pending = pending
        self._on_done = on_done
        self._mutex = threading.RLock()
        self._unsubscribe: Unsubscribe | None = None
        self._completed = False
        self._closed = False
        self._view = GateView(state=GateState.UNKNOWN)

    @property
    def view(self) -> GateView:
        return self._view

    @property
    def state(self) -> GateState:
        return self._view.state

    def open(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self.item_id, self._on_snapshot)

    def close(self) -> None:
        """Stop observing and release the lock whatever the current state."""
        with self._mutex:
            self._closed = True
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
            self._lock.release(self)

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        with self._mutex:
            if self._closed:
                return
            self._apply(self._view_for(snapshot))

    def _view_for(self, snapshot: Snapshot) -> GateView:
        if snapshot is None:
            # Nothing observed yet means the record is still being written.
            if self._view.state == GateState.UNKNOWN:
                return GateView(
                    state=GateState.IN_FLIGHT,
                    status=MediaStatus.PROCESSING,
                    progress=stage_progress(None),
                    label=stage_label(None),
                )
            return GateView(state=GateState.DELETED, status=MediaStatus.DELETED)

        try:
            item = MediaItem.from_document(self.item_id, snapshot)
        except ValidationError:
            logger.warning("gate.snapshot_invalid item_id=%s state=%s", self.item_id, self._view.state.value)
            if self._view.state == GateState.UNKNOWN:
                # An unreadable first snapshot can only be recovered by deletion.
                return GateView(state=GateState.FAILED)
            return self._view
        state = _state_for(item.status)
        if state == GateState.IN_FLIGHT:
            return GateView(
                state=state,
                status=item.status or MediaStatus.PROCESSING,
                stage=item.stage,
                progress=stage_progress(item.stage),
                label=stage_label(item.stage),
            )
        return GateView(state=state, status=item.status, stage=item.stage, progress=100 if state == GateState.READY else None)

    def _apply(self, view: GateView) -> None:
        previous = self._view.state
        if not gate_transition_allowed(previous, view.state):
            logger.debug("gate.transition_ignored item_id=%s from=%s to=%s", self.item_id, previous.value, view.state.value)
            return

        self._view = view
        if view.state == GateState.IN_FLIGHT:
            self._lock.acquire(self)
            return

        self._lock.release(self)
        if view.state == GateState.READY and not self._completed:
            self._completed = True
            if self._pending is not None:
                self._pending.clear(self.item_id)
            logger.info("gate.ready item_id=%s", self.item_id)
            if self._on_done is not None:
                self._on_done()
        elif view.state != previous:
            logger.info("gate.terminal item_id=%s state=%s", self.item_id, view.state.value)

    async def delete_item(self) -> None:
        """Sole recovery path for a failed item: remove the record outright."""
        if self._closed:
            raise GateActionError("Gate is closed")
        if self.state != GateState.FAILED:
            raise GateActionError(f"Delete is only available for failed items, not {self.state.value}")

        await self._store.delete(self.item_id)
        if self._pending is not None:
            self._pending.clear(self.item_id)
        with self._mutex:
            self._apply(GateView(state=GateState.DELETED, status=MediaStatus.DELETED))
        logger.info("gate.deleted item_id=%s", self.item_id)
