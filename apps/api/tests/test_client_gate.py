"""Processing gate and progress mapping tests."""

from __future__ import annotations

import json
import os
import unittest

from fastapi.testclient import TestClient

from app.adapters.storage import InMemoryBlobStore
from app.adapters.transcoder import MockTranscoder, signing
from app.client.gate import (
    ClientGate,
    GateActionError,
    GateState,
    InteractionLock,
    PendingItems,
    gate_transition_allowed,
)
from app.client.progress import (
    PROGRESS_CAP,
    PROGRESS_FLOOR,
    STAGE_VOCABULARY,
    UNKNOWN_STAGE_PROGRESS,
    stage_label,
    stage_progress,
)
from app.core.config import get_settings
from app.domain.correlation import encode
from app.main import create_app
from app.repositories.memory import InMemoryRecordStore

SECRET = "whsec-gate"
BUCKET = "ekari-test.appspot.com"


class StageProgressTests(unittest.TestCase):
    def test_known_stages_map_monotonically_within_bounds(self) -> None:
        values = [stage_progress(stage) for stage in STAGE_VOCABULARY]

        self.assertEqual(values, sorted(values))
        self.assertEqual(values[0], PROGRESS_FLOOR)
        self.assertEqual(values[-1], PROGRESS_CAP)
        self.assertEqual(stage_progress("ffmpeg:run"), 58)
        self.assertEqual(stage_progress("mux:put"), 92)

    def test_missing_and_unknown_stages(self) -> None:
        self.assertEqual(stage_progress(None), PROGRESS_FLOOR)
        self.assertEqual(stage_progress(""), PROGRESS_FLOOR)
        self.assertEqual(stage_progress("mux:put:error"), UNKNOWN_STAGE_PROGRESS)
        self.assertEqual(stage_progress("something-new"), UNKNOWN_STAGE_PROGRESS)

    def test_labels(self) -> None:
        self.assertEqual(stage_label(None), "Starting…")
        self.assertEqual(stage_label("ffmpeg:run"), "Mixing audio & video…")
        self.assertEqual(stage_label("thumbnail:extract"), "thumbnail extract")


class GateTransitionTableTests(unittest.TestCase):
    def test_terminal_states_never_return_to_in_flight(self) -> None:
        for state in (GateState.READY, GateState.FAILED, GateState.DELETED):
            with self.subTest(state=state):
                self.assertFalse(gate_transition_allowed(state, GateState.IN_FLIGHT))
        self.assertFalse(gate_transition_allowed(GateState.DELETED, GateState.READY))
        self.assertTrue(gate_transition_allowed(GateState.FAILED, GateState.DELETED))


class InteractionLockTests(unittest.TestCase):
    def test_lock_is_held_until_every_holder_releases(self) -> None:
        lock = InteractionLock()
        first, second = object(), object()

        lock.acquire(first)
        lock.acquire(second)
        lock.acquire(first)
        lock.release(first)

        self.assertTrue(lock.locked)
        lock.release(second)
        self.assertFalse(lock.locked)
        lock.release(second)
        self.assertFalse(lock.locked)


class ClientGateTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.store = InMemoryRecordStore()
        self.lock = InteractionLock()
        self.pending = PendingItems("deed-1")
        self.done_calls: list[str] = []
        self.gate = ClientGate(
            "deed-1",
            self.store,
            lock=self.lock,
            pending=self.pending,
            on_done=lambda: self.done_calls.append("done"),
        )

    def tearDown(self) -> None:
        self.gate.close()

    async def test_unwritten_record_is_treated_as_processing(self) -> None:
        self.gate.open()

        self.assertEqual(self.gate.state, GateState.IN_FLIGHT)
        self.assertEqual(self.gate.view.progress, PROGRESS_FLOOR)
        self.assertTrue(self.gate.view.blocking)
        self.assertTrue(self.lock.locked)

    async def test_stage_updates_drive_progress_while_locked(self) -> None:
        await self.store.create({"status": "mixing", "stage": "start"}, item_id="deed-1")
        self.gate.open()

        await self.store.merge("deed-1", {"stage": "ffmpeg:run"})

        self.assertEqual(self.gate.view.stage, "ffmpeg:run")
        self.assertEqual(self.gate.view.progress, 58)
        self.assertEqual(self.gate.view.label, "Mixing audio & video…")
        self.assertTrue(self.lock.locked)

    async def test_legacy_nested_stage_is_read(self) -> None:
        await self.store.create({"status": "mixing", "mixing": {"stage": "mux:put"}}, item_id="deed-1")
        self.gate.open()

        self.assertEqual(self.gate.view.stage, "mux:put")
        self.assertEqual(self.gate.view.progress, 92)

    async def test_ready_releases_lock_and_completes_once(self) -> None:
        await self.store.create({"status": "processing"}, item_id="deed-1")
        self.gate.open()

        await self.store.merge("deed-1", {"status": "ready", "externalAssetPlaybackId": "pb_1"})
        await self.store.merge("deed-1", {"caption": "edited later"})

        self.assertEqual(self.gate.state, GateState.READY)
        self.assertEqual(self.gate.view.progress, 100)
        self.assertFalse(self.gate.view.blocking)
        self.assertFalse(self.lock.locked)
        self.assertEqual(self.done_calls, ["done"])
        self.assertIsNone(self.pending.item_id)

    async def test_ready_is_never_reverted_by_a_stale_snapshot(self) -> None:
        await self.store.create({"status": "ready"}, item_id="deed-1")
        self.gate.open()

        await self.store.merge("deed-1", {"status": "processing"})

        self.assertEqual(self.gate.state, GateState.READY)
        self.assertFalse(self.lock.locked)

    async def test_failed_item_only_offers_delete(self) -> None:
        await self.store.create({"status": "processing"}, item_id="deed-1")
        self.gate.open()
        await self.store.merge("deed-1", {"status": "failed", "stage": "mux:put:error"})

        self.assertEqual(self.gate.state, GateState.FAILED)
        self.assertTrue(self.gate.view.can_delete)
        self.assertFalse(self.lock.locked)
        self.assertEqual(self.done_calls, [])

        await self.gate.delete_item()

        self.assertEqual(self.gate.state, GateState.DELETED)
        self.assertNotIn("deed-1", self.store.documents)
        self.assertIsNone(self.pending.item_id)
        self.assertFalse(self.lock.locked)

    async def test_delete_is_refused_outside_failed(self) -> None:
        await self.store.create({"status": "processing"}, item_id="deed-1")
        self.gate.open()

        with self.assertRaises(GateActionError):
            await self.gate.delete_item()

        self.assertIn("deed-1", self.store.documents)
        self.assertTrue(self.lock.locked)

    async def test_record_removed_elsewhere_ends_in_deleted(self) -> None:
        await self.store.create({"status": "processing"}, item_id="deed-1")
        self.gate.open()

        await self.store.delete("deed-1")

        self.assertEqual(self.gate.state, GateState.DELETED)
        self.assertFalse(self.lock.locked)
        self.assertEqual(self.done_calls, [])

    async def test_close_releases_lock_and_stops_observing(self) -> None:
        await self.store.create({"status": "processing"}, item_id="deed-1")
        self.gate.open()

        self.gate.close()
        await self.store.merge("deed-1", {"status": "ready"})

        self.assertFalse(self.lock.locked)
        self.assertEqual(self.gate.state, GateState.IN_FLIGHT)
        self.assertEqual(self.done_calls, [])
        self.assertEqual(self.store.listeners["deed-1"], [])

    async def test_snapshot_delivered_after_close_is_dropped(self) -> None:
        await self.store.create({"status": "processing"}, item_id="deed-1")
        self.gate.open()
        listener = self.store.listeners["deed-1"][0]

        self.gate.close()
        listener({"status": "processing"})

        self.assertFalse(self.lock.locked)

    async def test_delete_is_refused_once_closed(self) -> None:
        await self.store.create({"status": "failed"}, item_id="deed-1")
        self.gate.open()

        self.gate.close()

        with self.assertRaises(GateActionError):
            await self.gate.delete_item()
        self.assertIn("deed-1", self.store.documents)

    async def test_unreadable_first_snapshot_offers_delete(self) -> None:
        await self.store.create({"status": "processing", "media": "not-a-list"}, item_id="deed-1")
        self.gate.open()

        self.assertEqual(self.gate.state, GateState.FAILED)
        self.assertFalse(self.gate.view.blocking)
        self.assertTrue(self.gate.view.can_delete)
        self.assertFalse(self.lock.locked)

        await self.gate.delete_item()

        self.assertEqual(self.gate.state, GateState.DELETED)

    async def test_unreadable_later_snapshot_keeps_current_view(self) -> None:
        await self.store.create({"status": "mixing", "stage": "ffmpeg:run"}, item_id="deed-1")
        self.gate.open()

        await self.store.merge("deed-1", {"media": "not-a-list"})

        self.assertEqual(self.gate.state, GateState.IN_FLIGHT)
        self.assertEqual(self.gate.view.stage, "ffmpeg:run")
        self.assertTrue(self.lock.locked)


class GateWebhookEndToEndTests(unittest.TestCase):
    _env_keys = (
        "EKARI_TRANSCODER_PROVIDER",
        "EKARI_RECORD_STORE_PROVIDER",
        "EKARI_BLOB_STORE_PROVIDER",
        "EKARI_MUX_WEBHOOK_SECRET",
    )

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        os.environ["EKARI_TRANSCODER_PROVIDER"] = "mock"
        os.environ["EKARI_RECORD_STORE_PROVIDER"] = "memory"
        os.environ["EKARI_BLOB_STORE_PROVIDER"] = "memory"
        os.environ["EKARI_MUX_WEBHOOK_SECRET"] = SECRET
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()

    def test_signed_ready_webhook_unlocks_gate(self) -> None:
        store = InMemoryRecordStore()
        blobs = InMemoryBlobStore(default_bucket=BUCKET)
        client = TestClient(create_app(record_store=store, transcoder=MockTranscoder(), blob_store=blobs))
        origin_path = "deeds/owner-1/deed-1/photo.jpg"
        blobs.put(BUCKET, origin_path)
        store.documents["deed-1"] = {
            "ownerId": "owner-1",
            "status": "mixing",
            "stage": "mux:put",
            "mediaKind": "photo",
            "media": [{"kind": "photo", "storagePath": origin_path}],
        }

        lock = InteractionLock()
        pending = PendingItems("deed-1")
        done_calls: list[str] = []
        gate = ClientGate("deed-1", store, lock=lock, pending=pending, on_done=lambda: done_calls.append("done"))
        gate.open()
        self.addCleanup(gate.close)
        self.assertTrue(lock.locked)

        body = json.dumps(
            {
                "type": "video.asset.ready",
                "created_at": "2026-10-19T10:00:00Z",
                "data": {
                    "id": "asset-1",
                    "upload_id": "upload-1",
                    "playback_ids": [{"id": "pb_e2e", "policy": "public"}],
                    "passthrough": encode("deed-1", "owner-1"),
                },
            }
        ).encode("utf-8")
        for _ in range(2):
            response = client.post(
                "/api/v1/webhooks/mux",
                content=body,
                headers={"Content-Type": "application/json", signing.SIGNATURE_HEADER: signing.sign(body, SECRET)},
            )
            self.assertEqual(response.status_code, 200)

        self.assertEqual(gate.state, GateState.READY)
        self.assertFalse(lock.locked)
        self.assertEqual(done_calls, ["done"])
        self.assertIsNone(pending.item_id)
        document = store.documents["deed-1"]
        self.assertEqual(document["externalAssetPlaybackId"], "pb_e2e")
        self.assertEqual(document["mediaKind"], "video")
        self.assertTrue(document["originPurged"])
        self.assertEqual(blobs.blobs, set())


if __name__ == "__main__":
    unittest.main()
