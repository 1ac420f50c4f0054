"""Client upload driver tests."""

from __future__ import annotations

import json
import os
from pathlib import Path
import tempfile
import unittest

import httpx

from app.adapters.storage import InMemoryBlobStore
from app.adapters.transcoder import MockTranscoder
from app.client.uploader import (
    CHUNK_ALIGNMENT,
    ClientUploader,
    UploadCancelled,
    UploadError,
    UploadSessionError,
    request_upload_session,
)
from app.core.config import get_settings
from app.domain.correlation import decode
from app.main import create_app
from app.repositories.memory import InMemoryRecordStore

UPLOAD_URL = "https://storage.mock-transcoder.test/uploads/upload-1"


class RequestUploadSessionTests(unittest.IsolatedAsyncioTestCase):
    _env_keys = (
        "EKARI_TRANSCODER_PROVIDER",
        "EKARI_RECORD_STORE_PROVIDER",
        "EKARI_BLOB_STORE_PROVIDER",
    )

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        os.environ["EKARI_TRANSCODER_PROVIDER"] = "mock"
        os.environ["EKARI_RECORD_STORE_PROVIDER"] = "memory"
        os.environ["EKARI_BLOB_STORE_PROVIDER"] = "memory"
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()

    async def test_session_is_requested_from_the_api(self) -> None:
        transcoder = MockTranscoder()
        app = create_app(record_store=InMemoryRecordStore(), transcoder=transcoder, blob_store=InMemoryBlobStore())
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://api.test") as client:
            target = await request_upload_session(
                client,
                passthrough={"deedId": "deed-1", "uid": "owner-1"},
                cors_origin="https://app.ekari.test",
            )

        self.assertEqual(target.upload_url, UPLOAD_URL)
        self.assertEqual(target.upload_id, "upload-1")
        self.assertEqual(decode(transcoder.uploads[0].passthrough).owner_id, "owner-1")
        self.assertEqual(transcoder.uploads[0].cors_origin, "https://app.ekari.test")

    async def test_error_responses_raise(self) -> None:
        responses = {
            "upstream_failure": httpx.Response(502, json={"code": "UPLOAD_SESSION_FAILED", "message": "nope"}),
            "missing_url": httpx.Response(201, json={"uploadId": "upload-1"}),
        }
        for name, canned in responses.items():
            with self.subTest(case=name):
                transport = httpx.MockTransport(lambda request, canned=canned: canned)
                async with httpx.AsyncClient(transport=transport, base_url="http://api.test") as client:
                    with self.assertRaises(UploadSessionError):
                        await request_upload_session(client)


class _RecordingServer:
    """Answers chunk PUTs from a scripted list of statuses (or exceptions)."""

    def __init__(self, script: list[int | Exception] | None = None, *, total: int) -> None:
        self.script = list(script or [])
        self.total = total
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.script:
            step = self.script.pop(0)
            if isinstance(step, Exception):
                raise step
            return httpx.Response(step)
        end = int(request.headers["Content-Range"].split("-")[1].split("/")[0])
        return httpx.Response(200 if end == self.total - 1 else 308)


class ClientUploaderTests(unittest.IsolatedAsyncioTestCase):
    async def _client(self, server: _RecordingServer) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(server))
        self.addAsyncCleanup(client.aclose)
        return client

    def _uploader(self, client: httpx.AsyncClient, **kwargs) -> ClientUploader:
        kwargs.setdefault("chunk_size", CHUNK_ALIGNMENT)
        return ClientUploader(client, retry_wait_min=0, retry_wait_max=0, **kwargs)

    async def test_file_is_sent_in_ranged_chunks(self) -> None:
        data = b"v" * (CHUNK_ALIGNMENT * 2 + 1000)
        server = _RecordingServer(total=len(data))
        progress: list[float] = []
        uploader = self._uploader(await self._client(server))

        await uploader.upload(data, UPLOAD_URL, content_type="video/mp4", on_progress=progress.append)

        ranges = [request.headers["Content-Range"] for request in server.requests]
        self.assertEqual(
            ranges,
            [
                f"bytes 0-{CHUNK_ALIGNMENT - 1}/{len(data)}",
                f"bytes {CHUNK_ALIGNMENT}-{2 * CHUNK_ALIGNMENT - 1}/{len(data)}",
                f"bytes {2 * CHUNK_ALIGNMENT}-{len(data) - 1}/{len(data)}",
            ],
        )
        self.assertTrue(all(request.method == "PUT" for request in server.requests))
        self.assertEqual(server.requests[0].headers["Content-Type"], "video/mp4")
        self.assertEqual(b"".join(request.content for request in server.requests), data)
        self.assertEqual(progress, sorted(progress))
        self.assertEqual(progress[-1], 100.0)
        self.assertEqual(len(progress), 3)

    async def test_path_sources_are_read_from_disk(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "clip.mp4"
            source.write_bytes(b"x" * 100)
            server = _RecordingServer(total=100)
            uploader = self._uploader(await self._client(server))

            await uploader.upload(source, UPLOAD_URL)

        self.assertEqual(server.requests[0].headers["Content-Range"], "bytes 0-99/100")

    async def test_transient_failures_are_retried(self) -> None:
        data = b"v" * 100
        server = _RecordingServer(
            [503, httpx.ConnectError("connection reset"), 200],
            total=len(data),
        )
        uploader = self._uploader(await self._client(server))

        await uploader.upload(data, UPLOAD_URL)

        self.assertEqual(len(server.requests), 3)
        self.assertEqual({request.headers["Content-Range"] for request in server.requests}, {"bytes 0-99/100"})

    async def test_exhausted_retries_raise_upload_error(self) -> None:
        data = b"v" * 100
        server = _RecordingServer([503, 503, 503, 503], total=len(data))
        uploader = self._uploader(await self._client(server), max_attempts=3)

        with self.assertRaises(UploadError):
            await uploader.upload(data, UPLOAD_URL)

        self.assertEqual(len(server.requests), 3)

    async def test_client_errors_are_not_retried(self) -> None:
        data = b"v" * 100
        server = _RecordingServer([403], total=len(data))
        uploader = self._uploader(await self._client(server))

        with self.assertRaises(UploadError) as context:
            await uploader.upload(data, UPLOAD_URL)

        self.assertIn("403", str(context.exception))
        self.assertEqual(len(server.requests), 1)

    async def test_cancel_stops_before_the_next_chunk(self) -> None:
        data = b"v" * (CHUNK_ALIGNMENT * 3)
        server = _RecordingServer(total=len(data))
        uploader = self._uploader(await self._client(server))

        with self.assertRaises(UploadCancelled):
            await uploader.upload(data, UPLOAD_URL, on_progress=lambda _: uploader.cancel())

        self.assertEqual(len(server.requests), 1)

    async def test_invalid_inputs_are_rejected(self) -> None:
        client = await self._client(_RecordingServer(total=0))

        with self.assertRaises(ValueError):
            ClientUploader(client, chunk_size=1000)
        with self.assertRaises(UploadError):
            await self._uploader(client).upload(b"", UPLOAD_URL)


class RequestBodyShapeTests(unittest.IsolatedAsyncioTestCase):
    async def test_request_body_uses_api_field_names(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(201, json={"uploadUrl": UPLOAD_URL, "uploadId": "upload-1"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api.test") as client:
            await request_upload_session(
                client,
                passthrough="deed-1",
                cors_origin="https://app.ekari.test",
                playback_policy=["signed"],
            )

        self.assertEqual(
            seen,
            [{"passthrough": "deed-1", "corsOrigin": "https://app.ekari.test", "playbackPolicy": ["signed"]}],
        )


if __name__ == "__main__":
    unittest.main()
