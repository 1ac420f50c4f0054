"""Client helpers for requesting an upload session and sending the file."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Callable

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

CHUNK_ALIGNMENT = 256 * 1024
DEFAULT_CHUNK_SIZE = 5120 * 1024
_RETRYABLE_STATUSES = frozenset({408, 502, 503, 504})


class UploadSessionError(Exception):
    """Raised when the upload-session endpoint does not return a usable target."""


class UploadError(Exception):
    """Raised when a chunk is rejected for good."""


class UploadCancelled(UploadError):
    """Raised when the user cancels an upload between chunks."""


class _RetryableChunkError(Exception):
    pass


@dataclass(slots=True)
class UploadTarget:
    upload_url: str
    upload_id: str


async def request_upload_session(
    client: httpx.AsyncClient,
    *,
    endpoint: str = "/api/v1/uploads",
    passthrough: dict[str, Any] | str | None = None,
    cors_origin: str | None = None,
    playback_policy: list[str] | None = None,
) -> UploadTarget:
    body: dict[str, Any] = {}
    if passthrough is not None:
        body["passthrough"] = passthrough
    if cors_origin is not None:
        body["corsOrigin"] = cors_origin
    if playback_policy is not None:
        body["playbackPolicy"] = playback_policy

    response = await client.post(endpoint, json=body)
    if response.is_error:
        raise UploadSessionError(f"Failed to create direct upload ({response.status_code})")
    data = response.json()
    upload_url = data.get("uploadUrl")
    if not upload_url or not isinstance(upload_url, str):
        raise UploadSessionError("Upload session response is missing uploadUrl")
    return UploadTarget(upload_url=upload_url, upload_id=str(data.get("uploadId") or ""))


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, (_RetryableChunkError, httpx.TransportError))


class ClientUploader:
    """Resumable chunked PUT upload with per-chunk retries.

    Chunks carry ``Content-Range`` headers; the server answers 308 while it
    expects more bytes and 200/201 once the object is complete.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_attempts: int = 5,
        retry_wait_min: float = 1.0,
        retry_wait_max: float = 30.0,
    ) -> None:
        if chunk_size <= 0 or chunk_size % CHUNK_ALIGNMENT:
            raise ValueError("chunk_size must be a positive multiple of 256 KiB")
        self._client = client
        self._chunk_size = chunk_size
        self._max_attempts = max(1, max_attempts)
        self._retry_wait_min = retry_wait_min
        self._retry_wait_max = retry_wait_max
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    async def upload(
        self,
        source: bytes | Path,
        upload_url: str,
        *,
        content_type: str = "application/octet-stream",
        on_progress: Callable[[float], Any] | None = None,
    ) -> None:
        data = source.read_bytes() if isinstance(source, Path) else source
        total = len(data)
        if total == 0:
            raise UploadError("Cannot upload an empty file")

        offset = 0
        while offset < total:
            if self._cancelled:
                logger.info("upload.cancelled offset=%s total=%s", offset, total)
                raise UploadCancelled("Upload cancelled")

            chunk = data[offset : offset + self._chunk_size]
            await self._send_with_retry(upload_url, chunk, offset, total, content_type)
            offset += len(chunk)
            if on_progress is not None:
                on_progress(round(100 * offset / total, 2))

        logger.info("upload.completed total=%s", total)

    async def _send_with_retry(self, url: str, chunk: bytes, offset: int, total: int, content_type: str) -> None:
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_retryable),
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=1, min=self._retry_wait_min, max=self._retry_wait_max),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info("upload.chunk_retry offset=%s attempt=%s", offset, attempt.retry_state.attempt_number)
                    await self._send_chunk(url, chunk, offset, total, content_type)
        except (_RetryableChunkError, httpx.TransportError) as exc:
            logger.warning("upload.chunk_failed offset=%s attempts=%s", offset, self._max_attempts)
            raise UploadError(str(exc) or "Chunk upload failed") from exc

    async def _send_chunk(self, url: str, chunk: bytes, offset: int, total: int, content_type: str) -> None:
        end = offset + len(chunk) - 1
        response = await self._client.put(
            url,
            content=chunk,
            headers={
                "Content-Type": content_type,
                "Content-Range": f"bytes {offset}-{end}/{total}",
            },
        )
        if response.status_code in (200, 201, 204, 308):
            return
        if response.status_code in _RETRYABLE_STATUSES:
            raise _RetryableChunkError(f"Chunk at {offset} failed with {response.status_code}")
        raise UploadError(f"Server responded with {response.status_code} for chunk at {offset}")
