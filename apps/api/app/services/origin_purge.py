"""Best-effort removal of original uploads once a transcoded asset exists."""

from dataclasses import dataclass
from enum import Enum
import logging
from urllib.parse import unquote, urlsplit

from app.adapters.storage import BlobNotFoundError, BlobStore
from app.core.logging_safety import safe_log_locator

logger = logging.getLogger(__name__)

_FIREBASE_DOWNLOAD_HOST = "firebasestorage.googleapis.com"


class PurgeResult(str, Enum):
    NOT_ATTEMPTED = "not_attempted"
    PURGED = "purged"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class BlobLocation:
    bucket: str
    path: str


def parse_locator(locator: str | None, *, default_bucket: str | None = None) -> BlobLocation | None:
    """Resolve a stored locator into a bucket/path pair, or None if unrecognized.

    Accepted forms: ``gs://bucket/path``, Firebase download URLs
    (``https://firebasestorage.googleapis.com/v0/b/<bucket>/o/<path>``) and
    bare object paths when a default bucket is known.
    """
    if not locator or not locator.strip():
        return None
    text = locator.strip()

    if text.startswith("gs://"):
        bucket, _, path = text[len("gs://") :].partition("/")
        return BlobLocation(bucket=bucket, path=path) if bucket and path else None

    if text.startswith(("http://", "https://")):
        parts = urlsplit(text)
        if parts.hostname != _FIREBASE_DOWNLOAD_HOST:
            return None
        segments = parts.path.split("/")
        # ["", "v0", "b", <bucket>, "o", <encoded path>]
        if len(segments) != 6 or segments[1:3] != ["v0", "b"] or segments[4] != "o":
            return None
        bucket, path = segments[3], unquote(segments[5])
        return BlobLocation(bucket=bucket, path=path) if bucket and path else None

    if "://" in text or text.startswith(("blob:", "data:")):
        return None
    if default_bucket:
        return BlobLocation(bucket=default_bucket, path=text.lstrip("/"))
    return None


class OriginPurger:
    """Deletes original uploads without ever raising to the caller."""

    def __init__(self, blob_store: BlobStore) -> None:
        self._blob_store = blob_store

    async def purge(self, locator: str | None) -> PurgeResult:
        location = parse_locator(locator, default_bucket=self._blob_store.default_bucket)
        if location is None:
            logger.info("origin_purge.skipped locator=%s reason=unrecognized_locator", safe_log_locator(locator))
            return PurgeResult.NOT_ATTEMPTED

        try:
            await self._blob_store.delete(location.bucket, location.path)
        except BlobNotFoundError:
            logger.info("origin_purge.already_absent locator=%s", safe_log_locator(locator))
            return PurgeResult.PURGED
        except Exception as exc:  # cleanup must never block the record update
            logger.warning(
                "origin_purge.failed locator=%s error=%s",
                safe_log_locator(locator),
                type(exc).__name__,
            )
            return PurgeResult.FAILED

        logger.info("origin_purge.deleted locator=%s", safe_log_locator(locator))
        return PurgeResult.PURGED


__all__ = ["BlobLocation", "OriginPurger", "PurgeResult", "parse_locator"]
