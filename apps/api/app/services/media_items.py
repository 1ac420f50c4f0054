"""Media item service layer."""

from datetime import UTC, datetime
import logging

from pydantic import ValidationError

from app.adapters.transcoder import TranscoderClient, TranscoderError
from app.core.logging_safety import safe_log_identifier
from app.domain.media_fsm import Trigger, next_status
from app.errors import ApiError, record_invalid, resource_not_found
from app.repositories.base import RecordStore, RecordStoreError
from app.schemas.media import CreateMediaItemRequest, MediaItem, MediaStatus

logger = logging.getLogger(__name__)


class MediaItemService:
    def __init__(self, store: RecordStore, transcoder: TranscoderClient | None = None) -> None:
        self._store = store
        self._transcoder = transcoder

    async def create_item(self, payload: CreateMediaItemRequest) -> MediaItem:
        now = datetime.now(UTC)
        document = payload.model_dump(by_alias=True, exclude_none=True, mode="json")
        document.update({"originPurged": False, "createdAt": now, "updatedAt": now})
        try:
            item_id = await self._store.create(document)
        except RecordStoreError as exc:
            raise ApiError(status_code=500, code="RECORD_STORE_WRITE_FAILED", message="Record store operation failed") from exc

        logger.info(
            "media_item.created item_id=%s owner_id=%s status=%s media_kind=%s",
            item_id,
            safe_log_identifier(payload.owner_id, prefix="pid"),
            payload.status,
            payload.media_kind.value,
        )
        return MediaItem.from_document(item_id, document)

    async def get_item(self, item_id: str) -> MediaItem:
        snapshot = await self._store.get(item_id)
        if snapshot is None:
            raise resource_not_found()
        try:
            return MediaItem.from_document(item_id, snapshot)
        except ValidationError as exc:
            logger.error("media_item.record_invalid item_id=%s", item_id)
            raise record_invalid() from exc

    async def delete_item(self, item_id: str) -> None:
        """Hard-delete the record; origin blobs are left to the purge path."""
        item = await self.get_item(item_id)
        next_status(item.status or MediaStatus.PROCESSING, Trigger.USER_DELETE)
        try:
            await self._store.delete(item_id)
        except RecordStoreError as exc:
            raise ApiError(status_code=500, code="RECORD_STORE_WRITE_FAILED", message="Record store operation failed") from exc
        logger.info("media_item.deleted item_id=%s prev_status=%s", item_id, item.status)

    async def delete_asset(self, asset_id: str) -> None:
        if self._transcoder is None:
            raise ApiError(status_code=500, code="TRANSCODER_NOT_CONFIGURED", message="Transcoder is not configured")
        try:
            await self._transcoder.delete_asset(asset_id)
        except TranscoderError as exc:
            logger.warning("asset.delete_failed asset_id=%s upstream_status=%s", asset_id, exc.status_code)
            raise ApiError(
                status_code=502,
                code="ASSET_DELETE_FAILED",
                message=str(exc) or "Asset delete failed",
                details={"upstream_status": exc.status_code},
            ) from exc
        logger.info("asset.deleted asset_id=%s", asset_id)
