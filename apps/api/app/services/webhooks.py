"""Transcoder webhook service layer."""

from dataclasses import dataclass
from datetime import UTC, datetime
import logging
from typing import Any, Callable

from pydantic import ValidationError

from app.adapters.transcoder import signing
from app.core.logging_safety import safe_log_identifier, safe_log_locator
from app.domain import correlation
from app.domain.media_fsm import (
    Trigger,
    can_apply,
    next_status,
    resolve_transform_mode,
    upgraded_media_kind,
)
from app.errors import ApiError, record_invalid
from app.repositories.base import RecordStore, RecordStoreError
from app.schemas.media import MediaItem, MediaStatus
from app.schemas.webhook import ASSET_READY_EVENT, AssetData, WebhookEvent, WebhookOutcome
from app.services.origin_purge import OriginPurger, PurgeResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WebhookProcessResult:
    outcome: WebhookOutcome
    item_id: str | None = None
    purge_result: PurgeResult | None = None


@dataclass(slots=True)
class _PurgeOutcome:
    purged: bool
    error: bool
    attempted_at: datetime | None
    result: PurgeResult | None


def find_origin_locator(record: MediaItem | None) -> str | None:
    """Locate the originally uploaded blob from the record's fields or media list."""
    if record is None:
        return None
    if record.origin_locator:
        return record.origin_locator
    for entry in record.media:
        if entry.storage_path:
            return entry.storage_path
        if entry.url and entry.url.startswith("gs://"):
            return entry.url
    return None


class WebhookReceiver:
    def __init__(
        self,
        store: RecordStore,
        purger: OriginPurger,
        *,
        webhook_secret: str | None,
        tolerance_seconds: int = 300,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._purger = purger
        self._webhook_secret = webhook_secret
        self._tolerance_seconds = tolerance_seconds
        self._clock = clock or (lambda: datetime.now(UTC))

    async def handle(
        self,
        *,
        raw_body: bytes,
        signature_header: str | None,
        correlation_id: str | None = None,
    ) -> WebhookProcessResult:
        safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
        if not self._webhook_secret:
            logger.error("webhook.rejected correlation_id=%s code=WEBHOOK_NOT_CONFIGURED", safe_correlation_id)
            raise ApiError(status_code=500, code="WEBHOOK_NOT_CONFIGURED", message="Webhook secret is not configured")

        # Signature covers the raw bytes, so nothing is parsed before this point.
        try:
            signing.verify(
                raw_body,
                signature_header,
                self._webhook_secret,
                tolerance_seconds=self._tolerance_seconds,
            )
        except signing.WebhookSignatureError as exc:
            logger.warning(
                "webhook.rejected correlation_id=%s code=WEBHOOK_SIGNATURE_INVALID reason=%s",
                safe_correlation_id,
                exc,
            )
            raise ApiError(status_code=400, code="WEBHOOK_SIGNATURE_INVALID", message="Invalid signature") from exc

        try:
            event = WebhookEvent.model_validate_json(raw_body)
            asset = AssetData.model_validate(event.data or {})
        except ValidationError as exc:
            logger.warning("webhook.rejected correlation_id=%s code=WEBHOOK_PAYLOAD_INVALID", safe_correlation_id)
            raise ApiError(status_code=400, code="WEBHOOK_PAYLOAD_INVALID", message="Invalid webhook payload") from exc

        if event.type != ASSET_READY_EVENT:
            logger.info("webhook.ignored correlation_id=%s event_type=%s", safe_correlation_id, event.type)
            return WebhookProcessResult(outcome=WebhookOutcome.IGNORED)

        decoded = correlation.decode(asset.passthrough)
        playback_id = asset.first_playback_id
        if decoded.item_id is None or playback_id is None:
            # Acknowledge so the sender stops retrying; a redelivery cannot add the missing data.
            logger.warning(
                "webhook.unroutable correlation_id=%s asset_id=%s has_item_id=%s has_playback_id=%s",
                safe_correlation_id,
                asset.id,
                decoded.item_id is not None,
                playback_id is not None,
            )
            return WebhookProcessResult(outcome=WebhookOutcome.UNROUTABLE)

        return await self.apply_asset_ready(
            item_id=decoded.item_id,
            asset=asset,
            playback_id=playback_id,
            occurred_at=event.created_at,
            safe_correlation_id=safe_correlation_id,
        )

    async def apply_asset_ready(
        self,
        *,
        item_id: str,
        asset: AssetData,
        playback_id: str,
        occurred_at: datetime | None = None,
        safe_correlation_id: str = "cid-missing",
    ) -> WebhookProcessResult:
        try:
            snapshot = await self._store.get(item_id)
        except RecordStoreError as exc:
            raise self._store_failure(item_id, safe_correlation_id, "read") from exc

        try:
            record = MediaItem.from_document(item_id, snapshot) if snapshot is not None else None
        except ValidationError as exc:
            logger.error(
                "webhook.failed correlation_id=%s item_id=%s code=RECORD_INVALID",
                safe_correlation_id,
                item_id,
            )
            raise record_invalid() from exc
        current_status = (record.status or MediaStatus.PROCESSING) if record is not None else None
        if not can_apply(current_status, Trigger.WEBHOOK_READY):
            logger.info(
                "webhook.terminal correlation_id=%s item_id=%s current_status=%s",
                safe_correlation_id,
                item_id,
                current_status,
            )
            return WebhookProcessResult(outcome=WebhookOutcome.TERMINAL, item_id=item_id)
        if record is None:
            # Known race: the owner deleted the item while the asset was processing.
            logger.warning(
                "webhook.record_missing correlation_id=%s item_id=%s action=merge_recreates_record",
                safe_correlation_id,
                item_id,
            )

        locator = find_origin_locator(record)
        prior_kind = record.media_kind if record is not None else None
        mode = resolve_transform_mode(record.transform_mode if record is not None else None, prior_kind)
        purge = await self._purge_once(record, locator)

        existing_playback_id = record.external_asset_playback_id if record is not None else None
        if existing_playback_id and existing_playback_id != playback_id:
            logger.warning(
                "webhook.playback_id_kept correlation_id=%s item_id=%s",
                safe_correlation_id,
                item_id,
            )

        fields: dict[str, Any] = {
            "status": next_status(current_status, Trigger.WEBHOOK_READY).value,
            "externalAssetPlaybackId": existing_playback_id or playback_id,
            "originPurged": purge.purged,
            "originPurgeError": purge.error,
            "updatedAt": occurred_at or self._clock(),
        }
        if asset.upload_id:
            fields["externalUploadSessionId"] = asset.upload_id
        if asset.id:
            fields["externalAssetId"] = asset.id
        if purge.attempted_at is not None:
            fields["originPurgedAt"] = purge.attempted_at
        if locator is not None:
            fields["originLocator"] = locator
        upgraded_kind = upgraded_media_kind(mode, prior_kind)
        if upgraded_kind is not None:
            fields["mediaKind"] = upgraded_kind.value

        try:
            await self._store.merge(item_id, fields)
        except RecordStoreError as exc:
            raise self._store_failure(item_id, safe_correlation_id, "merge") from exc

        logger.info(
            "webhook.applied correlation_id=%s item_id=%s prev_status=%s mode=%s purge=%s locator=%s",
            safe_correlation_id,
            item_id,
            current_status,
            mode.value,
            purge.result.value if purge.result is not None else "carried_forward",
            safe_log_locator(locator),
        )
        return WebhookProcessResult(
            outcome=WebhookOutcome.APPLIED if record is not None else WebhookOutcome.RECREATED,
            item_id=item_id,
            purge_result=purge.result,
        )

    async def _purge_once(self, record: MediaItem | None, locator: str | None) -> _PurgeOutcome:
        """Attempt the origin purge at most once per record."""
        if record is not None and (record.origin_purged or record.origin_purged_at is not None):
            return _PurgeOutcome(
                purged=record.origin_purged,
                error=bool(record.origin_purge_error),
                attempted_at=record.origin_purged_at,
                result=None,
            )

        result = await self._purger.purge(locator)
        return _PurgeOutcome(
            purged=result == PurgeResult.PURGED,
            error=result == PurgeResult.FAILED,
            attempted_at=self._clock() if result != PurgeResult.NOT_ATTEMPTED else None,
            result=result,
        )

    @staticmethod
    def _store_failure(item_id: str, safe_correlation_id: str, operation: str) -> ApiError:
        logger.error(
            "webhook.failed correlation_id=%s item_id=%s code=RECORD_STORE_WRITE_FAILED operation=%s",
            safe_correlation_id,
            item_id,
            operation,
        )
        return ApiError(
            status_code=500,
            code="RECORD_STORE_WRITE_FAILED",
            message="Record store operation failed",
            details={"operation": operation},
        )
