"""Dependency wiring for routes."""

from __future__ import annotations

from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request

from app.adapters.storage import BlobStore
from app.adapters.transcoder import TranscoderClient
from app.core.config import Settings
from app.repositories.base import RecordStore
from app.services.media_items import MediaItemService
from app.services.origin_purge import OriginPurger
from app.services.upload_sessions import UploadSessionIssuer
from app.services.webhooks import WebhookReceiver


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_request_correlation_id(request: Request) -> str:
    return _request_correlation_id(request)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_transcoder(request: Request) -> TranscoderClient:
    return request.app.state.transcoder


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_upload_session_issuer(
    transcoder: Annotated[TranscoderClient, Depends(get_transcoder)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> UploadSessionIssuer:
    return UploadSessionIssuer(transcoder, settings)


def get_webhook_receiver(
    store: Annotated[RecordStore, Depends(get_record_store)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> WebhookReceiver:
    return WebhookReceiver(
        store,
        OriginPurger(blob_store),
        webhook_secret=settings.mux_webhook_secret,
        tolerance_seconds=settings.webhook_tolerance_seconds,
    )


def get_media_item_service(
    store: Annotated[RecordStore, Depends(get_record_store)],
    transcoder: Annotated[TranscoderClient, Depends(get_transcoder)],
) -> MediaItemService:
    return MediaItemService(store, transcoder)
