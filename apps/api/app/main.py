"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.adapters.storage import BlobStore, FirebaseBlobStore, InMemoryBlobStore
from app.adapters.transcoder import MockTranscoder, MuxTranscoder, TranscoderClient
from app.core.config import Settings, get_settings
from app.errors import ApiError
from app.repositories.base import RecordStore
from app.repositories.firestore import FirestoreRecordStore
from app.repositories.memory import InMemoryRecordStore
from app.routes import media_router, uploads_router, webhooks_router
from app.schemas.error import ErrorResponse

logger = logging.getLogger(__name__)

_VALIDATION_400_PATHS: set[tuple[str, str]] = {
    ("POST", "/api/v1/uploads"),
    ("POST", "/api/v1/media"),
}


def build_record_store(settings: Settings) -> RecordStore:
    if settings.record_store_provider == "firestore":
        return FirestoreRecordStore(settings.records_collection, project_id=settings.firebase_project_id)
    return InMemoryRecordStore()


def build_transcoder(settings: Settings) -> TranscoderClient:
    if settings.transcoder_provider == "mux":
        return MuxTranscoder(
            token_id=settings.mux_token_id,
            token_secret=settings.mux_token_secret,
            base_url=settings.mux_api_base_url,
        )
    return MockTranscoder()


def build_blob_store(settings: Settings) -> BlobStore:
    if settings.blob_store_provider == "firebase":
        return FirebaseBlobStore(default_bucket=settings.storage_bucket)
    return InMemoryBlobStore(default_bucket=settings.storage_bucket)


def create_app(
    settings: Settings | None = None,
    *,
    record_store: RecordStore | None = None,
    transcoder: TranscoderClient | None = None,
    blob_store: BlobStore | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.transcoder.aclose()
        await app.state.record_store.aclose()
        logger.info("app.shutdown clients_closed=true")

    app = FastAPI(title="Ekari Media API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.record_store = record_store or build_record_store(settings)
    app.state.transcoder = transcoder or build_transcoder(settings)
    app.state.blob_store = blob_store or build_blob_store(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins or ["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["content-type", "x-correlation-id"],
    )

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)
        if (request.method.upper(), route_path) in _VALIDATION_400_PATHS:
            payload = ErrorResponse(code="VALIDATION_ERROR", message="Invalid request payload")
            return JSONResponse(status_code=400, content=payload.model_dump(exclude_none=True))

        return await request_validation_exception_handler(request, exc)

    api_prefix = "/api/v1"
    app.include_router(uploads_router, prefix=api_prefix)
    app.include_router(webhooks_router, prefix=api_prefix)
    app.include_router(media_router, prefix=api_prefix)

    return app


app = create_app()
