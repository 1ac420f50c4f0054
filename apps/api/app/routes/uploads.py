"""Upload session routes."""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Header, status

from app.routes.dependencies import get_request_correlation_id, get_upload_session_issuer
from app.schemas.error import ErrorResponse, UpstreamServiceError
from app.schemas.uploads import CreateUploadRequest, CreateUploadResponse
from app.services.upload_sessions import UploadSessionIssuer

router = APIRouter(tags=["Uploads"])


@router.post(
    "/uploads",
    response_model=CreateUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 502: {"model": UpstreamServiceError}},
)
async def create_upload(
    issuer: Annotated[UploadSessionIssuer, Depends(get_upload_session_issuer)],
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
    payload: Annotated[CreateUploadRequest | None, Body()] = None,
    origin: Annotated[str | None, Header()] = None,
) -> CreateUploadResponse:
    payload = payload or CreateUploadRequest()
    session = await issuer.issue(
        requested_origin=payload.cors_origin,
        request_origin=origin,
        playback_policy=payload.playback_policy,
        passthrough=payload.passthrough,
        correlation_id=correlation_id,
    )
    return CreateUploadResponse(upload_url=session.upload_target_url, upload_id=session.session_id)
