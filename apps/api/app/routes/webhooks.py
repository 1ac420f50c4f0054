"""Transcoder webhook routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.adapters.transcoder.signing import SIGNATURE_HEADER
from app.routes.dependencies import get_request_correlation_id, get_webhook_receiver
from app.schemas.error import ErrorResponse, WebhookRejectedError
from app.schemas.webhook import WebhookAck
from app.services.webhooks import WebhookReceiver

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post(
    "/mux",
    response_model=WebhookAck,
    responses={400: {"model": WebhookRejectedError}, 500: {"model": ErrorResponse}},
)
async def receive_transcoder_event(
    request: Request,
    correlation_id: Annotated[str, Depends(get_request_correlation_id)],
    receiver: Annotated[WebhookReceiver, Depends(get_webhook_receiver)],
) -> WebhookAck:
    raw_body = await request.body()
    result = await receiver.handle(
        raw_body=raw_body,
        signature_header=request.headers.get(SIGNATURE_HEADER),
        correlation_id=correlation_id,
    )
    return WebhookAck(outcome=result.outcome)
