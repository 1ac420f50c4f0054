"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel

from app.schemas.media import MediaStatus


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class NoLeakNotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class TransitionErrorDetails(BaseModel):
    current_status: MediaStatus | None = None
    trigger: str
    allowed_triggers: list[str] | None = None


class FsmTransitionError(BaseModel):
    code: Literal["FSM_TRANSITION_INVALID"]
    message: str
    details: TransitionErrorDetails


class UpstreamErrorDetails(BaseModel):
    upstream_status: int | None = None


class UpstreamServiceError(BaseModel):
    code: Literal["UPLOAD_SESSION_FAILED", "ASSET_DELETE_FAILED"]
    message: str
    details: UpstreamErrorDetails | None = None


class WebhookRejectedError(BaseModel):
    code: Literal["WEBHOOK_SIGNATURE_INVALID", "WEBHOOK_PAYLOAD_INVALID"]
    message: str
