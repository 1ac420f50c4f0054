"""Client-side helpers: upload driver and processing gate."""

from .gate import ClientGate, GateActionError, GateState, GateView, InteractionLock, PendingItems
from .uploader import ClientUploader, UploadCancelled, UploadError, UploadSessionError, request_upload_session

__all__ = [
    "ClientGate",
    "ClientUploader",
    "GateActionError",
    "GateState",
    "GateView",
    "InteractionLock",
    "PendingItems",
    "UploadCancelled",
    "UploadError",
    "UploadSessionError",
    "request_upload_session",
]
