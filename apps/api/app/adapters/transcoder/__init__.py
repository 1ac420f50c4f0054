"""Transcoding service adapters."""

from .base import DirectUpload, TranscoderClient, TranscoderError
from .mock import MockTranscoder
from .mux import MuxTranscoder
from .signing import WebhookSignatureError

__all__ = [
    "DirectUpload",
    "TranscoderClient",
    "TranscoderError",
    "MockTranscoder",
    "MuxTranscoder",
    "WebhookSignatureError",
]
