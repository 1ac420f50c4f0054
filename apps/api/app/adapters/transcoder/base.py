"""Transcoding service interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class TranscoderError(Exception):
    """Raised when the transcoding service rejects or fails a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


@dataclass(slots=True)
class DirectUpload:
    upload_id: str
    upload_url: str
    cors_origin: str
    playback_policy: list[str]
    passthrough: str | None = None
    test: bool = False


class TranscoderClient(ABC):
    """Provider-neutral client for the external transcoding service."""

    @abstractmethod
    async def create_direct_upload(
        self,
        *,
        cors_origin: str,
        playback_policy: list[str],
        passthrough: str | None,
        test: bool,
    ) -> DirectUpload:
        """Request a one-time upload target for a new asset."""

    @abstractmethod
    async def delete_asset(self, asset_id: str) -> None:
        """Delete a transcoded asset."""

    async def aclose(self) -> None:
        """Release transport resources."""


__all__ = ["DirectUpload", "TranscoderClient", "TranscoderError"]
