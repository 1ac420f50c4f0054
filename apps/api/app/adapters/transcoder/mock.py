"""Deterministic transcoder for local development and tests."""

from dataclasses import dataclass, field

from app.adapters.transcoder.base import DirectUpload, TranscoderClient, TranscoderError


@dataclass(slots=True)
class MockTranscoder(TranscoderClient):
    """Issues predictable upload targets and records every call.

    ``failure_message`` makes the next call raise once, mimicking an upstream
    rejection.
    """

    upload_base_url: str = "https://storage.mock-transcoder.test/uploads"
    uploads: list[DirectUpload] = field(default_factory=list)
    deleted_assets: list[str] = field(default_factory=list)
    failure_message: str | None = None
    failure_status: int = 400

    def _maybe_fail(self) -> None:
        if self.failure_message is None:
            return
        message = self.failure_message
        self.failure_message = None
        raise TranscoderError(message, status_code=self.failure_status)

    async def create_direct_upload(
        self,
        *,
        cors_origin: str,
        playback_policy: list[str],
        passthrough: str | None,
        test: bool,
    ) -> DirectUpload:
        self._maybe_fail()
        upload_id = f"upload-{len(self.uploads) + 1}"
        upload = DirectUpload(
            upload_id=upload_id,
            upload_url=f"{self.upload_base_url}/{upload_id}",
            cors_origin=cors_origin,
            playback_policy=list(playback_policy),
            passthrough=passthrough,
            test=test,
        )
        self.uploads.append(upload)
        return upload

    async def delete_asset(self, asset_id: str) -> None:
        self._maybe_fail()
        self.deleted_assets.append(asset_id)


__all__ = ["MockTranscoder"]
