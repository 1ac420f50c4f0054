"""Upload session service layer."""

from dataclasses import dataclass
import logging
from typing import Any

from app.adapters.transcoder import TranscoderClient, TranscoderError
from app.core.config import Settings
from app.core.logging_safety import safe_log_identifier
from app.domain import correlation
from app.errors import ApiError

logger = logging.getLogger(__name__)

DEFAULT_PLAYBACK_POLICY: tuple[str, ...] = ("public",)


@dataclass(slots=True)
class UploadSession:
    session_id: str
    upload_target_url: str
    cors_origin: str
    playback_policy: list[str]
    correlation: correlation.CorrelationPayload


class UploadSessionIssuer:
    """Asks the transcoder for one-time upload targets.

    Issuing a session never writes to the record store.
    """

    def __init__(self, transcoder: TranscoderClient, settings: Settings) -> None:
        self._transcoder = transcoder
        self._settings = settings

    def select_cors_origin(self, requested: str | None, request_origin: str | None) -> str:
        default = self._settings.default_cors_origin
        candidate = (requested or "").strip() or (request_origin or "").strip() or default
        allowed = self._settings.cors_allowed_origins
        if allowed and candidate not in allowed:
            return default
        return candidate

    async def issue(
        self,
        *,
        requested_origin: str | None = None,
        request_origin: str | None = None,
        playback_policy: list[str] | None = None,
        passthrough: dict[str, Any] | str | None = None,
        correlation_id: str | None = None,
    ) -> UploadSession:
        cors_origin = self.select_cors_origin(requested_origin, request_origin)
        policy = list(playback_policy or DEFAULT_PLAYBACK_POLICY)
        encoded = correlation.encode_passthrough(passthrough)
        decoded = correlation.decode(encoded)
        safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")

        try:
            upload = await self._transcoder.create_direct_upload(
                cors_origin=cors_origin,
                playback_policy=policy,
                passthrough=encoded,
                test=self._settings.transcoder_test_mode,
            )
        except TranscoderError as exc:
            logger.warning(
                "upload_session.failed correlation_id=%s upstream_status=%s",
                safe_correlation_id,
                exc.status_code,
            )
            raise ApiError(
                status_code=502,
                code="UPLOAD_SESSION_FAILED",
                message=str(exc) or "Failed to create upload session",
                details={"upstream_status": exc.status_code},
            ) from exc

        logger.info(
            "upload_session.issued correlation_id=%s upload_id=%s item_id=%s has_owner=%s test=%s",
            safe_correlation_id,
            upload.upload_id,
            decoded.item_id,
            decoded.owner_id is not None,
            upload.test,
        )
        return UploadSession(
            session_id=upload.upload_id,
            upload_target_url=upload.upload_url,
            cors_origin=upload.cors_origin,
            playback_policy=upload.playback_policy,
            correlation=decoded,
        )
