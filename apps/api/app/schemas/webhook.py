"""Transcoder webhook schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

ASSET_READY_EVENT = "video.asset.ready"


class PlaybackIdRef(BaseModel):
    id: str | None = None
    policy: str | None = None


class AssetData(BaseModel):
    """Subset of the transcoder asset object this service reads."""

    id: str | None = None
    upload_id: str | None = None
    playback_ids: list[PlaybackIdRef] = Field(default_factory=list)
    passthrough: str | None = None
    status: str | None = None

    model_config = ConfigDict(extra="ignore")

    @property
    def first_playback_id(self) -> str | None:
        for ref in self.playback_ids:
            if ref.id:
                return ref.id
        return None


class WebhookEvent(BaseModel):
    type: str
    id: str | None = None
    created_at: datetime | None = None
    data: dict[str, Any] | None = None

    model_config = ConfigDict(extra="ignore")


class WebhookOutcome(str, Enum):
    APPLIED = "applied"
    RECREATED = "recreated"
    IGNORED = "ignored"
    UNROUTABLE = "unroutable"
    TERMINAL = "terminal"


class WebhookAck(BaseModel):
    ok: bool = True
    outcome: WebhookOutcome
