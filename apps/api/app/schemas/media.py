"""Media item schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MediaStatus(str, Enum):
    PROCESSING = "processing"
    MIXING = "mixing"
    UPLOADING = "uploading"
    READY = "ready"
    FAILED = "failed"
    DELETED = "deleted"


class MediaKind(str, Enum):
    VIDEO = "video"
    PHOTO = "photo"
    NONE = "none"


class TransformMode(str, Enum):
    PASSTHROUGH = "passthrough"
    PHOTO_TO_VIDEO = "photo_to_video"


_LEGACY_MIX_MODES = {
    "photo_to_video": TransformMode.PHOTO_TO_VIDEO.value,
    "video_mix": TransformMode.PASSTHROUGH.value,
}


def _known(value: Any, enum: type[Enum]) -> Any:
    """Return value if it names a member of enum, else None."""
    if isinstance(value, enum):
        return value
    if isinstance(value, str) and value in {member.value for member in enum}:
        return value
    return None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MediaEntry(_CamelModel):
    kind: str | None = None
    url: str | None = None
    storage_path: str | None = None
    thumb_url: str | None = None
    width: int | None = None
    height: int | None = None
    duration_sec: float | None = None


class MediaItem(_CamelModel):
    """Canonical record for one submitted media item."""

    id: str
    owner_id: str | None = None
    status: MediaStatus | None = None
    stage: str | None = None
    media_kind: MediaKind | None = None
    transform_mode: TransformMode | None = None
    media: list[MediaEntry] = Field(default_factory=list)
    caption: str | None = None
    external_asset_playback_id: str | None = None
    external_upload_session_id: str | None = None
    external_asset_id: str | None = None
    origin_locator: str | None = None
    origin_purged: bool = False
    origin_purged_at: datetime | None = None
    origin_purge_error: bool | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_document(cls, item_id: str, data: dict[str, Any]) -> "MediaItem":
        document = dict(data)
        if not document.get("stage"):
            mixing = document.get("mixing")
            if isinstance(mixing, dict) and isinstance(mixing.get("stage"), str):
                document["stage"] = mixing["stage"]
        if document.get("mediaKind") is None:
            document["mediaKind"] = document.get("mediaType")
        if document.get("transformMode") is None:
            mix = document.get("mix")
            if isinstance(mix, dict) and isinstance(mix.get("mode"), str):
                document["transformMode"] = _LEGACY_MIX_MODES.get(mix["mode"])
        document["status"] = _known(document.get("status"), MediaStatus)
        document["mediaKind"] = _known(document.get("mediaKind"), MediaKind)
        document["transformMode"] = _known(document.get("transformMode"), TransformMode)
        document["id"] = item_id
        return cls.model_validate(document)


class CreateMediaItemRequest(_CamelModel):
    owner_id: str = Field(min_length=1)
    media_kind: MediaKind = MediaKind.VIDEO
    status: Literal["processing", "mixing", "uploading"] = "uploading"
    transform_mode: TransformMode | None = None
    origin_locator: str | None = None
    media: list[MediaEntry] = Field(default_factory=list)
    caption: str | None = None
