"""Upload session schemas."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PlaybackPolicy = Literal["public", "signed"]


class CreateUploadRequest(BaseModel):
    cors_origin: str | None = None
    passthrough: dict[str, Any] | str | None = None
    playback_policy: list[PlaybackPolicy] | None = Field(default=None, min_length=1)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateUploadResponse(BaseModel):
    upload_url: str
    upload_id: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
