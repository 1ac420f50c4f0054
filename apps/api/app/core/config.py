"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    environment: Literal["development", "staging", "production"] = "development"

    transcoder_provider: Literal["mock", "mux"] = "mux"
    mux_api_base_url: str = "https://api.mux.com"
    mux_token_id: str | None = None
    mux_token_secret: str | None = None
    mux_webhook_secret: str | None = None
    webhook_tolerance_seconds: int = Field(default=300, ge=0)

    record_store_provider: Literal["memory", "firestore"] = "firestore"
    records_collection: str = "deeds"
    firebase_project_id: str | None = None

    blob_store_provider: Literal["memory", "firebase"] = "firebase"
    storage_bucket: str | None = None

    default_cors_origin: str = "*"
    cors_allowed_origins: list[str] = Field(default_factory=list)

    model_config = SettingsConfigDict(env_prefix="EKARI_", extra="ignore")

    @property
    def transcoder_test_mode(self) -> bool:
        """Assets created outside production are flagged as test assets upstream."""
        return self.environment != "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
