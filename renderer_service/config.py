"""Service configuration loaded from environment variables."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from script_renderer.publish import DEFAULT_DESCRIPTION_TEMPLATE

ENV_KEYS = (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_STORAGE_BASE",
    "PORT",
    "RENDER_AUTH_TOKEN",
    "RENDER_TEMP_ROOT",
    "RENDER_SCRIPTS_TABLE",
    "RENDER_VIDEO_BUCKET",
    "RENDER_FETCH_TIMEOUT",
    "RENDER_CLAIM",
    "RENDER_KEEP_FILES",
    "RENDER_PUBLISH",
    "YOUTUBE_CLIENT_ID",
    "YOUTUBE_CLIENT_SECRET",
    "YOUTUBE_REDIRECT_URI",
    "YOUTUBE_REFRESH_TOKEN",
    "YOUTUBE_DESCRIPTION_TEMPLATE",
)


class ServiceSettings(BaseModel):
    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_key: Optional[str] = Field(default=None, alias="SUPABASE_SERVICE_ROLE_KEY")
    storage_base: Optional[str] = Field(default=None, alias="SUPABASE_STORAGE_BASE")
    port: int = Field(default=3000, alias="PORT")
    auth_token: Optional[str] = Field(default=None, alias="RENDER_AUTH_TOKEN")
    temp_root: Optional[str] = Field(default=None, alias="RENDER_TEMP_ROOT")
    scripts_table: str = Field(default="scripts", alias="RENDER_SCRIPTS_TABLE")
    video_bucket: str = Field(default="videos", alias="RENDER_VIDEO_BUCKET")
    fetch_timeout: Optional[float] = Field(default=60.0, alias="RENDER_FETCH_TIMEOUT")
    claim: bool = Field(default=True, alias="RENDER_CLAIM")
    keep_files: bool = Field(default=False, alias="RENDER_KEEP_FILES")
    publish: bool = Field(default=False, alias="RENDER_PUBLISH")
    youtube_client_id: Optional[str] = Field(default=None, alias="YOUTUBE_CLIENT_ID")
    youtube_client_secret: Optional[str] = Field(default=None, alias="YOUTUBE_CLIENT_SECRET")
    youtube_redirect_uri: Optional[str] = Field(default=None, alias="YOUTUBE_REDIRECT_URI")
    youtube_refresh_token: Optional[str] = Field(default=None, alias="YOUTUBE_REFRESH_TOKEN")
    description_template: str = Field(default=DEFAULT_DESCRIPTION_TEMPLATE, alias="YOUTUBE_DESCRIPTION_TEMPLATE")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("port")
    @classmethod
    def _validate_port(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("PORT must be between 1 and 65535")
        return value

    @field_validator("fetch_timeout")
    @classmethod
    def _validate_timeout(cls, value: Optional[float]) -> Optional[float]:
        # 0 disables the timeout entirely.
        if value is None or value == 0:
            return None
        if value < 0:
            raise ValueError("RENDER_FETCH_TIMEOUT must be >= 0")
        return value

    @field_validator("description_template")
    @classmethod
    def _validate_template(cls, value: str) -> str:
        try:
            value.format(topic="")
        except (KeyError, IndexError, ValueError) as exc:
            raise ValueError(f"YOUTUBE_DESCRIPTION_TEMPLATE may only use {{topic}}: {exc}") from exc
        return value

    @model_validator(mode="after")
    def _require_youtube_credentials(self) -> "ServiceSettings":
        if self.publish:
            missing = [
                name
                for name, value in (
                    ("YOUTUBE_CLIENT_ID", self.youtube_client_id),
                    ("YOUTUBE_CLIENT_SECRET", self.youtube_client_secret),
                    ("YOUTUBE_REFRESH_TOKEN", self.youtube_refresh_token),
                )
                if not value
            ]
            if missing:
                raise ValueError(f"RENDER_PUBLISH requires {', '.join(missing)}")
        return self


@lru_cache(maxsize=1)
def get_settings() -> ServiceSettings:
    data = {key: value for key in ENV_KEYS if (value := os.getenv(key)) not in (None, "")}
    return ServiceSettings(**data)
