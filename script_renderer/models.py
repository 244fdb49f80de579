"""Pydantic models describing script records and render results."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class ScriptStatus(str, Enum):
    THUMBED = "thumbed"
    RENDERING = "rendering"
    READY = "ready"
    PUBLISHED = "published"


class ScriptRecord(BaseModel):
    id: str
    status: ScriptStatus = ScriptStatus.THUMBED
    topic: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"extra": "ignore"}

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        # Supabase returns integer primary keys for bigint columns.
        if value is None:
            raise ValueError("record id is required")
        text = str(value).strip()
        if not text:
            raise ValueError("record id must not be empty")
        return text


class AssetPair(BaseModel):
    audio: Path
    image: Path


class PublishResult(BaseModel):
    video_id: str = Field(min_length=1)

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"


class RenderResult(BaseModel):
    record_id: str
    video_key: str
    status: ScriptStatus
    duration: Optional[float] = None
    publish: Optional[PublishResult] = None

    def to_response(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": "success", "video": self.video_key}
        if self.publish is not None:
            payload["youtube_id"] = self.publish.video_id
            payload["youtube_url"] = self.publish.url
        return payload
