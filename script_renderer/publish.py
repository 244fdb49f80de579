"""Publish rendered videos to YouTube using the Data API v3."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.http import MediaFileUpload

from .errors import PublishError
from .models import PublishResult

logger = logging.getLogger("script_renderer.publish")

SCOPES = ["https://www.googleapis.com/auth/youtube.upload"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

DEFAULT_DESCRIPTION_TEMPLATE = "{topic}\n\n#shorts"
MAX_TITLE_LENGTH = 100
PRIVACY_STATUS = "public"


class Publisher(Protocol):
    def publish(self, video_path: Path, metadata: Dict[str, Any]) -> PublishResult: ...


def build_metadata(topic: Optional[str], template: str = DEFAULT_DESCRIPTION_TEMPLATE) -> Dict[str, Any]:
    """Title and description for a script topic, always the same for the same topic."""

    # YouTube rejects angle brackets in titles and descriptions.
    cleaned = " ".join((topic or "").replace("<", "").replace(">", "").split())
    title = cleaned[:MAX_TITLE_LENGTH].rstrip() or "Untitled"
    description = template.format(topic=cleaned).replace("<", "").replace(">", "")
    return {
        "snippet": {
            "title": title,
            "description": description,
            "categoryId": "22",
        },
        "status": {
            "privacyStatus": PRIVACY_STATUS,
            "selfDeclaredMadeForKids": False,
        },
    }


class YouTubePublisher:
    """Upload videos with a long-lived refresh token.

    The access token is minted from ``refresh_token`` on first use, so no
    browser flow happens at request time. Use
    ``python -m renderer_service.youtube_auth`` once to obtain the token.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        *,
        service: Any = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self._service = service

    def _get_credentials(self) -> Credentials:
        creds = Credentials(
            token=None,
            refresh_token=self.refresh_token,
            client_id=self.client_id,
            client_secret=self.client_secret,
            token_uri=TOKEN_URI,
            scopes=SCOPES,
        )
        creds.refresh(Request())
        return creds

    def _get_service(self) -> Any:
        if self._service is None:
            self._service = build("youtube", "v3", credentials=self._get_credentials(), cache_discovery=False)
        return self._service

    def publish(self, video_path: Path, metadata: Dict[str, Any]) -> PublishResult:
        try:
            service = self._get_service()
            media = MediaFileUpload(str(video_path), mimetype="video/mp4", chunksize=-1, resumable=True)
            request = service.videos().insert(
                part=",".join(metadata.keys()),
                body=metadata,
                media_body=media,
            )
            response = None
            while response is None:
                status, response = request.next_chunk()
                if status:
                    logger.info("Upload progress", extra={"progress": int(status.progress() * 100)})
        except Exception as exc:
            raise PublishError(f"YouTube upload failed: {exc}") from exc

        video_id = (response or {}).get("id")
        if not video_id:
            raise PublishError(f"YouTube upload returned no video id: {response!r}")

        result = PublishResult(video_id=video_id)
        logger.info("Published video", extra={"youtube_id": result.video_id, "youtube_url": result.url})
        return result
