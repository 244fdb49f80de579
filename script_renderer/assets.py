"""Download and persist the thumbnail/audio pair for a script record."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple

import httpx

from .errors import AssetFetchError, LocalWriteError
from .models import AssetPair

logger = logging.getLogger("script_renderer.assets")

AUDIO_EXTENSION = ".mp3"
IMAGE_EXTENSION = ".jpg"


def asset_urls(base_url: str, record_id: str) -> Tuple[str, str]:
    """Return ``(audio_url, image_url)`` for ``record_id`` under ``base_url``."""

    base = base_url.rstrip("/")
    return (
        f"{base}/audio/{record_id}{AUDIO_EXTENSION}",
        f"{base}/thumbnails/{record_id}{IMAGE_EXTENSION}",
    )


class AssetFetcher:
    """Fetch both assets of a record concurrently over HTTP.

    No retries are attempted. Any transport error or non-2xx answer raises
    :class:`AssetFetchError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ValueError("storage base url is required")
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def _get(self, client: httpx.AsyncClient, url: str, record_id: str) -> bytes:
        try:
            response = await client.get(url)
        except httpx.HTTPError as exc:
            raise AssetFetchError(f"Failed to download {url}: {exc}", record_id=record_id) from exc

        if not response.is_success:
            raise AssetFetchError(
                f"Failed to download {url}: HTTP {response.status_code}",
                record_id=record_id,
            )
        if not response.content:
            raise AssetFetchError(f"Downloaded asset is empty: {url}", record_id=record_id)
        return response.content

    async def fetch_pair(self, record_id: str) -> Tuple[bytes, bytes]:
        audio_url, image_url = asset_urls(self.base_url, record_id)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            audio, image = await asyncio.gather(
                self._get(client, audio_url, record_id),
                self._get(client, image_url, record_id),
            )

        logger.info(
            "Downloaded assets",
            extra={"record_id": record_id, "audio_bytes": len(audio), "image_bytes": len(image)},
        )
        return audio, image


def persist_assets(work_dir: Path, record_id: str, audio: bytes, image: bytes) -> AssetPair:
    """Write the asset buffers as ``{record_id}.mp3`` and ``{record_id}.jpg``."""

    audio_path = work_dir / f"{record_id}{AUDIO_EXTENSION}"
    image_path = work_dir / f"{record_id}{IMAGE_EXTENSION}"
    try:
        work_dir.mkdir(parents=True, exist_ok=True)
        audio_path.write_bytes(audio)
        image_path.write_bytes(image)
    except OSError as exc:
        raise LocalWriteError(f"Failed to write assets to {work_dir}: {exc}", record_id=record_id) from exc
    return AssetPair(audio=audio_path, image=image_path)
