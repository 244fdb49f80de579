from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from script_renderer.assets import AssetFetcher, asset_urls, persist_assets
from script_renderer.errors import AssetFetchError, LocalWriteError

BASE = "https://example.supabase.co/storage/v1/object/public"


def test_asset_urls_follow_storage_layout():
    assert asset_urls(BASE + "/", "17") == (
        f"{BASE}/audio/17.mp3",
        f"{BASE}/thumbnails/17.jpg",
    )


@pytest.mark.asyncio
async def test_fetch_pair_downloads_both_assets():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        if request.url.path.endswith(".mp3"):
            return httpx.Response(200, content=b"ID3-audio")
        return httpx.Response(200, content=b"\xff\xd8jpeg")

    fetcher = AssetFetcher(BASE, transport=httpx.MockTransport(handler))
    audio, image = await fetcher.fetch_pair("17")

    assert audio == b"ID3-audio"
    assert image == b"\xff\xd8jpeg"
    assert sorted(seen) == sorted(asset_urls(BASE, "17"))


@pytest.mark.asyncio
async def test_fetch_pair_rejects_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        if "thumbnails" in request.url.path:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, content=b"audio")

    fetcher = AssetFetcher(BASE, transport=httpx.MockTransport(handler))

    with pytest.raises(AssetFetchError, match="HTTP 404") as excinfo:
        await fetcher.fetch_pair("17")
    assert excinfo.value.record_id == "17"


@pytest.mark.asyncio
async def test_fetch_pair_wraps_network_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = AssetFetcher(BASE, transport=httpx.MockTransport(handler))

    with pytest.raises(AssetFetchError, match="connection refused"):
        await fetcher.fetch_pair("17")


def test_persist_assets_uses_record_id_stem(tmp_path: Path):
    pair = persist_assets(tmp_path / "work", "17", b"audio", b"image")

    assert pair.audio == tmp_path / "work" / "17.mp3"
    assert pair.image == tmp_path / "work" / "17.jpg"
    assert pair.audio.read_bytes() == b"audio"
    assert pair.image.read_bytes() == b"image"


def test_persist_assets_reports_write_errors(tmp_path: Path):
    blocker = tmp_path / "work"
    blocker.write_text("not a directory")

    with pytest.raises(LocalWriteError):
        persist_assets(blocker, "17", b"audio", b"image")
