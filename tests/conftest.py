from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from script_renderer.errors import NoWorkFound, StatusUpdateError, UploadError
from script_renderer.models import AssetPair, PublishResult, ScriptRecord, ScriptStatus


class FakeRecordStore:
    """In-memory stand-in for the Supabase scripts table."""

    def __init__(self, rows: Optional[List[Dict]] = None) -> None:
        self.rows = {str(row["id"]): dict(row) for row in rows or []}
        self.status_writes: List[tuple[str, ScriptStatus]] = []
        self.fail_status: Optional[ScriptStatus] = None
        self.steal_claims = False

    def latest_with_status(self, status: ScriptStatus) -> ScriptRecord:
        matching = [row for row in self.rows.values() if row["status"] == status.value]
        if not matching:
            raise NoWorkFound(f"No {status.value} script")
        newest = max(matching, key=lambda row: row["created_at"])
        return ScriptRecord.model_validate(newest)

    def claim(self, record_id: str, expected: ScriptStatus, target: ScriptStatus) -> bool:
        if self.steal_claims:
            self.rows[record_id]["status"] = target.value
            return False
        row = self.rows.get(record_id)
        if row is None or row["status"] != expected.value:
            return False
        row["status"] = target.value
        return True

    def set_status(self, record_id: str, status: ScriptStatus) -> None:
        if self.fail_status == status:
            raise StatusUpdateError(f"Status update for {record_id} matched no rows", record_id=record_id)
        self.status_writes.append((record_id, status))
        self.rows[record_id]["status"] = status.value


class FakeBlobStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.uploads: Dict[str, tuple[bytes, str, bool]] = {}

    def upload(self, key: str, data: bytes, *, content_type: str, upsert: bool = True) -> str:
        if self.fail:
            raise UploadError(f"Upload of {key} to bucket videos failed: boom")
        self.uploads[key] = (data, content_type, upsert)
        return key


class FakeFetcher:
    def __init__(self) -> None:
        self.requested: List[str] = []

    async def fetch_pair(self, record_id: str) -> tuple[bytes, bytes]:
        self.requested.append(record_id)
        return b"audio-bytes", b"image-bytes"


class FakePublisher:
    def __init__(self, video_id: str = "yt-123") -> None:
        self.video_id = video_id
        self.calls: List[tuple[Path, Dict]] = []

    def publish(self, video_path: Path, metadata: Dict) -> PublishResult:
        assert video_path.exists()
        self.calls.append((video_path, metadata))
        return PublishResult(video_id=self.video_id)


def make_row(record_id, topic="Why cats purr", status="thumbed", day=1) -> Dict:
    return {
        "id": record_id,
        "status": status,
        "topic": topic,
        "created_at": datetime(2024, 5, day, tzinfo=timezone.utc).isoformat(),
    }


async def fake_composer(assets: AssetPair, output_path: Path) -> float:
    assert assets.audio.read_bytes() == b"audio-bytes"
    assert assets.image.read_bytes() == b"image-bytes"
    output_path.write_bytes(b"video-bytes")
    return 12.5


@pytest.fixture
def records() -> FakeRecordStore:
    return FakeRecordStore([make_row("old", day=1), make_row("new", day=2), make_row("done", status="ready", day=3)])


@pytest.fixture
def blobs() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()
