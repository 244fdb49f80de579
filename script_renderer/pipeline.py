"""Render pipeline: newest thumbed script -> composed video -> storage."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Optional

from .assets import AssetFetcher, persist_assets
from .compose import compose_video
from .errors import ClaimConflict, LocalWriteError, PipelineError, PublishError
from .models import AssetPair, PublishResult, RenderResult, ScriptRecord, ScriptStatus
from .publish import DEFAULT_DESCRIPTION_TEMPLATE, Publisher, build_metadata
from .storage import BlobStore, RecordStore

logger = logging.getLogger("script_renderer.pipeline")

VIDEO_CONTENT_TYPE = "video/mp4"

Composer = Callable[[AssetPair, Path], Awaitable[Optional[float]]]


def video_key(record_id: str) -> str:
    return f"{record_id}.mp4"


class RenderPipeline:
    """Render one script per :meth:`run` call.

    Steps run strictly in order: select, claim, fetch, persist, compose, read,
    upload, publish (only when a publisher is configured) and status update.
    A failing step stops the run; nothing already uploaded is rolled back.

    With ``claim`` enabled the selected record is moved from ``thumbed`` to
    ``rendering`` with a conditional update before any work starts, so two
    concurrent runs never render the same record. When a later step fails the
    record is put back to ``thumbed``, unless the video was already published;
    then it stays ``rendering`` so the next run cannot publish it again. With ``claim`` disabled two concurrent
    runs can select and render the same record.
    """

    def __init__(
        self,
        records: RecordStore,
        blobs: BlobStore,
        fetcher: AssetFetcher,
        *,
        composer: Composer = compose_video,
        publisher: Optional[Publisher] = None,
        work_root: Optional[Path] = None,
        claim: bool = True,
        keep_files: bool = False,
        description_template: str = DEFAULT_DESCRIPTION_TEMPLATE,
    ) -> None:
        self.records = records
        self.blobs = blobs
        self.fetcher = fetcher
        self.composer = composer
        self.publisher = publisher
        self.work_root = work_root
        self.claim = claim
        self.keep_files = keep_files
        self.description_template = description_template

    @property
    def final_status(self) -> ScriptStatus:
        return ScriptStatus.PUBLISHED if self.publisher is not None else ScriptStatus.READY

    async def _select(self) -> ScriptRecord:
        record = await asyncio.to_thread(self.records.latest_with_status, ScriptStatus.THUMBED)
        logger.info("Selected script", extra={"record_id": record.id, "topic": record.topic})
        if self.claim:
            claimed = await asyncio.to_thread(
                self.records.claim, record.id, ScriptStatus.THUMBED, ScriptStatus.RENDERING
            )
            if not claimed:
                raise ClaimConflict(f"Script {record.id} was claimed by another render", record_id=record.id)
        return record

    async def _release(self, record: ScriptRecord) -> None:
        try:
            await asyncio.to_thread(self.records.set_status, record.id, ScriptStatus.THUMBED)
        except PipelineError:
            logger.exception("Failed to release claimed script", extra={"record_id": record.id})

    def _make_work_dir(self, record_id: str) -> Path:
        root = self.work_root or Path(tempfile.gettempdir())
        try:
            root.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=f"render_{record_id}_", dir=root))
        except OSError as exc:
            raise LocalWriteError(f"Could not create work directory in {root}: {exc}", record_id=record_id) from exc

    async def _publish(self, record: ScriptRecord, video_path: Path) -> PublishResult:
        if self.publisher is None:
            raise PublishError("No publisher configured", record_id=record.id)
        metadata = build_metadata(record.topic, self.description_template)
        return await asyncio.to_thread(self.publisher.publish, video_path, metadata)

    async def _render(self, record: ScriptRecord, work_dir: Path) -> tuple[Path, Optional[float]]:
        audio, image = await self.fetcher.fetch_pair(record.id)
        assets = await asyncio.to_thread(persist_assets, work_dir, record.id, audio, image)

        output_path = work_dir / video_key(record.id)
        duration = await self.composer(assets, output_path)

        try:
            video_bytes = await asyncio.to_thread(output_path.read_bytes)
        except OSError as exc:
            raise LocalWriteError(f"Could not read composed video {output_path}: {exc}", record_id=record.id) from exc

        await asyncio.to_thread(
            self.blobs.upload, video_key(record.id), video_bytes, content_type=VIDEO_CONTENT_TYPE, upsert=True
        )
        return output_path, duration

    async def run(self) -> RenderResult:
        record = await self._select()
        work_dir: Optional[Path] = None
        publish_result: Optional[PublishResult] = None
        try:
            work_dir = await asyncio.to_thread(self._make_work_dir, record.id)
            output_path, duration = await self._render(record, work_dir)
            if self.publisher is not None:
                publish_result = await self._publish(record, output_path)

            status = self.final_status
            await asyncio.to_thread(self.records.set_status, record.id, status)
        except Exception as exc:
            if isinstance(exc, PipelineError) and exc.record_id is None:
                exc.record_id = record.id
            if publish_result is not None:
                # Already public; putting it back in the queue would publish it twice.
                logger.error(
                    "Script published but its status was not updated; leaving it claimed",
                    extra={"record_id": record.id, "youtube_id": publish_result.video_id},
                )
            elif self.claim:
                await self._release(record)
            raise
        finally:
            if work_dir is not None and not self.keep_files:
                with contextlib.suppress(Exception):
                    shutil.rmtree(work_dir)

        key = video_key(record.id)
        logger.info(
            "Script rendered",
            extra={"record_id": record.id, "video": key, "status": status.value, "duration": duration},
        )
        return RenderResult(
            record_id=record.id,
            video_key=key,
            status=status,
            duration=duration,
            publish=publish_result,
        )
