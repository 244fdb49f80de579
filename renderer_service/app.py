"""FastAPI application exposing the render trigger endpoint."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from script_renderer.assets import AssetFetcher
from script_renderer.errors import ConfigurationError, PipelineError
from script_renderer.pipeline import RenderPipeline

from .config import ServiceSettings, get_settings

logger = logging.getLogger("renderer_service.app")

app = FastAPI(title="Script Video Renderer", version="0.1.0")


def _check_auth(request: Request, settings: ServiceSettings) -> None:
    if not settings.auth_token:
        return
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    provided = auth_header.split(" ", 1)[1].strip()
    if provided != settings.auth_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid bearer token")


def _load_settings() -> ServiceSettings:
    try:
        return get_settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_pipeline() -> RenderPipeline:
    """Build the pipeline and its clients once per process."""

    from script_renderer.storage import SupabaseBlobStore, SupabaseRecordStore, create_supabase_client

    settings = _load_settings()
    if not settings.storage_base:
        raise ConfigurationError("SUPABASE_STORAGE_BASE must be set")

    try:
        client = create_supabase_client(settings.supabase_url or "", settings.supabase_key or "")
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    publisher = None
    if settings.publish:
        from script_renderer.publish import YouTubePublisher

        publisher = YouTubePublisher(
            settings.youtube_client_id or "",
            settings.youtube_client_secret or "",
            settings.youtube_refresh_token or "",
        )

    return RenderPipeline(
        SupabaseRecordStore(client, settings.scripts_table),
        SupabaseBlobStore(client, settings.video_bucket),
        AssetFetcher(settings.storage_base, timeout=settings.fetch_timeout),
        publisher=publisher,
        work_root=Path(settings.temp_root) if settings.temp_root else None,
        claim=settings.claim,
        keep_files=settings.keep_files,
        description_template=settings.description_template,
    )


def _error_response(exc: PipelineError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.exception("Render failed", extra={"stage": exc.stage, "record_id": exc.record_id})
    else:
        logger.info("Render skipped: %s", exc.message, extra={"stage": exc.stage})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "stage": exc.stage},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/render")
async def render_endpoint(request: Request):
    # Auth runs before any client is built.
    try:
        settings = _load_settings()
    except ConfigurationError as exc:
        return _error_response(exc)

    _check_auth(request, settings)

    try:
        pipeline = await asyncio.to_thread(get_pipeline)
        result = await pipeline.run()
    except PipelineError as exc:
        return _error_response(exc)
    except Exception as exc:
        logger.exception("Render failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc)},
        )

    return result.to_response()
