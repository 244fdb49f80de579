"""Exceptions raised by the render pipeline, one per stage."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures inside :class:`~script_renderer.pipeline.RenderPipeline`.

    ``stage`` names the step that failed and ``status_code`` is the HTTP status
    the service answers with.
    """

    stage = "pipeline"
    status_code = 500

    def __init__(self, message: str, *, record_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.record_id = record_id


class NoWorkFound(PipelineError):
    stage = "select"
    status_code = 404


class ConfigurationError(PipelineError):
    stage = "config"


class RecordQueryError(PipelineError):
    stage = "select"


class ClaimConflict(PipelineError):
    stage = "claim"
    status_code = 409


class AssetFetchError(PipelineError):
    stage = "fetch"


class LocalWriteError(PipelineError):
    stage = "persist"


class CompositionError(PipelineError):
    stage = "compose"


class UploadError(PipelineError):
    stage = "upload"


class PublishError(PipelineError):
    stage = "publish"


class StatusUpdateError(PipelineError):
    stage = "status"


__all__ = [
    "AssetFetchError",
    "ClaimConflict",
    "ConfigurationError",
    "CompositionError",
    "LocalWriteError",
    "NoWorkFound",
    "PipelineError",
    "PublishError",
    "RecordQueryError",
    "StatusUpdateError",
    "UploadError",
]
