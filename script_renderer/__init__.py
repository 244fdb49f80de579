"""Public API for the :mod:`script_renderer` package.

Keep imports lightweight at module load time; pull moviepy, supabase and the
Google client lazily.
"""

from __future__ import annotations

from typing import Any

from .errors import PipelineError
from .types import RenderResult, ScriptRecord, ScriptStatus


def __getattr__(name: str) -> Any:
    if name == "RenderPipeline":
        from .pipeline import RenderPipeline

        return RenderPipeline
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["PipelineError", "RenderPipeline", "RenderResult", "ScriptRecord", "ScriptStatus"]
