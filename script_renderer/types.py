"""Lightweight export wrappers for record and result models."""

from .models import (
    AssetPair,
    PublishResult,
    RenderResult,
    ScriptRecord,
    ScriptStatus,
)

__all__ = [
    "AssetPair",
    "PublishResult",
    "RenderResult",
    "ScriptRecord",
    "ScriptStatus",
]
