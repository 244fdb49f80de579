"""Still image + audio composition with FFmpeg."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from moviepy import AudioFileClip

from .errors import CompositionError
from .models import AssetPair

logger = logging.getLogger("script_renderer.compose")

# Portrait frame used for every rendered short.
OUTPUT_WIDTH = 720
OUTPUT_HEIGHT = 1280


@dataclass
class CompositionSettings:
    width: int = OUTPUT_WIDTH
    height: int = OUTPUT_HEIGHT
    fps: int = 30
    bg_color: str = "black"
    preset: str = "veryfast"
    crf: int = 23
    audio_bitrate: str = "128k"
    audio_sample_rate: int = 48000


@lru_cache(maxsize=1)
def _get_ffmpeg_binary() -> str:
    configured = os.getenv("FFMPEG_BINARY")
    if configured:
        if os.path.isfile(configured):
            return configured
        if shutil.which(configured):
            return configured
        logger.warning(
            "Configured FFMPEG_BINARY was not found on disk or PATH",
            extra={"value": configured},
        )

    discovered = shutil.which("ffmpeg")
    if discovered:
        return discovered

    try:
        import imageio_ffmpeg  # type: ignore

        return imageio_ffmpeg.get_ffmpeg_exe()
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(
            "FFmpeg binary not found. Install ffmpeg or set FFMPEG_BINARY."
        ) from exc


async def _run_subprocess(
    cmd: List[str],
    *,
    cwd: Optional[str] = None,
) -> Tuple[int, bytes, bytes]:
    if os.name == "nt":
        def _run_sync() -> subprocess.CompletedProcess[bytes]:
            kwargs: Dict[str, Any] = {
                "cwd": cwd,
                "stdout": subprocess.PIPE,
                "stderr": subprocess.PIPE,
                "check": False,
            }
            create_no_window = getattr(subprocess, "CREATE_NO_WINDOW", None)
            if create_no_window is not None:
                kwargs["creationflags"] = create_no_window
            return subprocess.run(cmd, **kwargs)  # type: ignore[arg-type]

        completed = await asyncio.to_thread(_run_sync)
        return completed.returncode, completed.stdout or b"", completed.stderr or b""

    process = await asyncio.create_subprocess_exec(
        *cmd,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return process.returncode, stdout or b"", stderr or b""


def probe_audio_duration(path: Path) -> Optional[float]:
    """Return the audio length in seconds, or ``None`` if it cannot be read."""

    try:
        clip = AudioFileClip(str(path))
    except Exception:
        logger.warning("Could not probe audio duration", extra={"audio_path": str(path)})
        return None
    try:
        duration = float(clip.duration) if clip.duration else None
    finally:
        close = getattr(clip, "close", None)
        if callable(close):
            close()
    return duration


def build_compose_command(
    ffmpeg_bin: str,
    image_path: Path,
    audio_path: Path,
    output_path: Path,
    settings: CompositionSettings,
    *,
    duration: Optional[float] = None,
) -> List[str]:
    """Build the ffmpeg invocation looping ``image_path`` under ``audio_path``.

    The frame is scaled and padded to exactly ``settings.width`` x
    ``settings.height`` whatever the source image size, and ``-shortest``
    stops the output at the end of the audio track.
    """

    limit: List[str] = ["-t", f"{duration:.3f}"] if duration else []
    return [
        ffmpeg_bin,
        "-y",
        "-loop",
        "1",
        "-i",
        str(image_path),
        "-i",
        str(audio_path),
        *limit,
        "-vf",
        f"scale={settings.width}:{settings.height}:force_original_aspect_ratio=decrease,"
        f"pad={settings.width}:{settings.height}:(ow-iw)/2:(oh-ih)/2:color={settings.bg_color},"
        "setsar=1,format=yuv420p",
        "-c:v",
        "libx264",
        "-preset",
        settings.preset,
        "-crf",
        str(settings.crf),
        "-tune",
        "stillimage",
        "-r",
        str(settings.fps),
        "-c:a",
        "aac",
        "-b:a",
        settings.audio_bitrate,
        "-ar",
        str(settings.audio_sample_rate),
        "-shortest",
        "-movflags",
        "+faststart",
        str(output_path),
    ]


async def compose_video(
    assets: AssetPair,
    output_path: Path,
    settings: Optional[CompositionSettings] = None,
) -> Optional[float]:
    """Render ``assets`` into ``output_path`` and wait for ffmpeg to exit.

    Returns the duration of the output (the audio length) when it can be probed.
    """

    settings = settings or CompositionSettings()
    for label, path in (("image", assets.image), ("audio", assets.audio)):
        if not path.exists():
            raise CompositionError(f"Missing {label} input: {path}")

    duration = await asyncio.to_thread(probe_audio_duration, assets.audio)
    cmd = build_compose_command(
        _get_ffmpeg_binary(),
        assets.image,
        assets.audio,
        output_path,
        settings,
        duration=duration,
    )

    logger.info(
        "Starting ffmpeg composition",
        extra={"output": str(output_path), "duration": duration},
    )
    return_code, _stdout, stderr = await _run_subprocess(cmd)

    if return_code != 0:
        error_msg = stderr.decode(errors="ignore") if stderr else "Unknown FFmpeg error"
        logger.error(
            "FFmpeg subprocess failed",
            extra={"return_code": return_code, "stderr": error_msg},
        )
        raise CompositionError(f"ffmpeg exited with code {return_code}: {error_msg[-500:].strip()}")

    if not output_path.exists() or output_path.stat().st_size == 0:
        raise CompositionError(f"ffmpeg produced no output at {output_path}")

    return duration
