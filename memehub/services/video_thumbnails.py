from __future__ import annotations

import subprocess
from pathlib import Path

from ..observability.logging import get_logger
from ..settings import settings

log = get_logger("video_thumbnails")

THUMBNAIL_SIZE = "320x240"
THUMBNAIL_AT = "00:00:01"


class ThumbnailError(RuntimeError):
    pass


def _run(cmd: list[str], *, timeout_s: int = 60) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout_s,
            check=False,
            text=True,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise ThumbnailError(f"{cmd[0]} failed: {e}") from e


def generate_thumbnail(video_path: Path, output_path: Path, *, at: str = THUMBNAIL_AT) -> Path:
    """
    Grab a single frame at `at` and scale it to THUMBNAIL_SIZE.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    w, h = THUMBNAIL_SIZE.split("x")
    p = _run(
        [
            settings.ffmpeg_path,
            "-y",
            "-ss",
            at,
            "-i",
            str(video_path),
            "-frames:v",
            "1",
            "-vf",
            f"scale={w}:{h}",
            str(output_path),
        ]
    )
    if p.returncode != 0 or not output_path.exists():
        raise ThumbnailError((p.stderr or "ffmpeg failed")[-500:])
    return output_path


def video_duration_seconds(video_path: Path) -> float | None:
    p = _run(
        [
            settings.ffprobe_path,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(video_path),
        ],
        timeout_s=30,
    )
    if p.returncode != 0:
        return None
    try:
        return float((p.stdout or "").strip())
    except ValueError:
        return None


def thumbnail_for(video_path: Path) -> Path | None:
    """
    Best-effort thumbnail next to the video (thumb-<name>.jpg). Short clips
    are sampled at their start.
    """
    out = video_path.with_name(f"thumb-{video_path.stem}.jpg")
    duration = video_duration_seconds(video_path)
    at = "00:00:00" if duration is not None and duration < 1 else THUMBNAIL_AT
    try:
        return generate_thumbnail(video_path, out, at=at)
    except ThumbnailError as e:
        log.warning("video_thumbnail_failed", video=str(video_path), error=str(e))
        return None
