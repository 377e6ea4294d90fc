from __future__ import annotations

import os
import random
import re
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from ..errors import ApiError, bad_request
from ..settings import settings

PUBLIC_PREFIX = "/assets"

IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".webm", ".mkv", ".flv", ".wmv"}


@dataclass
class SavedFile:
    path: Path
    url: str
    filename: str
    original_name: str
    content_type: str
    size: int


def assets_root() -> Path:
    root = Path(settings.assets_dir)
    root.mkdir(parents=True, exist_ok=True)
    return root


def _safe_ext(filename: str) -> str:
    ext = os.path.splitext(str(filename or ""))[1].lower()
    return ext if re.fullmatch(r"\.[a-z0-9]{1,8}", ext) else ""


def _safe_subdir(subdir: str) -> Path:
    parts = [p for p in str(subdir or "").replace("\\", "/").split("/") if p and p not in (".", "..")]
    return Path(*parts) if parts else Path(".")


def unique_name(original: str, *, default_ext: str = "") -> str:
    return f"{time.time_ns()}-{random.randint(0, 10**9)}{_safe_ext(original) or default_ext}"


def url_for(path: Path) -> str:
    rel = path.resolve().relative_to(assets_root().resolve())
    return f"{PUBLIC_PREFIX}/{rel.as_posix()}"


def path_for_url(url: str | None) -> Path | None:
    """Map a /assets URL back to a file under the assets root, or None."""
    u = str(url or "")
    if not u.startswith(PUBLIC_PREFIX + "/"):
        return None
    root = assets_root().resolve()
    p = (root / u[len(PUBLIC_PREFIX) + 1 :]).resolve()
    if root not in p.parents:
        return None
    return p


def is_video_filename(filename: str | None) -> bool:
    return _safe_ext(filename or "") in VIDEO_EXTENSIONS


def save_bytes(data: bytes, *, subdir: str, filename: str) -> Path:
    dest_dir = assets_root() / _safe_subdir(subdir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    dest = dest_dir / filename
    dest.write_bytes(data)
    return dest


def save_upload(
    upload: UploadFile,
    *,
    subdir: str,
    allowed_mime: set[str] | None = None,
    allow_video: bool = False,
    max_bytes: int | None = None,
) -> SavedFile:
    mt = (upload.content_type or "").lower()
    original = upload.filename or ""
    video_ok = allow_video and (mt.startswith("video/") or is_video_filename(original))
    if allowed_mime is not None and mt not in allowed_mime and not video_ok:
        raise bad_request(f"File type {mt or 'unknown'} is not allowed")

    dest_dir = assets_root() / _safe_subdir(subdir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    name = unique_name(original)
    dest = dest_dir / name

    with dest.open("wb") as out:
        shutil.copyfileobj(upload.file, out)

    size = dest.stat().st_size
    limit = int(max_bytes or settings.max_upload_bytes)
    if size > limit:
        dest.unlink(missing_ok=True)
        raise ApiError(413, f"File {original or name} exceeds {limit} bytes")

    return SavedFile(
        path=dest,
        url=url_for(dest),
        filename=name,
        original_name=original or name,
        content_type=mt,
        size=size,
    )


def delete_asset(url: str | None) -> bool:
    p = path_for_url(url)
    if p is None or not p.exists():
        return False
    p.unlink()
    return True
