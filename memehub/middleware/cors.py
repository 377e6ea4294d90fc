from __future__ import annotations

from urllib.parse import urlsplit

# Vite and CRA dev servers.
_LOCAL_DEV_ORIGINS = ("http://localhost:5173", "http://localhost:3000")


def _origin(value: str) -> str | None:
    parts = urlsplit(value.strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def build_allowed_origins(
    *,
    frontend_url: str | None,
    frontend_urls: str | None,
    include_local: bool = True,
) -> list[str]:
    """
    Collect CORS origins from FRONTEND_URL and the comma-separated
    FRONTEND_URLS. Paths are dropped and malformed entries skipped.
    """
    allowed: set[str] = set(_LOCAL_DEV_ORIGINS) if include_local else set()
    raw = ",".join(v for v in (frontend_url, frontend_urls) if v)
    for entry in raw.split(","):
        origin = _origin(entry) if entry.strip() else None
        if origin:
            allowed.add(origin)
    return sorted(allowed)
