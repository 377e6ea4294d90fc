from __future__ import annotations

from typing import Any, Awaitable, Callable

API_PREFIX = "/api/"


def normalize_api_path(path: str) -> str:
    """`/api/images/my-memes/` -> `/api/images/my-memes`; other paths unchanged."""
    if path.startswith(API_PREFIX) and len(path) > len(API_PREFIX) and path.endswith("/"):
        return path.rstrip("/")
    return path


class NormalizePathMiddleware:
    """
    Serve `/api/...` routes with or without a trailing slash.

    The app is built with `redirect_slashes=False`, so the scope path is
    rewritten before routing rather than answered with a redirect.
    """

    def __init__(self, app: Callable[..., Awaitable[Any]]):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        if scope.get("type") == "http":
            path = str(scope.get("path") or "")
            new_path = normalize_api_path(path)
            if new_path != path:
                scope = dict(scope, path=new_path, raw_path=new_path.encode("utf-8"))
        return await self.app(scope, receive, send)
