from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.logging import get_logger


def _user_id(request: Request) -> str | None:
    sub = getattr(getattr(request.state, "user", None), "sub", None)
    return str(sub) if sub else None


def _client_ip(request: Request) -> str | None:
    fwd = request.headers.get("x-forwarded-for")
    if fwd:
        return fwd.split(",")[0].strip() or None
    return request.client.host if request.client else None


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    One `request` event per API call. 5xx responses log at error level and
    4xx at warning; the health banner and static assets are skipped.
    """

    def __init__(self, app, *, exclude_paths: set[str] | None = None, exclude_prefixes: tuple[str, ...] = ()):
        super().__init__(app)
        self._exclude = exclude_paths or set()
        self._exclude_prefixes = tuple(exclude_prefixes)
        self._log = get_logger("access")

    def _skipped(self, path: str) -> bool:
        return path in self._exclude or (bool(self._exclude_prefixes) and path.startswith(self._exclude_prefixes))

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if self._skipped(path):
            return await call_next(request)

        start = time.perf_counter()
        fields = {"http_method": request.method.upper(), "path": path, "client_ip": _client_ip(request)}

        try:
            response = await call_next(request)
        except Exception:
            elapsed = round((time.perf_counter() - start) * 1000.0, 2)
            self._log.exception("request_error", duration_ms=elapsed, user_id=_user_id(request), **fields)
            raise

        status = int(response.status_code)
        emit = self._log.error if status >= 500 else self._log.warning if status >= 400 else self._log.info
        emit(
            "request",
            status_code=status,
            duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
            user_id=_user_id(request),
            **fields,
        )
        return response
