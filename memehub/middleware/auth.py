from __future__ import annotations

import re

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..auth.tokens import AuthError, verify_bearer_token
from ..observability.logging import bind_request_user, get_logger
from ..problem_details import problem_response

_SEG = r"[^/]+"

# (method, path regex) pairs reachable without a bearer token. A token that is
# present is still verified so handlers can personalise the response.
_PUBLIC_ROUTES: list[tuple[str, re.Pattern[str]]] = [
    (m, re.compile(rf"^{p}$"))
    for m, p in [
        ("POST", r"/api/auth/signup"),
        ("POST", r"/api/auth/login"),
        ("POST", r"/api/auth/logout"),
        ("POST", r"/api/auth/forget-password"),
        ("POST", r"/api/auth/reset-password"),
        ("GET", r"/api/users/community"),
        ("GET", r"/api/likes/trending"),
        ("GET", rf"/api/likes/{_SEG}/{_SEG}/status"),
        ("GET", rf"/api/reviews/{_SEG}/{_SEG}"),
        ("GET", rf"/api/reviews/{_SEG}/{_SEG}/stats"),
        ("GET", r"/api/images/community-memes"),
        ("GET", rf"/api/images/user/{_SEG}/public-memes"),
        ("GET", rf"/api/images/{_SEG}/{_SEG}"),
        ("GET", r"/api/premium/settings"),
        ("GET", r"/api/premium/memes"),
        ("GET", r"/api/media/templates"),
        ("POST", r"/api/contact"),
        ("GET", r"/api/testimonials"),
        ("GET", rf"/api/testimonials/{_SEG}"),
    ]
]


def is_public_route(method: str, path: str) -> bool:
    m = str(method or "").upper()
    if m == "HEAD":
        m = "GET"
    return any(m == rm and rx.match(path) for rm, rx in _PUBLIC_ROUTES)


def _bearer_token(request: Request) -> str | None:
    auth = request.headers.get("authorization")
    if not auth:
        return None
    parts = str(auth).split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Unauthorized")
    return parts[1].strip()


async def require_auth(request: Request):
    path = request.url.path

    # CORSMiddleware answers preflight.
    if request.method.upper() == "OPTIONS":
        return

    # Only /api routes are guarded; static assets and the banner are open.
    if not path.startswith("/api/"):
        return

    token = _bearer_token(request)
    if not token:
        if is_public_route(request.method, path):
            return
        raise HTTPException(status_code=401, detail="No token provided")

    try:
        request.state.user = verify_bearer_token(token)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    bind_request_user(request.state.user.sub)


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Bearer-token enforcement as ASGI middleware.

    Added before CORSMiddleware so CORS wraps auth failures too.
    """

    async def dispatch(self, request: Request, call_next):
        log = get_logger("auth_middleware")
        try:
            await require_auth(request)
        except HTTPException as exc:
            log.info(
                "auth_middleware_denied",
                status_code=exc.status_code,
                path=request.url.path,
            )
            return problem_response(
                request=request,
                status_code=exc.status_code,
                title="Unauthorized" if exc.status_code == 401 else None,
                detail=str(exc.detail) if isinstance(exc.detail, str) else None,
            )
        return await call_next(request)
