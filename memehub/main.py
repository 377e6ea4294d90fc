from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from . import __version__
from .db.dynamodb.errors import DdbError
from .errors import ApiError
from .middleware import (
    AccessLogMiddleware,
    AuthMiddleware,
    NormalizePathMiddleware,
    RequestContextMiddleware,
)
from .middleware.cors import build_allowed_origins
from .observability.logging import configure_logging, get_logger
from .problem_details import problem_response
from .routers.analytics import router as analytics_router
from .routers.auth import router as auth_router
from .routers.contact import router as contact_router
from .routers.health import router as health_router
from .routers.images import router as images_router
from .routers.likes import router as likes_router
from .routers.media import router as media_router
from .routers.moderation import router as moderation_router
from .routers.permissions import router as permissions_router
from .routers.premium import router as premium_router
from .routers.reviews import router as reviews_router
from .routers.roles import router as roles_router
from .routers.support import router as support_router
from .routers.testimonials import router as testimonials_router
from .routers.users import router as users_router
from .services.assets import PUBLIC_PREFIX, assets_root
from .settings import settings

# Moderation endpoints live under /api/premium/admin alongside the marketplace.
_API_ROUTERS = (
    (auth_router, "auth"),
    (users_router, "users"),
    (images_router, "images"),
    (likes_router, "likes"),
    (reviews_router, "reviews"),
    (premium_router, "premium"),
    (moderation_router, "premium"),
    (analytics_router, "analytics"),
    (media_router, "media"),
    (contact_router, "contact"),
    (support_router, "support"),
    (testimonials_router, "testimonials"),
    (roles_router, "roles"),
    (permissions_router, "permissions"),
)


def create_app() -> FastAPI:
    configure_logging(level=settings.log_level, json_output=not settings.is_development)
    log = get_logger("startup")

    app = FastAPI(
        title="MemeHub API",
        version=__version__,
        default_response_class=ORJSONResponse,
        # /api/x and /api/x/ are both served; NormalizePathMiddleware strips
        # the trailing slash instead of redirecting.
        redirect_slashes=False,
    )

    allowed_origins = build_allowed_origins(
        frontend_url=settings.frontend_url,
        frontend_urls=settings.frontend_urls,
        include_local=not settings.is_production,
    )

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Middlewares (order matters; last added is outermost)
    # Auth runs inside CORS so auth failures still get CORS headers.
    app.add_middleware(AuthMiddleware)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/"}, exclude_prefixes=(PUBLIC_PREFIX,))
    app.add_middleware(NormalizePathMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
        max_age=3000,
    )
    # Outermost: request context (request-id) wraps everything.
    app.add_middleware(RequestContextMiddleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ApiError, _api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DdbError, _ddb_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    # Uploaded and generated files
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=str(assets_root())), name="assets")

    app.include_router(health_router)
    for router, prefix in _API_ROUTERS:
        app.include_router(router, prefix=f"/api/{prefix}")

    return app


def _api_error_handler(request: Request, exc: ApiError) -> Response:
    return problem_response(request=request, status_code=exc.status_code, detail=exc.detail)


def _ddb_error_handler(request: Request, exc: DdbError) -> Response:
    status_code = exc.http_status
    if status_code >= 500:
        get_logger("ddb").error("ddb_request_failed", **exc.log_fields())
    return problem_response(
        request=request,
        status_code=status_code,
        title=exc.title,
        detail=exc.message or None,
        extensions=exc.problem_extensions(),
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    detail = exc.detail
    if isinstance(detail, dict):
        message = detail.get("message")
        return problem_response(
            request=request,
            status_code=exc.status_code,
            detail=message if isinstance(message, str) else None,
            extensions=detail,
        )
    if exc.status_code == 404 and (not detail or detail == "Not Found"):
        detail = "Route not found"
    return problem_response(request=request, status_code=exc.status_code, detail=str(detail) if detail else None)


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors = [
        {
            "path": ".".join(str(part) for part in (e.get("loc") or ()) if part != "body"),
            "message": e.get("msg", "Invalid value"),
            "type": e.get("type"),
        }
        for e in exc.errors()
    ]
    return problem_response(
        request=request,
        status_code=422,
        title="Validation Failed",
        detail="Request validation failed",
        errors=errors,
    )


def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    get_logger("unhandled").exception(
        "unhandled_exception",
        http_method=request.method.upper(),
        path=request.url.path,
        user_id=getattr(getattr(request.state, "user", None), "sub", None),
    )
    return problem_response(
        request=request,
        status_code=500,
        title="Internal Server Error",
        detail=str(exc) or exc.__class__.__name__,
    )


app = create_app()
