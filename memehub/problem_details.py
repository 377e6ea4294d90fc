from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import ORJSONResponse

from .settings import get_settings

PROBLEM_JSON = "application/problem+json"


def default_title(status_code: int) -> str:
    try:
        return HTTPStatus(int(status_code)).phrase
    except ValueError:
        return "Internal Server Error" if int(status_code) >= 500 else "Error"


def _request_id(request: Request) -> str | None:
    rid = getattr(request.state, "request_id", None) or request.headers.get("x-request-id")
    return str(rid) if rid else None


def problem_payload(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    RFC7807 body. `detail` is mirrored into `message` for the web client;
    `extensions` stays nested so it cannot shadow the reserved members.
    """
    status = int(status_code)
    payload: dict[str, Any] = {
        "type": "about:blank",
        "title": title or default_title(status),
        "status": status,
        "instance": request.url.path,
    }
    if detail:
        payload["detail"] = payload["message"] = str(detail)
    rid = _request_id(request)
    if rid:
        payload["requestId"] = rid
    if errors:
        payload["errors"] = errors
    if extensions:
        payload["extensions"] = extensions
    return payload


def problem_response(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> ORJSONResponse:
    # 5xx detail can carry internals (boto messages, tracebacks); production hides it.
    if int(status_code) >= 500 and get_settings().is_production:
        detail = None

    return ORJSONResponse(
        status_code=int(status_code),
        content=problem_payload(
            request=request,
            status_code=status_code,
            title=title,
            detail=detail,
            errors=errors,
            extensions=extensions,
        ),
        media_type=PROBLEM_JSON,
    )
