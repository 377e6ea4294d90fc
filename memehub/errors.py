from __future__ import annotations


class ApiError(Exception):
    """
    A business-rule failure that maps directly to an HTTP status.

    Raised from services; rendered as problem+json by the handler in main.
    """

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = int(status_code)
        self.detail = str(detail)


def bad_request(detail: str) -> ApiError:
    return ApiError(400, detail)


def forbidden(detail: str) -> ApiError:
    return ApiError(403, detail)


def not_found(detail: str) -> ApiError:
    return ApiError(404, detail)
