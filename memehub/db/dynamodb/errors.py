from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass(slots=True)
class DdbError(Exception):
    """Storage failure from the MemeHub table.

    Each subclass carries the HTTP status it renders as; the handler in
    ``memehub.main`` turns it into a problem+json body. Anything not more
    specific is a 500.
    """

    http_status: ClassVar[int] = 500
    title: ClassVar[str | None] = "Storage Error"

    message: str
    operation: str | None = None
    table_name: str | None = None
    key: dict[str, Any] | None = None
    aws_request_id: str | None = None
    retryable: bool = False
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message

    def problem_extensions(self) -> dict[str, Any]:
        """Fields safe to show a client. Keys stay out; they can hold emails."""
        ext = {"operation": self.operation, "retryable": bool(self.retryable), "awsRequestId": self.aws_request_id}
        return {k: v for k, v in ext.items() if v is not None}

    def log_fields(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "table": self.table_name,
            "aws_request_id": self.aws_request_id,
            "retryable": bool(self.retryable),
            "error": self.message,
            "cause": type(self.cause).__name__ if self.cause else None,
        }


@dataclass(slots=True)
class DdbNotFound(DdbError):
    http_status: ClassVar[int] = 404
    title: ClassVar[str | None] = None


@dataclass(slots=True)
class DdbConflict(DdbError):
    """A condition check or transaction was refused."""

    http_status: ClassVar[int] = 409
    title: ClassVar[str | None] = None


@dataclass(slots=True)
class DdbValidation(DdbError):
    http_status: ClassVar[int] = 400
    title: ClassVar[str | None] = None


@dataclass(slots=True)
class DdbThrottled(DdbError):
    http_status: ClassVar[int] = 503
    title: ClassVar[str | None] = None


@dataclass(slots=True)
class DdbUnavailable(DdbError):
    http_status: ClassVar[int] = 503
    title: ClassVar[str | None] = None


@dataclass(slots=True)
class DdbInternal(DdbError):
    pass
