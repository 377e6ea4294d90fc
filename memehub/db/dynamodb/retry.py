from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from ...observability.logging import get_logger
from .errors import (
    DdbConflict,
    DdbError,
    DdbInternal,
    DdbThrottled,
    DdbUnavailable,
    DdbValidation,
)

T = TypeVar("T")

log = get_logger("ddb")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 4
    base_delay_s: float = 0.05
    max_delay_s: float = 1.0

    def delay(self, attempt: int) -> float:
        # Full jitter.
        cap = min(self.max_delay_s, self.base_delay_s * (2 ** max(0, attempt - 1)))
        return random.random() * cap


# AWS error code -> (error class, message, retryable)
_CODE_MAP: dict[str, tuple[type[DdbError], str, bool]] = {
    "ConditionalCheckFailedException": (DdbConflict, "DynamoDB conditional check failed", False),
    "TransactionCanceledException": (DdbConflict, "DynamoDB transaction cancelled", False),
    "ValidationException": (DdbValidation, "DynamoDB request validation failed", False),
    "AccessDeniedException": (DdbUnavailable, "DynamoDB access denied", False),
    "UnrecognizedClientException": (DdbUnavailable, "DynamoDB access denied", False),
    "ResourceNotFoundException": (DdbUnavailable, "DynamoDB table not found", False),
    "ProvisionedThroughputExceededException": (DdbThrottled, "DynamoDB throughput exceeded", True),
    "ThrottlingException": (DdbThrottled, "DynamoDB request throttled", True),
    "RequestLimitExceeded": (DdbThrottled, "DynamoDB request limit exceeded", True),
    "InternalServerError": (DdbUnavailable, "DynamoDB internal error", True),
    "ServiceUnavailable": (DdbUnavailable, "DynamoDB unavailable", True),
}


def map_ddb_error(
    exc: Exception,
    *,
    operation: str,
    table_name: str | None = None,
    key: dict[str, Any] | None = None,
) -> DdbError:
    if isinstance(exc, DdbError):
        return exc

    ctx: dict[str, Any] = {"operation": operation, "table_name": table_name, "key": key, "cause": exc}

    if isinstance(exc, ClientError):
        resp = exc.response or {}
        code = str((resp.get("Error") or {}).get("Code") or "")
        ctx["aws_request_id"] = (resp.get("ResponseMetadata") or {}).get("RequestId")
        if code in _CODE_MAP:
            cls, message, retryable = _CODE_MAP[code]
            return cls(message=message, retryable=retryable, **ctx)
        return DdbInternal(message=f"DynamoDB request failed ({code or 'ClientError'})", **ctx)

    if isinstance(exc, BotoCoreError):
        return DdbUnavailable(message="DynamoDB client error", retryable=True, **ctx)

    return DdbInternal(message="Unexpected DynamoDB error", **ctx)


def ddb_call(
    operation: str,
    fn: Callable[[], T],
    *,
    table_name: str | None = None,
    key: dict[str, Any] | None = None,
    retry_policy: RetryPolicy | None = None,
) -> T:
    """
    Run one DynamoDB request, retrying throttling and transient failures.
    Anything else surfaces immediately as a typed DdbError.
    """
    policy = retry_policy or RetryPolicy()
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except Exception as e:  # noqa: BLE001
            mapped = map_ddb_error(e, operation=operation, table_name=table_name, key=key)
            if not mapped.retryable or attempt >= max(1, policy.max_attempts):
                raise mapped from e
            log.warning("ddb_retry", attempt=attempt, **mapped.log_fields())
            time.sleep(policy.delay(attempt))
