from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from memehub.db.dynamodb.errors import DdbConflict, DdbInternal, DdbThrottled, DdbUnavailable, DdbValidation
from memehub.db.dynamodb.retry import RetryPolicy, ddb_call, map_ddb_error


def _client_error(code: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": "boom"}, "ResponseMetadata": {"RequestId": "req-1"}},
        "TransactWriteItems",
    )


@pytest.mark.parametrize(
    ("code", "cls", "status"),
    [
        ("TransactionCanceledException", DdbConflict, 409),
        ("ValidationException", DdbValidation, 400),
        ("ThrottlingException", DdbThrottled, 503),
        ("ResourceNotFoundException", DdbUnavailable, 503),
        ("SomethingNew", DdbInternal, 500),
    ],
)
def test_aws_codes_map_to_http_status(code, cls, status):
    err = map_ddb_error(_client_error(code), operation="TransactWriteItems", table_name="memehub")
    assert isinstance(err, cls)
    assert err.http_status == status
    assert err.aws_request_id == "req-1"


def test_problem_extensions_leave_the_key_out():
    err = map_ddb_error(
        _client_error("ConditionalCheckFailedException"),
        operation="PutItem",
        key={"pk": "EMAIL#alice@example.com", "sk": "PROFILE"},
    )
    ext = err.problem_extensions()
    assert ext == {"operation": "PutItem", "retryable": False, "awsRequestId": "req-1"}
    assert err.log_fields()["cause"] == "ClientError"


def test_throttling_is_retried_then_surfaces():
    calls = []

    def flaky():
        calls.append(1)
        raise _client_error("ThrottlingException")

    with pytest.raises(DdbThrottled):
        ddb_call("GetItem", flaky, retry_policy=RetryPolicy(max_attempts=3, base_delay_s=0.0))
    assert len(calls) == 3
