"""Number coercion at the DynamoDB boundary.

boto3 rejects ``float`` on write and returns every number as ``Decimal`` on
read; orjson cannot serialize ``Decimal``. Items are converted on the way in
and out so repositories only ever see ``int``/``float``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


def to_ddb(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_ddb(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_ddb(v) for v in value]
    return value


def from_ddb(value: Any) -> Any:
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {k: from_ddb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_ddb(v) for v in value]
    if isinstance(value, set):
        return [from_ddb(v) for v in sorted(value, key=str)]
    return value
