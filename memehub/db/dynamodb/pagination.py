from __future__ import annotations

import json
from typing import Any

from ...services.token_crypto import seal, unseal
from .codec import from_ddb
from .errors import DdbValidation


def encode_next_token(last_evaluated_key: dict[str, Any] | None) -> str | None:
    """Opaque cursor for a query's LastEvaluatedKey; clients cannot read or edit it."""
    if not last_evaluated_key:
        return None
    return seal(json.dumps(from_ddb(last_evaluated_key), separators=(",", ":")))


def decode_next_token(next_token: str | None) -> dict[str, Any] | None:
    if not next_token:
        return None
    raw = unseal(next_token)
    try:
        key = json.loads(raw) if raw else None
    except ValueError:
        key = None
    if not isinstance(key, dict) or not key:
        raise DdbValidation(message="Invalid nextToken")
    return key
