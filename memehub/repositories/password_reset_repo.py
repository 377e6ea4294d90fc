from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from .common import query_all


@dataclass
class PasswordResetToken:
    token: str
    user_id: str
    email: str
    expires_at: int


def _token_key(token: str) -> dict[str, str]:
    return {"pk": f"PASSWORD_RESET#{token}", "sk": "v1"}


def _link_key(user_id: str, token: str) -> dict[str, str]:
    return {"pk": f"USER#{user_id}", "sk": f"PASSWORD_RESET#{token}"}


def _list_links(user_id: str) -> list[dict[str, Any]]:
    return query_all(
        get_main_table(),
        key_condition_expression=Key("pk").eq(f"USER#{user_id}") & Key("sk").begins_with("PASSWORD_RESET#"),
    )


def revoke_all_for_user(user_id: str) -> int:
    t = get_main_table()
    links = _list_links(user_id)
    for link in links:
        token = str(link.get("token") or "")
        if token:
            t.delete_item(key=_token_key(token))
        t.delete_item(key={"pk": link["pk"], "sk": link["sk"]})
    return len(links)


def create_password_reset(*, user_id: str, email: str, ttl_seconds: int) -> PasswordResetToken:
    """
    Issue a fresh token, replacing any the user had outstanding.
    """
    revoke_all_for_user(user_id)

    token = secrets.token_hex(32)
    expires_at = int(time.time()) + int(ttl_seconds)
    t = get_main_table()
    t.put_item(
        item={
            **_token_key(token),
            "entityType": "PasswordReset",
            "token": token,
            "userId": user_id,
            "email": email,
            "expiresAt": expires_at,
        }
    )
    t.put_item(
        item={
            **_link_key(user_id, token),
            "entityType": "PasswordResetLink",
            "token": token,
            "expiresAt": expires_at,
        }
    )
    return PasswordResetToken(token=token, user_id=user_id, email=email, expires_at=expires_at)


def find_valid_token(*, user_id: str, token: str) -> PasswordResetToken | None:
    tok = str(token or "").strip()
    if not tok:
        return None
    item = get_main_table().get_item(key=_token_key(tok))
    if not item or str(item.get("userId") or "") != str(user_id):
        return None
    expires_at = int(item.get("expiresAt") or 0)
    if expires_at < int(time.time()):
        return None
    return PasswordResetToken(
        token=tok,
        user_id=str(item["userId"]),
        email=str(item.get("email") or ""),
        expires_at=expires_at,
    )
