from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.errors import DdbConflict
from ..db.dynamodb.table import get_main_table
from .common import now_iso, query_all, type_pk


def likes_pk(meme_type: str, meme_id: str) -> str:
    return f"LIKES#{meme_type}#{meme_id}"


def like_key(meme_type: str, meme_id: str, user_id: str) -> dict[str, str]:
    return {"pk": likes_pk(meme_type, meme_id), "sk": f"USER#{user_id}"}


def add_like(meme_type: str, meme_id: str, user_id: str) -> bool:
    """
    Returns False when the user already likes the meme.
    """
    now = now_iso()
    item = {
        **like_key(meme_type, meme_id, user_id),
        "entityType": "Like",
        "memeType": meme_type,
        "memeId": meme_id,
        "userId": user_id,
        "createdAt": now,
        "gsi1pk": type_pk("LIKE"),
        "gsi1sk": f"{now}#{meme_type}#{meme_id}#{user_id}",
    }
    try:
        get_main_table().put_item(item=item, condition_expression="attribute_not_exists(pk)")
    except DdbConflict:
        return False
    return True


def remove_like(meme_type: str, meme_id: str, user_id: str) -> bool:
    try:
        get_main_table().delete_item(
            key=like_key(meme_type, meme_id, user_id),
            condition_expression="attribute_exists(pk)",
        )
    except DdbConflict:
        return False
    return True


def has_liked(meme_type: str, meme_id: str, user_id: str | None) -> bool:
    if not user_id:
        return False
    return get_main_table().get_item(key=like_key(meme_type, meme_id, user_id)) is not None


def list_likes_for_meme(meme_type: str, meme_id: str) -> list[dict[str, Any]]:
    return query_all(
        get_main_table(),
        key_condition_expression=Key("pk").eq(likes_pk(meme_type, meme_id)),
    )


def count_likes(meme_type: str, meme_id: str) -> int:
    return len(list_likes_for_meme(meme_type, meme_id))


def list_likes_since(since_iso: str | None) -> list[dict[str, Any]]:
    cond = Key("gsi1pk").eq(type_pk("LIKE"))
    if since_iso:
        cond = cond & Key("gsi1sk").gte(since_iso)
    return query_all(get_main_table(), index_name="GSI1", key_condition_expression=cond)


def delete_likes_for_meme(meme_type: str, meme_id: str) -> int:
    t = get_main_table()
    likes = list_likes_for_meme(meme_type, meme_id)
    for it in likes:
        t.delete_item(key={"pk": it["pk"], "sk": it["sk"]})
    return len(likes)
