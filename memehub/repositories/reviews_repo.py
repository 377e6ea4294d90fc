from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.errors import DdbConflict
from ..db.dynamodb.table import get_main_table
from .common import new_id, now_iso, query_all, set_fields, strip_internal


def reviews_pk(meme_type: str, meme_id: str) -> str:
    return f"REVIEWS#{meme_type}#{meme_id}"


def review_key(meme_type: str, meme_id: str, user_id: str) -> dict[str, str]:
    return {"pk": reviews_pk(meme_type, meme_id), "sk": f"USER#{user_id}"}


def normalize_review_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    return strip_internal(item, id_field="reviewId")


def create_review(
    meme_type: str,
    meme_id: str,
    user_id: str,
    *,
    content: str,
    rating: int | None,
) -> dict[str, Any] | None:
    """
    Returns None when the user already reviewed this meme.
    """
    review_id = new_id("rev")
    now = now_iso()
    item = {
        **review_key(meme_type, meme_id, user_id),
        "entityType": "Review",
        "reviewId": review_id,
        "memeType": meme_type,
        "memeId": meme_id,
        "userId": user_id,
        "content": content,
        "rating": rating,
        "createdAt": now,
        "updatedAt": now,
        "gsi1pk": f"REVIEW#{review_id}",
        "gsi1sk": "REVIEW",
    }
    try:
        get_main_table().put_item(item=item, condition_expression="attribute_not_exists(pk)")
    except DdbConflict:
        return None
    return item


def get_review(review_id: str) -> dict[str, Any] | None:
    rid = str(review_id or "").strip()
    if not rid:
        return None
    pg = get_main_table().query_page(
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(f"REVIEW#{rid}"),
        limit=1,
    )
    return pg.items[0] if pg.items else None


def list_reviews_for_meme(meme_type: str, meme_id: str) -> list[dict[str, Any]]:
    """Newest first."""
    items = query_all(
        get_main_table(),
        key_condition_expression=Key("pk").eq(reviews_pk(meme_type, meme_id)),
    )
    items.sort(key=lambda r: str(r.get("createdAt") or ""), reverse=True)
    return items


def update_review(
    review: dict[str, Any], patch: dict[str, Any], *, remove: list[str] | None = None
) -> dict[str, Any] | None:
    return set_fields(
        get_main_table(),
        key={"pk": review["pk"], "sk": review["sk"]},
        updates=patch,
        remove=remove,
    )


def delete_review(review: dict[str, Any]) -> None:
    get_main_table().delete_item(key={"pk": review["pk"], "sk": review["sk"]})


def delete_reviews_for_meme(meme_type: str, meme_id: str) -> int:
    reviews = list_reviews_for_meme(meme_type, meme_id)
    for r in reviews:
        delete_review(r)
    return len(reviews)
