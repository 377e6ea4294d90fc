from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from .common import new_id, now_iso, query_all, set_fields, strip_internal, type_pk

MEME = "Meme"
GENERATED_IMAGE = "GeneratedImage"
MEME_TYPES = (MEME, GENERATED_IMAGE)

STATUS_PRIVATE = "private"
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
PUBLICATION_STATUSES = (STATUS_PRIVATE, STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

_ID_PREFIX = {MEME: "meme", GENERATED_IMAGE: "img"}


def normalize_meme_type(value: Any) -> str | None:
    s = str(value or "").strip()
    for t in MEME_TYPES:
        if s.lower() == t.lower():
            return t
    return None


def meme_key(meme_id: str) -> dict[str, str]:
    return {"pk": f"MEME#{meme_id}", "sk": "PROFILE"}


def normalize_meme_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    return strip_internal(item, id_field="memeId")


def publication_fields(want_public: bool) -> dict[str, Any]:
    """
    A request to go public only queues the meme for moderation.
    """
    if want_public:
        return {"is_public": False, "publicationStatus": STATUS_PENDING}
    return {"is_public": False, "publicationStatus": STATUS_PRIVATE}


def create_meme(meme_type: str, *, user_id: str, doc: dict[str, Any]) -> dict[str, Any]:
    meme_id = new_id(_ID_PREFIX[meme_type])
    now = now_iso()

    item: dict[str, Any] = {
        **meme_key(meme_id),
        "entityType": "Meme",
        "memeType": meme_type,
        "memeId": meme_id,
        "userId": str(user_id),
        "url": str(doc.get("url") or ""),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "overlays": list(doc.get("overlays") or []),
        **publication_fields(bool(doc.get("is_public"))),
        "isPremium": False,
        "price": 0,
        "commission": 0,
        "soldCount": 0,
        "totalEarnings": 0,
        "createdAt": now,
        "updatedAt": now,
        "gsi1pk": type_pk(meme_type),
        "gsi1sk": f"{now}#{meme_id}",
        "gsi2pk": f"OWNER#{user_id}",
        "gsi2sk": f"{now}#{meme_id}",
    }
    if meme_type == GENERATED_IMAGE:
        item["prompt"] = str(doc.get("prompt") or "")
        item["style"] = str(doc.get("style") or "")
        item["modelUsed"] = str(doc.get("modelUsed") or "")
    if doc.get("thumbnail"):
        item["thumbnail"] = str(doc["thumbnail"])

    get_main_table().put_item(item=item, condition_expression="attribute_not_exists(pk)")
    return item


def get_meme(meme_type: str, meme_id: str) -> dict[str, Any] | None:
    mid = str(meme_id or "").strip()
    if not mid:
        return None
    item = get_main_table().get_item(key=meme_key(mid))
    if not item or item.get("memeType") != meme_type:
        return None
    return item


def list_memes_by_type(meme_type: str) -> list[dict[str, Any]]:
    """Newest first."""
    return query_all(
        get_main_table(),
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(type_pk(meme_type)),
        scan_index_forward=False,
    )


def list_all_memes() -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for t in MEME_TYPES:
        out.extend(list_memes_by_type(t))
    out.sort(key=lambda m: str(m.get("createdAt") or ""), reverse=True)
    return out


def list_memes_by_owner(user_id: str) -> list[dict[str, Any]]:
    return query_all(
        get_main_table(),
        index_name="GSI2",
        key_condition_expression=Key("gsi2pk").eq(f"OWNER#{user_id}"),
        scan_index_forward=False,
    )


def update_meme(meme_id: str, patch: dict[str, Any], *, remove: list[str] | None = None) -> dict[str, Any] | None:
    return set_fields(get_main_table(), key=meme_key(meme_id), updates=dict(patch or {}), remove=remove)


def sale_counter_update(table: Any, meme_id: str, *, seller_earnings: float) -> dict[str, Any]:
    """Transaction item bumping soldCount and totalEarnings; the meme must still exist."""
    return table.tx_update(
        key=meme_key(meme_id),
        update_expression="ADD soldCount :one, totalEarnings :e SET updatedAt = :u",
        expression_attribute_values={":one": 1, ":e": seller_earnings, ":u": now_iso()},
        condition_expression="attribute_exists(pk)",
    )


def delete_meme(meme_id: str) -> None:
    get_main_table().delete_item(key=meme_key(meme_id))
