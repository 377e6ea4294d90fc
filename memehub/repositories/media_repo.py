from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from .common import new_id, now_iso, query_all, set_fields, strip_internal, type_pk

MEDIA_TYPES = ("template", "meme", "banner", "other")
MEDIA_KINDS = ("image", "video", "audio", "document", "other")


def media_key(media_id: str) -> dict[str, str]:
    return {"pk": f"MEDIA#{media_id}", "sk": "PROFILE"}


def normalize_media_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    return strip_internal(item, id_field="mediaId")


def create_media(doc: dict[str, Any]) -> dict[str, Any]:
    media_id = new_id("media")
    now = now_iso()
    item = {
        **media_key(media_id),
        "entityType": "Media",
        "mediaId": media_id,
        "url": str(doc.get("url") or ""),
        "filename": str(doc.get("filename") or ""),
        "originalName": str(doc.get("originalName") or ""),
        "title": doc.get("title"),
        "thumbnail": doc.get("thumbnail"),
        "type": str(doc.get("type") or "other"),
        "mediaType": str(doc.get("mediaType") or "other"),
        "uploadedBy": str(doc.get("uploadedBy") or ""),
        "isPublic": bool(doc.get("isPublic", True)),
        "createdAt": now,
        "gsi1pk": type_pk("MEDIA"),
        "gsi1sk": f"{now}#{media_id}",
    }
    get_main_table().put_item(item=item, condition_expression="attribute_not_exists(pk)")
    return item


def get_media(media_id: str) -> dict[str, Any] | None:
    return get_main_table().get_item(key=media_key(str(media_id or "").strip()))


def list_media(*, media_type: str | None = None, include_hidden: bool = False) -> list[dict[str, Any]]:
    """Newest first."""
    items = query_all(
        get_main_table(),
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(type_pk("MEDIA")),
        scan_index_forward=False,
    )
    if media_type:
        items = [it for it in items if it.get("type") == media_type]
    if not include_hidden:
        items = [it for it in items if it.get("isPublic", True)]
    return items


def set_media_visibility(media_id: str, is_public: bool) -> dict[str, Any] | None:
    return set_fields(get_main_table(), key=media_key(media_id), updates={"isPublic": bool(is_public)})


def delete_media(media_id: str) -> None:
    get_main_table().delete_item(key=media_key(media_id))
