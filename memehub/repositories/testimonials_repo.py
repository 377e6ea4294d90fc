from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.table import get_main_table
from .common import new_id, now_iso, query_all, set_fields, strip_internal, type_pk


def testimonial_key(testimonial_id: str) -> dict[str, str]:
    return {"pk": f"TESTIMONIAL#{testimonial_id}", "sk": "PROFILE"}


def normalize_testimonial_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    return strip_internal(item, id_field="testimonialId")


def create_testimonial(*, name: str, content: str, rating: int, profile_image: str) -> dict[str, Any]:
    testimonial_id = new_id("tst")
    now = now_iso()
    item = {
        **testimonial_key(testimonial_id),
        "entityType": "Testimonial",
        "testimonialId": testimonial_id,
        "name": name,
        "content": content,
        "rating": int(rating),
        "profileImage": profile_image,
        "createdAt": now,
        "gsi1pk": type_pk("TESTIMONIAL"),
        "gsi1sk": f"{now}#{testimonial_id}",
    }
    get_main_table().put_item(item=item, condition_expression="attribute_not_exists(pk)")
    return item


def get_testimonial(testimonial_id: str) -> dict[str, Any] | None:
    return get_main_table().get_item(key=testimonial_key(str(testimonial_id or "").strip()))


def list_testimonials() -> list[dict[str, Any]]:
    """Newest first."""
    return query_all(
        get_main_table(),
        index_name="GSI1",
        key_condition_expression=Key("gsi1pk").eq(type_pk("TESTIMONIAL")),
        scan_index_forward=False,
    )


def update_testimonial(testimonial_id: str, patch: dict[str, Any]) -> dict[str, Any] | None:
    allowed = {"name", "content", "rating", "profileImage"}
    updates = {k: v for k, v in (patch or {}).items() if k in allowed}
    return set_fields(get_main_table(), key=testimonial_key(testimonial_id), updates=updates)


def delete_testimonial(testimonial_id: str) -> None:
    get_main_table().delete_item(key=testimonial_key(testimonial_id))
