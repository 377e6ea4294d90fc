from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Any

from ..db.dynamodb.errors import DdbConflict
from ..db.dynamodb.table import DynamoTable

_INTERNAL_KEYS = ("pk", "sk", "gsi1pk", "gsi1sk", "gsi2pk", "gsi2sk", "entityType")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_iso(value: Any) -> datetime | None:
    s = str(value or "").strip()
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def type_pk(t: str) -> str:
    return f"TYPE#{t}"


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4()}"


def strip_internal(item: dict[str, Any] | None, *, id_field: str) -> dict[str, Any] | None:
    """
    Drop storage keys and expose the entity id as ``_id`` (the shape the web
    client reads) alongside its typed id field.
    """
    if not item:
        return None
    out = dict(item)
    for k in _INTERNAL_KEYS:
        out.pop(k, None)
    out["_id"] = item.get(id_field)
    return out


def query_all(
    table: DynamoTable,
    *,
    key_condition_expression: Any,
    index_name: str | None = None,
    scan_index_forward: bool = False,
    filter_expression: Any | None = None,
    page_size: int = 200,
    max_items: int | None = None,
) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    next_token: str | None = None
    while True:
        pg = table.query_page(
            key_condition_expression=key_condition_expression,
            index_name=index_name,
            scan_index_forward=scan_index_forward,
            filter_expression=filter_expression,
            limit=page_size,
            next_token=next_token,
        )
        out.extend(pg.items)
        if max_items is not None and len(out) >= max_items:
            return out[:max_items]
        next_token = pg.next_token
        if not next_token:
            return out


def set_fields(
    table: DynamoTable,
    *,
    key: dict[str, Any],
    updates: dict[str, Any],
    remove: list[str] | None = None,
) -> dict[str, Any] | None:
    """
    ``SET`` every field in ``updates`` (plus ``updatedAt``) on an existing item.

    Returns the updated item, or None when the item does not exist.
    """
    expr_parts: list[str] = []
    expr_names: dict[str, str] = {}
    expr_values: dict[str, Any] = {":u": now_iso()}

    for i, (k, v) in enumerate(updates.items(), start=1):
        expr_names[f"#k{i}"] = k
        expr_values[f":v{i}"] = v
        expr_parts.append(f"#k{i} = :v{i}")
    expr_parts.append("updatedAt = :u")

    expression = "SET " + ", ".join(expr_parts)
    if remove:
        names = []
        for j, k in enumerate(remove, start=1):
            expr_names[f"#r{j}"] = k
            names.append(f"#r{j}")
        expression += " REMOVE " + ", ".join(names)

    try:
        return table.update_item(
            key=key,
            update_expression=expression,
            expression_attribute_names=expr_names or None,
            expression_attribute_values=expr_values,
            condition_expression="attribute_exists(pk)",
        )
    except DdbConflict:
        return None


def paginate(items: list[Any], *, page: int, limit: int) -> tuple[list[Any], int, int]:
    """
    Slice ``items`` for 1-based ``page``; returns (slice, total, total_pages).
    """
    p = max(1, int(page or 1))
    lim = max(1, min(200, int(limit or 10)))
    total = len(items)
    start = (p - 1) * lim
    return items[start : start + lim], total, int(math.ceil(total / lim)) if total else 0


def claim_marker(table: DynamoTable, key: dict[str, str], *, owner_id: str) -> bool:
    """
    Conditionally create a uniqueness marker; False when already taken.
    """
    try:
        table.put_item(
            item={**key, "entityType": "Marker", "ownerId": owner_id, "createdAt": now_iso()},
            condition_expression="attribute_not_exists(pk)",
        )
    except DdbConflict:
        return False
    return True
