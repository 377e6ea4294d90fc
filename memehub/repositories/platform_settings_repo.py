from __future__ import annotations

from typing import Any

from ..db.dynamodb.errors import DdbConflict
from ..db.dynamodb.table import get_main_table
from .common import now_iso

DEFAULT_COMMISSION_RATE = 10
DEFAULT_MINIMUM_PRICE = 1
DEFAULT_MAXIMUM_PRICE = 1000

SETTINGS_KEY = {"pk": "PLATFORM", "sk": "SETTINGS"}


def normalize_settings_for_api(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "commissionRate": item.get("commissionRate"),
        "minimumPrice": item.get("minimumPrice"),
        "maximumPrice": item.get("maximumPrice"),
        "updatedBy": item.get("updatedBy"),
        "updatedAt": item.get("updatedAt"),
    }


def get_or_create_settings() -> dict[str, Any]:
    t = get_main_table()
    existing = t.get_item(key=SETTINGS_KEY)
    if existing:
        return existing

    item = {
        **SETTINGS_KEY,
        "entityType": "PlatformSettings",
        "commissionRate": DEFAULT_COMMISSION_RATE,
        "minimumPrice": DEFAULT_MINIMUM_PRICE,
        "maximumPrice": DEFAULT_MAXIMUM_PRICE,
        "updatedBy": "system",
        "updatedAt": now_iso(),
    }
    try:
        t.put_item(item=item, condition_expression="attribute_not_exists(pk)")
    except DdbConflict:
        # Another request created it first.
        return t.get_required(key=SETTINGS_KEY, message="Platform settings not found")
    return item


def save_settings(
    *,
    commission_rate: float,
    minimum_price: float,
    maximum_price: float,
    updated_by: str,
) -> dict[str, Any]:
    item = {
        **SETTINGS_KEY,
        "entityType": "PlatformSettings",
        "commissionRate": commission_rate,
        "minimumPrice": minimum_price,
        "maximumPrice": maximum_price,
        "updatedBy": updated_by,
        "updatedAt": now_iso(),
    }
    get_main_table().put_item(item=item)
    return item
