from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Key

from ..db.dynamodb.errors import DdbConflict
from ..db.dynamodb.table import get_main_table
from . import memes_repo
from .common import new_id, now_iso, query_all, strip_internal, type_pk

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_REFUNDED = "refunded"

PAYMENT_PLATFORM_CREDIT = "platform_credit"


def transaction_key(transaction_id: str) -> dict[str, str]:
    return {"pk": f"TXN#{transaction_id}", "sk": "PROFILE"}


def purchase_key(buyer_id: str, meme_type: str, meme_id: str) -> dict[str, str]:
    return {"pk": f"USER#{buyer_id}", "sk": f"PURCHASE#{meme_type}#{meme_id}"}


def sale_key(seller_id: str, transaction_date: str, transaction_id: str) -> dict[str, str]:
    return {"pk": f"USER#{seller_id}", "sk": f"SALE#{transaction_date}#{transaction_id}"}


def normalize_transaction_for_api(item: dict[str, Any] | None) -> dict[str, Any] | None:
    return strip_internal(item, id_field="transactionId")


def record_purchase(
    *,
    buyer_id: str,
    seller_id: str,
    meme_type: str,
    meme_id: str,
    amounts: dict[str, Any],
) -> dict[str, Any] | None:
    """
    Write the (buyer, meme) purchase marker, the completed transaction, the
    seller's sale row and the meme's sale counters in one transaction.

    Returns None when the buyer already owns the meme; any other failure
    leaves nothing behind.
    """
    transaction_id = new_id("txn")
    date = now_iso()
    body = {
        "transactionId": transaction_id,
        "buyer": buyer_id,
        "seller": seller_id,
        "memeId": meme_id,
        "memeType": meme_type,
        "price": amounts["price"],
        "commission": amounts["commission"],
        "sellerEarnings": amounts["sellerEarnings"],
        "platformEarnings": amounts["platformEarnings"],
        "priceCents": amounts["priceCents"],
        "commissionCents": amounts["commissionCents"],
        "sellerEarningsCents": amounts["sellerEarningsCents"],
        "platformEarningsCents": amounts["platformEarningsCents"],
        "status": STATUS_COMPLETED,
        "paymentMethod": PAYMENT_PLATFORM_CREDIT,
        "transactionDate": date,
    }
    item = {
        **transaction_key(transaction_id),
        "entityType": "Transaction",
        **body,
        "gsi1pk": type_pk("TRANSACTION"),
        "gsi1sk": f"{date}#{transaction_id}",
    }
    marker = {
        **purchase_key(buyer_id, meme_type, meme_id),
        "entityType": "Purchase",
        "buyer": buyer_id,
        "seller": seller_id,
        "memeType": meme_type,
        "memeId": meme_id,
        "transactionId": transaction_id,
        "price": amounts["price"],
        "purchaseDate": date,
    }

    t = get_main_table()
    try:
        t.transact_write(
            puts=[
                t.tx_put(item=marker, condition_expression="attribute_not_exists(pk)"),
                t.tx_put(item=item, condition_expression="attribute_not_exists(pk)"),
                t.tx_put(item={**sale_key(seller_id, date, transaction_id), "entityType": "Sale", **body}),
            ],
            updates=[memes_repo.sale_counter_update(t, meme_id, seller_earnings=amounts["sellerEarnings"])],
        )
    except DdbConflict:
        if t.get_item(key=purchase_key(buyer_id, meme_type, meme_id)):
            return None
        raise
    return item


def get_transaction(transaction_id: str) -> dict[str, Any] | None:
    return get_main_table().get_item(key=transaction_key(transaction_id))


def list_purchases(buyer_id: str) -> list[dict[str, Any]]:
    return query_all(
        get_main_table(),
        key_condition_expression=Key("pk").eq(f"USER#{buyer_id}") & Key("sk").begins_with("PURCHASE#"),
    )


def list_sales(seller_id: str) -> list[dict[str, Any]]:
    """Newest first."""
    return query_all(
        get_main_table(),
        key_condition_expression=Key("pk").eq(f"USER#{seller_id}") & Key("sk").begins_with("SALE#"),
        scan_index_forward=False,
    )


def list_transactions(*, start_iso: str | None = None, end_iso: str | None = None) -> list[dict[str, Any]]:
    cond = Key("gsi1pk").eq(type_pk("TRANSACTION"))
    if start_iso and end_iso:
        # `~` sorts after '#', so the end bound includes every id on end_iso.
        cond = cond & Key("gsi1sk").between(start_iso, f"{end_iso}~")
    elif start_iso:
        cond = cond & Key("gsi1sk").gte(start_iso)
    return query_all(get_main_table(), index_name="GSI1", key_condition_expression=cond, scan_index_forward=True)
