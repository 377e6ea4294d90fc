from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from ..errors import ApiError, bad_request, not_found
from ..observability.logging import get_logger
from ..repositories import memes_repo, platform_settings_repo, transactions_repo

log = get_logger("ledger")

_CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    return Decimal(str(value if value is not None else 0)).quantize(_CENT, rounding=ROUND_HALF_UP)


def commission_for(price: Any, rate: Any) -> Decimal:
    return (to_money(price) * Decimal(str(rate)) / Decimal(100)).quantize(_CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Decimal) -> int:
    return int((value * 100).to_integral_value(rounding=ROUND_HALF_UP))


def split_sale(price: Any, rate: Any) -> dict[str, Any]:
    """
    Split a sale price into commission and seller earnings in whole cents.

    The `*Cents` integers satisfy priceCents == sellerEarningsCents +
    platformEarningsCents exactly; the dollar floats are the same amounts
    for display and may not sum exactly under binary float addition.
    """
    p = to_money(price)
    commission = commission_for(p, rate)
    seller = p - commission
    return {
        "price": float(p),
        "commission": float(commission),
        "sellerEarnings": float(seller),
        "platformEarnings": float(commission),
        "priceCents": to_cents(p),
        "commissionCents": to_cents(commission),
        "sellerEarningsCents": to_cents(seller),
        "platformEarningsCents": to_cents(commission),
    }


def validate_platform_settings(commission_rate: Any, minimum_price: Any, maximum_price: Any) -> tuple[float, float, float]:
    try:
        rate = Decimal(str(commission_rate))
        lo = Decimal(str(minimum_price))
        hi = Decimal(str(maximum_price))
    except ArithmeticError as e:
        raise bad_request("commissionRate, minimumPrice and maximumPrice must be numbers") from e
    if not (Decimal(0) <= rate <= Decimal(100)):
        raise bad_request("Commission rate must be between 0 and 100")
    if lo < 0 or hi < 0:
        raise bad_request("Prices cannot be negative")
    if lo > hi:
        raise bad_request("Minimum price cannot exceed maximum price")
    return float(rate), float(lo), float(hi)


def _fmt_price(v: Any) -> str:
    d = Decimal(str(v))
    return str(int(d)) if d == d.to_integral_value() else str(d)


def set_premium(*, user_id: str, meme_type: str, meme_id: str, is_premium: bool, price: Any) -> dict[str, Any]:
    settings = platform_settings_repo.get_or_create_settings()

    meme = memes_repo.get_meme(meme_type, meme_id)
    if not meme:
        raise not_found("Meme not found")
    if str(meme.get("userId")) != str(user_id):
        raise ApiError(403, "You can only set your own memes as premium")

    if is_premium:
        lo, hi = settings.get("minimumPrice"), settings.get("maximumPrice")
        try:
            p = to_money(price)
        except ArithmeticError as e:
            raise bad_request("Price must be a number") from e
        if p < Decimal(str(lo)) or p > Decimal(str(hi)):
            raise bad_request(f"Price must be between ${_fmt_price(lo)} and ${_fmt_price(hi)}")
        patch = {
            "isPremium": True,
            "price": float(p),
            "commission": float(commission_for(p, settings.get("commissionRate") or 0)),
        }
    else:
        patch = {"isPremium": False, "price": 0, "commission": 0}

    updated = memes_repo.update_meme(meme_id, patch)
    if not updated:
        raise not_found("Meme not found")
    log.info("meme_premium_updated", meme_id=meme_id, meme_type=meme_type, is_premium=bool(is_premium))
    return updated


def purchase(*, buyer_id: str, meme_type: str, meme_id: str) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Record an immutable completed sale. Returns (transaction, updated meme).
    """
    meme = memes_repo.get_meme(meme_type, meme_id)
    if not meme:
        raise not_found("Meme not found")
    if not meme.get("isPremium"):
        raise bad_request("This meme is not premium")
    seller_id = str(meme.get("userId") or "")
    if seller_id == str(buyer_id):
        raise bad_request("You cannot purchase your own meme")

    rate = platform_settings_repo.get_or_create_settings().get("commissionRate") or 0
    amounts = split_sale(meme.get("price") or 0, rate)
    txn = transactions_repo.record_purchase(
        buyer_id=str(buyer_id),
        seller_id=seller_id,
        meme_type=meme_type,
        meme_id=meme_id,
        amounts=amounts,
    )
    if txn is None:
        raise bad_request("You have already purchased this meme")

    updated = memes_repo.get_meme(meme_type, meme_id) or meme
    log.info(
        "premium_purchase_completed",
        transaction_id=txn.get("transactionId"),
        meme_id=meme_id,
        meme_type=meme_type,
        price=amounts["price"],
        commission=amounts["commission"],
    )
    return txn, updated
