from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from ..auth.roles import require_super_admin, require_user
from ..observability.logging import get_logger
from ..repositories import memes_repo, platform_settings_repo, transactions_repo, users_repo
from ..repositories.common import paginate
from ..services import ledger
from ..services.visibility import meme_for_api, with_owners

router = APIRouter(tags=["premium"])
log = get_logger("premium")

_SORTABLE = {"createdAt", "price", "soldCount", "updatedAt"}


class PlatformSettingsRequest(BaseModel):
    commissionRate: float | None = None
    minimumPrice: float | None = None
    maximumPrice: float | None = None


class SetPremiumRequest(BaseModel):
    memeId: str | None = None
    memeType: str | None = None
    isPremium: bool = False
    price: float | None = None


class PurchaseRequest(BaseModel):
    memeId: str | None = None
    memeType: str | None = None


def _meme_ref(meme_id: str | None, meme_type: str | None) -> tuple[str, str]:
    if not meme_id or not meme_type:
        raise HTTPException(status_code=400, detail="memeId and memeType are required")
    mt = memes_repo.normalize_meme_type(meme_type)
    if not mt:
        raise HTTPException(status_code=400, detail="Invalid meme type")
    return mt, str(meme_id)


@router.get("/settings")
def get_platform_settings():
    return platform_settings_repo.normalize_settings_for_api(platform_settings_repo.get_or_create_settings())


@router.put("/settings")
def update_platform_settings(request: Request, body: PlatformSettingsRequest):
    user = require_super_admin(request)
    if body.commissionRate is None or body.minimumPrice is None or body.maximumPrice is None:
        raise HTTPException(status_code=400, detail="commissionRate, minimumPrice and maximumPrice are required")
    rate, lo, hi = ledger.validate_platform_settings(body.commissionRate, body.minimumPrice, body.maximumPrice)

    saved = platform_settings_repo.save_settings(
        commission_rate=rate,
        minimum_price=lo,
        maximum_price=hi,
        updated_by=user.sub,
    )
    log.info("platform_settings_updated", commission_rate=rate, minimum_price=lo, maximum_price=hi, by=user.sub)
    return {
        "message": "Platform settings updated successfully",
        "settings": platform_settings_repo.normalize_settings_for_api(saved),
    }


@router.put("/meme/premium")
def set_premium(request: Request, body: SetPremiumRequest):
    user = require_user(request)
    mt, meme_id = _meme_ref(body.memeId, body.memeType)
    updated = ledger.set_premium(
        user_id=user.sub,
        meme_type=mt,
        meme_id=meme_id,
        is_premium=bool(body.isPremium),
        price=body.price,
    )
    return {
        "message": f"Meme {'set as premium' if body.isPremium else 'removed from premium'} successfully",
        "meme": memes_repo.normalize_meme_for_api(updated),
    }


@router.get("/memes")
def list_premium_memes(page: int = 1, limit: int = 20, sort: str = "createdAt"):
    sort_key = sort if sort in _SORTABLE else "createdAt"
    memes = [
        m
        for m in memes_repo.list_all_memes()
        if m.get("isPremium") and m.get("is_public") and m.get("publicationStatus") == memes_repo.STATUS_APPROVED
    ]
    memes.sort(key=lambda m: (m.get(sort_key) is not None, m.get(sort_key) or 0), reverse=True)
    page_rows, total, total_pages = paginate(memes, page=page, limit=limit)
    return {
        "memes": [meme_for_api(m, owner) for m, owner in with_owners(page_rows)],
        "total": total,
        "page": max(1, int(page or 1)),
        "totalPages": total_pages,
    }


@router.post("/meme/purchase")
def purchase_meme(request: Request, body: PurchaseRequest):
    user = require_user(request)
    mt, meme_id = _meme_ref(body.memeId, body.memeType)
    txn, meme = ledger.purchase(buyer_id=user.sub, meme_type=mt, meme_id=meme_id)
    return {
        "message": "Premium meme purchased successfully",
        "transaction": transactions_repo.normalize_transaction_for_api(txn),
        "meme": memes_repo.normalize_meme_for_api(meme),
    }


@router.get("/purchased")
def purchased_memes(request: Request):
    user = require_user(request)
    purchases = transactions_repo.list_purchases(user.sub)
    sellers = users_repo.get_users_by_ids([str(p.get("seller") or "") for p in purchases])

    out: list[dict[str, Any]] = []
    for p in purchases:
        meme = memes_repo.get_meme(str(p.get("memeType")), str(p.get("memeId")))
        if not meme:
            continue
        item = memes_repo.normalize_meme_for_api(meme) or {}
        item["purchaseDate"] = p.get("purchaseDate")
        item["purchasePrice"] = p.get("price")
        item["seller"] = users_repo.public_profile(sellers.get(str(p.get("seller") or "")))
        out.append(item)
    out.sort(key=lambda m: str(m.get("purchaseDate") or ""), reverse=True)
    return {"memes": out}


@router.get("/earnings")
def creator_earnings(request: Request):
    user = require_user(request)
    sales = [s for s in transactions_repo.list_sales(user.sub) if s.get("status") == transactions_repo.STATUS_COMPLETED]
    return {
        "totalEarnings": float(ledger.to_money(sum(ledger.to_money(s.get("sellerEarnings")) for s in sales))),
        "totalSales": len(sales),
        "totalRevenue": float(ledger.to_money(sum(ledger.to_money(s.get("price")) for s in sales))),
        "transactions": [transactions_repo.normalize_transaction_for_api(s) for s in sales[:10]],
    }
