from __future__ import annotations

from collections import Counter

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from ..auth.roles import require_admin
from ..observability.logging import get_logger
from ..repositories import memes_repo
from ..repositories.common import now_iso, paginate
from ..services.visibility import meme_for_api, with_owners

router = APIRouter(tags=["moderation"])
log = get_logger("moderation")


class ReviewMemeRequest(BaseModel):
    memeId: str | None = None
    memeType: str | None = None
    action: str | None = None
    rejectionReason: str | None = None


class ToggleVisibilityRequest(BaseModel):
    memeId: str | None = None
    memeType: str | None = None


def _load(meme_id: str | None, meme_type: str | None) -> tuple[str, dict]:
    if not meme_id or not meme_type:
        raise HTTPException(status_code=400, detail="memeId and memeType are required")
    mt = memes_repo.normalize_meme_type(meme_type)
    if not mt:
        raise HTTPException(status_code=400, detail="Invalid meme type")
    meme = memes_repo.get_meme(mt, meme_id)
    if not meme:
        raise HTTPException(status_code=404, detail="Meme not found")
    return mt, meme


def _listing(memes: list[dict], page: int, limit: int) -> dict:
    rows, total, total_pages = paginate(memes, page=page, limit=limit)
    return {
        "memes": [meme_for_api(m, owner) for m, owner in with_owners(rows)],
        "total": total,
        "page": max(1, int(page or 1)),
        "totalPages": total_pages,
    }


@router.get("/admin/pending")
def pending_memes(request: Request, page: int = 1, limit: int = 20):
    require_admin(request)
    memes = [m for m in memes_repo.list_all_memes() if m.get("publicationStatus") == memes_repo.STATUS_PENDING]
    return _listing(memes, page, limit)


@router.post("/admin/review")
def review_meme(request: Request, body: ReviewMemeRequest):
    admin = require_admin(request)
    action = str(body.action or "").strip().lower()
    if action not in ("approve", "reject"):
        raise HTTPException(status_code=400, detail='Action must be either "approve" or "reject"')
    reason = str(body.rejectionReason or "").strip()
    if action == "reject" and not reason:
        raise HTTPException(status_code=400, detail="Rejection reason is required when rejecting a meme")

    mt, meme = _load(body.memeId, body.memeType)
    if meme.get("publicationStatus") != memes_repo.STATUS_PENDING:
        raise HTTPException(status_code=400, detail="Meme is not in pending status")

    stamp = {"reviewedBy": admin.sub, "reviewedAt": now_iso()}
    if action == "approve":
        updated = memes_repo.update_meme(
            meme["memeId"],
            {"publicationStatus": memes_repo.STATUS_APPROVED, "is_public": True, **stamp},
            remove=["rejectionReason"],
        )
    else:
        updated = memes_repo.update_meme(
            meme["memeId"],
            {
                "publicationStatus": memes_repo.STATUS_REJECTED,
                "is_public": False,
                "rejectionReason": reason,
                **stamp,
            },
        )
    if not updated:
        raise HTTPException(status_code=404, detail="Meme not found")

    log.info("meme_moderated", meme_id=meme["memeId"], meme_type=mt, action=action, admin_id=admin.sub)
    return {
        "message": f"Meme {'approved' if action == 'approve' else 'rejected'} successfully",
        "meme": memes_repo.normalize_meme_for_api(updated),
    }


@router.get("/admin/stats")
def review_stats(request: Request):
    require_admin(request)
    counts = Counter(str(m.get("publicationStatus") or memes_repo.STATUS_PRIVATE) for m in memes_repo.list_all_memes())
    stats = dict(counts)
    return {
        "stats": stats,
        "totalPending": stats.get(memes_repo.STATUS_PENDING, 0),
        "totalApproved": stats.get(memes_repo.STATUS_APPROVED, 0),
        "totalRejected": stats.get(memes_repo.STATUS_REJECTED, 0),
        "totalPrivate": stats.get(memes_repo.STATUS_PRIVATE, 0),
    }


@router.get("/admin/all-memes")
def all_memes(request: Request, page: int = 1, limit: int = 50):
    require_admin(request)
    return _listing(memes_repo.list_all_memes(), page, limit)


@router.post("/admin/toggle-meme-visibility")
def toggle_visibility(request: Request, body: ToggleVisibilityRequest):
    admin = require_admin(request)
    mt, meme = _load(body.memeId, body.memeType)

    now_public = not bool(meme.get("is_public"))
    status = memes_repo.STATUS_APPROVED if now_public else memes_repo.STATUS_PRIVATE
    updated = memes_repo.update_meme(meme["memeId"], {"is_public": now_public, "publicationStatus": status})
    if not updated:
        raise HTTPException(status_code=404, detail="Meme not found")

    log.info("meme_visibility_toggled", meme_id=meme["memeId"], meme_type=mt, is_public=now_public, admin_id=admin.sub)
    return {
        "message": f"Meme is now {'public' if now_public else 'private'}",
        "meme": memes_repo.normalize_meme_for_api(updated),
    }
