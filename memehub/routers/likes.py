from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from ..auth.roles import current_user, require_user
from ..observability.logging import get_logger
from ..repositories import likes_repo, memes_repo
from ..services.visibility import community_memes, is_community_visible, load_meme_with_owner, meme_for_api

router = APIRouter(tags=["likes"])
log = get_logger("likes")

TIMEFRAME_DAYS = {"1d": 1, "7d": 7, "30d": 30}


class LikeRequest(BaseModel):
    memeId: str | None = None
    memeType: str | None = None


def _parse(body: LikeRequest) -> tuple[str, str]:
    if not body.memeId or not body.memeType:
        raise HTTPException(status_code=400, detail="Meme ID and type are required")
    meme_type = memes_repo.normalize_meme_type(body.memeType)
    if not meme_type:
        raise HTTPException(status_code=400, detail="Invalid meme type")
    return meme_type, str(body.memeId)


@router.post("/like", status_code=201)
def like_meme(request: Request, body: LikeRequest):
    user = require_user(request)
    meme_type, meme_id = _parse(body)

    meme, owner = load_meme_with_owner(meme_type, meme_id)
    if not meme:
        raise HTTPException(status_code=404, detail="Meme not found")
    if not is_community_visible(meme, owner):
        if not meme.get("is_public"):
            raise HTTPException(status_code=403, detail="Cannot like private memes")
        raise HTTPException(status_code=403, detail="Cannot like memes from private profiles")

    if not likes_repo.add_like(meme_type, meme_id, user.sub):
        raise HTTPException(status_code=400, detail="Meme already liked")

    log.info("meme_liked", meme_id=meme_id, meme_type=meme_type, user_id=user.sub)
    return {
        "message": "Meme liked successfully",
        "liked": True,
        "likeCount": likes_repo.count_likes(meme_type, meme_id),
    }


@router.post("/unlike")
def unlike_meme(request: Request, body: LikeRequest):
    user = require_user(request)
    meme_type, meme_id = _parse(body)

    if not likes_repo.remove_like(meme_type, meme_id, user.sub):
        raise HTTPException(status_code=400, detail="Meme not liked by user")

    log.info("meme_unliked", meme_id=meme_id, meme_type=meme_type, user_id=user.sub)
    return {
        "message": "Meme unliked successfully",
        "liked": False,
        "likeCount": likes_repo.count_likes(meme_type, meme_id),
    }


@router.get("/trending")
def trending(limit: int = 10, timeframe: str = "7d"):
    lim = max(1, min(100, int(limit or 10)))
    tf = timeframe if timeframe in TIMEFRAME_DAYS or timeframe == "all" else "7d"

    since = None
    if tf != "all":
        since_dt = datetime.now(timezone.utc) - timedelta(days=TIMEFRAME_DAYS[tf])
        since = since_dt.isoformat().replace("+00:00", "Z")

    counts = Counter(
        (str(lk.get("memeType")), str(lk.get("memeId")))
        for lk in likes_repo.list_likes_since(since)
    )

    memes = []
    for (meme_type, meme_id), _ in counts.most_common():
        meme = memes_repo.get_meme(meme_type, meme_id)
        if meme:
            memes.append(meme)

    ranked = [
        meme_for_api(m, owner, likeCount=counts[(str(m["memeType"]), str(m["memeId"]))])
        for m, owner in community_memes(memes)
    ]
    ranked.sort(key=lambda m: m["likeCount"], reverse=True)
    ranked = ranked[:lim]
    return {"memes": ranked, "timeframe": tf, "total": len(ranked)}


@router.get("/{meme_type}/{meme_id}/status")
def like_status(request: Request, meme_type: str, meme_id: str):
    mt = memes_repo.normalize_meme_type(meme_type)
    if not mt:
        raise HTTPException(status_code=400, detail="Invalid meme type")
    user = current_user(request)
    return {
        "likeCount": likes_repo.count_likes(mt, meme_id),
        "isLiked": likes_repo.has_liked(mt, meme_id, user.sub if user else None),
    }
