from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from ..auth.roles import require_user
from ..observability.logging import get_logger
from ..repositories import memes_repo, reviews_repo, users_repo
from ..repositories.common import paginate
from ..services.visibility import is_community_visible, load_meme_with_owner

router = APIRouter(tags=["reviews"])
log = get_logger("reviews")

MAX_CONTENT = 1000


class AddReviewRequest(BaseModel):
    memeId: str | None = None
    memeType: str | None = None
    content: str | None = None
    rating: int | None = None


class UpdateReviewRequest(BaseModel):
    content: str | None = None
    rating: int | None = None


def _checked_rating(content: str, rating: int | None) -> int | None:
    """Validate content length; a rating of 0 or none means the review is unrated."""
    if len(content) > MAX_CONTENT:
        raise HTTPException(status_code=400, detail=f"Review content too long (max {MAX_CONTENT} characters)")
    if not rating:
        return None
    if not (1 <= int(rating) <= 5):
        raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")
    return int(rating)


def _meme_type_or_400(value: str) -> str:
    mt = memes_repo.normalize_meme_type(value)
    if not mt:
        raise HTTPException(status_code=400, detail="Invalid meme type")
    return mt


def _review_for_api(review: dict[str, Any], author: dict[str, Any] | None) -> dict[str, Any]:
    out = reviews_repo.normalize_review_for_api(review) or {}
    out["user"] = users_repo.public_profile(author)
    return out


def _public_reviews(meme_type: str, meme_id: str) -> list[tuple[dict[str, Any], dict[str, Any]]]:
    reviews = reviews_repo.list_reviews_for_meme(meme_type, meme_id)
    authors = users_repo.get_users_by_ids([str(r.get("userId") or "") for r in reviews])
    out = []
    for r in reviews:
        author = authors.get(str(r.get("userId") or ""))
        if author and author.get("isPublic"):
            out.append((r, author))
    return out


@router.post("", status_code=201)
def add_review(request: Request, body: AddReviewRequest):
    user = require_user(request)
    content = str(body.content or "").strip()
    if not body.memeId or not body.memeType or not content:
        raise HTTPException(status_code=400, detail="Meme ID, type, and content are required")
    meme_type = _meme_type_or_400(body.memeType)
    rating = _checked_rating(content, body.rating)

    reviewer = users_repo.get_user(user.sub)
    if not reviewer or not reviewer.get("isPublic"):
        raise HTTPException(status_code=403, detail="Only users with public profiles can add reviews")

    meme, owner = load_meme_with_owner(meme_type, body.memeId)
    if not meme:
        raise HTTPException(status_code=404, detail="Meme not found")
    if not is_community_visible(meme, owner):
        if not meme.get("is_public"):
            raise HTTPException(status_code=403, detail="Cannot review private memes")
        raise HTTPException(status_code=403, detail="Cannot review memes from private profiles")

    review = reviews_repo.create_review(
        meme_type,
        str(body.memeId),
        user.sub,
        content=content,
        rating=rating,
    )
    if review is None:
        raise HTTPException(status_code=400, detail="You have already reviewed this meme")

    log.info("review_added", review_id=review.get("reviewId"), meme_id=body.memeId, user_id=user.sub)
    return {"message": "Review added successfully", "review": _review_for_api(review, reviewer)}


@router.get("/{meme_type}/{meme_id}")
def list_reviews(meme_type: str, meme_id: str, page: int = 1, limit: int = 10):
    mt = _meme_type_or_400(meme_type)
    rows = _public_reviews(mt, meme_id)
    page_rows, total, total_pages = paginate(rows, page=page, limit=limit)
    return {
        "reviews": [_review_for_api(r, a) for r, a in page_rows],
        "pagination": {
            "page": max(1, int(page or 1)),
            "limit": max(1, min(200, int(limit or 10))),
            "total": total,
            "totalPages": total_pages,
        },
    }


@router.get("/{meme_type}/{meme_id}/stats")
def review_stats(meme_type: str, meme_id: str):
    mt = _meme_type_or_400(meme_type)
    rows = _public_reviews(mt, meme_id)
    ratings = [int(r["rating"]) for r, _ in rows if r.get("rating") is not None]

    distribution = {str(i): 0 for i in range(1, 6)}
    for rating in ratings:
        if 1 <= rating <= 5:
            distribution[str(rating)] += 1

    return {
        "totalReviews": len(rows),
        "averageRating": round(sum(ratings) / len(ratings), 2) if ratings else None,
        "ratingDistribution": distribution,
    }


def _own_review_or_404(review_id: str, user_id: str) -> dict[str, Any]:
    review = reviews_repo.get_review(review_id)
    if not review or str(review.get("userId")) != str(user_id):
        raise HTTPException(status_code=404, detail="Review not found or unauthorized")
    return review


@router.put("/{review_id}")
def update_review(request: Request, review_id: str, body: UpdateReviewRequest):
    user = require_user(request)
    content = str(body.content or "").strip()
    if not content:
        raise HTTPException(status_code=400, detail="Content is required")
    rating = _checked_rating(content, body.rating)

    review = _own_review_or_404(review_id, user.sub)
    # Leaving the rating out of an edit clears it.
    if rating is None:
        updated = reviews_repo.update_review(review, {"content": content}, remove=["rating"])
    else:
        updated = reviews_repo.update_review(review, {"content": content, "rating": rating})
    if not updated:
        raise HTTPException(status_code=404, detail="Review not found or unauthorized")
    return {
        "message": "Review updated successfully",
        "review": _review_for_api(updated, users_repo.get_user(user.sub)),
    }


@router.delete("/{review_id}")
def delete_review(request: Request, review_id: str):
    user = require_user(request)
    review = _own_review_or_404(review_id, user.sub)
    reviews_repo.delete_review(review)
    log.info("review_deleted", review_id=review_id, user_id=user.sub)
    return {"message": "Review deleted successfully"}
