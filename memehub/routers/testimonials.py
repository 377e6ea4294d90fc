from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from starlette.datastructures import UploadFile

from ..auth.roles import require_super_admin
from ..observability.logging import get_logger
from ..repositories import testimonials_repo
from ..services import assets

router = APIRouter(tags=["testimonials"])
log = get_logger("testimonials")


def _view(item):
    return testimonials_repo.normalize_testimonial_for_api(item)


def _rating(value: Any) -> int:
    try:
        r = int(str(value).strip())
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Rating must be a number between 1 and 5")
    if r < 1 or r > 5:
        raise HTTPException(status_code=400, detail="Rating must be between 1 and 5")
    return r


async def _read_fields(request: Request) -> dict[str, Any]:
    """
    Accept JSON or multipart bodies. `profileImage` may be an uploaded file
    or a URL string.
    """
    ctype = (request.headers.get("content-type") or "").lower()
    if ctype.startswith("application/json"):
        body = await request.json()
        return dict(body) if isinstance(body, dict) else {}

    form = await request.form()
    out: dict[str, Any] = {}
    for key in ("name", "content", "rating"):
        if form.get(key) is not None:
            out[key] = form.get(key)

    image = form.get("profileImage")
    if isinstance(image, UploadFile) and image.filename:
        saved = assets.save_upload(image, subdir="testimonial-images", allowed_mime=assets.IMAGE_MIME_TYPES)
        out["profileImage"] = saved.url
    elif isinstance(image, str) and image.strip():
        out["profileImage"] = image.strip()
    return out


@router.get("")
def list_testimonials():
    return [_view(t) for t in testimonials_repo.list_testimonials()]


@router.get("/{testimonial_id}")
def get_testimonial(testimonial_id: str):
    item = testimonials_repo.get_testimonial(testimonial_id)
    if not item:
        raise HTTPException(status_code=404, detail="Testimonial not found")
    return _view(item)


@router.post("", status_code=201)
async def create_testimonial(request: Request):
    require_super_admin(request)
    fields = await _read_fields(request)

    name = str(fields.get("name") or "").strip()
    content = str(fields.get("content") or "").strip()
    if not name or not content:
        raise HTTPException(status_code=400, detail="Name and content are required")
    if not fields.get("profileImage"):
        raise HTTPException(status_code=400, detail="Profile image is required")

    item = testimonials_repo.create_testimonial(
        name=name,
        content=content,
        rating=_rating(fields.get("rating")),
        profile_image=str(fields["profileImage"]),
    )
    log.info("testimonial_created", testimonial_id=item.get("testimonialId"))
    return _view(item)


@router.put("/{testimonial_id}")
async def update_testimonial(request: Request, testimonial_id: str):
    require_super_admin(request)
    existing = testimonials_repo.get_testimonial(testimonial_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Testimonial not found")

    fields = await _read_fields(request)
    patch: dict[str, Any] = {}
    for key in ("name", "content"):
        v = str(fields.get(key) or "").strip()
        if v:
            patch[key] = v
    if fields.get("rating") not in (None, ""):
        patch["rating"] = _rating(fields.get("rating"))
    if fields.get("profileImage"):
        patch["profileImage"] = str(fields["profileImage"])

    updated = testimonials_repo.update_testimonial(testimonial_id, patch) if patch else existing
    if not updated:
        raise HTTPException(status_code=404, detail="Testimonial not found")
    if "profileImage" in patch and patch["profileImage"] != existing.get("profileImage"):
        assets.delete_asset(existing.get("profileImage"))
    return _view(updated)


@router.delete("/{testimonial_id}")
def delete_testimonial(request: Request, testimonial_id: str):
    require_super_admin(request)
    existing = testimonials_repo.get_testimonial(testimonial_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Testimonial not found")
    testimonials_repo.delete_testimonial(testimonial_id)
    assets.delete_asset(existing.get("profileImage"))
    log.info("testimonial_deleted", testimonial_id=testimonial_id)
    return {"message": "Testimonial deleted"}
