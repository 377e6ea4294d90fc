from __future__ import annotations

from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel

from ..auth.roles import current_user, is_admin, require_user
from ..observability.logging import get_logger
from ..repositories import likes_repo, memes_repo, reviews_repo, users_repo
from ..services import assets, image_generator, video_thumbnails
from ..services.visibility import community_memes, is_community_visible, load_meme_with_owner, meme_for_api

router = APIRouter(tags=["images"])
log = get_logger("images")


class GenerateImageRequest(BaseModel):
    prompt: str | None = None
    style: str | None = None
    model: str | None = None
    is_public: bool = False


class SaveMemeRequest(BaseModel):
    url: str | None = None
    title: str | None = None
    description: str | None = None
    overlays: list[Any] | None = None
    is_public: bool = False


class UpdateMemeRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    overlays: list[Any] | None = None
    is_public: bool | None = None


def _meme_type_or_400(value: str) -> str:
    mt = memes_repo.normalize_meme_type(value)
    if not mt:
        raise HTTPException(status_code=400, detail="Invalid meme type")
    return mt


def _publication_patch(meme: dict[str, Any], want_public: bool) -> dict[str, Any]:
    if want_public and meme.get("publicationStatus") in (memes_repo.STATUS_APPROVED, memes_repo.STATUS_PENDING):
        return {}
    return memes_repo.publication_fields(want_public)


@router.post("/generate")
def generate_image(request: Request, body: GenerateImageRequest):
    user = require_user(request)
    prompt = str(body.prompt or "").strip()
    style = str(body.style or "").strip().lower()
    model = str(body.model or "").strip()
    if not prompt or not style or not model:
        raise HTTPException(status_code=400, detail="Prompt, style, and model are required")
    if style not in image_generator.STYLE_PHRASES:
        raise HTTPException(status_code=400, detail="Invalid style")
    if model not in image_generator.MODELS:
        raise HTTPException(status_code=400, detail="Invalid model")

    try:
        urls = image_generator.generate_image_urls(prompt=prompt, style=style, model=model)
        if not urls:
            raise HTTPException(status_code=500, detail="No image returned from OpenAI")
        local_url = image_generator.download_to_assets(urls[0], user_id=user.sub)
    except image_generator.ImageNotConfigured as e:
        raise HTTPException(status_code=503, detail=str(e))
    except image_generator.ImageUpstreamError as e:
        raise HTTPException(status_code=502, detail=str(e))

    item = memes_repo.create_meme(
        memes_repo.GENERATED_IMAGE,
        user_id=user.sub,
        doc={
            "url": local_url,
            "prompt": prompt,
            "style": style,
            "modelUsed": model,
            "is_public": body.is_public,
        },
    )
    log.info("image_generated_saved", meme_id=item.get("memeId"), user_id=user.sub, style=style)
    return {"image": memes_repo.normalize_meme_for_api(item)}


@router.post("/upload", status_code=201)
def upload_meme(
    request: Request,
    file: UploadFile = File(...),
    title: str | None = Form(None),
    description: str | None = Form(None),
    is_public: bool = Form(False),
):
    user = require_user(request)
    saved = assets.save_upload(
        file,
        subdir=f"memes/{user.sub}",
        allowed_mime=assets.IMAGE_MIME_TYPES,
        allow_video=True,
    )

    doc: dict[str, Any] = {
        "url": saved.url,
        "title": title,
        "description": description,
        "is_public": is_public,
    }
    if saved.content_type.startswith("video/") or assets.is_video_filename(saved.original_name):
        thumb = video_thumbnails.thumbnail_for(saved.path)
        if thumb is not None:
            doc["thumbnail"] = assets.url_for(thumb)

    item = memes_repo.create_meme(memes_repo.MEME, user_id=user.sub, doc=doc)
    log.info("meme_uploaded", meme_id=item.get("memeId"), user_id=user.sub)
    return {"meme": memes_repo.normalize_meme_for_api(item), "url": saved.url}


@router.post("/memes", status_code=201)
def save_meme(request: Request, body: SaveMemeRequest):
    user = require_user(request)
    url = str(body.url or "").strip()
    if not url:
        raise HTTPException(status_code=400, detail="url is required")

    item = memes_repo.create_meme(
        memes_repo.MEME,
        user_id=user.sub,
        doc={
            "url": url,
            "title": body.title,
            "description": body.description,
            "overlays": body.overlays or [],
            "is_public": body.is_public,
        },
    )
    log.info("meme_saved", meme_id=item.get("memeId"), user_id=user.sub, publication=item.get("publicationStatus"))
    return {"meme": memes_repo.normalize_meme_for_api(item)}


@router.get("/my-memes")
def my_memes(request: Request):
    user = require_user(request)
    memes = memes_repo.list_memes_by_owner(user.sub)
    return {"memes": [memes_repo.normalize_meme_for_api(m) for m in memes]}


@router.get("/community-memes")
def community_feed():
    rows = community_memes(memes_repo.list_all_memes())
    return {"memes": [meme_for_api(m, owner) for m, owner in rows]}


@router.get("/user/{user_id}/public-memes")
def user_public_memes(user_id: str):
    owner = users_repo.get_user(user_id)
    if not owner:
        raise HTTPException(status_code=404, detail="User not found")
    if not owner.get("isPublic"):
        raise HTTPException(status_code=403, detail="This profile is private")

    memes = [m for m in memes_repo.list_memes_by_owner(user_id) if is_community_visible(m, owner)]
    profile = users_repo.public_profile(owner) or {}
    profile["bio"] = owner.get("bio")
    return {"user": profile, "memes": [meme_for_api(m, owner) for m in memes]}


@router.get("/{meme_type}/{meme_id}")
def get_meme(request: Request, meme_type: str, meme_id: str):
    mt = _meme_type_or_400(meme_type)
    meme, owner = load_meme_with_owner(mt, meme_id)
    if not meme:
        raise HTTPException(status_code=404, detail="Meme not found")

    if not is_community_visible(meme, owner):
        viewer = current_user(request)
        allowed = viewer is not None and (viewer.sub == meme.get("userId") or is_admin(viewer.role))
        if not allowed:
            raise HTTPException(status_code=404, detail="Meme not found")

    return {"meme": meme_for_api(meme, owner, likeCount=likes_repo.count_likes(mt, meme_id))}


@router.put("/{meme_type}/{meme_id}")
def update_meme(request: Request, meme_type: str, meme_id: str, body: UpdateMemeRequest):
    user = require_user(request)
    mt = _meme_type_or_400(meme_type)
    meme = memes_repo.get_meme(mt, meme_id)
    if not meme:
        raise HTTPException(status_code=404, detail="Meme not found")
    if str(meme.get("userId")) != user.sub:
        raise HTTPException(status_code=403, detail="You can only edit your own memes")

    patch: dict[str, Any] = {}
    for field in ("title", "description", "overlays"):
        v = getattr(body, field)
        if v is not None:
            patch[field] = v
    remove: list[str] = []
    if body.is_public is not None:
        pub = _publication_patch(meme, bool(body.is_public))
        if pub:
            patch.update(pub)
            remove.append("rejectionReason")

    updated = memes_repo.update_meme(meme_id, patch, remove=remove or None)
    if not updated:
        raise HTTPException(status_code=404, detail="Meme not found")
    return {"message": "Meme updated successfully", "meme": memes_repo.normalize_meme_for_api(updated)}


@router.delete("/{meme_type}/{meme_id}")
def delete_meme(request: Request, meme_type: str, meme_id: str):
    user = require_user(request)
    mt = _meme_type_or_400(meme_type)
    meme = memes_repo.get_meme(mt, meme_id)
    if not meme:
        raise HTTPException(status_code=404, detail="Meme not found")
    if str(meme.get("userId")) != user.sub and not is_admin(user.role):
        raise HTTPException(status_code=403, detail="You can only delete your own memes")

    likes = likes_repo.delete_likes_for_meme(mt, meme_id)
    reviews = reviews_repo.delete_reviews_for_meme(mt, meme_id)
    memes_repo.delete_meme(meme_id)
    for url in (meme.get("url"), meme.get("thumbnail")):
        assets.delete_asset(url)

    log.info("meme_deleted", meme_id=meme_id, meme_type=mt, by=user.sub, likes=likes, reviews=reviews)
    return {"message": "Meme deleted successfully"}
