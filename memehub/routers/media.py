from __future__ import annotations

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel

from ..auth.roles import current_user, is_admin, require_admin
from ..observability.logging import get_logger
from ..repositories import media_repo
from ..services import assets, video_thumbnails

router = APIRouter(tags=["media"])
log = get_logger("media")

_DOCUMENT_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}


class MediaStatusRequest(BaseModel):
    isPublic: bool


def detect_media_type(content_type: str | None, filename: str | None = None) -> str:
    mt = str(content_type or "").lower()
    if mt.startswith("image/"):
        return "image"
    if mt.startswith("video/") or assets.is_video_filename(filename):
        return "video"
    if mt.startswith("audio/"):
        return "audio"
    if mt in _DOCUMENT_MIME_TYPES:
        return "document"
    return "other"


@router.post("/upload", status_code=201)
def upload_media(
    request: Request,
    file: UploadFile | None = File(None),
    type: str | None = Form(None),
    title: str | None = Form(None),
):
    admin = require_admin(request)
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded.")
    media_type = str(type or "").strip().lower()
    if not media_type:
        raise HTTPException(status_code=400, detail="Type is required.")
    if media_type not in media_repo.MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Type must be one of {', '.join(media_repo.MEDIA_TYPES)}")

    saved = assets.save_upload(file, subdir="media")
    kind = detect_media_type(saved.content_type, saved.original_name)

    thumbnail = None
    if kind == "video":
        thumb = video_thumbnails.thumbnail_for(saved.path)
        thumbnail = assets.url_for(thumb) if thumb is not None else None

    media = media_repo.create_media(
        {
            "url": saved.url,
            "filename": saved.filename,
            "originalName": saved.original_name,
            "title": (title or "").strip() or None,
            "thumbnail": thumbnail,
            "type": media_type,
            "mediaType": kind,
            "uploadedBy": admin.sub,
        }
    )
    log.info("media_uploaded", media_id=media.get("mediaId"), media_type=kind, type=media_type)
    return {"message": "Media uploaded successfully.", "media": media_repo.normalize_media_for_api(media)}


@router.get("/templates")
def list_templates(request: Request, includeHidden: bool = False):
    viewer = current_user(request)
    include_hidden = bool(includeHidden) and viewer is not None and is_admin(viewer.role)
    items = media_repo.list_media(media_type="template", include_hidden=include_hidden)
    return {"templates": [media_repo.normalize_media_for_api(m) for m in items]}


@router.delete("/templates/{media_id}")
def delete_template(request: Request, media_id: str):
    require_admin(request)
    media = media_repo.get_media(media_id)
    if not media:
        raise HTTPException(status_code=404, detail="Template not found")

    media_repo.delete_media(media_id)
    for url in (media.get("url"), media.get("thumbnail")):
        assets.delete_asset(url)
    log.info("media_deleted", media_id=media_id)
    return {"message": "Template deleted successfully"}


@router.put("/templates/{media_id}/status")
def set_template_status(request: Request, media_id: str, body: MediaStatusRequest):
    require_admin(request)
    updated = media_repo.set_media_visibility(media_id, body.isPublic)
    if not updated:
        raise HTTPException(status_code=404, detail="Template not found")
    return {
        "message": f"Template is now {'visible' if body.isPublic else 'hidden'}",
        "template": media_repo.normalize_media_for_api(updated),
    }
