from __future__ import annotations

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel

from ..auth.roles import is_admin, require_admin, require_user
from ..errors import ApiError
from ..observability.logging import get_logger
from ..repositories import support_repo
from ..repositories.common import paginate
from ..services import assets

router = APIRouter(tags=["support"])
log = get_logger("support")

MAX_ATTACHMENTS = 5
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
ATTACHMENT_MIME_TYPES = {
    *assets.IMAGE_MIME_TYPES,
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class SupportUpdateRequest(BaseModel):
    status: str | None = None
    priority: str | None = None
    category: str | None = None
    assignedTo: str | None = None
    notes: str | None = None


def _view(item):
    return support_repo.normalize_support_for_api(item)


def _page(items: list[dict], page: int, limit: int) -> dict:
    rows, total, total_pages = paginate(items, page=page, limit=limit)
    return {
        "support": [_view(t) for t in rows],
        "total": total,
        "page": max(1, int(page)),
        "totalPages": total_pages,
    }


def _save_attachments(files: list[UploadFile]) -> list[str]:
    uploads = [f for f in files if f is not None and f.filename]
    if len(uploads) > MAX_ATTACHMENTS:
        raise HTTPException(status_code=400, detail=f"Maximum {MAX_ATTACHMENTS} files allowed")

    for f in uploads:
        if (f.content_type or "").lower() not in ATTACHMENT_MIME_TYPES:
            raise HTTPException(
                status_code=400,
                detail="Invalid file type. Only images, PDFs, text files, and documents are allowed.",
            )

    urls: list[str] = []
    try:
        for f in uploads:
            saved = assets.save_upload(
                f,
                subdir="support",
                allowed_mime=ATTACHMENT_MIME_TYPES,
                max_bytes=MAX_ATTACHMENT_BYTES,
            )
            urls.append(saved.url)
    except ApiError:
        for url in urls:
            assets.delete_asset(url)
        raise
    return urls


@router.post("", status_code=201)
def create_ticket(
    request: Request,
    subject: str | None = Form(None),
    description: str | None = Form(None),
    category: str | None = Form(None),
    attachments: list[UploadFile] | None = File(None),
):
    user = require_user(request)
    subj = str(subject or "").strip()
    desc = str(description or "").strip()
    if not subj or not desc:
        raise HTTPException(status_code=400, detail="Subject and description are required")
    cat = str(category or "").strip() or "general"
    if cat not in support_repo.SUPPORT_CATEGORIES:
        raise HTTPException(status_code=400, detail="Invalid category")

    urls = _save_attachments(list(attachments or []))
    ticket = support_repo.create_ticket(
        user_id=user.sub,
        subject=subj,
        description=desc,
        category=cat,
        attachments=urls,
    )
    log.info("support_ticket_created", support_id=ticket.get("supportId"), attachments=len(urls))
    return {"message": "Support ticket created successfully", "support": _view(ticket)}


@router.get("/my-tickets")
def my_tickets(request: Request, page: int = 1, limit: int = 10, status: str | None = None):
    user = require_user(request)
    items = support_repo.list_tickets_for_user(user.sub)
    if status:
        items = [t for t in items if t.get("status") == status]
    return _page(items, page, limit)


@router.get("/my-tickets/{support_id}")
def my_ticket(request: Request, support_id: str):
    user = require_user(request)
    ticket = support_repo.get_ticket(support_id)
    if not ticket or str(ticket.get("userId")) != user.sub:
        raise HTTPException(status_code=404, detail="Support ticket not found")
    return _view(ticket)


@router.get("")
def list_tickets(
    request: Request,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    priority: str | None = None,
    category: str | None = None,
):
    require_admin(request)
    items = support_repo.list_tickets()
    for field, value in (("status", status), ("priority", priority), ("category", category)):
        if value:
            items = [t for t in items if t.get(field) == value]
    return _page(items, page, limit)


@router.get("/stats")
def support_stats(request: Request):
    require_admin(request)
    items = support_repo.list_tickets()

    def _count(field: str, value: str) -> int:
        return sum(1 for t in items if t.get(field) == value)

    return {
        "total": len(items),
        "open": _count("status", "open"),
        "inProgress": _count("status", "in_progress"),
        "resolved": _count("status", "resolved"),
        "closed": _count("status", "closed"),
        "highPriority": _count("priority", "high"),
        "urgentPriority": _count("priority", "urgent"),
        "technical": _count("category", "technical"),
        "billing": _count("category", "billing"),
        "featureRequest": _count("category", "feature_request"),
        "bugReport": _count("category", "bug_report"),
        "general": _count("category", "general"),
    }


@router.get("/{support_id}")
def get_ticket(request: Request, support_id: str):
    user = require_user(request)
    ticket = support_repo.get_ticket(support_id)
    if not ticket or (not is_admin(user.role) and str(ticket.get("userId")) != user.sub):
        raise HTTPException(status_code=404, detail="Support ticket not found")
    return _view(ticket)


@router.put("/{support_id}")
def update_ticket(request: Request, support_id: str, body: SupportUpdateRequest):
    admin = require_admin(request)
    patch = body.model_dump(exclude_unset=True)
    checks = (
        ("status", support_repo.SUPPORT_STATUSES),
        ("priority", support_repo.SUPPORT_PRIORITIES),
        ("category", support_repo.SUPPORT_CATEGORIES),
    )
    for field, allowed in checks:
        if patch.get(field) is not None and patch[field] not in allowed:
            raise HTTPException(status_code=400, detail=f"Invalid {field}")
    patch = {k: v for k, v in patch.items() if k == "notes" or v}

    if not support_repo.get_ticket(support_id):
        raise HTTPException(status_code=404, detail="Support ticket not found")
    updated = support_repo.update_ticket(support_id, patch) if patch else support_repo.get_ticket(support_id)
    if not updated:
        raise HTTPException(status_code=404, detail="Support ticket not found")

    log.info("support_ticket_updated", support_id=support_id, by=admin.sub, fields=sorted(patch))
    return {"message": "Support ticket updated successfully", "support": _view(updated)}


@router.delete("/{support_id}")
def delete_ticket(request: Request, support_id: str):
    require_admin(request)
    ticket = support_repo.get_ticket(support_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Support ticket not found")
    support_repo.delete_ticket(support_id)
    for url in ticket.get("attachments") or []:
        assets.delete_asset(url)
    log.info("support_ticket_deleted", support_id=support_id)
    return {"message": "Support ticket deleted successfully"}
