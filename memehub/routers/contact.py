from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from ..auth.roles import require_admin, require_user
from ..observability.logging import get_logger
from ..repositories import contacts_repo, users_repo
from ..repositories.common import paginate

router = APIRouter(tags=["contact"])
log = get_logger("contact")


class ContactRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    subject: str | None = None
    message: str | None = None


class ContactUpdateRequest(BaseModel):
    status: str | None = None
    priority: str | None = None
    assignedTo: str | None = None
    notes: str | None = None


def _view(item):
    return contacts_repo.normalize_contact_for_api(item)


@router.post("", status_code=201)
def create_contact(body: ContactRequest):
    fields = {k: str(v or "").strip() for k, v in body.model_dump().items()}
    if not all(fields.values()):
        raise HTTPException(status_code=400, detail="All fields are required")
    if "@" not in fields["email"]:
        raise HTTPException(status_code=400, detail="A valid email is required")

    contact = contacts_repo.create_contact(**fields)
    log.info("contact_created", contact_id=contact.get("contactId"))
    return {"message": "Contact enquiry submitted successfully", "contact": _view(contact)}


@router.get("/my-enquiries")
def my_enquiries(request: Request):
    user = require_user(request)
    profile = users_repo.get_user(user.sub)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return [_view(c) for c in contacts_repo.list_contacts_by_email(str(profile.get("email") or ""))]


@router.get("")
def list_contacts(
    request: Request,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    priority: str | None = None,
):
    require_admin(request)
    items = contacts_repo.list_contacts()
    if status:
        items = [c for c in items if c.get("status") == status]
    if priority:
        items = [c for c in items if c.get("priority") == priority]

    rows, total, total_pages = paginate(items, page=page, limit=limit)
    return {
        "contacts": [_view(c) for c in rows],
        "total": total,
        "page": max(1, int(page)),
        "totalPages": total_pages,
    }


@router.get("/stats")
def contact_stats(request: Request):
    require_admin(request)
    items = contacts_repo.list_contacts()

    def _count(field: str, value: str) -> int:
        return sum(1 for c in items if c.get(field) == value)

    return {
        "total": len(items),
        "pending": _count("status", "pending"),
        "inProgress": _count("status", "in_progress"),
        "resolved": _count("status", "resolved"),
        "closed": _count("status", "closed"),
        "highPriority": _count("priority", "high"),
    }


@router.get("/{contact_id}")
def get_contact(request: Request, contact_id: str):
    require_admin(request)
    contact = contacts_repo.get_contact(contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact enquiry not found")
    return _view(contact)


@router.put("/{contact_id}")
def update_contact(request: Request, contact_id: str, body: ContactUpdateRequest):
    admin = require_admin(request)
    patch = body.model_dump(exclude_unset=True)
    if patch.get("status") is not None and patch["status"] not in contacts_repo.CONTACT_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    if patch.get("priority") is not None and patch["priority"] not in contacts_repo.CONTACT_PRIORITIES:
        raise HTTPException(status_code=400, detail="Invalid priority")
    # Empty status/priority/assignedTo mean "leave as is"; notes may be cleared.
    patch = {k: v for k, v in patch.items() if k == "notes" or v}

    if not contacts_repo.get_contact(contact_id):
        raise HTTPException(status_code=404, detail="Contact enquiry not found")
    updated = contacts_repo.update_contact(contact_id, patch) if patch else contacts_repo.get_contact(contact_id)
    if not updated:
        raise HTTPException(status_code=404, detail="Contact enquiry not found")

    log.info("contact_updated", contact_id=contact_id, by=admin.sub, fields=sorted(patch))
    return {"message": "Contact enquiry updated successfully", "contact": _view(updated)}


@router.delete("/{contact_id}")
def delete_contact(request: Request, contact_id: str):
    require_admin(request)
    if not contacts_repo.get_contact(contact_id):
        raise HTTPException(status_code=404, detail="Contact enquiry not found")
    contacts_repo.delete_contact(contact_id)
    log.info("contact_deleted", contact_id=contact_id)
    return {"message": "Contact enquiry deleted successfully"}
