from __future__ import annotations

import re

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from ..auth.roles import require_super_admin
from ..observability.logging import get_logger
from ..repositories import permissions_repo

router = APIRouter(tags=["permissions"])
log = get_logger("permissions")

_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9_\-]*$")


class PermissionCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    slug: str = Field(min_length=1, max_length=64)
    description: str = ""


class PermissionUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=64)
    slug: str | None = Field(default=None, max_length=64)
    description: str | None = None


def _slug(value: str | None) -> str | None:
    s = str(value or "").strip().lower()
    if not s:
        return None
    if not _SLUG_RE.match(s):
        raise HTTPException(
            status_code=400,
            detail="Slug may only contain lowercase letters, digits, '-' and '_'",
        )
    return s


@router.get("")
def list_permissions(request: Request):
    require_super_admin(request)
    return [permissions_repo.normalize_permission_for_api(p) for p in permissions_repo.list_permissions()]


@router.get("/{permission_id}")
def get_permission(request: Request, permission_id: str):
    require_super_admin(request)
    item = permissions_repo.get_permission(permission_id)
    if not item:
        raise HTTPException(status_code=404, detail="Permission not found")
    return permissions_repo.normalize_permission_for_api(item)


@router.post("", status_code=201)
def create_permission(request: Request, body: PermissionCreateRequest):
    require_super_admin(request)
    name = body.name.strip()
    slug = _slug(body.slug)
    if not name or not slug:
        raise HTTPException(status_code=400, detail="Name and slug are required")
    try:
        item = permissions_repo.create_permission(name=name, slug=slug, description=body.description.strip())
    except permissions_repo.PermissionTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    log.info("permission_created", permission_id=item.get("permissionId"), slug=slug)
    return permissions_repo.normalize_permission_for_api(item)


@router.put("/{permission_id}")
def update_permission(request: Request, permission_id: str, body: PermissionUpdateRequest):
    require_super_admin(request)
    try:
        item = permissions_repo.update_permission(
            permission_id,
            name=(body.name or "").strip() or None,
            slug=_slug(body.slug),
            description=body.description,
        )
    except permissions_repo.PermissionTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not item:
        raise HTTPException(status_code=404, detail="Permission not found")
    return permissions_repo.normalize_permission_for_api(item)


@router.delete("/{permission_id}")
def delete_permission(request: Request, permission_id: str):
    require_super_admin(request)
    if not permissions_repo.delete_permission(permission_id):
        raise HTTPException(status_code=404, detail="Permission not found")
    log.info("permission_deleted", permission_id=permission_id)
    return {"message": "Permission deleted"}
