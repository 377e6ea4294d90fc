from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from ..auth.roles import require_super_admin
from ..observability.logging import get_logger
from ..repositories import roles_repo

router = APIRouter(tags=["roles"])
log = get_logger("roles")


class RoleCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    permissions: list[str] = Field(default_factory=list)


class RoleUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=64)
    permissions: list[str] | None = None


@router.get("")
def list_roles(request: Request):
    require_super_admin(request)
    return [roles_repo.normalize_role_for_api(r) for r in roles_repo.list_roles()]


@router.get("/{role_id}")
def get_role(request: Request, role_id: str):
    require_super_admin(request)
    role = roles_repo.get_role(role_id)
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return roles_repo.normalize_role_for_api(role)


@router.post("", status_code=201)
def create_role(request: Request, body: RoleCreateRequest):
    require_super_admin(request)
    name = body.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Role name is required")
    try:
        role = roles_repo.create_role(name=name, permissions=body.permissions)
    except roles_repo.RoleNameTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    log.info("role_created", role_id=role.get("roleId"), name=name)
    return roles_repo.normalize_role_for_api(role)


@router.put("/{role_id}")
def update_role(request: Request, role_id: str, body: RoleUpdateRequest):
    require_super_admin(request)
    try:
        role = roles_repo.update_role(
            role_id,
            name=(body.name or "").strip() or None,
            permissions=body.permissions,
        )
    except roles_repo.RoleNameTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return roles_repo.normalize_role_for_api(role)


@router.delete("/{role_id}")
def delete_role(request: Request, role_id: str):
    require_super_admin(request)
    if not roles_repo.delete_role(role_id):
        raise HTTPException(status_code=404, detail="Role not found")
    log.info("role_deleted", role_id=role_id)
    return {"message": "Role deleted"}
