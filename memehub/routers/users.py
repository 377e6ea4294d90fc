from __future__ import annotations

from typing import Any

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from ..auth.passwords import PasswordTooLongError, hash_password
from ..auth.roles import ALL_ROLES, ROLE_SUPER_ADMIN, is_super_admin, normalize_role, require_admin, require_user
from ..observability.logging import get_logger
from ..repositories import likes_repo, memes_repo, users_repo
from ..services import assets
from ..services.visibility import is_community_visible

router = APIRouter(tags=["users"])
log = get_logger("users")


class UpdateMeRequest(BaseModel):
    username: str | None = None
    bio: str | None = None
    profileImage: str | None = None
    isPublic: bool | None = None
    password: str | None = None


class AdminUserRequest(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None
    permissions: list[str] | None = None
    bio: str | None = None
    profileImage: str | None = None
    isPublic: bool | None = None


class PermissionsRequest(BaseModel):
    permissions: list[str] = []


def _hash_or_400(password: str) -> str:
    try:
        return hash_password(password)
    except PasswordTooLongError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _apply_update(user_id: str, patch: dict[str, Any]) -> dict[str, Any]:
    try:
        updated = users_repo.update_user(user_id, patch)
    except users_repo.UserConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return users_repo.normalize_user_for_api(updated) or {}


def _likes_received(user: dict[str, Any]) -> int:
    total = 0
    for meme in memes_repo.list_memes_by_owner(str(user.get("userId") or "")):
        if is_community_visible(meme, user):
            total += likes_repo.count_likes(str(meme["memeType"]), str(meme["memeId"]))
    return total


def _guard_target(target: dict[str, Any] | None) -> dict[str, Any]:
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if is_super_admin(target.get("role")):
        raise HTTPException(status_code=403, detail="Super admin accounts cannot be modified")
    return target


def _checked_role(request: Request, value: Any) -> str:
    raw = str(value or "").strip().lower().replace("-", "_")
    if raw and raw not in ALL_ROLES and raw != "superadmin":
        raise HTTPException(status_code=400, detail="Invalid role")
    role = normalize_role(value)
    if role == ROLE_SUPER_ADMIN and not is_super_admin(require_admin(request).role):
        raise HTTPException(status_code=403, detail="Only super admins can grant super admin")
    return role


@router.get("/community")
def community_users():
    out = []
    for u in users_repo.list_public_users():
        pub = users_repo.public_profile(u) or {}
        pub["bio"] = u.get("bio")
        pub["createdAt"] = u.get("createdAt")
        pub["likesReceived"] = _likes_received(u)
        out.append(pub)
    out.sort(key=lambda u: u["likesReceived"], reverse=True)
    return {"users": out}


@router.get("/me")
def get_me(request: Request):
    current = require_user(request)
    user = users_repo.get_user(current.sub)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return users_repo.normalize_user_for_api(user)


@router.put("/me")
def update_me(request: Request, body: UpdateMeRequest):
    current = require_user(request)
    patch: dict[str, Any] = {}
    if body.username is not None:
        if not body.username.strip():
            raise HTTPException(status_code=400, detail="username cannot be empty")
        patch["username"] = body.username.strip()
    if body.bio is not None:
        patch["bio"] = body.bio[:1000]
    if body.profileImage is not None:
        patch["profileImage"] = body.profileImage
    if body.isPublic is not None:
        patch["isPublic"] = bool(body.isPublic)
    if body.password:
        patch["passwordHash"] = _hash_or_400(body.password)
    return _apply_update(current.sub, patch)


@router.post("/me/avatar")
def upload_avatar(request: Request, file: UploadFile = File(...)):
    current = require_user(request)
    saved = assets.save_upload(
        file,
        subdir=f"avatars/{current.sub}",
        allowed_mime=assets.IMAGE_MIME_TYPES,
    )
    previous = users_repo.get_user(current.sub) or {}
    out = _apply_update(current.sub, {"profileImage": saved.url})
    if previous.get("profileImage") and previous["profileImage"] != saved.url:
        assets.delete_asset(previous["profileImage"])
    return out


# ---- admin ----


@router.get("")
def list_users(request: Request):
    require_admin(request)
    return {"users": [users_repo.normalize_user_for_api(u) for u in users_repo.list_users()]}


@router.get("/{user_id}")
def get_user(request: Request, user_id: str):
    require_admin(request)
    user = users_repo.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return users_repo.normalize_user_for_api(user)


@router.post("", status_code=201)
def create_user(request: Request, body: AdminUserRequest):
    admin = require_admin(request)
    username = str(body.username or "").strip()
    email = users_repo.normalize_email(body.email)
    if not username or not email or not body.password:
        raise HTTPException(status_code=400, detail="username, email and password are required")

    try:
        user = users_repo.create_user(
            username=username,
            email=email,
            password_hash=_hash_or_400(body.password),
            role=_checked_role(request, body.role),
            permissions=body.permissions or [],
            bio=body.bio,
            profile_image=body.profileImage,
            is_public=bool(body.isPublic),
        )
    except users_repo.UserConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))

    log.info("user_created_by_admin", user_id=user.get("userId"), admin_id=admin.sub)
    return users_repo.normalize_user_for_api(user)


@router.put("/{user_id}")
def update_user(request: Request, user_id: str, body: AdminUserRequest):
    require_admin(request)
    _guard_target(users_repo.get_user(user_id))

    patch: dict[str, Any] = {}
    for field in ("username", "email", "bio", "profileImage"):
        v = getattr(body, field)
        if v is not None:
            patch[field] = v
    if body.isPublic is not None:
        patch["isPublic"] = bool(body.isPublic)
    if body.role is not None:
        patch["role"] = _checked_role(request, body.role)
    if body.permissions is not None:
        patch["permissions"] = list(body.permissions)
    if body.password:
        patch["passwordHash"] = _hash_or_400(body.password)
    return _apply_update(user_id, patch)


@router.put("/{user_id}/permissions")
def update_user_permissions(request: Request, user_id: str, body: PermissionsRequest):
    require_admin(request)
    _guard_target(users_repo.get_user(user_id))
    perms = [str(p).strip() for p in body.permissions if str(p).strip()]
    return _apply_update(user_id, {"permissions": sorted(set(perms))})


@router.delete("/{user_id}")
def delete_user(request: Request, user_id: str):
    admin = require_admin(request)
    _guard_target(users_repo.get_user(user_id))
    users_repo.delete_user(user_id)
    log.info("user_deleted", user_id=user_id, admin_id=admin.sub)
    return {"message": "User deleted successfully"}
