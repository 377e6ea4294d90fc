from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from ..auth.passwords import PasswordTooLongError, hash_password, verify_password
from ..auth.roles import ROLE_USER, require_user
from ..auth.tokens import token_for_user
from ..observability.logging import get_logger
from ..repositories import password_reset_repo, users_repo
from ..services import email_ses
from ..settings import settings

router = APIRouter(tags=["auth"])
log = get_logger("auth")


class SignupRequest(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class ForgetPasswordRequest(BaseModel):
    email: str | None = None


class ResetPasswordRequest(BaseModel):
    email: str | None = None
    token: str | None = None
    newPassword: str | None = None


def _hash_or_400(password: str) -> str:
    try:
        return hash_password(password)
    except PasswordTooLongError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _auth_payload(message: str, user: dict) -> dict:
    return {
        "success": True,
        "message": message,
        "data": {
            "user": users_repo.normalize_user_for_api(user),
            "token": token_for_user(user),
        },
    }


@router.post("/signup", status_code=201)
def signup(body: SignupRequest):
    username = str(body.username or "").strip()
    email = users_repo.normalize_email(body.email)
    password = str(body.password or "")
    if not username or not email or not password:
        raise HTTPException(status_code=400, detail="username, email and password are required")
    if "@" not in email:
        raise HTTPException(status_code=400, detail="Invalid email")

    password_hash = _hash_or_400(password)
    try:
        # Role is always `user`; elevated roles are granted by admins only.
        user = users_repo.create_user(
            username=username,
            email=email,
            password_hash=password_hash,
            role=ROLE_USER,
        )
    except users_repo.UserConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))

    log.info("user_signed_up", user_id=user.get("userId"))
    return _auth_payload("User registered successfully", user)


@router.post("/login")
def login(body: LoginRequest):
    email = users_repo.normalize_email(body.email)
    password = str(body.password or "")
    if not email or not password:
        raise HTTPException(status_code=400, detail="email and password are required")

    user = users_repo.get_user_by_email(email)
    if not user or not verify_password(password, user.get("passwordHash")):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    log.info("user_logged_in", user_id=user.get("userId"))
    return _auth_payload("Login successful", user)


@router.post("/logout")
def logout():
    # Tokens are stateless; the client discards its copy.
    return {"success": True, "message": "Logged out successfully"}


@router.post("/forget-password")
def forget_password(body: ForgetPasswordRequest):
    email = users_repo.normalize_email(body.email)
    if not email:
        raise HTTPException(status_code=400, detail="email is required")

    user = users_repo.get_user_by_email(email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    reset = password_reset_repo.create_password_reset(
        user_id=str(user["userId"]),
        email=email,
        ttl_seconds=settings.password_reset_ttl_seconds,
    )
    base = str(settings.frontend_url or "").rstrip("/")
    reset_link = f"{base}/reset-password?token={reset.token}&email={quote(email, safe='')}"
    subject, text, html = email_ses.password_reset_email(reset_link)

    try:
        email_ses.send_email(to_email=email, subject=subject, text=text, html=html)
    except Exception as e:  # noqa: BLE001
        log.exception("password_reset_email_failed", user_id=user.get("userId"))
        raise HTTPException(status_code=500, detail="Failed to send email") from e

    return {"message": "Password reset link sent to email."}


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest):
    email = users_repo.normalize_email(body.email)
    token = str(body.token or "").strip()
    new_password = str(body.newPassword or "")
    if not email or not token or not new_password:
        raise HTTPException(status_code=400, detail="email, token and newPassword are required")

    user = users_repo.get_user_by_email(email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user_id = str(user["userId"])
    if not password_reset_repo.find_valid_token(user_id=user_id, token=token):
        raise HTTPException(status_code=400, detail="Invalid or expired token")

    users_repo.update_user(user_id, {"passwordHash": _hash_or_400(new_password)})
    password_reset_repo.revoke_all_for_user(user_id)
    log.info("password_reset_completed", user_id=user_id)
    return {"message": "Password has been reset successfully."}


@router.post("/refresh-token")
def refresh_token(request: Request):
    current = require_user(request)
    user = users_repo.get_user(current.sub)
    if not user:
        raise HTTPException(status_code=401, detail="User no longer exists")
    return {"token": token_for_user(user), "user": users_repo.normalize_user_for_api(user)}
