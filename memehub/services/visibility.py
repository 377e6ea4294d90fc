from __future__ import annotations

from typing import Any

from ..repositories import memes_repo, users_repo


def is_community_visible(meme: dict[str, Any] | None, owner: dict[str, Any] | None) -> bool:
    """
    A meme is visible to the community when it is public and its owner's
    profile is public. Every community-facing read path goes through here.
    """
    if not meme or not owner:
        return False
    return bool(meme.get("is_public")) and bool(owner.get("isPublic"))


def load_meme_with_owner(meme_type: str, meme_id: str) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    meme = memes_repo.get_meme(meme_type, meme_id)
    if not meme:
        return None, None
    return meme, users_repo.get_user(str(meme.get("userId") or ""))


def meme_for_api(meme: dict[str, Any], owner: dict[str, Any] | None, **extra: Any) -> dict[str, Any]:
    out = memes_repo.normalize_meme_for_api(meme) or {}
    out["user"] = users_repo.public_profile(owner)
    out.update(extra)
    return out


def with_owners(memes: list[dict[str, Any]]) -> list[tuple[dict[str, Any], dict[str, Any] | None]]:
    owners = users_repo.get_users_by_ids([str(m.get("userId") or "") for m in memes])
    return [(m, owners.get(str(m.get("userId") or ""))) for m in memes]


def community_memes(memes: list[dict[str, Any]]) -> list[tuple[dict[str, Any], dict[str, Any]]]:
    return [(m, o) for m, o in with_owners(memes) if o is not None and is_community_visible(m, o)]
