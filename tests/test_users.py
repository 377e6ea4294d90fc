from __future__ import annotations

from pathlib import Path

from memehub.services.assets import assets_root


def test_me_update_ignores_role_and_keeps_hash_private(client, make_user, headers_for):
    user = make_user(role="user")
    r = client.put(
        "/api/users/me",
        json={"bio": "hi there", "isPublic": False, "role": "admin", "permissions": ["manage_roles"]},
        headers=headers_for(user),
    )
    assert r.status_code == 200
    body = r.json()
    assert body["bio"] == "hi there"
    assert body["isPublic"] is False
    assert body["role"] == "user"
    assert body["permissions"] == []
    assert "passwordHash" not in body


def test_me_username_must_stay_unique(client, make_user, headers_for):
    make_user(username="taken")
    user = make_user()
    r = client.put("/api/users/me", json={"username": "Taken"}, headers=headers_for(user))
    assert r.status_code == 400
    assert r.json()["detail"] == "Username already taken"


def test_avatar_upload_sets_profile_image(client, make_user, headers_for):
    user = make_user()
    png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
    r = client.post(
        "/api/users/me/avatar",
        files={"file": ("me.png", png, "image/png")},
        headers=headers_for(user),
    )
    assert r.status_code == 200
    url = r.json()["profileImage"]
    assert url.startswith("/assets/avatars/")
    assert (Path(assets_root()) / url[len("/assets/"):]).is_file()


def test_avatar_rejects_non_images(client, make_user, headers_for):
    user = make_user()
    r = client.post(
        "/api/users/me/avatar",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=headers_for(user),
    )
    assert r.status_code == 400


def test_admin_creates_updates_and_deletes_users(client, make_user, headers_for):
    admin = make_user(role="admin")
    h = headers_for(admin)

    r = client.post(
        "/api/users",
        json={"username": "newbie", "email": "NewBie@Example.com", "password": "pw123456", "role": "user"},
        headers=h,
    )
    assert r.status_code == 201
    created = r.json()
    assert created["email"] == "newbie@example.com"
    uid = created["_id"]

    dup = client.post(
        "/api/users",
        json={"username": "other", "email": "newbie@example.com", "password": "pw123456"},
        headers=h,
    )
    assert dup.status_code == 400

    r = client.put(f"/api/users/{uid}", json={"bio": "edited", "role": "admin"}, headers=h)
    assert r.status_code == 200
    assert r.json()["bio"] == "edited"
    assert r.json()["role"] == "admin"

    r = client.put(f"/api/users/{uid}/permissions", json={"permissions": ["edit_meme", "edit_meme", " "]}, headers=h)
    assert r.status_code == 200
    assert r.json()["permissions"] == ["edit_meme"]

    assert client.delete(f"/api/users/{uid}", headers=h).status_code == 200
    assert client.get(f"/api/users/{uid}", headers=h).status_code == 404


def test_admin_cannot_grant_super_admin(client, make_user, headers_for):
    admin = make_user(role="admin")
    r = client.post(
        "/api/users",
        json={"username": "sneaky", "email": "sneaky@example.com", "password": "pw123456", "role": "super_admin"},
        headers=headers_for(admin),
    )
    assert r.status_code == 403


def test_invalid_role_is_rejected(client, make_user, headers_for):
    admin = make_user(role="admin")
    r = client.post(
        "/api/users",
        json={"username": "x", "email": "x@example.com", "password": "pw123456", "role": "wizard"},
        headers=headers_for(admin),
    )
    assert r.status_code == 400


def test_email_and_username_change_with_taken_username_changes_nothing(client, table, make_user, headers_for):
    from memehub.repositories import users_repo

    admin = make_user(role="admin")
    alice = make_user(username="alice")
    make_user(username="bob")

    r = client.put(
        f"/api/users/{alice['userId']}",
        json={"email": "new@example.com", "username": "bob"},
        headers=headers_for(admin),
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Username already taken"

    assert users_repo.get_user_by_email("alice@example.com")["userId"] == alice["userId"]
    assert users_repo.get_user_by_email("new@example.com") is None
    assert table.get_item(key=users_repo.email_key("new@example.com")) is None
    assert users_repo.get_user(alice["userId"])["email"] == "alice@example.com"

    # The address is still free for a correct update.
    r = client.put(
        f"/api/users/{alice['userId']}",
        json={"email": "new@example.com", "username": "alice2"},
        headers=headers_for(admin),
    )
    assert r.status_code == 200
    assert users_repo.get_user_by_email("new@example.com")["userId"] == alice["userId"]
    assert users_repo.get_user_by_email("alice@example.com") is None
    assert users_repo.get_user_by_username("alice") is None
    assert users_repo.get_user_by_username("alice2")["userId"] == alice["userId"]
