from __future__ import annotations

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def test_testimonial_crud(client, make_user, headers_for):
    root = headers_for(make_user(role="super_admin"))

    r = client.post(
        "/api/testimonials",
        data={"name": "Ana", "content": "Best meme tool", "rating": "5"},
        files={"profileImage": ("ana.png", PNG, "image/png")},
        headers=root,
    )
    assert r.status_code == 201
    created = r.json()
    assert created["rating"] == 5
    assert created["profileImage"].startswith("/assets/testimonial-images/")

    r = client.post(
        "/api/testimonials",
        json={"name": "Ben", "content": "Fun", "rating": 4, "profileImage": "https://cdn.example.com/ben.png"},
        headers=root,
    )
    assert r.status_code == 201

    listing = client.get("/api/testimonials").json()
    assert [t["name"] for t in listing] == ["Ben", "Ana"]

    tid = created["testimonialId"]
    r = client.put(f"/api/testimonials/{tid}", json={"rating": 3}, headers=root)
    assert r.status_code == 200
    assert r.json()["rating"] == 3
    assert r.json()["name"] == "Ana"

    assert client.get(f"/api/testimonials/{tid}").status_code == 200
    assert client.delete(f"/api/testimonials/{tid}", headers=root).status_code == 200
    assert client.get(f"/api/testimonials/{tid}").status_code == 404


def test_testimonial_rating_bounds_and_roles(client, make_user, headers_for):
    root = headers_for(make_user(role="super_admin"))
    admin = headers_for(make_user(role="admin"))
    body = {"name": "Cy", "content": "ok", "profileImage": "https://cdn.example.com/cy.png"}

    assert client.post("/api/testimonials", json={**body, "rating": 6}, headers=root).status_code == 400
    assert client.post("/api/testimonials", json={**body, "rating": 0}, headers=root).status_code == 400
    assert client.post("/api/testimonials", json={**body, "rating": 5}, headers=admin).status_code == 403
    assert client.post("/api/testimonials", json={**body, "rating": 5}).status_code == 401


def test_seed_is_idempotent(table, monkeypatch):
    from memehub import seed
    from memehub.repositories import permissions_repo, roles_repo, users_repo

    # Hashing cost is irrelevant here.
    monkeypatch.setattr(seed, "hash_password", lambda pw: f"hashed:{pw}")

    first = seed.run()
    assert (first["permissions"], first["roles"], first["users"]) == (5, 2, 3)
    assert first["settings"]["commissionRate"] == 10

    second = seed.run()
    assert (second["permissions"], second["roles"], second["users"]) == (0, 0, 0)

    assert len(permissions_repo.list_permissions()) == 5
    assert roles_repo.get_role_by_name("admin")["permissions"] == seed.ALL_SLUGS
    assert roles_repo.get_role_by_name("user")["permissions"] == ["create_meme"]

    root = users_repo.get_user_by_email("superadmin@example.com")
    assert root["role"] == "super_admin"
    assert users_repo.get_user_by_email("user@example.com")["permissions"] == ["create_meme"]


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "running"
