from __future__ import annotations


def _save(client, headers, is_public=True, title="to review"):
    return client.post(
        "/api/images/memes",
        json={"url": "/assets/memes/a.png", "title": title, "overlays": [{"text": "hi"}], "is_public": is_public},
        headers=headers,
    )


def _review(client, headers, meme, action, reason=None):
    return client.post(
        "/api/premium/admin/review",
        json={"memeId": meme["memeId"], "memeType": "Meme", "action": action, "rejectionReason": reason},
        headers=headers,
    )


def test_asking_to_publish_queues_for_moderation(client, make_user, headers_for):
    owner = make_user()
    r = _save(client, headers_for(owner))
    assert r.status_code == 201
    meme = r.json()["meme"]
    assert meme["publicationStatus"] == "pending"
    assert meme["is_public"] is False
    assert meme["overlays"] == [{"text": "hi"}]

    private = _save(client, headers_for(owner), is_public=False).json()["meme"]
    assert private["publicationStatus"] == "private"


def test_approve_publishes_meme(client, make_user, headers_for):
    owner = make_user()
    admin = make_user(role="admin")
    meme = _save(client, headers_for(owner)).json()["meme"]

    pending = client.get("/api/premium/admin/pending", headers=headers_for(admin)).json()
    assert [m["memeId"] for m in pending["memes"]] == [meme["memeId"]]

    r = _review(client, headers_for(admin), meme, "approve")
    assert r.status_code == 200
    approved = r.json()["meme"]
    assert approved["publicationStatus"] == "approved"
    assert approved["is_public"] is True
    assert approved["reviewedBy"] == admin["userId"]

    community = client.get("/api/images/community-memes").json()["memes"]
    assert [m["memeId"] for m in community] == [meme["memeId"]]

    # Already reviewed.
    assert _review(client, headers_for(admin), meme, "reject", "late").status_code == 400


def test_reject_requires_reason(client, make_user, headers_for):
    owner = make_user()
    admin = make_user(role="admin")
    meme = _save(client, headers_for(owner)).json()["meme"]

    r = _review(client, headers_for(admin), meme, "reject")
    assert r.status_code == 400

    r = _review(client, headers_for(admin), meme, "reject", "off topic")
    assert r.status_code == 200
    assert r.json()["meme"]["publicationStatus"] == "rejected"
    assert r.json()["meme"]["rejectionReason"] == "off topic"
    assert r.json()["meme"]["is_public"] is False


def test_invalid_action_and_non_admin(client, make_user, headers_for):
    owner = make_user()
    admin = make_user(role="admin")
    meme = _save(client, headers_for(owner)).json()["meme"]

    assert _review(client, headers_for(admin), meme, "maybe").status_code == 400
    assert _review(client, headers_for(owner), meme, "approve").status_code == 403


def test_resubmitting_rejected_meme_clears_reason(client, make_user, headers_for):
    owner = make_user()
    admin = make_user(role="admin")
    meme = _save(client, headers_for(owner)).json()["meme"]
    _review(client, headers_for(admin), meme, "reject", "blurry")

    r = client.put(f"/api/images/Meme/{meme['memeId']}", json={"is_public": True}, headers=headers_for(owner))
    assert r.status_code == 200
    updated = r.json()["meme"]
    assert updated["publicationStatus"] == "pending"
    assert "rejectionReason" not in updated


def test_toggle_visibility_and_stats(client, make_user, headers_for):
    owner = make_user()
    admin = make_user(role="admin")
    meme = _save(client, headers_for(owner), is_public=False).json()["meme"]
    body = {"memeId": meme["memeId"], "memeType": "Meme"}

    r = client.post("/api/premium/admin/toggle-meme-visibility", json=body, headers=headers_for(admin))
    assert r.json()["meme"]["is_public"] is True
    assert r.json()["meme"]["publicationStatus"] == "approved"

    _save(client, headers_for(owner))
    stats = client.get("/api/premium/admin/stats", headers=headers_for(admin)).json()
    assert stats["totalApproved"] == 1
    assert stats["totalPending"] == 1

    r = client.post("/api/premium/admin/toggle-meme-visibility", json=body, headers=headers_for(admin))
    assert r.json()["meme"]["is_public"] is False
    assert r.json()["meme"]["publicationStatus"] == "private"


def test_owner_cannot_edit_someone_elses_meme(client, make_user, headers_for):
    owner = make_user()
    other = make_user()
    meme = _save(client, headers_for(owner)).json()["meme"]
    r = client.put(f"/api/images/Meme/{meme['memeId']}", json={"title": "mine"}, headers=headers_for(other))
    assert r.status_code == 403
