from __future__ import annotations


def _like(client, headers, meme, path="/api/likes/like"):
    return client.post(path, json={"memeId": meme["memeId"], "memeType": meme["memeType"]}, headers=headers)


def test_like_is_unique_per_user_and_meme(client, make_user, make_meme, headers_for):
    owner = make_user()
    fan = make_user()
    meme = make_meme(owner)

    r = _like(client, headers_for(fan), meme)
    assert r.status_code == 201
    assert r.json() == {"message": "Meme liked successfully", "liked": True, "likeCount": 1}

    again = _like(client, headers_for(fan), meme)
    assert again.status_code == 400
    assert again.json()["detail"] == "Meme already liked"

    status = client.get(f"/api/likes/Meme/{meme['memeId']}/status", headers=headers_for(fan))
    assert status.json() == {"likeCount": 1, "isLiked": True}

    anon = client.get(f"/api/likes/Meme/{meme['memeId']}/status")
    assert anon.json() == {"likeCount": 1, "isLiked": False}


def test_unlike_requires_existing_like(client, make_user, make_meme, headers_for):
    owner = make_user()
    fan = make_user()
    meme = make_meme(owner)

    r = _like(client, headers_for(fan), meme, path="/api/likes/unlike")
    assert r.status_code == 400
    assert r.json()["detail"] == "Meme not liked by user"

    _like(client, headers_for(fan), meme)
    r = _like(client, headers_for(fan), meme, path="/api/likes/unlike")
    assert r.status_code == 200
    assert r.json()["likeCount"] == 0


def test_cannot_like_private_meme_or_private_profile(client, make_user, make_meme, headers_for):
    fan = make_user()
    hidden_owner = make_user(is_public=False)
    open_owner = make_user()

    private_meme = make_meme(open_owner, approved=False)
    r = _like(client, headers_for(fan), private_meme)
    assert r.status_code == 403
    assert r.json()["detail"] == "Cannot like private memes"

    meme_of_private_profile = make_meme(hidden_owner)
    r = _like(client, headers_for(fan), meme_of_private_profile)
    assert r.status_code == 403
    assert r.json()["detail"] == "Cannot like memes from private profiles"


def test_like_requires_token(client, make_user, make_meme):
    meme = make_meme(make_user())
    r = client.post("/api/likes/like", json={"memeId": meme["memeId"], "memeType": "Meme"})
    assert r.status_code == 401


def test_like_unknown_meme_type_is_400(client, make_user, headers_for):
    fan = make_user()
    r = client.post("/api/likes/like", json={"memeId": "x", "memeType": "Gif"}, headers=headers_for(fan))
    assert r.status_code == 400


def test_trending_ranks_by_likes_and_hides_private_profiles(client, make_user, make_meme, headers_for):
    owner = make_user()
    fans = [make_user() for _ in range(3)]
    top = make_meme(owner, title="top")
    second = make_meme(owner, meme_type="GeneratedImage", title="second")

    for fan in fans:
        _like(client, headers_for(fan), top)
    _like(client, headers_for(fans[0]), second)

    r = client.get("/api/likes/trending?timeframe=all")
    assert r.status_code == 200
    body = r.json()
    assert [m["title"] for m in body["memes"]] == ["top", "second"]
    assert body["memes"][0]["likeCount"] == 3
    assert body["memes"][0]["user"]["username"] == owner["username"]
    assert "passwordHash" not in body["memes"][0]["user"]

    # Owner goes private: their memes drop out of every community view.
    client.put("/api/users/me", json={"isPublic": False}, headers=headers_for(owner))
    assert client.get("/api/likes/trending?timeframe=all").json()["memes"] == []
    assert client.get("/api/images/community-memes").json()["memes"] == []


def test_trending_invalid_timeframe_defaults_to_week(client):
    r = client.get("/api/likes/trending?timeframe=year")
    assert r.status_code == 200
    assert r.json()["timeframe"] == "7d"


def test_community_memes_require_public_meme_and_public_owner(client, make_user, make_meme):
    visible_owner = make_user()
    hidden_owner = make_user(is_public=False)
    shown = make_meme(visible_owner, title="shown")
    make_meme(visible_owner, approved=False, title="pending")
    make_meme(hidden_owner, title="hidden")

    r = client.get("/api/images/community-memes")
    assert r.status_code == 200
    assert [m["memeId"] for m in r.json()["memes"]] == [shown["memeId"]]


def test_private_meme_is_only_visible_to_owner_and_admin(client, make_user, make_meme, headers_for):
    owner = make_user()
    stranger = make_user()
    admin = make_user(role="admin")
    meme = make_meme(owner, approved=False)
    path = f"/api/images/Meme/{meme['memeId']}"

    assert client.get(path).status_code == 404
    assert client.get(path, headers=headers_for(stranger)).status_code == 404
    assert client.get(path, headers=headers_for(owner)).status_code == 200
    assert client.get(path, headers=headers_for(admin)).status_code == 200


def test_community_users_sorted_by_likes_received(client, make_user, make_meme, headers_for):
    quiet = make_user(username="quiet")
    popular = make_user(username="popular")
    make_user(username="hidden", is_public=False)
    meme = make_meme(popular)
    make_meme(quiet)
    _like(client, headers_for(quiet), meme)

    users = client.get("/api/users/community").json()["users"]
    assert [u["username"] for u in users] == ["popular", "quiet"]
    assert users[0]["likesReceived"] == 1
