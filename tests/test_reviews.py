from __future__ import annotations


def _review(client, headers, meme, content="great meme", rating=5):
    return client.post(
        "/api/reviews",
        json={"memeId": meme["memeId"], "memeType": meme["memeType"], "content": content, "rating": rating},
        headers=headers,
    )


def test_one_review_per_user_and_meme(client, make_user, make_meme, headers_for):
    owner = make_user()
    critic = make_user()
    meme = make_meme(owner)

    r = _review(client, headers_for(critic), meme)
    assert r.status_code == 201
    review = r.json()["review"]
    assert review["content"] == "great meme"
    assert review["user"]["username"] == critic["username"]

    dup = _review(client, headers_for(critic), meme, content="again")
    assert dup.status_code == 400
    assert dup.json()["detail"] == "You have already reviewed this meme"


def test_review_validation(client, make_user, make_meme, headers_for):
    owner = make_user()
    critic = make_user()
    meme = make_meme(owner)

    assert _review(client, headers_for(critic), meme, content="").status_code == 400
    assert _review(client, headers_for(critic), meme, content="x" * 1001).status_code == 400
    assert _review(client, headers_for(critic), meme, rating=6).status_code == 400
    assert _review(client, headers_for(critic), meme, rating=None).status_code == 201


def test_private_reviewer_and_private_meme_are_rejected(client, make_user, make_meme, headers_for):
    owner = make_user()
    shy = make_user(is_public=False)
    critic = make_user()

    r = _review(client, headers_for(shy), make_meme(owner))
    assert r.status_code == 403
    assert r.json()["detail"] == "Only users with public profiles can add reviews"

    r = _review(client, headers_for(critic), make_meme(owner, approved=False))
    assert r.status_code == 403
    assert r.json()["detail"] == "Cannot review private memes"


def test_list_and_stats_only_count_public_reviewers(client, make_user, make_meme, headers_for):
    owner = make_user()
    a = make_user()
    b = make_user()
    meme = make_meme(owner)
    _review(client, headers_for(a), meme, rating=5)
    _review(client, headers_for(b), meme, rating=2)

    stats = client.get(f"/api/reviews/Meme/{meme['memeId']}/stats").json()
    assert stats["totalReviews"] == 2
    assert stats["averageRating"] == 3.5
    assert stats["ratingDistribution"]["5"] == 1
    assert stats["ratingDistribution"]["2"] == 1

    client.put("/api/users/me", json={"isPublic": False}, headers=headers_for(b))

    listing = client.get(f"/api/reviews/Meme/{meme['memeId']}").json()
    assert [r["user"]["username"] for r in listing["reviews"]] == [a["username"]]
    assert listing["pagination"]["total"] == 1
    assert client.get(f"/api/reviews/Meme/{meme['memeId']}/stats").json()["averageRating"] == 5


def test_only_author_can_update_or_delete(client, make_user, make_meme, headers_for):
    owner = make_user()
    author = make_user()
    other = make_user()
    meme = make_meme(owner)
    review_id = _review(client, headers_for(author), meme).json()["review"]["reviewId"]

    r = client.put(f"/api/reviews/{review_id}", json={"content": "hijack"}, headers=headers_for(other))
    assert r.status_code == 404

    r = client.put(f"/api/reviews/{review_id}", json={"content": "edited", "rating": 4}, headers=headers_for(author))
    assert r.status_code == 200
    assert r.json()["review"]["content"] == "edited"
    assert r.json()["review"]["rating"] == 4

    assert client.delete(f"/api/reviews/{review_id}", headers=headers_for(other)).status_code == 404
    assert client.delete(f"/api/reviews/{review_id}", headers=headers_for(author)).status_code == 200
    assert client.get(f"/api/reviews/Meme/{meme['memeId']}").json()["reviews"] == []


def test_meme_from_private_profile_cannot_be_reviewed(client, make_user, make_meme, headers_for):
    hidden_owner = make_user(is_public=False)
    critic = make_user()

    r = _review(client, headers_for(critic), make_meme(hidden_owner))
    assert r.status_code == 403
    assert r.json()["detail"] == "Cannot review memes from private profiles"


def test_zero_rating_is_unrated_and_edit_without_rating_clears_it(client, make_user, make_meme, headers_for):
    owner = make_user()
    critic = make_user()
    meme = make_meme(owner)

    r = _review(client, headers_for(critic), meme, rating=0)
    assert r.status_code == 201
    review = r.json()["review"]
    assert review.get("rating") is None

    url = f"/api/reviews/{review['reviewId']}"
    r = client.put(url, json={"content": "better", "rating": 3}, headers=headers_for(critic))
    assert r.json()["review"]["rating"] == 3

    r = client.put(url, json={"content": "changed my mind"}, headers=headers_for(critic))
    assert r.status_code == 200
    assert r.json()["review"]["content"] == "changed my mind"
    assert "rating" not in r.json()["review"]

    stats = client.get(f"/api/reviews/Meme/{meme['memeId']}/stats").json()
    assert stats["averageRating"] is None
