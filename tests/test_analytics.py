from __future__ import annotations

from datetime import datetime, timezone

import pytest

from memehub.errors import ApiError
from memehub.services.analytics import resolve_date_range

# A Wednesday.
NOW = datetime(2024, 5, 15, 10, 30, tzinfo=timezone.utc)


def test_week_starts_on_sunday():
    rng = resolve_date_range("week", now=NOW)
    assert rng.start == datetime(2024, 5, 12, tzinfo=timezone.utc)
    assert rng.end == NOW


def test_today_and_month():
    assert resolve_date_range("today", now=NOW).start == datetime(2024, 5, 15, tzinfo=timezone.utc)
    assert resolve_date_range("month", now=NOW).start == datetime(2024, 5, 1, tzinfo=timezone.utc)


def test_unknown_filter_means_all():
    rng = resolve_date_range("decade", now=NOW)
    assert rng.filter == "all"
    assert rng.start.year == 1970


def test_explicit_dates_cover_whole_end_day():
    rng = resolve_date_range("today", "2024-05-01", "2024-05-03", now=NOW)
    assert rng.start == datetime(2024, 5, 1, tzinfo=timezone.utc)
    assert rng.contains("2024-05-03T23:59:00Z")
    assert not rng.contains("2024-05-04T00:00:00Z")


def test_invalid_dates_are_400():
    with pytest.raises(ApiError) as exc:
        resolve_date_range("all", "not-a-date", "2024-05-03", now=NOW)
    assert exc.value.status_code == 400

    with pytest.raises(ApiError):
        resolve_date_range("all", "2024-05-10", "2024-05-03", now=NOW)


def test_analytics_endpoint_aggregates_sales(client, make_user, make_meme, headers_for):
    owner = make_user()
    buyer = make_user()
    admin = make_user(role="admin")
    meme = make_meme(owner, title="hit")
    make_meme(owner, meme_type="GeneratedImage", approved=False)

    client.put(
        "/api/premium/meme/premium",
        json={"memeId": meme["memeId"], "memeType": "Meme", "isPremium": True, "price": 20},
        headers=headers_for(owner),
    )
    client.post(
        "/api/premium/meme/purchase",
        json={"memeId": meme["memeId"], "memeType": "Meme"},
        headers=headers_for(buyer),
    )

    assert client.get("/api/analytics", headers=headers_for(owner)).status_code == 403

    r = client.get("/api/analytics?filter=all", headers=headers_for(admin))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["overview"]["totalMemes"] == 2
    assert data["overview"]["totalPremium"] == 1
    assert data["revenue"]["totalRevenue"] == 20
    assert data["revenue"]["platformEarnings"] == 2
    assert data["revenue"]["sellerEarnings"] == 18
    assert data["users"]["totalUsers"] == 3
    assert data["users"]["adminUsers"] == 1
    assert len(data["trends"]["dailyRevenue"]) == 1

    top = client.get("/api/analytics/top-selling", headers=headers_for(admin)).json()["data"]
    assert [m["title"] for m in top["memes"]] == ["hit"]
    assert top["memes"][0]["creator"]["username"] == owner["username"]
    assert top["aiGenerated"] == []


def test_analytics_bad_date_is_problem_json(client, make_user, headers_for):
    admin = make_user(role="admin")
    r = client.get("/api/analytics?startDate=2024-13-40&endDate=2024-01-01", headers=headers_for(admin))
    assert r.status_code == 400
    assert r.headers["content-type"].startswith("application/problem+json")
