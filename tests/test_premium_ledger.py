from __future__ import annotations

from decimal import Decimal

import pytest

from memehub.services import ledger


@pytest.mark.parametrize(
    "price,rate,commission,seller",
    [
        (9.99, 10, 1.0, 8.99),
        (10, 10, 1.0, 9.0),
        (1000, 0, 0.0, 1000.0),
        (0.05, 15, 0.01, 0.04),
        (19.99, 12.5, 2.5, 17.49),
    ],
)
def test_split_sale_is_exact_in_cents(price, rate, commission, seller):
    split = ledger.split_sale(price, rate)
    assert split["commission"] == commission
    assert split["platformEarnings"] == commission
    assert split["sellerEarnings"] == seller
    assert Decimal(str(split["sellerEarnings"])) + Decimal(str(split["platformEarnings"])) == Decimal(
        str(split["price"])
    )


def test_validate_platform_settings():
    assert ledger.validate_platform_settings(5, 1, 50) == (5.0, 1.0, 50.0)
    for bad in ((101, 1, 50), (-1, 1, 50), (10, 60, 50), (10, -1, 50)):
        with pytest.raises(Exception) as exc:
            ledger.validate_platform_settings(*bad)
        assert getattr(exc.value, "status_code", None) == 400


def _set_premium(client, headers, meme, price, is_premium=True):
    return client.put(
        "/api/premium/meme/premium",
        json={"memeId": meme["memeId"], "memeType": meme["memeType"], "isPremium": is_premium, "price": price},
        headers=headers,
    )


def _buy(client, headers, meme):
    return client.post(
        "/api/premium/meme/purchase",
        json={"memeId": meme["memeId"], "memeType": meme["memeType"]},
        headers=headers,
    )


def test_settings_defaults_are_public(client):
    r = client.get("/api/premium/settings")
    assert r.status_code == 200
    body = r.json()
    assert (body["commissionRate"], body["minimumPrice"], body["maximumPrice"]) == (10, 1, 1000)


def test_settings_update_is_super_admin_only(client, make_user, headers_for):
    admin = make_user(role="admin")
    root = make_user(role="super_admin")
    payload = {"commissionRate": 20, "minimumPrice": 2, "maximumPrice": 50}

    assert client.put("/api/premium/settings", json=payload, headers=headers_for(admin)).status_code == 403

    r = client.put("/api/premium/settings", json=payload, headers=headers_for(root))
    assert r.status_code == 200
    assert r.json()["settings"]["commissionRate"] == 20
    assert r.json()["settings"]["updatedBy"] == root["userId"]

    bad = client.put(
        "/api/premium/settings",
        json={"commissionRate": 20, "minimumPrice": 60, "maximumPrice": 50},
        headers=headers_for(root),
    )
    assert bad.status_code == 400


def test_set_premium_checks_owner_and_price_bounds(client, make_user, make_meme, headers_for):
    owner = make_user()
    other = make_user()
    meme = make_meme(owner)

    r = _set_premium(client, headers_for(other), meme, 5)
    assert r.status_code == 403

    r = _set_premium(client, headers_for(owner), meme, 1001)
    assert r.status_code == 400
    assert r.json()["detail"] == "Price must be between $1 and $1000"

    r = _set_premium(client, headers_for(owner), meme, 9.99)
    assert r.status_code == 200
    assert r.json()["meme"]["isPremium"] is True
    assert r.json()["meme"]["price"] == 9.99
    assert r.json()["meme"]["commission"] == 1.0

    r = _set_premium(client, headers_for(owner), meme, None, is_premium=False)
    assert r.json()["meme"]["isPremium"] is False
    assert r.json()["meme"]["price"] == 0


def test_purchase_records_transaction_once(client, make_user, make_meme, headers_for):
    owner = make_user()
    buyer = make_user()
    meme = make_meme(owner)
    _set_premium(client, headers_for(owner), meme, 9.99)

    r = _buy(client, headers_for(buyer), meme)
    assert r.status_code == 200
    txn = r.json()["transaction"]
    assert txn["status"] == "completed"
    assert txn["buyer"] == buyer["userId"]
    assert txn["seller"] == owner["userId"]
    assert (txn["price"], txn["commission"], txn["sellerEarnings"], txn["platformEarnings"]) == (
        9.99,
        1.0,
        8.99,
        1.0,
    )
    assert r.json()["meme"]["soldCount"] == 1
    assert r.json()["meme"]["totalEarnings"] == pytest.approx(8.99)

    again = _buy(client, headers_for(buyer), meme)
    assert again.status_code == 400
    assert again.json()["detail"] == "You have already purchased this meme"

    purchased = client.get("/api/premium/purchased", headers=headers_for(buyer)).json()["memes"]
    assert [m["memeId"] for m in purchased] == [meme["memeId"]]
    assert purchased[0]["purchasePrice"] == 9.99
    assert purchased[0]["seller"]["username"] == owner["username"]

    earnings = client.get("/api/premium/earnings", headers=headers_for(owner)).json()
    assert earnings["totalSales"] == 1
    assert earnings["totalEarnings"] == 8.99
    assert earnings["totalRevenue"] == 9.99


def test_cannot_buy_own_or_non_premium_meme(client, make_user, make_meme, headers_for):
    owner = make_user()
    buyer = make_user()
    plain = make_meme(owner)
    premium = make_meme(owner)
    _set_premium(client, headers_for(owner), premium, 5)

    r = _buy(client, headers_for(buyer), plain)
    assert r.status_code == 400
    assert r.json()["detail"] == "This meme is not premium"

    r = _buy(client, headers_for(owner), premium)
    assert r.status_code == 400
    assert r.json()["detail"] == "You cannot purchase your own meme"

    r = _buy(client, headers_for(buyer), {"memeId": "meme_missing", "memeType": "Meme"})
    assert r.status_code == 404


def test_premium_listing_shows_only_approved_public_premium(client, make_user, make_meme, headers_for):
    owner = make_user()
    listed = make_meme(owner, title="listed")
    pending = make_meme(owner, approved=False, title="pending")
    make_meme(owner, title="free")
    _set_premium(client, headers_for(owner), listed, 3)
    _set_premium(client, headers_for(owner), pending, 3)

    body = client.get("/api/premium/memes").json()
    assert [m["title"] for m in body["memes"]] == ["listed"]
    assert body["total"] == 1


def _rows(table, entity_type):
    return [it for it in table.items.values() if it.get("entityType") == entity_type]


def test_failed_purchase_write_leaves_nothing_behind(client, table, make_user, make_meme, headers_for):
    owner = make_user()
    buyer = make_user()
    meme = make_meme(owner)
    _set_premium(client, headers_for(owner), meme, 9.99)

    table.fail_put_when = lambda item: str(item.get("sk", "")).startswith("SALE#")
    r = _buy(client, headers_for(buyer), meme)
    assert r.status_code == 503
    assert _rows(table, "Transaction") == []
    assert _rows(table, "Purchase") == []
    assert _rows(table, "Sale") == []
    stored = table.get_item(key={"pk": f"MEME#{meme['memeId']}", "sk": "PROFILE"})
    assert not stored.get("soldCount")

    table.fail_put_when = None
    r = _buy(client, headers_for(buyer), meme)
    assert r.status_code == 200
    assert len(_rows(table, "Transaction")) == 1
    assert r.json()["meme"]["soldCount"] == 1

    assert _buy(client, headers_for(buyer), meme).status_code == 400
    assert len(_rows(table, "Transaction")) == 1


def test_transaction_carries_integer_cents_that_add_up(client, make_user, make_meme, headers_for):
    owner = make_user()
    buyer = make_user()
    meme = make_meme(owner)
    _set_premium(client, headers_for(owner), meme, 1.05)

    txn = _buy(client, headers_for(buyer), meme).json()["transaction"]
    assert txn["priceCents"] == 105
    assert txn["platformEarningsCents"] == 11
    assert txn["sellerEarningsCents"] == 94
    assert txn["sellerEarningsCents"] + txn["platformEarningsCents"] == txn["priceCents"]
