"""Admin dashboard aggregates.

The table has no aggregation engine, so each report loads the relevant
partition (memes by type, transactions by date, users) and folds it in Python.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable

from ..errors import bad_request
from ..repositories import memes_repo, transactions_repo, users_repo
from ..repositories.common import parse_iso

FILTERS = ("today", "week", "month", "all")
TREND_DAYS = 30

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime
    filter: str

    def contains(self, value: Any) -> bool:
        dt = parse_iso(value)
        return dt is not None and self.start <= dt <= self.end

    def to_api(self) -> dict[str, Any]:
        return {
            "start": _iso(self.start),
            "end": _iso(self.end),
            "filter": self.filter,
        }


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_bound(value: str, *, end: bool) -> datetime:
    s = str(value or "").strip()
    try:
        if len(s) == 10:
            d = datetime.strptime(s, "%Y-%m-%d").date()
            return datetime.combine(d, time.max if end else time.min, tzinfo=timezone.utc)
    except ValueError as e:
        raise bad_request(f"Invalid date: {s}") from e
    dt = parse_iso(s)
    if dt is None:
        raise bad_request(f"Invalid date: {s}")
    return dt


def resolve_date_range(
    filter_name: str | None,
    start_date: str | None = None,
    end_date: str | None = None,
    *,
    now: datetime | None = None,
) -> DateRange:
    """
    Explicit start/end dates win over the named filter. Weeks start on Sunday.
    """
    now = now or datetime.now(timezone.utc)
    f = str(filter_name or "all").strip().lower()
    if f not in FILTERS:
        f = "all"

    if start_date and end_date:
        start = _parse_bound(start_date, end=False)
        end = _parse_bound(end_date, end=True)
        if start > end:
            raise bad_request("startDate must be before endDate")
        return DateRange(start=start, end=end, filter=f)

    start_of_day = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    if f == "today":
        start = start_of_day
    elif f == "week":
        days_since_sunday = (now.weekday() + 1) % 7
        start = start_of_day - timedelta(days=days_since_sunday)
    elif f == "month":
        start = start_of_day.replace(day=1)
    else:
        start = _EPOCH
    return DateRange(start=start, end=now, filter=f)


def _sum(values: Iterable[Any]) -> float:
    total = sum((Decimal(str(v or 0)) for v in values), Decimal(0))
    return float(total)


def _avg(values: list[Any]) -> float:
    if not values:
        return 0
    return float(Decimal(str(_sum(values))) / Decimal(len(values)))


def meme_counts(memes: list[dict[str, Any]]) -> dict[str, int]:
    statuses = [m.get("publicationStatus") for m in memes]
    return {
        "total": len(memes),
        "public": sum(1 for m in memes if m.get("is_public")),
        "private": sum(1 for m in memes if not m.get("is_public")),
        "premium": sum(1 for m in memes if m.get("isPremium")),
        "approved": statuses.count(memes_repo.STATUS_APPROVED),
        "pending": statuses.count(memes_repo.STATUS_PENDING),
        "rejected": statuses.count(memes_repo.STATUS_REJECTED),
    }


def premium_sales(memes: list[dict[str, Any]]) -> dict[str, Any]:
    premium = [m for m in memes if m.get("isPremium")]
    return {
        "totalPremium": len(premium),
        "totalSold": int(sum(int(m.get("soldCount") or 0) for m in premium)),
        "totalEarnings": _sum(m.get("totalEarnings") for m in premium),
        "avgPrice": _avg([m.get("price") for m in premium]),
    }


def revenue(transactions: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "totalRevenue": _sum(t.get("price") for t in transactions),
        "totalTransactions": len(transactions),
        "platformEarnings": _sum(t.get("platformEarnings") for t in transactions),
        "sellerEarnings": _sum(t.get("sellerEarnings") for t in transactions),
        "avgTransactionValue": _avg([t.get("price") for t in transactions]),
    }


def _day(value: Any) -> str | None:
    dt = parse_iso(value)
    return dt.strftime("%Y-%m-%d") if dt else None


def daily_revenue(transactions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    buckets: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for t in transactions:
        day = _day(t.get("transactionDate"))
        if day:
            buckets[day].append(t)
    return [
        {"_id": day, "revenue": _sum(t.get("price") for t in rows), "transactions": len(rows)}
        for day, rows in sorted(buckets.items())
    ]


def daily_counts(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    buckets: dict[str, int] = defaultdict(int)
    for it in items:
        day = _day(it.get("createdAt"))
        if day:
            buckets[day] += 1
    return [{"_id": day, "count": n} for day, n in sorted(buckets.items())]


def _completed(transactions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [t for t in transactions if t.get("status") == transactions_repo.STATUS_COMPLETED]


def build_analytics(rng: DateRange, *, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    trend_start = now - timedelta(days=TREND_DAYS)

    all_memes = memes_repo.list_memes_by_type(memes_repo.MEME)
    all_ai = memes_repo.list_memes_by_type(memes_repo.GENERATED_IMAGE)
    memes = [m for m in all_memes if rng.contains(m.get("createdAt"))]
    ai = [m for m in all_ai if rng.contains(m.get("createdAt"))]

    txns = _completed(transactions_repo.list_transactions(start_iso=_iso(min(rng.start, trend_start))))
    txns_in_range = [t for t in txns if rng.contains(t.get("transactionDate"))]
    txns_trend = [t for t in txns if (parse_iso(t.get("transactionDate")) or _EPOCH) >= trend_start]

    users = [u for u in users_repo.list_users() if rng.contains(u.get("createdAt"))]
    roles = [str(u.get("role") or "user") for u in users]

    meme_stats = meme_counts(memes)
    ai_stats = meme_counts(ai)

    return {
        "overview": {
            "totalMemes": meme_stats["total"] + ai_stats["total"],
            "totalPublic": meme_stats["public"] + ai_stats["public"],
            "totalPrivate": meme_stats["private"] + ai_stats["private"],
            "totalPremium": meme_stats["premium"] + ai_stats["premium"],
            "totalApproved": meme_stats["approved"] + ai_stats["approved"],
            "totalPending": meme_stats["pending"] + ai_stats["pending"],
            "totalRejected": meme_stats["rejected"] + ai_stats["rejected"],
        },
        "memes": meme_stats,
        "aiGenerated": ai_stats,
        "revenue": revenue(txns_in_range),
        "premiumSales": {
            "memeSales": premium_sales(memes),
            "aiSales": premium_sales(ai),
        },
        "users": {
            "totalUsers": len(users),
            "regularUsers": roles.count("user"),
            "adminUsers": roles.count("admin"),
            "superAdminUsers": roles.count("super_admin"),
        },
        "trends": {
            "dailyRevenue": daily_revenue(txns_trend),
            "memeCreation": daily_counts(
                [m for m in all_memes if (parse_iso(m.get("createdAt")) or _EPOCH) >= trend_start]
            ),
            "aiGeneration": daily_counts(
                [m for m in all_ai if (parse_iso(m.get("createdAt")) or _EPOCH) >= trend_start]
            ),
        },
        "dateRange": rng.to_api(),
    }


def top_selling(rng: DateRange, *, limit: int = 10) -> dict[str, Any]:
    lim = max(1, min(100, int(limit or 10)))
    out: dict[str, Any] = {}
    for field, meme_type in (("memes", memes_repo.MEME), ("aiGenerated", memes_repo.GENERATED_IMAGE)):
        rows = [
            m
            for m in memes_repo.list_memes_by_type(meme_type)
            if m.get("isPremium") and int(m.get("soldCount") or 0) > 0 and rng.contains(m.get("createdAt"))
        ]
        rows.sort(key=lambda m: int(m.get("soldCount") or 0), reverse=True)
        rows = rows[:lim]
        creators = users_repo.get_users_by_ids([str(m.get("userId") or "") for m in rows])
        out[field] = [
            {
                "_id": m.get("memeId"),
                "title": m.get("title"),
                "url": m.get("url"),
                "price": m.get("price"),
                "soldCount": m.get("soldCount"),
                "totalEarnings": m.get("totalEarnings"),
                "createdAt": m.get("createdAt"),
                "creator": {
                    "username": (creators.get(str(m.get("userId"))) or {}).get("username"),
                    "email": (creators.get(str(m.get("userId"))) or {}).get("email"),
                },
            }
            for m in rows
        ]
    return out
