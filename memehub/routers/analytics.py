from __future__ import annotations

from fastapi import APIRouter, Request

from ..auth.roles import require_admin
from ..services import analytics

router = APIRouter(tags=["analytics"])


@router.get("")
def get_analytics(
    request: Request,
    filter: str = "all",
    startDate: str | None = None,
    endDate: str | None = None,
):
    require_admin(request)
    rng = analytics.resolve_date_range(filter, startDate, endDate)
    return {
        "success": True,
        "message": "Analytics data retrieved successfully",
        "data": analytics.build_analytics(rng),
    }


@router.get("/top-selling")
def top_selling(
    request: Request,
    limit: int = 10,
    filter: str = "all",
    startDate: str | None = None,
    endDate: str | None = None,
):
    require_admin(request)
    rng = analytics.resolve_date_range(filter, startDate, endDate)
    return {
        "success": True,
        "message": "Top selling items retrieved successfully",
        "data": analytics.top_selling(rng, limit=limit),
    }
