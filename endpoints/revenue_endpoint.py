from typing import List

from fastapi import APIRouter, Query

from models.revenue_model import DailyRevenue, RevenueRequest, RevenueResponse
from services import revenue_services
from utils.time_utils import parse_date


router = APIRouter(
    tags=["revenue"],
    responses={
        400: {"description": "Bad Request - Invalid date"},
        404: {"description": "Not Found - Sector does not exist"}
    }
)


@router.post(
    "/revenue",
    summary="Get the revenue of a sector on a date",
    response_model=RevenueResponse,
)
def get_revenue(request: RevenueRequest):
    revenue = revenue_services.get_revenue(request.sector, parse_date(request.date))
    return RevenueResponse(amount=float(revenue["amount"]), currency=revenue["currency"])


@router.get(
    "/revenue/{sector_code}",
    summary="Get the daily revenue of a sector between two dates",
    response_model=List[DailyRevenue],
)
def get_revenue_for_date_range(sector_code: str, start: str = Query(...), end: str = Query(...)):
    rows = revenue_services.get_revenue_for_date_range(sector_code, parse_date(start), parse_date(end))
    return [
        DailyRevenue(date=row["date"], amount=float(row["amount"]), currency=row["currency"])
        for row in rows
    ]
