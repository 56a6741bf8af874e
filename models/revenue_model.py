import datetime as dt

from pydantic import BaseModel, Field


class RevenueRequest(BaseModel):
    date: str = Field(..., description="Date to get revenue for (YYYY-MM-DD)")
    sector: str = Field(..., min_length=1, description="Sector code to get revenue for")


class RevenueResponse(BaseModel):
    amount: float
    currency: str
    timestamp: dt.datetime = Field(default_factory=dt.datetime.now)


class DailyRevenue(BaseModel):
    date: dt.date
    amount: float
    currency: str
