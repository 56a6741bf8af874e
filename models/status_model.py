from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PlateStatusRequest(BaseModel):
    license_plate: str = Field(..., min_length=1)


class PlateStatusResponse(BaseModel):
    license_plate: str
    price_until_now: Optional[float] = None
    entry_time: Optional[datetime] = None
    time_parked: Optional[datetime] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    message: Optional[str] = None


class SpotStatusRequest(BaseModel):
    lat: float
    lng: float


class SpotStatusResponse(BaseModel):
    occupied: bool
    entry_time: Optional[datetime] = None
    time_parked: Optional[datetime] = None


class SectorStatusResponse(BaseModel):
    sector: str
    occupied: int
    max_capacity: int
    occupancy_ratio: float
    price_factor: float
    full: bool
    open_now: bool


class ParkingEventOut(BaseModel):
    id: str
    event_type: str
    event_time: datetime
    spot_id: Optional[int] = None
