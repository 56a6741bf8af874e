from typing import List

from fastapi import APIRouter

from models.status_model import (
    ParkingEventOut,
    PlateStatusRequest,
    PlateStatusResponse,
    SectorStatusResponse,
    SpotStatusRequest,
    SpotStatusResponse,
)
from services import occupancy_services, session_services
from utils import time_utils


router = APIRouter(
    tags=["status"],
    responses={
        404: {"description": "Not Found - Resource does not exist"}
    }
)


@router.post(
    "/plate-status",
    summary="Get the parking status of a vehicle",
    response_model=PlateStatusResponse,
    response_model_exclude_unset=True,
)
def get_plate_status(request: PlateStatusRequest):
    vehicle_status = session_services.get_vehicle_status(request.license_plate)
    if "price_until_now" in vehicle_status:
        vehicle_status["price_until_now"] = float(vehicle_status["price_until_now"])
    return vehicle_status


@router.post(
    "/spot-status",
    summary="Get the status of the spot at a location",
    response_model=SpotStatusResponse,
)
def get_spot_status(request: SpotStatusRequest):
    return session_services.get_spot_status(request.lat, request.lng)


@router.get(
    "/sectors/{sector_code}/occupancy",
    summary="Get occupancy, current price factor and opening state of a sector",
    response_model=SectorStatusResponse,
)
def get_sector_occupancy(sector_code: str):
    sector_status = occupancy_services.get_sector_status(sector_code, time_utils.now())
    sector_status["price_factor"] = float(sector_status["price_factor"])
    return sector_status


@router.get(
    "/vehicles/{license_plate}/events",
    summary="Get the ENTRY/PARKED/EXIT history of a vehicle",
    response_model=List[ParkingEventOut],
)
def get_vehicle_events(license_plate: str):
    return session_services.get_vehicle_events(license_plate)
