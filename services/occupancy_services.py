import logging
import sqlite3
from datetime import datetime
from typing import Dict, Optional

from services import pricing_services
from utils import storage_utils
from utils.errors import NotFoundError

logger = logging.getLogger(__name__)


def get_sector(sector_code: str, conn: Optional[sqlite3.Connection] = None) -> Dict:
    sector = storage_utils.get_sector_by_code(sector_code, conn)
    if not sector:
        raise NotFoundError(f"Sector not found: {sector_code}")
    return sector


def occupancy_ratio(sector_code: str, conn: Optional[sqlite3.Connection] = None) -> float:
    """
    Fraction of the sector's capacity that is occupied right now, in [0, 1].
    Pass the caller's connection to include its uncommitted spot updates.
    """
    sector = get_sector(sector_code, conn)
    occupied = storage_utils.count_occupied_spots(sector_code, conn)
    return min(occupied / sector["max_capacity"], 1.0)


def is_sector_full(sector_code: str) -> bool:
    return occupancy_ratio(sector_code) >= 1.0


def are_all_sectors_full() -> bool:
    sectors = storage_utils.load_sector_data_from_db()
    occupied_by_sector = storage_utils.count_occupied_spots_by_sector()
    return all(
        occupied_by_sector.get(sector["code"], 0) >= sector["max_capacity"]
        for sector in sectors
    )


def is_sector_open(sector: Dict, at: datetime) -> bool:
    open_hour = sector.get("open_hour")
    close_hour = sector.get("close_hour")
    if open_hour is None or close_hour is None:
        return True
    time_of_day = at.time()
    if open_hour <= close_hour:
        return open_hour <= time_of_day <= close_hour
    # Window crosses midnight, e.g. 22:00 -> 06:00
    return time_of_day >= open_hour or time_of_day <= close_hour


def get_sector_status(sector_code: str, at: datetime) -> Dict:
    logger.info(f"Getting occupancy status for sector: {sector_code}")
    sector = get_sector(sector_code)
    occupied = storage_utils.count_occupied_spots(sector_code)
    ratio = min(occupied / sector["max_capacity"], 1.0)
    return {
        "sector": sector_code,
        "occupied": occupied,
        "max_capacity": sector["max_capacity"],
        "occupancy_ratio": ratio,
        "price_factor": pricing_services.price_factor(ratio),
        "full": ratio >= 1.0,
        "open_now": is_sector_open(sector, at),
    }
