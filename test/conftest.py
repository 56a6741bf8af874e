import os
import tempfile
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from utils import storage_utils, time_utils

# Sector A: base price 10.00, 4 spots. Sector B: base price 5.00, 2 spots.
SECTORS = [
    {"code": "A", "base_price": "10.00", "max_capacity": 4, "open_hour": "00:00",
     "close_hour": "23:59", "duration_limit_minutes": 1440},
    {"code": "B", "base_price": "5.00", "max_capacity": 2, "open_hour": "08:00",
     "close_hour": "18:00", "duration_limit_minutes": 240},
]

SPOTS = {
    "A1": {"id": 1, "sector_code": "A", "lat": -23.561684, "lng": -46.655981},
    "A2": {"id": 2, "sector_code": "A", "lat": -23.561674, "lng": -46.655971},
    "A3": {"id": 3, "sector_code": "A", "lat": -23.561664, "lng": -46.655961},
    "A4": {"id": 4, "sector_code": "A", "lat": -23.561654, "lng": -46.655951},
    "B1": {"id": 5, "sector_code": "B", "lat": -23.562684, "lng": -46.656981},
    "B2": {"id": 6, "sector_code": "B", "lat": -23.562674, "lng": -46.656971},
}


class Clock:
    """Stands in for time_utils.now so parked times are predictable"""

    def __init__(self, current: datetime):
        self.current = current

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def garage_db(monkeypatch):
    """create a temporary database seeded with sectors A and B and their spots"""
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(db_fd)
    monkeypatch.setattr(storage_utils, "DB_PATH", Path(db_path))

    storage_utils.init_db()
    with storage_utils.transaction() as conn:
        for sector in SECTORS:
            storage_utils.save_new_sector_to_db(sector, conn)
        for spot in SPOTS.values():
            storage_utils.save_new_spot_to_db(spot, conn)

    yield Path(db_path)

    # cleanup tries to delete, but doesnt fail if it cant
    try:
        os.unlink(db_path)
    except (OSError, PermissionError):
        pass


@pytest.fixture
def spots():
    return {name: (spot["lat"], spot["lng"]) for name, spot in SPOTS.items()}


@pytest.fixture
def clock(monkeypatch):
    """pin the current time to 2025-01-01 12:05"""
    fake_clock = Clock(datetime(2025, 1, 1, 12, 5))
    monkeypatch.setattr(time_utils, "now", fake_clock)
    return fake_clock


@pytest.fixture
def client(garage_db, clock):
    from main import app

    with TestClient(app) as c:
        yield c
