import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from models.parking_model import EventType, SessionState
from services import occupancy_services, pricing_services, revenue_services
from utils import storage_utils, time_utils
from utils.errors import CapacityExhaustedError, ConflictError, NotFoundError, ValidationError
from utils.key_locks import KeyedLock

logger = logging.getLogger(__name__)

# Lock order is always plate -> spot -> database -> revenue key
vehicle_locks = KeyedLock("vehicle")
spot_locks = KeyedLock("spot")

NOT_PARKED_MESSAGE = "Vehicle is not currently parked"


def session_state(session: Optional[Dict]) -> SessionState:
    if session is None:
        return SessionState.NONE
    if not session["active"]:
        return SessionState.CLOSED
    if session["spot_id"] is None:
        return SessionState.ENTERED
    return SessionState.PARKED


def get_vehicle(license_plate: str) -> Dict:
    vehicle = storage_utils.get_vehicle_by_plate(license_plate)
    if not vehicle:
        raise NotFoundError(f"Vehicle not found: {license_plate}")
    return vehicle


def get_spot(lat: float, lng: float) -> Dict:
    spot = storage_utils.get_spot_by_location(lat, lng)
    if not spot:
        raise NotFoundError(f"Spot not found at location: {lat}, {lng}")
    return spot


@contextmanager
def _holding_spot(spot_id: Optional[int]):
    if spot_id is None:
        yield
        return
    with spot_locks.hold(spot_id):
        yield


def _record_event(
    event_type: EventType,
    event_time: datetime,
    vehicle: Dict,
    spot: Optional[Dict],
    conn: sqlite3.Connection,
) -> Dict:
    event = {
        "id": str(uuid.uuid4()),
        "event_type": event_type.value,
        "event_time": event_time,
        "vehicle_id": vehicle["id"],
        "spot_id": spot["id"] if spot else None,
        "created_at": datetime.now(),
    }
    storage_utils.save_new_event_to_db(event, conn)
    return event


def process_entry(license_plate: str, entry_time: datetime) -> Dict:
    """
    Opens a session for a vehicle arriving at the garage.
    Rejected when every sector is full or the plate already has an active session.
    """
    logger.info(f"Processing entry event for vehicle: {license_plate}")

    if occupancy_services.are_all_sectors_full():
        logger.warning(f"Rejecting entry of {license_plate}: all sectors are full")
        raise CapacityExhaustedError(
            f"Vehicle: {license_plate}. All sectors are full at the moment {entry_time}. Please try again later."
        )

    with vehicle_locks.hold(license_plate):
        try:
            with storage_utils.transaction() as conn:
                vehicle = storage_utils.upsert_vehicle(license_plate, conn)

                if storage_utils.get_active_session_by_vehicle(vehicle["id"], conn):
                    raise ConflictError(f"Vehicle {license_plate} already has an active parking session")

                _record_event(EventType.ENTRY, entry_time, vehicle, None, conn)

                session = {
                    "id": str(uuid.uuid4()),
                    "vehicle_id": vehicle["id"],
                    "entry_time": entry_time,
                    "parked_time": entry_time,
                    "exit_time": None,
                    "spot_id": None,
                    "applied_price_factor": None,
                    "price": None,
                    "active": True,
                    "created_at": datetime.now(),
                }
                storage_utils.save_new_session_to_db(session, conn)
        except sqlite3.IntegrityError:
            # Another process opened a session for this plate first
            raise ConflictError(f"Vehicle {license_plate} already has an active parking session")

    logger.info(f"Session {session['id']} opened for vehicle: {license_plate}")
    return session


def process_parked(license_plate: str, lat: float, lng: float) -> Dict:
    """
    Assigns the spot at (lat, lng) to the vehicle's active session and locks in
    the price factor for the sector's occupancy at this moment.
    """
    logger.info(f"Processing parked event for vehicle: {license_plate} at {lat}, {lng}")

    vehicle = get_vehicle(license_plate)
    spot = get_spot(lat, lng)

    with vehicle_locks.hold(license_plate), spot_locks.hold(spot["id"]):
        with storage_utils.transaction() as conn:
            session = storage_utils.get_active_session_by_vehicle(vehicle["id"], conn)
            if session is None:
                raise NotFoundError(f"No active session found for vehicle: {license_plate}")

            if session["spot_id"] == spot["id"]:
                logger.info(f"Vehicle {license_plate} is already parked at spot {spot['id']}")
                return session
            if session_state(session) == SessionState.PARKED:
                raise ConflictError(
                    f"Vehicle {license_plate} is already parked at spot {session['spot_id']}"
                )

            holder = storage_utils.get_active_session_by_spot(spot["id"], conn)
            if holder is not None:
                raise ConflictError(f"Spot {spot['id']} is already occupied by another vehicle")

            storage_utils.set_spot_occupied(spot["id"], True, conn)

            parked_time = time_utils.now()
            _record_event(EventType.PARKED, parked_time, vehicle, spot, conn)

            # Read through conn so the ratio includes the spot just taken
            ratio = occupancy_services.occupancy_ratio(spot["sector_code"], conn)
            updates = {
                "spot_id": spot["id"],
                "parked_time": parked_time,
                "applied_price_factor": pricing_services.price_factor(ratio),
            }
            storage_utils.update_existing_session_in_db(session["id"], updates, conn)
            session.update(updates)

    logger.info(
        f"Vehicle {license_plate} parked at spot {spot['id']} "
        f"(sector {spot['sector_code']}, occupancy {ratio:.2f}, factor {session['applied_price_factor']})"
    )
    return session


def process_exit(license_plate: str, exit_time: datetime) -> Dict:
    """
    Closes the vehicle's active session, frees its spot, prices the stay and
    adds the price to the sector's revenue for the exit date.
    """
    logger.info(f"Processing exit event for vehicle: {license_plate}")

    vehicle = get_vehicle(license_plate)

    with vehicle_locks.hold(license_plate):
        session = storage_utils.get_active_session_by_vehicle(vehicle["id"])
        if session is None:
            raise NotFoundError(f"No active session found for vehicle: {license_plate}")
        if exit_time < session["entry_time"]:
            raise ValidationError(
                f"Exit time {exit_time} is before entry time {session['entry_time']} for vehicle: {license_plate}"
            )

        with _holding_spot(session["spot_id"]):
            with storage_utils.transaction() as conn:
                # Re-read under the write lock; another worker may have closed or parked it
                current = storage_utils.get_active_session_by_vehicle(vehicle["id"], conn)
                if current is None or current["id"] != session["id"]:
                    raise NotFoundError(f"No active session found for vehicle: {license_plate}")
                if current["spot_id"] != session["spot_id"]:
                    raise ConflictError(f"Session of vehicle {license_plate} changed while exiting, retry the event")
                session = current

                spot = None
                price = Decimal("0")

                if session["spot_id"] is not None:
                    spot = storage_utils.get_spot_by_id(session["spot_id"], conn)
                    sector = occupancy_services.get_sector(spot["sector_code"], conn)
                    storage_utils.set_spot_occupied(spot["id"], False, conn)
                    price = pricing_services.settle(
                        session["entry_time"], exit_time, sector["base_price"], session["applied_price_factor"]
                    )
                else:
                    logger.warning(f"Vehicle {license_plate} leaves without having parked, no charge")

                updates = {"exit_time": exit_time, "price": price, "active": False}
                if not storage_utils.close_active_session_in_db(session["id"], updates, conn):
                    raise NotFoundError(f"No active session found for vehicle: {license_plate}")
                session.update(updates)

                _record_event(EventType.EXIT, exit_time, vehicle, spot, conn)

                if spot is not None:
                    revenue_services.add_revenue(spot["sector_code"], price, exit_time.date(), conn)

    logger.info(f"Session {session['id']} closed for vehicle: {license_plate}, price: {price}")
    return session


def get_vehicle_status(license_plate: str) -> Dict:
    logger.info(f"Getting status for vehicle: {license_plate}")

    vehicle = get_vehicle(license_plate)
    session = storage_utils.get_active_session_by_vehicle(vehicle["id"])
    if session is None:
        return {"license_plate": license_plate, "message": NOT_PARKED_MESSAGE}

    status = {
        "license_plate": license_plate,
        "price_until_now": Decimal("0"),
        "entry_time": session["entry_time"],
        "time_parked": None,
        "lat": None,
        "lng": None,
    }

    if session["spot_id"] is not None:
        spot = storage_utils.get_spot_by_id(session["spot_id"])
        sector = occupancy_services.get_sector(spot["sector_code"])
        as_of = max(time_utils.now(), session["entry_time"])
        status.update(
            {
                "price_until_now": pricing_services.settle(
                    session["entry_time"], as_of, sector["base_price"], session["applied_price_factor"]
                ),
                "time_parked": session["parked_time"],
                "lat": spot["lat"],
                "lng": spot["lng"],
            }
        )

    return status


def get_spot_status(lat: float, lng: float) -> Dict:
    logger.info(f"Getting status for spot at location: {lat}, {lng}")

    spot = get_spot(lat, lng)
    status = {"occupied": spot["occupied"], "entry_time": None, "time_parked": None}

    if spot["occupied"]:
        session = storage_utils.get_active_session_by_spot(spot["id"])
        if session is not None:
            status["entry_time"] = session["entry_time"]
            status["time_parked"] = session["parked_time"]

    return status


def get_vehicle_events(license_plate: str) -> List[Dict]:
    logger.info(f"Getting event history for vehicle: {license_plate}")
    vehicle = get_vehicle(license_plate)
    return storage_utils.get_events_by_vehicle(vehicle["id"])
