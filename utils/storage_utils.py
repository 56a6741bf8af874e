import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

from utils import config

logger = logging.getLogger(__name__)

# Define the database path globally
DB_PATH = Path(config.GARAGE_DB_PATH)
DB_TIMEOUT_SECONDS = 30


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS vehicles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        license_plate TEXT NOT NULL UNIQUE,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sectors (
        code TEXT PRIMARY KEY,
        base_price TEXT NOT NULL,
        max_capacity INTEGER NOT NULL CHECK (max_capacity > 0),
        open_hour TEXT,
        close_hour TEXT,
        duration_limit_minutes INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS spots (
        id INTEGER PRIMARY KEY,
        sector_code TEXT NOT NULL REFERENCES sectors(code),
        lat REAL NOT NULL,
        lng REAL NOT NULL,
        occupied INTEGER NOT NULL DEFAULT 0,
        UNIQUE (lat, lng)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS parking_sessions (
        id TEXT PRIMARY KEY,
        vehicle_id INTEGER NOT NULL REFERENCES vehicles(id),
        entry_time TEXT NOT NULL,
        parked_time TEXT NOT NULL,
        exit_time TEXT,
        spot_id INTEGER REFERENCES spots(id),
        applied_price_factor TEXT,
        price TEXT,
        active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT
    )
    """,
    # At most one active session per vehicle
    """
    CREATE UNIQUE INDEX IF NOT EXISTS idx_one_active_session_per_vehicle
    ON parking_sessions (vehicle_id) WHERE active = 1
    """,
    """
    CREATE TABLE IF NOT EXISTS parking_events (
        id TEXT PRIMARY KEY,
        event_type TEXT NOT NULL,
        event_time TEXT NOT NULL,
        vehicle_id INTEGER NOT NULL REFERENCES vehicles(id),
        spot_id INTEGER REFERENCES spots(id),
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS revenues (
        sector_code TEXT NOT NULL REFERENCES sectors(code),
        revenue_date TEXT NOT NULL,
        amount TEXT NOT NULL,
        currency TEXT NOT NULL,
        updated_at TEXT,
        PRIMARY KEY (sector_code, revenue_date)
    )
    """,
]


# --- Column encoding/decoding ---


def _as_datetime(value):
    return datetime.fromisoformat(value) if value is not None else None


def _as_date(value):
    return date.fromisoformat(value) if value is not None else None


def _as_time(value):
    return time.fromisoformat(value) if value is not None else None


def _as_decimal(value):
    return Decimal(value) if value is not None else None


def _as_bool(value):
    return bool(value) if value is not None else None


# Columns stored as text/integers that come back as richer Python types
DECODERS = {
    "created_at": _as_datetime,
    "entry_time": _as_datetime,
    "parked_time": _as_datetime,
    "exit_time": _as_datetime,
    "event_time": _as_datetime,
    "updated_at": _as_datetime,
    "revenue_date": _as_date,
    "open_hour": _as_time,
    "close_hour": _as_time,
    "base_price": _as_decimal,
    "applied_price_factor": _as_decimal,
    "price": _as_decimal,
    "amount": _as_decimal,
    "occupied": _as_bool,
    "active": _as_bool,
}


def encode_value(value):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def decode_row(row: sqlite3.Row) -> Dict:
    item = dict(row)
    for col, decoder in DECODERS.items():
        if col in item:
            item[col] = decoder(item[col])
    return item


# --- Connections ---


def _open_connection() -> sqlite3.Connection:
    # isolation_level=None: transactions are opened explicitly by transaction()
    conn = sqlite3.connect(DB_PATH, timeout=DB_TIMEOUT_SECONDS, isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction():
    """
    Opens a write transaction. Everything done through the yielded connection
    is committed together, or rolled back if the block raises.
    """
    conn = _open_connection()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.execute("COMMIT")
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


@contextmanager
def reading(conn: Optional[sqlite3.Connection] = None):
    if conn is not None:
        yield conn
        return
    own = _open_connection()
    try:
        yield own
    finally:
        own.close()


@contextmanager
def writing(conn: Optional[sqlite3.Connection] = None):
    if conn is not None:
        yield conn
        return
    with transaction() as own:
        yield own


def init_db():
    """
    Creates the garage tables if they do not exist yet.
    """
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    with transaction() as conn:
        for statement in SCHEMA:
            conn.execute(statement)
    logger.info(f"Database ready at {DB_PATH}")


# --- Single-row primitives ---


def load_json_from_db(table_name: str, conn: Optional[sqlite3.Connection] = None) -> List[Dict]:
    """
    Loads ALL rows from a table.
    """
    with reading(conn) as c:
        cursor = c.execute(f'SELECT * FROM "{table_name}"')
        return [decode_row(row) for row in cursor.fetchall()]


def find_json_in_db(table_name: str, filters: Dict, conn: Optional[sqlite3.Connection] = None) -> List[Dict]:
    """
    Loads the rows matching every column=value pair in filters.
    """
    where_sql = " AND ".join(f'"{col}" = ?' for col in filters)
    values = tuple(encode_value(v) for v in filters.values())
    with reading(conn) as c:
        cursor = c.execute(f'SELECT * FROM "{table_name}" WHERE {where_sql}', values)
        return [decode_row(row) for row in cursor.fetchall()]


def load_single_json_from_db(
    table_name: str, key_col: str, key_val, conn: Optional[sqlite3.Connection] = None
) -> Optional[Dict]:
    """
    Loads a single row using a WHERE clause.
    """
    rows = find_json_in_db(table_name, {key_col: key_val}, conn)
    return rows[0] if rows else None


def insert_single_json_to_db(table_name: str, item: Dict, conn: Optional[sqlite3.Connection] = None):
    """
    Inserts a single dictionary/row into the table.
    """
    insert_columns = list(item.keys())
    values_to_insert = tuple(encode_value(v) for v in item.values())

    column_names_sql = ", ".join([f'"{col}"' for col in insert_columns])
    placeholders_sql = ", ".join(["?"] * len(insert_columns))
    sql_insert = f'INSERT INTO "{table_name}" ({column_names_sql}) VALUES ({placeholders_sql})'

    with writing(conn) as c:
        c.execute(sql_insert, values_to_insert)


def update_single_json_in_db(
    table_name: str, key_col: str, key_val, update_item: Dict, conn: Optional[sqlite3.Connection] = None
):
    """
    Updates the given columns of a single existing row.
    """
    set_sql = ", ".join(f'"{col}" = ?' for col in update_item)
    values_to_update = [encode_value(v) for v in update_item.values()]
    values_to_update.append(encode_value(key_val))
    sql_update = f'UPDATE "{table_name}" SET {set_sql} WHERE "{key_col}" = ?'

    with writing(conn) as c:
        cursor = c.execute(sql_update, tuple(values_to_update))
        if cursor.rowcount == 0:
            raise ValueError(f"No row found with {key_col}={key_val} to update.")


# --- Vehicles ---


def get_vehicle_by_plate(license_plate: str, conn: Optional[sqlite3.Connection] = None) -> Optional[Dict]:
    return load_single_json_from_db("vehicles", "license_plate", license_plate, conn)


def upsert_vehicle(license_plate: str, conn: Optional[sqlite3.Connection] = None) -> Dict:
    """
    Creates the vehicle if the plate is new, then returns the stored row.
    A single statement, so two first entries for one plate cannot both insert.
    """
    with writing(conn) as c:
        c.execute(
            "INSERT INTO vehicles (license_plate, created_at) VALUES (?, ?) ON CONFLICT (license_plate) DO NOTHING",
            (license_plate, datetime.now().isoformat()),
        )
        return get_vehicle_by_plate(license_plate, c)


# --- Sectors ---


def load_sector_data_from_db(conn: Optional[sqlite3.Connection] = None) -> List[Dict]:
    return load_json_from_db("sectors", conn)


def get_sector_by_code(code: str, conn: Optional[sqlite3.Connection] = None) -> Optional[Dict]:
    return load_single_json_from_db("sectors", "code", code, conn)


def save_new_sector_to_db(sector_data: Dict, conn: Optional[sqlite3.Connection] = None):
    insert_single_json_to_db("sectors", sector_data, conn)


# --- Spots ---


def get_spot_by_id(spot_id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[Dict]:
    return load_single_json_from_db("spots", "id", spot_id, conn)


def get_spot_by_location(lat: float, lng: float, conn: Optional[sqlite3.Connection] = None) -> Optional[Dict]:
    rows = find_json_in_db("spots", {"lat": lat, "lng": lng}, conn)
    return rows[0] if rows else None


def save_new_spot_to_db(spot_data: Dict, conn: Optional[sqlite3.Connection] = None):
    insert_single_json_to_db("spots", spot_data, conn)


def set_spot_occupied(spot_id: int, occupied: bool, conn: Optional[sqlite3.Connection] = None):
    update_single_json_in_db("spots", "id", spot_id, {"occupied": occupied}, conn)


def count_occupied_spots(sector_code: str, conn: Optional[sqlite3.Connection] = None) -> int:
    with reading(conn) as c:
        row = c.execute(
            "SELECT COUNT(*) FROM spots WHERE sector_code = ? AND occupied = 1", (sector_code,)
        ).fetchone()
        return row[0]


def count_occupied_spots_by_sector(conn: Optional[sqlite3.Connection] = None) -> Dict[str, int]:
    with reading(conn) as c:
        cursor = c.execute("SELECT sector_code, COUNT(*) FROM spots WHERE occupied = 1 GROUP BY sector_code")
        return {row[0]: row[1] for row in cursor.fetchall()}


# --- Parking sessions ---


def get_active_session_by_vehicle(vehicle_id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[Dict]:
    rows = find_json_in_db("parking_sessions", {"vehicle_id": vehicle_id, "active": True}, conn)
    return rows[0] if rows else None


def get_active_session_by_spot(spot_id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[Dict]:
    rows = find_json_in_db("parking_sessions", {"spot_id": spot_id, "active": True}, conn)
    return rows[0] if rows else None


def get_sessions_by_vehicle(vehicle_id: int, conn: Optional[sqlite3.Connection] = None) -> List[Dict]:
    return find_json_in_db("parking_sessions", {"vehicle_id": vehicle_id}, conn)


def save_new_session_to_db(session_data: Dict, conn: Optional[sqlite3.Connection] = None):
    insert_single_json_to_db("parking_sessions", session_data, conn)


def update_existing_session_in_db(session_id: str, session_data: Dict, conn: Optional[sqlite3.Connection] = None):
    update_single_json_in_db("parking_sessions", "id", session_id, session_data, conn)


def close_active_session_in_db(session_id: str, session_data: Dict, conn: Optional[sqlite3.Connection] = None) -> bool:
    """
    Applies session_data only while the session is still active.
    Returns False when the session was already closed.
    """
    set_sql = ", ".join(f'"{col}" = ?' for col in session_data)
    values = [encode_value(v) for v in session_data.values()]
    values.append(session_id)

    with writing(conn) as c:
        cursor = c.execute(f'UPDATE parking_sessions SET {set_sql} WHERE id = ? AND active = 1', tuple(values))
        return cursor.rowcount == 1


# --- Parking events (append-only) ---


def save_new_event_to_db(event_data: Dict, conn: Optional[sqlite3.Connection] = None):
    insert_single_json_to_db("parking_events", event_data, conn)


def get_events_by_vehicle(vehicle_id: int, conn: Optional[sqlite3.Connection] = None) -> List[Dict]:
    with reading(conn) as c:
        cursor = c.execute(
            "SELECT * FROM parking_events WHERE vehicle_id = ? ORDER BY event_time, created_at", (vehicle_id,)
        )
        return [decode_row(row) for row in cursor.fetchall()]


# --- Revenue ---


def get_revenue_row(sector_code: str, revenue_date: date, conn: Optional[sqlite3.Connection] = None) -> Optional[Dict]:
    rows = find_json_in_db("revenues", {"sector_code": sector_code, "revenue_date": revenue_date}, conn)
    return rows[0] if rows else None


def get_revenue_rows_between(
    sector_code: str, start_date: date, end_date: date, conn: Optional[sqlite3.Connection] = None
) -> List[Dict]:
    with reading(conn) as c:
        cursor = c.execute(
            "SELECT * FROM revenues WHERE sector_code = ? AND revenue_date BETWEEN ? AND ? ORDER BY revenue_date",
            (sector_code, start_date.isoformat(), end_date.isoformat()),
        )
        return [decode_row(row) for row in cursor.fetchall()]


def save_new_revenue_to_db(revenue_data: Dict, conn: Optional[sqlite3.Connection] = None):
    insert_single_json_to_db("revenues", revenue_data, conn)


def update_revenue_amount_in_db(
    sector_code: str, revenue_date: date, amount: Decimal, conn: Optional[sqlite3.Connection] = None
):
    with writing(conn) as c:
        cursor = c.execute(
            "UPDATE revenues SET amount = ?, updated_at = ? WHERE sector_code = ? AND revenue_date = ?",
            (str(amount), datetime.now().isoformat(), sector_code, revenue_date.isoformat()),
        )
        if cursor.rowcount == 0:
            raise ValueError(f"No revenue row found for sector {sector_code} on {revenue_date} to update.")
