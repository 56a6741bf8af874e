import logging
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from services import occupancy_services
from utils import config, storage_utils
from utils.errors import ValidationError
from utils.key_locks import KeyedLock

logger = logging.getLogger(__name__)

revenue_locks = KeyedLock("revenue")


def add_revenue(
    sector_code: str, amount: Decimal, revenue_date: date, conn: Optional[sqlite3.Connection] = None
) -> Decimal:
    """
    Adds a settled amount to the (sector, date) total and returns the new total.
    The row is created with a zero amount on the first settlement of the day.
    When conn is given the change joins the caller's transaction.
    """
    logger.info(f"Recording revenue for sector: {sector_code}, amount: {amount}, date: {revenue_date}")

    with storage_utils.writing(conn) as c:
        with revenue_locks.hold((sector_code, revenue_date)):
            revenue = storage_utils.get_revenue_row(sector_code, revenue_date, c)
            if revenue is None:
                revenue = {
                    "sector_code": sector_code,
                    "revenue_date": revenue_date,
                    "amount": Decimal("0"),
                    "currency": config.REVENUE_CURRENCY,
                    "updated_at": datetime.now(),
                }
                storage_utils.save_new_revenue_to_db(revenue, c)

            total = revenue["amount"] + Decimal(amount)
            storage_utils.update_revenue_amount_in_db(sector_code, revenue_date, total, c)

    return total


def get_revenue(sector_code: str, revenue_date: date) -> Dict:
    logger.info(f"Getting revenue for sector: {sector_code}, date: {revenue_date}")

    occupancy_services.get_sector(sector_code)
    revenue = storage_utils.get_revenue_row(sector_code, revenue_date)
    if revenue is None:
        return {"amount": Decimal("0"), "currency": config.REVENUE_CURRENCY}
    return {"amount": revenue["amount"], "currency": revenue["currency"]}


def get_revenue_for_date_range(sector_code: str, start_date: date, end_date: date) -> List[Dict]:
    logger.info(f"Getting revenue for sector: {sector_code}, date range: {start_date} to {end_date}")

    if start_date > end_date:
        raise ValidationError(f"Start date {start_date} is after end date {end_date}")

    occupancy_services.get_sector(sector_code)
    return [
        {
            "date": row["revenue_date"],
            "amount": row["amount"],
            "currency": row["currency"],
        }
        for row in storage_utils.get_revenue_rows_between(sector_code, start_date, end_date)
    ]
