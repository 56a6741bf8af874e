import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from utils.errors import PricingError

CENTS = Decimal("0.01")

# (lower bound of the occupancy tier, multiplier applied to the base price)
PRICE_TIERS = [
    (0.75, Decimal("1.25")),
    (0.50, Decimal("1.10")),
    (0.25, Decimal("1.00")),
    (0.0, Decimal("0.90")),
]


def price_factor(occupancy_ratio: float) -> Decimal:
    """
    Maps the occupancy ratio of a sector to a price multiplier.
    Each tier includes its lower bound: 0.25 -> 1.00, 0.50 -> 1.10, 0.75 -> 1.25.
    """
    for lower_bound, factor in PRICE_TIERS:
        if occupancy_ratio >= lower_bound:
            return factor
    return PRICE_TIERS[-1][1]


def billable_hours(entry_time: datetime, exit_time: datetime) -> int:
    # Whole elapsed minutes, then any started hour counts as a full one
    duration_minutes = int((exit_time - entry_time).total_seconds() // 60)
    return math.ceil(duration_minutes / 60)


def settle(
    entry_time: datetime,
    exit_time: Optional[datetime],
    base_price: Decimal,
    applied_price_factor: Optional[Decimal],
) -> Decimal:
    """
    Amount due for a stay: base_price * hours * applied_price_factor.
    A session without an exit time is worth nothing yet.
    """
    if exit_time is None:
        return Decimal("0")
    if applied_price_factor is None:
        raise PricingError("Cannot settle a session that was never parked: no price factor was applied")

    hours = billable_hours(entry_time, exit_time)
    amount = Decimal(base_price) * hours * Decimal(applied_price_factor)
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
