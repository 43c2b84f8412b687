"""
Late fee calculation.

Pure functions, no database access. A fee depends only on the due date, the
reference date (return date or "now") and the account's ``LibraryPolicy``:

    days_overdue = ceil((reference - due) / 1 day)
    chargeable   = max(0, days_overdue - grace_period_days)
    fee          = chargeable * daily_late_fee_rate, capped at max_late_fee_cap

A cap of 0 means the fee is not capped. Fees round half up to the cent.
"""

import math
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from ..models.settings import LibraryPolicy

_ONE_DAY = timedelta(days=1)
_CENT = Decimal("0.01")


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, datetime.min.time())


def days_overdue(due_date: date | datetime, reference_date: date | datetime) -> int:
    """Whole days past due, rounding partial days up. Zero when not overdue."""
    elapsed = _as_datetime(reference_date) - _as_datetime(due_date)
    if elapsed <= timedelta(0):
        return 0
    return math.ceil(elapsed / _ONE_DAY)


def days_until_due(due_date: date | datetime, reference_date: date | datetime) -> int:
    """Whole days left before the due date; negative once overdue."""
    remaining = _as_datetime(due_date) - _as_datetime(reference_date)
    return math.ceil(remaining / _ONE_DAY)


def is_overdue(due_date: date | datetime, reference_date: date | datetime) -> bool:
    return _as_datetime(reference_date) > _as_datetime(due_date)


def calculate_late_fee(
    due_date: date | datetime,
    reference_date: date | datetime,
    policy: LibraryPolicy,
) -> float:
    """
    Late fee owed for a loan due at ``due_date`` when settled at ``reference_date``.

    Args:
        due_date: When the loan was due
        reference_date: Return date, or the current time for a preview
        policy: Rate, grace period and cap to apply

    Returns:
        Fee rounded to cents, never negative
    """
    overdue = days_overdue(due_date, reference_date)
    if overdue <= 0:
        return 0.0

    chargeable = max(0, overdue - policy.grace_period_days)
    if chargeable == 0:
        return 0.0

    fee = chargeable * Decimal(str(policy.daily_late_fee_rate))
    if policy.max_late_fee_cap > 0:
        fee = min(fee, Decimal(str(policy.max_late_fee_cap)))

    return float(fee.quantize(_CENT, rounding=ROUND_HALF_UP))


def format_late_fee(amount: float) -> str:
    """Render a fee for display, e.g. ``$4.50``."""
    return f"${amount:.2f}"
