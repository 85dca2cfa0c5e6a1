"""
Subscription term arithmetic.

Pure functions: the result depends only on the arguments, never on the clock.
Callers that need "today" pass it in as `as_of`.

Calendar steps use relativedelta, which clamps to the last valid day of the
target month (Jan 31 + 1 month -> Feb 28/29, Feb 29 + 1 year -> Feb 28).
"""

import enum
from datetime import date, timedelta
from typing import Union

from dateutil.relativedelta import relativedelta

from app.core.exceptions import InvalidStartDate


class Cadence(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    LIFETIME = "lifetime"


class Unbounded:
    """
    Expiry of a lifetime term.

    Not a date and not orderable against one: `UNBOUNDED < some_date` raises
    TypeError instead of silently comparing.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNBOUNDED"

    def __eq__(self, other) -> bool:
        return other is self

    def __hash__(self) -> int:
        return hash(Unbounded)

    def __bool__(self) -> bool:
        return True

    def __lt__(self, other):
        return NotImplemented

    __le__ = __gt__ = __ge__ = __lt__


UNBOUNDED = Unbounded()

Expiry = Union[date, Unbounded]

_STEPS = {
    Cadence.DAILY: timedelta(days=1),
    Cadence.WEEKLY: timedelta(days=7),
    Cadence.MONTHLY: relativedelta(months=1),
    Cadence.YEARLY: relativedelta(years=1),
}


def term_end(start_date: date, cadence) -> Expiry:
    """Expiry for a term starting on `start_date`, with no start-date validation."""
    cadence = Cadence(cadence)
    if cadence is Cadence.LIFETIME:
        return UNBOUNDED
    return start_date + _STEPS[cadence]


def compute_expiry(
    start_date: date,
    cadence,
    *,
    as_of: date,
    backdated: bool = False,
) -> Expiry:
    """
    Validate the start date against `as_of` and return the term's expiry.

    Raises InvalidStartDate when `start_date` is earlier than `as_of`, unless
    the subscription is explicitly marked as backdated.
    """
    if start_date < as_of and not backdated:
        raise InvalidStartDate(start_date, as_of)
    return term_end(start_date, cadence)


def is_unbounded(expiry: Expiry) -> bool:
    return expiry is UNBOUNDED


def is_active_on(start_date: date, expiry: Expiry, day: date) -> bool:
    """A term covers `day` when start <= day < expiry (no upper bound for lifetime)."""
    if day < start_date:
        return False
    if is_unbounded(expiry):
        return True
    return day < expiry
