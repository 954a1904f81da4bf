from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30
_ONE_DAY = timedelta(days=1)
_CENT = Decimal("0.01")


def _to_datetime(value: date | datetime | str) -> datetime:
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return _naive_utc(datetime.fromisoformat(str(value).strip()))


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _to_amount(value) -> Decimal | None:
    if value is None:
        return None
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    return amount if amount != 0 else None


def days_between(start: date | datetime | str, end: date | datetime | str) -> int:
    """Whole days covered by a rental window.

    Rounds any partial day up and ignores ordering, so a reversed range still
    yields a positive count; callers that care about ordering check it
    themselves. A start equal to the end gives ``0``.
    """
    delta = abs(_to_datetime(end) - _to_datetime(start))
    return math.ceil(delta / _ONE_DAY)


def compute_cost(daily_rate, weekly_rate, monthly_rate, days: int) -> Decimal:
    """Total price for ``days`` of rental under the listing's tiered rates.

    The monthly tier is tried first, then the weekly tier, then plain daily
    pricing. Days left over after whole months or weeks are charged at the
    daily rate. A rate of ``None`` or zero counts as not offered.
    """
    daily = _to_amount(daily_rate)
    if daily is None or daily <= 0:
        raise ValueError("daily_rate must be greater than zero.")
    if int(days) != days or days < 1:
        raise ValueError("days must be a positive whole number.")
    days = int(days)

    weekly = _to_amount(weekly_rate)
    monthly = _to_amount(monthly_rate)

    if monthly is not None and days >= DAYS_PER_MONTH:
        months, remaining = divmod(days, DAYS_PER_MONTH)
        total = months * monthly + remaining * daily
    elif weekly is not None and days >= DAYS_PER_WEEK:
        weeks, remaining = divmod(days, DAYS_PER_WEEK)
        total = weeks * weekly + remaining * daily
    else:
        total = days * daily
    return total.quantize(_CENT, rounding=ROUND_HALF_UP)
