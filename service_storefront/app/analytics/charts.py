"""
Monthly chart bucketing and percentage helpers for the admin dashboard.
"""

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from ..models import Number


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(repr(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_percentage(this_month: Number, last_month: Number) -> Number:
    """Month-over-month percentage.

    A zero previous month yields ``this_month * 100`` instead of dividing by
    zero, so 50 against 0 reports 5000 and 0 against 0 reports 0.
    """
    if last_month == 0:
        return this_month * 100
    return round_half_up(this_month / last_month * 100)


def get_chart_data(
    length: int,
    docs: Iterable[Mapping[str, Any]],
    today: datetime,
    field: Optional[str] = None,
) -> List[Number]:
    """Bucket documents into ``length`` monthly cells, oldest first.

    The last cell is the month of ``today``. Without ``field`` each document
    counts once; with it the document's value for that field is summed, a
    missing value counting as 0. Only the calendar month is compared, so the
    caller must restrict ``docs`` to the window it wants charted.
    """
    data: List[Number] = [0] * length

    for doc in docs:
        created_at = doc["created_at"]
        month_diff = (today.month - created_at.month + 12) % 12

        if month_diff < length:
            data[length - month_diff - 1] += (doc.get(field) or 0) if field else 1

    return data


def shift_months(moment: datetime, months: int) -> datetime:
    """Move ``moment`` by whole calendar months, clamping the day to the target month."""
    month_index = moment.year * 12 + moment.month - 1 + months
    year, month = divmod(month_index, 12)
    month += 1
    next_month = datetime(year + month // 12, month % 12 + 1, 1, tzinfo=moment.tzinfo)
    last_day = (next_month - timedelta(days=1)).day
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def this_month_range(today: datetime) -> Tuple[datetime, datetime]:
    return month_start(today), today


def last_month_range(today: datetime) -> Tuple[datetime, datetime]:
    """First instant of the previous month to the last instant before this month."""
    start_of_this_month = month_start(today)
    return shift_months(start_of_this_month, -1), start_of_this_month - timedelta(microseconds=1)


def window_filter(start: datetime, end: datetime) -> dict:
    return {"created_at": {"$gte": start, "$lte": end}}
