"""Date filtering, ordering and list pagination for readings."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Sequence, TypeVar

from models.records import Reading, format_date

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 3


def _sort_key(reading: Reading) -> datetime:
    # Malformed timestamps compare as the smallest value, so they land last.
    return reading.captured_at or datetime.min


def sort_newest_first(readings: Sequence[Reading]) -> List[Reading]:
    return sorted(readings, key=_sort_key, reverse=True)


def filter_readings(
    readings: Sequence[Reading],
    selected_date: Optional[date] = None,
) -> List[Reading]:
    """Narrow ``readings`` to ``selected_date`` (if any), newest first.

    A selected date matches on the literal ``DD/MM/YYYY`` prefix of the
    timestamp. Readings whose timestamp cannot be parsed never match a date.
    A date without matches yields an empty list.
    """
    if selected_date is None:
        return sort_newest_first(readings)

    wanted = format_date(selected_date)
    matches = [
        reading
        for reading in readings
        if reading.date_prefix == wanted and reading.captured_at is not None
    ]
    return sort_newest_first(matches)


def visible(
    filtered: Sequence[T],
    show_all: bool,
    limit: int = DEFAULT_PAGE_SIZE,
) -> List[T]:
    if show_all:
        return list(filtered)
    return list(filtered[:limit])
