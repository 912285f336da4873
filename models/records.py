"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional

TIMESTAMP_DATE_FORMAT = "%d/%m/%Y"
TIMESTAMP_TIME_FORMAT = "%H:%M:%S"


@dataclass(frozen=True, slots=True)
class Reading:
    """A single sanitized sensor sample as delivered by one poll."""

    sensor_name: str
    timestamp: str
    metrics: Dict[str, float] = field(default_factory=dict)

    @property
    def date_prefix(self) -> str:
        """Literal text before the comma of ``DD/MM/YYYY, HH:MM:SS``."""
        head, _, _ = self.timestamp.partition(",")
        return head.strip()

    @property
    def captured_at(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)


@dataclass(frozen=True, slots=True)
class DerivedPoint:
    """Plot-ready projection of a reading for one render pass."""

    metrics: Dict[str, float]
    sensor_label: str
    time_label: str


@dataclass(frozen=True, slots=True)
class FilterState:
    selected_date: Optional[date] = None
    show_all: bool = False


@dataclass(frozen=True, slots=True)
class Statistics:
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0


def format_date(value: date) -> str:
    return value.strftime(TIMESTAMP_DATE_FORMAT)


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse ``DD/MM/YYYY, HH:MM:SS``; return ``None`` when malformed."""
    if not value:
        return None
    day_part, sep, time_part = value.partition(",")
    if not sep:
        return None
    candidate = f"{day_part.strip()} {time_part.strip()}"
    try:
        return datetime.strptime(
            candidate, f"{TIMESTAMP_DATE_FORMAT} {TIMESTAMP_TIME_FORMAT}"
        )
    except ValueError:
        return None


def time_label(value: str) -> str:
    """Short ``HH:MM`` label used on chart axes and tooltips."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return value or "--:--"
    return parsed.strftime("%H:%M")
