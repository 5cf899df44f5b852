"""Time slot value type for a booking: a calendar date plus a half-open time range."""

import re
from dataclasses import dataclass
from datetime import date, datetime, time

from app.errors import ValidationError

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_time_of_day(value: str) -> int:
    """Parse an ``HH:MM`` string into minutes since midnight.

    A single-digit hour (``9:05``) is accepted.
    """
    match = TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(
            f"Invalid time format '{value}' (expected HH:MM)", code="INVALID_TIME_FORMAT"
        )
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time_of_day(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class TimeSlot:
    """A booking slot ``[start, end)`` on one date.

    Times are stored as minutes since midnight. Immutable so it can be used
    as a dict key or set element.
    """

    date: date
    start: int
    end: int

    def __post_init__(self):
        if not (0 <= self.start < 24 * 60 and 0 < self.end <= 24 * 60):
            raise ValidationError("Time of day out of range")
        if self.start >= self.end:
            raise ValidationError(
                "End time must be after start time", code="INVALID_TIME_RANGE"
            )

    @classmethod
    def parse(cls, day: date, start_time: str, end_time: str) -> "TimeSlot":
        return cls(day, parse_time_of_day(start_time), parse_time_of_day(end_time))

    @property
    def start_time(self) -> str:
        return format_time_of_day(self.start)

    @property
    def end_time(self) -> str:
        return format_time_of_day(self.end)

    @property
    def start_hour(self) -> int:
        return self.start // 60

    @property
    def end_hour(self) -> int:
        return self.end // 60

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, time(self.start_hour, self.start % 60))

    def overlaps(self, other: "TimeSlot") -> bool:
        # half-open: back-to-back slots do not overlap
        return self.date == other.date and self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {self.start_time}-{self.end_time}"
