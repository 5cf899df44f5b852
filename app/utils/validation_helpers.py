import re
from app.models.timeslot import TIME_PATTERN, format_time_of_day, parse_time_of_day

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_time_of_day(value):
    """Normalise an ``HH:MM`` string to its zero-padded form."""
    if value is None:
        return value
    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        raise ValueError("Invalid time format (expected HH:MM)")
    return format_time_of_day(parse_time_of_day(value))


def validate_email(value):
    if value is None:
        return value
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email format")
    return value
