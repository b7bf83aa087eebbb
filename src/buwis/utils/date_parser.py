"""Timestamp parsing and quarter period utilities."""

from datetime import date, datetime, time, timezone
from typing import Optional, Union

from dateutil import parser as date_parser

from buwis.domain.entities import QuarterPeriod
from buwis.domain.errors import ValidationError, invalid_year

MIN_YEAR = 1800
MAX_YEAR = 3000

_QUARTER_MONTHS = {
    QuarterPeriod.Q1: (1, 3, 31),
    QuarterPeriod.Q2: (4, 6, 30),
    QuarterPeriod.Q3: (7, 9, 30),
    QuarterPeriod.Q4: (10, 12, 31),
}


def parse_timestamp(value: Union[str, datetime, date]) -> datetime:
    """Parse an ISO 8601 timestamp into an aware datetime.

    Naive values are taken to be UTC. Plain dates become midnight UTC.

    Raises:
        ValidationError: If the value is empty or cannot be parsed
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    else:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("Timestamp must be a valid non-empty ISO string.")
        try:
            dt = date_parser.isoparse(value.strip())
        except (ValueError, OverflowError) as e:
            raise ValidationError(f"Invalid ISO date string: '{value}'") from e

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as ISO 8601 with millisecond precision in UTC."""
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def validate_year(year: object) -> int:
    """Return ``year`` if it is an integer in the supported range.

    Raises:
        ValidationError: If the year is not an int within 1800..3000
    """
    if isinstance(year, bool) or not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(invalid_year(year))
    return year


def parse_quarter(value: Union[str, QuarterPeriod]) -> QuarterPeriod:
    """Parse 'Q1'..'Q4' (case-insensitive) into a QuarterPeriod.

    Raises:
        ValidationError: If the value names no quarter
    """
    if isinstance(value, QuarterPeriod):
        return value
    try:
        return QuarterPeriod(str(value).strip().upper())
    except ValueError as e:
        raise ValidationError(f"Invalid quarter value: {value}") from e


def quarter_range(quarter: QuarterPeriod, year: Optional[int] = None) -> tuple[datetime, datetime]:
    """Return inclusive UTC start and end instants of a quarter.

    Args:
        quarter: Quarter period
        year: Calendar year (defaults to the current year)

    Returns:
        Tuple of (start, end); end is the last millisecond of the quarter
    """
    target_year = validate_year(current_year() if year is None else year)
    first_month, last_month, last_day = _QUARTER_MONTHS[parse_quarter(quarter)]
    start = datetime(target_year, first_month, 1, tzinfo=timezone.utc)
    end = datetime(
        target_year, last_month, last_day, 23, 59, 59, 999000, tzinfo=timezone.utc
    )
    return (start, end)


def quarter_from_date(value: Optional[Union[str, datetime, date]] = None) -> QuarterPeriod:
    """Return the quarter containing ``value`` (defaults to now)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        month = datetime.now(timezone.utc).month
    else:
        month = parse_timestamp(value).astimezone(timezone.utc).month
    return QuarterPeriod(f"Q{(month - 1) // 3 + 1}")


def current_year() -> int:
    return datetime.now(timezone.utc).year
