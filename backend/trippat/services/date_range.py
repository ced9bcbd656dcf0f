"""Calendar date arithmetic for package stays.

Dates are handled as plain ``datetime.date`` values built from their
year/month/day components. Nothing here goes through ``datetime`` or a
timezone, so the resolved check-out never depends on the host offset.
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


@dataclass(frozen=True, slots=True)
class DateRange:
    """Check-in and check-out calendar dates; either may be unset."""

    check_in: datetime.date | None = None
    check_out: datetime.date | None = None

    @property
    def is_complete(self) -> bool:
        return self.check_in is not None and self.check_out is not None

    @property
    def nights(self) -> int:
        if not self.is_complete:
            return 0
        return (self.check_out - self.check_in).days  # type: ignore[operator]

    def validate(self) -> None:
        """Raise ``ValueError`` unless both dates are set and ordered."""
        if not self.is_complete:
            raise ValueError("Check-in and check-out dates are required")
        if self.check_out <= self.check_in:  # type: ignore[operator]
            raise ValueError("Check-out date must be after check-in date")


def parse_calendar_date(value: datetime.date | str) -> datetime.date:
    """Return a date built from the year/month/day components of ``value``."""
    if isinstance(value, datetime.datetime):
        return datetime.date(value.year, value.month, value.day)
    if isinstance(value, datetime.date):
        return value
    match = _ISO_DATE.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid calendar date: {value!r}")
    year, month, day = (int(part) for part in match.groups())
    return datetime.date(year, month, day)


def resolve_checkout(check_in: datetime.date | str, nights: int) -> datetime.date:
    """Return the check-out date for a stay of ``nights`` starting on ``check_in``.

    The package duration counts the arrival day, so a three night package
    starting 2024-02-28 ends on 2024-03-01. ``nights`` below one is rejected.
    """
    if nights < 1:
        raise ValueError("Package duration must be at least one night")
    start = parse_calendar_date(check_in)
    resolved = start + datetime.timedelta(days=nights - 1)
    return datetime.date(resolved.year, resolved.month, resolved.day)


def resolve_date_range(check_in: datetime.date | str, nights: int) -> DateRange:
    start = parse_calendar_date(check_in)
    return DateRange(check_in=start, check_out=resolve_checkout(start, nights))


def nights_between(check_in: datetime.date, check_out: datetime.date) -> int:
    """Calendar nights between two dates, never below one."""
    return max(1, (check_out - check_in).days)


def hotel_stay_dates(
    package_start: datetime.date, check_in_day: int, nights: int
) -> DateRange:
    """Stay dates of a hotel component that starts on day ``check_in_day``."""
    offset = max(check_in_day, 1) - 1
    check_in = package_start + datetime.timedelta(days=offset)
    check_out = check_in + datetime.timedelta(days=max(nights, 1))
    return DateRange(check_in=check_in, check_out=check_out)
