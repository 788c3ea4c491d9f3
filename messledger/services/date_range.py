"""Inclusive calendar-day ranges used to scope ledger queries."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from messledger.errors import ValidationError
from messledger.services.parsers import parse_date


@dataclass(frozen=True)
class DateRange:
    """Inclusive [start, end] range of billing days.

    Either bound may be None, meaning open-ended on that side.
    A range with both bounds None covers all history.
    """

    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self):
        if self.start and self.end and self.start > self.end:
            raise ValidationError(f"Date range start {self.start} is after end {self.end}")

    @classmethod
    def from_strings(cls, start: Optional[str] = None, end: Optional[str] = None) -> Optional["DateRange"]:
        """Build a range from YYYY-MM-DD strings; returns None when both are empty.

        Raises:
            ValidationError: If a bound is malformed or start is after end
        """
        try:
            start_date = parse_date(start)
            end_date = parse_date(end)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if start_date is None and end_date is None:
            return None
        return cls(start=start_date, end=end_date)

    def contains(self, day: date) -> bool:
        if self.start and day < self.start:
            return False
        if self.end and day > self.end:
            return False
        return True

    def __str__(self) -> str:
        return f"{self.start or '...'} to {self.end or '...'}"


def resolve_entry_date(value, today: date, allow_future: bool = False) -> date:
    """Parse and vet the billing day of a new charge or payment.

    Missing means today. Back-dated entries are accepted (late entry is
    routine); entries after today are refused unless allow_future is set.

    Raises:
        ValidationError: If the date is malformed or in the future
    """
    try:
        day = parse_date(value)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if day is None:
        return today
    if not allow_future and day > today:
        raise ValidationError(f"Date {day} is in the future")
    return day


__all__ = ["DateRange", "resolve_entry_date"]
