"""Billing period and date helper functions."""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timezone
from typing import NamedTuple

from dateutil.relativedelta import relativedelta

from roomledger.core.errors import ValidationError

MIN_PERIOD_YEAR = 2000


class Period(NamedTuple):
    """A (month, year) billing cycle."""

    month: int
    year: int

    @classmethod
    def of(cls, month: int, year: int, min_year: int = MIN_PERIOD_YEAR) -> Period:
        """Builds a period, rejecting out-of-range values."""
        if not isinstance(month, int) or not isinstance(year, int):
            raise ValidationError("Period month and year must be integers.")
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid period month: {month}.")
        if year < min_year:
            raise ValidationError(f"Invalid period year: {year}.")
        return cls(month, year)

    @classmethod
    def from_date(cls, value: date) -> Period:
        return cls(value.month, value.year)

    @classmethod
    def parse(cls, value: str) -> Period:
        """Parses a ``YYYY-MM`` string."""
        try:
            parsed = datetime.strptime(value, "%Y-%m")
        except ValueError as e:
            raise ValidationError(f"Invalid period '{value}'.") from e
        return cls.of(parsed.month, parsed.year)

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last_day)

    def shift(self, months: int) -> Period:
        return Period.from_date(self.start + relativedelta(months=months))

    def previous(self) -> Period:
        return self.shift(-1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def period_range(period: Period) -> tuple[date, date]:
    """Inclusive first and last calendar day of a period."""
    return period.start, period.end


def default_due_date(period: Period, due_day: int = 10) -> datetime:
    """End of ``due_day`` in the month following the billing period."""
    following = period.shift(1)
    last_day = calendar.monthrange(following.year, following.month)[1]
    day = min(max(due_day, 1), last_day)
    return datetime.combine(
        date(following.year, following.month, day), time.max, tzinfo=timezone.utc
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_period_for_display(period: Period) -> str:
    """Formats a period as ``MM/YYYY``."""
    return f"{period.month:02d}/{period.year}"
