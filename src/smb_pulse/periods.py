# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB Pulse.

This module defines the Period value object (one calendar month) and the
codec used to move between the two string forms found in the system:

- canonical ``YYYY-MM``: sortable lexicographically, used as grouping key,
- display ``MM/YYYY``: the form supplied by the monthly source views.

It also provides the YearWindow snapshot (the contiguous span of years
analysed by one request) and helpers to build fixed month ranges such as
"current year Jan-Dec" or "last 12 months".
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

# Fixed month abbreviations, independent of the system locale.
MONTH_NAMES: dict[str, tuple[str, ...]] = {
    "pt": (
        "jan",
        "fev",
        "mar",
        "abr",
        "mai",
        "jun",
        "jul",
        "ago",
        "set",
        "out",
        "nov",
        "dez",
    ),
    "en": (
        "jan",
        "feb",
        "mar",
        "apr",
        "may",
        "jun",
        "jul",
        "aug",
        "sep",
        "oct",
        "nov",
        "dec",
    ),
}

_DISPLAY_RE = re.compile(r"^(\d{1,2})/(\d{4})$")
_CANONICAL_RE = re.compile(r"^(\d{4})-(\d{2})$")


class InvalidPeriodFormat(ValueError):
    """Raised when a period label does not describe a valid calendar month."""

    def __init__(self, label: object, reason: str = "expected MM/YYYY") -> None:
        self.label = label
        self.reason = reason
        super().__init__(f"Invalid period label {label!r}: {reason}.")


@dataclass(frozen=True, order=True)
class Period:
    """One calendar month, ordered by (year, month)."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidPeriodFormat(
                f"{self.month}/{self.year}", "month must be between 1 and 12"
            )
        if not 1 <= self.year <= 9999:
            raise InvalidPeriodFormat(
                f"{self.month}/{self.year}", "year must have four digits"
            )

    @property
    def canonical(self) -> str:
        return to_canonical(self)

    @property
    def display(self) -> str:
        return to_display(self)

    def shift(self, months: int) -> "Period":
        """Return the period ``months`` months after (or before) this one."""
        index = self.year * 12 + (self.month - 1) + months
        return Period(year=index // 12, month=index % 12 + 1)


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def parse_display(label: str) -> Period:
    """
    Parse a display label (``MM/YYYY``) into a Period.

    Surrounding whitespace is ignored and a single-digit month ("7/2025")
    is accepted. Anything else is rejected.

    Raises:
        InvalidPeriodFormat: if the separator, the number of parts or the
            numeric parts are wrong, or if the month is outside 1..12.
    """
    if not isinstance(label, str):
        raise InvalidPeriodFormat(label, "label must be a string")

    match = _DISPLAY_RE.match(label.strip())
    if match is None:
        raise InvalidPeriodFormat(label)

    month = int(match.group(1))
    year = int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidPeriodFormat(label, "month must be between 1 and 12")

    return Period(year=year, month=month)


def parse_canonical(text: str) -> Period:
    """Parse a canonical ``YYYY-MM`` string into a Period."""
    if not isinstance(text, str):
        raise InvalidPeriodFormat(text, "expected YYYY-MM")

    match = _CANONICAL_RE.match(text.strip())
    if match is None:
        raise InvalidPeriodFormat(text, "expected YYYY-MM")

    month = int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidPeriodFormat(text, "month must be between 1 and 12")

    return Period(year=int(match.group(1)), month=month)


def to_canonical(period: Period) -> str:
    return f"{period.year:04d}-{period.month:02d}"


def to_display(period: Period) -> str:
    return f"{period.month:02d}/{period.year:04d}"


def month_name(
    period_or_month: Union[Period, int],
    locale: str = "pt",
    capitalize: bool = False,
) -> str:
    """
    Return the short month name for a Period or a month number (1..12).

    Only the fixed tables in MONTH_NAMES are used; an unknown locale raises
    ValueError.
    """
    try:
        names = MONTH_NAMES[locale]
    except KeyError as exc:
        raise ValueError(f"Unsupported locale for month names: {locale!r}") from exc

    month = (
        period_or_month.month
        if isinstance(period_or_month, Period)
        else int(period_or_month)
    )
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}.")

    name = names[month - 1]
    return name.capitalize() if capitalize else name


def format_period_label(period: Period, locale: str = "pt") -> str:
    """Chart label for a month, e.g. ``"Fev 2025"``."""
    return f"{month_name(period, locale, capitalize=True)} {period.year}"


def months_of_year(year: int, until_month: int = 12) -> list[Period]:
    """Periods from January to ``until_month`` (inclusive) of ``year``."""
    if not 1 <= until_month <= 12:
        raise ValueError(f"until_month must be between 1 and 12, got {until_month}.")
    return [Period(year=year, month=m) for m in range(1, until_month + 1)]


def last_n_months(n: int, today: Optional[date] = None) -> list[Period]:
    """
    The ``n`` most recent months ending with the current month, oldest first.

    For n=12 in March 2025 this returns 04/2024 .. 03/2025.
    """
    if n < 1:
        raise ValueError("last_n_months requires n >= 1.")
    ref = today or _today()
    current = Period(year=ref.year, month=ref.month)
    return [current.shift(-offset) for offset in range(n - 1, -1, -1)]


@dataclass(frozen=True)
class YearWindow:
    """
    Contiguous span of calendar years analysed by one request.

    The window carries the ``today`` snapshot it was built from, so every
    computation of a request (YTD cutoff, forecast boundary) agrees on the
    same "now".
    """

    start_year: int
    end_year: int
    today: date = field(compare=False)

    def __post_init__(self) -> None:
        if self.end_year < self.start_year:
            raise ValueError("YearWindow end_year cannot be before start_year.")

    @classmethod
    def ending_today(
        cls, years_back: int = 2, today: Optional[date] = None
    ) -> "YearWindow":
        """Window from ``current year - years_back`` to the current year."""
        if years_back < 0:
            raise ValueError("years_back cannot be negative.")
        ref = today or _today()
        return cls(start_year=ref.year - years_back, end_year=ref.year, today=ref)

    @property
    def years(self) -> tuple[int, ...]:
        return tuple(range(self.start_year, self.end_year + 1))

    @property
    def current_year(self) -> int:
        return self.end_year

    @property
    def previous_year(self) -> int:
        return self.end_year - 1

    @property
    def current_month(self) -> int:
        """Month of the snapshot when it falls in the window, else December."""
        if self.today.year == self.end_year:
            return self.today.month
        return 12

    def __contains__(self, year: object) -> bool:
        return isinstance(year, int) and self.start_year <= year <= self.end_year
