# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Breakdowns by a secondary dimension (department, person, supplier, client).

``by_dimension()`` aggregates records by dimension value and reports, for
each value, the current-year-to-date and prior-year-to-date totals using
the same boundary-month rule as the comparative tables.

Records without a dimension are grouped under a fixed sentinel label
rather than dropped, so that the sum of all buckets equals the period
total.

``split_by_source()`` compares whole record sets instead (e.g. operational
purchases against other purchases), one entry per labelled set.
"""

from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .periods import InvalidPeriodFormat
from .records import FinancialRecord

UNASSIGNED = "Unassigned"


@dataclass(frozen=True)
class DimensionBreakdown:
    """Current and previous year-to-date values for one dimension value."""

    dimension_value: str
    current_year: Decimal
    previous_year: Decimal

    @property
    def delta(self) -> Decimal:
        return self.current_year - self.previous_year


def _dimension_of(record: FinancialRecord, unassigned_label: str) -> str:
    key = record.dimension_key
    if key is None or not key.strip():
        return unassigned_label
    return key


def by_dimension(
    records: Iterable[FinancialRecord],
    years: Sequence[int],
    boundary_month: int = 12,
    *,
    field: str = "amount",
    unassigned_label: str = UNASSIGNED,
    allowed: Optional[Collection[str]] = None,
) -> list[DimensionBreakdown]:
    """
    Aggregate records by dimension for the current and previous year.

    Args:
        records: Records to aggregate.
        years: Years of the window; the current year is ``max(years)`` and
            the previous year is the one before it.
        boundary_month: Only months 1..boundary_month count, for both years.
        field: Numeric field to sum (``amount`` or ``transaction_count``
            for count breakdowns).
        unassigned_label: Label used for records without a dimension.
        allowed: Optional set of dimension values to keep in the output.

    Returns:
        One DimensionBreakdown per dimension value seen in the current or
        previous year, sorted by current-year value (descending) and then by
        name (ascending).

    Raises:
        ValueError: if ``years`` is empty or boundary_month is not in 1..12.
    """
    if not years:
        raise ValueError("by_dimension requires at least one year.")
    if not 1 <= boundary_month <= 12:
        raise ValueError(
            f"boundary_month must be between 1 and 12, got {boundary_month}."
        )

    current_year = max(years)
    previous_year = current_year - 1

    current: dict[str, Decimal] = {}
    previous: dict[str, Decimal] = {}

    for record in records:
        try:
            period = record.period
        except InvalidPeriodFormat:
            continue
        if period.month > boundary_month:
            continue

        if period.year == current_year:
            bucket = current
        elif period.year == previous_year:
            bucket = previous
        else:
            continue

        dimension = _dimension_of(record, unassigned_label)
        bucket[dimension] = bucket.get(dimension, Decimal(0)) + record.field_value(
            field
        )

    names = set(current) | set(previous)
    if allowed is not None:
        names &= set(allowed)

    result = [
        DimensionBreakdown(
            dimension_value=name,
            current_year=current.get(name, Decimal(0)),
            previous_year=previous.get(name, Decimal(0)),
        )
        for name in names
    ]
    result.sort(key=lambda b: (-b.current_year, b.dimension_value))
    return result


def top_n(breakdowns: Sequence[DimensionBreakdown], n: int) -> list[DimensionBreakdown]:
    """First ``n`` entries of an already sorted breakdown."""
    if n < 0:
        raise ValueError("top_n requires n >= 0.")
    return list(breakdowns[:n])


def share_of_total(breakdowns: Sequence[DimensionBreakdown]) -> dict[str, Decimal]:
    """
    Percentage of the current-year total held by each dimension value.

    All shares are 0 when the total is 0.
    """
    grand_total = sum((b.current_year for b in breakdowns), Decimal(0))
    if grand_total == 0:
        return {b.dimension_value: Decimal(0) for b in breakdowns}
    return {
        b.dimension_value: b.current_year / grand_total * 100 for b in breakdowns
    }


def split_by_source(
    sources: Mapping[str, Iterable[FinancialRecord]],
    years: Sequence[int],
    boundary_month: int = 12,
    field: str = "amount",
) -> list[DimensionBreakdown]:
    """
    One entry per labelled record set, with its year-to-date totals.

    Every label is reported, even when its totals are zero. Entries are
    sorted like ``by_dimension`` output.
    """
    result = []
    for label, records in sources.items():
        entries = by_dimension(records, years, boundary_month, field=field)
        result.append(
            DimensionBreakdown(
                dimension_value=label,
                current_year=sum((b.current_year for b in entries), Decimal(0)),
                previous_year=sum((b.previous_year for b in entries), Decimal(0)),
            )
        )
    result.sort(key=lambda b: (-b.current_year, b.dimension_value))
    return result
