# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Monthly grouping of financial records.

The grouper folds a heterogeneous list of FinancialRecord objects into one
GroupedPeriod per calendar month, summing any number of named numeric
fields. It is the building block used by the comparative, breakdown and
forecast modules.

Behaviour
---------
- Single pass over the input, accumulating into a dict keyed by the
  canonical period (``YYYY-MM``).
- Sums use Decimal; nothing is rounded here. Rounding is a presentation
  concern (see views.py).
- A record whose period label cannot be parsed is skipped and counted in
  ``GroupingResult.skipped``. One bad row never aborts the batch.
- When a fixed ``period_range`` is supplied, every period of the range is
  present in the output (zero sums, count 0) and records outside the range
  are ignored. Without a range, only periods seen in the data appear.
"""


from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .logging_setup import get_logger
from .periods import InvalidPeriodFormat, Period, to_canonical
from .records import FinancialRecord

logger = get_logger(__name__)


@dataclass
class GroupedPeriod:
    """Aggregated values for one period."""

    period: Period
    sums: dict[str, Decimal] = field(default_factory=dict)
    count: int = 0

    @property
    def key(self) -> str:
        return to_canonical(self.period)

    def value(self, name: str = "amount") -> Decimal:
        return self.sums.get(name, Decimal(0))


@dataclass(frozen=True)
class GroupingResult:
    """Groups sorted by canonical period plus the number of skipped records."""

    groups: list[GroupedPeriod]
    skipped: int = 0

    def by_period(self) -> dict[Period, GroupedPeriod]:
        return {g.period: g for g in self.groups}


@dataclass(frozen=True)
class YearGroup:
    """Aggregated values for one calendar year."""

    year: int
    sums: dict[str, Decimal]
    count: int


def _empty_sums(sum_fields: Sequence[str]) -> dict[str, Decimal]:
    return {name: Decimal(0) for name in sum_fields}


def group_by_month(
    records: Iterable[FinancialRecord],
    sum_fields: Sequence[str] = ("amount",),
    period_range: Optional[Sequence[Period]] = None,
) -> GroupingResult:
    """
    Group records by calendar month and sum the requested fields.

    Parameters
    ----------
    records:
        Records to aggregate. Their period labels are parsed here.
    sum_fields:
        Names of the numeric fields to sum (``amount``,
        ``transaction_count`` or any key of ``FinancialRecord.extra``).
    period_range:
        Optional fixed list of periods. When given, the output contains
        exactly these periods (zero-filled) and nothing else.

    Returns
    -------
    GroupingResult
        Groups sorted ascending by canonical period and the number of
        records skipped because of an invalid period label.
    """
    fields = tuple(sum_fields)
    buckets: dict[str, GroupedPeriod] = {}

    if period_range is not None:
        for period in period_range:
            buckets[to_canonical(period)] = GroupedPeriod(
                period=period, sums=_empty_sums(fields)
            )

    skipped = 0
    for record in records:
        try:
            period = record.period
        except InvalidPeriodFormat:
            skipped += 1
            continue

        key = to_canonical(period)
        bucket = buckets.get(key)
        if bucket is None:
            if period_range is not None:
                # Outside the requested fixed range.
                continue
            bucket = GroupedPeriod(period=period, sums=_empty_sums(fields))
            buckets[key] = bucket

        for name in fields:
            bucket.sums[name] += record.field_value(name)
        bucket.count += 1

    if skipped:
        logger.warning(
            "Skipped %d record(s) with an invalid period label while grouping.",
            skipped,
        )

    groups = [buckets[key] for key in sorted(buckets)]
    return GroupingResult(groups=groups, skipped=skipped)


def group_by_year(
    records: Iterable[FinancialRecord],
    sum_fields: Sequence[str] = ("amount",),
) -> tuple[list[YearGroup], int]:
    """
    Group records by calendar year.

    Returns the year groups sorted ascending and the number of skipped
    records (same skip policy as ``group_by_month``).
    """
    monthly = group_by_month(records, sum_fields)
    fields = tuple(sum_fields)

    totals: dict[int, dict[str, Decimal]] = {}
    counts: dict[int, int] = {}
    for group in monthly.groups:
        year = group.period.year
        sums = totals.setdefault(year, _empty_sums(fields))
        for name in fields:
            sums[name] += group.value(name)
        counts[year] = counts.get(year, 0) + group.count

    years = [
        YearGroup(year=y, sums=totals[y], count=counts[y]) for y in sorted(totals)
    ]
    return years, monthly.skipped


def total(groups: Iterable[GroupedPeriod], name: str = "amount") -> Decimal:
    """Sum of ``name`` over a list of groups."""
    return sum((g.value(name) for g in groups), Decimal(0))
