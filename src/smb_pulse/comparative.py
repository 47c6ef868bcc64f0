# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Year-over-year comparison tables.

This module builds the multi-year overlays shown by the analytics views:

1. Year-over-year rows
   --------------------
   ``build_year_over_year()`` returns one row per calendar month, in
   calendar order (Jan..Dec), with one column per compared year:

       {"month": "jan", "month_index": 1, 2023: Decimal, 2024: Decimal}

   Every compared year is present in every row (zero when a year has no
   data for that month), so multi-year bars and lines align positionally.

2. Year-to-date mode
   ------------------
   When ``boundary_month`` is supplied, only months 1..boundary_month are
   produced, and the *same* cutoff applies to every compared year. A year
   with data up to December is therefore compared on the same months as
   the current, partial year.

3. Monthly averages
   -----------------
   ``build_monthly_average()`` divides each bucket's sum by its total
   transaction count. A bucket with no transactions averages to 0.

4. Year totals
   ------------
   ``year_totals()`` and ``compare_totals()`` provide the figures of the
   "this year vs last year" cards, with a growth percentage.

5. Month over month and pipeline
   ------------------------------
   ``month_over_month()`` compares a month with the one before it (growth
   cards). ``build_pipeline()`` lays several series (quotes, orders,
   invoices) side by side for every month of one year.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from .grouping import group_by_month
from .periods import Period, month_name
from .records import FinancialRecord


@dataclass(frozen=True)
class TotalsComparison:
    """
    Comparison of two totals.

    Attributes:
        current: Current total.
        previous: Previous total.
        delta: current - previous.
        growth_pct: Percentage change, or None when previous is zero.
    """

    current: Decimal
    previous: Decimal
    delta: Decimal
    growth_pct: Optional[Decimal]


def _check_boundary(boundary_month: Optional[int]) -> int:
    if boundary_month is None:
        return 12
    if not 1 <= boundary_month <= 12:
        raise ValueError(
            f"boundary_month must be between 1 and 12, got {boundary_month}."
        )
    return boundary_month


def _monthly_matrix(
    records: Iterable[FinancialRecord],
    years: Sequence[int],
    fields: Sequence[str],
) -> dict[tuple[int, int], dict[str, Decimal]]:
    """(year, month) -> sums, for the requested years only."""
    wanted = set(years)
    result = group_by_month(records, fields)
    return {
        (g.period.year, g.period.month): g.sums
        for g in result.groups
        if g.period.year in wanted
    }


def build_year_over_year(
    records: Iterable[FinancialRecord],
    years: Sequence[int],
    boundary_month: Optional[int] = None,
    field: str = "amount",
    locale: str = "pt",
) -> list[dict[Any, Any]]:
    """
    Build month-by-month comparison rows across ``years``.

    Parameters
    ----------
    records:
        Records to aggregate (any years; others are ignored).
    years:
        Years to compare; each becomes a column keyed by the int year.
    boundary_month:
        YTD cutoff (1..12). When None, all 12 months are produced.
    field:
        Numeric field to sum.
    locale:
        Locale of the ``month`` label (see periods.MONTH_NAMES).

    Returns
    -------
    list[dict]
        One dict per month in calendar order with keys ``month``,
        ``month_index`` and one key per year.
    """
    last_month = _check_boundary(boundary_month)
    year_list = sorted(set(years))
    matrix = _monthly_matrix(records, year_list, [field])

    rows: list[dict[Any, Any]] = []
    for month in range(1, last_month + 1):
        row: dict[Any, Any] = {
            "month": month_name(month, locale),
            "month_index": month,
        }
        for year in year_list:
            sums = matrix.get((year, month))
            row[year] = sums[field] if sums else Decimal(0)
        rows.append(row)

    return rows


def build_monthly_average(
    records: Iterable[FinancialRecord],
    years: Sequence[int],
    boundary_month: Optional[int] = None,
    field: str = "amount",
    locale: str = "pt",
) -> list[dict[Any, Any]]:
    """
    Same shape as ``build_year_over_year`` with the average per transaction.

    The value of each (month, year) cell is ``sum(field) /
    sum(transaction_count)``; a cell with a zero count is 0.
    """
    last_month = _check_boundary(boundary_month)
    year_list = sorted(set(years))
    matrix = _monthly_matrix(records, year_list, [field, "transaction_count"])

    rows: list[dict[Any, Any]] = []
    for month in range(1, last_month + 1):
        row: dict[Any, Any] = {
            "month": month_name(month, locale),
            "month_index": month,
        }
        for year in year_list:
            sums = matrix.get((year, month))
            count = sums["transaction_count"] if sums else Decimal(0)
            row[year] = sums[field] / count if count else Decimal(0)
        rows.append(row)

    return rows


def year_totals(
    records: Iterable[FinancialRecord],
    years: Sequence[int],
    boundary_month: Optional[int] = None,
    field: str = "amount",
) -> dict[int, Decimal]:
    """Total of ``field`` per year, restricted to months <= boundary_month."""
    last_month = _check_boundary(boundary_month)
    year_list = sorted(set(years))
    matrix = _monthly_matrix(records, year_list, [field])

    totals = {year: Decimal(0) for year in year_list}
    for (year, month), sums in matrix.items():
        if month <= last_month:
            totals[year] += sums[field]
    return totals


def compare_totals(current: Decimal, previous: Decimal) -> TotalsComparison:
    """Compare two totals; growth is None when the previous total is zero."""
    delta = current - previous
    growth: Optional[Decimal] = None
    if previous != 0:
        growth = delta / abs(previous) * 100
    return TotalsComparison(
        current=current, previous=previous, delta=delta, growth_pct=growth
    )


def month_over_month(
    records: Iterable[FinancialRecord],
    period: Period,
    field: str = "amount",
) -> TotalsComparison:
    """
    Compare the total of ``period`` with the total of the month before it.

    The previous month of January is December of the previous year. Growth
    is None when the previous month is zero.
    """
    previous = period.shift(-1)
    grouped = group_by_month(records, [field], period_range=[previous, period])
    by_period = grouped.by_period()
    return compare_totals(
        by_period[period].value(field), by_period[previous].value(field)
    )


def build_pipeline(
    series: Mapping[str, Iterable[FinancialRecord]],
    year: int,
    field: str = "amount",
    locale: str = "pt",
) -> list[dict[str, Any]]:
    """
    Monthly totals of several series for one year, side by side.

    Parameters
    ----------
    series:
        Series name (e.g. ``"quotes"``) -> records. Each name becomes a key
        of every row, in mapping order.
    year:
        Calendar year laid out from January to December.

    Returns
    -------
    list[dict]
        Twelve rows ``{"month", "month_index", <series>: Decimal, ...}``,
        zero-filled.
    """
    months = [Period(year, m) for m in range(1, 13)]
    totals = {
        name: group_by_month(records, [field], period_range=months).by_period()
        for name, records in series.items()
    }

    rows: list[dict[str, Any]] = []
    for period in months:
        row: dict[str, Any] = {
            "month": month_name(period.month, locale),
            "month_index": period.month,
        }
        for name, by_period in totals.items():
            row[name] = by_period[period].value(field)
        rows.append(row)
    return rows
