# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ratio metrics for SMB Pulse.

All ratios in this module share the same zero policy: a zero denominator
yields 0, never an exception or NaN. Percentages are computed with Decimal
and rounded once, half-up, when the value is returned.

- ``rate()``: numerator / denominator * 100 (e.g. realized / quoted).
- ``by_dimension()``: conversion rate per dimension, joining a breakdown
  of quotes with a breakdown of realized sales.
- ``margin_pct()``: gross margin of sales over purchases.
- ``cost_to_sales()``: monthly operational costs as a percentage of sales.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from .breakdown import DimensionBreakdown
from .grouping import GroupedPeriod
from .periods import Period

Number = Union[int, Decimal]


@dataclass(frozen=True)
class ConversionRate:
    """Conversion of quotes into sales for one dimension value."""

    dimension_value: str
    quoted: Decimal
    realized: Decimal
    rate: float


@dataclass(frozen=True)
class CostRatio:
    """Operational costs over sales for one period."""

    period: Period
    sales: Decimal
    costs: Decimal
    ratio: float


def _round_pct(value: Decimal, decimals: int) -> float:
    exponent = Decimal(1).scaleb(-decimals)
    return float(value.quantize(exponent, rounding=ROUND_HALF_UP))


def rate(numerator: Number, denominator: Number, decimals: int = 1) -> float:
    """
    Percentage ``numerator / denominator * 100`` rounded to ``decimals``.

    A zero denominator gives 0.0.
    """
    den = Decimal(denominator)
    if den == 0:
        return 0.0
    return _round_pct(Decimal(numerator) / den * 100, decimals)


def by_dimension(
    quoted: Sequence[DimensionBreakdown],
    realized: Sequence[DimensionBreakdown],
    decimals: int = 1,
) -> list[ConversionRate]:
    """
    Join quote and sales breakdowns on dimension value.

    Current-year values are used on both sides. A dimension present on only
    one side is kept with 0 on the other side.

    Returns:
        ConversionRate entries sorted by rate (descending), then by
        dimension value (ascending).
    """
    quotes = {b.dimension_value: b.current_year for b in quoted}
    sales = {b.dimension_value: b.current_year for b in realized}

    result = []
    for name in set(quotes) | set(sales):
        q = quotes.get(name, Decimal(0))
        s = sales.get(name, Decimal(0))
        result.append(
            ConversionRate(
                dimension_value=name,
                quoted=q,
                realized=s,
                rate=rate(s, q, decimals),
            )
        )

    result.sort(key=lambda c: (-c.rate, c.dimension_value))
    return result


def margin_pct(revenue: Number, costs: Number, decimals: int = 1) -> float:
    """Gross margin ``(revenue - costs) / revenue * 100``; 0 when no revenue."""
    rev = Decimal(revenue)
    return rate(rev - Decimal(costs), rev, decimals)


def cost_to_sales(
    sales: Sequence[GroupedPeriod],
    costs: Sequence[GroupedPeriod],
    field: str = "amount",
    decimals: int = 1,
) -> list[CostRatio]:
    """
    Monthly ratio of operational costs over sales.

    Both inputs are grouped series (usually over the same zero-filled
    "last 12 months" range). Periods present on either side are reported,
    in ascending order.
    """
    sales_by_period = {g.period: g.value(field) for g in sales}
    costs_by_period = {g.period: g.value(field) for g in costs}

    result = []
    for period in sorted(set(sales_by_period) | set(costs_by_period)):
        s = sales_by_period.get(period, Decimal(0))
        c = costs_by_period.get(period, Decimal(0))
        result.append(
            CostRatio(period=period, sales=s, costs=c, ratio=rate(c, s, decimals))
        )
    return result
