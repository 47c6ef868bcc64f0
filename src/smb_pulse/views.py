# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB Pulse.

This module turns the analytics results (grouped periods, comparison rows,
breakdowns, ratios and forecast points) into pandas DataFrames ready to be
rendered by a chart layer or exported as CSV.

Rounding happens here and only here: every upstream module works with
exact Decimal values. Amounts are rounded half-up to ``amount_decimals``
and percentages to ``ratio_decimals``. Missing values (e.g. the
prediction of an actual month) are exported as NaN.
"""

from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import pandas as pd

from .analytics import DashboardAnalytics
from .breakdown import DimensionBreakdown, share_of_total
from .comparative import TotalsComparison
from .config import AppConfig
from .conversion import ConversionRate, CostRatio
from .forecast import ForecastPoint
from .grouping import GroupedPeriod
from .periods import format_period_label, to_canonical


def _round(value: Optional[Decimal], decimals: int) -> float:
    """Half-up rounding of a Decimal to a float; None becomes NaN."""
    if value is None:
        return float("nan")
    exponent = Decimal(1).scaleb(-decimals)
    return float(Decimal(value).quantize(exponent, rounding=ROUND_HALF_UP))


def grouped_to_dataframe(
    groups: Sequence[GroupedPeriod],
    fields: Sequence[str] = ("amount",),
    decimals: int = 2,
    locale: str = "pt",
) -> pd.DataFrame:
    """
    Convert grouped periods into a DataFrame.

    Columns: period (``YYYY-MM``), label (e.g. ``"Fev 2025"``), count, then
    one column per requested field. Rows keep the order of ``groups``.
    """
    columns = ["period", "label", "count", *fields]
    if not groups:
        return pd.DataFrame(columns=columns)

    rows: list[dict[str, object]] = []
    for g in groups:
        row: dict[str, object] = {
            "period": to_canonical(g.period),
            "label": format_period_label(g.period, locale),
            "count": g.count,
        }
        for name in fields:
            row[name] = _round(g.value(name), decimals)
        rows.append(row)

    return pd.DataFrame(rows)[columns]


def year_over_year_to_dataframe(
    rows: Sequence[dict[Any, Any]], decimals: int = 2
) -> pd.DataFrame:
    """
    Convert comparison rows (see comparative.build_year_over_year) into a
    DataFrame with columns month, month_index and one column per year.
    """
    if not rows:
        return pd.DataFrame(columns=["month", "month_index"])

    years = sorted(k for k in rows[0] if isinstance(k, int))
    out: list[dict[Any, object]] = []
    for row in rows:
        item: dict[Any, object] = {
            "month": row["month"],
            "month_index": row["month_index"],
        }
        for year in years:
            item[year] = _round(row[year], decimals)
        out.append(item)

    return pd.DataFrame(out)[["month", "month_index", *years]]


def breakdown_to_dataframe(
    breakdowns: Sequence[DimensionBreakdown],
    amount_decimals: int = 2,
    ratio_decimals: int = 1,
) -> pd.DataFrame:
    """
    Convert a dimension breakdown into a DataFrame.

    Columns:
        - dimension:     Dimension value (or the unassigned sentinel).
        - current_year:  Current-year-to-date value.
        - previous_year: Previous-year-to-date value.
        - delta:         current_year - previous_year.
        - share_pct:     Share of the current-year total, in percent.

    Row order is the breakdown order (current-year value descending).
    """
    columns = ["dimension", "current_year", "previous_year", "delta", "share_pct"]
    if not breakdowns:
        return pd.DataFrame(columns=columns)

    shares = share_of_total(breakdowns)
    rows = [
        {
            "dimension": b.dimension_value,
            "current_year": _round(b.current_year, amount_decimals),
            "previous_year": _round(b.previous_year, amount_decimals),
            "delta": _round(b.delta, amount_decimals),
            "share_pct": _round(shares[b.dimension_value], ratio_decimals),
        }
        for b in breakdowns
    ]
    return pd.DataFrame(rows)[columns]


def conversion_to_dataframe(rates: Sequence[ConversionRate]) -> pd.DataFrame:
    """Conversion rates as a DataFrame (dimension, quoted, realized, rate)."""
    columns = ["dimension", "quoted", "realized", "rate"]
    if not rates:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "dimension": c.dimension_value,
            "quoted": _round(c.quoted, 0),
            "realized": _round(c.realized, 0),
            # Already rounded by the conversion calculator.
            "rate": c.rate,
        }
        for c in rates
    ]
    return pd.DataFrame(rows)[columns]


def cost_ratios_to_dataframe(
    ratios: Sequence[CostRatio],
    decimals: int = 2,
    locale: str = "pt",
) -> pd.DataFrame:
    """Operational costs vs sales, one row per period in ascending order."""
    columns = ["period", "label", "sales", "costs", "ratio"]
    if not ratios:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "period": to_canonical(r.period),
            "label": format_period_label(r.period, locale),
            "sales": _round(r.sales, decimals),
            "costs": _round(r.costs, decimals),
            "ratio": r.ratio,
        }
        for r in ratios
    ]
    return pd.DataFrame(rows)[columns]


def forecast_to_dataframe(
    points: Sequence[ForecastPoint],
    decimals: int = 2,
    locale: str = "pt",
) -> pd.DataFrame:
    """
    Convert forecast points into a DataFrame.

    Columns: period, label, actual, predicted, is_forecast. The missing side
    of each point is NaN, so a chart can draw actual and predicted series
    separately.
    """
    columns = ["period", "label", "actual", "predicted", "is_forecast"]
    if not points:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "period": to_canonical(p.period),
            "label": format_period_label(p.period, locale),
            "actual": _round(p.actual, decimals),
            "predicted": _round(p.predicted, decimals),
            "is_forecast": p.is_forecast,
        }
        for p in points
    ]
    return pd.DataFrame(rows)[columns]


def totals_to_dataframe(
    comparisons: Mapping[str, TotalsComparison],
    amount_decimals: int = 2,
    ratio_decimals: int = 1,
) -> pd.DataFrame:
    """
    Comparison cards as a DataFrame.

    Columns: name, current, previous, delta, growth_pct. A growth without
    a base (previous total of zero) is NaN.
    """
    columns = ["name", "current", "previous", "delta", "growth_pct"]
    if not comparisons:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "name": name,
            "current": _round(c.current, amount_decimals),
            "previous": _round(c.previous, amount_decimals),
            "delta": _round(c.delta, amount_decimals),
            "growth_pct": _round(c.growth_pct, ratio_decimals),
        }
        for name, c in comparisons.items()
    ]
    return pd.DataFrame(rows)[columns]


def pipeline_to_dataframe(
    rows: Sequence[dict[str, Any]], decimals: int = 2
) -> pd.DataFrame:
    """Pipeline rows (see comparative.build_pipeline) as a DataFrame."""
    if not rows:
        return pd.DataFrame(columns=["month", "month_index"])

    series = [k for k in rows[0] if k not in ("month", "month_index")]
    out = [
        {
            "month": row["month"],
            "month_index": row["month_index"],
            **{name: _round(row[name], decimals) for name in series},
        }
        for row in rows
    ]
    return pd.DataFrame(out)[["month", "month_index", *series]]


def dashboard_to_frames(
    result: DashboardAnalytics, config: AppConfig
) -> dict[str, pd.DataFrame]:
    """
    Every table of a computed dashboard, rounded with the display options
    of ``config`` (amount_decimals, ratio_decimals, locale).
    """
    amounts = config.amount_decimals
    ratios = config.ratio_decimals
    locale = config.locale

    return {
        "monthly_totals": grouped_to_dataframe(
            result.monthly_totals, decimals=amounts, locale=locale
        ),
        "year_over_year": year_over_year_to_dataframe(
            result.year_over_year, decimals=amounts
        ),
        "year_to_date": year_over_year_to_dataframe(
            result.year_to_date, decimals=amounts
        ),
        "totals": totals_to_dataframe(
            {
                "sales": result.totals,
                "quotes": result.quotes_totals,
                "credit_notes": result.credit_notes_totals,
                "net_sales": result.net_totals,
            },
            amount_decimals=amounts,
            ratio_decimals=ratios,
        ),
        "growth": totals_to_dataframe(
            result.growth, amount_decimals=amounts, ratio_decimals=ratios
        ),
        "breakdown": breakdown_to_dataframe(result.breakdown, amounts, ratios),
        "top_clients": breakdown_to_dataframe(result.top_clients, amounts, ratios),
        "top_suppliers": breakdown_to_dataframe(result.top_suppliers, amounts, ratios),
        "purchase_split": breakdown_to_dataframe(
            result.purchase_split, amounts, ratios
        ),
        "conversion": conversion_to_dataframe(result.conversion),
        "pipeline": pipeline_to_dataframe(result.pipeline, decimals=amounts),
        "cost_ratios": cost_ratios_to_dataframe(
            result.cost_ratios, decimals=amounts, locale=locale
        ),
        "forecast": forecast_to_dataframe(
            result.forecast, decimals=amounts, locale=locale
        ),
    }
