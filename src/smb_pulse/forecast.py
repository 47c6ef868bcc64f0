# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Naive seasonal forecast of the current year.

The current year's monthly series is extended with a predicted value for
every month after the last month with actual data. For a target month m:

1. seasonal samples: the values of month m in the two preceding years,
   skipping years with no data for that month;
2. growth rate: relative change between the oldest and the newest
   non-zero sample (0 with fewer than two);
3. seasonal average: mean of the samples (0 if none);
4. recent average: mean of the current year's actual months before m
   (0 if none);
5. base: the seasonal average when positive, else the recent average;
6. trend-adjusted: base * (1 + growth * damping), damping = 0.5;
7. prediction: round(recent * 0.6 + trend-adjusted * 0.4), or
   round(trend-adjusted) when there is no recent average, floored at 0.

This is a heuristic blend carried over from the dashboard, not a
statistical model: there are no confidence bounds.

Each current-year ForecastPoint carries exactly one of ``actual`` and
``predicted``. Months at or before the last actual month keep an actual
value (0 for a month without data) and never receive a prediction.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from .grouping import GroupedPeriod
from .periods import Period

DEFAULT_RECENT_WEIGHT = Decimal("0.6")
DEFAULT_GROWTH_DAMPING = Decimal("0.5")


@dataclass(frozen=True)
class ForecastPoint:
    """One month of a forecast series."""

    period: Period
    actual: Optional[Decimal]
    predicted: Optional[Decimal]

    @property
    def is_forecast(self) -> bool:
        return self.predicted is not None

    @property
    def value(self) -> Decimal:
        if self.actual is not None:
            return self.actual
        return self.predicted if self.predicted is not None else Decimal(0)


def _as_decimal(value: Union[Decimal, float, int, str]) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _mean(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return Decimal(0)
    return sum(values, Decimal(0)) / len(values)


def _monthly_values(
    series: Sequence[GroupedPeriod],
    year: int,
    field: str,
    until_month: int = 12,
) -> dict[int, Decimal]:
    """Month -> value for the months of ``year`` that actually have data."""
    values: dict[int, Decimal] = {}
    for group in series:
        if group.period.year != year or group.period.month > until_month:
            continue
        value = group.value(field)
        # Zero-filled placeholders (no records, zero sum) are not data.
        if group.count == 0 and value == 0:
            continue
        values[group.period.month] = values.get(group.period.month, Decimal(0)) + value
    return values


def last_actual_month(
    series: Sequence[GroupedPeriod], year: int, field: str = "amount"
) -> int:
    """Highest month of ``year`` with data in ``series``; 0 if none."""
    months = _monthly_values(series, year, field)
    return max(months) if months else 0


def predict_month(
    month: int,
    current_actuals: dict[int, Decimal],
    seasonal_samples: Sequence[Decimal],
    recent_weight: Decimal = DEFAULT_RECENT_WEIGHT,
    growth_damping: Decimal = DEFAULT_GROWTH_DAMPING,
) -> Decimal:
    """
    Predicted value for ``month``.

    Args:
        month: Target month (1..12).
        current_actuals: Current-year actuals by month.
        seasonal_samples: Same-month values of prior years, oldest first,
            years without data already removed.
        recent_weight: Weight of the recent average in the blend.
        growth_damping: Factor applied to the year-over-year growth.
    """
    non_zero = [s for s in seasonal_samples if s != 0]
    growth = Decimal(0)
    if len(non_zero) >= 2:
        growth = (non_zero[-1] - non_zero[0]) / non_zero[0]

    seasonal_average = _mean(list(seasonal_samples))
    recent_average = _mean([v for m, v in sorted(current_actuals.items()) if m < month])

    base = seasonal_average if seasonal_average > 0 else recent_average
    trend_adjusted = base * (1 + growth * growth_damping)

    if recent_average == 0:
        blended = trend_adjusted
    else:
        blended = recent_average * recent_weight + trend_adjusted * (1 - recent_weight)

    predicted = blended.quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return max(Decimal(0), predicted)


def forecast_current_year(
    current: Sequence[GroupedPeriod],
    prior: Sequence[GroupedPeriod],
    year_before: Sequence[GroupedPeriod],
    current_year: int,
    field: str = "amount",
    as_of_month: Optional[int] = None,
    recent_weight: Union[Decimal, float] = DEFAULT_RECENT_WEIGHT,
    growth_damping: Union[Decimal, float] = DEFAULT_GROWTH_DAMPING,
) -> list[ForecastPoint]:
    """
    Build the Jan..Dec forecast series of ``current_year``.

    Parameters
    ----------
    current:
        Grouped series of the current year (Jan..current month).
    prior, year_before:
        Grouped series of the two preceding years. Series covering several
        years are accepted; only the relevant year is read.
    current_year:
        The year being forecast.
    field:
        Numeric field to read from the groups.
    as_of_month:
        Optional cutoff: current-year data after this month is ignored.
    recent_weight, growth_damping:
        Blend parameters (defaults 0.6 and 0.5).

    Returns
    -------
    list[ForecastPoint]
        Twelve points in calendar order.
    """
    until = 12 if as_of_month is None else as_of_month
    if not 1 <= until <= 12:
        raise ValueError(f"as_of_month must be between 1 and 12, got {as_of_month}.")

    weight = _as_decimal(recent_weight)
    damping = _as_decimal(growth_damping)

    actuals = _monthly_values(current, current_year, field, until)
    prior_values = _monthly_values(prior, current_year - 1, field)
    older_values = _monthly_values(year_before, current_year - 2, field)
    last = max(actuals) if actuals else 0

    points: list[ForecastPoint] = []
    for month in range(1, 13):
        period = Period(year=current_year, month=month)
        if month <= last:
            points.append(
                ForecastPoint(
                    period=period,
                    actual=actuals.get(month, Decimal(0)),
                    predicted=None,
                )
            )
            continue

        samples = [
            values[month]
            for values in (older_values, prior_values)
            if month in values
        ]
        predicted = predict_month(month, actuals, samples, weight, damping)
        points.append(ForecastPoint(period=period, actual=None, predicted=predicted))

    return points


def actuals_only(
    series: Sequence[GroupedPeriod], year: int, field: str = "amount"
) -> list[ForecastPoint]:
    """Jan..Dec points of a past year: actuals only, never a prediction."""
    values = _monthly_values(series, year, field)
    return [
        ForecastPoint(
            period=Period(year=year, month=m), actual=values.get(m), predicted=None
        )
        for m in range(1, 13)
    ]


def year_total(points: Sequence[ForecastPoint]) -> Decimal:
    """Sum of actual months plus predicted months (annualized projection)."""
    return sum((p.value for p in points), Decimal(0))
