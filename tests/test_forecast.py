from decimal import Decimal

import pytest

import smb_pulse.forecast as forecast
from smb_pulse.grouping import GroupedPeriod
from smb_pulse.periods import Period


def _series(year: int, values: dict[int, int]) -> list[GroupedPeriod]:
    return [
        GroupedPeriod(Period(year, m), {"amount": Decimal(v)}, 1)
        for m, v in sorted(values.items())
    ]


def test_march_prediction_blends_recent_and_seasonal() -> None:
    """Jan=100, Feb=120; March was 60 two years ago and 90 last year."""
    current = _series(2025, {1: 100, 2: 120})
    prior = _series(2024, {3: 90})
    year_before = _series(2023, {3: 60})

    points = forecast.forecast_current_year(current, prior, year_before, 2025)

    march = points[2]
    assert march.period == Period(2025, 3)
    assert march.actual is None
    assert march.predicted == Decimal(104)


def test_predict_month_steps() -> None:
    actuals = {1: Decimal(100), 2: Decimal(120)}
    samples = [Decimal(60), Decimal(90)]
    assert forecast.predict_month(3, actuals, samples) == Decimal(104)


def test_predict_month_without_recent_uses_trend_adjusted() -> None:
    # growth (150 - 100) / 100 = 0.5, damped to 0.25; avg 125 * 1.25 = 156.25
    samples = [Decimal(100), Decimal(150)]
    assert forecast.predict_month(1, {}, samples) == Decimal(156)


def test_predict_month_without_samples_uses_recent_average() -> None:
    actuals = {1: Decimal(10), 2: Decimal(20)}
    # base = recent = 15; 15 * 0.6 + 15 * 0.4 = 15
    assert forecast.predict_month(3, actuals, []) == Decimal(15)


def test_predict_month_is_never_negative() -> None:
    samples = [Decimal(-50)]
    assert forecast.predict_month(1, {}, samples) == Decimal(0)


def test_predict_month_single_sample_has_no_growth() -> None:
    assert forecast.predict_month(1, {}, [Decimal(80)]) == Decimal(80)


def test_every_current_year_point_has_exactly_one_value() -> None:
    current = _series(2025, {1: 10, 2: 0, 4: 40})
    prior = _series(2024, {m: 30 for m in range(1, 13)})
    year_before = _series(2023, {m: 20 for m in range(1, 13)})

    points = forecast.forecast_current_year(current, prior, year_before, 2025)

    assert len(points) == 12
    for p in points:
        assert (p.actual is None) != (p.predicted is None)
    assert [p.is_forecast for p in points] == [False] * 4 + [True] * 8
    # Gap month before the last actual month is an actual zero.
    assert points[2].actual == Decimal(0)


def test_zero_filled_placeholders_are_not_actuals() -> None:
    current = [
        GroupedPeriod(Period(2025, 1), {"amount": Decimal(50)}, 1),
        GroupedPeriod(Period(2025, 2), {"amount": Decimal(0)}, 0),
        GroupedPeriod(Period(2025, 3), {"amount": Decimal(0)}, 0),
    ]

    assert forecast.last_actual_month(current, 2025) == 1
    points = forecast.forecast_current_year(current, [], [], 2025)
    assert points[1].is_forecast


def test_as_of_month_cuts_current_year_data() -> None:
    current = _series(2025, {1: 10, 2: 20, 3: 30})

    points = forecast.forecast_current_year(current, [], [], 2025, as_of_month=2)

    assert points[1].actual == Decimal(20)
    assert points[2].is_forecast
    with pytest.raises(ValueError):
        forecast.forecast_current_year(current, [], [], 2025, as_of_month=13)


def test_multi_year_series_are_accepted() -> None:
    """The same all-years series may be passed for every argument."""
    all_years = (
        _series(2023, {3: 60})
        + _series(2024, {3: 90})
        + _series(2025, {1: 100, 2: 120})
    )

    points = forecast.forecast_current_year(all_years, all_years, all_years, 2025)

    assert points[2].predicted == Decimal(104)


def test_empty_current_year_predicts_every_month() -> None:
    points = forecast.forecast_current_year([], [], [], 2025)
    assert all(p.predicted == Decimal(0) for p in points)
    assert forecast.year_total(points) == Decimal(0)


def test_actuals_only_and_year_total() -> None:
    past = forecast.actuals_only(_series(2024, {1: 10, 2: 20}), 2024)

    assert len(past) == 12
    assert all(p.predicted is None for p in past)
    assert past[0].actual == Decimal(10)
    assert past[5].actual is None
    assert forecast.year_total(past) == Decimal(30)
