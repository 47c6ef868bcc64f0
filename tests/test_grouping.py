import logging
from decimal import Decimal

from smb_pulse.grouping import group_by_month, group_by_year, total
from smb_pulse.periods import Period, months_of_year
from smb_pulse.records import FinancialRecord


def _rec(label: str, amount, rid: str = "r", count=None) -> FinancialRecord:
    return FinancialRecord(
        period_label=label,
        amount=Decimal(str(amount)),
        record_id=rid,
        transaction_count=count,
    )


def test_empty_input_gives_empty_result() -> None:
    result = group_by_month([])
    assert result.groups == []
    assert result.skipped == 0


def test_groups_are_sorted_and_summed() -> None:
    records = [
        _rec("03/2025", 10),
        _rec("01/2025", 5),
        _rec("03/2025", "2.5"),
        _rec("12/2024", 1),
    ]

    result = group_by_month(records)

    assert [g.key for g in result.groups] == ["2024-12", "2025-01", "2025-03"]
    march = result.by_period()[Period(2025, 3)]
    assert march.value() == Decimal("12.5")
    assert march.count == 2


def test_grouping_conserves_the_total() -> None:
    """Sum over groups equals sum over the valid input records."""
    records = [_rec(f"{m:02d}/2025", m * 1.1) for m in range(1, 13)] * 3
    result = group_by_month(records)
    expected = sum((r.amount for r in records), Decimal(0))
    assert total(result.groups) == expected


def test_invalid_labels_are_skipped_and_counted(caplog) -> None:
    """One malformed label is skipped; the batch goes on."""
    records = [
        _rec("01/2025", 100),
        _rec("2025-01", 50),
        _rec("02/2025", 30),
    ]

    with caplog.at_level(logging.WARNING, logger="smb_pulse"):
        result = group_by_month(records)

    assert result.skipped == 1
    assert [g.key for g in result.groups] == ["2025-01", "2025-02"]
    assert total(result.groups) == Decimal(130)
    assert "Skipped 1 record(s)" in caplog.text


def test_fixed_period_range_is_zero_filled() -> None:
    records = [_rec("02/2025", 10), _rec("05/2024", 99)]

    result = group_by_month(records, period_range=months_of_year(2025, 4))

    assert [g.key for g in result.groups] == [
        "2025-01",
        "2025-02",
        "2025-03",
        "2025-04",
    ]
    values = [g.value() for g in result.groups]
    assert values == [Decimal(0), Decimal(10), Decimal(0), Decimal(0)]
    assert [g.count for g in result.groups] == [0, 1, 0, 0]


def test_multiple_sum_fields() -> None:
    records = [_rec("01/2025", 10, count=2), _rec("01/2025", 20, count=None)]

    result = group_by_month(records, sum_fields=("amount", "transaction_count"))

    group = result.groups[0]
    assert group.value("amount") == Decimal(30)
    assert group.value("transaction_count") == Decimal(2)


def test_group_by_year() -> None:
    records = [_rec("01/2024", 1), _rec("06/2024", 2), _rec("01/2025", 4)]
    years, skipped = group_by_year(records)
    assert skipped == 0
    assert [(y.year, y.sums["amount"], y.count) for y in years] == [
        (2024, Decimal(3), 2),
        (2025, Decimal(4), 1),
    ]


def test_three_records_across_two_years_sorted_ascending() -> None:
    records = [
        _rec("01/2024", 100),
        _rec("02/2024", 50),
        _rec("01/2023", 80),
    ]

    result = group_by_month(records, sum_fields=["amount"])

    assert [(g.key, g.value(), g.count) for g in result.groups] == [
        ("2023-01", Decimal(80), 1),
        ("2024-01", Decimal(100), 1),
        ("2024-02", Decimal(50), 1),
    ]
