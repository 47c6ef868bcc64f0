# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Record model for SMB Pulse.

A FinancialRecord is one monthly-aggregated row as returned by the record
source (sales, quotes, purchases, credit notes, operational costs). All
optional attributes are explicit and nullable so every consumer works with
the same shape, whatever columns a given source view exposes.

Raw rows
--------
Sources hand rows over as plain mappings (``RawRow``) with these keys:

    - ``period``            (str, ``MM/YYYY``)
    - ``amount``            (numeric)
    - ``record_id``         (str)
    - ``dimension_key``     (str, optional)
    - ``transaction_count`` (int, optional)

Any other numeric key is kept in ``FinancialRecord.extra`` so that it can
be summed by name by the grouper.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .periods import Period, parse_display

RawRow = Mapping[str, Any]

_CORE_KEYS = frozenset(
    {"period", "amount", "record_id", "dimension_key", "transaction_count"}
)


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric value to Decimal without binary float noise.

    Floats go through ``str()`` so that 0.1 becomes Decimal("0.1").
    ``None`` and empty strings are treated as 0.

    Raises:
        ValueError: if the value is not numeric.
    """
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def to_count(value: Any) -> int:
    """
    Convert a transaction count to int.

    Raises:
        ValueError: if the value is not numeric or not a whole number
            (e.g. ``3.5``).
    """
    number = to_decimal(value)
    if number != number.to_integral_value():
        raise ValueError(f"Invalid transaction count: {value!r}")
    return int(number)


@dataclass(frozen=True)
class FinancialRecord:
    """
    One monthly-aggregated financial row.

    Attributes:
        period_label: Period label exactly as supplied by the source
            (display form ``MM/YYYY``). It is parsed lazily by ``period``.
        amount: Monetary amount of the row.
        record_id: Identifier of the row in the source view.
        dimension_key: Department, person, supplier or client, if any.
        transaction_count: Number of original transactions folded into
            this monthly row, if the view exposes it.
        extra: Additional numeric columns, summable by name.
    """

    period_label: str
    amount: Decimal
    record_id: str
    dimension_key: Optional[str] = None
    transaction_count: Optional[int] = None
    extra: dict[str, Decimal] = field(default_factory=dict, compare=False)

    @property
    def period(self) -> Period:
        """Parsed period. Raises InvalidPeriodFormat for malformed labels."""
        return parse_display(self.period_label)

    def field_value(self, name: str) -> Decimal:
        """Numeric value of ``name`` for summing (missing values count as 0)."""
        if name == "amount":
            return self.amount
        if name == "transaction_count":
            return Decimal(self.transaction_count or 0)
        return self.extra.get(name, Decimal(0))

    @classmethod
    def from_raw_row(
        cls,
        row: RawRow,
        dimension_field: Optional[str] = None,
    ) -> "FinancialRecord":
        """
        Build a record from a raw source row.

        Args:
            row: Mapping with at least ``period``; see module docstring.
            dimension_field: Optional column to read the dimension from
                instead of ``dimension_key`` (e.g. ``"department"``).

        Raises:
            ValueError: if ``amount`` or an extra numeric column is not
                numeric, or if ``transaction_count`` is not a whole number.
        """
        if dimension_field and dimension_field in row:
            dimension_raw = row.get(dimension_field)
        else:
            dimension_raw = row.get("dimension_key")
        dimension_key: Optional[str]
        if dimension_raw is None or str(dimension_raw).strip() == "":
            dimension_key = None
        else:
            dimension_key = str(dimension_raw).strip()

        count_raw = row.get("transaction_count")
        transaction_count = None if count_raw in (None, "") else to_count(count_raw)

        extra: dict[str, Decimal] = {}
        for key, value in row.items():
            if key in _CORE_KEYS or key == dimension_field:
                continue
            if isinstance(value, (int, float, Decimal)) and not isinstance(
                value, bool
            ):
                extra[str(key)] = to_decimal(value)

        return cls(
            period_label=str(row.get("period") or ""),
            amount=to_decimal(row.get("amount")),
            record_id=str(row.get("record_id") or ""),
            dimension_key=dimension_key,
            transaction_count=transaction_count,
            extra=extra,
        )


def records_from_rows(
    rows: list[RawRow],
    dimension_field: Optional[str] = None,
) -> list[FinancialRecord]:
    """Convert a list of raw rows into FinancialRecord objects."""
    return [FinancialRecord.from_raw_row(r, dimension_field) for r in rows]
