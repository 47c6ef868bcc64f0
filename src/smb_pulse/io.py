# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB Pulse.

This module reads monthly-aggregated rows from a CSV export of a source
view and normalizes them into raw row mappings understood by
``FinancialRecord.from_raw_row``.

Expected input format
---------------------
Column names are case-insensitive:

    period, amount[, record_id, dimension_key, transaction_count, ...]

- ``period``: month label in display form (``MM/YYYY``). It is read as
  text and is NOT validated here: invalid labels are skipped and counted
  later by the grouper.
- ``amount``: numeric amount of the monthly row.

The original view column names (``data_documento``, ``euro_total``, ``id``)
are accepted as aliases. A custom ``column_map`` (source column -> key)
can be supplied for other exports.

Extra numeric columns are kept as-is, so they can be summed by name.

If the CSV does not contain a period and an amount column, or if amounts
are not numeric, a clear ValueError is raised.
"""

import os
from collections.abc import Mapping
from typing import Any, Optional, Union

import pandas as pd

COLUMN_ALIASES: dict[str, str] = {
    "data_documento": "period",
    "euro_total": "amount",
    "id": "record_id",
}


def read_monthly_rows(
    path: Union[str, "os.PathLike[str]"],
    column_map: Optional[Mapping[str, str]] = None,
) -> list[dict[str, Any]]:
    """
    Read monthly rows from a CSV file and normalize them.

    Parameters
    ----------
    path:
        Path to the CSV file.
    column_map:
        Optional mapping of CSV column name -> raw row key, applied after
        lower-casing the column names. Defaults to COLUMN_ALIASES.

    Returns
    -------
    list[dict]
        One dict per CSV row with at least ``period`` (str), ``amount``
        (float) and ``record_id`` (str). Missing values are ``None``.

    Raises
    ------
    ValueError
        If the CSV lacks the period/amount columns or if an amount is not
        numeric.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)

    # Normalize column names to lowercase (to make the check case-insensitive)
    df.columns = [c.lower().strip() for c in df.columns]

    mapping = {k.lower(): v for k, v in (column_map or COLUMN_ALIASES).items()}
    df = df.rename(columns={c: mapping[c] for c in df.columns if c in mapping})

    cols = set(df.columns)
    if not {"period", "amount"}.issubset(cols):
        raise ValueError(
            "Invalid monthly rows structure. Expected at least the columns "
            "'period' and 'amount' (or 'data_documento' and 'euro_total')."
        )

    d = df.copy()
    d["period"] = d["period"].astype(str).str.strip()

    amounts = pd.to_numeric(d["amount"].replace("", "0"), errors="coerce")
    if amounts.isna().any():
        raise ValueError("Invalid numeric values in 'amount' column.")

    if "record_id" not in cols:
        d["record_id"] = [str(i) for i in range(len(d))]

    rows: list[dict[str, Any]] = []
    for idx, raw in enumerate(d.to_dict(orient="records")):
        row: dict[str, Any] = {}
        for key, value in raw.items():
            if key == "amount":
                row[key] = float(amounts.iloc[idx])
            elif value == "":
                row[key] = None
            elif key in ("period", "record_id", "dimension_key"):
                row[key] = str(value)
            else:
                row[key] = _maybe_number(value)
        rows.append(row)

    return rows


def _maybe_number(value: str) -> Any:
    """Return an int or float for numeric text, else the text itself."""
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value
