# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Record sources for SMB Pulse.

The analytics engine never talks to a database directly. It consumes a
``PagedSource``: any object exposing

    fetch_page(table, offset, limit, year_filter) -> PageResult

where ``table`` names a monthly-aggregated view (e.g. ``faturas_vendedor``),
``offset``/``limit`` select a fixed-size page and ``year_filter`` is a hint
listing the years of interest. Sources are not required to honour the hint;
the fetcher always filters client-side.

Two implementations are provided:

- ``InMemoryPagedSource``: rows held in memory, optionally loaded from CSV
  files (see io.py). Used by tests and offline analysis.
- ``SqlitePagedSource``: read-only access to monthly views stored in a
  SQLite file. The connection is opened in read-only mode; SMB Pulse never
  writes to the store.

Timeouts and retries are the responsibility of the source. Any exception a
source raises is treated by the fetcher as a failed page.
"""

import os
import sqlite3
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol, Union

from .io import read_monthly_rows
from .periods import InvalidPeriodFormat, parse_display
from .records import RawRow


@dataclass(frozen=True)
class PageResult:
    """
    One page returned by a PagedSource.

    Attributes
    ----------
    rows:
        Raw rows of the page (mappings, see records.RawRow).
    total_count:
        Total number of rows matching the query, when the source knows it.
    is_last:
        True when the source knows this is the final page.
    """

    rows: list[RawRow] = field(default_factory=list)
    total_count: Optional[int] = None
    is_last: bool = False


class PagedSource(Protocol):
    """Interface of the external record store."""

    def fetch_page(
        self,
        table: str,
        offset: int,
        limit: int,
        year_filter: Sequence[int],
    ) -> PageResult: ...


def _row_year(row: RawRow) -> Optional[int]:
    try:
        return parse_display(str(row.get("period") or "")).year
    except InvalidPeriodFormat:
        return None


class InMemoryPagedSource:
    """
    PagedSource over rows held in memory.

    Parameters
    ----------
    tables:
        Mapping of table name to list of raw rows.
    apply_year_filter:
        When True, the ``year_filter`` hint is honoured before paging
        (like a store with a server-side date filter). When False, all rows
        are paged and filtering is left to the caller.
    """

    def __init__(
        self,
        tables: Mapping[str, Sequence[RawRow]],
        apply_year_filter: bool = False,
    ) -> None:
        self._tables: dict[str, list[RawRow]] = {
            str(name): list(rows) for name, rows in tables.items()
        }
        self.apply_year_filter = apply_year_filter

    @classmethod
    def from_csv(
        cls,
        table_paths: Mapping[str, Union[str, "os.PathLike[str]"]],
        column_map: Optional[Mapping[str, str]] = None,
        apply_year_filter: bool = False,
    ) -> "InMemoryPagedSource":
        """Build a source from one CSV file per table."""
        tables = {
            name: read_monthly_rows(path, column_map=column_map)
            for name, path in table_paths.items()
        }
        return cls(tables, apply_year_filter=apply_year_filter)

    @property
    def tables(self) -> list[str]:
        return sorted(self._tables)

    def fetch_page(
        self,
        table: str,
        offset: int,
        limit: int,
        year_filter: Sequence[int],
    ) -> PageResult:
        if table not in self._tables:
            raise KeyError(f"Unknown table: {table!r}")

        rows = self._tables[table]
        if self.apply_year_filter and year_filter:
            wanted = set(year_filter)
            rows = [r for r in rows if _row_year(r) in wanted]

        page = [dict(r) for r in rows[offset : offset + limit]]
        return PageResult(
            rows=page,
            total_count=len(rows),
            is_last=offset + limit >= len(rows),
        )


# Default mapping between the monthly views' column names and raw row keys.
DEFAULT_COLUMN_MAP: dict[str, str] = {
    "data_documento": "period",
    "euro_total": "amount",
    "id": "record_id",
    "transaction_count": "transaction_count",
}


class SqlitePagedSource:
    """
    Read-only PagedSource over monthly views stored in a SQLite file.

    Each table (or view) must expose at least the columns mapped to
    ``period``, ``amount`` and ``record_id`` by ``column_map``. Rows are
    paged with ``LIMIT``/``OFFSET`` ordered by record id so that successive
    pages are stable. The year hint is applied in SQL on the ``MM/YYYY`` suffix.

    Parameters
    ----------
    path:
        Path to the SQLite database file.
    column_map:
        Mapping of source column name -> raw row key. Defaults to
        DEFAULT_COLUMN_MAP. Unmapped columns are passed through under
        their own name.
    dimension_column:
        Source column exposed as ``dimension_key`` (e.g. ``department``).
    """

    def __init__(
        self,
        path: Union[str, "os.PathLike[str]"],
        column_map: Optional[Mapping[str, str]] = None,
        dimension_column: Optional[str] = None,
    ) -> None:
        self.path = Path(path)
        self.column_map: dict[str, str] = dict(column_map or DEFAULT_COLUMN_MAP)
        if dimension_column:
            self.column_map[dimension_column] = "dimension_key"

    def _connect(self) -> sqlite3.Connection:
        """
        Open a read-only connection.

        The caller is responsible for closing the connection.
        """
        if not self.path.is_file():
            raise FileNotFoundError(f"SQLite source not found: {self.path}")
        return sqlite3.connect(f"file:{self.path.as_posix()}?mode=ro", uri=True)

    def _known_tables(self, conn: sqlite3.Connection) -> set[str]:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type IN ('table', 'view');"
        )
        return {row[0] for row in cur.fetchall()}

    def _column_for(self, key: str) -> str:
        for column, mapped in self.column_map.items():
            if mapped == key:
                return column
        return key

    def fetch_page(
        self,
        table: str,
        offset: int,
        limit: int,
        year_filter: Sequence[int],
    ) -> PageResult:
        conn = self._connect()
        try:
            if table not in self._known_tables(conn):
                raise ValueError(f"Unknown table or view in SQLite source: {table!r}")

            period_col = self._column_for("period")
            # Views have no rowid: order by the record identifier instead.
            order_col = self._column_for("record_id")
            where = ""
            params: list[Any] = []
            if year_filter:
                placeholders = ", ".join("?" for _ in year_filter)
                where = f' WHERE substr("{period_col}", -4) IN ({placeholders})'
                params.extend(str(y) for y in year_filter)

            cur = conn.execute(f'SELECT COUNT(*) FROM "{table}"{where};', params)
            total_count = int(cur.fetchone()[0])

            cur = conn.execute(
                f'SELECT * FROM "{table}"{where} '
                f'ORDER BY "{order_col}", "{period_col}" LIMIT ? OFFSET ?;',
                [*params, limit, offset],
            )
            columns = [d[0] for d in cur.description]
            fetched = cur.fetchall()
        finally:
            conn.close()

        rows: list[RawRow] = []
        for values in fetched:
            row: dict[str, Any] = {}
            for column, value in zip(columns, values):
                row[self.column_map.get(column, column)] = value
            rows.append(row)

        return PageResult(
            rows=rows,
            total_count=total_count,
            is_last=offset + len(rows) >= total_count,
        )
