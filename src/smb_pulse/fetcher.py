# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Window fetching for SMB Pulse.

``fetch_years()`` retrieves every record of a table for a set of target
years from a PagedSource (see sources.py).

Paging
------
Pages of a fixed size are requested from offset 0 until the source returns
an empty page, flags the page as the last one, or reports a ``total_count``
that has been reached. A page shorter than requested does not end the
window: stores may cap the rows served per call, so the next offset always
follows the rows actually received. No upper bound on the number of pages
is assumed.

Filtering
---------
The source is not trusted to filter by year: after each page, rows are
filtered client-side to the requested years. Rows whose period label
cannot be parsed belong to no year and are dropped; rows whose amount is
not numeric are dropped as well. Both are logged.

Concurrency
-----------
With ``concurrency == 1`` a single sequential paged pass is made. With a
higher value each year is fetched as an independent window on a bounded
thread pool, and the per-year results are merged (in year order) only
once every year has been fetched successfully.

Failures
--------
Any exception raised by the source, timeouts included, aborts the whole
fetch: pending year windows are cancelled and ``SourceUnavailable`` is
raised with the table name, the failing page index and its offset. No
partial list of records is ever returned. Retrying is left to the caller
or to the source.
"""


from collections.abc import Iterable, Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Optional

from .logging_setup import get_logger
from .periods import InvalidPeriodFormat, YearWindow
from .records import FinancialRecord
from .sources import PagedSource

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 1000


class SourceUnavailable(RuntimeError):
    """
    A page fetch failed; the whole window fetch is aborted.

    Attributes:
        table: Name of the source table or view.
        page_index: Zero-based index of the failing page.
        offset: Row offset of the failing page.
    """

    def __init__(self, table: str, page_index: int, offset: int) -> None:
        self.table = table
        self.page_index = page_index
        self.offset = offset
        super().__init__(
            f"Source {table!r} unavailable: page {page_index} "
            f"(offset {offset}) could not be fetched."
        )


def _fetch_window(
    source: PagedSource,
    table: str,
    years: frozenset[int],
    year_filter: list[int],
    page_size: int,
    dimension_field: Optional[str],
) -> list[FinancialRecord]:
    """Fetch all pages of one window and return the records in ``years``."""
    records: list[FinancialRecord] = []
    dropped = 0
    page_index = 0
    offset = 0

    while True:
        try:
            page = source.fetch_page(table, offset, page_size, year_filter)
        except Exception as exc:  # noqa: BLE001
            raise SourceUnavailable(table, page_index, offset) from exc

        rows = list(page.rows)
        logger.debug(
            "Fetched %d row(s) from %s, page %d (offset %d).",
            len(rows),
            table,
            page_index,
            offset,
        )
        if not rows:
            break

        for row in rows:
            try:
                record = FinancialRecord.from_raw_row(row, dimension_field)
                year = record.period.year
            except InvalidPeriodFormat:
                dropped += 1
                logger.debug("Dropped row with invalid period from %s: %r", table, row)
                continue
            except ValueError:
                dropped += 1
                logger.warning(
                    "Dropped row with invalid numeric value from %s: %r", table, row
                )
                continue
            if year in years:
                records.append(record)

        offset += len(rows)
        if page.is_last:
            break
        if page.total_count is not None and offset >= page.total_count:
            break

        page_index += 1

    if dropped:
        logger.info("Dropped %d unreadable row(s) from %s.", dropped, table)

    return records


def fetch_years(
    years: Iterable[int],
    source: PagedSource,
    table: str,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    concurrency: int = 1,
    dimension_field: Optional[str] = None,
) -> list[FinancialRecord]:
    """
    Retrieve all records of ``table`` whose period falls in ``years``.

    Parameters
    ----------
    years:
        Target calendar years.
    source:
        The external PagedSource.
    table:
        Source table or view name.
    page_size:
        Fixed page size (default 1000).
    concurrency:
        Maximum number of year windows fetched at once. 1 means a single
        sequential pass.
    dimension_field:
        Optional raw column read as the record's dimension key.

    Returns
    -------
    list[FinancialRecord]
        Records of the requested years, in source order (year by year when
        fetched concurrently).

    Raises
    ------
    SourceUnavailable
        If any page fetch fails. Nothing partial is returned.
    ValueError
        If ``years`` is empty or ``page_size``/``concurrency`` are not
        positive.
    """
    target = sorted(set(int(y) for y in years))
    if not target:
        raise ValueError("fetch_years requires at least one year.")
    if page_size < 1:
        raise ValueError("page_size must be a positive integer.")
    if concurrency < 1:
        raise ValueError("concurrency must be a positive integer.")

    if concurrency == 1 or len(target) == 1:
        records = _fetch_window(
            source, table, frozenset(target), target, page_size, dimension_field
        )
        logger.info(
            "Fetched %d record(s) from %s for years %s.", len(records), table, target
        )
        return records

    by_year: dict[int, list[FinancialRecord]] = {}
    workers = min(concurrency, len(target))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures: dict[Future, int] = {
            pool.submit(
                _fetch_window,
                source,
                table,
                frozenset([year]),
                [year],
                page_size,
                dimension_field,
            ): year
            for year in target
        }
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in done:
            exc = future.exception()
            if exc is not None:
                for other in pending:
                    other.cancel()
                raise exc
        for future, year in futures.items():
            by_year[year] = future.result()

    records = [r for year in target for r in by_year[year]]
    logger.info(
        "Fetched %d record(s) from %s for years %s (%d worker(s)).",
        len(records),
        table,
        target,
        workers,
    )
    return records


def fetch_window(
    window: YearWindow,
    source: PagedSource,
    table: str,
    **kwargs,
) -> list[FinancialRecord]:
    """``fetch_years`` over every year of a YearWindow."""
    return fetch_years(window.years, source, table, **kwargs)


def fetch_tables(
    tables: Sequence[str],
    window: YearWindow,
    source: PagedSource,
    **kwargs,
) -> dict[str, list[FinancialRecord]]:
    """Fetch several tables for the same window; the first failure aborts all."""
    return {table: fetch_window(window, source, table, **kwargs) for table in tables}
