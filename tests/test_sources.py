import sqlite3

import pytest

from smb_pulse.sources import InMemoryPagedSource, PageResult, SqlitePagedSource


def _rows(n: int, year: int = 2025) -> list[dict]:
    return [
        {"period": f"{(i % 12) + 1:02d}/{year}", "amount": i, "record_id": str(i)}
        for i in range(n)
    ]


def test_in_memory_source_pages_and_flags_last_page() -> None:
    source = InMemoryPagedSource({"sales": _rows(5)})

    first = source.fetch_page("sales", 0, 2, [2025])
    last = source.fetch_page("sales", 4, 2, [2025])

    assert isinstance(first, PageResult)
    assert [r["record_id"] for r in first.rows] == ["0", "1"]
    assert first.total_count == 5
    assert not first.is_last
    assert [r["record_id"] for r in last.rows] == ["4"]
    assert last.is_last


def test_in_memory_source_unknown_table() -> None:
    source = InMemoryPagedSource({})
    with pytest.raises(KeyError):
        source.fetch_page("missing", 0, 10, [2025])


def test_in_memory_source_optional_year_filter() -> None:
    rows = _rows(3, 2024) + _rows(2, 2025)
    source = InMemoryPagedSource({"sales": rows}, apply_year_filter=True)

    page = source.fetch_page("sales", 0, 10, [2025])

    assert page.total_count == 2
    assert all(r["period"].endswith("/2025") for r in page.rows)


def test_in_memory_source_from_csv(tmp_path) -> None:
    csv = tmp_path / "sales.csv"
    csv.write_text("period,amount\n01/2025,10\n02/2025,20\n", encoding="utf-8")

    source = InMemoryPagedSource.from_csv({"sales": csv})

    assert source.tables == ["sales"]
    page = source.fetch_page("sales", 0, 10, [2025])
    assert [r["amount"] for r in page.rows] == [10.0, 20.0]


def _make_db(path) -> None:
    conn = sqlite3.connect(path)
    try:
        conn.execute(
            "CREATE TABLE faturas (id INTEGER PRIMARY KEY, data_documento TEXT, "
            "euro_total REAL, department TEXT, transaction_count INTEGER);"
        )
        conn.executemany(
            "INSERT INTO faturas VALUES (?, ?, ?, ?, ?);",
            [
                (1, "01/2024", 10.0, "Sales", 1),
                (2, "01/2025", 20.0, "Sales", 2),
                (3, "02/2025", 30.0, None, 3),
                (4, "03/2025", 40.0, "Support", 4),
            ],
        )
        conn.execute("CREATE VIEW faturas_monthly AS SELECT * FROM faturas;")
        conn.commit()
    finally:
        conn.close()


def test_sqlite_source_maps_columns_and_filters_years(tmp_path) -> None:
    db = tmp_path / "store.sqlite"
    _make_db(db)
    source = SqlitePagedSource(db)

    page = source.fetch_page("faturas_monthly", 0, 2, [2025])

    assert page.total_count == 3
    assert not page.is_last
    assert page.rows[0] == {
        "record_id": 2,
        "period": "01/2025",
        "amount": 20.0,
        "department": "Sales",
        "transaction_count": 2,
    }

    second = source.fetch_page("faturas_monthly", 2, 2, [2025])
    assert [r["record_id"] for r in second.rows] == [4]
    assert second.is_last


def test_sqlite_source_dimension_column(tmp_path) -> None:
    db = tmp_path / "store.sqlite"
    _make_db(db)
    source = SqlitePagedSource(db, dimension_column="department")

    page = source.fetch_page("faturas", 0, 10, [])

    assert page.total_count == 4
    assert [r["dimension_key"] for r in page.rows] == [
        "Sales",
        "Sales",
        None,
        "Support",
    ]


def test_sqlite_source_is_read_only(tmp_path) -> None:
    db = tmp_path / "store.sqlite"
    _make_db(db)
    source = SqlitePagedSource(db)

    conn = source._connect()
    try:
        with pytest.raises(sqlite3.OperationalError):
            conn.execute("DELETE FROM faturas;")
    finally:
        conn.close()


def test_sqlite_source_errors(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        SqlitePagedSource(tmp_path / "missing.sqlite").fetch_page("t", 0, 1, [])

    db = tmp_path / "store.sqlite"
    _make_db(db)
    with pytest.raises(ValueError, match="Unknown table"):
        SqlitePagedSource(db).fetch_page("nope", 0, 1, [])
