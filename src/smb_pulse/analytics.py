# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Request-level orchestration for the dashboard analytics.

``compute_dashboard()`` is the single entry point a dashboard backend
calls to obtain every figure of the analytics pages for one request.

Workflow
--------
1. Build one YearWindow from ``today`` (``years_back`` years before the
   current year up to the current year). Every later step reads its
   "now" from this window, so the YTD cutoff and the forecast boundary
   always agree.

2. Fetch the monthly views once per table for the whole window: sales,
   quotes, orders, sales by client, sales counts, quote counts,
   purchases, operational costs and credit notes. A ``SourceUnavailable``
   raised for any table aborts the request; no partial dashboard is
   produced. When no source is passed, the SQLite database named in the
   configuration is opened read-only.

3. Aggregate:
   - current-year monthly sales totals (Jan..Dec, zero-filled),
   - year-over-year rows over the full year and up to the current month,
   - year-to-date totals of sales, quotes and credit notes, and sales net
     of credit notes, for the current and previous year,
   - the sales breakdown by dimension (department by default),
   - the top clients and the top suppliers (purchases and operational
     costs merged),
   - operational against other purchases,
   - quote-to-sale conversion by dimension, from the count views,
   - the gross margin of sales over purchases (year to date),
   - month-over-month growth of sales, purchases and margin,
   - the monthly quotes / orders / invoices pipeline of the current year,
   - operational costs over sales for the last 12 months,
   - the seasonal forecast of the current year and its projected total.

Nothing here rounds values; see views.py for presentation.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from . import breakdown, comparative, conversion, forecast
from .breakdown import DimensionBreakdown
from .comparative import TotalsComparison
from .conversion import ConversionRate, CostRatio
from .config import AppConfig
from .fetcher import fetch_window
from .forecast import ForecastPoint
from .grouping import GroupedPeriod, group_by_month
from .logging_setup import configure_logging, get_logger
from .periods import Period, YearWindow, last_n_months, months_of_year
from .records import FinancialRecord
from .sources import PagedSource, SqlitePagedSource

logger = get_logger(__name__)

FETCHED_TABLES = (
    "sales",
    "quotes",
    "orders",
    "client_sales",
    "sales_counts",
    "quotes_counts",
    "purchases",
    "operational_costs",
    "credit_notes",
)

OPERATIONAL_PURCHASES = "operational"
OTHER_PURCHASES = "other"


@dataclass(frozen=True)
class DashboardAnalytics:
    """
    All analytics figures for one request.

    Attributes
    ----------
    window :
        The YearWindow every figure was computed against.
    monthly_totals :
        Current-year sales per month, Jan..Dec, zero-filled.
    year_over_year :
        Full-year comparison rows (see comparative.build_year_over_year).
    year_to_date :
        Same rows cut at the current month for every year.
    totals :
        Year-to-date sales of the current year against the previous one.
    quotes_totals :
        Same comparison for quoted amounts.
    credit_notes_totals :
        Same comparison for credit notes.
    net_totals :
        Year-to-date sales minus credit notes, current against previous.
    breakdown :
        Year-to-date sales by dimension, sorted by current-year value.
    top_clients :
        First ``top_n`` clients by year-to-date sales.
    top_suppliers :
        First ``top_n`` suppliers by year-to-date purchases and operational
        costs together.
    purchase_split :
        Operational purchases against other purchases (year to date).
    conversion :
        Quote-to-sale conversion rates by dimension.
    gross_margin :
        Year-to-date gross margin percentage of sales over purchases.
    growth :
        Month-over-month comparison keyed by ``sales``, ``purchases`` and
        ``margin`` (sales minus operational costs).
    pipeline :
        Current-year rows with ``quotes``, ``orders`` and ``invoices``.
    cost_ratios :
        Operational costs over sales for each of the last 12 months.
    forecast :
        Twelve ForecastPoint objects for the current year.
    forecast_total :
        Actual plus predicted sales of the current year.
    skipped :
        Logical table name -> records skipped while grouping.
    """

    window: YearWindow
    monthly_totals: list[GroupedPeriod]
    year_over_year: list[dict[Any, Any]]
    year_to_date: list[dict[Any, Any]]
    totals: TotalsComparison
    quotes_totals: TotalsComparison
    credit_notes_totals: TotalsComparison
    net_totals: TotalsComparison
    breakdown: list[DimensionBreakdown]
    top_clients: list[DimensionBreakdown]
    top_suppliers: list[DimensionBreakdown]
    purchase_split: list[DimensionBreakdown]
    conversion: list[ConversionRate]
    gross_margin: float
    growth: dict[str, TotalsComparison]
    pipeline: list[dict[str, Any]]
    cost_ratios: list[CostRatio]
    forecast: list[ForecastPoint]
    forecast_total: Decimal
    skipped: dict[str, int]


def open_source(config: AppConfig) -> SqlitePagedSource:
    """
    Open the SQLite database configured under ``[source] database``.

    Raises:
        ValueError: if no database is configured.
    """
    if config.source.database is None:
        raise ValueError(
            "No '[source] database' configured; pass a PagedSource instead."
        )
    return SqlitePagedSource(config.source.database)


def _fetch_all(
    config: AppConfig, source: PagedSource, window: YearWindow
) -> dict[str, list[FinancialRecord]]:
    """Fetch every logical table of the dashboard for the window."""
    data: dict[str, list[FinancialRecord]] = {}
    for name in FETCHED_TABLES:
        data[name] = fetch_window(
            window,
            source,
            config.table(name),
            page_size=config.source.page_size,
            concurrency=config.source.concurrency,
            dimension_field=config.dimension_for(name),
        )
    return data


def _compare_years(
    records: list[FinancialRecord], window: YearWindow, boundary: int
) -> TotalsComparison:
    """Year-to-date total of the current year against the previous one."""
    by_year = comparative.year_totals(
        records, [window.previous_year, window.current_year], boundary_month=boundary
    )
    return comparative.compare_totals(
        by_year[window.current_year], by_year[window.previous_year]
    )


def compute_dashboard(
    config: AppConfig,
    source: Optional[PagedSource] = None,
    today: Optional[date] = None,
) -> DashboardAnalytics:
    """
    Compute every dashboard figure for one request.

    Parameters
    ----------
    config :
        Application configuration. Uses:
        - years_back
        - source (database, tables, page_size, concurrency, dimension
          fields)
        - unassigned_label, allowed_dimensions, top_n
        - forecast (recent_weight, growth_damping)
        - locale
        - ratio_decimals
        - log_level
    source :
        The PagedSource holding the monthly views. Defaults to the
        configured SQLite database (see ``open_source``).
    today :
        Optional snapshot date; defaults to the current date.

    Returns
    -------
    DashboardAnalytics

    Raises
    ------
    SourceUnavailable
        If any page of any table cannot be fetched.
    ValueError
        If no source is passed and no database is configured.
    """
    if config.log_level:
        configure_logging(config.log_level)
    if source is None:
        source = open_source(config)

    window = YearWindow.ending_today(config.years_back, today)
    current_year = window.current_year
    boundary = window.current_month
    years = list(window.years)
    logger.info(
        "Computing dashboard for %s..%s (as of %s).",
        window.start_year,
        window.end_year,
        window.today.isoformat(),
    )

    data = _fetch_all(config, source, window)
    sales = data["sales"]
    skipped: dict[str, int] = {}

    # 1) Monthly totals and comparison tables
    monthly = group_by_month(sales, period_range=months_of_year(current_year))
    skipped["sales"] = monthly.skipped

    yoy = comparative.build_year_over_year(sales, years, locale=config.locale)
    ytd = comparative.build_year_over_year(
        sales, years, boundary_month=boundary, locale=config.locale
    )
    totals = _compare_years(sales, window, boundary)
    quotes_totals = _compare_years(data["quotes"], window, boundary)
    credit_notes_totals = _compare_years(data["credit_notes"], window, boundary)
    net_totals = comparative.compare_totals(
        totals.current - credit_notes_totals.current,
        totals.previous - credit_notes_totals.previous,
    )

    # 2) Breakdowns and conversion
    sales_by_dimension = breakdown.by_dimension(
        sales,
        years,
        boundary,
        unassigned_label=config.unassigned_label,
        allowed=config.allowed_dimensions,
    )
    top_clients = breakdown.top_n(
        breakdown.by_dimension(
            data["client_sales"],
            years,
            boundary,
            unassigned_label=config.unassigned_label,
        ),
        config.top_n,
    )
    top_suppliers = breakdown.top_n(
        breakdown.by_dimension(
            data["purchases"] + data["operational_costs"],
            years,
            boundary,
            unassigned_label=config.unassigned_label,
        ),
        config.top_n,
    )
    purchase_split = breakdown.split_by_source(
        {
            OPERATIONAL_PURCHASES: data["operational_costs"],
            OTHER_PURCHASES: data["purchases"],
        },
        years,
        boundary,
    )

    quote_counts = breakdown.by_dimension(
        data["quotes_counts"],
        years,
        boundary,
        field="transaction_count",
        unassigned_label=config.unassigned_label,
        allowed=config.allowed_dimensions,
    )
    sale_counts = breakdown.by_dimension(
        data["sales_counts"],
        years,
        boundary,
        field="transaction_count",
        unassigned_label=config.unassigned_label,
        allowed=config.allowed_dimensions,
    )
    rates = conversion.by_dimension(
        quote_counts, sale_counts, decimals=config.ratio_decimals
    )

    # 3) Margin, growth and costs
    purchases_ytd = comparative.year_totals(
        data["purchases"], [current_year], boundary_month=boundary
    )[current_year]
    gross_margin = conversion.margin_pct(
        totals.current, purchases_ytd, decimals=config.ratio_decimals
    )

    this_month = Period(window.today.year, window.today.month)
    sales_mom = comparative.month_over_month(sales, this_month)
    costs_mom = comparative.month_over_month(data["operational_costs"], this_month)
    growth = {
        "sales": sales_mom,
        "purchases": comparative.month_over_month(data["purchases"], this_month),
        "margin": comparative.compare_totals(
            sales_mom.current - costs_mom.current,
            sales_mom.previous - costs_mom.previous,
        ),
    }

    pipeline = comparative.build_pipeline(
        {"quotes": data["quotes"], "orders": data["orders"], "invoices": sales},
        current_year,
        locale=config.locale,
    )

    last_12 = last_n_months(12, window.today)
    sales_12 = group_by_month(sales, period_range=last_12)
    costs_12 = group_by_month(data["operational_costs"], period_range=last_12)
    skipped["operational_costs"] = costs_12.skipped
    cost_ratios = conversion.cost_to_sales(
        sales_12.groups, costs_12.groups, decimals=config.ratio_decimals
    )

    # 4) Forecast
    all_sales = group_by_month(sales).groups
    points = forecast.forecast_current_year(
        all_sales,
        all_sales,
        all_sales,
        current_year,
        as_of_month=boundary,
        recent_weight=Decimal(str(config.forecast.recent_weight)),
        growth_damping=Decimal(str(config.forecast.growth_damping)),
    )

    result = DashboardAnalytics(
        window=window,
        monthly_totals=monthly.groups,
        year_over_year=yoy,
        year_to_date=ytd,
        totals=totals,
        quotes_totals=quotes_totals,
        credit_notes_totals=credit_notes_totals,
        net_totals=net_totals,
        breakdown=sales_by_dimension,
        top_clients=top_clients,
        top_suppliers=top_suppliers,
        purchase_split=purchase_split,
        conversion=rates,
        gross_margin=gross_margin,
        growth=growth,
        pipeline=pipeline,
        cost_ratios=cost_ratios,
        forecast=points,
        forecast_total=forecast.year_total(points),
        skipped=skipped,
    )
    logger.info(
        "Dashboard computed: %d sales record(s), %d dimension value(s).",
        len(sales),
        len(sales_by_dimension),
    )
    return result
