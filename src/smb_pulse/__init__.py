# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB Pulse
---------

A monthly financial analytics engine for the dashboards of Small and
Medium-sized Businesses. It consumes pre-aggregated monthly rows (sales,
quotes, purchases, credit notes, operational costs) from a paged record
source and computes the figures behind the analytics pages.

Main capabilities:
- period codec between the ``MM/YYYY`` display form and ``YYYY-MM`` keys,
- paged, year-windowed fetching with bounded concurrency,
- monthly grouping with zero-filled period ranges,
- year-over-year and year-to-date comparison tables,
- breakdowns by department, person, supplier or client,
- conversion rates, gross margin and cost-to-sales ratios,
- a naive seasonal forecast of the rest of the current year,
- pandas DataFrame views for charts and CSV exports.

SMB Pulse separates fetching (sources, fetcher), computation (grouping,
comparative, breakdown, conversion, forecast), configuration (TOML) and
presentation (views).

Version: 0.1.0

Usage:
    from smb_pulse.analytics import compute_dashboard
"""

__all__ = [
    "analytics",
    "breakdown",
    "comparative",
    "config",
    "conversion",
    "fetcher",
    "forecast",
    "grouping",
    "periods",
    "records",
    "sources",
    "views",
]

__version__ = "0.1.0"
