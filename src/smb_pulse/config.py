# SMB Pulse - Monthly financial analytics engine for SMB dashboards
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB Pulse.

This module is responsible for:
- loading the application configuration from a TOML file,
- providing defaults for every optional setting,
- exposing typed dataclasses used by the rest of the application.
"""

import tomllib  # Python 3.11+
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .breakdown import UNASSIGNED
from .fetcher import DEFAULT_PAGE_SIZE
from .periods import MONTH_NAMES

DEFAULT_TABLES: dict[str, str] = {
    "sales": "faturas_vendedor_monthly",
    "quotes": "orcamentos_vendedor_monthly",
    "sales_counts": "faturas_vendedor_monthly_count",
    "quotes_counts": "orcamentos_vendedor_monthly_count",
    "purchases": "listagem_compras_monthly",
    "operational_costs": "ne_fornecedor_monthly",
    "credit_notes": "notas_credito_monthly",
    "orders": "vendas_vendedor_monthly",
    "client_sales": "faturas_cliente_monthly",
}

# Logical tables whose breakdown dimension is not the default one.
DEFAULT_DIMENSION_FIELDS: dict[str, str] = {
    "client_sales": "client",
    "purchases": "supplier",
    "operational_costs": "supplier",
}


@dataclass(frozen=True)
class SourceConfig:
    """
    Record source settings.

    Attributes:
        page_size: Fixed page size used by the fetcher.
        concurrency: Maximum number of year windows fetched at once.
        database: Optional SQLite file holding the monthly views.
        tables: Logical name (sales, quotes, ...) -> source table/view.
        dimension_field: Raw column read as the breakdown dimension.
        dimension_fields: Per logical table overrides of dimension_field.
    """

    page_size: int = DEFAULT_PAGE_SIZE
    concurrency: int = 4
    database: Optional[Path] = None
    tables: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TABLES))
    dimension_field: Optional[str] = "department"
    dimension_fields: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_DIMENSION_FIELDS)
    )


@dataclass(frozen=True)
class ForecastConfig:
    """Blend parameters of the seasonal forecast."""

    recent_weight: float = 0.6
    growth_damping: float = 0.5


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB Pulse.

    This aggregates:
    - the analysed year window (number of years back from today),
    - the record source settings,
    - breakdown options (sentinel label, allowed dimension values,
      ranking length),
    - forecast blend parameters,
    - display options (month-name locale, rounding),
    - the default log level.
    """

    years_back: int = 2
    source: SourceConfig = field(default_factory=SourceConfig)
    unassigned_label: str = UNASSIGNED
    allowed_dimensions: Optional[tuple[str, ...]] = None
    top_n: int = 10
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    locale: str = "pt"
    ratio_decimals: int = 1
    amount_decimals: int = 2
    log_level: Optional[str] = None

    def table(self, name: str) -> str:
        """Source table for a logical name (e.g. ``"sales"``)."""
        try:
            return self.source.tables[name]
        except KeyError as exc:
            raise ValueError(f"No source table configured for {name!r}.") from exc

    def dimension_for(self, name: str) -> Optional[str]:
        """Raw column read as the dimension of a logical table."""
        return self.source.dimension_fields.get(name, self.source.dimension_field)


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _positive_int(value: Any, setting: str) -> int:
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{setting}' in the configuration. "
            "Expected an integer."
        ) from exc
    if result < 1:
        raise ValueError(f"'{setting}' must be a positive integer, got {result}.")
    return result


def _fraction(value: Any, setting: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{setting}' in the configuration. Expected a number."
        ) from exc
    if not 0.0 <= result <= 1.0:
        raise ValueError(f"'{setting}' must be between 0 and 1, got {result}.")
    return result


def _parse_source(raw: Mapping[str, Any], base_dir: Path) -> SourceConfig:
    source_section = _section(raw, "source")

    page_size = _positive_int(
        source_section.get("page_size", DEFAULT_PAGE_SIZE), "source.page_size"
    )
    concurrency = _positive_int(
        source_section.get("concurrency", 4), "source.concurrency"
    )

    database_raw = source_section.get("database")
    database = (base_dir / str(database_raw)).resolve() if database_raw else None

    tables = dict(DEFAULT_TABLES)
    for key, value in _section(source_section, "tables").items():
        if value:
            tables[str(key)] = str(value)

    dimension_raw = source_section.get("dimension_field", "department")
    dimension_field = str(dimension_raw) if dimension_raw else None

    dimension_fields = dict(DEFAULT_DIMENSION_FIELDS)
    for key, value in _section(source_section, "dimension_fields").items():
        if value:
            dimension_fields[str(key)] = str(value)

    return SourceConfig(
        page_size=page_size,
        concurrency=concurrency,
        database=database,
        tables=tables,
        dimension_field=dimension_field,
        dimension_fields=dimension_fields,
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB Pulse configuration from a TOML file.

    Expected sections (all optional)
    --------------------------------
    [window]
        years_back: number of years compared with the current one (2).

    [source]
        page_size, concurrency, database (SQLite path, relative to the
        config file), dimension_field.

    [source.tables]
        Logical table name -> source view name (sales, quotes,
        sales_counts, quotes_counts, purchases, operational_costs,
        credit_notes, orders, client_sales).

    [source.dimension_fields]
        Logical table name -> raw dimension column, overriding
        dimension_field (client_sales: client, purchases and
        operational_costs: supplier).

    [breakdown]
        unassigned_label, allowed_dimensions (list of strings; empty or
        absent means no restriction), top_n (10, length of the client and
        supplier rankings).

    [forecast]
        recent_weight (0.6), growth_damping (0.5).

    [display]
        locale ("pt" or "en"), ratio_decimals (1), amount_decimals (2).

    [logging]
        level ("INFO", "DEBUG", ...).

    Parameters
    ----------
    config_path :
        Path to the TOML file. Defaults to ``smb_pulse_config.toml`` in
        the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated configuration.
    """
    if config_path is None:
        config_file = Path("smb_pulse_config.toml").resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Window
    window_section = _section(raw, "window")
    try:
        years_back = int(window_section.get("years_back", 2))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'window.years_back' in the configuration. "
            "Expected an integer."
        ) from exc
    if years_back < 0:
        raise ValueError("'window.years_back' cannot be negative.")

    # 2) Source
    source = _parse_source(raw, base_dir)

    # 3) Breakdown
    breakdown_section = _section(raw, "breakdown")
    unassigned_label = str(breakdown_section.get("unassigned_label") or UNASSIGNED)
    allowed_raw = breakdown_section.get("allowed_dimensions") or []
    if not isinstance(allowed_raw, list):
        raise ValueError("'breakdown.allowed_dimensions' must be a list of strings.")
    allowed_dimensions = tuple(str(v) for v in allowed_raw) or None
    top_n = _positive_int(breakdown_section.get("top_n", 10), "breakdown.top_n")

    # 4) Forecast
    forecast_section = _section(raw, "forecast")
    forecast = ForecastConfig(
        recent_weight=_fraction(
            forecast_section.get("recent_weight", 0.6), "forecast.recent_weight"
        ),
        growth_damping=_fraction(
            forecast_section.get("growth_damping", 0.5), "forecast.growth_damping"
        ),
    )

    # 5) Display options
    display_section = _section(raw, "display")
    locale = str(display_section.get("locale", "pt"))
    if locale not in MONTH_NAMES:
        raise ValueError(f"Unsupported display locale: {locale!r}.")

    try:
        ratio_decimals = int(display_section.get("ratio_decimals", 1))
    except (TypeError, ValueError):
        ratio_decimals = 1
    try:
        amount_decimals = int(display_section.get("amount_decimals", 2))
    except (TypeError, ValueError):
        amount_decimals = 2

    # 6) Logging
    logging_section = _section(raw, "logging")
    level_raw = logging_section.get("level")
    log_level = str(level_raw) if level_raw else None

    return AppConfig(
        years_back=years_back,
        source=source,
        unassigned_label=unassigned_label,
        allowed_dimensions=allowed_dimensions,
        top_n=top_n,
        forecast=forecast,
        locale=locale,
        ratio_decimals=ratio_decimals,
        amount_decimals=amount_decimals,
        log_level=log_level,
    )
