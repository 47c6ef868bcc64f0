import pytest

from smb_pulse.config import DEFAULT_TABLES, AppConfig, load_app_config


def test_load_app_config_defaults(tmp_path) -> None:
    """An empty file gives the documented defaults."""
    cfg_file = tmp_path / "smb_pulse_config.toml"
    cfg_file.write_text("", encoding="utf-8")

    cfg = load_app_config(str(cfg_file))

    assert cfg.years_back == 2
    assert cfg.source.page_size == 1000
    assert cfg.source.concurrency == 4
    assert cfg.source.database is None
    assert cfg.source.tables == DEFAULT_TABLES
    assert cfg.source.dimension_field == "department"
    assert cfg.unassigned_label == "Unassigned"
    assert cfg.allowed_dimensions is None
    assert cfg.forecast.recent_weight == pytest.approx(0.6)
    assert cfg.forecast.growth_damping == pytest.approx(0.5)
    assert cfg.locale == "pt"
    assert cfg.ratio_decimals == 1
    assert cfg.amount_decimals == 2
    assert cfg.log_level is None


def test_load_app_config_full(tmp_path) -> None:
    cfg_file = tmp_path / "config.toml"
    cfg_file.write_text(
        """
[window]
years_back = 3

[source]
page_size = 500
concurrency = 2
database = "data/store.sqlite"
dimension_field = "vendedor"

[source.tables]
sales = "faturas_custom"

[breakdown]
unassigned_label = "Sem Departamento"
allowed_dimensions = ["Comercial", "Tecnico"]

[forecast]
recent_weight = 0.7
growth_damping = 0.25

[display]
locale = "en"
ratio_decimals = 2
amount_decimals = 0

[logging]
level = "DEBUG"
""",
        encoding="utf-8",
    )

    cfg = load_app_config(str(cfg_file))

    assert cfg.years_back == 3
    assert cfg.source.page_size == 500
    assert cfg.source.concurrency == 2
    assert cfg.source.database == (tmp_path / "data" / "store.sqlite").resolve()
    assert cfg.source.dimension_field == "vendedor"
    assert cfg.table("sales") == "faturas_custom"
    assert cfg.table("quotes") == DEFAULT_TABLES["quotes"]
    assert cfg.unassigned_label == "Sem Departamento"
    assert cfg.allowed_dimensions == ("Comercial", "Tecnico")
    assert cfg.forecast.recent_weight == pytest.approx(0.7)
    assert cfg.forecast.growth_damping == pytest.approx(0.25)
    assert cfg.locale == "en"
    assert cfg.ratio_decimals == 2
    assert cfg.amount_decimals == 0
    assert cfg.log_level == "DEBUG"


def test_default_config_file_in_working_directory(tmp_path, monkeypatch) -> None:
    (tmp_path / "smb_pulse_config.toml").write_text(
        "[window]\nyears_back = 1\n", encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)

    assert load_app_config().years_back == 1


def test_missing_config_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "nope.toml"))


def test_invalid_toml(tmp_path) -> None:
    cfg_file = tmp_path / "bad.toml"
    cfg_file.write_text("[window\nyears_back = ", encoding="utf-8")

    with pytest.raises(ValueError, match="Failed to parse TOML"):
        load_app_config(str(cfg_file))


@pytest.mark.parametrize(
    "content",
    [
        "[window]\nyears_back = -1\n",
        "[window]\nyears_back = 'two'\n",
        "[source]\npage_size = 0\n",
        "[source]\nconcurrency = 'many'\n",
        "[forecast]\nrecent_weight = 1.5\n",
        "[breakdown]\nallowed_dimensions = 'Sales'\n",
        "[display]\nlocale = 'fr'\n",
    ],
)
def test_invalid_values_raise(tmp_path, content) -> None:
    cfg_file = tmp_path / "config.toml"
    cfg_file.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_app_config(str(cfg_file))


def test_unknown_table_name() -> None:
    with pytest.raises(ValueError, match="No source table"):
        AppConfig().table("payroll")


def test_dimension_fields_and_top_n(tmp_path) -> None:
    cfg_file = tmp_path / "config.toml"
    cfg_file.write_text(
        """
[source]
dimension_field = "vendedor"

[source.dimension_fields]
client_sales = "nome_cliente"

[breakdown]
top_n = 5
""",
        encoding="utf-8",
    )

    cfg = load_app_config(str(cfg_file))

    assert cfg.top_n == 5
    assert cfg.dimension_for("client_sales") == "nome_cliente"
    assert cfg.dimension_for("purchases") == "supplier"
    assert cfg.dimension_for("sales") == "vendedor"
    assert AppConfig().top_n == 10
    assert AppConfig().dimension_for("operational_costs") == "supplier"


def test_top_n_must_be_positive(tmp_path) -> None:
    cfg_file = tmp_path / "config.toml"
    cfg_file.write_text("[breakdown]\ntop_n = 0\n", encoding="utf-8")

    with pytest.raises(ValueError, match="top_n"):
        load_app_config(str(cfg_file))
