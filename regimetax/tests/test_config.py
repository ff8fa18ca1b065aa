"""
Configuration table tests — the bundled FY 2025-26 table loads and validates,
and broken tables fail fast with TaxConfigurationError.
"""
from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from regimetax.profile.schemas import AgeCategory
from regimetax.tax_config import TaxConfigurationError, load_tax_configuration
from regimetax.tax_config.loader import BUNDLED_TABLE


def _write_table(tmp_path, mutate) -> str:
    data = json.loads(BUNDLED_TABLE.read_text(encoding="utf-8"))
    mutate(data)
    target = tmp_path / "table.json"
    target.write_text(json.dumps(data), encoding="utf-8")
    return str(target)


def test_bundled_table_loads(config) -> None:
    assert config.fiscal_year.label == "2025-26"
    assert config.fiscal_year.assessment_year == "2026-27"
    assert config.cess_rate == 0.04
    assert config.sale_year_cii == 376
    assert set(config.old_regime.slabs) == set(AgeCategory)


def test_fiscal_year_months(config) -> None:
    months = config.fiscal_year.months()
    assert len(months) == 12
    assert months[0] == (4, 2025)
    assert months[8] == (12, 2025)
    assert months[-1] == (3, 2026)


def test_configuration_is_immutable(config) -> None:
    with pytest.raises(ValidationError):
        config.cess_rate = 0.05


def test_load_is_cached(config) -> None:
    assert load_tax_configuration() is config


def test_missing_field_fails_fast(tmp_path) -> None:
    path = _write_table(tmp_path, lambda d: d.pop("cess_rate"))
    with pytest.raises(TaxConfigurationError, match="cess_rate"):
        load_tax_configuration(path)


def test_non_contiguous_slabs_rejected(tmp_path) -> None:
    def mutate(d):
        d["new_regime"]["slabs"][2]["min"] = 850_000

    with pytest.raises(TaxConfigurationError, match="contiguous"):
        load_tax_configuration(_write_table(tmp_path, mutate))


def test_missing_age_band_rejected(tmp_path) -> None:
    path = _write_table(tmp_path, lambda d: d["old_regime"]["slabs"].pop("above80"))
    with pytest.raises(TaxConfigurationError):
        load_tax_configuration(path)


def test_sale_year_must_be_indexed(tmp_path) -> None:
    path = _write_table(tmp_path, lambda d: d["capital_gains"]["cii"].pop("2025-26"))
    with pytest.raises(TaxConfigurationError, match="2025-26"):
        load_tax_configuration(path)


def test_unreadable_path(tmp_path) -> None:
    with pytest.raises(TaxConfigurationError, match="Cannot read"):
        load_tax_configuration(str(tmp_path / "missing.json"))


def test_rate_override(tmp_path) -> None:
    path = _write_table(tmp_path, lambda d: None)
    assert load_tax_configuration(path, 0.2).assumed_marginal_rate == 0.2
    with pytest.raises(TaxConfigurationError, match="between 0 and 1"):
        load_tax_configuration(path, 1.5)


def test_configuration_error_is_value_error() -> None:
    assert issubclass(TaxConfigurationError, ValueError)
