"""
loader.py — load and validate the tax configuration table once.

Usage:
    from regimetax.tax_config import get_tax_configuration
    config = get_tax_configuration()

The bundled table is fy2025_26.json next to this module. settings.tax_config_path
overrides it; settings.assumed_marginal_rate overrides the table's estimate rate.
Loading is cached per (path, rate) so every request shares one frozen instance.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from regimetax.config import settings
from regimetax.tax_config.schema import TaxConfiguration

logger = logging.getLogger(__name__)

BUNDLED_TABLE = Path(__file__).with_name("fy2025_26.json")


class TaxConfigurationError(ValueError):
    """Raised when a configuration table is missing, unreadable or invalid."""


@lru_cache(maxsize=8)
def load_tax_configuration(
    path: Optional[str] = None,
    assumed_marginal_rate: Optional[float] = None,
) -> TaxConfiguration:
    """
    Read and validate a configuration table. Fails fast on any missing field.

    Args:
        path: JSON file to load. None → the bundled FY 2025-26 table.
        assumed_marginal_rate: Optional override for the tax-saved estimate rate.

    Raises:
        TaxConfigurationError: file unreadable or schema validation failed.
    """
    source = Path(path) if path else BUNDLED_TABLE
    try:
        raw = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise TaxConfigurationError(f"Cannot read tax configuration {source}: {exc}") from exc

    try:
        config = TaxConfiguration.model_validate_json(raw)
    except ValidationError as exc:
        raise TaxConfigurationError(
            f"Invalid tax configuration {source.name}: {exc.error_count()} error(s)\n{exc}"
        ) from exc

    if assumed_marginal_rate is not None:
        if not 0 <= assumed_marginal_rate <= 1:
            raise TaxConfigurationError(
                f"assumed_marginal_rate must be between 0 and 1, got {assumed_marginal_rate}"
            )
        config = config.model_copy(update={"assumed_marginal_rate": assumed_marginal_rate})

    logger.info(
        "Tax configuration loaded: FY %s (AY %s) from %s",
        config.fiscal_year.label,
        config.fiscal_year.assessment_year,
        source.name,
    )
    return config


def get_tax_configuration() -> TaxConfiguration:
    """The process-wide table, honouring settings overrides."""
    return load_tax_configuration(settings.tax_config_path, settings.assumed_marginal_rate)
