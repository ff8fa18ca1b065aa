from regimetax.tax_config.loader import (
    TaxConfigurationError,
    get_tax_configuration,
    load_tax_configuration,
)
from regimetax.tax_config.schema import TaxConfiguration

__all__ = [
    "TaxConfiguration",
    "TaxConfigurationError",
    "get_tax_configuration",
    "load_tax_configuration",
]
