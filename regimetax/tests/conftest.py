"""
Test configuration for the RegimeTax test suite.

sys.path is configured so 'from regimetax...' resolves whether pytest is run
from the project root or from inside regimetax/, installed or not.
"""
import sys
from pathlib import Path

import pytest

_package_dir = Path(__file__).parent.parent        # .../regimetax/
_project_root = _package_dir.parent               # .../

if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from regimetax.tax_config import load_tax_configuration  # noqa: E402


@pytest.fixture(scope="session")
def config():
    """The bundled FY 2025-26 table."""
    return load_tax_configuration()

