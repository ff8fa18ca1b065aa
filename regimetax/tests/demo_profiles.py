"""
Demo profile fixtures for RegimeTax end-to-end tests — FY 2025-26

Three hand-computed profiles used by both the engine and the API tests.
All monetary tolerance: ±₹50 (consistent with pytest.approx(abs=50) in the suite).
"""
from __future__ import annotations
from typing import Any

from regimetax.profile.schemas import EmploymentPeriod, RentPeriod

_FULL_YEAR = dict(start_month=4, start_year=2025, end_month=3, end_year=2026)

# ---------------------------------------------------------------------------
# Profile 1: Arjun: ₹8L salary only, no other inputs
# ---------------------------------------------------------------------------
_ARJUN_PROFILE: dict[str, Any] = dict(
    age_category="below60",
    employment_periods=[dict(_FULL_YEAR, id="job-1", gross_salary=800_000)],
)
# OLD: gross=800000, std=50000, taxable=750000
# slab: 12500 (2.5-5L @5%) + 50000 (5-7.5L @20%) = 62500, no 87A (>5L), cess=2500, total=65000
# NEW: std=75000, taxable=725000, slab=16250, 87A rebate 16250 → 0
_ARJUN_EXPECTED: dict[str, Any] = dict(
    expected_old_tax=65_000,
    expected_new_tax=0,
    expected_regime="new",
    expected_savings=65_000,
)

# ---------------------------------------------------------------------------
# Profile 2: Priya: ₹15L gross, metro rent, partial deductions
# ---------------------------------------------------------------------------
_PRIYA_PROFILE: dict[str, Any] = dict(
    age_category="below60",
    employment_periods=[dict(
        _FULL_YEAR, id="job-1",
        gross_salary=1_500_000, basic_plus_da=600_000, hra_received=300_000,
    )],
    rent_periods=[dict(_FULL_YEAR, id="flat-1", amount=180_000, is_metro=True)],
    investments=[dict(type="ppf", amount=100_000)],
    health_insurance_self=20_000,
)
# HRA per month: least(25000, 50% × 50000 = 25000, 15000 - 5000 = 10000) = 10000 → 120000/year
# OLD: gross=1500000, exemptions=170000 (std50+hra120), deductions=120000 (80c100+80d20)
# taxable=1210000, slab: 12500+100000+63000=175500, cess=7020, total=182520
# NEW: std=75000, taxable=1425000 (>12L, no rebate, excess 225000 > tax so no relief)
# slab: 20000+40000+33750=93750, cess=3750, total=97500
_PRIYA_EXPECTED: dict[str, Any] = dict(
    expected_old_tax=182_520,
    expected_new_tax=97_500,
    expected_regime="new",
    expected_savings=85_020,
)

# ---------------------------------------------------------------------------
# Profile 3: Meera: senior citizen, interest income only, tie
# ---------------------------------------------------------------------------
_MEERA_PROFILE: dict[str, Any] = dict(
    age_category="60to80",
    fd_interest=400_000,
    savings_interest=60_000,
    health_insurance_self=50_000,
)
# OLD: gross=460000, 80D=50000 (senior limit), 80TTB=100000, taxable=310000
# slab (60to80): 5% × 10000 = 500, 87A rebate 500 → 0
# NEW: taxable=460000, slab=3000, 87A rebate → 0
_MEERA_EXPECTED: dict[str, Any] = dict(
    expected_old_tax=0,
    expected_new_tax=0,
    expected_regime="new",       # tie → New Regime
    expected_savings=0,
)

DEMO_PROFILES: dict[str, dict[str, Any]] = {
    "arjun": {"profile": _ARJUN_PROFILE, "expected": _ARJUN_EXPECTED},
    "priya": {"profile": _PRIYA_PROFILE, "expected": _PRIYA_EXPECTED},
    "meera": {"profile": _MEERA_PROFILE, "expected": _MEERA_EXPECTED},
}


# ---------------------------------------------------------------------------
# Builders for unit tests
# ---------------------------------------------------------------------------

def full_year_job(gross: float, basic: float = 0, hra: float = 0, **kwargs: Any) -> EmploymentPeriod:
    """One employment period covering April 2025 - March 2026."""
    return EmploymentPeriod(
        **_FULL_YEAR, gross_salary=gross, basic_plus_da=basic, hra_received=hra, **kwargs,
    )


def full_year_rent(amount: float, is_metro: bool = False) -> RentPeriod:
    return RentPeriod(**_FULL_YEAR, amount=amount, is_metro=is_metro)
