"""
schema.py — TaxConfiguration, the validated fiscal-year rule table.

Every constant the engine reads lives here, never inline in calculation code.
The table is frozen and extra='forbid': a JSON file with a missing or
misspelled field fails at load time, not halfway through a calculation.

Structural checks (model validators):
  - slab tables start at 0, are contiguous, strictly increasing, and end in
    an unbounded bracket (max = null)
  - every rate lies in [0, 1]
  - surcharge tiers are ordered and contiguous
  - every age category / disability level / employer type has an entry
  - CII keys look like "YYYY-YY"
"""
from __future__ import annotations

import re
from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from regimetax.profile.schemas import AgeCategory, DisabilityLevel, EmployerType

_FY_KEY = re.compile(r"^\d{4}-\d{2}$")

Rate = float


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Shared building blocks
# ---------------------------------------------------------------------------

class Slab(_Frozen):
    """Income bracket [min, max) taxed at `rate`. max=None means unbounded."""
    min: float = Field(..., ge=0)
    max: Optional[float] = None
    rate: Rate = Field(..., ge=0, le=1)

    @property
    def upper(self) -> float:
        return float("inf") if self.max is None else self.max

    @property
    def label(self) -> str:
        if self.max is None:
            return f"Above ₹{self.min:,.0f}"
        return f"₹{self.min:,.0f} – ₹{self.max:,.0f}"


def _check_slab_table(slabs: List[Slab]) -> List[Slab]:
    if not slabs:
        raise ValueError("slab table must not be empty")
    if slabs[0].min != 0:
        raise ValueError("first slab must start at 0")
    for lower, upper in zip(slabs, slabs[1:]):
        if lower.max is None:
            raise ValueError("only the last slab may be unbounded")
        if lower.max <= lower.min:
            raise ValueError(f"slab starting at {lower.min} is empty")
        if upper.min != lower.max:
            raise ValueError(f"slabs are not contiguous at {lower.max}")
    if slabs[-1].max is not None:
        raise ValueError("last slab must be unbounded (max = null)")
    return slabs


class SurchargeTier(_Frozen):
    """Applies when income > min (and <= max, if bounded)."""
    min: float = Field(..., gt=0)
    max: Optional[float] = None
    rate: Rate = Field(..., ge=0, le=1)

    @property
    def upper(self) -> float:
        return float("inf") if self.max is None else self.max


def _check_surcharge(tiers: List[SurchargeTier]) -> List[SurchargeTier]:
    for lower, upper in zip(tiers, tiers[1:]):
        if lower.max is None or upper.min != lower.max or upper.rate <= lower.rate:
            raise ValueError("surcharge tiers must be contiguous with rising rates")
    if tiers and tiers[-1].max is not None:
        raise ValueError("last surcharge tier must be unbounded (max = null)")
    return tiers


class FamilyPensionRule(_Frozen):
    max_amount: float = Field(..., ge=0)
    fraction: Rate = Field(..., ge=0, le=1)


class RebateRule(_Frozen):
    income_limit: float = Field(..., ge=0)
    max_rebate: float = Field(..., ge=0)


class MarginalReliefRule(_Frozen):
    threshold: float = Field(..., ge=0)
    band: float = Field(..., gt=0)


def _require_all(mapping: dict, enum_cls, what: str) -> dict:
    missing = [m.value for m in enum_cls if m not in mapping]
    if missing:
        raise ValueError(f"{what} missing entries for: {', '.join(missing)}")
    return mapping


# ---------------------------------------------------------------------------
# Regimes
# ---------------------------------------------------------------------------

class NewRegimeConfig(_Frozen):
    standard_deduction: float = Field(..., ge=0)
    family_pension: FamilyPensionRule
    slabs: List[Slab]
    rebate_87a: RebateRule
    marginal_relief: MarginalReliefRule
    surcharge: List[SurchargeTier]
    employer_nps_rate: Dict[EmployerType, Rate]

    @field_validator("slabs")
    @classmethod
    def validate_slabs(cls, v):
        return _check_slab_table(v)

    @field_validator("surcharge")
    @classmethod
    def validate_surcharge(cls, v):
        return _check_surcharge(v)

    @field_validator("employer_nps_rate")
    @classmethod
    def validate_employer_rates(cls, v):
        return _require_all(v, EmployerType, "employer_nps_rate")


class OldRegimeConfig(_Frozen):
    standard_deduction: float = Field(..., ge=0)
    family_pension: FamilyPensionRule
    slabs: Dict[AgeCategory, List[Slab]]
    rebate_87a: RebateRule
    surcharge: List[SurchargeTier]
    employer_nps_rate: Dict[EmployerType, Rate]

    @field_validator("surcharge")
    @classmethod
    def validate_surcharge(cls, v):
        return _check_surcharge(v)

    @field_validator("slabs")
    @classmethod
    def validate_slabs_per_age(cls, v):
        _require_all(v, AgeCategory, "old_regime.slabs")
        for table in v.values():
            _check_slab_table(table)
        return v

    @field_validator("employer_nps_rate")
    @classmethod
    def validate_employer_rates(cls, v):
        return _require_all(v, EmployerType, "employer_nps_rate")


# ---------------------------------------------------------------------------
# Deductions & exemptions
# ---------------------------------------------------------------------------

class Section80DRule(_Frozen):
    self_limit: Dict[AgeCategory, float]
    parents_limit: Dict[AgeCategory, float]
    preventive_checkup_limit: float = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_complete(self) -> "Section80DRule":
        _require_all(self.self_limit, AgeCategory, "section_80d.self_limit")
        _require_all(self.parents_limit, AgeCategory, "section_80d.parents_limit")
        return self


class Section80GRule(_Frozen):
    """
    Category lists hold DonationCategory values. Anything not listed falls
    into the default bucket: 50%, subject to the qualifying limit.
    """
    full_no_limit: List[str]
    half_no_limit: List[str]
    full_with_limit: List[str]
    qualifying_income_fraction: Rate = Field(..., ge=0, le=1)
    qualifying_limit_rate: Rate = Field(..., ge=0, le=1)
    cash_limit: float = Field(..., ge=0)


class Section80GGRule(_Frozen):
    annual_limit: float = Field(..., ge=0)
    income_rate: Rate = Field(..., ge=0, le=1)
    rent_excess_rate: Rate = Field(..., ge=0, le=1)


class EntertainmentAllowanceRule(_Frozen):
    basic_rate: Rate = Field(..., ge=0, le=1)
    limit: float = Field(..., ge=0)


class DeductionConfig(_Frozen):
    section_80c_limit: float = Field(..., ge=0)
    ppf_limit: float = Field(..., ge=0)
    nps_80ccd1_salary_rate: Rate = Field(..., ge=0, le=1)
    section_80ccd1b_limit: float = Field(..., ge=0)
    section_80d: Section80DRule
    section_80dd: Dict[DisabilityLevel, float]
    section_80u: Dict[DisabilityLevel, float]
    section_80ddb: Dict[AgeCategory, float]
    section_80ee_limit: float = Field(..., ge=0)
    section_80eea_limit: float = Field(..., ge=0)
    section_80eeb_limit: float = Field(..., ge=0)
    section_80g: Section80GRule
    section_80gga_cash_limit: float = Field(..., ge=0)
    section_80gg: Section80GGRule
    section_80tta_limit: float = Field(..., ge=0)
    section_80ttb_limit: float = Field(..., ge=0)
    section_24b_self_occupied_limit: float = Field(..., ge=0)
    professional_tax_limit: float = Field(..., ge=0)
    entertainment_allowance: EntertainmentAllowanceRule

    @model_validator(mode="after")
    def validate_complete(self) -> "DeductionConfig":
        _require_all(self.section_80dd, DisabilityLevel, "section_80dd")
        _require_all(self.section_80u, DisabilityLevel, "section_80u")
        _require_all(self.section_80ddb, AgeCategory, "section_80ddb")
        return self


class HRARule(_Frozen):
    metro_rate: Rate = Field(..., ge=0, le=1)
    non_metro_rate: Rate = Field(..., ge=0, le=1)
    rent_excess_rate: Rate = Field(..., ge=0, le=1)


class ChildAllowanceRule(_Frozen):
    monthly_per_child: float = Field(..., ge=0)
    max_children: int = Field(..., ge=0)


class GratuityRule(_Frozen):
    limit: float = Field(..., ge=0)
    days_factor: float = Field(..., gt=0)
    month_days: float = Field(..., gt=0)


class ExemptionConfig(_Frozen):
    hra: HRARule
    children_education: ChildAllowanceRule
    hostel: ChildAllowanceRule
    transport_divyang_monthly: float = Field(..., ge=0)
    vrs_limit: float = Field(..., ge=0)
    gratuity: GratuityRule
    leave_encashment_limit: float = Field(..., ge=0)


class IncomeConfig(_Frozen):
    rental_standard_deduction_rate: Rate = Field(..., ge=0, le=1)
    gift_exempt_limit: float = Field(..., ge=0)


class CapitalGainsConfig(_Frozen):
    stcg_equity_rate: Rate = Field(..., ge=0, le=1)
    ltcg_equity_rate: Rate = Field(..., ge=0, le=1)
    ltcg_equity_exemption: float = Field(..., ge=0)
    property_flat_rate: Rate = Field(..., ge=0, le=1)
    property_indexed_rate: Rate = Field(..., ge=0, le=1)
    grandfathering_cutoff: date
    section_54_limit: float = Field(..., ge=0)
    section_54ec_limit: float = Field(..., ge=0)
    cii: Dict[str, int]

    @field_validator("cii")
    @classmethod
    def validate_cii(cls, v: Dict[str, int]) -> Dict[str, int]:
        if not v:
            raise ValueError("cii table must not be empty")
        bad = [k for k in v if not _FY_KEY.match(k)]
        if bad:
            raise ValueError(f"cii keys must look like 'YYYY-YY': {bad}")
        if any(val <= 0 for val in v.values()):
            raise ValueError("cii values must be positive")
        return v

    @property
    def earliest_cii(self) -> int:
        return self.cii[min(self.cii)]


# ---------------------------------------------------------------------------
# TaxConfiguration: root
# ---------------------------------------------------------------------------

class FiscalYear(_Frozen):
    label: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    assessment_year: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    start_year: int
    start_month: int = Field(..., ge=1, le=12)

    def months(self) -> List[tuple[int, int]]:
        """The twelve (month, year) pairs of the fiscal year, in order."""
        out: List[tuple[int, int]] = []
        month, year = self.start_month, self.start_year
        for _ in range(12):
            out.append((month, year))
            month += 1
            if month > 12:
                month, year = 1, year + 1
        return out

    def key_for(self, d: date) -> str:
        """Fiscal-year key ("YYYY-YY") containing the given date."""
        start = d.year if d.month >= self.start_month else d.year - 1
        return f"{start}-{str(start + 1)[-2:]}"


class TaxConfiguration(_Frozen):
    """Immutable rule table for one fiscal year. Loaded once, shared freely."""
    fiscal_year: FiscalYear
    cess_rate: Rate = Field(..., ge=0, le=1)
    assumed_marginal_rate: Rate = Field(..., ge=0, le=1)
    new_regime: NewRegimeConfig
    old_regime: OldRegimeConfig
    deductions: DeductionConfig
    exemptions: ExemptionConfig
    income: IncomeConfig
    capital_gains: CapitalGainsConfig

    @model_validator(mode="after")
    def validate_sale_year_indexed(self) -> "TaxConfiguration":
        if self.fiscal_year.label not in self.capital_gains.cii:
            raise ValueError(
                f"cii table has no entry for the fiscal year {self.fiscal_year.label}"
            )
        return self

    @property
    def sale_year_cii(self) -> int:
        return self.capital_gains.cii[self.fiscal_year.label]


__all__ = [
    "Slab",
    "SurchargeTier",
    "NewRegimeConfig",
    "OldRegimeConfig",
    "DeductionConfig",
    "ExemptionConfig",
    "IncomeConfig",
    "CapitalGainsConfig",
    "FiscalYear",
    "TaxConfiguration",
]
