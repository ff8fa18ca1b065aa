"""
schemas.py — engine-side Pydantic v2 data contracts.

Defines:
  - LogCategory, LogEntry          (audit trail entries)
  - IncomeBreakdown                (gross income by source)
  - HRAMonth, ExemptionBreakdown   (old regime salary exemptions)
  - PoolItem, DeductionBreakdown   (Chapter VI-A + regime deductions)
  - SlabLine, PropertyGain, CapitalGainsBreakdown
  - RegimeResult                   (full computation for one regime)
  - TaxResult                      (dual-regime comparison)

All amounts are the ACTUAL figures applied (after caps), not raw inputs.
Every model is frozen: a result is fully derived at construction and never
mutated afterwards.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Result(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# Calculation log
# ---------------------------------------------------------------------------

class LogCategory(str, Enum):
    """Display grouping for 'what saved you money' reporting."""
    investment = "investment"   # wealth-building (80C, NPS)
    expense = "expense"         # expense-based (insurance, loan interest)
    exemption = "exemption"     # automatic benefit (std deduction, HRA, rebate)
    donation = "donation"       # 80G / 80GGA / 80GGC
    neutral = "neutral"         # totals, informational lines, tax components


class LogEntry(_Result):
    section: str                      # e.g. "Section 80C"
    item: str                         # e.g. "80C Investment Pool"
    amount: float
    cap: Optional[float] = None       # statutory limit applied, None if unlimited / n.a.
    explanation: str = ""
    tax_saved: Optional[float] = None
    category: LogCategory = LogCategory.neutral


# ---------------------------------------------------------------------------
# Breakdowns
# ---------------------------------------------------------------------------

class IncomeBreakdown(_Result):
    salary: float = 0
    savings_interest: float = 0
    fd_interest: float = 0
    dividend: float = 0
    rental: float = 0                 # after 30% standard deduction (and let-out interest, new regime)
    family_pension: float = 0
    gifts: float = 0                  # all-or-nothing above the exempt limit
    other: float = 0
    total: float = 0


class HRAMonth(_Result):
    """One month of the HRA computation — the least of the three limits."""
    month: int
    year: int
    hra_received: float
    basic: float
    rent: float
    is_metro: bool
    exemption: float


class ExemptionBreakdown(_Result):
    """
    Old regime salary-level reductions (Section 10 / Section 16 / 57(iia)).
    New regime: every field is 0 — its few allowances live in DeductionBreakdown.
    """
    standard_deduction: float = 0
    family_pension_deduction: float = 0
    professional_tax: float = 0
    hra: float = 0
    lta: float = 0
    entertainment_allowance: float = 0
    children_education: float = 0
    hostel: float = 0
    transport_divyang: float = 0
    vrs: float = 0
    gratuity: float = 0
    leave_encashment: float = 0
    total: float = 0
    hra_months: List[HRAMonth] = Field(default_factory=list)


class PoolItem(_Result):
    """One contributor to the 80C pool, after any item-level cap."""
    key: str
    label: str
    amount: float


class DeductionBreakdown(_Result):
    """
    Itemised deductions applied in one regime.

    New regime: only standard_deduction, family_pension_deduction,
    section_80ccd2, section_80cch and transport_divyang can be non-zero.
    Old regime: standard deduction / family pension are reported under
    ExemptionBreakdown instead, so they are 0 here.
    """
    standard_deduction: float = 0
    family_pension_deduction: float = 0
    transport_divyang: float = 0
    section_80c: float = 0
    section_80c_items: List[PoolItem] = Field(default_factory=list)
    section_80ccd1b: float = 0
    section_80ccd2: float = 0
    section_80cch: float = 0
    section_80d: float = 0
    section_80dd: float = 0
    section_80ddb: float = 0
    section_80e: float = 0
    section_80ee: float = 0
    section_80eea: float = 0
    section_80eeb: float = 0
    section_80g: float = 0
    section_80ggc: float = 0
    section_80gga: float = 0
    section_80gg: float = 0
    section_80tta_ttb: float = 0
    section_80u: float = 0
    section_24b: float = 0
    total: float = 0


class SlabLine(_Result):
    """Tax on the portion of income inside one bracket. Zero-rate brackets are omitted."""
    label: str
    income: float
    rate: float
    tax: float


class PropertyGain(_Result):
    """Real-estate long-term gain, both methods shown when grandfathered."""
    raw_gain: float
    reinvestment_exemption: float
    grandfathered: bool
    flat_gain: float
    flat_tax: float
    indexed_cost: Optional[float] = None
    indexed_gain: Optional[float] = None
    indexed_tax: Optional[float] = None
    method: Literal["flat", "indexed"]
    tax: float


class CapitalGainsBreakdown(_Result):
    stcl_against_stcg: float = 0
    stcl_against_ltcg: float = 0
    ltcl_against_ltcg: float = 0
    unabsorbed_stcl: float = 0
    unabsorbed_ltcl: float = 0
    stcg_taxable: float = 0
    stcg_tax: float = 0
    ltcg_taxable: float = 0          # after the annual exemption
    ltcg_tax: float = 0
    real_estate: Optional[PropertyGain] = None
    total: float = 0

    @property
    def taxable_gains(self) -> float:
        """Gains actually charged: STCG, LTCG above the exemption, and the property gain under the chosen method."""
        gains = self.stcg_taxable + self.ltcg_taxable
        if self.real_estate is not None:
            prop = self.real_estate
            gains += prop.indexed_gain if prop.method == "indexed" else prop.flat_gain
        return gains


# ---------------------------------------------------------------------------
# RegimeResult: full tax calculation for one regime
# ---------------------------------------------------------------------------

class RegimeResult(_Result):
    """
    Complete tax computation for a single regime.

    Computation sequence (order determines correctness):
      1. gross_income   = sum of income sources
      2. exemptions     = Section 10 / 16 reductions (old regime)
      3. deductions     = Chapter VI-A + regime deductions
      4. taxable_income = max(0, gross - exemptions - deductions)
      5. slab_tax       → rebate (87A) → marginal_relief (new regime)
      6. surcharge      (with tier-boundary relief)
      7. cess           = cess_rate × (tax after rebate/relief + surcharge)
      8. capital_gains  computed independently, added after cess
      9. final_tax      = max(0, ... - section89_relief)
    """
    regime: Literal["old", "new"]
    age_category: str

    gross_income: IncomeBreakdown
    exemptions: ExemptionBreakdown
    deductions: DeductionBreakdown
    taxable_income: float

    slab_tax: float
    slab_breakdown: List[SlabLine] = Field(default_factory=list)
    rebate: float = 0
    marginal_relief: float = 0
    surcharge: float = 0
    surcharge_rate: float = 0
    surcharge_relief: float = 0
    cess: float = 0
    capital_gains: CapitalGainsBreakdown
    section89_relief: float = 0
    final_tax: float
    effective_rate: float = 0         # final_tax / (gross_income.total + capital_gains.taxable_gains)

    log: List[LogEntry] = Field(default_factory=list)

    @property
    def capital_gains_tax(self) -> float:
        return self.capital_gains.total


# ---------------------------------------------------------------------------
# TaxResult: regime comparison output
# ---------------------------------------------------------------------------

class SavingsGroup(_Result):
    """Log entries with a positive tax_saved, grouped by category."""
    category: LogCategory
    total_tax_saved: float
    entries: List[LogEntry]


class TaxResult(_Result):
    """
    Output of compare_regimes().

    recommended_regime is the strictly cheaper regime; ties go to "new".
    warnings / hard_blocks are advisory and never stop the calculation.
    """
    fiscal_year: str
    old_regime: RegimeResult
    new_regime: RegimeResult

    recommended_regime: Literal["old", "new"]
    savings_amount: float                # abs(old.final_tax - new.final_tax)
    rationale: str

    warnings: List[str] = Field(default_factory=list)
    hard_blocks: List[str] = Field(default_factory=list)

    # Separate lists: never merge these into a single field
    old_regime_suggestions: List[str] = Field(default_factory=list)
    new_regime_suggestions: List[str] = Field(default_factory=list)


__all__ = [
    "LogCategory",
    "LogEntry",
    "IncomeBreakdown",
    "HRAMonth",
    "ExemptionBreakdown",
    "PoolItem",
    "DeductionBreakdown",
    "SlabLine",
    "PropertyGain",
    "CapitalGainsBreakdown",
    "RegimeResult",
    "SavingsGroup",
    "TaxResult",
]
