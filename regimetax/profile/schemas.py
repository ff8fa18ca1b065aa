"""
schemas.py — profile-side Pydantic v2 data contracts.

Defines:
  - AgeCategory, EmployerType, DisabilityLevel, PaymentMode,
    InvestmentType, DonationCategory enums
  - EmploymentPeriod, RentPeriod, Investment80C, Donation  (list entries)
  - UserTaxProfile  (the central input contract — the engine consumes only this)
  - ErrorDetail, ErrorBody, ErrorResponse  (cross-cutting error envelope)

Amount coercion:
  Every monetary field passes through to_amount() BEFORE type validation, so
  blanks, None, non-numeric strings, NaN and negatives all become 0. The engine
  never sees an invalid number and never raises on a well-typed profile.

Identity:
  List entries carry an optional caller-supplied `id`. The engine never mints
  IDs; it only echoes them back in log explanations.
"""
from __future__ import annotations

import math
from datetime import date
from enum import Enum
from typing import Annotated, Any, List, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PrivateAttr, model_validator


# ---------------------------------------------------------------------------
# Amount coercion
# ---------------------------------------------------------------------------

def to_amount(value: Any) -> float:
    """
    Coerce a raw monetary input to a non-negative float.
    Absent or non-numeric → 0. Negative, NaN or infinite → 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.replace(",", "").strip()
        if not value:
            return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        return 0.0
    return amount


def _to_count(value: Any) -> int:
    return int(to_amount(value))


def _whole_number(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return None


def _to_date(value: Any) -> Any:
    """Unparseable dates are treated as absent rather than rejected."""
    if value in (None, ""):
        return None
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return value


Amount = Annotated[float, BeforeValidator(to_amount)]
Count = Annotated[int, BeforeValidator(_to_count)]
LenientDate = Annotated[Optional[date], BeforeValidator(_to_date)]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class AgeCategory(str, Enum):
    below_60 = "below60"
    sixty_to_80 = "60to80"
    above_80 = "above80"

    @property
    def is_senior(self) -> bool:
        return self is not AgeCategory.below_60


class EmployerType(str, Enum):
    private = "private"
    government = "government"
    psu = "psu"


class DisabilityLevel(str, Enum):
    moderate = "40to79"     # 40–79% certified disability
    severe = "80plus"       # 80% or more


class PaymentMode(str, Enum):
    online = "online"
    cheque = "cheque"
    cash = "cash"


class InvestmentType(str, Enum):
    """Section 80C instruments accepted in the investments list."""
    ppf = "ppf"
    elss = "elss"
    life_insurance = "life_insurance"
    nsc = "nsc"
    scss = "scss"
    tax_saver_fd = "tax_saver_fd"
    sukanya_samriddhi = "sukanya_samriddhi"
    tuition_fees = "tuition_fees"
    stamp_duty = "stamp_duty"


class DonationCategory(str, Enum):
    # 80G: 100%, no qualifying limit
    pm_relief_fund = "pm_relief_fund"
    national_defence_fund = "national_defence_fund"
    cm_relief_fund = "cm_relief_fund"
    national_childrens_fund = "national_childrens_fund"
    africa_fund = "africa_fund"
    # 80G: 50%, no qualifying limit
    pm_drought_fund = "pm_drought_fund"
    jawahar_nehru_fund = "jawahar_nehru_fund"
    # 80G: 100%, subject to qualifying limit
    approved_university = "approved_university"
    # 80G: 50%, subject to qualifying limit (also the default)
    charity_trust = "charity_trust"
    ngo = "ngo"
    temple = "temple"
    other = "other"
    # Routed to their own sections
    political_party = "political_party"        # 80GGC
    approved_research = "approved_research"    # 80GGA


# ---------------------------------------------------------------------------
# List entries
# ---------------------------------------------------------------------------

class _Period(BaseModel):
    """
    Inclusive month interval. Month numbers are calendar months (1–12).

    A whole-number month outside 1–12 is clamped to the nearest bound rather
    than rejected; the original values are kept in `clamped_months` so the
    validator can report them.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Optional[str] = None
    start_month: int = Field(..., ge=1, le=12)
    start_year: int
    end_month: int = Field(..., ge=1, le=12)
    end_year: int

    _clamped_months: Tuple[Tuple[str, int], ...] = PrivateAttr(default=())

    @model_validator(mode="wrap")
    @classmethod
    def clamp_months(cls, data: Any, handler: Any) -> Any:
        clamped = []
        if isinstance(data, dict):
            data = dict(data)
            for key in ("start_month", "end_month"):
                raw = _whole_number(data.get(key))
                if raw is not None and not 1 <= raw <= 12:
                    data[key] = min(12, max(1, raw))
                    clamped.append((key, raw))
        period = handler(data)
        if clamped:
            period._clamped_months = tuple(clamped)
        return period

    @property
    def clamped_months(self) -> Tuple[Tuple[str, int], ...]:
        """(field, value as given) for every month that was pulled into 1–12."""
        return self._clamped_months

    @property
    def start_index(self) -> int:
        return self.start_year * 12 + self.start_month

    @property
    def end_index(self) -> int:
        return self.end_year * 12 + self.end_month

    @property
    def duration_months(self) -> int:
        """Number of months covered; zero or inverted periods count as 1."""
        return max(1, self.end_index - self.start_index + 1)

    def is_active(self, month: int, year: int) -> bool:
        return self.start_index <= year * 12 + month <= self.end_index


class EmploymentPeriod(_Period):
    """
    One job interval within the fiscal year. All amounts are totals for the
    whole period, not monthly. Periods may overlap; overlapping salaries are
    summed and flagged by the validator.
    """
    gross_salary: Amount = 0
    basic_plus_da: Amount = Field(
        default=0,
        description="Basic + DA for the period. 0 means 'not provided' → 50% of gross.",
    )
    hra_received: Amount = 0
    epf_contribution: Amount = 0
    employer_nps_contribution: Amount = 0
    bonus: Amount = 0
    special_allowance: Amount = 0
    lta_received: Amount = 0
    telephone_reimbursement: Amount = 0
    books_reimbursement: Amount = 0
    fuel_reimbursement: Amount = 0

    @property
    def basic_exceeds_gross(self) -> bool:
        return self.gross_salary > 0 and self.basic_plus_da > self.gross_salary

    @property
    def effective_basic(self) -> float:
        """Basic + DA used by every calculation: 50% of gross when absent or above gross."""
        if self.basic_plus_da <= 0 or self.basic_exceeds_gross:
            return self.gross_salary * 0.5
        return self.basic_plus_da

    @property
    def component_total(self) -> float:
        return (
            self.basic_plus_da
            + self.hra_received
            + self.bonus
            + self.special_allowance
            + self.lta_received
            + self.telephone_reimbursement
            + self.books_reimbursement
            + self.fuel_reimbursement
        )


class RentPeriod(_Period):
    """Tenancy interval. `amount` is the TOTAL rent paid over the period."""
    amount: Amount = 0
    is_metro: bool = False


class Investment80C(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Optional[str] = None
    type: InvestmentType
    amount: Amount = 0


class Donation(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: Optional[str] = None
    category: DonationCategory = DonationCategory.other
    amount: Amount = 0
    payment_mode: PaymentMode = PaymentMode.online


# ---------------------------------------------------------------------------
# UserTaxProfile: central input contract
# ---------------------------------------------------------------------------

class UserTaxProfile(BaseModel):
    """
    Complete input for one calculation run (both regimes).

    All monetary fields are annual INR unless stated otherwise.
    Salary figures come from employment_periods; the scalar fields cover
    everything that is not tied to a job interval.

    extra='forbid' ensures unknown fields from client requests cause a 422 error.
    """
    model_config = ConfigDict(extra="forbid")

    # --- Personal ---
    age_category: AgeCategory = AgeCategory.below_60
    employer_type: EmployerType = EmployerType.private
    parents_age_category: AgeCategory = AgeCategory.below_60

    # --- Salary & housing ---
    employment_periods: List[EmploymentPeriod] = Field(default_factory=list)
    rent_periods: List[RentPeriod] = Field(default_factory=list)
    professional_tax: Amount = 0
    lta_actual_expenses: Amount = 0
    entertainment_allowance: Amount = 0
    children_education_allowance: Amount = 0
    hostel_allowance: Amount = 0
    number_of_children: Count = 0
    transport_allowance: Amount = 0
    is_divyang: bool = False

    # --- Retirement benefits (Section 10) ---
    gratuity_received: Amount = 0
    years_of_service: Amount = 0
    last_drawn_salary: Amount = Field(
        default=0,
        description="Last drawn MONTHLY salary (Basic + DA) for the gratuity formula.",
    )
    leave_encashment_received: Amount = 0
    vrs_compensation: Amount = 0

    # --- Other income sources ---
    savings_interest: Amount = 0
    fd_interest: Amount = 0
    dividend_income: Amount = 0
    rental_income: Amount = 0
    family_pension: Amount = 0
    non_relative_gifts: Amount = 0
    agricultural_income: Amount = 0
    other_income: Amount = 0

    # --- 80C pool (scalar members; the rest arrive via `investments`) ---
    investments: List[Investment80C] = Field(default_factory=list)
    home_loan_principal: Amount = 0
    nps_contribution: Amount = Field(default=0, description="Employee NPS under 80CCD(1), inside the 80C pool.")

    # --- Other Chapter VI-A ---
    nps_extra_contribution: Amount = Field(default=0, description="Additional NPS under 80CCD(1B).")
    agniveer_contribution: Amount = 0
    health_insurance_self: Amount = 0
    health_insurance_parents: Amount = 0
    preventive_checkup: Amount = 0
    dependent_disability: Optional[DisabilityLevel] = None
    self_disability: Optional[DisabilityLevel] = None
    specified_disease_expenses: Amount = 0
    education_loan_interest: Amount = 0
    section_80ee_interest: Amount = 0
    section_80eea_interest: Amount = 0
    section_80eeb_interest: Amount = 0
    donations: List[Donation] = Field(default_factory=list)
    scientific_research_donation: Amount = 0
    scientific_research_payment_mode: PaymentMode = PaymentMode.online

    # --- House property ---
    home_loan_interest: Amount = 0
    is_property_let_out: bool = False

    # --- Capital gains ---
    stcg_equity: Amount = 0
    ltcg_equity: Amount = 0
    stcl_carry_forward: Amount = 0
    ltcl_carry_forward: Amount = 0
    real_estate_sale_value: Amount = 0
    real_estate_purchase_value: Amount = 0
    real_estate_purchase_date: LenientDate = None
    real_estate_transfer_expenses: Amount = 0
    investment_sec54: Amount = 0
    investment_sec54ec: Amount = 0
    capital_gain_deposit: Amount = 0

    # --- Reliefs ---
    section89_relief: Amount = 0

    # ------------------------------------------------------------------
    # Aggregates across employment periods
    # ------------------------------------------------------------------

    @property
    def gross_salary(self) -> float:
        return sum(p.gross_salary for p in self.employment_periods)

    @property
    def basic_plus_da(self) -> float:
        """Total Basic + DA; periods without a figure default to 50% of their gross."""
        return sum(p.effective_basic for p in self.employment_periods)

    @property
    def hra_received(self) -> float:
        return sum(p.hra_received for p in self.employment_periods)

    @property
    def epf_contribution(self) -> float:
        return sum(p.epf_contribution for p in self.employment_periods)

    @property
    def employer_nps_contribution(self) -> float:
        return sum(p.employer_nps_contribution for p in self.employment_periods)

    @property
    def lta_received(self) -> float:
        return sum(p.lta_received for p in self.employment_periods)

    def investment_total(self, investment_type: InvestmentType) -> float:
        return sum(i.amount for i in self.investments if i.type == investment_type)


# ---------------------------------------------------------------------------
# Error response models: used by main.py exception handlers (cross-cutting)
# ---------------------------------------------------------------------------

class ErrorDetail(BaseModel):
    """Single field-level validation error."""
    model_config = ConfigDict(extra="forbid")

    field: Optional[str] = None   # Dot-notation field path, e.g. "employment_periods.0.start_month"
    issue: str


class ErrorBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str                                      # VALIDATION_ERROR, NOT_FOUND, etc.
    message: str
    details: List[ErrorDetail] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    Standard error response format for all endpoints.

    Structure: {"error": {"code": "...", "message": "...", "details": [...]}}
    """
    model_config = ConfigDict(extra="forbid")

    error: ErrorBody


__all__ = [
    "to_amount",
    "Amount",
    "AgeCategory",
    "EmployerType",
    "DisabilityLevel",
    "PaymentMode",
    "InvestmentType",
    "DonationCategory",
    "EmploymentPeriod",
    "RentPeriod",
    "Investment80C",
    "Donation",
    "UserTaxProfile",
    "ErrorDetail",
    "ErrorBody",
    "ErrorResponse",
]
