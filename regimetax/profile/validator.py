"""
Profile business-rule validator — FY 2025-26

Runs AFTER Pydantic structural validation has already passed. Unlike a
request validator it never raises: every finding is advisory and is returned
alongside the calculation, which always completes.

  warnings     unusual or auto-corrected values (the engine clamps them)
  hard_blocks  logically inconsistent input the user should fix; the result
               is still computed but may be misleading

Rules:
  Salary     Basic+DA above gross, Basic ratio outside 40-60%, EPF above
             2 × 12% of Basic, HRA above 50% of Basic, components > gross (block)
  Caps       80CCD(1B), employer NPS, preventive checkup, professional tax
  Benefits   gratuity without years of service, LTA claimed without LTA (block)
  Other      agricultural income partial integration, LTA taxable in New Regime
  Periods    month clamped into 1-12, end before start, outside the fiscal year,
             overlapping employment or rent periods

Only counts are logged, never amounts.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import List, Optional, Sequence

from regimetax.profile.schemas import UserTaxProfile, _Period
from regimetax.tax_config import TaxConfiguration, get_tax_configuration

logger = logging.getLogger(__name__)

# Heuristic thresholds for "unusual value" warnings (not statutory limits).
_EPF_RATE = 0.12
_EPF_TOLERANCE = 2
_BASIC_RATIO_LOW = 0.40
_BASIC_RATIO_HIGH = 0.60
_HRA_RATIO_HIGH = 0.50
_AGRICULTURAL_INTEGRATION_MIN = 5_000


@dataclass
class ValidationReport:
    warnings: List[str] = field(default_factory=list)
    hard_blocks: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.hard_blocks


def _label(kind: str, index: int, period: _Period) -> str:
    return f"{kind} {period.id or index + 1}"


def _check_periods(kind: str, periods: Sequence[_Period], fy_start: int, fy_end: int, report: ValidationReport) -> None:
    for i, period in enumerate(periods):
        name = _label(kind, i, period)
        for key, raw in period.clamped_months:
            bound = getattr(period, key)
            report.warnings.append(
                f"{name}: {key.replace('_', ' ')} {raw} is not a calendar month. Clamped to {bound}."
            )
        if period.end_index < period.start_index:
            report.warnings.append(
                f"{name} ends before it starts. It is treated as a single month."
            )
        if period.end_index < fy_start or period.start_index > fy_end:
            report.warnings.append(
                f"{name} lies entirely outside the fiscal year and is ignored for monthly calculations."
            )
    for (i, a), (j, b) in combinations(enumerate(periods), 2):
        if a.start_index <= b.end_index and b.start_index <= a.end_index:
            if kind == "Employment period":
                note = "Salaries for the overlapping months are added together."
            else:
                note = "Only the earlier-listed rent period counts for the overlapping months."
            report.warnings.append(
                f"{_label(kind, i, a)} and {_label(kind, j, b)} overlap. {note}"
            )


def validate_profile(
    profile: UserTaxProfile,
    config: Optional[TaxConfiguration] = None,
) -> ValidationReport:
    """
    Check a structurally valid profile against the business rules.

    Collects every finding in a single pass. Never raises.
    """
    config = config or get_tax_configuration()

    report = ValidationReport()
    rules = config.deductions
    fmt = "₹{:,.0f}".format

    # ---- Per employment period ----------------------------------------------
    for i, period in enumerate(profile.employment_periods):
        name = _label("Employment period", i, period)
        gross = period.gross_salary

        if period.basic_exceeds_gross:
            report.warnings.append(
                f"{name}: Basic+DA exceeded Gross Salary. Auto-adjusted to 50% of Gross."
            )
        basic = period.effective_basic

        max_epf = basic * _EPF_RATE
        if max_epf > 0 and period.epf_contribution > max_epf * _EPF_TOLERANCE:
            report.warnings.append(
                f"{name}: EPF contribution seems high (usually ~12% of Basic = {fmt(max_epf)}). Please verify."
            )

        if gross > 0 and period.component_total > gross:
            report.hard_blocks.append(
                f"{name}: total salary components ({fmt(period.component_total)}) exceed "
                f"Gross Salary ({fmt(gross)}). Please correct."
            )

        if gross > 0 and period.basic_plus_da > 0 and not period.basic_exceeds_gross:
            ratio = period.basic_plus_da / gross
            if ratio < _BASIC_RATIO_LOW:
                report.warnings.append(
                    f"{name}: Basic salary is {ratio:.0%} of gross (typical: 40-50%). Please verify your salary slip."
                )
            elif ratio > _BASIC_RATIO_HIGH:
                report.warnings.append(
                    f"{name}: Basic salary is {ratio:.0%} of gross (typical: 40-50%). Please verify."
                )

        if period.hra_received > 0 and basic > 0:
            hra_ratio = period.hra_received / basic
            if hra_ratio > _HRA_RATIO_HIGH:
                report.warnings.append(
                    f"{name}: HRA ({hra_ratio:.0%} of Basic) seems high. Typical range: 40-50% of Basic."
                )

    # ---- Caps the engine applies silently --------------------------------
    if profile.nps_extra_contribution > rules.section_80ccd1b_limit:
        report.warnings.append(
            f"80CCD(1B) contribution capped at {fmt(rules.section_80ccd1b_limit)}."
        )

    employer_rate = config.old_regime.employer_nps_rate[profile.employer_type]
    max_employer_nps = profile.basic_plus_da * employer_rate
    if max_employer_nps > 0 and profile.employer_nps_contribution > max_employer_nps:
        report.warnings.append(
            f"Employer NPS exceeds the {employer_rate:.0%} Old Regime limit. "
            f"Only {fmt(max_employer_nps)} will be allowed there."
        )

    checkup_limit = rules.section_80d.preventive_checkup_limit
    if profile.preventive_checkup > checkup_limit:
        report.warnings.append(f"Preventive health checkup capped at {fmt(checkup_limit)}.")

    if profile.professional_tax > rules.professional_tax_limit:
        report.warnings.append(
            f"Professional tax capped at {fmt(rules.professional_tax_limit)} (constitutional limit)."
        )

    # ---- Benefits / other income ------------------------------------------
    if profile.gratuity_received > 0 and profile.years_of_service == 0:
        report.warnings.append(
            "Gratuity calculation requires years of service. Please enter for accurate formula."
        )

    if profile.lta_actual_expenses > 0 and profile.lta_received == 0:
        report.hard_blocks.append(
            "You cannot claim LTA exemption without having LTA in salary. Enter LTA received."
        )

    if profile.agricultural_income > _AGRICULTURAL_INTEGRATION_MIN and profile.gross_salary > 0:
        report.warnings.append(
            "Note: Agricultural income > ₹5,000 may trigger partial integration, affecting tax rate."
        )

    if profile.lta_received > 0:
        report.warnings.append(
            "LTA exemption is only available in Old Regime. In New Regime, LTA is fully taxable."
        )

    # ---- Periods -------------------------------------------------------------
    months = config.fiscal_year.months()
    fy_start = months[0][1] * 12 + months[0][0]
    fy_end = months[-1][1] * 12 + months[-1][0]
    _check_periods("Employment period", profile.employment_periods, fy_start, fy_end, report)
    _check_periods("Rent period", profile.rent_periods, fy_start, fy_end, report)

    logger.debug(
        "Profile validated: %d warning(s), %d hard block(s)",
        len(report.warnings),
        len(report.hard_blocks),
    )
    return report

