"""
exemptions.py — Old regime salary exemptions (Section 10, Section 16, 57(iia)).

HRA — Section 10(13A), Rule 2A, monthly method:
  For each of the twelve fiscal-year months, every employment period active
  that month contributes its MONTHLY basic and HRA (period total ÷ period
  duration), and the first rent period active that month contributes its
  monthly rent (total ÷ duration). Exemption for the month is the least of:
      (1) HRA received
      (2) 50% (metro) / 40% (non-metro) of basic
      (3) rent − 10% of basic, floored at 0
  and the annual exemption is the sum of the monthly figures. Overlapping jobs
  are summed, not rejected (the validator flags them).

Retirement benefits (gratuity, leave encashment, VRS) and the allowances are
expected to be part of the gross salary entered; only the exempt portion is
subtracted here.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from regimetax.engine.calc_log import CalculationLog, fmt_inr
from regimetax.engine.schemas import ExemptionBreakdown, HRAMonth, LogCategory
from regimetax.profile.schemas import (
    EmployerType,
    EmploymentPeriod,
    RentPeriod,
    UserTaxProfile,
)
from regimetax.tax_config.schema import TaxConfiguration

logger = logging.getLogger(__name__)

_MONTH_NAMES = ("", "Jan", "Feb", "Mar", "Apr", "May", "Jun",
                "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def least_of(*values: float) -> float:
    return min(values)


# ===========================================================================
# HRA: monthly apportionment
# ===========================================================================

def active_rent_period(
    rent_periods: Sequence[RentPeriod], month: int, year: int
) -> Optional[RentPeriod]:
    """First rent period covering the month, if any."""
    for rent in rent_periods:
        if rent.is_active(month, year):
            return rent
    return None


def calculate_hra_exemption(
    employment_periods: Sequence[EmploymentPeriod],
    rent_periods: Sequence[RentPeriod],
    config: TaxConfiguration,
    log: Optional[CalculationLog] = None,
    log_channel: Optional[logging.Logger] = None,
) -> Tuple[float, List[HRAMonth]]:
    """
    Annual HRA exemption and its per-month breakdown.

    Returns (0, []) with an explanatory log entry when no rent or no HRA is
    entered anywhere. Never negative; each month never exceeds that month's HRA.
    """
    out = log_channel or logger
    rule = config.exemptions.hra

    total_rent = sum(r.amount for r in rent_periods)
    total_hra = sum(p.hra_received for p in employment_periods)

    if total_rent == 0:
        if log is not None:
            log.add(
                "Section 10(13A)", "HRA Exemption", 0,
                explanation="No rent payments entered. Add rent periods to claim the HRA exemption.",
                tax_saved=0,
                category=LogCategory.exemption,
            )
        return 0.0, []
    if total_hra == 0:
        if log is not None:
            log.add(
                "Section 10(13A)", "HRA Exemption", 0,
                explanation="No HRA component in salary. Enter HRA received for each employment period.",
                tax_saved=0,
                category=LogCategory.exemption,
            )
        return 0.0, []

    months: List[HRAMonth] = []
    total = 0.0
    for month, year in config.fiscal_year.months():
        jobs = [p for p in employment_periods if p.is_active(month, year)]
        rent = active_rent_period(rent_periods, month, year)
        if not jobs or rent is None:
            continue

        monthly_basic = sum(p.effective_basic / p.duration_months for p in jobs)
        monthly_hra = sum(p.hra_received / p.duration_months for p in jobs)
        monthly_rent = rent.amount / rent.duration_months
        if monthly_hra <= 0 or monthly_rent <= 0:
            continue

        pct = rule.metro_rate if rent.is_metro else rule.non_metro_rate
        exemption = max(0.0, least_of(
            monthly_hra,
            pct * monthly_basic,
            max(0.0, monthly_rent - rule.rent_excess_rate * monthly_basic),
        ))
        total += exemption
        months.append(HRAMonth(
            month=month,
            year=year,
            hra_received=monthly_hra,
            basic=monthly_basic,
            rent=monthly_rent,
            is_metro=rent.is_metro,
            exemption=exemption,
        ))

    out.debug("HRA: %d of 12 month(s) matched salary with rent", len(months))

    if log is not None:
        if total > 0:
            cities = sorted({"Metro" if m.is_metro else "Non-Metro" for m in months})
            first, last = months[0], months[-1]
            log.add(
                "Section 10(13A)",
                "HRA Exemption",
                total,
                explanation=(
                    "Exemption = least of (HRA received, 50%/40% of Basic, Rent − 10% of Basic) per month, "
                    f"{_MONTH_NAMES[first.month]} {first.year} to {_MONTH_NAMES[last.month]} {last.year} "
                    f"({len(months)} month(s)). "
                    f"Rent matched: {fmt_inr(sum(m.rent for m in months))} | "
                    f"HRA matched: {fmt_inr(sum(m.hra_received for m in months))} | "
                    f"City: {', '.join(cities)}."
                ),
                tax_saved=log.estimate_saving(total),
                category=LogCategory.exemption,
            )
        else:
            log.add(
                "Section 10(13A)", "HRA Exemption", 0,
                explanation=(
                    "No HRA exemption: no month has both an active employment period with HRA "
                    "and an active rent period. Check that the dates overlap."
                ),
                tax_saved=0,
                category=LogCategory.exemption,
            )
    return total, months


# ===========================================================================
# Allowance helpers (shared with the New regime where allowed)
# ===========================================================================

def transport_divyang_exemption(profile: UserTaxProfile, config: TaxConfiguration) -> float:
    """Section 10(14) transport allowance for a disabled employee, per-month limit × 12."""
    if not profile.is_divyang or profile.transport_allowance == 0:
        return 0.0
    return min(profile.transport_allowance, config.exemptions.transport_divyang_monthly * 12)


def _child_allowance(received: float, children: int, monthly: float, max_children: int) -> float:
    eligible = min(children, max_children)
    if received == 0 or eligible == 0:
        return 0.0
    return min(received, monthly * 12 * eligible)


def _gratuity(profile: UserTaxProfile, config: TaxConfiguration, log: CalculationLog) -> float:
    received = profile.gratuity_received
    if received == 0:
        return 0.0
    if profile.employer_type == EmployerType.government:
        log.add(
            "Section 10(10)", "Gratuity Exemption (Government)", received,
            explanation="Gratuity of a government employee is fully exempt.",
            tax_saved=log.estimate_saving(received),
            category=LogCategory.exemption,
        )
        return received

    rule = config.exemptions.gratuity
    years = profile.years_of_service or 1
    last_salary = profile.last_drawn_salary or profile.basic_plus_da / 12
    formula = last_salary * rule.days_factor * years / rule.month_days
    exempt = least_of(received, rule.limit, formula)
    log.add(
        "Section 10(10)", "Gratuity Exemption (Private)", exempt, cap=rule.limit,
        explanation=(
            f"Least of: actual {fmt_inr(received)}, limit {fmt_inr(rule.limit)}, "
            f"formula 15 × {years:g} yr × {fmt_inr(last_salary)} / 26 = {fmt_inr(formula)}."
        ),
        tax_saved=log.estimate_saving(exempt),
        category=LogCategory.exemption,
    )
    return exempt


def _leave_encashment(profile: UserTaxProfile, config: TaxConfiguration, log: CalculationLog) -> float:
    received = profile.leave_encashment_received
    if received == 0:
        return 0.0
    if profile.employer_type == EmployerType.government:
        log.add(
            "Section 10(10AA)", "Leave Encashment (Government)", received,
            explanation="Leave encashment of a government employee is fully exempt.",
            tax_saved=log.estimate_saving(received),
            category=LogCategory.exemption,
        )
        return received
    limit = config.exemptions.leave_encashment_limit
    exempt = min(received, limit)
    log.add(
        "Section 10(10AA)", "Leave Encashment (Private)", exempt, cap=limit,
        explanation=f"Private-sector limit {fmt_inr(limit)}. Actual {fmt_inr(received)}, exempt {fmt_inr(exempt)}.",
        tax_saved=log.estimate_saving(exempt),
        category=LogCategory.exemption,
    )
    return exempt


# ===========================================================================
# Old regime exemptions: public API
# ===========================================================================

def calculate_old_exemptions(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    log: CalculationLog,
    log_channel: Optional[logging.Logger] = None,
) -> ExemptionBreakdown:
    regime = config.old_regime
    rules = config.exemptions
    salary = profile.gross_salary

    # ---- Section 16(ia) standard deduction ----------------------------------
    standard = regime.standard_deduction if salary > 0 else 0.0
    if standard:
        log.add(
            "Section 16(ia)", "Standard Deduction", standard, cap=regime.standard_deduction,
            explanation=f"Automatic {fmt_inr(standard)} deduction for salaried individuals (Old Regime).",
            tax_saved=log.estimate_saving(standard),
            category=LogCategory.exemption,
        )

    # ---- Section 57(iia) family pension --------------------------------------
    family_pension = 0.0
    if profile.family_pension > 0:
        rule = regime.family_pension
        family_pension = least_of(rule.max_amount, profile.family_pension * rule.fraction)
        log.add(
            "Section 57(iia)", "Family Pension Deduction", family_pension, cap=rule.max_amount,
            explanation=f"Least of {fmt_inr(rule.max_amount)} or one-third of pension.",
            tax_saved=log.estimate_saving(family_pension),
            category=LogCategory.exemption,
        )

    # ---- Section 16(iii) professional tax ------------------------------------
    pt_limit = config.deductions.professional_tax_limit
    professional_tax = min(profile.professional_tax, pt_limit)
    if professional_tax > 0:
        log.add(
            "Section 16(iii)", "Professional Tax", professional_tax, cap=pt_limit,
            explanation="Professional tax paid to the state government, up to the constitutional limit.",
            tax_saved=log.estimate_saving(professional_tax),
            category=LogCategory.expense,
        )

    # ---- Section 10(13A) HRA --------------------------------------------------
    hra, hra_months = calculate_hra_exemption(
        profile.employment_periods, profile.rent_periods, config, log, log_channel,
    )

    # ---- Section 10(5) LTA -----------------------------------------------------
    lta = 0.0
    if profile.lta_received > 0:
        lta = least_of(profile.lta_received, profile.lta_actual_expenses)
        log.add(
            "Section 10(5)", "Leave Travel Allowance", lta,
            explanation=(
                f"Lower of LTA received ({fmt_inr(profile.lta_received)}) and actual travel "
                f"expenses ({fmt_inr(profile.lta_actual_expenses)})."
            ),
            tax_saved=log.estimate_saving(lta),
            category=LogCategory.exemption,
        )

    # ---- Section 16(ii) entertainment allowance (government only) -------------
    entertainment = 0.0
    if profile.employer_type == EmployerType.government and profile.entertainment_allowance > 0:
        rule = config.deductions.entertainment_allowance
        entertainment = least_of(
            profile.entertainment_allowance,
            profile.basic_plus_da * rule.basic_rate,
            rule.limit,
        )
        log.add(
            "Section 16(ii)", "Entertainment Allowance", entertainment, cap=rule.limit,
            explanation="Government employees only. Least of actual allowance, 20% of basic, or ₹5,000.",
            tax_saved=log.estimate_saving(entertainment),
            category=LogCategory.exemption,
        )

    # ---- Section 10(14) allowances ---------------------------------------------
    children_education = _child_allowance(
        profile.children_education_allowance,
        profile.number_of_children,
        rules.children_education.monthly_per_child,
        rules.children_education.max_children,
    )
    if children_education:
        log.add(
            "Section 10(14)", "Children Education Allowance", children_education,
            explanation=(
                f"₹{rules.children_education.monthly_per_child:,.0f}/month per child, "
                f"up to {rules.children_education.max_children} children."
            ),
            tax_saved=log.estimate_saving(children_education),
            category=LogCategory.exemption,
        )

    hostel = _child_allowance(
        profile.hostel_allowance,
        profile.number_of_children,
        rules.hostel.monthly_per_child,
        rules.hostel.max_children,
    )
    if hostel:
        log.add(
            "Section 10(14)", "Hostel Allowance", hostel,
            explanation=(
                f"₹{rules.hostel.monthly_per_child:,.0f}/month per child, "
                f"up to {rules.hostel.max_children} children."
            ),
            tax_saved=log.estimate_saving(hostel),
            category=LogCategory.exemption,
        )

    transport = transport_divyang_exemption(profile, config)
    if transport:
        log.add(
            "Section 10(14)", "Transport Allowance (Divyang)", transport,
            cap=rules.transport_divyang_monthly * 12,
            explanation=f"₹{rules.transport_divyang_monthly:,.0f}/month for a Divyang employee.",
            tax_saved=log.estimate_saving(transport),
            category=LogCategory.exemption,
        )

    # ---- Retirement benefits -------------------------------------------------
    vrs = min(profile.vrs_compensation, rules.vrs_limit)
    if vrs:
        log.add(
            "Section 10(10C)", "VRS Exemption", vrs, cap=rules.vrs_limit,
            explanation=f"VRS compensation exempt up to {fmt_inr(rules.vrs_limit)}.",
            tax_saved=log.estimate_saving(vrs),
            category=LogCategory.exemption,
        )
    gratuity = _gratuity(profile, config, log)
    leave_encashment = _leave_encashment(profile, config, log)

    parts = dict(
        standard_deduction=standard,
        family_pension_deduction=family_pension,
        professional_tax=professional_tax,
        hra=hra,
        lta=lta,
        entertainment_allowance=entertainment,
        children_education=children_education,
        hostel=hostel,
        transport_divyang=transport,
        vrs=vrs,
        gratuity=gratuity,
        leave_encashment=leave_encashment,
    )
    return ExemptionBreakdown(**parts, total=sum(parts.values()), hra_months=hra_months)
