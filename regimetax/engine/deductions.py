"""
deductions.py — Chapter VI-A and regime-level deductions, as plain functions.

Old regime
  80C pool (one shared cap over many items) → 80CCD(1B) → 80CCD(2) → 80D →
  80DD → 80DDB → 80E → 80EE → 80EEA → 80EEB → 80CCH → 80G → 80GGC → 80GGA →
  80GG → 80TTA/80TTB → 80U → 24(b), closed by a "Total Deductions" entry.

New regime
  Standard deduction, family pension, 80CCD(2) employer NPS, 80CCH Agniveer,
  transport allowance (Divyang). Nothing else is admissible.

Every function clamps its input, applies its cap, and appends to the run's
CalculationLog. None of them raise: a disallowed contribution (cash above a
limit, 80EEA after 80EE) is zeroed with an explanatory log entry.
"""
from __future__ import annotations

from typing import Dict, List, Tuple

from regimetax.engine.calc_log import CalculationLog, fmt_inr
from regimetax.engine.exemptions import active_rent_period, transport_divyang_exemption
from regimetax.engine.schemas import DeductionBreakdown, LogCategory, PoolItem
from regimetax.profile.schemas import (
    DisabilityLevel,
    DonationCategory,
    InvestmentType,
    PaymentMode,
    UserTaxProfile,
)
from regimetax.tax_config.schema import TaxConfiguration

_DISABILITY_LABEL = {
    DisabilityLevel.moderate: "Normal (40-79%)",
    DisabilityLevel.severe: "Severe (80%+)",
}

# Order of the 80C pool members in the breakdown and the log.
_80C_INSTRUMENTS: Tuple[Tuple[InvestmentType, str, str], ...] = (
    (InvestmentType.ppf, "ppf", "PPF Contribution"),
    (InvestmentType.elss, "elss", "ELSS Mutual Funds"),
    (InvestmentType.life_insurance, "lic", "Life Insurance Premium"),
    (InvestmentType.nsc, "nsc", "NSC Investment"),
    (InvestmentType.scss, "scss", "Senior Citizens Savings Scheme"),
    (InvestmentType.tax_saver_fd, "fd", "Tax Saver FD (5-year)"),
    (InvestmentType.sukanya_samriddhi, "ssy", "Sukanya Samriddhi Yojana"),
    (InvestmentType.tuition_fees, "tuition", "Tuition Fees (max 2 children)"),
)


# ===========================================================================
# 80C pool
# ===========================================================================

def calculate_80c_pool(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    log: CalculationLog,
) -> Tuple[float, List[PoolItem], float]:
    """
    Sum every 80C member, apply the item-level caps (PPF, NPS 80CCD(1)),
    then the shared pool cap.

    Returns (capped_total, items, raw_total). capped_total never exceeds
    the pool limit however many members are populated.
    """
    rules = config.deductions
    items: List[PoolItem] = []

    def member(key: str, label: str, amount: float) -> None:
        if amount > 0:
            items.append(PoolItem(key=key, label=label, amount=amount))

    member("epf", "EPF Contribution", profile.epf_contribution)
    for inv_type, key, label in _80C_INSTRUMENTS:
        amount = profile.investment_total(inv_type)
        if inv_type == InvestmentType.ppf:
            amount = min(amount, rules.ppf_limit)
        member(key, label, amount)

    # Scalar members follow the listed instruments
    member("principal", "Home Loan Principal", profile.home_loan_principal)
    member(
        "nps",
        "NPS Tier-1 (80CCD(1))",
        min(
            profile.nps_contribution,
            profile.gross_salary * rules.nps_80ccd1_salary_rate,
            rules.section_80c_limit,
        ),
    )
    member("stamp", "Stamp Duty & Registration", profile.investment_total(InvestmentType.stamp_duty))

    raw_total = sum(i.amount for i in items)
    limit = rules.section_80c_limit
    total = min(raw_total, limit)

    if items:
        listing = ", ".join(f"{i.label}: {fmt_inr(i.amount)}" for i in items)
        log.add(
            "Section 80C",
            "80C Investment Pool",
            total,
            cap=limit,
            explanation=(
                f"Combined investments: {listing}. "
                f"Total: {fmt_inr(raw_total)}, capped at: {fmt_inr(limit)}."
            ),
            tax_saved=log.estimate_saving(total),
            category=LogCategory.investment,
        )
    return total, items, raw_total


# ===========================================================================
# Category-specific items
# ===========================================================================

def calculate_80d(profile: UserTaxProfile, config: TaxConfiguration, log: CalculationLog) -> float:
    """
    Health insurance. The preventive checkup (itself capped) counts towards
    the self/family limit; it is not an extra allowance.
    """
    rule = config.deductions.section_80d
    self_limit = rule.self_limit[profile.age_category]
    parents_limit = rule.parents_limit[profile.parents_age_category]

    checkup = min(profile.preventive_checkup, rule.preventive_checkup_limit)
    self_claim = min(profile.health_insurance_self + checkup, self_limit)
    parents_claim = min(profile.health_insurance_parents, parents_limit)
    total = self_claim + parents_claim

    if profile.health_insurance_self > 0 or profile.health_insurance_parents > 0 or checkup > 0:
        log.add(
            "Section 80D",
            "Health Insurance Premium",
            total,
            cap=self_limit + parents_limit,
            explanation=(
                f"Self/Family: {fmt_inr(self_claim)} (limit {fmt_inr(self_limit)}). "
                f"Parents: {fmt_inr(parents_claim)} (limit {fmt_inr(parents_limit)}). "
                f"Preventive checkup {fmt_inr(checkup)} included within limits."
            ),
            tax_saved=log.estimate_saving(total),
            category=LogCategory.expense,
        )
    return total


def _cash_rejected(log: CalculationLog, section: str, item: str, amount: float, limit: float) -> None:
    log.add(
        section,
        item,
        0,
        cap=limit,
        explanation=(
            f"Cash donation of {fmt_inr(amount)} exceeds the {fmt_inr(limit)} cash limit. "
            "Not eligible for deduction; pay by cheque or online."
        ),
        tax_saved=0,
        category=LogCategory.donation,
    )


def calculate_80g(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    gross_total_income: float,
    log: CalculationLog,
) -> float:
    """
    Charitable donations. Political-party and research donations are routed
    to 80GGC / 80GGA and skipped here.

    Limited categories are pooled (after their 50%/100% factor) and the pool
    is capped at 10% of adjusted gross total income, approximated as 90% of
    gross total income. Unlimited categories bypass the pool.
    """
    rule = config.deductions.section_80g
    qualifying_limit = gross_total_income * rule.qualifying_income_fraction * rule.qualifying_limit_rate

    unlimited = 0.0
    qualifying = 0.0
    details: List[str] = []
    seen = False

    for donation in profile.donations:
        if donation.category in (DonationCategory.political_party, DonationCategory.approved_research):
            continue
        if donation.amount <= 0:
            continue
        seen = True
        if donation.payment_mode == PaymentMode.cash and donation.amount > rule.cash_limit:
            _cash_rejected(log, "Section 80G", "Cash Donation Limit Exceeded", donation.amount, rule.cash_limit)
            continue

        category = donation.category.value
        if category in rule.full_no_limit:
            factor, limited, label = 1.0, False, "100% (No Limit)"
        elif category in rule.half_no_limit:
            factor, limited, label = 0.5, False, "50% (No Limit)"
        elif category in rule.full_with_limit:
            factor, limited, label = 1.0, True, "100% (Subject to Limit)"
        else:
            factor, limited, label = 0.5, True, "50% (Subject to Limit)"

        deduction = donation.amount * factor
        details.append(f"{label}: {fmt_inr(donation.amount)} → {fmt_inr(deduction)}")
        if limited:
            qualifying += deduction
        else:
            unlimited += deduction

    capped_qualifying = min(qualifying, qualifying_limit)
    total = unlimited + capped_qualifying

    if seen and details:
        explanation = f"Donations breakdown: {' | '.join(details)}."
        if qualifying > 0:
            explanation += f" Qualifying donations total: {fmt_inr(qualifying)}."
            if qualifying > qualifying_limit:
                explanation += f" Capped at 10% of adjusted income ({fmt_inr(qualifying_limit)})."
        else:
            explanation += f" Total deductible: {fmt_inr(total)}."
        log.add(
            "Section 80G",
            "Charitable Donations",
            total,
            explanation=explanation,
            tax_saved=log.estimate_saving(total),
            category=LogCategory.donation,
        )
    return total


def calculate_80ggc(profile: UserTaxProfile, log: CalculationLog) -> float:
    """Political party donations: 100%, but never in cash."""
    total = 0.0
    for donation in profile.donations:
        if donation.category != DonationCategory.political_party or donation.amount <= 0:
            continue
        if donation.payment_mode == PaymentMode.cash:
            log.add(
                "Section 80GGC",
                "Political Donation Rejected",
                0,
                explanation=(
                    f"Cash donation of {fmt_inr(donation.amount)} to a political party is not allowed. "
                    "Must be paid by cheque or online."
                ),
                tax_saved=0,
                category=LogCategory.donation,
            )
            continue
        total += donation.amount

    if total > 0:
        log.add(
            "Section 80GGC",
            "Political Party Donation",
            total,
            explanation="100% deduction for non-cash donations to registered political parties.",
            tax_saved=log.estimate_saving(total),
            category=LogCategory.donation,
        )
    return total


def calculate_80gga(profile: UserTaxProfile, config: TaxConfiguration, log: CalculationLog) -> float:
    """Scientific research donations: the profile scalar plus any list entries."""
    cash_limit = config.deductions.section_80gga_cash_limit
    contributions = [(profile.scientific_research_donation, profile.scientific_research_payment_mode)]
    contributions += [
        (d.amount, d.payment_mode)
        for d in profile.donations
        if d.category == DonationCategory.approved_research
    ]

    total = 0.0
    for amount, mode in contributions:
        if amount <= 0:
            continue
        if mode == PaymentMode.cash and amount > cash_limit:
            _cash_rejected(log, "Section 80GGA", "Scientific Research", amount, cash_limit)
            continue
        total += amount

    if total > 0:
        log.add(
            "Section 80GGA",
            "Scientific Research Donation",
            total,
            explanation="100% deduction for donations to approved scientific research institutions.",
            tax_saved=log.estimate_saving(total),
            category=LogCategory.donation,
        )
    return total


def annual_rent_paid(profile: UserTaxProfile, config: TaxConfiguration) -> float:
    """Rent attributable to the fiscal year, month by month from the rent periods."""
    total = 0.0
    for month, year in config.fiscal_year.months():
        rent = active_rent_period(profile.rent_periods, month, year)
        if rent is not None:
            total += rent.amount / rent.duration_months
    return total


def calculate_80gg(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    gross_total_income: float,
    log: CalculationLog,
) -> float:
    """Rent deduction for those with no HRA: least of 60,000, 25% income, rent − 10% income."""
    rent = annual_rent_paid(profile, config)
    if rent == 0:
        return 0.0
    rule = config.deductions.section_80gg
    deduction = min(
        rule.annual_limit,
        gross_total_income * rule.income_rate,
        max(0.0, rent - gross_total_income * rule.rent_excess_rate),
    )
    log.add(
        "Section 80GG",
        "Rent Deduction (No HRA)",
        deduction,
        cap=rule.annual_limit,
        explanation=(
            f"For those not receiving HRA. Rent paid {fmt_inr(rent)}. Least of "
            f"{fmt_inr(rule.annual_limit)}/year, 25% of income, or (rent − 10% of income). "
            "Form 10BA required."
        ),
        tax_saved=log.estimate_saving(deduction),
        category=LogCategory.expense,
    )
    return deduction


def calculate_interest_deduction(profile: UserTaxProfile, config: TaxConfiguration, log: CalculationLog) -> float:
    """80TTB for seniors (all interest), 80TTA otherwise (savings only)."""
    rules = config.deductions
    if profile.age_category.is_senior:
        interest = profile.savings_interest + profile.fd_interest
        if interest == 0:
            return 0.0
        deduction = min(interest, rules.section_80ttb_limit)
        log.add(
            "Section 80TTB",
            "Interest Deduction (Senior)",
            deduction,
            cap=rules.section_80ttb_limit,
            explanation=(
                f"Senior citizens: all interest (savings + FD) deductible up to "
                f"{fmt_inr(rules.section_80ttb_limit)}."
            ),
            tax_saved=log.estimate_saving(deduction),
            category=LogCategory.exemption,
        )
        return deduction

    if profile.savings_interest == 0:
        return 0.0
    deduction = min(profile.savings_interest, rules.section_80tta_limit)
    log.add(
        "Section 80TTA",
        "Savings Interest Deduction",
        deduction,
        cap=rules.section_80tta_limit,
        explanation=(
            f"Only savings account interest is deductible, up to {fmt_inr(rules.section_80tta_limit)}. "
            "FD interest is not included."
        ),
        tax_saved=log.estimate_saving(deduction),
        category=LogCategory.exemption,
    )
    return deduction


def employer_nps_deduction(
    profile: UserTaxProfile,
    rates: Dict,
    regime_label: str,
    log: CalculationLog,
) -> float:
    """80CCD(2): employer NPS up to a percentage of Basic + DA, no absolute cap."""
    contribution = profile.employer_nps_contribution
    if contribution == 0:
        return 0.0
    rate = rates[profile.employer_type]
    limit = profile.basic_plus_da * rate
    deduction = min(contribution, limit)
    log.add(
        "Section 80CCD(2)",
        "Employer NPS Contribution",
        deduction,
        cap=limit,
        explanation=(
            f"Employer's NPS contribution. Limit: {rate:.0%} of Basic+DA for "
            f"{profile.employer_type.value} employees ({regime_label}). No overall cap."
        ),
        tax_saved=log.estimate_saving(deduction),
        category=LogCategory.investment,
    )
    return deduction


def agniveer_deduction(profile: UserTaxProfile, log: CalculationLog) -> float:
    amount = profile.agniveer_contribution
    if amount > 0:
        log.add(
            "Section 80CCH",
            "Agniveer Corpus Contribution",
            amount,
            explanation="Full deduction for contribution to the Agniveer Corpus Fund (self + government).",
            tax_saved=log.estimate_saving(amount),
            category=LogCategory.investment,
        )
    return amount


def _disability(
    level, limits: Dict, section: str, item: str, lead: str, category: LogCategory, log: CalculationLog,
) -> float:
    if level is None:
        return 0.0
    amount = limits[level]
    log.add(
        section,
        item,
        amount,
        explanation=f"{lead} {_DISABILITY_LABEL[level]} disability: {fmt_inr(amount)}.",
        tax_saved=log.estimate_saving(amount),
        category=category,
    )
    return amount


def _capped(amount: float, limit: float, section: str, item: str, explanation: str, log: CalculationLog) -> float:
    if amount <= 0:
        return 0.0
    deduction = min(amount, limit)
    log.add(
        section, item, deduction, cap=limit,
        explanation=explanation,
        tax_saved=log.estimate_saving(deduction),
        category=LogCategory.expense,
    )
    return deduction


# ===========================================================================
# Old regime: public API
# ===========================================================================

def calculate_old_deductions(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    gross_total_income: float,
    log: CalculationLog,
) -> DeductionBreakdown:
    rules = config.deductions
    parts: Dict[str, float] = {}

    section_80c, pool_items, _ = calculate_80c_pool(profile, config, log)
    parts["section_80c"] = section_80c

    # ---- 80CCD(1B) ------------------------------------------------------------
    extra_nps = min(profile.nps_extra_contribution, rules.section_80ccd1b_limit)
    if profile.nps_extra_contribution > 0:
        log.add(
            "Section 80CCD(1B)",
            "Additional NPS Contribution",
            extra_nps,
            cap=rules.section_80ccd1b_limit,
            explanation=(
                f"Extra {fmt_inr(rules.section_80ccd1b_limit)} deduction for NPS Tier-1, "
                "over and above the 80C limit."
            ),
            tax_saved=log.estimate_saving(extra_nps),
            category=LogCategory.investment,
        )
    parts["section_80ccd1b"] = extra_nps

    parts["section_80ccd2"] = employer_nps_deduction(
        profile, config.old_regime.employer_nps_rate, "Old Regime", log,
    )
    parts["section_80d"] = calculate_80d(profile, config, log)
    parts["section_80dd"] = _disability(
        profile.dependent_disability, rules.section_80dd,
        "Section 80DD", "Dependent with Disability",
        "Flat deduction for maintaining a disabled dependent.", LogCategory.expense, log,
    )

    ddb_limit = rules.section_80ddb[profile.age_category]
    parts["section_80ddb"] = _capped(
        profile.specified_disease_expenses, ddb_limit,
        "Section 80DDB", "Specified Disease Treatment",
        f"Treatment of specified diseases. Limit {fmt_inr(ddb_limit)} for your age. "
        "Requires a specialist prescription.",
        log,
    )

    # ---- 80E: no limit --------------------------------------------------------
    education = profile.education_loan_interest
    if education > 0:
        log.add(
            "Section 80E",
            "Education Loan Interest",
            education,
            explanation="Unlimited deduction for education loan interest, for 8 years from first repayment.",
            tax_saved=log.estimate_saving(education),
            category=LogCategory.expense,
        )
    parts["section_80e"] = education

    # ---- Legacy home / EV loan interest ---------------------------------------
    parts["section_80ee"] = _capped(
        profile.section_80ee_interest, rules.section_80ee_limit,
        "Section 80EE", "Home Loan Interest (Legacy)",
        f"Additional deduction for loans sanctioned in FY 2016-17. Max {fmt_inr(rules.section_80ee_limit)}.",
        log,
    )
    if profile.section_80eea_interest > 0 and parts["section_80ee"] > 0:
        log.add(
            "Section 80EEA",
            "Affordable Housing Interest",
            0,
            explanation="80EEA cannot be claimed when 80EE is already claimed. Mutually exclusive.",
            tax_saved=0,
            category=LogCategory.expense,
        )
        parts["section_80eea"] = 0.0
    else:
        parts["section_80eea"] = _capped(
            profile.section_80eea_interest, rules.section_80eea_limit,
            "Section 80EEA", "Affordable Housing Interest",
            f"Affordable housing loans sanctioned FY 2019-22. Max {fmt_inr(rules.section_80eea_limit)}.",
            log,
        )
    parts["section_80eeb"] = _capped(
        profile.section_80eeb_interest, rules.section_80eeb_limit,
        "Section 80EEB", "EV Loan Interest (Legacy)",
        f"Interest on an electric vehicle loan sanctioned Apr 2019 - Mar 2023. "
        f"Max {fmt_inr(rules.section_80eeb_limit)}.",
        log,
    )

    parts["section_80cch"] = agniveer_deduction(profile, log)

    # ---- Donations ------------------------------------------------------------
    parts["section_80g"] = calculate_80g(profile, config, gross_total_income, log)
    parts["section_80ggc"] = calculate_80ggc(profile, log)
    parts["section_80gga"] = calculate_80gga(profile, config, log)

    parts["section_80gg"] = (
        calculate_80gg(profile, config, gross_total_income, log)
        if profile.hra_received == 0 else 0.0
    )
    parts["section_80tta_ttb"] = calculate_interest_deduction(profile, config, log)
    parts["section_80u"] = _disability(
        profile.self_disability, rules.section_80u,
        "Section 80U", "Self with Disability",
        "Flat deduction for a certified disability.", LogCategory.exemption, log,
    )

    # ---- 24(b) ----------------------------------------------------------------
    interest = profile.home_loan_interest
    section_24b = 0.0
    if interest > 0:
        if profile.is_property_let_out:
            section_24b = interest
            cap = None
            explanation = f"Let-out property: unlimited interest deduction ({fmt_inr(interest)})."
        else:
            cap = rules.section_24b_self_occupied_limit
            section_24b = min(interest, cap)
            explanation = (
                f"Self-occupied property: max {fmt_inr(cap)} deduction. "
                f"Interest paid: {fmt_inr(interest)}."
            )
        log.add(
            "Section 24(b)", "Home Loan Interest", section_24b, cap=cap,
            explanation=explanation,
            tax_saved=log.estimate_saving(section_24b),
            category=LogCategory.expense,
        )
    parts["section_24b"] = section_24b

    total = sum(parts.values())
    log.add(
        "Total Deductions",
        "Chapter VI-A + Other Deductions",
        total,
        explanation=(
            "Sum of all deductions: 80C pool, NPS, health insurance, home loan, "
            "education loan, donations, disabilities and interest."
        ),
    )
    return DeductionBreakdown(**parts, section_80c_items=pool_items, total=total)


# ===========================================================================
# New regime: public API
# ===========================================================================

def calculate_new_deductions(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    log: CalculationLog,
) -> DeductionBreakdown:
    regime = config.new_regime

    standard = regime.standard_deduction if profile.gross_salary > 0 else 0.0
    if standard:
        log.add(
            "Section 16(ia)",
            "Standard Deduction",
            standard,
            cap=regime.standard_deduction,
            explanation=f"Automatic {fmt_inr(standard)} deduction for salaried individuals (New Regime).",
            tax_saved=log.estimate_saving(standard),
            category=LogCategory.exemption,
        )

    family_pension = 0.0
    if profile.family_pension > 0:
        rule = regime.family_pension
        family_pension = min(rule.max_amount, profile.family_pension * rule.fraction)
        log.add(
            "Section 57(iia)",
            "Family Pension Deduction",
            family_pension,
            cap=rule.max_amount,
            explanation=f"Least of {fmt_inr(rule.max_amount)} or one-third of pension.",
            tax_saved=log.estimate_saving(family_pension),
            category=LogCategory.exemption,
        )

    employer_nps = employer_nps_deduction(profile, regime.employer_nps_rate, "New Regime", log)
    agniveer = agniveer_deduction(profile, log)

    transport = transport_divyang_exemption(profile, config)
    if transport:
        log.add(
            "Section 10(14)",
            "Transport Allowance (Divyang)",
            transport,
            cap=config.exemptions.transport_divyang_monthly * 12,
            explanation="Transport allowance for a Divyang employee is allowed in the New Regime.",
            tax_saved=log.estimate_saving(transport),
            category=LogCategory.exemption,
        )

    total = standard + family_pension + employer_nps + agniveer + transport
    log.add(
        "Total Deductions",
        "New Regime Deductions",
        total,
        explanation="Standard deduction, family pension, employer NPS, Agniveer corpus and transport allowance.",
    )
    return DeductionBreakdown(
        standard_deduction=standard,
        family_pension_deduction=family_pension,
        transport_divyang=transport,
        section_80ccd2=employer_nps,
        section_80cch=agniveer,
        total=total,
    )
