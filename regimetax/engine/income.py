"""
income.py — gross income aggregation (both regimes).

Rules:
  - Salary at face value (sum of employment-period gross).
  - Rental income reduced by the flat 30% maintenance allowance. New regime:
    let-out home-loan interest is subtracted too, and the result floored at 0
    (house-property loss cannot be set off in that regime). Old regime: the
    interest is claimed under Section 24(b) instead.
  - Gifts from non-relatives: all-or-nothing above the exempt limit.
  - Agricultural income: excluded, logged with an estimated tax saving.
"""
from __future__ import annotations

from regimetax.engine.calc_log import CalculationLog, fmt_inr
from regimetax.engine.schemas import IncomeBreakdown, LogCategory
from regimetax.profile.schemas import UserTaxProfile
from regimetax.tax_config.schema import TaxConfiguration


def calculate_gross_income(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    regime: str,
    log: CalculationLog,
) -> IncomeBreakdown:
    rules = config.income

    # ---- House property -------------------------------------------------
    gross_rental = profile.rental_income
    maintenance = gross_rental * rules.rental_standard_deduction_rate
    rental = gross_rental - maintenance
    let_out_interest = profile.home_loan_interest if profile.is_property_let_out else 0.0

    if regime == "new":
        rental = max(0.0, rental - let_out_interest)
        if gross_rental > 0 or let_out_interest > 0:
            if let_out_interest > 0:
                explanation = (
                    f"Gross rent {fmt_inr(gross_rental)} − 30% standard deduction − "
                    f"let-out interest {fmt_inr(let_out_interest)}. "
                    "House-property loss cannot be set off in the New Regime, so floored at 0."
                )
            else:
                explanation = (
                    f"Gross rent {fmt_inr(gross_rental)} − 30% standard deduction. "
                    "Self-occupied home-loan interest is not deductible in the New Regime."
                )
            log.add("House Property", "Rental Income", rental, explanation=explanation)
    elif gross_rental > 0:
        log.add(
            "Section 24(a)",
            "Rental Income - Standard Deduction",
            maintenance,
            explanation=(
                f"30% standard deduction for repairs and maintenance: "
                f"{fmt_inr(gross_rental)} × 30% = {fmt_inr(maintenance)}."
            ),
            tax_saved=log.estimate_saving(maintenance),
            category=LogCategory.exemption,
        )

    # ---- Gifts ----------------------------------------------------------
    gifts = profile.non_relative_gifts
    taxable_gifts = gifts if gifts > rules.gift_exempt_limit else 0.0
    if 0 < gifts <= rules.gift_exempt_limit:
        log.add(
            "Section 56(2)(x)",
            "Gifts - Exempt",
            0,
            cap=rules.gift_exempt_limit,
            explanation=(
                f"Gifts of {fmt_inr(gifts)} are exempt: the aggregate does not exceed "
                f"{fmt_inr(rules.gift_exempt_limit)} in the year."
            ),
            category=LogCategory.exemption,
        )

    # ---- Agricultural income (never part of the total) --------------------
    agricultural = profile.agricultural_income
    if agricultural > 0:
        log.add(
            "Section 10(1)",
            "Agricultural Income",
            0,
            explanation=(
                f"Agricultural income of {fmt_inr(agricultural)} is fully exempt "
                "and not included in taxable income."
            ),
            tax_saved=log.estimate_saving(agricultural),
            category=LogCategory.exemption,
        )

    salary = profile.gross_salary
    sources = dict(
        salary=salary,
        savings_interest=profile.savings_interest,
        fd_interest=profile.fd_interest,
        dividend=profile.dividend_income,
        rental=rental,
        family_pension=profile.family_pension,
        gifts=taxable_gifts,
        other=profile.other_income,
    )
    total = sum(sources.values())

    log.add(
        "Gross Income",
        "Total Gross Income",
        total,
        explanation="Sum of salary, interest, dividend, rental, family pension, gifts and other income.",
    )
    return IncomeBreakdown(**sources, total=total)
