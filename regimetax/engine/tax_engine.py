"""
RegimeTax Engine — FY 2025-26 (AY 2026-27)

Dual-regime income tax calculator. Pure functions, no I/O; every constant
comes from the TaxConfiguration passed in (or the bundled table by default).

Pipeline (per regime, order determines correctness):
  1. gross income            income.calculate_gross_income
  2. exemptions (old only)   exemptions.calculate_old_exemptions
  3. deductions              deductions.calculate_old_deductions / calculate_new_deductions
  4. taxable income          max(0, gross - exemptions - deductions)
  5. slab tax → 87A rebate → marginal relief (new only)
  6. surcharge (with tier-boundary relief)
  7. cess on (tax + surcharge)
  8. capital gains tax, added after cess
  9. Section 89 relief, final tax floored at 0

compare_regimes() runs the pipeline twice and recommends the cheaper regime.
Each run owns a fresh CalculationLog; nothing is shared between runs except
the read-only configuration.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

from regimetax.engine.calc_log import CalculationLog, fmt_inr
from regimetax.engine.capital_gains import calculate_capital_gains
from regimetax.engine.deductions import calculate_new_deductions, calculate_old_deductions
from regimetax.engine.exemptions import calculate_old_exemptions
from regimetax.engine.income import calculate_gross_income
from regimetax.engine.liability import (
    apply_marginal_relief,
    calculate_cess,
    calculate_rebate,
    calculate_slab_tax,
    calculate_surcharge,
    round_rupee,
)
from regimetax.engine.optimizer import generate_new_suggestions, generate_old_suggestions
from regimetax.engine.schemas import ExemptionBreakdown, LogCategory, RegimeResult, TaxResult
from regimetax.profile.schemas import UserTaxProfile
from regimetax.profile.validator import validate_profile
from regimetax.tax_config import TaxConfiguration, get_tax_configuration

logger = logging.getLogger(__name__)

Regime = Literal["old", "new"]

_REGIME_NAME = {"old": "Old Regime", "new": "New Regime"}


# ===========================================================================
# SINGLE-REGIME PIPELINE
# ===========================================================================

def calculate_regime(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    regime: Regime,
    logger: Optional[logging.Logger] = None,
) -> RegimeResult:
    """
    Run the full pipeline for one regime and return the frozen RegimeResult.

    Never raises for a well-typed profile. `logger` is the process-logging
    channel (defaults to this module's logger); the audit trail is the
    returned result's `log`.
    """
    out = logger if logger is not None else logging.getLogger(__name__)
    log = CalculationLog(config.assumed_marginal_rate)
    name = _REGIME_NAME[regime]

    # Steps 1-3: income, exemptions, deductions
    income = calculate_gross_income(profile, config, regime, log)
    if regime == "old":
        exemptions = calculate_old_exemptions(profile, config, log, out)
        deductions = calculate_old_deductions(profile, config, income.total, log)
        regime_cfg = config.old_regime
        slabs = config.old_regime.slabs[profile.age_category]
    else:
        exemptions = ExemptionBreakdown()
        deductions = calculate_new_deductions(profile, config, log)
        regime_cfg = config.new_regime
        slabs = config.new_regime.slabs

    # Step 4: taxable income (never negative)
    taxable_income = max(0.0, income.total - exemptions.total - deductions.total)
    log.add(
        "Taxable Income",
        "Net Taxable Income",
        taxable_income,
        explanation=(
            f"Gross Income ({fmt_inr(income.total)}) - Exemptions ({fmt_inr(exemptions.total)}) "
            f"- Deductions ({fmt_inr(deductions.total)}) = {fmt_inr(taxable_income)}"
        ),
    )

    # Step 5: slab tax, 87A rebate, marginal relief
    slab_tax, slab_lines = calculate_slab_tax(taxable_income, slabs, log)
    rebate = calculate_rebate(taxable_income, slab_tax, regime_cfg.rebate_87a, log)
    tax = max(0.0, slab_tax - rebate)
    marginal_relief = 0.0
    if regime == "new":
        tax, marginal_relief = apply_marginal_relief(
            taxable_income, tax, config.new_regime.marginal_relief, log,
        )

    # Step 6-7: surcharge, cess
    surcharge, surcharge_rate, surcharge_relief = calculate_surcharge(
        taxable_income, tax, regime_cfg.surcharge, slabs, log,
    )
    cess = calculate_cess(tax + surcharge, config.cess_rate, log)

    # Step 8: capital gains (regime-invariant)
    capital_gains = calculate_capital_gains(profile, config, log)

    # Step 9: Section 89 relief and final tax
    before_relief = tax + surcharge + cess + capital_gains.total
    section89 = min(profile.section89_relief, before_relief)
    if profile.section89_relief > 0:
        log.add(
            "Section 89",
            "Relief for Salary Arrears",
            section89,
            explanation=(
                f"Relief of {fmt_inr(profile.section89_relief)} claimed (Form 10E), "
                f"{fmt_inr(section89)} usable against tax."
            ),
            tax_saved=section89,
            category=LogCategory.exemption,
        )
    final_tax = round_rupee(max(0.0, before_relief - section89))
    log.add(
        "Final Tax",
        "Total Tax Payable",
        final_tax,
        explanation=(
            f"Tax after rebate/relief ({fmt_inr(tax)}) + Surcharge ({fmt_inr(surcharge)}) "
            f"+ Cess ({fmt_inr(cess)}) + Capital Gains Tax ({fmt_inr(capital_gains.total)})"
            + (f" - Section 89 relief ({fmt_inr(section89)})" if section89 else "")
        ),
    )

    rate_base = income.total + capital_gains.taxable_gains
    out.debug("%s: %d log entries, %d HRA month(s), %d slab line(s)",
              name, len(log), len(exemptions.hra_months), len(slab_lines))

    return RegimeResult(
        regime=regime,
        age_category=profile.age_category.value,
        gross_income=income,
        exemptions=exemptions,
        deductions=deductions,
        taxable_income=taxable_income,
        slab_tax=slab_tax,
        slab_breakdown=slab_lines,
        rebate=rebate,
        marginal_relief=marginal_relief,
        surcharge=surcharge,
        surcharge_rate=surcharge_rate,
        surcharge_relief=surcharge_relief,
        cess=cess,
        capital_gains=capital_gains,
        section89_relief=section89,
        final_tax=final_tax,
        effective_rate=final_tax / rate_base if rate_base > 0 else 0.0,
        log=list(log.entries),
    )


def calculate_old_regime(
    profile: UserTaxProfile,
    config: Optional[TaxConfiguration] = None,
    logger: Optional[logging.Logger] = None,
) -> RegimeResult:
    """
    Old regime: age-banded slabs, Section 10 exemptions, full Chapter VI-A.
    87A: rebate up to ₹12,500 if taxable <= ₹5L. Surcharge up to 37%.
    """
    return calculate_regime(profile, config or get_tax_configuration(), "old", logger)


def calculate_new_regime(
    profile: UserTaxProfile,
    config: Optional[TaxConfiguration] = None,
    logger: Optional[logging.Logger] = None,
) -> RegimeResult:
    """
    New regime (Section 115BAC): standard deduction, family pension, 80CCD(2),
    80CCH and divyang transport allowance only. 87A: rebate up to ₹60,000 if
    taxable <= ₹12L, with marginal relief up to ₹17L. Surcharge capped at 25%.
    """
    return calculate_regime(profile, config or get_tax_configuration(), "new", logger)


# ===========================================================================
# COMPARE REGIMES: public API
# ===========================================================================

def _rationale(old: RegimeResult, new: RegimeResult, recommended: Regime, savings: float) -> str:
    if savings == 0.0:
        return (
            f"Both regimes result in the same tax ({fmt_inr(old.final_tax)}). "
            "New Regime recommended as the simpler option with no mandatory investment requirements."
        )
    if recommended == "old":
        key_items: list[str] = []
        if old.exemptions.hra > 0:
            key_items.append(f"HRA exemption {fmt_inr(old.exemptions.hra)}")
        if old.deductions.section_80c > 0:
            key_items.append(f"80C {fmt_inr(old.deductions.section_80c)}")
        if old.deductions.section_80d > 0:
            key_items.append(f"80D {fmt_inr(old.deductions.section_80d)}")
        if old.deductions.section_24b > 0:
            key_items.append(f"Section 24(b) {fmt_inr(old.deductions.section_24b)}")
        top = ", ".join(key_items[:3]) if key_items else "available deductions"
        return (
            f"Old Regime saves {fmt_inr(savings)} over the New Regime. "
            f"Old Regime tax: {fmt_inr(old.final_tax)} vs New Regime tax: {fmt_inr(new.final_tax)}. "
            f"Key deductions: {top}."
        )
    claimed = old.exemptions.total + old.deductions.total
    return (
        f"New Regime saves {fmt_inr(savings)} over the Old Regime. "
        f"New Regime tax: {fmt_inr(new.final_tax)} vs Old Regime tax: {fmt_inr(old.final_tax)}. "
        f"Your total eligible Old Regime exemptions and deductions ({fmt_inr(claimed)}) "
        f"are insufficient to overcome the lower New Regime slab rates."
    )


def compare_regimes(
    profile: UserTaxProfile,
    config: Optional[TaxConfiguration] = None,
    logger: Optional[logging.Logger] = None,
) -> TaxResult:
    """
    Compare old and new regime tax for the given profile.

    Recommends the strictly cheaper regime; ties go to the New Regime.
    Attaches the validator's advisory warnings / hard blocks (the calculation
    runs regardless) and up to three headroom suggestions per regime.
    """
    config = config or get_tax_configuration()
    out = logger if logger is not None else logging.getLogger(__name__)

    # Step 1: Calculate both regimes
    old = calculate_regime(profile, config, "old", out)
    new = calculate_regime(profile, config, "new", out)

    # Step 2: Determine winner
    if old.final_tax < new.final_tax:
        recommended: Regime = "old"
        savings = new.final_tax - old.final_tax
    else:
        recommended = "new"
        savings = old.final_tax - new.final_tax

    # Step 3: Advisory validation
    report = validate_profile(profile, config)

    out.info(
        "Regime comparison: recommended=%s employment_periods=%d rent_periods=%d warnings=%d hard_blocks=%d",
        recommended,
        len(profile.employment_periods),
        len(profile.rent_periods),
        len(report.warnings),
        len(report.hard_blocks),
    )

    return TaxResult(
        fiscal_year=config.fiscal_year.label,
        old_regime=old,
        new_regime=new,
        recommended_regime=recommended,
        savings_amount=savings,
        rationale=_rationale(old, new, recommended, savings),
        warnings=report.warnings,
        hard_blocks=report.hard_blocks,
        old_regime_suggestions=generate_old_suggestions(profile, old, config),
        new_regime_suggestions=generate_new_suggestions(profile, new, config),
    )
