"""
capital_gains.py — regime-invariant capital gains tax.

Order of operations (fixed):
  1. short-term loss carry-forward vs short-term equity gains
  2. remaining short-term loss vs long-term equity gains
  3. long-term loss carry-forward vs long-term equity gains
  4. STCG equity at a flat rate (Section 111A)
  5. LTCG equity above the annual exemption at a flat rate (Section 112A)
  6. real estate (Section 112): raw gain less reinvestment exemptions, taxed
     at the flat rate without indexation, or, for property bought before the
     grandfathering cutoff, at whichever of flat / indexed is LOWER

The same figure is added after cess in both regimes.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

from regimetax.engine.calc_log import CalculationLog, fmt_inr
from regimetax.engine.liability import round_rupee
from regimetax.engine.schemas import CapitalGainsBreakdown, PropertyGain
from regimetax.profile.schemas import UserTaxProfile
from regimetax.tax_config.schema import TaxConfiguration

logger = logging.getLogger(__name__)


def _set_off(gain: float, loss: float) -> Tuple[float, float, float]:
    """Returns (gain_left, loss_left, used). Never uses more than either side holds."""
    used = min(gain, loss)
    return gain - used, loss - used, used


def purchase_cii(config: TaxConfiguration, purchase_date) -> int:
    """CII for the purchase year; years outside the table fall back to the earliest index."""
    key = config.fiscal_year.key_for(purchase_date)
    return config.capital_gains.cii.get(key, config.capital_gains.earliest_cii)


def calculate_property_gain(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    log: CalculationLog,
) -> Optional[PropertyGain]:
    sale = profile.real_estate_sale_value
    if sale <= 0:
        return None

    rules = config.capital_gains
    cost = profile.real_estate_purchase_value
    expenses = profile.real_estate_transfer_expenses
    raw_gain = max(0.0, sale - cost - expenses)

    exemption = (
        min(profile.investment_sec54, rules.section_54_limit)
        + min(profile.investment_sec54ec, rules.section_54ec_limit)
        + profile.capital_gain_deposit
    )
    if exemption > 0:
        log.add(
            "Section 54/54EC",
            "Reinvestment Exemptions",
            exemption,
            explanation=(
                f"Claimed exemptions (Section 54 capped at {fmt_inr(rules.section_54_limit)}, "
                f"54EC capped at {fmt_inr(rules.section_54ec_limit)}) plus capital gains deposit: "
                f"{fmt_inr(exemption)}."
            ),
        )

    flat_gain = max(0.0, raw_gain - exemption)
    flat_tax = round_rupee(flat_gain * rules.property_flat_rate)

    bought = profile.real_estate_purchase_date
    grandfathered = bought is not None and bought < rules.grandfathering_cutoff
    if not grandfathered:
        if flat_gain > 0:
            log.add(
                "Section 112",
                "LTCG (Property)",
                flat_tax,
                explanation=(
                    f"Flat {rules.property_flat_rate:.1%} without indexation. "
                    f"Taxable gain: {fmt_inr(flat_gain)}."
                ),
            )
        return PropertyGain(
            raw_gain=raw_gain,
            reinvestment_exemption=exemption,
            grandfathered=False,
            flat_gain=flat_gain,
            flat_tax=flat_tax,
            method="flat",
            tax=flat_tax,
        )

    index_then = purchase_cii(config, bought)
    indexed_cost = round_rupee(cost * config.sale_year_cii / index_then)
    indexed_gain = max(0.0, sale - indexed_cost - expenses - exemption)
    indexed_tax = round_rupee(indexed_gain * rules.property_indexed_rate)

    if indexed_tax < flat_tax:
        method, tax = "indexed", indexed_tax
        explanation = (
            f"Grandfathered: {rules.property_indexed_rate:.0%} with indexation is lower. "
            f"Indexed cost: {fmt_inr(indexed_cost)} (CII {index_then} → {config.sale_year_cii}). "
            f"Taxable gain: {fmt_inr(indexed_gain)}."
        )
    else:
        method, tax = "flat", flat_tax
        explanation = (
            f"Grandfathered, but {rules.property_flat_rate:.1%} without indexation is lower or equal. "
            f"Taxable gain: {fmt_inr(flat_gain)} (indexed alternative {fmt_inr(indexed_tax)})."
        )
    log.add("Section 112", "LTCG (Property)", tax, explanation=explanation)

    return PropertyGain(
        raw_gain=raw_gain,
        reinvestment_exemption=exemption,
        grandfathered=True,
        flat_gain=flat_gain,
        flat_tax=flat_tax,
        indexed_cost=indexed_cost,
        indexed_gain=indexed_gain,
        indexed_tax=indexed_tax,
        method=method,
        tax=tax,
    )


def calculate_capital_gains(
    profile: UserTaxProfile,
    config: TaxConfiguration,
    log: CalculationLog,
) -> CapitalGainsBreakdown:
    rules = config.capital_gains

    # ---- Loss set-off, fixed priority ----------------------------------------
    stcg, stcl, stcl_vs_stcg = _set_off(profile.stcg_equity, profile.stcl_carry_forward)
    if stcl_vs_stcg:
        log.add("Loss Setoff", "STCL vs STCG", stcl_vs_stcg,
                explanation=f"Offset {fmt_inr(stcl_vs_stcg)} short-term loss against short-term gains.")

    ltcg, stcl, stcl_vs_ltcg = _set_off(profile.ltcg_equity, stcl)
    if stcl_vs_ltcg:
        log.add("Loss Setoff", "STCL vs LTCG", stcl_vs_ltcg,
                explanation=f"Offset remaining {fmt_inr(stcl_vs_ltcg)} short-term loss against long-term gains.")

    ltcg, ltcl, ltcl_vs_ltcg = _set_off(ltcg, profile.ltcl_carry_forward)
    if ltcl_vs_ltcg:
        log.add("Loss Setoff", "LTCL vs LTCG", ltcl_vs_ltcg,
                explanation=f"Offset {fmt_inr(ltcl_vs_ltcg)} long-term loss against long-term gains.")

    # ---- Equity ----------------------------------------------------------------
    stcg_tax = round_rupee(stcg * rules.stcg_equity_rate)
    if stcg > 0:
        log.add(
            "Section 111A", "STCG (Equity)", stcg_tax,
            explanation=f"Tax on {fmt_inr(stcg)} @ {rules.stcg_equity_rate:.0%} = {fmt_inr(stcg_tax)}",
        )

    ltcg_taxable = max(0.0, ltcg - rules.ltcg_equity_exemption)
    ltcg_tax = round_rupee(ltcg_taxable * rules.ltcg_equity_rate)
    if ltcg_taxable > 0:
        log.add(
            "Section 112A", "LTCG (Equity)", ltcg_tax,
            explanation=(
                f"Tax on {fmt_inr(ltcg_taxable)} (above {fmt_inr(rules.ltcg_equity_exemption)}) "
                f"@ {rules.ltcg_equity_rate:.1%}"
            ),
        )

    real_estate = calculate_property_gain(profile, config, log)
    total = stcg_tax + ltcg_tax + (real_estate.tax if real_estate else 0.0)
    logger.debug("Capital gains: equity + property tax computed (%s)",
                 "with property" if real_estate else "equity only")

    return CapitalGainsBreakdown(
        stcl_against_stcg=stcl_vs_stcg,
        stcl_against_ltcg=stcl_vs_ltcg,
        ltcl_against_ltcg=ltcl_vs_ltcg,
        unabsorbed_stcl=stcl,
        unabsorbed_ltcl=ltcl,
        stcg_taxable=stcg,
        stcg_tax=stcg_tax,
        ltcg_taxable=ltcg_taxable,
        ltcg_tax=ltcg_tax,
        real_estate=real_estate,
        total=total,
    )
