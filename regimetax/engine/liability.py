"""
liability.py — from taxable income to tax payable on normal income.

  slab tax → 87A rebate → marginal relief (New regime) → surcharge (with
  tier-boundary relief) → cess

Each step is a small pure function taking the bracket/tier tables from the
TaxConfiguration; the orchestrator wires them together. A log is optional so
the optimizer can reuse calculate_slab_tax for "what-if" figures without
touching the run's audit trail.
"""
from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from regimetax.engine.calc_log import CalculationLog, fmt_inr
from regimetax.engine.schemas import LogCategory, SlabLine
from regimetax.tax_config.schema import MarginalReliefRule, RebateRule, Slab, SurchargeTier


def round_rupee(amount: float) -> float:
    """Nearest rupee, halves away from zero."""
    if amount < 0:
        return -float(math.floor(-amount + 0.5))
    return float(math.floor(amount + 0.5))


# ---------------------------------------------------------------------------
# Slab tax
# ---------------------------------------------------------------------------

def calculate_slab_tax(
    income: float,
    slabs: Sequence[Slab],
    log: Optional[CalculationLog] = None,
) -> Tuple[float, List[SlabLine]]:
    """
    Progressive bracket tax. The portion of income inside [min, min(income, max))
    is taxed at each bracket's rate. Zero-rate brackets consume income but are
    left out of the breakdown and the log.
    """
    total = 0.0
    lines: List[SlabLine] = []
    for slab in slabs:
        if income <= slab.min:
            break
        portion = min(income, slab.upper) - slab.min
        tax = portion * slab.rate
        total += tax
        if portion > 0 and slab.rate > 0:
            line = SlabLine(label=slab.label, income=portion, rate=slab.rate, tax=round_rupee(tax))
            lines.append(line)
            if log is not None:
                log.add(
                    "Tax Slabs",
                    slab.label,
                    line.tax,
                    explanation=f"{fmt_inr(portion)} × {slab.rate:.0%} = {fmt_inr(tax)}",
                )
    return round_rupee(total), lines


def marginal_rate(income: float, slabs: Sequence[Slab]) -> float:
    """Rate of the highest bracket that income has entered (0 at or below the first boundary)."""
    for slab in reversed(slabs):
        if income > slab.min:
            return slab.rate
    return slabs[0].rate


# ---------------------------------------------------------------------------
# Rebate / marginal relief
# ---------------------------------------------------------------------------

def calculate_rebate(
    income: float,
    tax: float,
    rule: RebateRule,
    log: Optional[CalculationLog] = None,
) -> float:
    """Section 87A: a hard cliff. Income over the limit by one rupee loses it all."""
    if income > rule.income_limit:
        return 0.0
    rebate = min(tax, rule.max_rebate)
    if log is not None and rebate > 0:
        log.add(
            "Section 87A",
            "Tax Rebate",
            rebate,
            cap=rule.max_rebate,
            explanation=(
                f"Taxable income ({fmt_inr(income)}) ≤ {fmt_inr(rule.income_limit)}. "
                f"Rebate of {fmt_inr(rebate)} applied."
            ),
            tax_saved=rebate,
            category=LogCategory.exemption,
        )
    return rebate


def apply_marginal_relief(
    income: float,
    tax_after_rebate: float,
    rule: MarginalReliefRule,
    log: Optional[CalculationLog] = None,
) -> Tuple[float, float]:
    """
    Within (threshold, threshold + band], tax may not exceed the income over
    the threshold. Returns (tax, relief).
    """
    if not (rule.threshold < income <= rule.threshold + rule.band):
        return tax_after_rebate, 0.0
    excess = income - rule.threshold
    if tax_after_rebate <= excess:
        return tax_after_rebate, 0.0

    relief = tax_after_rebate - excess
    if log is not None:
        log.add(
            "Marginal Relief",
            f"Income Slightly Above {fmt_inr(rule.threshold)}",
            relief,
            explanation=(
                f"Your income is {fmt_inr(excess)} above {fmt_inr(rule.threshold)}. Without relief, "
                f"tax would be {fmt_inr(tax_after_rebate)}. With marginal relief, tax is capped at "
                f"{fmt_inr(excess)}."
            ),
            tax_saved=relief,
            category=LogCategory.exemption,
        )
    return excess, relief


# ---------------------------------------------------------------------------
# Surcharge / cess
# ---------------------------------------------------------------------------

def calculate_surcharge(
    income: float,
    tax: float,
    tiers: Sequence[SurchargeTier],
    slabs: Sequence[Slab],
    log: Optional[CalculationLog] = None,
) -> Tuple[float, float, float]:
    """
    Tiered surcharge on tax, with relief at the tier boundary: tax plus
    surcharge may exceed the tax-plus-surcharge payable at the boundary
    income by no more than the income above the boundary.

    Returns (surcharge, rate, relief).
    """
    index = next(
        (i for i, tier in enumerate(tiers) if tier.min < income <= tier.upper),
        None,
    )
    if index is None or tax <= 0:
        return 0.0, 0.0, 0.0

    tier = tiers[index]
    raw = tax * tier.rate
    previous_rate = tiers[index - 1].rate if index > 0 else 0.0
    boundary_tax, _ = calculate_slab_tax(tier.min, slabs)
    ceiling = boundary_tax * (1 + previous_rate) + (income - tier.min)
    surcharge = min(raw, max(0.0, ceiling - tax))
    relief = raw - surcharge

    surcharge = round_rupee(surcharge)
    relief = round_rupee(relief)

    if log is not None:
        explanation = f"Income above {fmt_inr(tier.min)} attracts {tier.rate:.0%} surcharge on tax."
        if relief > 0:
            explanation += (
                f" Marginal relief of {fmt_inr(relief)} applied: tax + surcharge cannot rise by more "
                f"than the income above {fmt_inr(tier.min)}."
            )
        log.add("Surcharge", f"{tier.rate:.0%} Surcharge", surcharge, explanation=explanation)
    return surcharge, tier.rate, relief


def calculate_cess(
    tax_with_surcharge: float,
    rate: float,
    log: Optional[CalculationLog] = None,
) -> float:
    cess = round_rupee(tax_with_surcharge * rate)
    if log is not None and cess > 0:
        log.add(
            "Cess",
            "Health & Education Cess",
            cess,
            explanation=(
                f"{rate:.0%} cess on (Tax + Surcharge) = {fmt_inr(tax_with_surcharge)} × {rate:.0%} "
                f"= {fmt_inr(cess)}"
            ),
        )
    return cess
