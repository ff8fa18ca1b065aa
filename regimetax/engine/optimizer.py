"""
RegimeTax Optimizer — FY 2025-26
Generates plain-English optimization suggestions for unused deduction headroom,
and groups the calculation log into "what saved you money".
Pure functions. No I/O.

Suggestion savings are estimated at the regime's marginal slab rate for the
computed taxable income, cess inclusive (slab_rate × (1 + cess)).
"""
from __future__ import annotations

from typing import List

from regimetax.engine.liability import marginal_rate
from regimetax.engine.schemas import LogCategory, RegimeResult, SavingsGroup
from regimetax.profile.schemas import UserTaxProfile
from regimetax.tax_config.schema import TaxConfiguration

_SUGGESTION_MIN_SAVING = 1_000   # Suppress suggestions where tax saving < ₹1,000
_MAX_SUGGESTIONS = 3


def _old_marginal_rate(profile: UserTaxProfile, result: RegimeResult, config: TaxConfiguration) -> float:
    """Effective old regime marginal rate, e.g. 0.312 for the 30% slab + 4% cess."""
    slabs = config.old_regime.slabs[profile.age_category]
    return marginal_rate(result.taxable_income, slabs) * (1 + config.cess_rate)


def _new_marginal_rate(result: RegimeResult, config: TaxConfiguration) -> float:
    return marginal_rate(result.taxable_income, config.new_regime.slabs) * (1 + config.cess_rate)


def generate_old_suggestions(
    profile: UserTaxProfile,
    old_result: RegimeResult,
    config: TaxConfiguration,
) -> list[str]:
    """
    Generate actionable suggestions for unused old-regime deduction headroom.
    Covers: 80C, 80D self, 80D parents, 80CCD(1B) NPS, Section 24(b).
    Suppresses suggestions with < ₹1,000 tax saving.
    Returns at most 3 suggestions, sorted by rupee saving descending.
    """
    effective_rate = _old_marginal_rate(profile, old_result, config)
    if effective_rate == 0.0:
        return []   # Already in zero-tax bracket, no suggestions useful

    rules = config.deductions
    bd = old_result.deductions

    # --- Collect candidates ---
    candidates: list[tuple[float, str]] = []   # (saving, suggestion_text)

    # 1. 80C headroom
    headroom_80c = rules.section_80c_limit - bd.section_80c
    saving_80c = headroom_80c * effective_rate
    if headroom_80c > 0 and saving_80c >= _SUGGESTION_MIN_SAVING:
        candidates.append((
            saving_80c,
            f"Invest ₹{headroom_80c:,.0f} more in 80C instruments (PPF, ELSS, LIC) "
            f"to save ₹{round(saving_80c):,.0f} in the Old Regime.",
        ))

    # 2. 80D self headroom (preventive checkup counts inside this limit)
    self_cap = rules.section_80d.self_limit[profile.age_category]
    checkup = min(profile.preventive_checkup, rules.section_80d.preventive_checkup_limit)
    used_self = min(profile.health_insurance_self + checkup, self_cap)
    headroom_self = self_cap - used_self
    saving_self = headroom_self * effective_rate
    if headroom_self > 0 and saving_self >= _SUGGESTION_MIN_SAVING:
        candidates.append((
            saving_self,
            f"Pay ₹{headroom_self:,.0f} more in health insurance (self/family) under Section 80D "
            f"to save ₹{round(saving_self):,.0f} in the Old Regime.",
        ))

    # 3. 80D parents headroom
    parent_cap = rules.section_80d.parents_limit[profile.parents_age_category]
    used_parents = min(profile.health_insurance_parents, parent_cap)
    headroom_parents = parent_cap - used_parents
    saving_parents = headroom_parents * effective_rate
    if headroom_parents > 0 and saving_parents >= _SUGGESTION_MIN_SAVING:
        candidates.append((
            saving_parents,
            f"Pay ₹{headroom_parents:,.0f} more in parent health insurance under Section 80D "
            f"to save ₹{round(saving_parents):,.0f} in the Old Regime.",
        ))

    # 4. 80CCD(1B) employee NPS headroom
    headroom_nps = rules.section_80ccd1b_limit - bd.section_80ccd1b
    saving_nps = headroom_nps * effective_rate
    if headroom_nps > 0 and saving_nps >= _SUGGESTION_MIN_SAVING:
        candidates.append((
            saving_nps,
            f"Contribute ₹{headroom_nps:,.0f} more to NPS (Section 80CCD(1B)) "
            f"to save ₹{round(saving_nps):,.0f} in the Old Regime.",
        ))

    # 5. Section 24(b) headroom: only for a self-occupied home with a loan
    if profile.home_loan_interest > 0 and not profile.is_property_let_out:
        headroom_24b = rules.section_24b_self_occupied_limit - bd.section_24b
        saving_24b = headroom_24b * effective_rate
        if headroom_24b > 0 and saving_24b >= _SUGGESTION_MIN_SAVING:
            candidates.append((
                saving_24b,
                f"Home loan interest paid up to ₹{headroom_24b:,.0f} more can be claimed under "
                f"Section 24(b) to save ₹{round(saving_24b):,.0f} in the Old Regime.",
            ))

    # Sort by saving descending, cap at 3
    candidates.sort(key=lambda x: x[0], reverse=True)
    return [text for _, text in candidates[:_MAX_SUGGESTIONS]]


def generate_new_suggestions(
    profile: UserTaxProfile,
    new_result: RegimeResult,
    config: TaxConfiguration,
) -> list[str]:
    """
    Generate actionable suggestions for new regime.
    Only optimizable deduction in new regime: employer NPS 80CCD(2).
    Suppresses if saving < ₹1,000. Returns at most 3 suggestions.
    """
    effective_rate = _new_marginal_rate(new_result, config)
    if effective_rate == 0.0:
        return []

    nps_rate = config.new_regime.employer_nps_rate[profile.employer_type]
    nps_cap = nps_rate * profile.basic_plus_da
    headroom = nps_cap - new_result.deductions.section_80ccd2
    saving = headroom * effective_rate

    if headroom > 0 and saving >= _SUGGESTION_MIN_SAVING:
        return [
            f"Ask your employer to contribute ₹{headroom:,.0f} more to NPS (Section 80CCD(2)) "
            f"to save ₹{round(saving):,.0f} in the New Regime."
        ][:_MAX_SUGGESTIONS]
    return []


# ===========================================================================
# "What saved you money"
# ===========================================================================

def savings_summary(result: RegimeResult) -> List[SavingsGroup]:
    """
    Group log entries with a positive tax_saved by category, in the fixed
    category order. Categories with nothing saved are omitted.
    """
    groups: List[SavingsGroup] = []
    for category in LogCategory:
        entries = [
            e for e in result.log
            if e.category == category and e.tax_saved is not None and e.tax_saved > 0
        ]
        if entries:
            groups.append(SavingsGroup(
                category=category,
                total_tax_saved=sum(e.tax_saved for e in entries),
                entries=entries,
            ))
    return groups
