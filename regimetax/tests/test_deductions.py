"""
Deduction tests — 80C pool, 80D, donations, 80GG, interest, loans, employer NPS,
old regime exemptions (gratuity, LTA, professional tax).
"""
from __future__ import annotations

import pytest

from demo_profiles import full_year_job, full_year_rent
from regimetax.engine.calc_log import CalculationLog
from regimetax.engine.deductions import (
    calculate_80c_pool,
    calculate_80d,
    calculate_80g,
    calculate_80gg,
    calculate_80gga,
    calculate_80ggc,
    calculate_new_deductions,
    calculate_old_deductions,
)
from regimetax.engine.exemptions import calculate_old_exemptions
from regimetax.profile.schemas import UserTaxProfile


@pytest.fixture
def log(config) -> CalculationLog:
    return CalculationLog(config.assumed_marginal_rate)


# ---------------------------------------------------------------------------
# 80C pool
# ---------------------------------------------------------------------------

def test_80c_pool_sums_items_and_caps(config, log) -> None:
    profile = UserTaxProfile(
        employment_periods=[full_year_job(1_200_000, epf_contribution=72_000)],
        investments=[
            {"type": "elss", "amount": 50_000},
            {"type": "life_insurance", "amount": 30_000},
            {"type": "elss", "amount": 10_000},
        ],
        home_loan_principal=40_000,
    )
    total, items, raw = calculate_80c_pool(profile, config, log)
    assert raw == 202_000
    assert total == 150_000
    assert [i.key for i in items] == ["epf", "elss", "lic", "principal"]
    assert next(i for i in items if i.key == "elss").amount == 60_000
    assert log.entries[-1].cap == 150_000


def test_80c_ppf_item_cap(config, log) -> None:
    profile = UserTaxProfile(investments=[{"type": "ppf", "amount": 400_000}])
    total, items, raw = calculate_80c_pool(profile, config, log)
    assert items[0].amount == 150_000
    assert raw == 150_000
    assert total == 150_000


def test_80c_nps_limited_to_ten_percent_of_salary(config, log) -> None:
    profile = UserTaxProfile(employment_periods=[full_year_job(500_000)], nps_contribution=100_000)
    total, items, _ = calculate_80c_pool(profile, config, log)
    assert len(items) == 1
    assert items[0].key == "nps"
    assert total == 50_000


def test_80c_scalar_members_independent_of_instruments(config, log) -> None:
    def profile(*investments: dict) -> UserTaxProfile:
        return UserTaxProfile(
            employment_periods=[full_year_job(1_000_000)],
            investments=[{"type": "stamp_duty", "amount": 20_000}, {"type": "ppf", "amount": 10_000}, *investments],
            home_loan_principal=30_000,
            nps_contribution=40_000,
        )

    _, items, raw = calculate_80c_pool(profile(), config, log)
    assert [i.key for i in items] == ["ppf", "principal", "nps", "stamp"]
    assert raw == 100_000

    _, items, _ = calculate_80c_pool(profile({"type": "tuition_fees", "amount": 5_000}), config, log)
    assert [i.key for i in items] == ["ppf", "tuition", "principal", "nps", "stamp"]


def test_80c_empty_pool_logs_nothing(config, log) -> None:
    total, items, raw = calculate_80c_pool(UserTaxProfile(), config, log)
    assert (total, items, raw) == (0, [], 0)
    assert len(log) == 0


@pytest.mark.parametrize("multiplier", [0, 1, 3, 10])
def test_80c_pool_never_exceeds_limit(multiplier: int, config, log) -> None:
    amount = 40_000 * multiplier
    profile = UserTaxProfile(
        investments=[{"type": t, "amount": amount} for t in ("ppf", "elss", "nsc", "scss", "tuition_fees")],
        home_loan_principal=amount,
    )
    total, _, raw = calculate_80c_pool(profile, config, log)
    assert total <= config.deductions.section_80c_limit
    assert total == min(raw, config.deductions.section_80c_limit)


# ---------------------------------------------------------------------------
# 80D
# ---------------------------------------------------------------------------

def test_80d_checkup_counts_within_self_limit(config, log) -> None:
    profile = UserTaxProfile(
        health_insurance_self=24_000,
        preventive_checkup=5_000,
        health_insurance_parents=60_000,
        parents_age_category="60to80",
    )
    assert calculate_80d(profile, config, log) == 75_000


def test_80d_checkup_clamped(config, log) -> None:
    profile = UserTaxProfile(preventive_checkup=9_000)
    assert calculate_80d(profile, config, log) == 5_000


def test_80d_senior_self_limit(config, log) -> None:
    profile = UserTaxProfile(age_category="above80", health_insurance_self=80_000)
    assert calculate_80d(profile, config, log) == 50_000


# ---------------------------------------------------------------------------
# Donations
# ---------------------------------------------------------------------------

def test_80g_pooling_with_qualifying_limit(config, log) -> None:
    """
    GTI 10L → qualifying limit 10% × 90% × 10L = 90k.
    Limited: charity 2L × 50% + university 20k × 100% = 1.2L → capped 90k.
    Unlimited: PM relief 50k × 100%. Total 1.4L.
    """
    profile = UserTaxProfile(donations=[
        {"category": "charity_trust", "amount": 200_000},
        {"category": "pm_relief_fund", "amount": 50_000},
        {"category": "approved_university", "amount": 20_000},
    ])
    assert calculate_80g(profile, config, 1_000_000, log) == pytest.approx(140_000)
    assert "Capped at 10% of adjusted income" in log.entries[-1].explanation


def test_80g_half_no_limit_category(config, log) -> None:
    profile = UserTaxProfile(donations=[{"category": "pm_drought_fund", "amount": 40_000}])
    assert calculate_80g(profile, config, 100_000, log) == 20_000


def test_80g_cash_above_limit_rejected(config, log) -> None:
    profile = UserTaxProfile(donations=[{"category": "ngo", "amount": 3_000, "payment_mode": "cash"}])
    assert calculate_80g(profile, config, 1_000_000, log) == 0
    assert log.entries[0].item == "Cash Donation Limit Exceeded"
    assert log.entries[0].amount == 0


def test_80g_small_cash_allowed(config, log) -> None:
    profile = UserTaxProfile(donations=[{"category": "temple", "amount": 2_000, "payment_mode": "cash"}])
    assert calculate_80g(profile, config, 1_000_000, log) == 1_000


def test_80g_skips_routed_categories(config, log) -> None:
    profile = UserTaxProfile(donations=[
        {"category": "political_party", "amount": 10_000},
        {"category": "approved_research", "amount": 10_000},
    ])
    assert calculate_80g(profile, config, 1_000_000, log) == 0
    assert len(log) == 0


def test_80ggc_rejects_any_cash(config, log) -> None:
    profile = UserTaxProfile(donations=[
        {"category": "political_party", "amount": 500, "payment_mode": "cash"},
        {"category": "political_party", "amount": 25_000, "payment_mode": "online"},
    ])
    assert calculate_80ggc(profile, log) == 25_000
    assert log.entries[0].item == "Political Donation Rejected"


def test_80gga_scalar_and_list_entries(config, log) -> None:
    profile = UserTaxProfile(
        scientific_research_donation=15_000,
        donations=[
            {"category": "approved_research", "amount": 5_000, "payment_mode": "cheque"},
            {"category": "approved_research", "amount": 4_000, "payment_mode": "cash"},
        ],
    )
    assert calculate_80gga(profile, config, log) == 20_000


# ---------------------------------------------------------------------------
# 80GG / interest / loans
# ---------------------------------------------------------------------------

def test_80gg_least_of_three(config, log) -> None:
    # least(60k, 25% × 6L = 1.5L, 2.4L − 60k = 1.8L) = 60k
    profile = UserTaxProfile(other_income=600_000, rent_periods=[full_year_rent(240_000)])
    assert calculate_80gg(profile, config, 600_000, log) == 60_000


def test_80gg_rent_minus_ten_percent_binds(config, log) -> None:
    # least(60k, 25% × 4L = 1L, 72k − 40k = 32k) = 32k
    profile = UserTaxProfile(other_income=400_000, rent_periods=[full_year_rent(72_000)])
    assert calculate_80gg(profile, config, 400_000, log) == pytest.approx(32_000)


def test_80gg_not_applied_when_hra_received(config, log) -> None:
    profile = UserTaxProfile(
        employment_periods=[full_year_job(600_000, hra=10_000)],
        rent_periods=[full_year_rent(240_000)],
    )
    result = calculate_old_deductions(profile, config, 600_000, log)
    assert result.section_80gg == 0


def test_80tta_savings_only_for_non_senior(config, log) -> None:
    profile = UserTaxProfile(savings_interest=25_000, fd_interest=50_000)
    result = calculate_old_deductions(profile, config, 75_000, log)
    assert result.section_80tta_ttb == 10_000


def test_80ttb_all_interest_for_senior(config, log) -> None:
    profile = UserTaxProfile(age_category="60to80", savings_interest=20_000, fd_interest=150_000)
    result = calculate_old_deductions(profile, config, 170_000, log)
    assert result.section_80tta_ttb == 100_000


def test_80ee_and_80eea_mutually_exclusive(config, log) -> None:
    profile = UserTaxProfile(section_80ee_interest=30_000, section_80eea_interest=100_000)
    result = calculate_old_deductions(profile, config, 1_000_000, log)
    assert result.section_80ee == 30_000
    assert result.section_80eea == 0
    assert any("Mutually exclusive" in e.explanation for e in log.entries)


def test_24b_self_occupied_cap(config, log) -> None:
    result = calculate_old_deductions(UserTaxProfile(home_loan_interest=350_000), config, 1_000_000, log)
    assert result.section_24b == 200_000


def test_disability_flat_amounts(config, log) -> None:
    profile = UserTaxProfile(dependent_disability="80plus", self_disability="40to79")
    result = calculate_old_deductions(profile, config, 1_000_000, log)
    assert result.section_80dd == 125_000
    assert result.section_80u == 75_000


def test_80ddb_limit_by_age(config, log) -> None:
    young = calculate_old_deductions(UserTaxProfile(specified_disease_expenses=90_000), config, 0, log)
    senior = calculate_old_deductions(
        UserTaxProfile(age_category="60to80", specified_disease_expenses=90_000), config, 0, log,
    )
    assert young.section_80ddb == 40_000
    assert senior.section_80ddb == 90_000


def test_old_deductions_total_is_sum_of_parts(config, log) -> None:
    profile = UserTaxProfile(
        employment_periods=[full_year_job(1_000_000, employer_nps_contribution=30_000)],
        investments=[{"type": "elss", "amount": 80_000}],
        nps_extra_contribution=70_000,
        health_insurance_self=10_000,
        education_loan_interest=45_000,
        agniveer_contribution=12_000,
    )
    result = calculate_old_deductions(profile, config, 1_000_000, log)
    assert result.section_80ccd1b == 50_000
    assert result.section_80ccd2 == 30_000
    assert result.section_80e == 45_000
    assert result.section_80cch == 12_000
    assert result.total == 80_000 + 50_000 + 30_000 + 10_000 + 45_000 + 12_000
    assert log.entries[-1].section == "Total Deductions"


# ---------------------------------------------------------------------------
# New regime
# ---------------------------------------------------------------------------

def test_new_regime_employer_nps_fourteen_percent(config, log) -> None:
    profile = UserTaxProfile(
        employment_periods=[full_year_job(800_000, basic=400_000, employer_nps_contribution=100_000)],
    )
    result = calculate_new_deductions(profile, config, log)
    assert result.section_80ccd2 == pytest.approx(56_000)
    assert result.total == pytest.approx(75_000 + 56_000)


def test_new_regime_family_pension_and_transport(config, log) -> None:
    profile = UserTaxProfile(family_pension=120_000, is_divyang=True, transport_allowance=50_000)
    result = calculate_new_deductions(profile, config, log)
    assert result.standard_deduction == 0
    assert result.family_pension_deduction == 25_000
    assert result.transport_divyang == 38_400


# ---------------------------------------------------------------------------
# Old regime exemptions
# ---------------------------------------------------------------------------

def test_private_gratuity_formula(config, log) -> None:
    profile = UserTaxProfile(
        employment_periods=[full_year_job(900_000)],
        gratuity_received=500_000,
        years_of_service=10,
        last_drawn_salary=50_000,
    )
    result = calculate_old_exemptions(profile, config, log)
    assert result.gratuity == pytest.approx(288_461.54, abs=0.01)


def test_government_gratuity_fully_exempt(config, log) -> None:
    profile = UserTaxProfile(employer_type="government", gratuity_received=3_000_000)
    assert calculate_old_exemptions(profile, config, log).gratuity == 3_000_000


def test_lta_lower_of_received_and_spent(config, log) -> None:
    profile = UserTaxProfile(
        employment_periods=[full_year_job(1_000_000, lta_received=40_000)],
        lta_actual_expenses=25_000,
    )
    assert calculate_old_exemptions(profile, config, log).lta == 25_000


def test_professional_tax_capped(config, log) -> None:
    profile = UserTaxProfile(employment_periods=[full_year_job(1_000_000)], professional_tax=4_000)
    result = calculate_old_exemptions(profile, config, log)
    assert result.professional_tax == 2_500
    assert result.total == 50_000 + 2_500


def test_entertainment_allowance_government_only(config, log) -> None:
    kwargs = dict(employment_periods=[full_year_job(600_000, basic=300_000)], entertainment_allowance=12_000)
    private = calculate_old_exemptions(UserTaxProfile(**kwargs), config, log)
    government = calculate_old_exemptions(UserTaxProfile(employer_type="government", **kwargs), config, log)
    assert private.entertainment_allowance == 0
    assert government.entertainment_allowance == 5_000


def test_children_allowances_limited_to_two_children(config, log) -> None:
    profile = UserTaxProfile(children_education_allowance=10_000, hostel_allowance=20_000, number_of_children=3)
    result = calculate_old_exemptions(profile, config, log)
    assert result.children_education == 2_400
    assert result.hostel == 7_200
