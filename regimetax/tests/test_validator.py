"""
Profile validator tests — advisory warnings and hard blocks.
The validator never raises; every finding comes back in the report.
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from demo_profiles import DEMO_PROFILES, full_year_job
from regimetax.profile.schemas import EmploymentPeriod, UserTaxProfile, to_amount
from regimetax.profile.validator import validate_profile


def _warnings_containing(report, text: str) -> list[str]:
    return [w for w in report.warnings if text in w]


@pytest.mark.parametrize("name", list(DEMO_PROFILES))
def test_demo_profiles_have_no_hard_blocks(name: str, config) -> None:
    report = validate_profile(UserTaxProfile(**DEMO_PROFILES[name]["profile"]), config)
    assert report.ok
    assert report.hard_blocks == []


def test_basic_above_gross_auto_adjusted(config) -> None:
    period = full_year_job(600_000, basic=900_000)
    assert period.effective_basic == 300_000
    report = validate_profile(UserTaxProfile(employment_periods=[period]), config)
    assert _warnings_containing(report, "Auto-adjusted to 50% of Gross")


def test_components_above_gross_is_hard_block(config) -> None:
    profile = UserTaxProfile(employment_periods=[full_year_job(500_000, basic=400_000, hra=300_000)])
    report = validate_profile(profile, config)
    assert not report.ok
    assert "exceed Gross Salary" in report.hard_blocks[0]


def test_high_epf_warning(config) -> None:
    # 12% of 4L basic = 48k; 2x tolerance = 96k
    profile = UserTaxProfile(
        employment_periods=[full_year_job(1_000_000, basic=400_000, epf_contribution=100_000)],
    )
    assert _warnings_containing(validate_profile(profile, config), "EPF contribution seems high")


@pytest.mark.parametrize("basic, expected", [(300_000, True), (450_000, False), (700_000, True)])
def test_basic_ratio_warning(basic: float, expected: bool, config) -> None:
    profile = UserTaxProfile(employment_periods=[full_year_job(1_000_000, basic=basic)])
    assert bool(_warnings_containing(validate_profile(profile, config), "Basic salary is")) is expected


def test_high_hra_ratio_warning(config) -> None:
    profile = UserTaxProfile(employment_periods=[full_year_job(1_000_000, basic=500_000, hra=300_000)])
    assert _warnings_containing(validate_profile(profile, config), "HRA (60% of Basic) seems high")


def test_caps_reported_as_warnings(config) -> None:
    profile = UserTaxProfile(
        employment_periods=[full_year_job(1_000_000, basic=500_000, employer_nps_contribution=80_000)],
        nps_extra_contribution=80_000,
        preventive_checkup=8_000,
        professional_tax=3_000,
    )
    report = validate_profile(profile, config)
    assert _warnings_containing(report, "80CCD(1B) contribution capped")
    assert _warnings_containing(report, "Employer NPS exceeds the 10% Old Regime limit")
    assert _warnings_containing(report, "Preventive health checkup capped")
    assert _warnings_containing(report, "Professional tax capped")
    assert report.ok


def test_lta_without_lta_received_blocks(config) -> None:
    report = validate_profile(UserTaxProfile(lta_actual_expenses=20_000), config)
    assert any("LTA" in b for b in report.hard_blocks)


def test_lta_received_warns_about_new_regime(config) -> None:
    profile = UserTaxProfile(employment_periods=[full_year_job(1_000_000, lta_received=30_000)])
    assert _warnings_containing(validate_profile(profile, config), "fully taxable")


def test_gratuity_without_years_warns(config) -> None:
    report = validate_profile(UserTaxProfile(gratuity_received=100_000), config)
    assert _warnings_containing(report, "years of service")


def test_agricultural_income_with_salary_warns(config) -> None:
    profile = UserTaxProfile(employment_periods=[full_year_job(600_000)], agricultural_income=10_000)
    assert _warnings_containing(validate_profile(profile, config), "partial integration")


def test_overlapping_employment_periods(config) -> None:
    profile = UserTaxProfile(employment_periods=[
        EmploymentPeriod(id="acme", start_month=4, start_year=2025, end_month=10, end_year=2025, gross_salary=500_000),
        EmploymentPeriod(id="globex", start_month=9, start_year=2025, end_month=3, end_year=2026, gross_salary=600_000),
    ])
    report = validate_profile(profile, config)
    overlap = _warnings_containing(report, "overlap")
    assert len(overlap) == 1
    assert "acme" in overlap[0] and "globex" in overlap[0]
    assert "added together" in overlap[0]


def test_overlapping_rent_periods(config) -> None:
    profile = UserTaxProfile(rent_periods=[
        dict(start_month=4, start_year=2025, end_month=3, end_year=2026, amount=240_000),
        dict(start_month=1, start_year=2026, end_month=3, end_year=2026, amount=60_000),
    ])
    overlap = _warnings_containing(validate_profile(profile, config), "overlap")
    assert overlap == [
        "Rent period 1 and Rent period 2 overlap. "
        "Only the earlier-listed rent period counts for the overlapping months."
    ]


def test_inverted_and_out_of_year_periods(config) -> None:
    profile = UserTaxProfile(employment_periods=[
        EmploymentPeriod(start_month=9, start_year=2025, end_month=6, end_year=2025, gross_salary=100_000),
        EmploymentPeriod(start_month=4, start_year=2024, end_month=3, end_year=2025, gross_salary=100_000),
    ])
    report = validate_profile(profile, config)
    assert _warnings_containing(report, "ends before it starts")
    assert _warnings_containing(report, "outside the fiscal year")


def test_out_of_range_month_clamped(config) -> None:
    profile = UserTaxProfile(employment_periods=[
        dict(start_month=0, start_year=2025, end_month=13, end_year=2026, gross_salary=600_000),
    ])
    period = profile.employment_periods[0]
    assert (period.start_month, period.end_month) == (1, 12)
    assert period.clamped_months == (("start_month", 0), ("end_month", 13))

    report = validate_profile(profile, config)
    assert _warnings_containing(report, "start month 0 is not a calendar month. Clamped to 1.")
    assert _warnings_containing(report, "end month 13 is not a calendar month. Clamped to 12.")
    assert report.ok


def test_in_range_month_not_reported(config) -> None:
    period = full_year_job(600_000)
    assert period.clamped_months == ()
    assert not _warnings_containing(validate_profile(UserTaxProfile(employment_periods=[period]), config), "Clamped")


def test_non_numeric_month_is_rejected_structurally() -> None:
    with pytest.raises(ValidationError):
        EmploymentPeriod(start_month="April", start_year=2025, end_month=3, end_year=2026)


def test_unknown_profile_field_rejected() -> None:
    with pytest.raises(ValidationError):
        UserTaxProfile(salary=100_000)


@pytest.mark.parametrize("raw, expected", [
    (None, 0), ("", 0), ("abc", 0), (-500, 0), (float("nan"), 0), (float("inf"), 0),
    (True, 0), ("1,50,000", 150_000), (" 2500 ", 2_500), (12.5, 12.5),
])
def test_amount_coercion(raw, expected: float) -> None:
    assert to_amount(raw) == expected


def test_default_configuration_used_when_omitted() -> None:
    report = validate_profile(UserTaxProfile(nps_extra_contribution=60_000))
    assert _warnings_containing(report, "80CCD(1B)")
