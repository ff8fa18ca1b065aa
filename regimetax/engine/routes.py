"""
Engine HTTP routes — POST /api/calculate,
                     POST /api/calculate/{regime},
                     POST /api/validate,
                     POST /api/savings/{regime}

Stateless: every request carries a full UserTaxProfile and gets a freshly
computed result. Nothing is stored.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from regimetax.engine.optimizer import savings_summary
from regimetax.engine.schemas import RegimeResult, SavingsGroup, TaxResult
from regimetax.engine.tax_engine import calculate_regime, compare_regimes
from regimetax.profile.schemas import ErrorResponse, UserTaxProfile
from regimetax.profile.validator import validate_profile
from regimetax.tax_config import get_tax_configuration

router = APIRouter(prefix="/api", tags=["engine"])
logger = logging.getLogger(__name__)

_REGIMES = ("old", "new")

_ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Unknown regime"},
    422: {"model": ErrorResponse, "description": "Request validation failed"},
}


def _check_regime(regime: str) -> str:
    if regime not in _REGIMES:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown regime '{regime}'. Expected one of: {', '.join(_REGIMES)}.",
        )
    return regime


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/calculate", response_model=TaxResult, responses=_ERROR_RESPONSES)
async def calculate(profile: UserTaxProfile) -> TaxResult:
    """
    Run both regimes and recommend the cheaper one.

    Returns:
      200: TaxResult with both RegimeResults, rationale, warnings / hard blocks
           and headroom suggestions
      422: structurally invalid profile (unknown field, bad enum, non-numeric month)
    """
    result = compare_regimes(profile, get_tax_configuration(), logger)
    logger.info(
        "POST /api/calculate: recommended=%s log_entries=%d/%d",
        result.recommended_regime,
        len(result.old_regime.log),
        len(result.new_regime.log),
    )
    return result


@router.post("/calculate/{regime}", response_model=RegimeResult, responses=_ERROR_RESPONSES)
async def calculate_one(regime: str, profile: UserTaxProfile) -> RegimeResult:
    """Run a single regime ("old" or "new")."""
    return calculate_regime(profile, get_tax_configuration(), _check_regime(regime), logger)


@router.post("/validate", responses=_ERROR_RESPONSES)
async def validate(profile: UserTaxProfile) -> dict:
    """Advisory checks only. Always 200 for a structurally valid profile."""
    report = validate_profile(profile, get_tax_configuration())
    return {"warnings": report.warnings, "hard_blocks": report.hard_blocks}


@router.post("/savings/{regime}", response_model=list[SavingsGroup], responses=_ERROR_RESPONSES)
async def savings(regime: str, profile: UserTaxProfile) -> list[SavingsGroup]:
    """'What saved you money': log entries with tax saved, grouped by category."""
    result = calculate_regime(profile, get_tax_configuration(), _check_regime(regime), logger)
    return savings_summary(result)
