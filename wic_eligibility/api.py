"""Eligibility HTTP API — FastAPI router mounted by main.py.

Invalid codes are client errors (400). Registry outages on a single check
are not: they return a verdict with status ``unknown``.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query

from wic_eligibility.eligibility.service import EligibilityService, build_eligibility_service
from wic_eligibility.errors import InvalidProductCodeError, UnsupportedStateError
from wic_eligibility.schemas.eligibility import (
    BatchEligibilityRequest,
    BatchEligibilityResponse,
    EligibilityCheckResponse,
    PolicySummaryResponse,
    ProductFacts,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/eligibility", tags=["eligibility"])


@lru_cache(maxsize=1)
def get_eligibility_service() -> EligibilityService:
    """Dependency — one service per process, built from settings."""
    return build_eligibility_service()


# Fixed paths are registered before /{code} so they are not captured by it.


@router.get("/states")
async def list_states(
    service: EligibilityService = Depends(get_eligibility_service),
) -> dict[str, list[str]]:
    return {"states": service.supported_states()}


@router.get("/policy/{state}", response_model=PolicySummaryResponse)
async def policy_summary(
    state: str,
    service: EligibilityService = Depends(get_eligibility_service),
) -> PolicySummaryResponse:
    """Human-readable policy summary for a supported state (404 otherwise)."""
    try:
        normalized = service.require_supported_state(state)
    except UnsupportedStateError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    summary = service.policy_summary(normalized)
    return PolicySummaryResponse(
        state=normalized,
        display_name=summary.splitlines()[0].removesuffix(" WIC Policy"),
        summary=summary,
    )


@router.post("/batch", response_model=BatchEligibilityResponse)
async def check_batch(
    request: BatchEligibilityRequest,
    use_cache: bool = Query(default=True),
    service: EligibilityService = Depends(get_eligibility_service),
) -> BatchEligibilityResponse:
    """Check up to 500 codes in one state; malformed codes come back as invalid_code items."""
    try:
        results = await service.check_eligibility_batch(
            request.codes,
            request.state,
            household=request.household,
            use_cache=use_cache,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return BatchEligibilityResponse(
        results=results,
        total=len(results),
        eligible_count=sum(1 for r in results if r.eligible),
    )


@router.get("/{code}", response_model=EligibilityCheckResponse)
async def check_code(
    code: str,
    state: str = Query(..., min_length=2, max_length=2),
    brand: str | None = Query(default=None),
    size: float | None = Query(default=None, gt=0),
    unit: str | None = Query(default=None),
    category: str | None = Query(default=None),
    alternatives: bool = Query(default=True),
    use_cache: bool = Query(default=True),
    service: EligibilityService = Depends(get_eligibility_service),
) -> EligibilityCheckResponse:
    """Check one product code in one state."""
    product = ProductFacts(
        code=code,
        state=state,
        actual_size=size,
        size_unit=unit,
        brand=brand,
        category=category,
    )
    try:
        return await service.check_eligibility(
            code,
            state,
            product=product,
            include_alternatives=alternatives,
            use_cache=use_cache,
        )
    except InvalidProductCodeError as exc:
        logger.info("Rejected invalid product code %r", code)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
