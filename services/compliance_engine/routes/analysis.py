"""
Compliance Analysis Routes
==========================

Endpoints:
- POST /analyze: full compliance analysis for a business profile
- POST /plan: the search queries that would be issued for a profile

Version: 0.1.0
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from shared.logging import analysis_context, get_logger
from shared.models import BusinessProfile
from shared.models.common import BaseResponse, ErrorResponse
from services.compliance_engine.pipeline import ComplianceAnalyzer

logger = get_logger(__name__)

router = APIRouter()


def get_analyzer(request: Request) -> ComplianceAnalyzer:
    """Dependency that provides the analyzer built at startup."""
    return request.app.state.container.analyzer


def _invalid_profile(error: ValidationError) -> JSONResponse:
    details = [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
        for err in error.errors()
    ]
    logger.info("invalid_business_profile", errors=len(details))
    body = ErrorResponse(
        error="Invalid business profile",
        error_code="invalid_profile",
        details=details,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body.model_dump(mode="json"),
    )


@router.post("/analyze", response_model=None)
async def analyze(
    payload: dict[str, Any] = Body(...),
    analyzer: ComplianceAnalyzer = Depends(get_analyzer),
) -> Any:
    """
    Analyze a business profile.

    Accepts either the snake_case profile or the web form's camelCase
    payload. Returns the applicable rules, the report and run metadata.
    """
    try:
        profile = BusinessProfile.from_payload(payload)
    except ValidationError as e:
        return _invalid_profile(e)

    with analysis_context(profile.session_id, endpoint="analyze"):
        result = await analyzer.analyze(profile)

    return BaseResponse[dict[str, Any]](data=result.to_response_data())


@router.post("/plan", response_model=None)
async def plan_queries(
    payload: dict[str, Any] = Body(...),
    analyzer: ComplianceAnalyzer = Depends(get_analyzer),
) -> Any:
    """Planned search queries for a profile, without running them."""
    try:
        profile = BusinessProfile.from_payload(payload)
    except ValidationError as e:
        return _invalid_profile(e)

    return BaseResponse[dict[str, Any]](data={"queries": analyzer.plan(profile)})
