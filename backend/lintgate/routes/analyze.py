"""
Lintgate Backend: Analysis Routes
==================================

What:  POST /analyze (scope: analyze) and GET /standards (scope: standards).
How:   Thin handlers. Input sanitation, caching and the engine call live in
       AnalysisService; authentication has already happened in the pipeline.
"""

import logging

from fastapi import APIRouter, Depends, Request

from lintgate.dependencies import Services, get_services
from lintgate.routing import GuardedRoute
from lintgate.schemas.api import AnalyzeRequest, AnalyzeResponse, ErrorResponse, StandardsResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analysis"], route_class=GuardedRoute)


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Analyze PHP source",
    responses={
        400: {"model": ErrorResponse, "description": "Missing/oversized code or bad standard"},
        401: {"model": ErrorResponse, "description": "No API key"},
        403: {"model": ErrorResponse, "description": "Invalid key or missing 'analyze' scope"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Analysis engine failed"},
    },
)
async def analyze(
    body: AnalyzeRequest,
    request: Request,
    services: Services = Depends(get_services),
) -> AnalyzeResponse:
    """
    Run PHP_CodeSniffer over the submitted code and return its JSON report.

    Identical submissions (same code, standard, version pin and options)
    are served from the result cache until the entry expires.
    """
    client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
    outcome = await services.analysis.analyze(
        body.code,
        standard=body.standard,
        php_version=body.php_version,
        options=body.options,
        client_ip=client_ip,
    )
    return AnalyzeResponse(success=True, cached=outcome.cached, results=outcome.report)


@router.get(
    "/standards",
    response_model=StandardsResponse,
    summary="List installed coding standards",
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"model": ErrorResponse, "description": "Analysis engine unavailable"},
    },
)
async def list_standards(services: Services = Depends(get_services)) -> StandardsResponse:
    standards = await services.engine.list_standards()
    return StandardsResponse(success=True, standards=standards)
