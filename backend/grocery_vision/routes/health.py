"""
Grocery Vision Backend — Health Check Routes
==============================================

What:  GET / (liveness, cheap) and GET /health (Gemini reachability).
Who:   Docker health checks, load balancers and the browser client's
       "is the backend up" probe.

Status levels (/health):
    - healthy:   Gemini reachable with the configured key
    - degraded:  Gemini unreachable or no key configured; the server
                 still answers, detections will fail with 401/503
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from grocery_vision import __version__
from grocery_vision.dependencies import get_llm_service
from grocery_vision.schemas.detection import HealthResponse, RootResponse
from grocery_vision.services.llm_base import LLMService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", response_model=RootResponse, summary="Liveness check")
async def root() -> RootResponse:
    return RootResponse(
        message="Grocery Vision API is running",
        status="ok",
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Reports whether the Gemini API is reachable with the configured key.",
)
async def health_check(llm: LLMService = Depends(get_llm_service)) -> HealthResponse:
    gemini_status = "available"
    overall = "healthy"

    try:
        if not llm.is_configured:
            gemini_status = "unconfigured"
            overall = "degraded"
        elif not await llm.health_check():
            gemini_status = "unavailable"
            overall = "degraded"
    except Exception as e:
        gemini_status = "unavailable"
        overall = "degraded"
        logger.warning("Health check: Gemini unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        gemini=gemini_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
