"""
Health Check Route

Simple health check endpoint for liveness probes.
"""

from fastapi import APIRouter, Request

from api.models.responses import HealthResponse


router = APIRouter(tags=["health"])


def _initialized(request: Request) -> bool:
    oracle = getattr(request.app.state, "oracle", None)
    return bool(oracle is not None and oracle.is_initialized)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint.

    Returns service status for liveness probes.
    """
    return HealthResponse(ok=True, initialized=_initialized(request))


@router.get("/", response_model=HealthResponse)
async def root(request: Request) -> HealthResponse:
    """
    Root endpoint - same as health check.
    """
    return HealthResponse(ok=True, initialized=_initialized(request))
