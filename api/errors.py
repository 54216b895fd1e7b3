"""
API Error Handling

Standardized error envelope for the API:

    {"ok": false, "error": {"code": ..., "message": ..., "details": {...}}}

Domain exceptions (ZkppException) are mapped to HTTP status codes here so
routes can simply let them propagate.
"""

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.models.responses import ErrorDetail, ErrorResponse
from core.errors import (
    ExternalUnavailableException,
    NotFoundException,
    OracleNotInitializedException,
    PersistenceException,
    ZkppException,
)


def status_for(exc: ZkppException) -> int:
    """HTTP status for a domain exception."""
    if isinstance(exc, NotFoundException):
        return 404
    if isinstance(exc, (OracleNotInitializedException, ExternalUnavailableException)):
        return 503
    if isinstance(exc, PersistenceException):
        return 500
    return 400


def _envelope(code: str, message: str, details: dict[str, Any]) -> dict[str, Any]:
    return ErrorResponse(
        ok=False,
        error=ErrorDetail(code=code, message=message, details=details),
    ).model_dump()


async def zkpp_error_handler(request: Request, exc: ZkppException) -> JSONResponse:
    """Handle domain exceptions raised by the oracle and claims code."""
    return JSONResponse(
        status_code=status_for(exc),
        content={"ok": False, "error": exc.to_error_model().model_dump(mode="json")},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request validation failures as 400 with the standard envelope."""
    errors = [
        {"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg", "")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_envelope("INVALID_REQUEST", "Request validation failed", {"errors": errors}),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    return JSONResponse(
        status_code=500,
        content=_envelope(
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            {"type": type(exc).__name__},
        ),
    )
