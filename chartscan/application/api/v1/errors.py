"""Centralized error transformation for API routes.

Maps chartscan errors (domain and infrastructure) to JSON error responses.
"""

from typing import Any

from fastapi.responses import JSONResponse

from chartscan.domain.shared.error import (
    ChartFetchError,
    ChartScanError,
    ChartUnpackError,
    DomainError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)

DOMAIN_ERROR_STATUS_MAP: dict[type[DomainError], int] = {
    NotFoundError: 404,
    ValidationError: 400,
}

# Failures of the chart host itself, as opposed to our own infrastructure
UPSTREAM_ERRORS: tuple[type[InfrastructureError], ...] = (ChartFetchError, ChartUnpackError)


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    """Build the `{"error": ...}` body every failed request returns."""
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def map_chartscan_error(error: ChartScanError) -> JSONResponse:
    """Map a chartscan error to a JSON error response.

    Args:
        error: The chartscan error to map.

    Returns:
        JSONResponse with appropriate status code and body.
    """
    if isinstance(error, UPSTREAM_ERRORS):
        # Chart host unreachable, bad status, or unreadable archive -> 502
        return error_response(502, f"scan failed: {error.message}", code=error.code)

    if isinstance(error, InfrastructureError):
        return error_response(503, error.message, code=error.code)

    if isinstance(error, DomainError):
        status_code = DOMAIN_ERROR_STATUS_MAP.get(type(error), 400)
        extra: dict[str, Any] = {"code": error.code}
        if isinstance(error, ValidationError) and error.field is not None:
            extra["field"] = error.field
        return error_response(status_code, error.message, **extra)

    # Fallback for unknown ChartScanError subclasses
    return error_response(500, error.message, code=error.code)
