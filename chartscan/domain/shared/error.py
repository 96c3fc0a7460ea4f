"""Error hierarchy for chartscan.

Error layers:
- ChartScanError: Base class for all chartscan errors
- DomainError: Invalid requests and business rule violations (4xx responses)
- InfrastructureError: Failures of the chart host or registries (5xx responses)

These errors are mapped to HTTP responses by the global exception handler in app.py.
Only ChartFetchError and ChartUnpackError abort a scan; InspectError is absorbed
per image by the inspection scheduler.
"""


class ChartScanError(Exception):
    """Base class for all chartscan errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors (invalid input - typically 4xx)
# =============================================================================


class DomainError(ChartScanError):
    """Base class for domain/business errors."""


class NotFoundError(DomainError):
    """Resource not found."""


class ValidationError(DomainError):
    """Input validation failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


# =============================================================================
# Infrastructure Errors (system-level failures - typically 5xx)
# =============================================================================


class InfrastructureError(ChartScanError):
    """Base class for infrastructure/system errors."""


class ExternalServiceError(InfrastructureError):
    """External service (chart host, registry) is unavailable or failed."""


class ConfigurationError(InfrastructureError):
    """System misconfiguration detected."""


class ChartFetchError(ExternalServiceError):
    """The chart archive could not be downloaded."""


class ChartUnpackError(ExternalServiceError):
    """The chart archive could not be decompressed or unpacked."""


class InspectError(ExternalServiceError):
    """A registry could not describe an image."""

    def __init__(self, message: str, reference: str | None = None) -> None:
        super().__init__(message)
        self.reference = reference
