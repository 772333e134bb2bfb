"""Custom exceptions.

Checks and API clients never raise these for network problems; fetch and
API failures become fallback scores. These cover misuse and misconfiguration.
"""

from typing import Any


class SiteAuditError(Exception):
    """Base exception for the site audit package."""

    def __init__(
        self,
        message: str,
        code: str = "error",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(SiteAuditError):
    """Invalid input (URL, strategy, inventory file)."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            code="validation_error",
            details=details,
        )


class ConfigurationError(SiteAuditError):
    """Settings are missing or inconsistent."""

    def __init__(self, message: str):
        super().__init__(message=message, code="configuration_error")


class InventoryError(SiteAuditError):
    """Site inventory backend could not be read."""

    def __init__(self, source: str, message: str):
        super().__init__(
            message=f"{source}: {message}",
            code="inventory_error",
            details={"source": source},
        )


class ExternalServiceError(SiteAuditError):
    """External service error."""

    def __init__(self, service: str, message: str):
        self.service = service
        self.reason = message
        super().__init__(
            message=f"{service}: {message}",
            code="external_service_error",
            details={"service": service},
        )
