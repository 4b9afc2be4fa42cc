"""Typed domain exceptions for API error mapping.

Every exception carries an E-XXXX code from the registry so the API layer
can return a consistent error body and HTTP status without matching on
message strings.

Usage:
    # In service layer
    raise TenantNotFoundError(context="qa")

    # At the API boundary (registered once in dataservice.api.main)
    JSONResponse(status_code=exc.status_code, content=exc.to_dict())
"""

from typing import Any

from dataservice.errors.registry import get_error


class DataServiceError(Exception):
    """Base exception for all gateway domain errors.

    Attributes:
        code: Error code in E-XXXX format.
        message: Human-readable error message.
        remediation: Action the caller should take to resolve.
        status_code: HTTP status code for the API boundary.
        details: Additional context dictionary.
    """

    code = "E-5001"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        **context: object,
    ) -> None:
        error_def = get_error(self.code)
        if message is None:
            message = error_def.message_template if error_def else self.code
            try:
                message = message.format(**context)
            except KeyError:
                # Keep template if some placeholders are missing
                pass
        super().__init__(message)
        self.message = message
        self.remediation = error_def.remediation if error_def else "Contact support."
        self.status_code = error_def.status_code if error_def else 500
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON error body used by the API."""
        return {
            "error_code": self.code,
            "message": self.message,
            "remediation": self.remediation,
            "details": self.details or None,
        }


class NullInputError(DataServiceError):
    """Null input for a non-nullable coercion target (strict mode only)."""

    code = "E-1001"

    def __init__(self, target: str) -> None:
        super().__init__(target=target)
        self.target = target


class ConversionError(DataServiceError):
    """Value cannot be converted to the target type (strict mode only)."""

    code = "E-1002"

    def __init__(self, value: object, source: str, target: str) -> None:
        super().__init__(value=value, source=source, target=target)
        self.value = value
        self.source = source
        self.target = target


class MalformedDescriptorError(DataServiceError):
    """Command descriptor document is invalid. Maps to HTTP 400."""

    code = "E-2001"

    def __init__(self, reason: str, **context: object) -> None:
        super().__init__(reason=reason, **context)
        self.reason = reason


class UnresolvedTypeError(MalformedDescriptorError):
    """Parameter declares a type token with no coercion target."""

    code = "E-2002"

    def __init__(self, parameter: str, token: str | None) -> None:
        super().__init__(
            f"unsupported type {token!r}", parameter=parameter, token=token
        )
        self.parameter = parameter
        self.token = token


class TenantNotFoundError(DataServiceError):
    """Request context is missing or not configured. Maps to HTTP 400."""

    code = "E-3001"

    def __init__(self, context: str | None) -> None:
        super().__init__(context=context or "")
        self.context = context


class BadConnectionError(DataServiceError):
    """Tenant has a missing or blank connection string. Maps to HTTP 400."""

    code = "E-3002"

    def __init__(self, context: str) -> None:
        super().__init__(context=context)
        self.context = context


class InvalidParameterError(DataServiceError):
    """Request parameter could not be resolved. Maps to HTTP 400."""

    code = "E-3003"

    def __init__(self, parameter: str) -> None:
        super().__init__(parameter=parameter)
        self.parameter = parameter


class ArtifactNotFoundError(DataServiceError):
    """No artifact or an empty result for an endpoint. Maps to HTTP 404."""

    code = "E-4001"

    def __init__(self, endpoint: str | None) -> None:
        super().__init__(endpoint=endpoint or "")
        self.endpoint = endpoint


class DatabaseCommandError(DataServiceError):
    """Database round trip failed or timed out. Maps to HTTP 500."""

    code = "E-5001"

    def __init__(self, reason: str) -> None:
        super().__init__(reason=reason)
        self.reason = reason
