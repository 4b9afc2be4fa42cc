"""Error code registry with E-XXXX format codes.

This module defines the error code system for the data gateway, organizing
errors into categories:
- E-1xxx: Value coercion errors
- E-2xxx: Command descriptor errors
- E-3xxx: Tenant and connection errors
- E-4xxx: Artifact errors
- E-5xxx: System/internal errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    COERCION = "coercion"  # E-1xxx: Value coercion errors
    DESCRIPTOR = "descriptor"  # E-2xxx: Command descriptor errors
    TENANT = "tenant"  # E-3xxx: Tenant and connection errors
    ARTIFACT = "artifact"  # E-4xxx: Artifact errors
    SYSTEM = "system"  # E-5xxx: System/internal errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action the caller should take to resolve.
        status_code: HTTP status the error maps to at the API boundary.
    """

    code: str  # E-XXXX format
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    status_code: int = 400


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Coercion errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.COERCION,
        title="Null Input",
        message_template="Cannot convert null input to non-nullable type '{target}'.",
        remediation="Supply a value or declare the target as nullable.",
    ),
    "E-1002": ErrorCode(
        code="E-1002",
        category=ErrorCategory.COERCION,
        title="Conversion Failed",
        message_template="Cannot convert value '{value}' of type '{source}' to target type '{target}'.",
        remediation="Correct the value so it parses as the target type.",
    ),
    # Descriptor errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.DESCRIPTOR,
        title="Malformed Command Descriptor",
        message_template="Command descriptor is invalid: {reason}",
        remediation="Fix the data source definition file and retry.",
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.DESCRIPTOR,
        title="Unresolved Parameter Type",
        message_template="Parameter '{parameter}' declares unsupported type '{token}'.",
        remediation="Use one of the supported SQL type names for the parameter.",
    ),
    # Tenant/connection errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.TENANT,
        title="Missing Or Invalid Context",
        message_template="Missing or invalid context '{context}'. Use ?ctx=... or 'X-API-Context' header.",
        remediation="Pass a configured context name via the ctx query parameter or X-API-Context header.",
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.TENANT,
        title="Missing Connection String",
        message_template="Context '{context}' has no usable connection string.",
        remediation="Configure connection_string_key and connection_strings for the context.",
    ),
    "E-3003": ErrorCode(
        code="E-3003",
        category=ErrorCategory.TENANT,
        title="Invalid Parameter",
        message_template="Missing or invalid {parameter}.",
        remediation="Use database abbreviations configured for the context.",
    ),
    # Artifact errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.ARTIFACT,
        title="Not Found",
        message_template="No content for endpoint '{endpoint}'.",
        remediation="Check the endpoint name, context and Accept header.",
        status_code=404,
    ),
    # System errors (E-5xxx)
    "E-5001": ErrorCode(
        code="E-5001",
        category=ErrorCategory.SYSTEM,
        title="Database Error",
        message_template="Database command failed: {reason}",
        remediation="Check database availability and the data source definition.",
        status_code=500,
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Look up an error code in the registry.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all error codes in a category."""
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
