"""Error handling framework for the data gateway.

This package provides:
- Error code registry with E-XXXX format codes
- Typed domain exceptions carrying those codes

Error categories:
- E-1xxx: Value coercion errors
- E-2xxx: Command descriptor errors
- E-3xxx: Tenant and connection errors
- E-4xxx: Artifact errors
- E-5xxx: System/internal errors
"""

from dataservice.errors.domain import (
    ArtifactNotFoundError,
    BadConnectionError,
    ConversionError,
    DatabaseCommandError,
    DataServiceError,
    InvalidParameterError,
    MalformedDescriptorError,
    NullInputError,
    TenantNotFoundError,
    UnresolvedTypeError,
)
from dataservice.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Domain exceptions
    "DataServiceError",
    "NullInputError",
    "ConversionError",
    "MalformedDescriptorError",
    "UnresolvedTypeError",
    "TenantNotFoundError",
    "BadConnectionError",
    "InvalidParameterError",
    "ArtifactNotFoundError",
    "DatabaseCommandError",
]
