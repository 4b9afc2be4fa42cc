"""Unit tests for dataservice/errors.

Tests verify:
- Every error code is registered with its category, title and status
- Domain exceptions format their registry templates
"""

import pytest

from dataservice.errors import (
    ERROR_REGISTRY,
    ArtifactNotFoundError,
    ConversionError,
    DatabaseCommandError,
    DataServiceError,
    ErrorCategory,
    MalformedDescriptorError,
    TenantNotFoundError,
    UnresolvedTypeError,
    get_error,
    get_errors_by_category,
)


@pytest.mark.parametrize(
    "code,category,title,status_code",
    [
        ("E-1001", ErrorCategory.COERCION, "Null Input", 400),
        ("E-1002", ErrorCategory.COERCION, "Conversion Failed", 400),
        ("E-2001", ErrorCategory.DESCRIPTOR, "Malformed Command Descriptor", 400),
        ("E-2002", ErrorCategory.DESCRIPTOR, "Unresolved Parameter Type", 400),
        ("E-3001", ErrorCategory.TENANT, "Missing Or Invalid Context", 400),
        ("E-3002", ErrorCategory.TENANT, "Missing Connection String", 400),
        ("E-3003", ErrorCategory.TENANT, "Invalid Parameter", 400),
        ("E-4001", ErrorCategory.ARTIFACT, "Not Found", 404),
        ("E-5001", ErrorCategory.SYSTEM, "Database Error", 500),
    ],
)
def test_error_codes_registered(code, category, title, status_code):
    """All gateway error codes must be registered."""
    error = get_error(code)
    assert error is not None, f"{code} not found in registry"
    assert error.category == category
    assert error.title == title
    assert error.status_code == status_code


def test_codes_match_their_keys():
    for key, error in ERROR_REGISTRY.items():
        assert error.code == key


def test_get_errors_by_category():
    codes = {e.code for e in get_errors_by_category(ErrorCategory.TENANT)}
    assert codes == {"E-3001", "E-3002", "E-3003"}


def test_unknown_code():
    assert get_error("E-9999") is None


class TestDomainErrors:
    """Message formatting and the API error body."""

    def test_conversion_error_message(self):
        error = ConversionError(value="abc", source="str", target="int32")
        assert error.message == "Cannot convert value 'abc' of type 'str' to target type 'int32'."
        assert str(error).startswith("E-1002: ")

    def test_to_dict(self):
        error = ArtifactNotFoundError(endpoint="widgets")
        assert error.to_dict() == {
            "error_code": "E-4001",
            "message": "No content for endpoint 'widgets'.",
            "remediation": "Check the endpoint name, context and Accept header.",
            "details": None,
        }
        assert error.status_code == 404

    def test_missing_context_renders_empty(self):
        assert "''" in TenantNotFoundError(context=None).message

    def test_unresolved_type_hierarchy(self):
        error = UnresolvedTypeError(parameter="@p", token="Image")
        assert isinstance(error, MalformedDescriptorError)
        assert isinstance(error, DataServiceError)
        assert error.message == "Parameter '@p' declares unsupported type 'Image'."

    def test_explicit_message_and_details(self):
        error = MalformedDescriptorError("bad", details={"file": "x.jsonds"})
        assert error.message == "Command descriptor is invalid: bad"
        assert error.to_dict()["details"] == {"file": "x.jsonds"}

    def test_database_error(self):
        error = DatabaseCommandError(reason="timeout")
        assert error.status_code == 500
        assert error.message == "Database command failed: timeout"
