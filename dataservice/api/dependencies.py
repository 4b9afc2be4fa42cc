"""FastAPI dependencies exposing the gateway services stored on app.state."""

from fastapi import Request

from dataservice.config import TenantContext
from dataservice.models import build_parameter_values
from dataservice.services.data_source_resolver import DataSourceResolver
from dataservice.services.gateway_executor import GatewayExecutor
from dataservice.services.tenant_registry import (
    CONTEXT_HEADER,
    CONTEXT_QUERY_PARAMETER,
    TenantRegistry,
    resolve_request_context,
)


def get_tenants(request: Request) -> TenantRegistry:
    return request.app.state.tenants


def get_resolver(request: Request) -> DataSourceResolver:
    return request.app.state.resolver


def get_executor(request: Request) -> GatewayExecutor:
    return request.app.state.executor


def get_request_context(request: Request) -> str | None:
    """Tenant name from ?ctx=, falling back to the X-API-Context header."""
    return resolve_request_context(
        request.query_params.get(CONTEXT_QUERY_PARAMETER),
        request.headers.get(CONTEXT_HEADER),
    )


def get_optional_tenant(request: Request) -> TenantContext | None:
    """Configured tenant for the request, or None when absent or unknown."""
    return get_tenants(request).get(get_request_context(request))


def get_required_tenant(request: Request) -> TenantContext:
    """Configured tenant for the request; raises TenantNotFoundError otherwise."""
    return get_tenants(request).require(get_request_context(request))


def get_parameter_values(request: Request) -> dict[str, str]:
    """Query string as parameter values.

    Blank values are dropped and the first value of a repeated key is used.
    """
    first_values: dict[str, str] = {}
    for key, value in request.query_params.multi_items():
        if key not in first_values:
            first_values[key] = value
    return build_parameter_values(first_values, drop_blank=True)
