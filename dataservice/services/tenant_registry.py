"""Tenant (context) lookup and connection string resolution.

Tenants are loaded once from configuration and never mutated. Lookup is
case-insensitive by tenant name.
"""

import logging
from collections.abc import Mapping

from dataservice.config import GatewayConfig, TenantContext
from dataservice.errors import BadConnectionError, TenantNotFoundError

logger = logging.getLogger(__name__)

CONTEXT_QUERY_PARAMETER = "ctx"
CONTEXT_HEADER = "X-API-Context"


def is_blank(value: str | None) -> bool:
    """True for None, empty or whitespace-only strings."""
    return value is None or not value.strip()


def resolve_request_context(query_value: str | None, header_value: str | None) -> str | None:
    """Pick the request's tenant name; a non-blank query value wins over the header."""
    if not is_blank(query_value):
        return query_value
    if not is_blank(header_value):
        return header_value
    return None


class TenantRegistry:
    """Read-only table of configured tenants and their connection strings."""

    def __init__(
        self,
        contexts: Mapping[str, TenantContext],
        connection_strings: Mapping[str, str],
    ) -> None:
        self._contexts = {key.lower(): ctx for key, ctx in contexts.items()}
        self._connection_strings = {
            key.lower(): value for key, value in connection_strings.items()
        }

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "TenantRegistry":
        return cls(config.contexts, config.connection_strings)

    @property
    def names(self) -> list[str]:
        return sorted(ctx.name for ctx in self._contexts.values())

    def get(self, name: str | None) -> TenantContext | None:
        """Return the tenant for name, or None when blank or unknown."""
        if is_blank(name):
            return None
        return self._contexts.get(name.strip().lower())

    def require(self, name: str | None) -> TenantContext:
        """Return the tenant for name.

        Raises:
            TenantNotFoundError: name is blank or not configured.
        """
        tenant = self.get(name)
        if tenant is None:
            logger.warning("Request context %r is missing or not configured", name)
            raise TenantNotFoundError(context=name)
        return tenant

    def find_connection_string(self, tenant: TenantContext) -> str | None:
        """Return the tenant's connection string, or None when missing/blank."""
        key = tenant.connection_string_key
        if is_blank(key):
            return None
        value = self._connection_strings.get(key.strip().lower())
        return None if is_blank(value) else value

    def connection_string(self, tenant: TenantContext) -> str:
        """Return the tenant's connection string.

        Raises:
            BadConnectionError: The key or the configured value is blank.
        """
        value = self.find_connection_string(tenant)
        if value is None:
            logger.warning("Context %r has no usable connection string", tenant.name)
            raise BadConnectionError(context=tenant.name)
        return value
