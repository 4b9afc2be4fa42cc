"""Tests for tenant lookup and connection string resolution."""

import pytest

from dataservice.config import GatewayConfig, TenantContext
from dataservice.errors import BadConnectionError, TenantNotFoundError
from dataservice.services.tenant_registry import TenantRegistry, resolve_request_context


@pytest.fixture
def registry(gateway_config: GatewayConfig) -> TenantRegistry:
    return TenantRegistry.from_config(gateway_config)


class TestResolveRequestContext:
    """Query parameter wins over the header when non-blank."""

    def test_query_wins(self):
        assert resolve_request_context("dev", "qa") == "dev"

    def test_blank_query_falls_back_to_header(self):
        assert resolve_request_context("  ", "qa") == "qa"
        assert resolve_request_context(None, "qa") == "qa"

    def test_both_blank(self):
        assert resolve_request_context("", " ") is None


class TestTenantLookup:
    """Case-insensitive tenant lookup."""

    def test_get_is_case_insensitive(self, registry):
        tenant = registry.get("DEV")
        assert tenant is not None
        assert tenant.name == "dev"

    @pytest.mark.parametrize("name", [None, "", "  ", "prod"])
    def test_get_unknown_returns_none(self, registry, name):
        assert registry.get(name) is None

    def test_require_raises(self, registry):
        with pytest.raises(TenantNotFoundError) as exc_info:
            registry.require("prod")
        assert exc_info.value.status_code == 400
        assert "prod" in exc_info.value.message

    def test_names(self, registry):
        assert registry.names == ["dev", "qa"]


class TestConnectionStrings:
    """Connection string lookup by the tenant's key."""

    def test_connection_string(self, registry, sqlite_url):
        assert registry.connection_string(registry.require("dev")) == sqlite_url

    def test_blank_connection_string(self, registry):
        with pytest.raises(BadConnectionError) as exc_info:
            registry.connection_string(registry.require("qa"))
        assert exc_info.value.code == "E-3002"

    def test_missing_key(self):
        registry = TenantRegistry({"x": TenantContext(name="x")}, {})
        assert registry.find_connection_string(registry.require("x")) is None
        with pytest.raises(BadConnectionError):
            registry.connection_string(registry.require("x"))

    def test_key_lookup_is_case_insensitive(self):
        registry = TenantRegistry(
            {"x": TenantContext(name="x", connection_string_key="MainDb")},
            {"maindb": "sqlite:///x.db"},
        )
        assert registry.connection_string(registry.require("x")) == "sqlite:///x.db"
