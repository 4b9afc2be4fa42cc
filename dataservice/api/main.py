"""FastAPI application for the data gateway.

Builds the application with its routers and exception handler. Gateway
services are created once in the lifespan from the loaded configuration
and kept on app.state for the routes' dependencies.
"""

import logging
import sys
import time as _time
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

from fastapi import FastAPI, Request

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
from fastapi.responses import JSONResponse

from dataservice.api.routes import gateway
from dataservice.api.schemas import HealthResponse
from dataservice.config import GatewayConfig, load_config
from dataservice.errors import DataServiceError
from dataservice.services.command_cache import CommandCache
from dataservice.services.data_source_resolver import DataSourceResolver
from dataservice.services.gateway_executor import GatewayExecutor
from dataservice.services.tenant_registry import TenantRegistry

logger = logging.getLogger(__name__)


def _package_version() -> str:
    try:
        return _pkg_version("dataservice")
    except PackageNotFoundError:
        return "unknown"


def init_services(app: FastAPI, config: GatewayConfig) -> None:
    """Create the gateway services for config and store them on app.state."""
    tenants = TenantRegistry.from_config(config)
    resolver = DataSourceResolver(config.artifact_path)
    cache = CommandCache()
    app.state.config = config
    app.state.tenants = tenants
    app.state.resolver = resolver
    app.state.cache = cache
    app.state.executor = GatewayExecutor(tenants, resolver, cache)
    logging.getLogger("dataservice").setLevel(config.server.log_level.upper())
    logger.info(
        "Serving artifacts from %s for contexts %s",
        config.artifact_path,
        tenants.names,
    )


async def data_service_error_handler(request: Request, exc: DataServiceError) -> JSONResponse:
    """Handle DataServiceError exceptions with consistent format.

    Args:
        request: The incoming request.
        exc: The DataServiceError exception.

    Returns:
        JSONResponse with error details and the error's HTTP status.
    """
    if exc.status_code < 500:
        logger.warning("%s %s -> %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(config: GatewayConfig | None = None) -> FastAPI:
    """Build the gateway application.

    Args:
        config: Gateway configuration. When None it is loaded at startup
            via load_config() (honouring DATASERVICE_CONFIG_PATH).

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.started_at = _time.time()
        init_services(app, config if config is not None else load_config())
        yield
        app.state.cache.invalidate()
        logger.info("Data gateway stopped")

    app = FastAPI(
        title="Data Service API",
        description="Multi-tenant gateway serving templated SQL queries and static data files",
        version=_package_version(),
        lifespan=lifespan,
    )
    app.add_exception_handler(DataServiceError, data_service_error_handler)
    app.include_router(gateway.router, prefix="/api")

    @app.get("/health", response_model=HealthResponse)
    def health_check(request: Request) -> HealthResponse:
        """Health check endpoint with gateway status."""
        started_at = getattr(request.app.state, "started_at", 0.0)
        uptime = int(_time.time() - started_at) if started_at else 0
        return HealthResponse(
            status="healthy",
            version=_package_version(),
            uptime_seconds=uptime,
            tenants=request.app.state.tenants.names,
            artifact_root=str(request.app.state.resolver.artifact_root),
        )

    return app


app = create_app()
