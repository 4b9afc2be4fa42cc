"""Gateway routes: database catalog endpoints and the generic /api fallback.

The catalog routes are registered before the catch-all so that
/api/dbdatabases, /api/dbobjects and /api/dbobject are never treated as
artifact names.

Routes:
    GET /api/dbdatabases              tenant database listing
    GET /api/dbobjects?searchdbs=a;b  object search across aliased databases
    GET /api/dbobject?objdb=abbr      object detail in one aliased database
    GET /api/{endpoint}               templated query or static file
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from dataservice.api.dependencies import (
    get_executor,
    get_optional_tenant,
    get_parameter_values,
    get_required_tenant,
    get_resolver,
)
from dataservice.api.schemas import DatabaseInfoResponse, DatabasesResponse
from dataservice.config import TenantContext
from dataservice.errors import ArtifactNotFoundError
from dataservice.models import MediaType
from dataservice.services.data_source_resolver import DataSourceResolver
from dataservice.services.gateway_executor import GatewayExecutor
from dataservice.services.tenant_registry import is_blank

logger = logging.getLogger(__name__)

router = APIRouter(tags=["gateway"])


@router.get("/dbdatabases", response_model=DatabasesResponse)
async def get_db_databases(
    tenant: TenantContext = Depends(get_required_tenant),
    executor: GatewayExecutor = Depends(get_executor),
) -> DatabasesResponse:
    """List the databases configured for the request's tenant."""
    databases = await executor.list_databases(tenant)
    return DatabasesResponse(
        databases=[DatabaseInfoResponse.from_info(db) for db in databases]
    )


@router.get("/dbobjects")
async def get_db_objects(
    searchdbs: str = "",
    tenant: TenantContext = Depends(get_required_tenant),
    values: dict[str, str] = Depends(get_parameter_values),
    executor: GatewayExecutor = Depends(get_executor),
) -> Response:
    """Search database objects in the aliased databases listed in searchdbs."""
    content = await executor.get_db_objects(tenant, searchdbs, values)
    if is_blank(content):
        raise ArtifactNotFoundError(endpoint="dbobjects")
    return Response(content=content, media_type=MediaType.JSON.value)


@router.get("/dbobject")
async def get_db_object(
    objdb: str = "",
    tenant: TenantContext = Depends(get_required_tenant),
    values: dict[str, str] = Depends(get_parameter_values),
    executor: GatewayExecutor = Depends(get_executor),
) -> Response:
    """Describe a single object in the database aliased by objdb."""
    content = await executor.get_db_object(tenant, objdb, values)
    if is_blank(content):
        raise ArtifactNotFoundError(endpoint="dbobject")
    return Response(content=content, media_type=MediaType.JSON.value)


@router.get("/{endpoint}")
async def get_endpoint(
    endpoint: str,
    request: Request,
    tenant: TenantContext | None = Depends(get_optional_tenant),
    values: dict[str, str] = Depends(get_parameter_values),
    resolver: DataSourceResolver = Depends(get_resolver),
    executor: GatewayExecutor = Depends(get_executor),
) -> Response:
    """Serve an endpoint from a templated query or a static file.

    The Accept header selects the XML or JSON branch; the response carries
    that branch's media type. An empty result is reported as 404.
    """
    artifact = resolver.resolve(tenant, endpoint, request.headers.get("accept"))
    content = await executor.require_content(artifact, values)
    return Response(content=content, media_type=artifact.media_type.value)
