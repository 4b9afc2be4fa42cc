"""Execute resolved artifacts and produce the response text.

Templated queries are compiled (through the command cache), bound to the
request's parameter values and run against the tenant's database; the
first column of every row is concatenated in result order. Static files
are returned verbatim. An empty result is left to the caller to map to
404.

Also hosts the database catalog operations used by the admin UIs:
listing a tenant's databases and running the object search/detail
descriptors against aliased databases.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from dataservice.config import TenantContext
from dataservice.db.connection import execute_text_command, fetch_rows, with_database
from dataservice.errors import (
    ArtifactNotFoundError,
    DatabaseCommandError,
    InvalidParameterError,
    TenantNotFoundError,
)
from dataservice.models import (
    ArtifactKind,
    BoundCommand,
    DatabaseInfo,
    ResolvedArtifact,
    build_parameter_values,
)
from dataservice.services.command_cache import CommandCache
from dataservice.services.data_source_resolver import DataSourceResolver
from dataservice.services.parameter_binder import bind
from dataservice.services.tenant_registry import TenantRegistry, is_blank
from dataservice.services.type_coercer import CoercionTarget, coerce_lenient
from dataservice.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

DATABASES_DESCRIPTOR = "dbdatabases.sqlds"
DB_OBJECTS_DESCRIPTOR = "dbobjects.jsonds"
DB_OBJECT_DESCRIPTOR = "dbobject.jsonds"

DB_MAPPINGS_PARAMETER = "dbmappings"
SEARCH_DBS_PARAMETER = "searchdbs"
OBJECT_DB_PARAMETER = "objdb"

TextRunner = Callable[[str, BoundCommand], Awaitable[str]]
RowFetcher = Callable[[str, BoundCommand], Awaitable[list[dict[str, Any]]]]


def _split_abbreviations(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(";") if item.strip()]


def _database_info(row: Mapping[str, Any]) -> DatabaseInfo:
    crdate = row.get("CreateDate")
    return DatabaseInfo(
        id=coerce_lenient(row.get("ID"), CoercionTarget.INT32, 0),
        abbr=str(row.get("Abbr") or ""),
        name=str(row.get("Name") or ""),
        crdate="" if crdate is None else str(crdate),
        compatlevel=coerce_lenient(row.get("CompatLevel"), CoercionTarget.INT32, 0),
    )


class GatewayExecutor:
    """Runs artifacts for the HTTP layer.

    Args:
        tenants: Tenant table with connection strings.
        resolver: Artifact lookup under the artifact root.
        cache: Compiled descriptor cache shared by all requests.
        runner: Executes a bound command and returns its text result.
        row_fetcher: Executes a bound command and returns its rows.
    """

    def __init__(
        self,
        tenants: TenantRegistry,
        resolver: DataSourceResolver,
        cache: CommandCache,
        runner: TextRunner = execute_text_command,
        row_fetcher: RowFetcher = fetch_rows,
    ) -> None:
        self.tenants = tenants
        self.resolver = resolver
        self.cache = cache
        self._runner = runner
        self._row_fetcher = row_fetcher

    async def _bind(self, path: Path, values: Mapping[str, Any] | None) -> BoundCommand:
        descriptor = await self.cache.get_or_compile(path)
        return bind(descriptor, values)

    async def _guarded(self, awaitable: Awaitable[Any], source: str) -> Any:
        try:
            return await awaitable
        except (SQLAlchemyError, TimeoutError) as e:
            logger.exception("Command %s failed", source)
            reason = sanitize_error_message(str(e) or type(e).__name__)
            raise DatabaseCommandError(reason=reason) from e

    async def run_text(
        self,
        connection_string: str,
        path: Path,
        values: Mapping[str, Any] | None,
    ) -> str:
        """Compile, bind and run the descriptor at path; return its text."""
        command = await self._bind(path, values)
        return await self._guarded(self._runner(connection_string, command), path.name)

    async def execute(
        self,
        artifact: ResolvedArtifact,
        values: Mapping[str, Any] | None = None,
    ) -> str:
        """Produce the response text for a resolved artifact.

        Returns:
            The concatenated query output or file content; "" for NONE.

        Raises:
            TenantNotFoundError: A templated artifact carries no tenant.
            BadConnectionError: The tenant's connection string is blank.
            MalformedDescriptorError: The descriptor does not compile.
            DatabaseCommandError: The database round trip failed.
        """
        if artifact.kind is ArtifactKind.NONE or artifact.path is None:
            return ""

        if artifact.kind is ArtifactKind.STATIC_FILE:
            return await asyncio.to_thread(artifact.path.read_text, encoding="utf-8-sig")

        if artifact.tenant is None:
            raise TenantNotFoundError(context=None)
        connection_string = self.tenants.connection_string(artifact.tenant)
        return await self.run_text(connection_string, artifact.path, values)

    async def list_databases(self, tenant: TenantContext) -> list[DatabaseInfo]:
        """List the tenant's databases via the dbdatabases descriptor.

        The descriptor receives the tenant's alias table as the dbmappings
        parameter. A missing connection string or descriptor yields [].
        """
        connection_string = self.tenants.find_connection_string(tenant)
        if connection_string is None:
            return []
        path = self.resolver.find(DATABASES_DESCRIPTOR)
        if path is None:
            logger.info("%s not found, no databases listed", DATABASES_DESCRIPTOR)
            return []

        command = await self._bind(
            path, {DB_MAPPINGS_PARAMETER: tenant.database_mappings()}
        )
        rows = await self._guarded(
            self._row_fetcher(connection_string, command), path.name
        )
        return [_database_info(row) for row in rows]

    async def get_db_objects(
        self,
        tenant: TenantContext,
        searchdbs: str | None,
        values: Mapping[str, Any] | None = None,
    ) -> str:
        """Search objects across the aliased databases named in searchdbs.

        Raises:
            BadConnectionError: The tenant's connection string is blank.
            InvalidParameterError: No abbreviation maps to a database.
        """
        connection_string = self.tenants.connection_string(tenant)
        abbreviations = {abbr.lower() for abbr in _split_abbreviations(searchdbs)}
        if not abbreviations:
            raise InvalidParameterError(parameter=SEARCH_DBS_PARAMETER)

        databases = await self.list_databases(tenant)
        names = ";".join(db.name for db in databases if db.abbr.lower() in abbreviations)
        if is_blank(names):
            raise InvalidParameterError(parameter=SEARCH_DBS_PARAMETER)

        parameters = build_parameter_values(values or {})
        parameters[SEARCH_DBS_PARAMETER] = names

        path = self.resolver.find(DB_OBJECTS_DESCRIPTOR)
        if path is None:
            return ""
        return await self.run_text(connection_string, path, parameters)

    async def get_db_object(
        self,
        tenant: TenantContext,
        objdb: str | None,
        values: Mapping[str, Any] | None = None,
    ) -> str:
        """Describe one object in the database aliased by objdb.

        The descriptor runs against the tenant's connection string with its
        database replaced by the aliased one.

        Raises:
            BadConnectionError: The tenant's connection string is blank.
            InvalidParameterError: objdb maps to no database.
        """
        connection_string = self.tenants.connection_string(tenant)
        wanted = (objdb or "").strip().lower()
        databases = await self.list_databases(tenant)
        name = next((db.name for db in databases if db.abbr.lower() == wanted), None)
        if is_blank(name):
            raise InvalidParameterError(parameter=OBJECT_DB_PARAMETER)

        parameters = build_parameter_values(values or {})
        parameters.pop(OBJECT_DB_PARAMETER, None)

        path = self.resolver.find(DB_OBJECT_DESCRIPTOR)
        if path is None:
            return ""
        return await self.run_text(with_database(connection_string, name), path, parameters)

    async def require_content(self, artifact: ResolvedArtifact, values: Mapping[str, Any] | None) -> str:
        """execute() that raises ArtifactNotFoundError for blank output."""
        content = await self.execute(artifact, values)
        if is_blank(content):
            raise ArtifactNotFoundError(endpoint=artifact.endpoint)
        return content
