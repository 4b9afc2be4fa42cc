"""Database connection management for templated query execution.

Each request opens its own connection from the tenant's connection string
and releases it before returning; no engine outlives the request.
Connection strings are SQLAlchemy URLs; synchronous driver names are
mapped to their asyncio counterparts.

Usage:
    async with open_connection("sqlite:///./app.db") as conn:
        rows = await conn.execute(statement)

    text = await execute_text_command(connection_string, bound_command)
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine
from sqlalchemy.pool import NullPool

from dataservice.models import BoundCommand
from dataservice.utils.redaction import redact_connection_string

logger = logging.getLogger(__name__)

# Sync driver name -> asyncio driver name
ASYNC_DRIVERS: dict[str, str] = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "mssql": "mssql+aioodbc",
    "mysql": "mysql+aiomysql",
}


def get_async_database_url(connection_string: str) -> URL:
    """Derive the async driver URL from a connection string.

    Converts sqlite:/// to sqlite+aiosqlite:/// (and likewise for the other
    known dialects). URLs that already name a driver are kept.
    """
    url = make_url(connection_string)
    async_driver = ASYNC_DRIVERS.get(url.drivername)
    if async_driver:
        url = url.set(drivername=async_driver)
    return url


def with_database(connection_string: str, database: str) -> str:
    """Return the connection string pointed at another database."""
    url = make_url(connection_string).set(database=database)
    return url.render_as_string(hide_password=False)


@asynccontextmanager
async def open_connection(connection_string: str) -> AsyncGenerator[AsyncConnection, None]:
    """Open one connection for the duration of a request.

    The connection runs inside a transaction that commits on clean exit,
    so stored procedures with side effects behave as with autocommit.
    """
    engine = create_async_engine(
        get_async_database_url(connection_string),
        poolclass=NullPool,
    )
    logger.debug("Opening connection to %s", redact_connection_string(connection_string))
    try:
        async with engine.begin() as conn:
            yield conn
    finally:
        await engine.dispose()


async def _execute(conn: AsyncConnection, command: BoundCommand):
    statement = command.to_statement(conn.dialect.name)
    return await asyncio.wait_for(
        conn.execute(statement), timeout=command.timeout_seconds
    )


async def execute_text_command(connection_string: str, command: BoundCommand) -> str:
    """Run command and concatenate the first column of every row.

    Rows whose first column is NULL contribute nothing. Zero rows yield "".
    """
    async with open_connection(connection_string) as conn:
        result = await _execute(conn, command)
        parts: list[str] = []
        if result.returns_rows:
            for row in result:
                if row[0] is not None:
                    parts.append(row[0] if isinstance(row[0], str) else str(row[0]))
        return "".join(parts)


async def fetch_rows(connection_string: str, command: BoundCommand) -> list[dict[str, Any]]:
    """Run command and return every row as a column-name -> value dict."""
    async with open_connection(connection_string) as conn:
        result = await _execute(conn, command)
        if not result.returns_rows:
            return []
        return [dict(row) for row in result.mappings()]
