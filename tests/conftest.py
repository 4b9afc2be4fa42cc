"""Root-level pytest fixtures for all tests.

Provides shared fixtures for gateway testing:
- An artifact root with descriptor and static files
- A file-based SQLite database used as the tenant database
- A GatewayConfig wiring the two together
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from dataservice.config import GatewayConfig

# ============================================================================
# Descriptor documents
# ============================================================================

WIDGETS_JSONDS = """<Command timeout="10" type="Text">
  <Parameters>
    <Parameter name="@id" type="BigInt" isNullable="false"/>
  </Parameters>
  <CommandText><![CDATA[
    SELECT '{"id":' || id || ',"name":"' || name || '"}'
    FROM widgets
    WHERE id = @id
    ORDER BY id
  ]]></CommandText>
</Command>
"""

WIDGETS_XMLDS = """<Command>
  <Parameters>
    <Parameter name="@name" type="NVarChar" size="50"/>
  </Parameters>
  <CommandText><![CDATA[SELECT '<Widgets>' || group_concat('<Widget>' || name || '</Widget>', '') || '</Widgets>' FROM widgets WHERE @name IS NULL OR name = @name]]></CommandText>
</Command>
"""

DBDATABASES_SQLDS = """<Command>
  <Parameters>
    <Parameter name="@dbmappings" type="NVarChar"/>
  </Parameters>
  <CommandText><![CDATA[
    SELECT ID, Abbr, Name, CreateDate, CompatLevel
    FROM catalog
    WHERE instr(';' || @dbmappings || ';', ';' || Abbr || '=') > 0
    ORDER BY ID
  ]]></CommandText>
</Command>
"""

DBOBJECTS_JSONDS = """<Command>
  <Parameters>
    <Parameter name="@searchdbs" type="NVarChar"/>
    <Parameter name="@objname" type="NVarChar"/>
  </Parameters>
  <CommandText><![CDATA[SELECT '{"searchdbs":"' || @searchdbs || '","objname":"' || coalesce(@objname, '') || '"}']]></CommandText>
</Command>
"""

DBOBJECT_JSONDS = """<Command>
  <Parameters>
    <Parameter name="@objname" type="NVarChar"/>
  </Parameters>
  <CommandText><![CDATA[SELECT '{"object":"' || name || '"}' FROM objects WHERE name = @objname]]></CommandText>
</Command>
"""


def _create_database(path: Path, statements: list[str]) -> str:
    """Create a SQLite file with the given DDL/DML and return its URL."""
    url = f"sqlite:///{path}"
    engine = create_engine(url)
    with engine.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))
    engine.dispose()
    return url


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def app_db_path(tmp_path: Path) -> Path:
    """Secondary SQLite database reached through the 'app' alias."""
    path = tmp_path / "appdb.sqlite"
    _create_database(
        path,
        [
            "CREATE TABLE objects (name TEXT NOT NULL)",
            "INSERT INTO objects (name) VALUES ('customers')",
        ],
    )
    return path


@pytest.fixture
def sqlite_url(tmp_path: Path, app_db_path: Path) -> str:
    """File-based SQLite tenant database with widgets and a database catalog."""
    return _create_database(
        tmp_path / "tenant.sqlite",
        [
            "CREATE TABLE widgets (id INTEGER PRIMARY KEY, name TEXT NOT NULL)",
            "INSERT INTO widgets (id, name) VALUES (1, 'sprocket'), (2, 'gear'), (42, 'answer')",
            "CREATE TABLE catalog (ID INTEGER, Abbr TEXT, Name TEXT, CreateDate TEXT, CompatLevel INTEGER)",
            "INSERT INTO catalog VALUES "
            f"(5, 'app', '{app_db_path}', '2024-01-02', 160), "
            "(6, 'hist', 'HistoryDb', '2023-05-06', 150), "
            "(7, 'other', 'Unmapped', '2020-01-01', 140)",
        ],
    )


# ============================================================================
# Artifact Fixtures
# ============================================================================


@pytest.fixture
def write_artifact(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a file under the artifact root and return its path."""
    root = tmp_path / "data-sources"
    root.mkdir(exist_ok=True)

    def _write(name: str, content: str) -> Path:
        path = root / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def artifact_root(tmp_path: Path, write_artifact) -> Path:
    """Artifact root populated with descriptors and static files."""
    write_artifact("widgets.jsonds", WIDGETS_JSONDS)
    write_artifact("widgets.xmlds", WIDGETS_XMLDS)
    write_artifact("widgets.[dev].json", '{"source":"static-dev"}')
    write_artifact("widgets.json", '{"source":"static"}')
    write_artifact("widgets.xml", "<Widgets source=\"static\"/>")
    write_artifact("colors.json", '{"colors":["red","green"]}')
    write_artifact("colors.[qa].json", '{"colors":["qa"]}')
    write_artifact("empty.json", "   \n")
    write_artifact("dbdatabases.sqlds", DBDATABASES_SQLDS)
    write_artifact("dbobjects.jsonds", DBOBJECTS_JSONDS)
    write_artifact("dbobject.jsonds", DBOBJECT_JSONDS)
    return tmp_path / "data-sources"


@pytest.fixture
def gateway_config(artifact_root: Path, sqlite_url: str) -> GatewayConfig:
    """Configuration with a usable 'dev' context and a 'qa' context without a connection."""
    return GatewayConfig(
        artifact_root=str(artifact_root),
        connection_strings={"devdb": sqlite_url, "qadb": "   "},
        contexts={
            "dev": {
                "connection_string_key": "devdb",
                "databases": [
                    {"abbr": "app", "name": "AppDb"},
                    {"abbr": "hist", "name": "HistoryDb"},
                ],
            },
            "qa": {"connection_string_key": "qadb"},
        },
    )
