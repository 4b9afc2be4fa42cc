"""Value objects shared by the compiler, binder, resolver and executor.

All command-level objects are frozen: a compiled CommandDescriptor is a
template that is reused across concurrent requests, and binding always
produces a fresh BoundCommand.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from dataservice.config import TenantContext
from dataservice.services.type_coercer import CoercionTarget

PARAMETER_MARKER = "@"


class DeclaredType(str, Enum):
    """SQL Server type names a descriptor parameter may declare."""

    BIGINT = "BigInt"
    INT = "Int"
    SMALLINT = "SmallInt"
    TINYINT = "TinyInt"
    BIT = "Bit"
    CHAR = "Char"
    NCHAR = "NChar"
    VARCHAR = "VarChar"
    NVARCHAR = "NVarChar"
    TEXT = "Text"
    NTEXT = "NText"
    XML = "Xml"
    DATE = "Date"
    DATETIME = "DateTime"
    DATETIME2 = "DateTime2"
    SMALLDATETIME = "SmallDateTime"
    DATETIMEOFFSET = "DateTimeOffset"
    TIME = "Time"
    DECIMAL = "Decimal"
    MONEY = "Money"
    SMALLMONEY = "SmallMoney"
    FLOAT = "Float"
    REAL = "Real"
    UNIQUEIDENTIFIER = "UniqueIdentifier"


# Declared type -> coercion target. Types missing here cannot be declared.
DECLARED_TYPE_TARGETS: dict[DeclaredType, CoercionTarget] = {
    DeclaredType.BIGINT: CoercionTarget.INT64,
    DeclaredType.INT: CoercionTarget.INT32,
    DeclaredType.SMALLINT: CoercionTarget.INT16,
    DeclaredType.TINYINT: CoercionTarget.BYTE,
    DeclaredType.BIT: CoercionTarget.BOOLEAN,
    DeclaredType.CHAR: CoercionTarget.TEXT,
    DeclaredType.NCHAR: CoercionTarget.TEXT,
    DeclaredType.VARCHAR: CoercionTarget.TEXT,
    DeclaredType.NVARCHAR: CoercionTarget.TEXT,
    DeclaredType.TEXT: CoercionTarget.TEXT,
    DeclaredType.NTEXT: CoercionTarget.TEXT,
    DeclaredType.XML: CoercionTarget.TEXT,
    DeclaredType.DATE: CoercionTarget.DATETIME,
    DeclaredType.DATETIME: CoercionTarget.DATETIME,
    DeclaredType.DATETIME2: CoercionTarget.DATETIME,
    DeclaredType.SMALLDATETIME: CoercionTarget.DATETIME,
    DeclaredType.DATETIMEOFFSET: CoercionTarget.DATETIMEOFFSET,
    DeclaredType.TIME: CoercionTarget.TIME,
    DeclaredType.DECIMAL: CoercionTarget.DECIMAL,
    DeclaredType.MONEY: CoercionTarget.DECIMAL,
    DeclaredType.SMALLMONEY: CoercionTarget.DECIMAL,
    DeclaredType.FLOAT: CoercionTarget.FLOAT64,
    DeclaredType.REAL: CoercionTarget.FLOAT32,
    DeclaredType.UNIQUEIDENTIFIER: CoercionTarget.UUID,
}

class ParameterDirection(str, Enum):
    """Direction of a command parameter."""

    INPUT = "Input"
    OUTPUT = "Output"
    INPUT_OUTPUT = "InputOutput"
    RETURN_VALUE = "ReturnValue"


class CommandKind(str, Enum):
    """How CommandText is interpreted."""

    TEXT = "Text"
    STORED_PROCEDURE = "StoredProcedure"
    TABLE_DIRECT = "TableDirect"


DEFAULT_TIMEOUT_SECONDS = 30


def normalize_parameter_name(name: str) -> str:
    """Strip every leading marker character and casefold."""
    return name.lstrip(PARAMETER_MARKER).casefold()


def build_parameter_values(
    pairs: Any,
    *,
    drop_blank: bool = False,
) -> dict[str, Any]:
    """Build an ordered ParameterValues mapping with normalized keys.

    Args:
        pairs: Mapping or iterable of (name, value) pairs.
        drop_blank: Skip values whose text is empty or whitespace-only,
            as done for request query strings.

    Returns:
        Dict keyed by normalize_parameter_name(name). Later pairs whose
        names normalize equal overwrite earlier ones.
    """
    items = pairs.items() if hasattr(pairs, "items") else pairs
    result: dict[str, Any] = {}
    for name, value in items:
        if drop_blank and (value is None or not str(value).strip()):
            continue
        result[normalize_parameter_name(name)] = value
    return result


@dataclass(frozen=True)
class ParameterDescriptor:
    """One declared parameter of a command template."""

    name: str
    declared_type: DeclaredType = DeclaredType.NVARCHAR
    direction: ParameterDirection = ParameterDirection.INPUT
    is_nullable: bool = True
    size: int | None = None
    precision: int | None = None
    scale: int | None = None
    default_value: Any = None

    @property
    def key(self) -> str:
        """Normalized name used for case-insensitive matching."""
        return normalize_parameter_name(self.name)

    @property
    def bind_name(self) -> str:
        """Placeholder name used in the rendered statement."""
        return self.name.lstrip(PARAMETER_MARKER)

    @property
    def coercion_target(self) -> CoercionTarget:
        return DECLARED_TYPE_TARGETS[self.declared_type]


@dataclass(frozen=True)
class CommandDescriptor:
    """A compiled, immutable command template."""

    command_text: str
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    command_kind: CommandKind = CommandKind.TEXT
    parameters: tuple[ParameterDescriptor, ...] = ()

    def parameter(self, name: str) -> ParameterDescriptor | None:
        """Find a declared parameter by marker/case-insensitive name."""
        key = normalize_parameter_name(name)
        for param in self.parameters:
            if param.key == key:
                return param
        return None


class _Unassigned:
    """Marker for a non-nullable parameter that received no value."""

    _instance = None

    def __new__(cls) -> "_Unassigned":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNASSIGNED"

    def __bool__(self) -> bool:
        return False


UNASSIGNED = _Unassigned()


@dataclass(frozen=True)
class BoundParameter:
    """A declared parameter paired with the value bound for one invocation.

    value is None for an explicit "no value" (SQL NULL) and UNASSIGNED
    when a non-nullable parameter was never given a value.
    """

    descriptor: ParameterDescriptor
    value: Any = UNASSIGNED

    @property
    def is_assigned(self) -> bool:
        return self.value is not UNASSIGNED


@dataclass(frozen=True)
class BoundCommand:
    """A command template with per-invocation parameter values."""

    descriptor: CommandDescriptor
    parameters: tuple[BoundParameter, ...] = ()

    @property
    def timeout_seconds(self) -> int:
        return self.descriptor.timeout_seconds

    def value_of(self, name: str) -> Any:
        """Return the bound value for a parameter name (marker/case-insensitive)."""
        key = normalize_parameter_name(name)
        for bound in self.parameters:
            if bound.descriptor.key == key:
                return bound.value
        raise KeyError(name)

    def to_statement(self, dialect_name: str = "default"):
        """Render a SQLAlchemy TextClause for the given dialect."""
        from dataservice.db.statements import render_statement

        return render_statement(self, dialect_name)


class MediaType(str, Enum):
    """Response media types the gateway serves."""

    JSON = "application/json"
    XML = "application/xml"

    @property
    def extension(self) -> str:
        return "xml" if self is MediaType.XML else "json"


class ArtifactKind(str, Enum):
    """What a resolved endpoint points at."""

    TEMPLATED_QUERY = "templated_query"
    STATIC_FILE = "static_file"
    NONE = "none"


@dataclass(frozen=True)
class ResolvedArtifact:
    """Outcome of data source resolution for one request."""

    kind: ArtifactKind
    media_type: MediaType = MediaType.JSON
    path: Path | None = None
    tenant: TenantContext | None = None
    endpoint: str | None = None

    @classmethod
    def none(cls, media_type: MediaType = MediaType.JSON, endpoint: str | None = None) -> "ResolvedArtifact":
        return cls(kind=ArtifactKind.NONE, media_type=media_type, endpoint=endpoint)

    @property
    def found(self) -> bool:
        return self.kind is not ArtifactKind.NONE


@dataclass(frozen=True)
class DatabaseInfo:
    """One row of the tenant database listing."""

    id: int
    abbr: str
    name: str
    crdate: str
    compatlevel: int
