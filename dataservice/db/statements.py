"""Render bound command templates into SQLAlchemy text statements.

Text commands reference parameters T-SQL style (``@name``); they are
rewritten to SQLAlchemy ``:name`` binds. Quoted strings, bracketed
identifiers, comments and ``@@`` system variables are left alone, and
colons that SQLAlchemy would otherwise read as binds are escaped.
"""

import re
from collections.abc import Callable

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    Time,
    Unicode,
    UnicodeText,
    Uuid,
    bindparam,
    text,
)
from sqlalchemy.sql.elements import TextClause
from sqlalchemy.types import TypeEngine

from dataservice.errors import MalformedDescriptorError
from dataservice.models import (
    BoundCommand,
    BoundParameter,
    CommandKind,
    DeclaredType,
    ParameterDescriptor,
    ParameterDirection,
    normalize_parameter_name,
)

# Mirrors sqlalchemy.sql.compiler.BIND_PARAMS: a colon SQLAlchemy treats as a bind
_BARE_BIND_RE = re.compile(r"(?<![:\w$\\]):(?=[\w$]+(?![:\w$]))")

_TOKEN_RE = re.compile(
    r"""
    (?P<squote>'(?:[^']|'')*') |
    (?P<dquote>"(?:[^"]|"")*") |
    (?P<bracket>\[[^\]]*\]) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*[\s\S]*?\*/) |
    (?P<system_var>@@\w+) |
    (?P<named_at>@(?P<at_name>\w+))
    """,
    re.VERBOSE,
)

# Stored procedure / table names: letters, digits, _, ., [] and "
_SAFE_OBJECT_NAME_RE = re.compile(r'^[\w.\[\]"]+$')

# SQL Server reports each statement's row count as a result of its own; the
# first of those would hide the rows of a later SELECT in a batch
MSSQL_BATCH_PREAMBLE = "SET NOCOUNT ON;\n"

_BIND_TYPES: dict[DeclaredType, Callable[[ParameterDescriptor], TypeEngine]] = {
    DeclaredType.BIGINT: lambda p: BigInteger(),
    DeclaredType.INT: lambda p: Integer(),
    DeclaredType.SMALLINT: lambda p: SmallInteger(),
    DeclaredType.TINYINT: lambda p: SmallInteger(),
    DeclaredType.BIT: lambda p: Boolean(),
    DeclaredType.CHAR: lambda p: String(length=p.size),
    DeclaredType.VARCHAR: lambda p: String(length=p.size),
    DeclaredType.NCHAR: lambda p: Unicode(length=p.size),
    DeclaredType.NVARCHAR: lambda p: Unicode(length=p.size),
    DeclaredType.TEXT: lambda p: Text(),
    DeclaredType.NTEXT: lambda p: UnicodeText(),
    DeclaredType.XML: lambda p: UnicodeText(),
    DeclaredType.DATE: lambda p: Date(),
    DeclaredType.DATETIME: lambda p: DateTime(),
    DeclaredType.DATETIME2: lambda p: DateTime(),
    DeclaredType.SMALLDATETIME: lambda p: DateTime(),
    DeclaredType.DATETIMEOFFSET: lambda p: DateTime(timezone=True),
    DeclaredType.TIME: lambda p: Time(),
    DeclaredType.DECIMAL: lambda p: Numeric(precision=p.precision, scale=p.scale),
    DeclaredType.MONEY: lambda p: Numeric(precision=19, scale=4),
    DeclaredType.SMALLMONEY: lambda p: Numeric(precision=10, scale=4),
    DeclaredType.FLOAT: lambda p: Float(),
    DeclaredType.REAL: lambda p: Float(),
    DeclaredType.UNIQUEIDENTIFIER: lambda p: Uuid(),
}


def bind_type_for(param: ParameterDescriptor) -> TypeEngine:
    """SQLAlchemy type used for a declared parameter's bind."""
    return _BIND_TYPES[param.declared_type](param)


def escape_bare_colons(sql: str) -> str:
    return _BARE_BIND_RE.sub(r"\\:", sql)


def _rewrite_text(sql: str, bind_names: dict[str, str], used: set[str]) -> str:
    """Rewrite @name references to :bind placeholders."""
    pieces: list[str] = []
    position = 0
    for match in _TOKEN_RE.finditer(sql):
        pieces.append(escape_bare_colons(sql[position:match.start()]))
        token = match.group(0)
        if match.group("named_at"):
            bind_name = bind_names.get(normalize_parameter_name(match.group("at_name")))
            if bind_name is not None:
                used.add(bind_name)
                token = f":{bind_name}"
        elif not match.group("system_var"):
            token = escape_bare_colons(token)
        pieces.append(token)
        position = match.end()
    pieces.append(escape_bare_colons(sql[position:]))
    return "".join(pieces)


def _object_name(command: BoundCommand) -> str:
    name = command.descriptor.command_text
    if not _SAFE_OBJECT_NAME_RE.match(name):
        raise MalformedDescriptorError(
            f"invalid {command.descriptor.command_kind.value} name {name!r}"
        )
    return name


def _procedure_sql(command: BoundCommand, dialect_name: str, used: set[str]) -> str:
    name = _object_name(command)
    params = [
        bound.descriptor
        for bound in command.parameters
        if bound.descriptor.direction is not ParameterDirection.RETURN_VALUE
    ]
    used.update(p.bind_name for p in params)
    if dialect_name == "mssql":
        args = ", ".join(f"@{p.bind_name} = :{p.bind_name}" for p in params)
        return f"EXEC {name} {args}".rstrip()
    args = ", ".join(f":{p.bind_name}" for p in params)
    return f"CALL {name}({args})"


def _bindparam(bound: BoundParameter):
    param = bound.descriptor
    if bound.is_assigned:
        return bindparam(param.bind_name, value=bound.value, type_=bind_type_for(param))
    return bindparam(param.bind_name, type_=bind_type_for(param), required=True)


def render_statement(command: BoundCommand, dialect_name: str = "default") -> TextClause:
    """Render a bound command into an executable TextClause.

    Args:
        command: Command template with bound values.
        dialect_name: SQLAlchemy dialect name of the target connection;
            selects the stored procedure call syntax. On SQL Server every
            statement is preceded by SET NOCOUNT ON so that only row
            producing statements yield results.

    Returns:
        TextClause whose bind parameters carry typed values.

    Raises:
        MalformedDescriptorError: A procedure or table name is unsafe.
    """
    descriptor = command.descriptor
    used: set[str] = set()

    if descriptor.command_kind is CommandKind.STORED_PROCEDURE:
        sql = _procedure_sql(command, dialect_name, used)
    elif descriptor.command_kind is CommandKind.TABLE_DIRECT:
        sql = f"SELECT * FROM {_object_name(command)}"
    else:
        bind_names = {b.descriptor.key: b.descriptor.bind_name for b in command.parameters}
        sql = _rewrite_text(descriptor.command_text, bind_names, used)

    if dialect_name == "mssql":
        sql = MSSQL_BATCH_PREAMBLE + sql

    statement = text(sql)
    binds = [_bindparam(b) for b in command.parameters if b.descriptor.bind_name in used]
    if binds:
        statement = statement.bindparams(*binds)
    return statement
