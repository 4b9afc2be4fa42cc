"""Compile declarative command descriptor documents into command templates.

A descriptor is a small XML document:

    <Command timeout="30" type="Text|StoredProcedure|TableDirect">
      <Parameters>
        <Parameter name="@id" type="BigInt" direction="Input"
                   isNullable="false" size="N" precision="N" scale="N"
                   value="default"/>
      </Parameters>
      <CommandText><![CDATA[ SELECT ... WHERE id = @id ]]></CommandText>
    </Command>

Defaults:
- timeout: 30 seconds when absent, zero, negative or unparseable
- type: Text; CommandText is trimmed only for the other kinds
- Parameter.type: NVarChar; direction: Input; isNullable: true
- size/precision/scale: only applied when strictly positive

Uses xmltodict (entity expansion disabled) to read the document.
"""

import logging
from pathlib import Path
from typing import Any
from xml.parsers.expat import ExpatError

import xmltodict

from dataservice.errors import MalformedDescriptorError, UnresolvedTypeError
from dataservice.models import (
    DEFAULT_TIMEOUT_SECONDS,
    CommandDescriptor,
    CommandKind,
    DeclaredType,
    ParameterDescriptor,
    ParameterDirection,
)
from dataservice.services.type_coercer import CoercionTarget, coerce_lenient

logger = logging.getLogger(__name__)

COMMAND_ROOT_TAGS = ("Command", "SqlCommand")


def _attr(element: dict[str, Any], name: str) -> str | None:
    value = element.get(f"@{name}")
    return value if isinstance(value, str) else None


def _element_text(value: Any) -> str:
    """Text content of an xmltodict element value."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        text = value.get("#text")
        return text if isinstance(text, str) else ""
    raise MalformedDescriptorError("CommandText must appear once")


def _positive_or_none(value: int) -> int | None:
    return value if value > 0 else None


def resolve_declared_type(token: str | None, parameter: str) -> DeclaredType:
    """Resolve a declared type token, defaulting to NVarChar when absent.

    Raises:
        UnresolvedTypeError: The token names no supported type.
    """
    if token is None:
        return DeclaredType.NVARCHAR
    declared = coerce_lenient(token, DeclaredType, None)
    if declared is None:
        raise UnresolvedTypeError(parameter=parameter, token=token)
    return declared


def _compile_parameter(element: Any) -> ParameterDescriptor:
    if not isinstance(element, dict):
        raise MalformedDescriptorError("Parameter elements must carry attributes")

    name = (_attr(element, "name") or "").strip()
    if not name:
        raise MalformedDescriptorError("Parameter is missing a name")

    return ParameterDescriptor(
        name=name,
        declared_type=resolve_declared_type(_attr(element, "type"), name),
        direction=coerce_lenient(
            _attr(element, "direction"), ParameterDirection, ParameterDirection.INPUT
        ),
        is_nullable=coerce_lenient(
            _attr(element, "isNullable"), CoercionTarget.BOOLEAN, True
        ),
        size=_positive_or_none(coerce_lenient(_attr(element, "size"), CoercionTarget.INT32, 0)),
        precision=_positive_or_none(
            coerce_lenient(_attr(element, "precision"), CoercionTarget.BYTE, 0)
        ),
        scale=_positive_or_none(coerce_lenient(_attr(element, "scale"), CoercionTarget.BYTE, 0)),
        default_value=_attr(element, "value"),
    )


def _compile_parameters(root: dict[str, Any]) -> tuple[ParameterDescriptor, ...]:
    block = root.get("Parameters")
    if block is None or isinstance(block, str):
        return ()
    if isinstance(block, list):
        raise MalformedDescriptorError("Parameters must appear once")

    parameters = tuple(_compile_parameter(e) for e in block.get("Parameter") or [])
    seen: set[str] = set()
    for param in parameters:
        if param.key in seen:
            raise MalformedDescriptorError(f"duplicate parameter {param.name!r}")
        seen.add(param.key)
    return parameters


def compile_descriptor(source: str | bytes) -> CommandDescriptor:
    """Compile a command descriptor document.

    Args:
        source: XML text of the descriptor.

    Returns:
        An immutable CommandDescriptor.

    Raises:
        MalformedDescriptorError: The document does not parse or its root
            element is not a command descriptor.
        UnresolvedTypeError: A parameter declares an unsupported type.
    """
    try:
        document = xmltodict.parse(
            source,
            strip_whitespace=False,
            force_list=("Parameter",),
        )
    except ExpatError as e:
        raise MalformedDescriptorError(f"not well-formed XML ({e})") from e

    if not document:
        raise MalformedDescriptorError("document is empty")
    tag, root = next(iter(document.items()))
    if tag not in COMMAND_ROOT_TAGS:
        raise MalformedDescriptorError(
            f"root element must be <Command>, found <{tag}>"
        )
    if not isinstance(root, dict):
        root = {}

    timeout = coerce_lenient(_attr(root, "timeout"), CoercionTarget.INT32, 0)
    kind = coerce_lenient(_attr(root, "type"), CommandKind, CommandKind.TEXT)
    text = _element_text(root.get("CommandText"))

    return CommandDescriptor(
        command_text=text if kind is CommandKind.TEXT else text.strip(),
        timeout_seconds=timeout if timeout > 0 else DEFAULT_TIMEOUT_SECONDS,
        command_kind=kind,
        parameters=_compile_parameters(root),
    )


def compile_descriptor_file(path: str | Path) -> CommandDescriptor:
    """Read and compile a descriptor file (blocking I/O)."""
    path = Path(path)
    logger.debug("Compiling command descriptor %s", path.name)
    return compile_descriptor(path.read_bytes())
