"""Bind external parameter values onto a compiled command template.

Matching is by name with leading marker characters ("@") stripped from
both sides and compared case-insensitively. Values are coerced leniently,
so a malformed value leaves the parameter at its default instead of
failing the request. Unmatched external values are ignored.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from dataservice.models import (
    UNASSIGNED,
    BoundCommand,
    BoundParameter,
    CommandDescriptor,
    ParameterDescriptor,
    normalize_parameter_name,
)
from dataservice.services.type_coercer import CoercionTarget, coerce_lenient

logger = logging.getLogger(__name__)


def default_value_for(param: ParameterDescriptor) -> Any:
    """Value a parameter holds before any external value is applied.

    Nullable parameters start at None (explicit SQL NULL); non-nullable
    ones start UNASSIGNED so the driver rejects a missing value. A
    declared default value overrides both when it coerces cleanly.
    """
    initial = None if param.is_nullable else UNASSIGNED
    if param.default_value is None:
        return initial
    return _coerce_for(param, param.default_value, initial)


def _coerce_for(param: ParameterDescriptor, value: Any, current: Any) -> Any:
    target = param.coercion_target
    if target is CoercionTarget.TEXT:
        # Text parameters take the value's string form directly
        return str(value)
    return coerce_lenient(value, target, current)


def assign_value(param: ParameterDescriptor, value: Any, current: Any) -> Any:
    """Return the new value of param after assigning value to it.

    A None value is only taken by nullable parameters; otherwise the
    current value is kept. A value that fails to coerce keeps current.
    """
    if value is None:
        return None if param.is_nullable else current
    return _coerce_for(param, value, current)


def bind(
    command: CommandDescriptor,
    values: Mapping[str, Any] | Iterable[tuple[str, Any]] | None,
) -> BoundCommand:
    """Bind external values to the declared parameters of command.

    Args:
        command: Compiled command template. Not mutated.
        values: External name/value pairs. Keys may carry the marker
            character and any casing; pairs are applied in order, so the
            last of several keys naming the same parameter wins.

    Returns:
        A fresh BoundCommand with one BoundParameter per declared parameter.
    """
    current: dict[str, Any] = {
        param.key: default_value_for(param) for param in command.parameters
    }
    by_key = {param.key: param for param in command.parameters}

    if values is not None:
        items = values.items() if isinstance(values, Mapping) else values
        for name, value in items:
            param = by_key.get(normalize_parameter_name(name))
            if param is None:
                continue
            current[param.key] = assign_value(param, value, current[param.key])

    logger.debug(
        "Bound parameters: %s",
        [p.name for p in command.parameters if current[p.key] is not UNASSIGNED],
    )
    return BoundCommand(
        descriptor=command,
        parameters=tuple(
            BoundParameter(descriptor=param, value=current[param.key])
            for param in command.parameters
        ),
    )
