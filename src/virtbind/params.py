"""
Typed parameter conversion.

Several libvirt APIs (scheduler, memory and blkio tuning, node memory)
exchange settings as an array of virTypedParameter: a field name, a type
tag, and a value union. This module converts those arrays to and from
plain Python dicts.

Reading uses libvirt's two-call protocol:
1. Ask how many parameters there are
2. Allocate exactly that many slots and ask libvirt to fill them

Writing is harder because a Python value doesn't say which C type it
should become (is 5 an int, an unsigned int or a long long?). So a write
first reads the current parameters, overlays the new values onto the
existing slots using the type already in each slot, then hands the whole
array back to libvirt. Fields not mentioned in the update keep their
current value.
"""

import enum
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from virtbind.errors import ArgumentError, InvalidParameterTypeError, TypeMismatchError
from virtbind.native import constants
from virtbind.native.bindings import NativeLibrary, ffi

logger = logging.getLogger(__name__)


class TypedParameterKind(enum.IntEnum):
    """The type tag of a virTypedParameter."""

    INT = constants.VIR_TYPED_PARAM_INT
    UINT = constants.VIR_TYPED_PARAM_UINT
    LLONG = constants.VIR_TYPED_PARAM_LLONG
    ULLONG = constants.VIR_TYPED_PARAM_ULLONG
    DOUBLE = constants.VIR_TYPED_PARAM_DOUBLE
    BOOLEAN = constants.VIR_TYPED_PARAM_BOOLEAN
    STRING = constants.VIR_TYPED_PARAM_STRING


# Which member of the value union holds each kind
_UNION_MEMBER = {
    TypedParameterKind.INT: "i",
    TypedParameterKind.UINT: "ui",
    TypedParameterKind.LLONG: "l",
    TypedParameterKind.ULLONG: "ul",
    TypedParameterKind.DOUBLE: "d",
    TypedParameterKind.BOOLEAN: "b",
    TypedParameterKind.STRING: "s",
}

# Inclusive value range of each integer kind
_INTEGER_RANGES = {
    TypedParameterKind.INT: (-(2**31), 2**31 - 1),
    TypedParameterKind.UINT: (0, 2**32 - 1),
    TypedParameterKind.LLONG: (-(2**63), 2**63 - 1),
    TypedParameterKind.ULLONG: (0, 2**64 - 1),
}


@dataclass
class TypedParameter:
    """
    One decoded typed parameter.

    Attributes:
        name: The field name (e.g. "cpu_shares")
        kind: The native type tag
        value: The value as a Python int, float, bool or str
    """

    name: str
    kind: TypedParameterKind
    value: Any


# Signature of the callbacks used by the two-call protocol.
# Each one raises a translated NativeCallError itself on failure.
CountFunction = Callable[[int], int]
FetchFunction = Callable[[Any, Any, int], None]
CommitFunction = Callable[[Any, int, int], None]


def _field_name(param) -> str:
    return ffi.string(param.field).decode("utf-8")


def _kind_of(param, name: str) -> TypedParameterKind:
    try:
        return TypedParameterKind(param.type)
    except ValueError:
        raise InvalidParameterTypeError(
            f"Invalid parameter type {param.type} for field '{name}'"
        ) from None


def _read_value(param, kind: TypedParameterKind):
    if kind == TypedParameterKind.BOOLEAN:
        return param.value.b != 0
    if kind == TypedParameterKind.STRING:
        if param.value.s == ffi.NULL:
            return None
        return ffi.string(param.value.s).decode("utf-8")
    return getattr(param.value, _UNION_MEMBER[kind])


def read_parameters(params, count: int) -> list[TypedParameter]:
    """
    Decode a native parameter array into TypedParameter objects.

    Args:
        params: A `virTypedParameter *` with at least `count` entries.
        count: Number of valid entries.

    Returns:
        One TypedParameter per entry, in array order.

    Raises:
        InvalidParameterTypeError: If an entry has an unknown type tag.
    """
    result = []
    for index in range(count):
        param = params[index]
        name = _field_name(param)
        kind = _kind_of(param, name)
        result.append(TypedParameter(name=name, kind=kind, value=_read_value(param, kind)))
    return result


def decode(params, count: int) -> dict[str, Any]:
    """
    Decode a native parameter array into a dict of field name to value.

    Raises:
        InvalidParameterTypeError: If an entry has an unknown type tag.
    """
    return {param.name: param.value for param in read_parameters(params, count)}


def _convert(name: str, kind: TypedParameterKind, value):
    """
    Check that a Python value fits a parameter slot and convert it.

    Returns:
        The value to store: an int, float, or bytes for strings.

    Raises:
        TypeMismatchError: If the value has the wrong type or is out of range.
    """
    if kind == TypedParameterKind.BOOLEAN:
        if not isinstance(value, bool):
            raise TypeMismatchError(
                f"Parameter '{name}' expects a bool, got {type(value).__name__}"
            )
        return 1 if value else 0

    if kind == TypedParameterKind.STRING:
        if not isinstance(value, str):
            raise TypeMismatchError(
                f"Parameter '{name}' expects a str, got {type(value).__name__}"
            )
        return value.encode("utf-8")

    # bool is an int subclass, but True is never a sensible number here
    if isinstance(value, bool):
        raise TypeMismatchError(f"Parameter '{name}' expects a number, got bool")

    if kind == TypedParameterKind.DOUBLE:
        if not isinstance(value, (int, float)):
            raise TypeMismatchError(
                f"Parameter '{name}' expects a number, got {type(value).__name__}"
            )
        try:
            return float(value)
        except OverflowError:
            raise TypeMismatchError(
                f"Value {value} for parameter '{name}' is out of range for DOUBLE"
            ) from None

    if not isinstance(value, int):
        raise TypeMismatchError(
            f"Parameter '{name}' expects an integer, got {type(value).__name__}"
        )

    low, high = _INTEGER_RANGES[kind]
    if not low <= value <= high:
        raise TypeMismatchError(
            f"Value {value} for parameter '{name}' is out of range for "
            f"{kind.name} ({low}..{high})"
        )
    return value


def encode(params, count: int, updates: Mapping[str, Any]) -> list:
    """
    Overlay new values onto a native parameter array, in place.

    Each slot keeps the type it already has; the Python value must fit
    that type. Slots whose field name is missing from `updates` (or maps
    to None) are left untouched. Every value is checked before any slot
    is written, so a failure leaves the array unchanged.

    Args:
        params: A `virTypedParameter *` filled in by libvirt.
        count: Number of valid entries.
        updates: Field name to new value.

    Returns:
        cdata objects backing new string values. They must be kept alive
        until libvirt has consumed the array.

    Raises:
        TypeMismatchError: If a value doesn't fit its slot.
        InvalidParameterTypeError: If a slot being updated has an unknown type tag.
    """
    pending = []
    for index in range(count):
        param = params[index]
        name = _field_name(param)
        value = updates.get(name)
        if value is None:
            continue
        kind = _kind_of(param, name)
        pending.append((param, kind, _convert(name, kind, value)))

    keepalive = []
    for param, kind, converted in pending:
        if kind == TypedParameterKind.STRING:
            buffer = ffi.new("char[]", converted)
            keepalive.append(buffer)
            param.value.s = buffer
        else:
            setattr(param.value, _UNION_MEMBER[kind], converted)

    return keepalive


def _native_strings(params, count: int) -> list:
    """Collect the string pointers libvirt allocated inside a parameter array."""
    strings = []
    for index in range(count):
        param = params[index]
        if param.type == TypedParameterKind.STRING and param.value.s != ffi.NULL:
            strings.append(param.value.s)
    return strings


def _release_all(native: NativeLibrary, pointers: list) -> None:
    for pointer in pointers:
        native.release(pointer)


def get_typed_parameters(
    native: NativeLibrary,
    count_fn: CountFunction,
    fetch_fn: FetchFunction,
    flags: int = 0,
) -> dict[str, Any]:
    """
    Read a parameter set using the two-call protocol.

    Args:
        native: The library that allocated any string values.
        count_fn: Returns the number of parameters for `flags`.
        fetch_fn: Fills (params, nparams_ptr, flags); may lower *nparams.
        flags: Passed through to both callbacks.

    Returns:
        Field name to value, in libvirt's order. Empty if there are none.

    Raises:
        NativeCallError: If either callback fails.
        InvalidParameterTypeError: If libvirt returns an unknown type tag.
    """
    count = count_fn(flags)
    if count == 0:
        return {}

    params = ffi.new("virTypedParameter[]", count)
    nparams = ffi.new("int *", count)
    fetch_fn(params, nparams, flags)
    count = nparams[0]

    # String values were allocated by libvirt; copy them, then free them
    strings = _native_strings(params, count)
    try:
        return decode(params, count)
    finally:
        _release_all(native, strings)


def set_typed_parameters(
    native: NativeLibrary,
    updates: Mapping[str, Any],
    count_fn: CountFunction,
    fetch_fn: FetchFunction,
    commit_fn: CommitFunction,
    flags: int = 0,
) -> None:
    """
    Update a parameter set using read-modify-write.

    The current parameters are fetched (to learn each field's type), the
    updates are overlaid, and the full array is committed. Nothing is
    committed if any step fails.

    Args:
        native: The library that allocated any string values.
        updates: Field name to new value. Unknown names are ignored.
        count_fn: Returns the number of parameters for `flags`.
        fetch_fn: Fills (params, nparams_ptr, flags).
        commit_fn: Applies (params, nparams, flags).
        flags: Passed through to all callbacks.

    Raises:
        ArgumentError: If updates is not a mapping.
        TypeMismatchError: If a value doesn't fit its field's type.
        NativeCallError: If any callback fails.
    """
    if not isinstance(updates, Mapping):
        raise ArgumentError(
            f"Parameters must be a mapping, got {type(updates).__name__}"
        )
    if not updates:
        return

    count = count_fn(flags)
    if count == 0:
        logger.debug("No parameters to update")
        return

    params = ffi.new("virTypedParameter[]", count)
    nparams = ffi.new("int *", count)
    fetch_fn(params, nparams, flags)
    count = nparams[0]

    # Captured before the overlay replaces any of them
    strings = _native_strings(params, count)
    try:
        keepalive = encode(params, count, updates)
        commit_fn(params, count, flags)
        del keepalive
    finally:
        _release_all(native, strings)


def parse_params_and_flags(value) -> tuple[Mapping[str, Any], int]:
    """
    Split a "parameters, or (parameters, flags)" argument.

    Setters accept either a mapping on its own (flags 0) or a two-element
    list/tuple of (mapping, flags), where a None flag also means 0.

    Returns:
        (parameters, flags)

    Raises:
        ArgumentError: For any other shape.
    """
    if isinstance(value, Mapping):
        return value, 0

    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ArgumentError(
                f"wrong number of arguments ({len(value)} for 1 or 2)"
            )
        params, flags = value
        if not isinstance(params, Mapping):
            raise ArgumentError(
                f"Parameters must be a mapping, got {type(params).__name__}"
            )
        if flags is None:
            flags = 0
        if isinstance(flags, bool) or not isinstance(flags, int):
            raise ArgumentError(f"Flags must be an integer, got {type(flags).__name__}")
        return params, flags

    raise ArgumentError(
        f"wrong argument type (expected mapping or (mapping, flags), "
        f"got {type(value).__name__})"
    )
