"""
Generic libvirt call shapes.

Nearly every libvirt function follows one of a handful of conventions for
signalling failure. Instead of repeating the check in every binding
method, each convention is a function here:

- call_void:    int return, < 0 is an error, nothing to return
- call_int:     int return, < 0 is an error, the value is the result
- call_bool:    int return, -1 error, 0 False, 1 True
- call_string:  char * return, NULL is an error; optionally we own it
- call_pointer: object pointer return, NULL is an error
- list_all:     count return plus a libvirt-allocated array of objects

Every shape takes the NativeLibrary, the libvirt function's name (used
both to look it up and in the error message) and the connection pointer
whose error record should be read on failure.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from virtbind.errors import ArgumentError, NativeCallError, NoSupportError, RetrieveError, translate
from virtbind.native.bindings import NativeLibrary, ffi

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _invoke(native: NativeLibrary, function: str, args: tuple):
    """
    Look up a libvirt function by name and call it.

    Raises:
        NoSupportError: If the loaded libvirt does not export the function.
    """
    logger.debug(f"Calling {function}")
    try:
        entry_point = getattr(native.virt, function)
    except AttributeError:
        raise NoSupportError(
            f"Function {function} not supported by this libvirt", function_name=function
        ) from None
    return entry_point(*args)


def call_raw(native: NativeLibrary, function: str, *args):
    """
    Call a function whose return value has no error sentinel of its own.

    The caller decides from the result and the error record whether the
    call failed.

    Raises:
        NoSupportError: If the loaded libvirt does not export the function.
    """
    return _invoke(native, function, args)


def call_void(
    native: NativeLibrary,
    function: str,
    conn,
    *args,
    error_class: type[NativeCallError] = NativeCallError,
) -> None:
    """
    Call a function that returns -1 on error and 0 on success.

    Raises:
        NativeCallError: (or error_class) if the call fails.
    """
    result = _invoke(native, function, args)
    if result < 0:
        raise translate(native, function, conn, error_class)


def call_int(
    native: NativeLibrary,
    function: str,
    conn,
    *args,
    error_class: type[NativeCallError] = RetrieveError,
) -> int:
    """
    Call a function that returns a non-negative int, or -1 on error.

    Returns:
        The function's return value.

    Raises:
        RetrieveError: (or error_class) if the call fails.
    """
    result = _invoke(native, function, args)
    if result < 0:
        raise translate(native, function, conn, error_class)
    return result


def call_bool(
    native: NativeLibrary,
    function: str,
    conn,
    *args,
    error_class: type[NativeCallError] = NativeCallError,
) -> bool:
    """
    Call a function that returns 1 (true), 0 (false) or -1 (error).

    Raises:
        NativeCallError: (or error_class) if the call fails.
    """
    result = _invoke(native, function, args)
    if result < 0:
        raise translate(native, function, conn, error_class)
    return result != 0


def call_string(
    native: NativeLibrary,
    function: str,
    conn,
    *args,
    dealloc: bool = False,
    error_class: type[NativeCallError] = NativeCallError,
) -> str:
    """
    Call a function that returns a string, or NULL on error.

    Some libvirt functions return a pointer into the object they were
    called on (virNetworkGetName), others return a fresh allocation the
    caller must free (virNetworkGetXMLDesc). Pass dealloc=True for the
    latter; the string is copied and then freed, even if decoding fails.

    Returns:
        The string, decoded as UTF-8.

    Raises:
        NativeCallError: (or error_class) if the call returns NULL.
    """
    result = _invoke(native, function, args)
    if result == ffi.NULL:
        # Nothing was allocated, so there is nothing to free
        raise translate(native, function, conn, error_class)

    if not dealloc:
        return ffi.string(result).decode("utf-8")

    try:
        return ffi.string(result).decode("utf-8")
    finally:
        native.release(result)


def call_pointer(
    native: NativeLibrary,
    function: str,
    conn,
    *args,
    error_class: type[NativeCallError] = RetrieveError,
):
    """
    Call a function that returns an object pointer, or NULL on error.

    Used for lookups and define/create calls. The caller wraps the
    returned pointer in a NativeHandle, which then owns it.

    Returns:
        The raw pointer (never NULL).

    Raises:
        RetrieveError: (or error_class) if the call returns NULL.
    """
    result = _invoke(native, function, args)
    if result == ffi.NULL:
        raise translate(native, function, conn, error_class)
    return result


def list_all(
    native: NativeLibrary,
    function: str,
    conn,
    first_arg,
    element_type: str,
    flags: int,
    wrap: Callable[[object], T],
    release: Callable[[object], object],
) -> list[T]:
    """
    Call a virConnectListAll* style function and wrap every element.

    These functions allocate an array of object pointers, store it through
    an out parameter and return the element count. Each element is a
    reference the caller must release, and the array itself must be freed.

    Ownership rules if wrapping fails part way through:
    - elements already wrapped belong to their wrappers and are released
      when those are garbage collected
    - the element whose wrap raised, and every element after it, are
      released here with `release`
    - the array is always freed

    Args:
        native: The library to call through.
        function: Name of the libvirt list function.
        conn: Connection pointer for error details.
        first_arg: The function's first argument (usually conn).
        element_type: C type of one element (e.g. "virNetworkPtr").
        flags: Filter flags passed through to libvirt.
        wrap: Turns one raw element into a Python object.
        release: Releases one raw element (e.g. virNetworkFree).

    Returns:
        The wrapped elements, in libvirt's order.

    Raises:
        RetrieveError: If the list call fails.
        Exception: Whatever `wrap` raised, after cleanup.
    """
    out = ffi.new(f"{element_type} **")
    count = _invoke(native, function, (first_arg, out, flags))
    if count < 0:
        raise translate(native, function, conn, RetrieveError)

    array = out[0]
    result: list[T] = []
    index = 0
    try:
        while index < count:
            wrapped = wrap(array[index])
            # From here on the wrapper owns the element
            index += 1
            result.append(wrapped)
    except BaseException:
        for remaining in range(index, count):
            release(array[remaining])
        raise
    finally:
        native.release(array)

    return result


def flag_value(flags: int | None) -> int:
    """
    Convert an optional flags argument to the unsigned int libvirt expects.

    Raises:
        ArgumentError: If flags is not a non-negative integer or None.
    """
    if flags is None:
        return 0
    if isinstance(flags, bool) or not isinstance(flags, int) or flags < 0:
        raise ArgumentError(f"Flags must be a non-negative integer, got {flags!r}")
    return flags


def cstring_or_null(value: str | None):
    """
    Convert an optional string argument for a `const char *` parameter.

    Raises:
        ArgumentError: If value is neither a str nor None.
    """
    if value is None:
        return ffi.NULL
    if not isinstance(value, str):
        raise ArgumentError(
            f"wrong argument type (expected str or None, got {type(value).__name__})"
        )
    return value.encode("utf-8")
