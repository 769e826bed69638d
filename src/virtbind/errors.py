"""
Exceptions and native error translation.

libvirt reports failure through sentinel return values (-1, NULL) and
keeps the details in a per-thread "last error" record; connections keep
their own copy as well. Right after a sentinel is observed we read that
record and turn it into a Python exception whose fields can be inspected
directly:

    try:
        conn.lookup_network_by_name("missing")
    except RetrieveError as e:
        if e.code == VIR_ERR_NO_NETWORK:
            ...

Exception hierarchy:

    VirtError
    ├── ResourceFreedError         operation on a handle that was freed
    ├── InvalidParameterTypeError  unknown typed-parameter tag
    ├── TypeMismatchError          value doesn't fit a typed-parameter slot
    ├── ArgumentError              malformed call arguments
    └── NativeCallError            a libvirt call failed
        ├── RetrieveError          ... while querying
        ├── DefinitionError        ... while defining from XML
        ├── NoSupportError         ... because the driver can't do it
        └── ConnectionFailedError  ... while opening a connection
"""

from dataclasses import dataclass

from virtbind.native.bindings import NativeLibrary, ffi


class VirtError(Exception):
    """Base class for every error raised by virtbind."""

    pass


class ResourceFreedError(VirtError):
    """
    Exception raised when a freed handle is used.

    This is a programming error: the native pointer is gone and the
    object can't be used again.
    """

    pass


class InvalidParameterTypeError(VirtError):
    """
    Exception raised for a typed parameter with an unknown type tag.

    This means libvirt is newer than these bindings and added a type we
    don't know how to convert.
    """

    pass


class TypeMismatchError(VirtError, TypeError):
    """Exception raised when a value doesn't fit a typed parameter's type."""

    pass


class ArgumentError(VirtError, TypeError):
    """Exception raised for arguments of the wrong shape."""

    pass


@dataclass
class NativeError:
    """
    A copy of libvirt's error record.

    Attributes:
        code: The error number (VIR_ERR_*)
        domain: The libvirt component that raised it (VIR_FROM_*)
        level: The severity (VIR_ERR_WARNING or VIR_ERR_ERROR)
        message: The human-readable message, if libvirt recorded one
    """

    code: int
    domain: int
    level: int
    message: str | None = None


class NativeCallError(VirtError):
    """
    Exception raised when a libvirt function reports failure.

    Attributes:
        function_name: The libvirt function that failed
        code: libvirt error number, or None if no error was recorded
        component: libvirt error domain, or None
        level: libvirt error level, or None
        native_message: libvirt's own message, or None
    """

    def __init__(self, message: str, function_name: str, error: NativeError | None = None):
        super().__init__(message)
        self.function_name = function_name
        self.code = error.code if error is not None else None
        self.component = error.domain if error is not None else None
        self.level = error.level if error is not None else None
        self.native_message = error.message if error is not None else None


class RetrieveError(NativeCallError):
    """Exception raised when querying libvirt for information fails."""

    pass


class DefinitionError(NativeCallError):
    """Exception raised when defining an object from XML fails."""

    pass


class NoSupportError(NativeCallError):
    """Exception raised when the driver doesn't support an operation."""

    pass


class ConnectionFailedError(NativeCallError):
    """Exception raised when a connection to a hypervisor can't be opened."""

    pass


def last_error(native: NativeLibrary, conn=ffi.NULL) -> NativeError | None:
    """
    Read libvirt's most recent error.

    Args:
        native: The library to query.
        conn: A virConnectPtr to read the connection-scoped error from,
              or NULL for the thread-global one.

    Returns:
        A copy of the error, or None if libvirt has nothing recorded.
    """
    if conn != ffi.NULL:
        err = native.virt.virConnGetLastError(conn)
    else:
        err = native.virt.virGetLastError()

    if err == ffi.NULL:
        return None

    message = None
    if err.message != ffi.NULL:
        message = ffi.string(err.message).decode("utf-8", errors="replace")

    return NativeError(code=err.code, domain=err.domain, level=err.level, message=message)


def translate(
    native: NativeLibrary,
    function_name: str,
    conn=ffi.NULL,
    error_class: type[NativeCallError] = NativeCallError,
) -> NativeCallError:
    """
    Build the exception for a failed libvirt call.

    Call this immediately after the failing call, before anything else
    can overwrite libvirt's error record.

    Args:
        native: The library the call was made through.
        function_name: Name of the libvirt function that failed.
        conn: The connection the call was made on, or NULL.
        error_class: NativeCallError subclass to instantiate.

    Returns:
        The exception, ready to raise.
    """
    error = last_error(native, conn)

    if error is not None and error.message is not None:
        message = f"Call to {function_name} failed: {error.message}"
    else:
        message = f"Call to {function_name} failed"

    return error_class(message, function_name=function_name, error=error)
