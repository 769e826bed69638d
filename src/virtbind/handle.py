"""
Managed wrappers around libvirt object pointers.

Every libvirt object (connection, domain, network, storage pool) is a
reference-counted native pointer that must be released with its own
virXXXFree function exactly once. NativeHandle owns one such pointer:

- `raw` returns the pointer, or raises ResourceFreedError once freed
- `free()` releases it and nulls the stored pointer
- freeing twice fails loudly instead of silently doing nothing
- handles still alive when garbage collected are freed then

Resource handles also keep a (non-owning) reference to their Connection,
which is where libvirt records connection-scoped error details.
"""

import logging

from virtbind.dispatch import call_bool, call_int, call_string, call_void, flag_value
from virtbind.errors import (
    ArgumentError,
    NativeCallError,
    ResourceFreedError,
    RetrieveError,
    VirtError,
    translate,
)
from virtbind.native.bindings import NativeLibrary, ffi
from virtbind.native.constants import VIR_UUID_STRING_BUFLEN
from virtbind.params import get_typed_parameters, parse_params_and_flags, set_typed_parameters

logger = logging.getLogger(__name__)


class NativeHandle:
    """
    Owns one native libvirt pointer.

    Subclasses set:
        kind: Name used in messages (e.g. "Network")
        free_function: libvirt function that releases the pointer
    """

    kind = "Handle"
    free_function = ""

    def __init__(self, raw, connection: "NativeHandle | None", native: NativeLibrary):
        """
        Wrap a pointer returned by a successful lookup, define or create call.

        Args:
            raw: The native pointer. Ownership passes to this object.
            connection: The owning Connection, or None for a connection itself.
            native: The library the pointer came from.

        Raises:
            ArgumentError: If raw is NULL.
        """
        self._raw = None
        if raw is None or raw == ffi.NULL:
            raise ArgumentError(f"Cannot wrap a NULL {self.kind} pointer")

        self._raw = raw
        self._connection = connection
        self._native = native

    @property
    def raw(self):
        """
        Get the native pointer.

        Raises:
            ResourceFreedError: If the handle has been freed.
        """
        if self._raw is None:
            raise ResourceFreedError(f"{self.kind} has been freed")
        return self._raw

    @property
    def freed(self) -> bool:
        """True once the native pointer has been released."""
        return self._raw is None

    @property
    def native(self) -> NativeLibrary:
        """Get the library this handle's pointer belongs to."""
        return self._native

    @property
    def connection(self):
        """Get the Connection this object was obtained from."""
        return self._connection

    @property
    def _conn_ptr(self):
        """
        Get the connection pointer to read error details from.

        Falls back to NULL (the thread-global error) if the connection
        has already been closed.
        """
        owner = self if self._connection is None else self._connection
        if owner._raw is None:
            return ffi.NULL
        return owner._raw

    def free(self) -> int:
        """
        Release the native pointer.

        Returns:
            The free function's (non-negative) return value.

        Raises:
            ResourceFreedError: If the handle was already freed.
            NativeCallError: If libvirt reports that the free failed.
                             The pointer is kept in that case.
        """
        raw = self.raw
        result = getattr(self._native.virt, self.free_function)(raw)
        if result < 0:
            raise translate(self._native, self.free_function, self._conn_ptr)

        self._raw = None
        logger.debug(f"Freed {self.kind} via {self.free_function}")
        return result

    def __enter__(self):
        """Support for 'with' statement."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Free the handle when exiting 'with' block."""
        if not self.freed:
            self.free()
        return False

    def __del__(self):
        """Free the pointer when garbage collected."""
        if getattr(self, "_raw", None) is None:
            return
        try:
            self.free()
        except VirtError as e:
            logger.warning(f"Could not free {self.kind} during finalization: {e}")

    def __repr__(self) -> str:
        state = "freed" if self.freed else "live"
        return f"<{type(self).__name__} {state}>"

    # =========================================================================
    # Call helpers
    # =========================================================================
    # Shorthands for the dispatch shapes with this handle's pointer as the
    # first argument and its connection as the error context.

    def _void(self, function: str, *args, error_class=NativeCallError) -> None:
        call_void(self._native, function, self._conn_ptr, self.raw, *args,
                  error_class=error_class)

    def _int(self, function: str, *args, error_class=RetrieveError) -> int:
        return call_int(self._native, function, self._conn_ptr, self.raw, *args,
                        error_class=error_class)

    def _bool(self, function: str, *args, error_class=NativeCallError) -> bool:
        return call_bool(self._native, function, self._conn_ptr, self.raw, *args,
                         error_class=error_class)

    def _string(self, function: str, *args, dealloc: bool = False) -> str:
        return call_string(self._native, function, self._conn_ptr, self.raw, *args,
                           dealloc=dealloc)

    def _uuid(self, function: str) -> str:
        """Read a UUID through a virXXXGetUUIDString style function."""
        buffer = ffi.new("char[]", VIR_UUID_STRING_BUFLEN)
        self._void(function, buffer, error_class=RetrieveError)
        return ffi.string(buffer).decode("ascii")

    def _get_autostart(self, function: str) -> bool:
        """Read an autostart flag through a virXXXGetAutostart style function."""
        autostart = ffi.new("int *")
        self._void(function, autostart, error_class=RetrieveError)
        return autostart[0] != 0

    def _set_autostart(self, function: str, autostart: bool) -> None:
        if not isinstance(autostart, bool):
            raise ArgumentError(
                f"wrong argument type (expected bool, got {type(autostart).__name__})"
            )
        self._void(function, 1 if autostart else 0)

    # =========================================================================
    # Typed parameter helpers
    # =========================================================================
    # Most *Parameters getters follow the same convention: called with a
    # NULL array and *nparams == 0 they report the count, called with an
    # array they fill it. The matching setter takes the filled array back.

    def _parameter_callbacks(self, get_function: str, set_function: str | None):
        """Build the count/fetch/commit callbacks for a getter/setter pair."""

        def count(flags: int) -> int:
            nparams = ffi.new("int *", 0)
            self._void(get_function, ffi.NULL, nparams, flags, error_class=RetrieveError)
            return nparams[0]

        def fetch(params, nparams, flags: int) -> None:
            self._void(get_function, params, nparams, flags, error_class=RetrieveError)

        def commit(params, nparams: int, flags: int) -> None:
            self._void(set_function, params, nparams, flags, error_class=RetrieveError)

        return count, fetch, commit

    def _get_parameters(self, get_function: str, flags: int | None) -> dict:
        count, fetch, _ = self._parameter_callbacks(get_function, None)
        return get_typed_parameters(self._native, count, fetch, flag_value(flags))

    def _set_parameters(self, get_function: str, set_function: str, value) -> None:
        updates, flags = parse_params_and_flags(value)
        count, fetch, commit = self._parameter_callbacks(get_function, set_function)
        set_typed_parameters(self._native, updates, count, fetch, commit, flag_value(flags))
