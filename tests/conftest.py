"""
Shared fixtures: a scriptable stand-in for libvirt.

FakeVirt answers libvirt calls with plain Python functions that work on
real cffi memory, so the bindings run unchanged without libvirt
installed. FakeLibc records every pointer handed to free().
"""

import pytest

from virtbind.connection import Connection
from virtbind.native.bindings import NativeLibrary, ffi
from virtbind.params import TypedParameterKind

FREE_FUNCTIONS = {"virConnectClose", "virNetworkFree", "virDomainFree", "virStoragePoolFree"}

CONN_ADDRESS = 0x1000


def address(pointer) -> int:
    return int(ffi.cast("uintptr_t", pointer))


class FakeLibc:
    """Fake C library that records frees instead of performing them."""

    def __init__(self):
        self.freed = []

    def free(self, pointer):
        self.freed.append(address(pointer))

    def was_freed(self, pointer) -> bool:
        return address(pointer) in self.freed


class FakeVirt:
    """
    Fake libvirt.

    Every virXXX attribute is a function that records its call and then
    runs the handler registered with on(). Free functions without a
    handler succeed and are recorded in `freed`. Names in `missing` act
    like symbols an older libvirt doesn't export. Any other unscripted
    call fails the test.
    """

    def __init__(self):
        self.calls = []
        self.handlers = {}
        self.freed = []
        self.global_error = ffi.NULL
        self.conn_error = ffi.NULL
        self.missing = set()
        self._keepalive = []

    def __getattr__(self, name):
        if not name.startswith("vir") or name in self.missing:
            raise AttributeError(name)

        def function(*args):
            self.calls.append((name, args))
            if name in self.handlers:
                handler = self.handlers[name]
                if callable(handler) and not isinstance(handler, ffi.CData):
                    return handler(*args)
                return handler
            if name in FREE_FUNCTIONS:
                self.freed.append((name, address(args[0])))
                return 0
            raise AssertionError(f"unexpected call to {name}")

        return function

    def virGetLastError(self):
        return self.global_error

    def virConnGetLastError(self, conn):
        return self.conn_error

    # Scripting helpers

    def on(self, name: str, handler) -> None:
        """Script a function: handler is a return value (cdata included) or a callable."""
        self.handlers[name] = handler

    def called(self, name: str) -> list:
        """Argument tuples of every call made to `name`."""
        return [args for function, args in self.calls if function == name]

    def freed_with(self, name: str) -> list[int]:
        return [addr for function, addr in self.freed if function == name]

    def string(self, value: bytes):
        """A `char *` that stays valid for the life of the fake."""
        buffer = ffi.new("char[]", value)
        self._keepalive.append(buffer)
        return ffi.cast("char *", buffer)

    def pointer(self, ctype: str, addr: int):
        return ffi.cast(ctype, addr)

    def set_error(self, message=None, code=1, domain=0, level=2, on_connection=True):
        """Record an error the way libvirt does after a failed call."""
        err = ffi.new("virError *")
        err.code = code
        err.domain = domain
        err.level = level
        if message is not None:
            err.message = self.string(message.encode("utf-8"))
        self._keepalive.append(err)
        self.global_error = err
        if on_connection:
            self.conn_error = err

    def fill_parameters(self, params, entries) -> None:
        """Fill a virTypedParameter array from (name, kind, value) tuples."""
        members = {
            TypedParameterKind.INT: "i",
            TypedParameterKind.UINT: "ui",
            TypedParameterKind.LLONG: "l",
            TypedParameterKind.ULLONG: "ul",
            TypedParameterKind.DOUBLE: "d",
        }
        for index, (name, kind, value) in enumerate(entries):
            param = params[index]
            param.field = name.encode("utf-8")
            param.type = int(kind)
            if kind == TypedParameterKind.STRING:
                param.value.s = self.string(value.encode("utf-8"))
            elif kind == TypedParameterKind.BOOLEAN:
                param.value.b = 1 if value else 0
            else:
                setattr(param.value, members[kind], value)

    def serve_parameters(self, function: str, entries) -> None:
        """
        Script a *Parameters getter.

        Called with a NULL array it reports the count; called with an
        array it fills it.
        """

        def getter(obj, params, nparams, flags):
            if params == ffi.NULL:
                nparams[0] = len(entries)
                return 0
            self.fill_parameters(params, entries[: nparams[0]])
            nparams[0] = min(nparams[0], len(entries))
            return 0

        self.on(function, getter)

    def serve_list_all(self, function: str, ctype: str, addresses) -> None:
        """Script a virConnectListAll* function returning the given pointers."""

        def list_all(conn, out, flags):
            array = ffi.new(f"{ctype}[]", [ffi.cast(ctype, a) for a in addresses])
            self._keepalive.append(array)
            out[0] = array
            return len(addresses)

        self.on(function, list_all)

    def serve_names(self, num_function: str, list_function: str, names) -> None:
        """Script a count-then-list pair returning libvirt-allocated names."""
        self.on(num_function, len(names))

        def list_names(obj, array, maxnames):
            for index, name in enumerate(names[:maxnames]):
                array[index] = self.string(name)
            return min(maxnames, len(names))

        self.on(list_function, list_names)


@pytest.fixture
def virt():
    return FakeVirt()


@pytest.fixture
def libc():
    return FakeLibc()


@pytest.fixture
def native(virt, libc):
    return NativeLibrary(virt=virt, libc=libc)


@pytest.fixture
def conn(virt, native):
    """An open connection to the fake."""
    virt.on("virConnectOpen", lambda uri: ffi.cast("virConnectPtr", CONN_ADDRESS))
    return Connection.open("test:///default", native=native)
