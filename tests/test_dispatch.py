"""
Tests for the generic libvirt call shapes.
"""

import pytest

from virtbind.dispatch import (
    call_bool,
    call_int,
    call_pointer,
    call_raw,
    call_string,
    call_void,
    cstring_or_null,
    flag_value,
    list_all,
)
from virtbind.errors import (
    ArgumentError,
    DefinitionError,
    NativeCallError,
    NoSupportError,
    RetrieveError,
)
from virtbind.native.bindings import ffi


def address(pointer) -> int:
    return int(ffi.cast("uintptr_t", pointer))


class TestCallVoid:
    def test_success(self, virt, native):
        virt.on("virNetworkCreate", 0)
        assert call_void(native, "virNetworkCreate", ffi.NULL, "net") is None
        assert virt.called("virNetworkCreate") == [("net",)]

    def test_failure_with_message(self, virt, native):
        virt.on("virNetworkCreate", -1)
        virt.set_error("network is already active", code=55)

        with pytest.raises(NativeCallError) as exc_info:
            call_void(native, "virNetworkCreate", ffi.NULL)

        assert str(exc_info.value) == "Call to virNetworkCreate failed: network is already active"
        assert exc_info.value.function_name == "virNetworkCreate"
        assert exc_info.value.code == 55

    def test_failure_without_error_record(self, virt, native):
        virt.on("virNetworkCreate", -1)

        with pytest.raises(NativeCallError) as exc_info:
            call_void(native, "virNetworkCreate", ffi.NULL)

        assert str(exc_info.value) == "Call to virNetworkCreate failed"
        assert exc_info.value.code is None
        assert exc_info.value.native_message is None

    def test_error_class(self, virt, native):
        virt.on("virNetworkCreate", -1)

        with pytest.raises(DefinitionError):
            call_void(native, "virNetworkCreate", ffi.NULL, error_class=DefinitionError)

    def test_missing_symbol(self, virt, native):
        virt.missing.add("virNetworkCreate")

        with pytest.raises(NoSupportError) as exc_info:
            call_void(native, "virNetworkCreate", ffi.NULL)

        assert exc_info.value.function_name == "virNetworkCreate"
        assert virt.calls == []


class TestCallRaw:
    def test_returns_result_unchecked(self, virt, native):
        virt.on("virDomainGetID", 0xFFFFFFFF)
        assert call_raw(native, "virDomainGetID", ffi.NULL) == 0xFFFFFFFF

    def test_missing_symbol(self, virt, native):
        virt.missing.add("virDomainGetID")

        with pytest.raises(NoSupportError):
            call_raw(native, "virDomainGetID", ffi.NULL)

        assert virt.calls == []


class TestCallInt:
    def test_returns_value(self, virt, native):
        virt.on("virConnectNumOfNetworks", 4)
        assert call_int(native, "virConnectNumOfNetworks", ffi.NULL) == 4

    def test_zero_is_success(self, virt, native):
        virt.on("virConnectNumOfNetworks", 0)
        assert call_int(native, "virConnectNumOfNetworks", ffi.NULL) == 0

    def test_failure_is_retrieve_error(self, virt, native):
        virt.on("virConnectNumOfNetworks", -1)

        with pytest.raises(RetrieveError):
            call_int(native, "virConnectNumOfNetworks", ffi.NULL)


class TestCallBool:
    @pytest.mark.parametrize("result, expected", [(1, True), (0, False)])
    def test_values(self, virt, native, result, expected):
        virt.on("virNetworkIsActive", result)
        assert call_bool(native, "virNetworkIsActive", ffi.NULL) is expected

    def test_failure(self, virt, native):
        virt.on("virNetworkIsActive", -1)

        with pytest.raises(NativeCallError):
            call_bool(native, "virNetworkIsActive", ffi.NULL)


class TestCallString:
    def test_borrowed_string_not_freed(self, virt, libc, native):
        virt.on("virNetworkGetName", virt.string(b"default"))

        assert call_string(native, "virNetworkGetName", ffi.NULL) == "default"
        assert libc.freed == []

    def test_owned_string_freed_once(self, virt, libc, native):
        result = virt.string(b"<network/>")
        virt.on("virNetworkGetXMLDesc", result)

        assert call_string(native, "virNetworkGetXMLDesc", ffi.NULL, dealloc=True) == "<network/>"
        assert libc.freed == [address(result)]

    def test_owned_string_freed_when_decode_fails(self, virt, libc, native):
        result = virt.string(b"\xff")
        virt.on("virNetworkGetXMLDesc", result)

        with pytest.raises(UnicodeDecodeError):
            call_string(native, "virNetworkGetXMLDesc", ffi.NULL, dealloc=True)

        assert libc.freed == [address(result)]

    def test_null_frees_nothing(self, virt, libc, native):
        virt.on("virNetworkGetXMLDesc", ffi.NULL)

        with pytest.raises(NativeCallError):
            call_string(native, "virNetworkGetXMLDesc", ffi.NULL, dealloc=True)

        assert libc.freed == []


class TestCallPointer:
    def test_returns_pointer(self, virt, native):
        pointer = virt.pointer("virNetworkPtr", 0x2000)
        virt.on("virNetworkLookupByName", pointer)

        assert call_pointer(native, "virNetworkLookupByName", ffi.NULL, b"x") == pointer

    def test_null_is_retrieve_error(self, virt, native):
        virt.on("virNetworkLookupByName", ffi.NULL)
        virt.set_error("Network not found: no network with matching name 'x'", code=43)

        with pytest.raises(RetrieveError, match="Network not found"):
            call_pointer(native, "virNetworkLookupByName", ffi.NULL, b"x")


class TestListAll:
    """Test wrapping libvirt-allocated object arrays."""

    ADDRESSES = [0x2000, 0x2100, 0x2200]

    def setup_method(self):
        self.released = []

    def release(self, raw):
        self.released.append(address(raw))

    def test_wraps_every_element(self, virt, libc, native):
        virt.serve_list_all("virConnectListAllNetworks", "virNetworkPtr", self.ADDRESSES)
        conn = virt.pointer("virConnectPtr", 0x1000)

        result = list_all(
            native, "virConnectListAllNetworks", conn, conn, "virNetworkPtr", 0,
            wrap=address, release=self.release,
        )

        assert result == self.ADDRESSES
        assert self.released == []
        assert len(libc.freed) == 1

    def test_empty(self, virt, libc, native):
        virt.serve_list_all("virConnectListAllNetworks", "virNetworkPtr", [])
        result = list_all(
            native, "virConnectListAllNetworks", ffi.NULL, ffi.NULL, "virNetworkPtr", 0,
            wrap=address, release=self.release,
        )
        assert result == []

    def test_wrap_failure_releases_remaining(self, virt, libc, native):
        virt.serve_list_all("virConnectListAllNetworks", "virNetworkPtr", self.ADDRESSES)
        wrapped = []

        def wrap(raw):
            if address(raw) == 0x2100:
                raise RuntimeError("wrap failed")
            wrapped.append(address(raw))
            return raw

        with pytest.raises(RuntimeError, match="wrap failed"):
            list_all(
                native, "virConnectListAllNetworks", ffi.NULL, ffi.NULL, "virNetworkPtr", 0,
                wrap=wrap, release=self.release,
            )

        assert wrapped == [0x2000]
        assert self.released == [0x2100, 0x2200]
        assert len(libc.freed) == 1

    def test_flags_passed(self, virt, native):
        virt.serve_list_all("virConnectListAllNetworks", "virNetworkPtr", [])
        list_all(
            native, "virConnectListAllNetworks", ffi.NULL, ffi.NULL, "virNetworkPtr", 3,
            wrap=address, release=self.release,
        )
        assert virt.called("virConnectListAllNetworks")[0][2] == 3

    def test_failure(self, virt, libc, native):
        virt.on("virConnectListAllNetworks", -1)

        with pytest.raises(RetrieveError):
            list_all(
                native, "virConnectListAllNetworks", ffi.NULL, ffi.NULL, "virNetworkPtr", 0,
                wrap=address, release=self.release,
            )

        assert libc.freed == []


class TestArguments:
    @pytest.mark.parametrize("flags, expected", [(None, 0), (0, 0), (5, 5)])
    def test_flag_value(self, flags, expected):
        assert flag_value(flags) == expected

    @pytest.mark.parametrize("flags", [-1, True, "1", 1.0])
    def test_flag_value_rejects(self, flags):
        with pytest.raises(ArgumentError):
            flag_value(flags)

    def test_cstring_or_null(self):
        assert cstring_or_null(None) == ffi.NULL
        assert cstring_or_null("qemu:///system") == b"qemu:///system"

    def test_cstring_or_null_rejects(self):
        with pytest.raises(ArgumentError, match="expected str or None"):
            cstring_or_null(5)
