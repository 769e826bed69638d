"""
Tests for native error translation.
"""

import pytest

from virtbind.errors import (
    ConnectionFailedError,
    NativeCallError,
    RetrieveError,
    TypeMismatchError,
    VirtError,
    last_error,
    translate,
)
from virtbind.native import constants
from virtbind.native.bindings import ffi


class TestLastError:
    def test_nothing_recorded(self, native):
        assert last_error(native) is None

    def test_global_error(self, virt, native):
        virt.set_error("boom", code=constants.VIR_ERR_INTERNAL_ERROR, domain=19, level=2)

        error = last_error(native)

        assert error.code == constants.VIR_ERR_INTERNAL_ERROR
        assert error.domain == 19
        assert error.level == 2
        assert error.message == "boom"

    def test_connection_error_preferred(self, virt, native):
        virt.set_error("global", on_connection=False)
        conn_error = ffi.new("virError *")
        conn_error.code = 9
        virt.conn_error = conn_error

        error = last_error(native, virt.pointer("virConnectPtr", 0x1000))

        assert error.code == 9
        assert error.message is None

    def test_null_connection_reads_global(self, virt, native):
        virt.set_error("global", on_connection=False)
        assert last_error(native, ffi.NULL).message == "global"


class TestTranslate:
    def test_message_included(self, virt, native):
        virt.set_error("Network not found", code=43, domain=19)

        error = translate(native, "virNetworkLookupByName")

        assert isinstance(error, NativeCallError)
        assert str(error) == "Call to virNetworkLookupByName failed: Network not found"
        assert error.function_name == "virNetworkLookupByName"
        assert error.code == 43
        assert error.component == 19
        assert error.native_message == "Network not found"

    def test_generic_message(self, native):
        error = translate(native, "virConnectGetHostname")

        assert str(error) == "Call to virConnectGetHostname failed"
        assert error.code is None
        assert error.component is None
        assert error.level is None

    def test_record_without_message(self, virt, native):
        virt.set_error(None, code=7)

        error = translate(native, "virDomainSuspend")

        assert str(error) == "Call to virDomainSuspend failed"
        assert error.code == 7

    def test_error_class(self, native):
        error = translate(native, "virConnectOpen", error_class=ConnectionFailedError)
        assert isinstance(error, ConnectionFailedError)
        assert isinstance(error, VirtError)

    def test_connection_scoped(self, virt, native):
        virt.set_error("connection problem")

        error = translate(native, "virConnectNumOfDomains", virt.pointer("virConnectPtr", 0x1000), RetrieveError)

        assert isinstance(error, RetrieveError)
        assert error.native_message == "connection problem"


class TestHierarchy:
    def test_type_mismatch_is_type_error(self):
        with pytest.raises(TypeError):
            raise TypeMismatchError("bad")

    def test_native_errors_are_virt_errors(self):
        assert issubclass(RetrieveError, NativeCallError)
        assert issubclass(NativeCallError, VirtError)
