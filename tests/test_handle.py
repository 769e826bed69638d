"""
Tests for the native handle lifecycle.
"""

import gc
import logging

import pytest

from virtbind.errors import ArgumentError, NativeCallError, ResourceFreedError
from virtbind.handle import NativeHandle
from virtbind.native.bindings import ffi


class Widget(NativeHandle):
    kind = "Widget"
    free_function = "virNetworkFree"


class TestNativeHandle:
    def test_null_rejected(self, native):
        with pytest.raises(ArgumentError, match="NULL Widget"):
            Widget(ffi.NULL, None, native)

    def test_none_rejected(self, native):
        with pytest.raises(ArgumentError):
            Widget(None, None, native)

    def test_raw(self, virt, native):
        raw = virt.pointer("virNetworkPtr", 0x3000)
        handle = Widget(raw, None, native)

        assert handle.raw == raw
        assert not handle.freed
        assert handle.native is native

    def test_free(self, virt, native):
        handle = Widget(virt.pointer("virNetworkPtr", 0x3000), None, native)

        assert handle.free() == 0
        assert handle.freed
        assert virt.freed_with("virNetworkFree") == [0x3000]

    def test_use_after_free(self, virt, native):
        handle = Widget(virt.pointer("virNetworkPtr", 0x3000), None, native)
        handle.free()

        with pytest.raises(ResourceFreedError, match="Widget has been freed"):
            handle.raw

    def test_double_free(self, virt, native):
        handle = Widget(virt.pointer("virNetworkPtr", 0x3000), None, native)
        handle.free()

        with pytest.raises(ResourceFreedError):
            handle.free()

        assert virt.freed_with("virNetworkFree") == [0x3000]

    def test_native_free_failure_keeps_pointer(self, virt, native):
        virt.on("virNetworkFree", -1)
        virt.set_error("invalid network pointer")
        handle = Widget(virt.pointer("virNetworkPtr", 0x3000), None, native)

        with pytest.raises(NativeCallError, match="virNetworkFree failed: invalid network pointer"):
            handle.free()

        assert not handle.freed
        del virt.handlers["virNetworkFree"]
        handle.free()
        assert handle.freed

    def test_context_manager(self, virt, native):
        with Widget(virt.pointer("virNetworkPtr", 0x3000), None, native) as handle:
            assert not handle.freed

        assert handle.freed
        assert virt.freed_with("virNetworkFree") == [0x3000]

    def test_context_manager_after_explicit_free(self, virt, native):
        with Widget(virt.pointer("virNetworkPtr", 0x3000), None, native) as handle:
            handle.free()

        assert virt.freed_with("virNetworkFree") == [0x3000]

    def test_freed_on_collection(self, virt, native):
        handle = Widget(virt.pointer("virNetworkPtr", 0x3000), None, native)
        del handle
        gc.collect()

        assert virt.freed_with("virNetworkFree") == [0x3000]

    def test_collection_failure_logged(self, virt, native, caplog):
        virt.on("virNetworkFree", -1)
        handle = Widget(virt.pointer("virNetworkPtr", 0x3000), None, native)

        with caplog.at_level(logging.WARNING, logger="virtbind.handle"):
            del handle
            gc.collect()

        assert "Could not free Widget" in caplog.text

    def test_repr(self, virt, native):
        handle = Widget(virt.pointer("virNetworkPtr", 0x3000), None, native)
        assert repr(handle) == "<Widget live>"
        handle.free()
        assert repr(handle) == "<Widget freed>"
