"""
Tests for the StoragePool resource.
"""

import pytest

from virtbind.errors import RetrieveError
from virtbind.native import constants
from virtbind.native.bindings import ffi

POOL_ADDRESS = 0x5000


@pytest.fixture
def pool(virt, conn):
    virt.on("virStoragePoolLookupByName", lambda c, name: virt.pointer("virStoragePoolPtr", POOL_ADDRESS))
    return conn.lookup_storage_pool_by_name("default")


class TestStoragePool:
    def test_name(self, virt, pool):
        virt.on("virStoragePoolGetName", virt.string(b"default"))
        assert pool.name == "default"
        assert str(pool) == "StoragePool(name=default)"

    def test_info(self, virt, pool):
        def get_info(p, info):
            info.state = constants.VIR_STORAGE_POOL_RUNNING
            info.capacity = 100 * 2**30
            info.allocation = 40 * 2**30
            info.available = 60 * 2**30
            return 0

        virt.on("virStoragePoolGetInfo", get_info)

        info = pool.info()

        assert info.state_name == "running"
        assert info.capacity == 100 * 2**30
        assert info.allocation == 40 * 2**30
        assert info.available == 60 * 2**30

    def test_info_failure(self, virt, pool):
        virt.on("virStoragePoolGetInfo", -1)

        with pytest.raises(RetrieveError):
            pool.info()

    @pytest.mark.parametrize(
        "method, function",
        [
            ("build", "virStoragePoolBuild"),
            ("create", "virStoragePoolCreate"),
            ("delete", "virStoragePoolDelete"),
            ("refresh", "virStoragePoolRefresh"),
        ],
    )
    def test_calls_with_flags(self, virt, pool, method, function):
        virt.on(function, 0)
        getattr(pool, method)(4)
        assert virt.called(function)[0][1] == 4

    def test_destroy_and_undefine(self, virt, pool):
        virt.on("virStoragePoolDestroy", 0)
        virt.on("virStoragePoolUndefine", 0)

        pool.destroy()
        pool.undefine()

        assert len(virt.called("virStoragePoolDestroy")) == 1
        assert len(virt.called("virStoragePoolUndefine")) == 1

    def test_autostart(self, virt, pool):
        def get_autostart(p, out):
            out[0] = 0
            return 0

        virt.on("virStoragePoolGetAutostart", get_autostart)
        virt.on("virStoragePoolSetAutostart", 0)

        assert pool.autostart is False
        pool.autostart = True
        assert virt.called("virStoragePoolSetAutostart")[0][1] == 1

    def test_list_volumes(self, virt, libc, pool):
        virt.serve_names(
            "virStoragePoolNumOfVolumes",
            "virStoragePoolListVolumes",
            [b"disk0.qcow2", b"disk1.qcow2"],
        )

        assert pool.list_volumes() == ["disk0.qcow2", "disk1.qcow2"]
        assert len(libc.freed) == 2

    def test_list_volumes_empty(self, virt, pool):
        virt.on("virStoragePoolNumOfVolumes", 0)

        assert pool.list_volumes() == []
        assert virt.called("virStoragePoolListVolumes") == []

    def test_xml_desc_freed(self, virt, libc, pool):
        xml = virt.string(b"<pool type='dir'/>")
        virt.on("virStoragePoolGetXMLDesc", xml)

        assert pool.xml_desc() == "<pool type='dir'/>"
        assert libc.freed == [int(ffi.cast("uintptr_t", xml))]

    def test_free(self, virt, pool):
        pool.free()
        assert virt.freed_with("virStoragePoolFree") == [POOL_ADDRESS]
