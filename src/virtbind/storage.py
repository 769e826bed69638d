"""
Storage pools.

A StoragePool wraps a virStoragePoolPtr: a directory, LVM volume group,
iSCSI target or similar source that libvirt carves volumes out of.
"""

from dataclasses import dataclass

from virtbind.dispatch import flag_value
from virtbind.errors import RetrieveError
from virtbind.handle import NativeHandle
from virtbind.lists import materialize
from virtbind.native import constants
from virtbind.native.bindings import ffi


@dataclass
class StoragePoolInfo:
    """
    Capacity information for a storage pool.

    Attributes:
        state: One of the VIR_STORAGE_POOL_* state constants
        capacity: Logical size in bytes
        allocation: Bytes allocated to volumes
        available: Bytes still free
    """

    state: int
    capacity: int
    allocation: int
    available: int

    @property
    def state_name(self) -> str:
        return constants.STORAGE_POOL_STATE_NAMES.get(self.state, f"unknown ({self.state})")


class StoragePool(NativeHandle):
    """A libvirt storage pool."""

    kind = "StoragePool"
    free_function = "virStoragePoolFree"

    @property
    def name(self) -> str:
        """The pool's name."""
        return self._string("virStoragePoolGetName")

    @property
    def uuid(self) -> str:
        """The pool's UUID as a string."""
        return self._uuid("virStoragePoolGetUUIDString")

    def xml_desc(self, flags: int | None = 0) -> str:
        """Get the XML description of this pool."""
        return self._string("virStoragePoolGetXMLDesc", flag_value(flags), dealloc=True)

    def info(self) -> StoragePoolInfo:
        """Get the pool's state and capacity."""
        info = ffi.new("virStoragePoolInfo *")
        self._void("virStoragePoolGetInfo", info, error_class=RetrieveError)
        return StoragePoolInfo(
            state=info.state,
            capacity=info.capacity,
            allocation=info.allocation,
            available=info.available,
        )

    def build(self, flags: int | None = 0) -> None:
        """Build the underlying storage (e.g. create the directory)."""
        self._void("virStoragePoolBuild", flag_value(flags))

    def create(self, flags: int | None = 0) -> None:
        """Start this defined pool."""
        self._void("virStoragePoolCreate", flag_value(flags))

    def destroy(self) -> None:
        """Stop the pool. The underlying storage is left alone."""
        self._void("virStoragePoolDestroy")

    def delete(self, flags: int | None = 0) -> None:
        """Delete the underlying storage. This cannot be undone."""
        self._void("virStoragePoolDelete", flag_value(flags))

    def undefine(self) -> None:
        """Remove the persistent configuration of this pool."""
        self._void("virStoragePoolUndefine")

    def refresh(self, flags: int | None = 0) -> None:
        """Rescan the pool for volumes."""
        self._void("virStoragePoolRefresh", flag_value(flags))

    @property
    def active(self) -> bool:
        return self._bool("virStoragePoolIsActive", error_class=RetrieveError)

    @property
    def persistent(self) -> bool:
        return self._bool("virStoragePoolIsPersistent", error_class=RetrieveError)

    @property
    def autostart(self) -> bool:
        """Whether the pool starts when libvirtd starts."""
        return self._get_autostart("virStoragePoolGetAutostart")

    @autostart.setter
    def autostart(self, value: bool) -> None:
        self.set_autostart(value)

    def set_autostart(self, autostart: bool) -> None:
        self._set_autostart("virStoragePoolSetAutostart", autostart)

    def num_of_volumes(self) -> int:
        """Number of volumes in the pool."""
        return self._int("virStoragePoolNumOfVolumes")

    def list_volumes(self) -> list[str]:
        """
        Names of the volumes in the pool.

        Uses the two-step count-then-list protocol: the count sizes the
        array libvirt fills with newly allocated name strings.
        """
        count = self.num_of_volumes()
        if count == 0:
            return []

        names = ffi.new("char *[]", count)
        filled = self._int("virStoragePoolListVolumes", names, count)
        return materialize(self._native, names, filled)

    def __str__(self) -> str:
        if self.freed:
            return "StoragePool(freed)"
        return f"StoragePool(name={self.name})"
