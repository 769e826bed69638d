"""
Hypervisor connections.

A Connection wraps a virConnectPtr and is the entry point for everything
else: domains, networks and storage pools are looked up, defined, created
and listed through it.

Usage:
    with Connection.open("qemu:///system") as conn:
        print(f"Connected to {conn.hostname} ({conn.type})")
        for net in conn.list_all_networks():
            print(net.name)

Closing a connection drops our reference; libvirt keeps the underlying
connection alive while objects obtained from it still hold references.
"""

import logging

from virtbind.dispatch import (
    call_pointer,
    call_void,
    cstring_or_null,
    flag_value,
    list_all,
)
from virtbind.domain import Domain
from virtbind.errors import ArgumentError, ConnectionFailedError, DefinitionError, RetrieveError
from virtbind.handle import NativeHandle
from virtbind.lists import materialize
from virtbind.native.bindings import NativeLibrary, ffi, get_native
from virtbind.network import Network
from virtbind.storage import StoragePool

logger = logging.getLogger(__name__)


def version(hypervisor_type: str | None = None, native: NativeLibrary | None = None) -> tuple[int, int | None]:
    """
    Get the libvirt library version, and optionally a driver's version.

    Versions are encoded as major * 1,000,000 + minor * 1,000 + release.

    Args:
        hypervisor_type: Driver name (e.g. "QEMU") whose version to report.
        native: Library to query. Defaults to the process-wide one.

    Returns:
        (library_version, type_version). type_version is None when no
        hypervisor_type was given.
    """
    native = native or get_native()
    lib_version = ffi.new("unsigned long *")

    if hypervisor_type is None:
        call_void(native, "virGetVersion", ffi.NULL, lib_version, ffi.NULL, ffi.NULL,
                  error_class=RetrieveError)
        return lib_version[0], None

    type_version = ffi.new("unsigned long *")
    call_void(native, "virGetVersion", ffi.NULL, lib_version,
              cstring_or_null(hypervisor_type), type_version, error_class=RetrieveError)
    return lib_version[0], type_version[0]


class Connection(NativeHandle):
    """A connection to a hypervisor driver."""

    kind = "Connection"
    free_function = "virConnectClose"

    def __init__(self, raw, native: NativeLibrary):
        super().__init__(raw, None, native)

    @classmethod
    def open(cls, uri: str | None = None, native: NativeLibrary | None = None) -> "Connection":
        """
        Open a read-write connection.

        Args:
            uri: Connection URI (e.g. "qemu:///system"). None lets libvirt
                 pick its default (LIBVIRT_DEFAULT_URI or probing).
            native: Library to use. Defaults to the process-wide one.

        Raises:
            ConnectionFailedError: If the connection can't be opened.
        """
        return cls._open("virConnectOpen", uri, native)

    @classmethod
    def open_readonly(cls, uri: str | None = None, native: NativeLibrary | None = None) -> "Connection":
        """Open a read-only connection. See open()."""
        return cls._open("virConnectOpenReadOnly", uri, native)

    @classmethod
    def _open(cls, function: str, uri: str | None, native: NativeLibrary | None) -> "Connection":
        native = native or get_native()
        raw = call_pointer(native, function, ffi.NULL, cstring_or_null(uri),
                           error_class=ConnectionFailedError)
        logger.debug(f"Opened connection to {uri or 'default URI'}")
        return cls(raw, native)

    def close(self) -> int:
        """
        Close the connection.

        Returns:
            Number of references libvirt still holds (0 when fully closed).

        Raises:
            ResourceFreedError: If already closed.
        """
        return self.free()

    @property
    def closed(self) -> bool:
        return self.freed

    # =========================================================================
    # Connection information
    # =========================================================================

    @property
    def type(self) -> str:
        """Driver name (e.g. "QEMU")."""
        return self._string("virConnectGetType")

    @property
    def version(self) -> int:
        """Hypervisor version, encoded as major * 1,000,000 + minor * 1,000 + release."""
        hv_version = ffi.new("unsigned long *")
        self._void("virConnectGetVersion", hv_version, error_class=RetrieveError)
        return hv_version[0]

    @property
    def lib_version(self) -> int:
        """Version of libvirt on the other end of the connection."""
        lib_version = ffi.new("unsigned long *")
        self._void("virConnectGetLibVersion", lib_version, error_class=RetrieveError)
        return lib_version[0]

    @property
    def hostname(self) -> str:
        return self._string("virConnectGetHostname", dealloc=True)

    @property
    def uri(self) -> str:
        """The canonical URI of this connection."""
        return self._string("virConnectGetURI", dealloc=True)

    def capabilities(self) -> str:
        """Get the capabilities XML of the host and driver."""
        return self._string("virConnectGetCapabilities", dealloc=True)

    def max_vcpus(self, hypervisor_type: str | None = None) -> int:
        """Maximum number of vCPUs a guest of the given type may have."""
        return self._int("virConnectGetMaxVcpus", cstring_or_null(hypervisor_type))

    @property
    def alive(self) -> bool:
        return self._bool("virConnectIsAlive", error_class=RetrieveError)

    @property
    def encrypted(self) -> bool:
        return self._bool("virConnectIsEncrypted", error_class=RetrieveError)

    @property
    def secure(self) -> bool:
        return self._bool("virConnectIsSecure", error_class=RetrieveError)

    def node_memory_parameters(self, flags: int | None = 0) -> dict:
        """Get the host's memory tuning parameters (e.g. KSM settings)."""
        return self._get_parameters("virNodeGetMemoryParameters", flags)

    def set_node_memory_parameters(self, value) -> None:
        """
        Update the host's memory tuning parameters.

        Args:
            value: A dict of updates, or a (dict, flags) pair.
        """
        self._set_parameters("virNodeGetMemoryParameters", "virNodeSetMemoryParameters", value)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _list_names(self, num_function: str, list_function: str) -> list[str]:
        """Run a count-then-list pair of name-listing functions."""
        count = self._int(num_function)
        if count == 0:
            return []

        names = ffi.new("char *[]", count)
        filled = self._int(list_function, names, count)
        return materialize(self._native, names, filled)

    def _lookup(self, cls, function: str, *args, error_class=RetrieveError):
        raw = call_pointer(self._native, function, self._conn_ptr, self.raw, *args,
                           error_class=error_class)
        return cls(raw, self, self._native)

    def _list_all(self, cls, function: str, element_type: str, flags: int | None) -> list:
        return list_all(
            self._native,
            function,
            self._conn_ptr,
            self.raw,
            element_type,
            flag_value(flags),
            wrap=lambda raw: cls(raw, self, self._native),
            release=getattr(self._native.virt, cls.free_function),
        )

    @staticmethod
    def _xml(xml: str) -> bytes:
        if not isinstance(xml, str):
            raise ArgumentError(f"xml must be a str, got {type(xml).__name__}")
        return xml.encode("utf-8")

    # =========================================================================
    # Networks
    # =========================================================================

    def num_of_networks(self) -> int:
        return self._int("virConnectNumOfNetworks")

    def num_of_defined_networks(self) -> int:
        return self._int("virConnectNumOfDefinedNetworks")

    def list_networks(self) -> list[str]:
        """Names of the active networks."""
        return self._list_names("virConnectNumOfNetworks", "virConnectListNetworks")

    def list_defined_networks(self) -> list[str]:
        """Names of the inactive, persistent networks."""
        return self._list_names("virConnectNumOfDefinedNetworks", "virConnectListDefinedNetworks")

    def list_all_networks(self, flags: int | None = 0) -> list[Network]:
        """
        Every network matching the VIR_CONNECT_LIST_NETWORKS_* filter flags.

        Returns:
            Network objects; each owns its reference.
        """
        return self._list_all(Network, "virConnectListAllNetworks", "virNetworkPtr", flags)

    def lookup_network_by_name(self, name: str) -> Network:
        return self._lookup(Network, "virNetworkLookupByName", cstring_or_null(name))

    def lookup_network_by_uuid(self, uuid: str) -> Network:
        return self._lookup(Network, "virNetworkLookupByUUIDString", cstring_or_null(uuid))

    def define_network_xml(self, xml: str) -> Network:
        """Define (but don't start) a persistent network."""
        return self._lookup(Network, "virNetworkDefineXML", self._xml(xml),
                            error_class=DefinitionError)

    def create_network_xml(self, xml: str) -> Network:
        """Create and start a transient network."""
        return self._lookup(Network, "virNetworkCreateXML", self._xml(xml),
                            error_class=DefinitionError)

    # =========================================================================
    # Domains
    # =========================================================================

    def num_of_domains(self) -> int:
        return self._int("virConnectNumOfDomains")

    def num_of_defined_domains(self) -> int:
        return self._int("virConnectNumOfDefinedDomains")

    def list_domains(self) -> list[int]:
        """IDs of the running domains."""
        count = self.num_of_domains()
        if count == 0:
            return []

        ids = ffi.new("int[]", count)
        filled = self._int("virConnectListDomains", ids, count)
        return [ids[i] for i in range(filled)]

    def list_defined_domains(self) -> list[str]:
        """Names of the inactive, persistent domains."""
        return self._list_names("virConnectNumOfDefinedDomains", "virConnectListDefinedDomains")

    def list_all_domains(self, flags: int | None = 0) -> list[Domain]:
        """Every domain matching the VIR_CONNECT_LIST_DOMAINS_* filter flags."""
        return self._list_all(Domain, "virConnectListAllDomains", "virDomainPtr", flags)

    def lookup_domain_by_name(self, name: str) -> Domain:
        return self._lookup(Domain, "virDomainLookupByName", cstring_or_null(name))

    def lookup_domain_by_id(self, domain_id: int) -> Domain:
        return self._lookup(Domain, "virDomainLookupByID", domain_id)

    def lookup_domain_by_uuid(self, uuid: str) -> Domain:
        return self._lookup(Domain, "virDomainLookupByUUIDString", cstring_or_null(uuid))

    def define_domain_xml(self, xml: str) -> Domain:
        """Define (but don't start) a persistent domain."""
        return self._lookup(Domain, "virDomainDefineXML", self._xml(xml),
                            error_class=DefinitionError)

    def create_domain_xml(self, xml: str, flags: int | None = 0) -> Domain:
        """Create and start a transient domain."""
        return self._lookup(Domain, "virDomainCreateXML", self._xml(xml), flag_value(flags),
                            error_class=DefinitionError)

    # =========================================================================
    # Storage pools
    # =========================================================================

    def num_of_storage_pools(self) -> int:
        return self._int("virConnectNumOfStoragePools")

    def num_of_defined_storage_pools(self) -> int:
        return self._int("virConnectNumOfDefinedStoragePools")

    def list_storage_pools(self) -> list[str]:
        """Names of the active storage pools."""
        return self._list_names("virConnectNumOfStoragePools", "virConnectListStoragePools")

    def list_defined_storage_pools(self) -> list[str]:
        """Names of the inactive, persistent storage pools."""
        return self._list_names(
            "virConnectNumOfDefinedStoragePools", "virConnectListDefinedStoragePools"
        )

    def list_all_storage_pools(self, flags: int | None = 0) -> list[StoragePool]:
        """Every pool matching the VIR_CONNECT_LIST_STORAGE_POOLS_* filter flags."""
        return self._list_all(
            StoragePool, "virConnectListAllStoragePools", "virStoragePoolPtr", flags
        )

    def lookup_storage_pool_by_name(self, name: str) -> StoragePool:
        return self._lookup(StoragePool, "virStoragePoolLookupByName", cstring_or_null(name))

    def lookup_storage_pool_by_uuid(self, uuid: str) -> StoragePool:
        return self._lookup(StoragePool, "virStoragePoolLookupByUUIDString", cstring_or_null(uuid))

    def define_storage_pool_xml(self, xml: str, flags: int | None = 0) -> StoragePool:
        """Define (but don't start) a persistent storage pool."""
        return self._lookup(StoragePool, "virStoragePoolDefineXML", self._xml(xml),
                            flag_value(flags), error_class=DefinitionError)

    def create_storage_pool_xml(self, xml: str, flags: int | None = 0) -> StoragePool:
        """Create and start a transient storage pool."""
        return self._lookup(StoragePool, "virStoragePoolCreateXML", self._xml(xml),
                            flag_value(flags), error_class=DefinitionError)

    def __str__(self) -> str:
        if self.closed:
            return "Connection(closed)"
        return f"Connection(uri={self.uri})"
