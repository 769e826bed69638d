"""
Low-level cffi bindings for the libvirt C API.

This module provides Python access to libvirt through cffi in ABI mode:
we declare the subset of libvirt.h we use, then dlopen the shared object
at runtime. Nothing is compiled at install time.

Two libraries are involved in every binding call:
- libvirt itself (the virXXX functions)
- the C library, for free(). libvirt hands ownership of some strings and
  arrays to the caller, and the caller must release them with free().

Both are bundled in a NativeLibrary. The process-wide instance is loaded
once on first use by get_native(); every managed object keeps a reference
to the NativeLibrary it came from, so a different one (for example a fake
used in tests) can be passed in explicitly.
"""

import ctypes.util
import logging
import threading
from dataclasses import dataclass
from typing import Any

from cffi import FFI

from virtbind.config import Settings, load_settings

logger = logging.getLogger(__name__)

# Create the FFI instance that we'll use throughout
ffi = FFI()

# Define the C types and functions we need.
# These come from the libvirt headers:
# - /usr/include/libvirt/libvirt-*.h
# - /usr/include/libvirt/virterror.h
ffi.cdef("""
    // C library
    void free(void *ptr);

    // =========================================================================
    // Opaque handles
    // =========================================================================
    // libvirt never exposes the layout of these objects. We only ever
    // hold pointers to them and pass them back.

    typedef struct _virConnect virConnect;
    typedef virConnect *virConnectPtr;
    typedef struct _virDomain virDomain;
    typedef virDomain *virDomainPtr;
    typedef struct _virNetwork virNetwork;
    typedef virNetwork *virNetworkPtr;
    typedef struct _virStoragePool virStoragePool;
    typedef virStoragePool *virStoragePoolPtr;

    // =========================================================================
    // Typed parameters
    // =========================================================================
    // A generic name/value pair used by the *Parameters APIs. The type
    // field says which member of the union is valid. The boolean member is
    // a plain char in the headers; declaring it signed keeps the same
    // layout but makes cffi hand us an int instead of a 1-byte string.

    typedef struct _virTypedParameter {
        char field[80];
        int type;
        union {
            int i;
            unsigned int ui;
            long long int l;
            unsigned long long int ul;
            double d;
            signed char b;
            char *s;
        } value;
    } virTypedParameter;
    typedef virTypedParameter *virTypedParameterPtr;

    // =========================================================================
    // Errors
    // =========================================================================
    // libvirt records the last error per thread (and per connection).
    // The pointers returned by the getters are owned by libvirt.

    typedef struct _virError {
        int code;             // virErrorNumber
        int domain;           // virErrorDomain (the component)
        char *message;        // Human-readable message, may be NULL
        int level;            // virErrorLevel
        virConnectPtr conn;
        virDomainPtr dom;
        char *str1;
        char *str2;
        char *str3;
        int int1;
        int int2;
        virNetworkPtr net;
    } virError;
    typedef virError *virErrorPtr;

    virErrorPtr virGetLastError(void);
    virErrorPtr virConnGetLastError(virConnectPtr conn);

    // =========================================================================
    // Info structures
    // =========================================================================

    typedef struct _virDomainInfo {
        unsigned char state;
        unsigned long maxMem;
        unsigned long memory;
        unsigned short nrVirtCpu;
        unsigned long long cpuTime;
    } virDomainInfo;
    typedef virDomainInfo *virDomainInfoPtr;

    typedef struct _virStoragePoolInfo {
        int state;
        unsigned long long capacity;
        unsigned long long allocation;
        unsigned long long available;
    } virStoragePoolInfo;
    typedef virStoragePoolInfo *virStoragePoolInfoPtr;

    // =========================================================================
    // Connections
    // =========================================================================

    int virGetVersion(unsigned long *libVer, const char *type,
                      unsigned long *typeVer);

    virConnectPtr virConnectOpen(const char *name);
    virConnectPtr virConnectOpenReadOnly(const char *name);
    int virConnectClose(virConnectPtr conn);
    const char *virConnectGetType(virConnectPtr conn);
    int virConnectGetVersion(virConnectPtr conn, unsigned long *hvVer);
    int virConnectGetLibVersion(virConnectPtr conn, unsigned long *libVer);
    char *virConnectGetHostname(virConnectPtr conn);
    char *virConnectGetURI(virConnectPtr conn);
    char *virConnectGetCapabilities(virConnectPtr conn);
    int virConnectGetMaxVcpus(virConnectPtr conn, const char *type);
    int virConnectIsAlive(virConnectPtr conn);
    int virConnectIsEncrypted(virConnectPtr conn);
    int virConnectIsSecure(virConnectPtr conn);

    int virNodeGetMemoryParameters(virConnectPtr conn,
                                   virTypedParameterPtr params,
                                   int *nparams, unsigned int flags);
    int virNodeSetMemoryParameters(virConnectPtr conn,
                                   virTypedParameterPtr params,
                                   int nparams, unsigned int flags);

    // =========================================================================
    // Networks
    // =========================================================================

    int virConnectNumOfNetworks(virConnectPtr conn);
    int virConnectListNetworks(virConnectPtr conn, char **names, int maxnames);
    int virConnectNumOfDefinedNetworks(virConnectPtr conn);
    int virConnectListDefinedNetworks(virConnectPtr conn, char **names,
                                      int maxnames);
    int virConnectListAllNetworks(virConnectPtr conn, virNetworkPtr **nets,
                                  unsigned int flags);

    virNetworkPtr virNetworkLookupByName(virConnectPtr conn, const char *name);
    virNetworkPtr virNetworkLookupByUUIDString(virConnectPtr conn,
                                               const char *uuid);
    virNetworkPtr virNetworkDefineXML(virConnectPtr conn, const char *xmlDesc);
    virNetworkPtr virNetworkCreateXML(virConnectPtr conn, const char *xmlDesc);

    int virNetworkUndefine(virNetworkPtr network);
    int virNetworkCreate(virNetworkPtr network);
    int virNetworkUpdate(virNetworkPtr network, unsigned int command,
                         unsigned int section, int parentIndex,
                         const char *xml, unsigned int flags);
    int virNetworkDestroy(virNetworkPtr network);
    const char *virNetworkGetName(virNetworkPtr network);
    int virNetworkGetUUIDString(virNetworkPtr network, char *buf);
    char *virNetworkGetXMLDesc(virNetworkPtr network, unsigned int flags);
    char *virNetworkGetBridgeName(virNetworkPtr network);
    int virNetworkGetAutostart(virNetworkPtr network, int *autostart);
    int virNetworkSetAutostart(virNetworkPtr network, int autostart);
    int virNetworkIsActive(virNetworkPtr net);
    int virNetworkIsPersistent(virNetworkPtr net);
    int virNetworkFree(virNetworkPtr network);

    // =========================================================================
    // Domains
    // =========================================================================

    int virConnectNumOfDomains(virConnectPtr conn);
    int virConnectListDomains(virConnectPtr conn, int *ids, int maxids);
    int virConnectNumOfDefinedDomains(virConnectPtr conn);
    int virConnectListDefinedDomains(virConnectPtr conn, char **names,
                                     int maxnames);
    int virConnectListAllDomains(virConnectPtr conn, virDomainPtr **domains,
                                 unsigned int flags);

    virDomainPtr virDomainLookupByName(virConnectPtr conn, const char *name);
    virDomainPtr virDomainLookupByID(virConnectPtr conn, int id);
    virDomainPtr virDomainLookupByUUIDString(virConnectPtr conn,
                                             const char *uuid);
    virDomainPtr virDomainDefineXML(virConnectPtr conn, const char *xml);
    virDomainPtr virDomainCreateXML(virConnectPtr conn, const char *xmlDesc,
                                    unsigned int flags);

    const char *virDomainGetName(virDomainPtr domain);
    int virDomainGetUUIDString(virDomainPtr domain, char *buf);
    unsigned int virDomainGetID(virDomainPtr domain);
    char *virDomainGetOSType(virDomainPtr domain);
    int virDomainGetInfo(virDomainPtr domain, virDomainInfoPtr info);
    unsigned long virDomainGetMaxMemory(virDomainPtr domain);
    char *virDomainGetXMLDesc(virDomainPtr domain, unsigned int flags);
    int virDomainCreateWithFlags(virDomainPtr domain, unsigned int flags);
    int virDomainDestroy(virDomainPtr domain);
    int virDomainShutdown(virDomainPtr domain);
    int virDomainReboot(virDomainPtr domain, unsigned int flags);
    int virDomainSuspend(virDomainPtr domain);
    int virDomainResume(virDomainPtr domain);
    int virDomainUndefine(virDomainPtr domain);
    int virDomainIsActive(virDomainPtr dom);
    int virDomainIsPersistent(virDomainPtr dom);
    int virDomainGetAutostart(virDomainPtr domain, int *autostart);
    int virDomainSetAutostart(virDomainPtr domain, int autostart);
    int virDomainFree(virDomainPtr domain);

    char *virDomainGetSchedulerType(virDomainPtr domain, int *nparams);
    int virDomainGetSchedulerParametersFlags(virDomainPtr domain,
                                             virTypedParameterPtr params,
                                             int *nparams,
                                             unsigned int flags);
    int virDomainSetSchedulerParametersFlags(virDomainPtr domain,
                                             virTypedParameterPtr params,
                                             int nparams,
                                             unsigned int flags);
    int virDomainGetMemoryParameters(virDomainPtr domain,
                                     virTypedParameterPtr params,
                                     int *nparams, unsigned int flags);
    int virDomainSetMemoryParameters(virDomainPtr domain,
                                     virTypedParameterPtr params,
                                     int nparams, unsigned int flags);
    int virDomainGetBlkioParameters(virDomainPtr domain,
                                    virTypedParameterPtr params,
                                    int *nparams, unsigned int flags);
    int virDomainSetBlkioParameters(virDomainPtr domain,
                                    virTypedParameterPtr params,
                                    int nparams, unsigned int flags);

    // =========================================================================
    // Storage pools
    // =========================================================================

    int virConnectNumOfStoragePools(virConnectPtr conn);
    int virConnectListStoragePools(virConnectPtr conn, char **names,
                                   int maxnames);
    int virConnectNumOfDefinedStoragePools(virConnectPtr conn);
    int virConnectListDefinedStoragePools(virConnectPtr conn, char **names,
                                          int maxnames);
    int virConnectListAllStoragePools(virConnectPtr conn,
                                      virStoragePoolPtr **pools,
                                      unsigned int flags);

    virStoragePoolPtr virStoragePoolLookupByName(virConnectPtr conn,
                                                 const char *name);
    virStoragePoolPtr virStoragePoolLookupByUUIDString(virConnectPtr conn,
                                                       const char *uuid);
    virStoragePoolPtr virStoragePoolDefineXML(virConnectPtr conn,
                                              const char *xmlDesc,
                                              unsigned int flags);
    virStoragePoolPtr virStoragePoolCreateXML(virConnectPtr conn,
                                              const char *xmlDesc,
                                              unsigned int flags);

    int virStoragePoolBuild(virStoragePoolPtr pool, unsigned int flags);
    int virStoragePoolCreate(virStoragePoolPtr pool, unsigned int flags);
    int virStoragePoolDestroy(virStoragePoolPtr pool);
    int virStoragePoolDelete(virStoragePoolPtr pool, unsigned int flags);
    int virStoragePoolUndefine(virStoragePoolPtr pool);
    int virStoragePoolRefresh(virStoragePoolPtr pool, unsigned int flags);
    const char *virStoragePoolGetName(virStoragePoolPtr pool);
    int virStoragePoolGetUUIDString(virStoragePoolPtr pool, char *buf);
    int virStoragePoolGetInfo(virStoragePoolPtr pool,
                              virStoragePoolInfoPtr info);
    char *virStoragePoolGetXMLDesc(virStoragePoolPtr pool, unsigned int flags);
    int virStoragePoolGetAutostart(virStoragePoolPtr pool, int *autostart);
    int virStoragePoolSetAutostart(virStoragePoolPtr pool, int autostart);
    int virStoragePoolIsActive(virStoragePoolPtr pool);
    int virStoragePoolIsPersistent(virStoragePoolPtr pool);
    int virStoragePoolNumOfVolumes(virStoragePoolPtr pool);
    int virStoragePoolListVolumes(virStoragePoolPtr pool, char **names,
                                  int maxnames);
    int virStoragePoolFree(virStoragePoolPtr pool);
""")

# The soname libvirt has shipped under since 0.x
DEFAULT_SONAME = "libvirt.so.0"


class LibraryNotFoundError(Exception):
    """Exception raised when the libvirt shared library cannot be loaded."""

    pass


@dataclass(frozen=True)
class NativeLibrary:
    """
    The loaded native libraries a binding call needs.

    Attributes:
        virt: libvirt, exposing the virXXX functions declared above
        libc: The C library, used only for free()
    """

    virt: Any
    libc: Any

    def release(self, pointer) -> None:
        """
        Free memory whose ownership libvirt transferred to us.

        NULL pointers are ignored so callers never have to check.
        """
        if pointer != ffi.NULL:
            self.libc.free(pointer)


def find_library(settings: Settings | None = None) -> str:
    """
    Find the libvirt shared library.

    Search order:
    1. Explicit path from settings (VIRTBIND_LIBRARY)
    2. ctypes.util.find_library("virt")
    3. The conventional soname, resolved by the dynamic linker

    Args:
        settings: Settings to read the explicit path from.

    Returns:
        A path or soname suitable for dlopen.
    """
    if settings is not None and settings.library_path:
        return settings.library_path

    found = ctypes.util.find_library("virt")
    if found:
        return found

    return DEFAULT_SONAME


def load_native(settings: Settings | None = None) -> NativeLibrary:
    """
    Load libvirt and the C library.

    Args:
        settings: Settings used to locate libvirt.

    Returns:
        A new NativeLibrary.

    Raises:
        LibraryNotFoundError: If libvirt cannot be opened.
    """
    path = find_library(settings)
    try:
        virt = ffi.dlopen(path)
    except OSError as e:
        raise LibraryNotFoundError(
            f"Could not load libvirt from {path}: {e}. "
            "Is libvirt installed? Set VIRTBIND_LIBRARY to point at libvirt.so."
        ) from e

    logger.debug(f"Loaded libvirt from {path}")

    # None means the C library the interpreter is already linked against
    libc = ffi.dlopen(None)
    return NativeLibrary(virt=virt, libc=libc)


# Process-wide library, loaded once and never replaced
_native: NativeLibrary | None = None
_native_lock = threading.Lock()


def get_native(settings: Settings | None = None) -> NativeLibrary:
    """
    Get the process-wide NativeLibrary, loading it on first use.

    Settings only matter for the first call; later calls return the
    already-loaded library.

    Raises:
        LibraryNotFoundError: If libvirt cannot be opened.
    """
    global _native
    with _native_lock:
        if _native is None:
            _native = load_native(settings if settings is not None else load_settings())
        return _native
