"""
virtbind - Python bindings for the libvirt virtualization API.

Main classes:
- Connection: A connection to a hypervisor; the entry point for everything else
- Domain, Network, StoragePool: Managed libvirt objects
- VirtError and subclasses: Everything virtbind raises
"""

__version__ = "0.1.0"

from .connection import Connection, version
from .domain import Domain, DomainInfo
from .errors import (
    ArgumentError,
    ConnectionFailedError,
    DefinitionError,
    InvalidParameterTypeError,
    NativeCallError,
    NativeError,
    NoSupportError,
    ResourceFreedError,
    RetrieveError,
    TypeMismatchError,
    VirtError,
)
from .network import Network
from .storage import StoragePool, StoragePoolInfo

__all__ = [
    "__version__",
    "version",
    "Connection",
    "Domain",
    "DomainInfo",
    "Network",
    "StoragePool",
    "StoragePoolInfo",
    "VirtError",
    "ResourceFreedError",
    "NativeCallError",
    "NativeError",
    "RetrieveError",
    "DefinitionError",
    "NoSupportError",
    "ConnectionFailedError",
    "InvalidParameterTypeError",
    "TypeMismatchError",
    "ArgumentError",
]
