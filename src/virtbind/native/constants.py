"""
libvirt constants.

These values come from the libvirt public headers:
- /usr/include/libvirt/libvirt-common.h
- /usr/include/libvirt/libvirt-domain.h
- /usr/include/libvirt/libvirt-network.h
- /usr/include/libvirt/libvirt-storage.h
- /usr/include/libvirt/virterror.h

They are part of libvirt's stable ABI, so hardcoding them is safe.
"""

# ============================================================================
# Typed parameters (virTypedParameterType)
# ============================================================================
# Every virTypedParameter carries one of these tags. The tag decides which
# member of the value union is valid.

VIR_TYPED_PARAM_INT = 1  # int
VIR_TYPED_PARAM_UINT = 2  # unsigned int
VIR_TYPED_PARAM_LLONG = 3  # long long
VIR_TYPED_PARAM_ULLONG = 4  # unsigned long long
VIR_TYPED_PARAM_DOUBLE = 5  # double
VIR_TYPED_PARAM_BOOLEAN = 6  # char used as a boolean
VIR_TYPED_PARAM_STRING = 7  # char *, owned by whoever filled the buffer

# Size of virTypedParameter.field, including the terminating NUL
VIR_TYPED_PARAM_FIELD_LENGTH = 80

# Buffer size for virXXXGetUUIDString (36 characters + NUL)
VIR_UUID_STRING_BUFLEN = 37


# ============================================================================
# Error levels (virErrorLevel)
# ============================================================================

VIR_ERR_NONE = 0
VIR_ERR_WARNING = 1  # A simple warning
VIR_ERR_ERROR = 2  # An error


# ============================================================================
# Error domains (virErrorDomain)
# ============================================================================
# The component of libvirt that raised the error.

VIR_FROM_NONE = 0
VIR_FROM_XML = 5  # XML parser
VIR_FROM_RPC = 7  # RPC layer
VIR_FROM_CONF = 9  # Configuration file handling
VIR_FROM_QEMU = 10  # QEMU driver
VIR_FROM_TEST = 12  # Test driver
VIR_FROM_REMOTE = 13  # Remote driver
VIR_FROM_LXC = 17  # LXC driver
VIR_FROM_STORAGE = 18  # Storage driver
VIR_FROM_NETWORK = 19  # Network driver
VIR_FROM_DOMAIN = 20  # Domain config


# ============================================================================
# Error codes (virErrorNumber)
# ============================================================================

VIR_ERR_OK = 0
VIR_ERR_INTERNAL_ERROR = 1
VIR_ERR_NO_MEMORY = 2
VIR_ERR_NO_SUPPORT = 3  # Operation not supported by the driver
VIR_ERR_NO_CONNECT = 5  # No connection driver for the URI
VIR_ERR_INVALID_CONN = 6
VIR_ERR_INVALID_DOMAIN = 7
VIR_ERR_INVALID_ARG = 8
VIR_ERR_OPERATION_FAILED = 9
VIR_ERR_XML_ERROR = 27
VIR_ERR_OPERATION_DENIED = 29
VIR_ERR_INVALID_NETWORK = 36
VIR_ERR_NETWORK_EXIST = 37
VIR_ERR_NO_DOMAIN = 42
VIR_ERR_NO_NETWORK = 43
VIR_ERR_INVALID_STORAGE_POOL = 46
VIR_ERR_NO_STORAGE_POOL = 49


# ============================================================================
# virNetworkUpdate commands (virNetworkUpdateCommand)
# ============================================================================

VIR_NETWORK_UPDATE_COMMAND_NONE = 0
VIR_NETWORK_UPDATE_COMMAND_MODIFY = 1
VIR_NETWORK_UPDATE_COMMAND_DELETE = 2
VIR_NETWORK_UPDATE_COMMAND_ADD_LAST = 3
VIR_NETWORK_UPDATE_COMMAND_ADD_FIRST = 4


# ============================================================================
# virNetworkUpdate sections (virNetworkUpdateSection)
# ============================================================================

VIR_NETWORK_SECTION_NONE = 0
VIR_NETWORK_SECTION_BRIDGE = 1
VIR_NETWORK_SECTION_DOMAIN = 2
VIR_NETWORK_SECTION_IP = 3
VIR_NETWORK_SECTION_IP_DHCP_HOST = 4
VIR_NETWORK_SECTION_IP_DHCP_RANGE = 5
VIR_NETWORK_SECTION_FORWARD = 6
VIR_NETWORK_SECTION_FORWARD_INTERFACE = 7
VIR_NETWORK_SECTION_FORWARD_PF = 8
VIR_NETWORK_SECTION_PORTGROUP = 9
VIR_NETWORK_SECTION_DNS_HOST = 10
VIR_NETWORK_SECTION_DNS_TXT = 11
VIR_NETWORK_SECTION_DNS_SRV = 12


# ============================================================================
# virNetworkUpdate flags (virNetworkUpdateFlags)
# ============================================================================

VIR_NETWORK_UPDATE_AFFECT_CURRENT = 0
VIR_NETWORK_UPDATE_AFFECT_LIVE = 1 << 0
VIR_NETWORK_UPDATE_AFFECT_CONFIG = 1 << 1


# ============================================================================
# virConnectListAll* filter flags
# ============================================================================

VIR_CONNECT_LIST_NETWORKS_INACTIVE = 1 << 0
VIR_CONNECT_LIST_NETWORKS_ACTIVE = 1 << 1
VIR_CONNECT_LIST_NETWORKS_PERSISTENT = 1 << 2
VIR_CONNECT_LIST_NETWORKS_TRANSIENT = 1 << 3
VIR_CONNECT_LIST_NETWORKS_AUTOSTART = 1 << 4
VIR_CONNECT_LIST_NETWORKS_NO_AUTOSTART = 1 << 5

VIR_CONNECT_LIST_DOMAINS_ACTIVE = 1 << 0
VIR_CONNECT_LIST_DOMAINS_INACTIVE = 1 << 1
VIR_CONNECT_LIST_DOMAINS_PERSISTENT = 1 << 2
VIR_CONNECT_LIST_DOMAINS_TRANSIENT = 1 << 3

VIR_CONNECT_LIST_STORAGE_POOLS_INACTIVE = 1 << 0
VIR_CONNECT_LIST_STORAGE_POOLS_ACTIVE = 1 << 1
VIR_CONNECT_LIST_STORAGE_POOLS_PERSISTENT = 1 << 2
VIR_CONNECT_LIST_STORAGE_POOLS_TRANSIENT = 1 << 3


# ============================================================================
# Typed parameter modification flags (virDomainModificationImpact)
# ============================================================================

VIR_DOMAIN_AFFECT_CURRENT = 0
VIR_DOMAIN_AFFECT_LIVE = 1 << 0
VIR_DOMAIN_AFFECT_CONFIG = 1 << 1


# ============================================================================
# Domain states (virDomainState)
# ============================================================================

VIR_DOMAIN_NOSTATE = 0
VIR_DOMAIN_RUNNING = 1
VIR_DOMAIN_BLOCKED = 2
VIR_DOMAIN_PAUSED = 3
VIR_DOMAIN_SHUTDOWN = 4
VIR_DOMAIN_SHUTOFF = 5
VIR_DOMAIN_CRASHED = 6
VIR_DOMAIN_PMSUSPENDED = 7

DOMAIN_STATE_NAMES = {
    VIR_DOMAIN_NOSTATE: "no state",
    VIR_DOMAIN_RUNNING: "running",
    VIR_DOMAIN_BLOCKED: "blocked",
    VIR_DOMAIN_PAUSED: "paused",
    VIR_DOMAIN_SHUTDOWN: "shutting down",
    VIR_DOMAIN_SHUTOFF: "shut off",
    VIR_DOMAIN_CRASHED: "crashed",
    VIR_DOMAIN_PMSUSPENDED: "suspended",
}


# ============================================================================
# Storage pool states (virStoragePoolState)
# ============================================================================

VIR_STORAGE_POOL_INACTIVE = 0
VIR_STORAGE_POOL_BUILDING = 1
VIR_STORAGE_POOL_RUNNING = 2
VIR_STORAGE_POOL_DEGRADED = 3
VIR_STORAGE_POOL_INACCESSIBLE = 4

STORAGE_POOL_STATE_NAMES = {
    VIR_STORAGE_POOL_INACTIVE: "inactive",
    VIR_STORAGE_POOL_BUILDING: "building",
    VIR_STORAGE_POOL_RUNNING: "running",
    VIR_STORAGE_POOL_DEGRADED: "degraded",
    VIR_STORAGE_POOL_INACCESSIBLE: "inaccessible",
}
