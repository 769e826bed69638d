"""
Virtual networks.

A Network wraps a virNetworkPtr. Networks are obtained from a Connection
(lookup, define, create or list) and own their pointer until freed.

Usage:
    with Connection.open("qemu:///system") as conn:
        net = conn.lookup_network_by_name("default")
        print(net.name, net.bridge_name, net.active)
        net.free()
"""

from virtbind.dispatch import flag_value
from virtbind.errors import ArgumentError, RetrieveError
from virtbind.handle import NativeHandle
from virtbind.native import constants


class Network(NativeHandle):
    """A libvirt virtual network."""

    kind = "Network"
    free_function = "virNetworkFree"

    # virNetworkUpdate commands
    UPDATE_COMMAND_NONE = constants.VIR_NETWORK_UPDATE_COMMAND_NONE
    UPDATE_COMMAND_MODIFY = constants.VIR_NETWORK_UPDATE_COMMAND_MODIFY
    UPDATE_COMMAND_DELETE = constants.VIR_NETWORK_UPDATE_COMMAND_DELETE
    UPDATE_COMMAND_ADD_LAST = constants.VIR_NETWORK_UPDATE_COMMAND_ADD_LAST
    UPDATE_COMMAND_ADD_FIRST = constants.VIR_NETWORK_UPDATE_COMMAND_ADD_FIRST

    # virNetworkUpdate sections
    SECTION_NONE = constants.VIR_NETWORK_SECTION_NONE
    SECTION_BRIDGE = constants.VIR_NETWORK_SECTION_BRIDGE
    SECTION_DOMAIN = constants.VIR_NETWORK_SECTION_DOMAIN
    SECTION_IP = constants.VIR_NETWORK_SECTION_IP
    SECTION_IP_DHCP_HOST = constants.VIR_NETWORK_SECTION_IP_DHCP_HOST
    SECTION_IP_DHCP_RANGE = constants.VIR_NETWORK_SECTION_IP_DHCP_RANGE
    SECTION_FORWARD = constants.VIR_NETWORK_SECTION_FORWARD
    SECTION_FORWARD_INTERFACE = constants.VIR_NETWORK_SECTION_FORWARD_INTERFACE
    SECTION_FORWARD_PF = constants.VIR_NETWORK_SECTION_FORWARD_PF
    SECTION_PORTGROUP = constants.VIR_NETWORK_SECTION_PORTGROUP
    SECTION_DNS_HOST = constants.VIR_NETWORK_SECTION_DNS_HOST
    SECTION_DNS_TXT = constants.VIR_NETWORK_SECTION_DNS_TXT
    SECTION_DNS_SRV = constants.VIR_NETWORK_SECTION_DNS_SRV

    # virNetworkUpdate flags
    UPDATE_AFFECT_CURRENT = constants.VIR_NETWORK_UPDATE_AFFECT_CURRENT
    UPDATE_AFFECT_LIVE = constants.VIR_NETWORK_UPDATE_AFFECT_LIVE
    UPDATE_AFFECT_CONFIG = constants.VIR_NETWORK_UPDATE_AFFECT_CONFIG

    def undefine(self) -> None:
        """Remove the persistent configuration of this network."""
        self._void("virNetworkUndefine")

    def create(self) -> None:
        """Start this (defined but inactive) network."""
        self._void("virNetworkCreate")

    def update(self, command: int, section: int, index: int, xml: str, flags: int | None = 0) -> None:
        """
        Change one section of the network's configuration.

        Args:
            command: One of the UPDATE_COMMAND_* constants.
            section: One of the SECTION_* constants.
            index: Index of the parent element the section lives in
                   (-1 means don't care).
            xml: The XML snippet to add, modify or delete.
            flags: UPDATE_AFFECT_* flags.
        """
        if not isinstance(xml, str):
            raise ArgumentError(f"xml must be a str, got {type(xml).__name__}")
        self._void(
            "virNetworkUpdate",
            command,
            section,
            index,
            xml.encode("utf-8"),
            flag_value(flags),
        )

    def destroy(self) -> None:
        """Stop this network. Transient networks disappear entirely."""
        self._void("virNetworkDestroy")

    @property
    def name(self) -> str:
        """The network's name."""
        return self._string("virNetworkGetName")

    @property
    def uuid(self) -> str:
        """The network's UUID as a string."""
        return self._uuid("virNetworkGetUUIDString")

    def xml_desc(self, flags: int | None = 0) -> str:
        """Get the XML description of this network."""
        return self._string("virNetworkGetXMLDesc", flag_value(flags), dealloc=True)

    @property
    def bridge_name(self) -> str:
        """Name of the host bridge device this network uses."""
        return self._string("virNetworkGetBridgeName", dealloc=True)

    @property
    def autostart(self) -> bool:
        """Whether the network starts when libvirtd starts."""
        return self._get_autostart("virNetworkGetAutostart")

    @autostart.setter
    def autostart(self, value: bool) -> None:
        self.set_autostart(value)

    def set_autostart(self, autostart: bool) -> None:
        """
        Set whether the network starts when libvirtd starts.

        Raises:
            ArgumentError: If autostart is not a bool.
        """
        self._set_autostart("virNetworkSetAutostart", autostart)

    @property
    def active(self) -> bool:
        """Whether the network is currently running."""
        return self._bool("virNetworkIsActive", error_class=RetrieveError)

    @property
    def persistent(self) -> bool:
        """Whether the network has a persistent configuration."""
        return self._bool("virNetworkIsPersistent", error_class=RetrieveError)

    def __str__(self) -> str:
        if self.freed:
            return "Network(freed)"
        return f"Network(name={self.name})"

