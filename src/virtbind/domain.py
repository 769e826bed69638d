"""
Domains (virtual machines).

A Domain wraps a virDomainPtr. Besides the lifecycle calls it exposes the
three typed-parameter families libvirt uses for tuning a running guest:

- scheduler parameters (e.g. cpu_shares), whose count comes from
  virDomainGetSchedulerType
- memory parameters (hard_limit, soft_limit, ...)
- blkio parameters (weight, device_weight, ...)

Each family has a getter returning a dict and a setter accepting either a
dict or a (dict, flags) pair:

    dom.set_memory_parameters({"hard_limit": 1048576})
    dom.set_memory_parameters(({"hard_limit": 1048576}, VIR_DOMAIN_AFFECT_CONFIG))
"""

from dataclasses import dataclass

from virtbind.dispatch import call_raw, flag_value
from virtbind.errors import RetrieveError, last_error, translate
from virtbind.handle import NativeHandle
from virtbind.native import constants
from virtbind.native.bindings import ffi
from virtbind.params import get_typed_parameters, parse_params_and_flags, set_typed_parameters

# virDomainGetID returns (unsigned int)-1 on error
_INVALID_ID = 0xFFFFFFFF


@dataclass
class DomainInfo:
    """
    Basic runtime information about a domain.

    Attributes:
        state: One of the VIR_DOMAIN_* state constants
        max_memory: Maximum memory in KiB
        memory: Memory currently in use in KiB
        nr_virt_cpu: Number of virtual CPUs
        cpu_time: CPU time used, in nanoseconds
    """

    state: int
    max_memory: int
    memory: int
    nr_virt_cpu: int
    cpu_time: int

    @property
    def state_name(self) -> str:
        return constants.DOMAIN_STATE_NAMES.get(self.state, f"unknown ({self.state})")


class Domain(NativeHandle):
    """A libvirt domain."""

    kind = "Domain"
    free_function = "virDomainFree"

    @property
    def name(self) -> str:
        """The domain's name."""
        return self._string("virDomainGetName")

    @property
    def uuid(self) -> str:
        """The domain's UUID as a string."""
        return self._uuid("virDomainGetUUIDString")

    @property
    def id(self) -> int:
        """
        The hypervisor ID of a running domain.

        Inactive domains have no ID and report -1. libvirt uses the same
        value for errors, so the error record decides which one it was.
        Only the thread-global record is reset at the start of each call;
        the connection record may still hold an older failure.
        """
        result = call_raw(self._native, "virDomainGetID", self.raw)
        if result == _INVALID_ID:
            if last_error(self._native) is not None:
                raise translate(self._native, "virDomainGetID", ffi.NULL, RetrieveError)
            return -1
        return result

    @property
    def os_type(self) -> str:
        """The guest OS type (e.g. "hvm")."""
        return self._string("virDomainGetOSType", dealloc=True)

    @property
    def max_memory(self) -> int:
        """Maximum memory the domain may use, in KiB."""
        result = call_raw(self._native, "virDomainGetMaxMemory", self.raw)
        if result == 0:
            raise translate(self._native, "virDomainGetMaxMemory", self._conn_ptr, RetrieveError)
        return result

    def info(self) -> DomainInfo:
        """Get basic runtime information about the domain."""
        info = ffi.new("virDomainInfo *")
        self._void("virDomainGetInfo", info, error_class=RetrieveError)
        return DomainInfo(
            state=info.state,
            max_memory=info.maxMem,
            memory=info.memory,
            nr_virt_cpu=info.nrVirtCpu,
            cpu_time=info.cpuTime,
        )

    def xml_desc(self, flags: int | None = 0) -> str:
        """Get the XML description of this domain."""
        return self._string("virDomainGetXMLDesc", flag_value(flags), dealloc=True)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create(self, flags: int | None = 0) -> None:
        """Start this defined domain."""
        self._void("virDomainCreateWithFlags", flag_value(flags))

    def destroy(self) -> None:
        """Forcefully stop the domain."""
        self._void("virDomainDestroy")

    def shutdown(self) -> None:
        """Ask the guest to shut down."""
        self._void("virDomainShutdown")

    def reboot(self, flags: int | None = 0) -> None:
        """Ask the guest to reboot."""
        self._void("virDomainReboot", flag_value(flags))

    def suspend(self) -> None:
        """Pause the domain's vCPUs."""
        self._void("virDomainSuspend")

    def resume(self) -> None:
        """Resume a suspended domain."""
        self._void("virDomainResume")

    def undefine(self) -> None:
        """Remove the persistent configuration of this domain."""
        self._void("virDomainUndefine")

    @property
    def active(self) -> bool:
        """Whether the domain is running."""
        return self._bool("virDomainIsActive", error_class=RetrieveError)

    @property
    def persistent(self) -> bool:
        """Whether the domain has a persistent configuration."""
        return self._bool("virDomainIsPersistent", error_class=RetrieveError)

    @property
    def autostart(self) -> bool:
        """Whether the domain starts when libvirtd starts."""
        return self._get_autostart("virDomainGetAutostart")

    @autostart.setter
    def autostart(self, value: bool) -> None:
        self.set_autostart(value)

    def set_autostart(self, autostart: bool) -> None:
        """
        Set whether the domain starts when libvirtd starts.

        Raises:
            ArgumentError: If autostart is not a bool.
        """
        self._set_autostart("virDomainSetAutostart", autostart)

    # =========================================================================
    # Typed parameters
    # =========================================================================

    def _scheduler_callbacks(self):
        """
        Build the callbacks for the scheduler parameter family.

        Unlike the other families, the count comes from
        virDomainGetSchedulerType, which also returns the scheduler name
        as a string we must free.
        """

        def count(flags: int) -> int:
            nparams = ffi.new("int *", 0)
            self._string("virDomainGetSchedulerType", nparams, dealloc=True)
            return nparams[0]

        def fetch(params, nparams, flags: int) -> None:
            self._void(
                "virDomainGetSchedulerParametersFlags",
                params,
                nparams,
                flags,
                error_class=RetrieveError,
            )

        def commit(params, nparams: int, flags: int) -> None:
            self._void(
                "virDomainSetSchedulerParametersFlags",
                params,
                nparams,
                flags,
                error_class=RetrieveError,
            )

        return count, fetch, commit

    @property
    def scheduler_type(self) -> str:
        """Name of the scheduler the hypervisor uses for this domain."""
        nparams = ffi.new("int *", 0)
        return self._string("virDomainGetSchedulerType", nparams, dealloc=True)

    def scheduler_parameters(self, flags: int | None = 0) -> dict:
        """Get the scheduler tuning parameters."""
        count, fetch, _ = self._scheduler_callbacks()
        return get_typed_parameters(self._native, count, fetch, flag_value(flags))

    def set_scheduler_parameters(self, value) -> None:
        """
        Update scheduler tuning parameters.

        Args:
            value: A dict of updates, or a (dict, flags) pair.
        """
        updates, flags = parse_params_and_flags(value)
        count, fetch, commit = self._scheduler_callbacks()
        set_typed_parameters(self._native, updates, count, fetch, commit, flag_value(flags))

    def memory_parameters(self, flags: int | None = 0) -> dict:
        """Get the memory tuning parameters."""
        return self._get_parameters("virDomainGetMemoryParameters", flags)

    def set_memory_parameters(self, value) -> None:
        """
        Update memory tuning parameters.

        Args:
            value: A dict of updates, or a (dict, flags) pair.
        """
        self._set_parameters(
            "virDomainGetMemoryParameters", "virDomainSetMemoryParameters", value
        )

    def blkio_parameters(self, flags: int | None = 0) -> dict:
        """Get the block I/O tuning parameters."""
        return self._get_parameters("virDomainGetBlkioParameters", flags)

    def set_blkio_parameters(self, value) -> None:
        """
        Update block I/O tuning parameters.

        Args:
            value: A dict of updates, or a (dict, flags) pair.
        """
        self._set_parameters(
            "virDomainGetBlkioParameters", "virDomainSetBlkioParameters", value
        )

    def __str__(self) -> str:
        if self.freed:
            return "Domain(freed)"
        return f"Domain(name={self.name})"
