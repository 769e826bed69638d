"""
Command-line interface for virtbind.

This module defines all CLI commands using the Typer library. It is a thin
inspection tool over the bindings: every command opens a connection, reads
something, prints it and closes the connection.
"""

import logging
from typing import Annotated

import typer

from virtbind import __version__

app = typer.Typer(
    name="virtbind",
    help="virtbind - Inspect hypervisors through the libvirt API",
    no_args_is_help=True,
)

# Shared options
UriOption = Annotated[
    str | None,
    typer.Option("--uri", "-c", help="Connection URI (default: LIBVIRT_DEFAULT_URI)"),
]
ReadonlyOption = Annotated[
    bool,
    typer.Option("--readonly/--readwrite", help="Open a read-only connection"),
]


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"virtbind {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Logging level (default: VIRTBIND_LOG_LEVEL or WARNING)"),
    ] = None,
) -> None:
    """virtbind - Inspect hypervisors through the libvirt API."""
    from virtbind.config import load_settings

    settings = load_settings()
    level = (log_level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _connect(uri: str | None, readonly: bool):
    """Open a connection using settings from the environment."""
    from virtbind.config import load_settings
    from virtbind.connection import Connection
    from virtbind.native.bindings import LibraryNotFoundError, get_native

    settings = load_settings()
    try:
        native = get_native(settings)
    except LibraryNotFoundError as e:
        _fail(e)
    uri = uri or settings.default_uri
    if readonly:
        return Connection.open_readonly(uri, native=native)
    return Connection.open(uri, native=native)


def _fail(error: Exception) -> None:
    print(f"Error: {error}")
    raise typer.Exit(code=1) from error


def _format_version(encoded: int) -> str:
    """Turn libvirt's major * 1,000,000 + minor * 1,000 + release into text."""
    major, rest = divmod(encoded, 1_000_000)
    minor, release = divmod(rest, 1_000)
    return f"{major}.{minor}.{release}"


@app.command("info")
def info(uri: UriOption = None, readonly: ReadonlyOption = True) -> None:
    """
    Display information about a hypervisor connection.

    Shows the driver type, host name, hypervisor and libvirt versions and
    whether the connection is encrypted and secure.
    """
    from virtbind.errors import VirtError

    try:
        with _connect(uri, readonly) as conn:
            print("Connection Information")
            print("=" * 60)
            print()
            print(f"URI:               {conn.uri}")
            print(f"Driver:            {conn.type}")
            print(f"Hostname:          {conn.hostname}")
            print(f"Hypervisor:        {_format_version(conn.version)}")
            print(f"libvirt:           {_format_version(conn.lib_version)}")
            print(f"Encrypted:         {'yes' if conn.encrypted else 'no'}")
            print(f"Secure:            {'yes' if conn.secure else 'no'}")

    except VirtError as e:
        _fail(e)


# Create a subcommand group for network commands
net_app = typer.Typer(help="Virtual network commands")
app.add_typer(net_app, name="net")


@net_app.command("list")
def net_list(uri: UriOption = None, readonly: ReadonlyOption = True) -> None:
    """List all networks with their state."""
    from virtbind.errors import VirtError

    try:
        with _connect(uri, readonly) as conn:
            networks = conn.list_all_networks()
            print(f"{'Name':<24} {'State':<10} {'Autostart':<10} Persistent")
            print("-" * 60)
            for net in networks:
                state = "active" if net.active else "inactive"
                autostart = "yes" if net.autostart else "no"
                persistent = "yes" if net.persistent else "no"
                print(f"{net.name:<24} {state:<10} {autostart:<10} {persistent}")
                net.free()

    except VirtError as e:
        _fail(e)


@net_app.command("show")
def net_show(
    name: str = typer.Argument(..., help="Network name"),
    uri: UriOption = None,
    readonly: ReadonlyOption = True,
) -> None:
    """Show details of one network."""
    from virtbind.errors import VirtError

    try:
        with _connect(uri, readonly) as conn:
            with conn.lookup_network_by_name(name) as net:
                print(f"Name:        {net.name}")
                print(f"UUID:        {net.uuid}")
                print(f"Active:      {'yes' if net.active else 'no'}")
                print(f"Persistent:  {'yes' if net.persistent else 'no'}")
                print(f"Autostart:   {'yes' if net.autostart else 'no'}")
                print(f"Bridge:      {net.bridge_name}")

    except VirtError as e:
        _fail(e)


@net_app.command("xml")
def net_xml(
    name: str = typer.Argument(..., help="Network name"),
    uri: UriOption = None,
    readonly: ReadonlyOption = True,
) -> None:
    """Print the XML description of a network."""
    from virtbind.errors import VirtError

    try:
        with _connect(uri, readonly) as conn:
            with conn.lookup_network_by_name(name) as net:
                print(net.xml_desc())

    except VirtError as e:
        _fail(e)


# Create a subcommand group for domain commands
domain_app = typer.Typer(help="Domain (virtual machine) commands")
app.add_typer(domain_app, name="domain")


@domain_app.command("list")
def domain_list(uri: UriOption = None, readonly: ReadonlyOption = True) -> None:
    """List all domains with their state."""
    from virtbind.errors import VirtError

    try:
        with _connect(uri, readonly) as conn:
            domains = conn.list_all_domains()
            print(f"{'Id':>5}  {'Name':<24} State")
            print("-" * 60)
            for dom in domains:
                dom_id = dom.id
                id_text = "-" if dom_id < 0 else str(dom_id)
                print(f"{id_text:>5}  {dom.name:<24} {dom.info().state_name}")
                dom.free()

    except VirtError as e:
        _fail(e)


@domain_app.command("params")
def domain_params(
    name: str = typer.Argument(..., help="Domain name"),
    kind: str = typer.Option(
        "memory",
        "--kind",
        "-k",
        help="Parameter family: memory, blkio or scheduler",
    ),
    uri: UriOption = None,
    readonly: ReadonlyOption = True,
) -> None:
    """Show a domain's tuning parameters."""
    from virtbind.errors import VirtError

    getters = {
        "memory": "memory_parameters",
        "blkio": "blkio_parameters",
        "scheduler": "scheduler_parameters",
    }
    if kind not in getters:
        print(f"Error: unknown parameter family '{kind}' (expected memory, blkio or scheduler)")
        raise typer.Exit(code=2)

    try:
        with _connect(uri, readonly) as conn:
            with conn.lookup_domain_by_name(name) as dom:
                params = getattr(dom, getters[kind])()
                if not params:
                    print("No parameters")
                for field, value in params.items():
                    print(f"{field:<32} {value}")

    except VirtError as e:
        _fail(e)


# Create a subcommand group for storage pool commands
pool_app = typer.Typer(help="Storage pool commands")
app.add_typer(pool_app, name="pool")


@pool_app.command("list")
def pool_list(uri: UriOption = None, readonly: ReadonlyOption = True) -> None:
    """List all storage pools with their capacity."""
    from virtbind.errors import VirtError

    try:
        with _connect(uri, readonly) as conn:
            pools = conn.list_all_storage_pools()
            print(f"{'Name':<24} {'State':<12} {'Capacity':>16} {'Available':>16}")
            print("-" * 72)
            for pool in pools:
                pool_info = pool.info()
                print(
                    f"{pool.name:<24} {pool_info.state_name:<12} "
                    f"{pool_info.capacity:>16} {pool_info.available:>16}"
                )
                pool.free()

    except VirtError as e:
        _fail(e)


if __name__ == "__main__":
    app()
