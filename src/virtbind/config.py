"""
Runtime settings.

Settings come from the environment so the same values apply to library
users and to the command-line tool. CLI options override them.

Environment variables:
- VIRTBIND_LIBRARY: Path to the libvirt shared object to load
- LIBVIRT_DEFAULT_URI: Connection URI used when none is given
- VIRTBIND_LOG_LEVEL: Log level for the command-line tool
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

LIBRARY_ENV = "VIRTBIND_LIBRARY"
DEFAULT_URI_ENV = "LIBVIRT_DEFAULT_URI"
LOG_LEVEL_ENV = "VIRTBIND_LOG_LEVEL"

DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class Settings:
    """
    Settings for loading libvirt and opening connections.

    Attributes:
        library_path: Explicit path to libvirt.so (None means search for it)
        default_uri: URI used when a connection is opened without one.
                     None lets libvirt pick its own default.
        log_level: Name of the logging level used by the CLI
    """

    library_path: str | None = None
    default_uri: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build settings from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        The settings. Empty variables count as unset.
    """
    if environ is None:
        environ = os.environ

    return Settings(
        library_path=environ.get(LIBRARY_ENV) or None,
        default_uri=environ.get(DEFAULT_URI_ENV) or None,
        log_level=(environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper(),
    )
