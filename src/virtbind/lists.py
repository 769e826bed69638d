"""
Conversion of native string arrays.

The older libvirt list APIs (virConnectListNetworks and friends) fill a
caller-provided array with strings that libvirt allocated. Each string
belongs to the caller and must be freed exactly once, even if converting
one of them to Python fails half way through the list.
"""

import logging

from virtbind.native.bindings import NativeLibrary, ffi

logger = logging.getLogger(__name__)


def materialize(native: NativeLibrary, array, count: int) -> list[str]:
    """
    Convert `count` native strings to Python strings, freeing each one.

    Each entry is freed right after it is copied. If a conversion raises
    at index i, entries i..count-1 are freed before the exception
    propagates, so exactly `count` entries are freed on every path.

    The array itself is not freed; it belongs to the caller.

    Args:
        native: The library whose free() releases the entries.
        array: A `char **` holding at least `count` entries.
        count: Number of valid entries.

    Returns:
        The strings, decoded as UTF-8.
    """
    result: list[str] = []
    index = 0
    try:
        while index < count:
            entry = array[index]
            value = ffi.string(entry).decode("utf-8")
            index += 1
            native.release(entry)
            result.append(value)
    except BaseException:
        logger.debug(f"String list conversion failed at entry {index} of {count}")
        for remaining in range(index, count):
            native.release(array[remaining])
        raise

    return result
