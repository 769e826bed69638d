"""
Native libvirt access layer.

This package declares the libvirt C interface for cffi and loads the
shared library.

Main objects:
- ffi: The cffi FFI instance holding every libvirt declaration we use
- NativeLibrary: libvirt plus the C library's free()
- get_native(): The process-wide NativeLibrary, loaded on first use
"""

from .bindings import LibraryNotFoundError, NativeLibrary, ffi, get_native, load_native

__all__ = ["ffi", "NativeLibrary", "LibraryNotFoundError", "get_native", "load_native"]
