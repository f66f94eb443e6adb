"""
Locates the ONNX Runtime native library for the running platform.
"""

from __future__ import annotations

import glob
import os
import platform
from typing import Optional, Tuple

from onnx_cpu.errors import ModelLoadError, UnsupportedPlatformError

_SYSTEM_ALIASES = {
    "windows": "windows",
    "darwin": "darwin",
    "linux": "linux",
    "android": "android",
}

_MACHINE_ALIASES = {
    "amd64": "amd64",
    "x86_64": "amd64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
}

# (system, arch) -> glob for the native library inside onnxruntime/capi.
# Extension modules carry an interpreter tag, e.g.
# onnxruntime_pybind11_state.cpython-311-x86_64-linux-gnu.so
SHARED_LIBRARIES = {
    ("windows", "amd64"): "onnxruntime_pybind11_state*.pyd",
    ("darwin", "arm64"): "onnxruntime_pybind11_state*.so",
    ("linux", "arm64"): "onnxruntime_pybind11_state*.so",
    ("linux", "amd64"): "onnxruntime_pybind11_state*.so",
    ("android", "386"): "onnxruntime_pybind11_state*.so",
    ("android", "arm64"): "onnxruntime_pybind11_state*.so",
}


def current_platform() -> Tuple[str, str]:
    return platform.system(), platform.machine()


def platform_key(system: str, machine: str) -> Tuple[str, str]:
    return (
        _SYSTEM_ALIASES.get(system.lower(), system.lower()),
        _MACHINE_ALIASES.get(machine.lower(), machine.lower()),
    )


def _default_library_dir() -> str:
    import onnxruntime.capi

    return os.path.dirname(onnxruntime.capi.__file__)


def resolve_shared_library(
    system: Optional[str] = None,
    machine: Optional[str] = None,
    library_dir: Optional[str] = None,
) -> str:
    """Return the path of the native library for the given (or current) platform.

    ``library_dir`` defaults to the installed ``onnxruntime.capi`` package.

    Raises:
        UnsupportedPlatformError: the platform pair is not in SHARED_LIBRARIES.
        ModelLoadError: no matching library file exists in ``library_dir``.
    """
    if system is None or machine is None:
        cur_system, cur_machine = current_platform()
        system = system or cur_system
        machine = machine or cur_machine

    pattern = SHARED_LIBRARIES.get(platform_key(system, machine))
    if pattern is None:
        raise UnsupportedPlatformError(system, machine)

    library_dir = library_dir or _default_library_dir()
    matches = sorted(
        path for path in glob.glob(os.path.join(library_dir, pattern)) if os.path.isfile(path)
    )
    if not matches:
        raise ModelLoadError(
            f"native library {pattern} not found in {library_dir}"
        )
    return matches[0]
