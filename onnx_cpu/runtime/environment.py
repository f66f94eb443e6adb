"""
Process-wide ONNX Runtime environment.

Every adapter acquires the environment when it is constructed and releases it
when it is closed. The first acquire initializes it; the last release destroys
it. Acquire and release are serialized so concurrent constructions cannot
initialize twice and a close never tears the environment down under another
live adapter.

Adapters must not share an environment across processes; fork after
initialization is unsupported.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Optional

import onnxruntime as ort

from onnx_cpu.runtime.library import resolve_shared_library
from onnx_cpu.utils import get_logger

logger = get_logger(__name__)


class EnvironmentState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    DESTROYED = "destroyed"


class RuntimeEnvironment:
    """Reference-counted handle on the ONNX Runtime environment."""

    def __init__(self):
        self._lock = threading.Lock()
        self._refcount = 0
        self._state = EnvironmentState.UNINITIALIZED
        self.library_path: Optional[str] = None

    @property
    def state(self) -> EnvironmentState:
        return self._state

    @property
    def refcount(self) -> int:
        return self._refcount

    @property
    def is_initialized(self) -> bool:
        return self._state is EnvironmentState.INITIALIZED

    def acquire(self, log_severity_level: int = 2) -> None:
        """Initialize if needed and register one more dependent adapter.

        Raises:
            UnsupportedPlatformError: no native library for this platform.
            ModelLoadError: the native library is missing from onnxruntime.
        """
        with self._lock:
            library_path = resolve_shared_library()
            if not self.is_initialized:
                ort.set_default_logger_severity(log_severity_level)
                self.library_path = library_path
                self._state = EnvironmentState.INITIALIZED
                logger.info(
                    "ONNX Runtime %s environment initialized (library=%s)",
                    ort.get_version_string(),
                    library_path,
                )
            self._refcount += 1
            logger.debug("Runtime environment acquired (refcount=%d)", self._refcount)

    def release(self) -> None:
        """Drop one dependent; destroy the environment when none remain."""
        with self._lock:
            if self._refcount == 0:
                logger.warning("Runtime environment released more often than acquired")
                return
            self._refcount -= 1
            logger.debug("Runtime environment released (refcount=%d)", self._refcount)
            if self._refcount == 0:
                self._state = EnvironmentState.DESTROYED
                self.library_path = None
                logger.info("ONNX Runtime environment destroyed")


_environment = RuntimeEnvironment()


def get_environment() -> RuntimeEnvironment:
    return _environment
