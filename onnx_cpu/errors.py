"""
Exception hierarchy for the ONNX Runtime model adapter.

Construction-time errors abort the adapter. Per-call errors only fail the call
that raised them; the adapter stays usable.
"""

from __future__ import annotations


class OnnxCPUError(Exception):
    """Base class for every error raised by this package."""


# construction


class ConfigValidationError(OnnxCPUError):
    """Missing or malformed construction configuration."""

    def __init__(self, field: str, message: str):
        super().__init__(f"invalid config field {field!r}: {message}")
        self.field = field


class ModelLoadError(OnnxCPUError):
    """The model file, or the native runtime it needs, could not be loaded."""


class UnsupportedTypeError(OnnxCPUError):
    """A tensor declared by the model has an element type we cannot marshal."""

    def __init__(self, side: str, name: str, type_label: str):
        super().__init__(
            f"{side} tensor {name!r} has type {type_label}; "
            f"currently only supporting {side} tensors of type uint8 or float32"
        )
        self.side = side
        self.name = name
        self.type_label = type_label


class MixedTypeError(OnnxCPUError):
    """Tensors on one side of the model do not share an element type."""

    def __init__(self, side: str, types):
        super().__init__(
            f"all {side} tensors must be of the same data type, got {sorted(types)}; "
            "mixing data types is not supported"
        )
        self.side = side
        self.types = frozenset(types)


class UnsupportedPlatformError(OnnxCPUError):
    """No ONNX Runtime library is known for this operating system/architecture."""

    def __init__(self, system: str, machine: str):
        super().__init__(
            f"unable to find a version of the onnxruntime library supporting {system} {machine}"
        )
        self.system = system
        self.machine = machine


# per call


class MissingInputError(OnnxCPUError):
    def __init__(self, name: str):
        super().__init__(f"input tensor with name {name!r} is required")
        self.name = name


class TypeMismatchError(OnnxCPUError):
    def __init__(self, name: str, expected: str, actual: str):
        super().__init__(f"input tensor {name!r} is of type {actual}, not {expected}")
        self.name = name
        self.expected = expected
        self.actual = actual


class InferenceExecutionError(OnnxCPUError):
    """The native session failed to run, or returned something unexpected."""


# shutdown


class ReleaseError(OnnxCPUError):
    """Releasing the native session failed. The adapter is closed regardless."""


class ClosedError(OnnxCPUError):
    """The adapter was used after close()."""
