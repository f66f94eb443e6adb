from enum import Enum

import numpy as np
from onnx import TensorProto


class ElementType(Enum):
    """Closed set of tensor element types the adapter can marshal."""

    UINT8 = "uint8"
    FLOAT32 = "float32"

    @property
    def label(self) -> str:
        return self.value

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(self.value)

    @property
    def onnx_type(self) -> int:
        return _ONNX_TYPES[self]

    @property
    def ort_type(self) -> str:
        """Type string reported by onnxruntime for tensors of this kind."""
        return _ORT_TYPES[self]

    @classmethod
    def from_onnx(cls, elem_type: int):
        """Map an ONNX ``TensorProto`` element enum, or None if unsupported."""
        for member, onnx_type in _ONNX_TYPES.items():
            if onnx_type == elem_type:
                return member
        return None

    @classmethod
    def from_numpy(cls, dtype):
        """Map a numpy dtype, or None if unsupported. No widening or narrowing."""
        dtype = np.dtype(dtype)
        for member in cls:
            if member.numpy_dtype == dtype:
                return member
        return None

    @classmethod
    def from_ort(cls, type_string: str):
        for member, ort_type in _ORT_TYPES.items():
            if ort_type == type_string:
                return member
        return None

    @classmethod
    def from_label(cls, label: str) -> "ElementType":
        try:
            return cls(label)
        except ValueError:
            raise ValueError(
                f"Unsupported data type: {label}. Supported: {[m.value for m in cls]}"
            ) from None


_ONNX_TYPES = {
    ElementType.UINT8: TensorProto.UINT8,
    ElementType.FLOAT32: TensorProto.FLOAT,
}

_ORT_TYPES = {
    ElementType.UINT8: "tensor(uint8)",
    ElementType.FLOAT32: "tensor(float)",
}


def onnx_type_label(elem_type: int) -> str:
    """Human readable label for any ONNX element enum, supported or not."""
    member = ElementType.from_onnx(elem_type)
    if member is not None:
        return member.label
    try:
        return TensorProto.DataType.Name(elem_type).lower()
    except ValueError:
        return f"unknown({elem_type})"
