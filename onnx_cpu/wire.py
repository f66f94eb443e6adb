"""
JSON-friendly rendering of named tensor maps.

Each tensor becomes ``{"dataType": "float32", "shape": [1, 8], "data": [...]}``
with ``data`` holding the row-major flat buffer. Downstream consumers look
tensors up by exact name, so names are carried through unchanged.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping

import numpy as np

from onnx_cpu.dtypes import ElementType


def encode_tensor(array: np.ndarray) -> Dict[str, Any]:
    member = ElementType.from_numpy(array.dtype)
    if member is None:
        raise ValueError(f"cannot encode tensor of type {array.dtype}")
    return {
        "dataType": member.label,
        "shape": [int(d) for d in array.shape],
        "data": array.ravel().tolist(),
    }


def _checked_buffer(data: Any, member: ElementType) -> np.ndarray:
    """Cast ``data`` to ``member``, rejecting values the cast would change."""
    raw = np.asarray(data).ravel()
    if raw.size == 0:
        return raw.astype(member.numpy_dtype)
    if raw.dtype.kind not in "iuf":
        raise ValueError(f"buffer must hold numbers, got {raw.dtype}")

    if member is ElementType.UINT8:
        if raw.dtype.kind == "f" and not np.all(np.isfinite(raw) & (raw == np.floor(raw))):
            raise ValueError("uint8 buffer holds non-integral values")
        info = np.iinfo(np.uint8)
        if raw.min() < info.min or raw.max() > info.max:
            raise ValueError(
                f"uint8 buffer values must be in {info.min}..{info.max}, "
                f"got {raw.min()}..{raw.max()}"
            )
        return raw.astype(np.uint8)

    with np.errstate(over="ignore"):
        flat = raw.astype(member.numpy_dtype)
    if np.any(np.isfinite(raw) & ~np.isfinite(flat)):
        raise ValueError(f"{member.label} buffer holds values out of range")
    return flat


def decode_tensor(doc: Mapping[str, Any]) -> np.ndarray:
    for key in ("dataType", "shape", "data"):
        if key not in doc:
            raise ValueError(f"tensor document is missing {key!r}")
    member = ElementType.from_label(doc["dataType"])
    shape = tuple(int(d) for d in doc["shape"])
    flat = _checked_buffer(doc["data"], member)
    expected = int(np.prod(shape, dtype=np.int64))
    if flat.size != expected:
        raise ValueError(
            f"buffer holds {flat.size} elements but shape {list(shape)} needs {expected}"
        )
    return flat.reshape(shape)


def encode_tensors(tensors: Mapping[str, np.ndarray]) -> Dict[str, Dict[str, Any]]:
    return {name: encode_tensor(array) for name, array in tensors.items()}


def decode_tensors(payload: Mapping[str, Mapping[str, Any]]) -> Dict[str, np.ndarray]:
    out = {}
    for name, doc in payload.items():
        try:
            out[name] = decode_tensor(doc)
        except ValueError as e:
            raise ValueError(f"tensor {name!r}: {e}") from e
    return out


def dumps(tensors: Mapping[str, np.ndarray], **kwargs) -> str:
    return json.dumps(encode_tensors(tensors), **kwargs)


def loads(text: str) -> Dict[str, np.ndarray]:
    return decode_tensors(json.loads(text))
