"""
Caller-facing model metadata, built once from the discovered contracts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from onnx_cpu.contracts import ModelContracts, TensorContract

DEFAULT_MODEL_NAME = "onnx_model"
LABELS_KEY = "labels"


@dataclass(frozen=True)
class TensorInfo:
    name: str
    data_type: str
    shape: Tuple[int, ...]
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self, with_extra: bool = True) -> Dict[str, Any]:
        doc = {"name": self.name, "dataType": self.data_type, "shape": list(self.shape)}
        if with_extra:
            doc["extra"] = dict(self.extra)
        return doc


@dataclass(frozen=True)
class ModelMetadata:
    model_name: str
    inputs: Tuple[TensorInfo, ...]
    outputs: Tuple[TensorInfo, ...]

    def to_dict(self) -> Dict[str, Any]:
        """Render as ``{modelName, inputs: [...], outputs: [...]}``."""
        return {
            "modelName": self.model_name,
            "inputs": [info.to_dict(with_extra=False) for info in self.inputs],
            "outputs": [info.to_dict() for info in self.outputs],
        }


def _info(contract: TensorContract, extra: Optional[Mapping[str, Any]] = None) -> TensorInfo:
    return TensorInfo(
        name=contract.name,
        data_type=contract.element_type.label,
        shape=contract.shape,
        extra=extra if extra is not None else MappingProxyType({}),
    )


def build_metadata(
    contracts: ModelContracts,
    label_path: Optional[str] = None,
    model_name: str = DEFAULT_MODEL_NAME,
) -> ModelMetadata:
    """Project contracts into metadata.

    Every output carries the label file path (empty string when none was
    configured) under ``extra["labels"]`` so vision post-processing can find
    the labels. The label file itself is never opened here.
    """
    labels = MappingProxyType({LABELS_KEY: str(label_path) if label_path else ""})
    return ModelMetadata(
        model_name=model_name,
        inputs=tuple(_info(c) for c in contracts.inputs),
        outputs=tuple(_info(c, labels) for c in contracts.outputs),
    )
