"""
Tensor contract discovery.

Reads the declared graph inputs and outputs of an ONNX model and checks that
the adapter can marshal them: every tensor must be uint8 or float32, and all
tensors on one side must share a single element type.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Tuple

import onnx

from onnx_cpu.dtypes import ElementType, onnx_type_label
from onnx_cpu.errors import ModelLoadError, MixedTypeError, UnsupportedTypeError
from onnx_cpu.utils import get_logger

logger = get_logger(__name__)

# Reported for symbolic or unknown dimensions.
DYNAMIC_DIM = -1


@dataclass(frozen=True)
class TensorContract:
    name: str
    element_type: ElementType
    shape: Tuple[int, ...]

    @property
    def is_dynamic(self) -> bool:
        return DYNAMIC_DIM in self.shape


@dataclass(frozen=True)
class ModelContracts:
    """Ordered input and output contracts of one model."""

    inputs: Tuple[TensorContract, ...]
    outputs: Tuple[TensorContract, ...]

    @property
    def input_type(self) -> ElementType:
        return self.inputs[0].element_type

    @property
    def output_type(self) -> ElementType:
        return self.outputs[0].element_type

    @property
    def input_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.inputs)

    @property
    def output_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.outputs)


def discover_contracts(model_path) -> ModelContracts:
    """Load ``model_path`` and return its validated tensor contracts.

    Raises:
        ModelLoadError: file missing, unparsable, or declaring no inputs/outputs.
        UnsupportedTypeError: a tensor is not uint8/float32 (or not a tensor).
        MixedTypeError: element types differ within the inputs or the outputs.
    """
    path = Path(model_path)
    if not path.is_file():
        raise ModelLoadError(f"model file not found: {path}")

    try:
        model = onnx.load(str(path), load_external_data=False)
    except Exception as e:
        raise ModelLoadError(f"failed to parse ONNX model {path}: {e}") from e

    graph = model.graph
    initializers = {init.name for init in graph.initializer}
    declared_inputs = [vi for vi in graph.input if vi.name not in initializers]

    inputs = tuple(_to_contract("input", vi) for vi in declared_inputs)
    outputs = tuple(_to_contract("output", vi) for vi in graph.output)

    if not inputs:
        raise ModelLoadError(f"model {path} declares no input tensors")
    if not outputs:
        raise ModelLoadError(f"model {path} declares no output tensors")

    _check_uniform("input", inputs)
    _check_uniform("output", outputs)

    logger.debug(
        "Discovered contracts for %s: inputs=%s outputs=%s",
        path.name,
        [(c.name, c.element_type.label, c.shape) for c in inputs],
        [(c.name, c.element_type.label, c.shape) for c in outputs],
    )
    return ModelContracts(inputs=inputs, outputs=outputs)


def _to_contract(side: str, value_info) -> TensorContract:
    kind = value_info.type.WhichOneof("value")
    if kind != "tensor_type":
        raise UnsupportedTypeError(side, value_info.name, kind or "undefined")

    tensor_type = value_info.type.tensor_type
    element_type = ElementType.from_onnx(tensor_type.elem_type)
    if element_type is None:
        raise UnsupportedTypeError(
            side, value_info.name, onnx_type_label(tensor_type.elem_type)
        )

    shape = tuple(
        dim.dim_value if dim.HasField("dim_value") else DYNAMIC_DIM
        for dim in tensor_type.shape.dim
    )
    return TensorContract(name=value_info.name, element_type=element_type, shape=shape)


def _check_uniform(side: str, contracts: Iterable[TensorContract]) -> None:
    types = {c.element_type.label for c in contracts}
    if len(types) > 1:
        raise MixedTypeError(side, types)
