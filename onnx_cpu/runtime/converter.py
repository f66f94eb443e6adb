"""
Type-dispatched conversion between named numpy arrays and native tensors.

Each (input element type, output element type) pair has its own route in
DISPATCH. A route wraps the caller's arrays as native tensors of the input
type, runs the session, checks that every output has the output type and
copies the results back into a fresh name -> array map. Every native handle
created by a route is released before it returns, whether or not it fails.
"""

from __future__ import annotations

from itertools import product
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

import numpy as np

from onnx_cpu.contracts import ModelContracts, TensorContract
from onnx_cpu.dtypes import ElementType
from onnx_cpu.errors import (
    InferenceExecutionError,
    MissingInputError,
    TypeMismatchError,
)
from onnx_cpu.runtime.session import InferenceSession, NativeTensor, tensor_scope
from onnx_cpu.utils import get_logger

logger = get_logger(__name__)

NamedTensors = Dict[str, np.ndarray]
Route = Callable[[InferenceSession, Mapping[str, Any], ModelContracts], NamedTensors]


def _type_label(value: Any) -> str:
    if isinstance(value, np.ndarray):
        member = ElementType.from_numpy(value.dtype)
        return member.label if member is not None else str(value.dtype)
    return type(value).__name__


def to_native(
    tensors: Mapping[str, Any],
    contracts: Sequence[TensorContract],
    element_type: ElementType,
    scope: List[NativeTensor],
) -> List[NativeTensor]:
    """Wrap the arrays named by ``contracts``, in contract order.

    Keys of ``tensors`` that no contract names are ignored. Every handle is
    appended to ``scope`` as soon as it exists.
    """
    handles = []
    for contract in contracts:
        if contract.name not in tensors:
            raise MissingInputError(contract.name)
        array = tensors[contract.name]
        if not isinstance(array, np.ndarray) or array.dtype != element_type.numpy_dtype:
            raise TypeMismatchError(contract.name, element_type.label, _type_label(array))
        try:
            handle = NativeTensor.from_numpy(array)
        except Exception as e:
            raise InferenceExecutionError(
                f"input tensor {contract.name} encountered an error: {e}"
            ) from e
        scope.append(handle)
        handles.append(handle)
    return handles


def from_native(
    handles: Sequence[NativeTensor],
    contracts: Sequence[TensorContract],
    element_type: ElementType,
) -> NamedTensors:
    """Copy native outputs into a new map keyed by contract name."""
    result: NamedTensors = {}
    for contract, handle in zip(contracts, handles):
        if handle.element_type is not element_type:
            raise InferenceExecutionError(
                f"could not convert output tensor {contract.name!r} "
                f"of type {handle.type_label} to {element_type.label}"
            )
        result[contract.name] = handle.to_numpy()
    return result


def _make_route(input_type: ElementType, output_type: ElementType) -> Route:
    def route(
        session: InferenceSession,
        tensors: Mapping[str, Any],
        contracts: ModelContracts,
    ) -> NamedTensors:
        with tensor_scope() as scope:
            inputs = to_native(tensors, contracts.inputs, input_type, scope)
            outputs = session.run(inputs)
            scope.extend(outputs)
            result = from_native(outputs, contracts.outputs, output_type)
        logger.debug(
            "%s produced %s",
            route.__name__,
            {name: arr.shape for name, arr in result.items()},
        )
        return result

    route.__name__ = f"route_{input_type.label}_to_{output_type.label}"
    return route


DISPATCH: Dict[Tuple[ElementType, ElementType], Route] = {
    (i, o): _make_route(i, o) for i, o in product(ElementType, ElementType)
}


def select_route(input_type: ElementType, output_type: ElementType) -> Route:
    return DISPATCH[(input_type, output_type)]
