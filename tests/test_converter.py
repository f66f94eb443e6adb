# tests/test_converter.py
"""
Tests for the type-dispatched converter.
"""
from itertools import product

import numpy as np
import pytest
from onnx import TensorProto

from onnx_cpu.contracts import TensorContract, discover_contracts
from onnx_cpu.dtypes import ElementType
from onnx_cpu.errors import InferenceExecutionError, MissingInputError, TypeMismatchError
from onnx_cpu.runtime.converter import (
    DISPATCH,
    from_native,
    select_route,
    to_native,
)
from onnx_cpu.runtime.session import InferenceSession, NativeTensor, live_handles


def test_dispatch_covers_every_type_pair():
    assert set(DISPATCH) == set(product(ElementType, ElementType))
    assert len({route.__name__ for route in DISPATCH.values()}) == 4


@pytest.mark.parametrize("pair", list(product(ElementType, ElementType)))
def test_select_route_indexes_dispatch(pair):
    route = select_route(*pair)
    assert route is DISPATCH[pair]
    assert route.__name__ == f"route_{pair[0].label}_to_{pair[1].label}"


@pytest.mark.parametrize(
    "in_type,out_type",
    list(product([TensorProto.UINT8, TensorProto.FLOAT], repeat=2)),
)
def test_each_route_end_to_end(type_matrix_model, in_type, out_type):
    path = type_matrix_model(in_type, out_type)
    contracts = discover_contracts(path)
    session = InferenceSession(path, contracts.input_names, contracts.output_names)
    route = select_route(contracts.input_type, contracts.output_type)

    source = np.arange(12, dtype=contracts.input_type.numpy_dtype).reshape(1, 2, 2, 3)
    before = live_handles()
    result = route(session, {"input": source}, contracts)

    assert list(result) == ["output"]
    assert result["output"].dtype == contracts.output_type.numpy_dtype
    assert result["output"].shape == (1, 2, 2, 3)
    np.testing.assert_array_equal(result["output"].astype(np.float64), source.astype(np.float64))
    assert live_handles() == before
    session.destroy()


class TestToNative:
    contracts = (
        TensorContract("a", ElementType.FLOAT32, (2,)),
        TensorContract("b", ElementType.FLOAT32, (2,)),
    )

    def test_declared_order_and_extra_keys(self):
        scope = []
        tensors = {
            "b": np.array([3, 4], np.float32),
            "unrelated": "ignored",
            "a": np.array([1, 2], np.float32),
        }
        handles = to_native(tensors, self.contracts, ElementType.FLOAT32, scope)
        assert handles == scope
        np.testing.assert_array_equal(handles[0].to_numpy(), [1, 2])
        np.testing.assert_array_equal(handles[1].to_numpy(), [3, 4])
        for h in scope:
            h.release()

    def test_missing_input_keeps_created_handles_in_scope(self):
        scope = []
        with pytest.raises(MissingInputError) as info:
            to_native({"a": np.zeros(2, np.float32)}, self.contracts, ElementType.FLOAT32, scope)
        assert info.value.name == "b"
        assert len(scope) == 1
        scope[0].release()

    @pytest.mark.parametrize(
        "value,actual",
        [
            (np.zeros(2, np.float64), "float64"),
            (np.zeros(2, np.uint8), "uint8"),
            ([0.0, 1.0], "list"),
        ],
    )
    def test_type_mismatch(self, value, actual):
        scope = []
        with pytest.raises(TypeMismatchError) as info:
            to_native({"a": value, "b": value}, self.contracts, ElementType.FLOAT32, scope)
        assert (info.value.name, info.value.expected, info.value.actual) == ("a", "float32", actual)
        assert scope == []


class TestFromNative:
    def test_uses_actual_shape(self):
        contract = TensorContract("out", ElementType.FLOAT32, (-1, 3))
        handle = NativeTensor.from_numpy(np.ones((5, 3), np.float32))
        result = from_native([handle], [contract], ElementType.FLOAT32)
        handle.release()
        assert result["out"].shape == (5, 3)

    def test_output_type_mismatch(self):
        contract = TensorContract("out", ElementType.UINT8, (2,))
        handle = NativeTensor.from_numpy(np.ones(2, np.float32))
        with pytest.raises(InferenceExecutionError, match="could not convert output tensor"):
            from_native([handle], [contract], ElementType.UINT8)
        handle.release()

    def test_result_outlives_handle(self):
        contract = TensorContract("out", ElementType.UINT8, (3,))
        handle = NativeTensor.from_numpy(np.array([1, 2, 3], np.uint8))
        result = from_native([handle], [contract], ElementType.UINT8)
        handle.release()
        np.testing.assert_array_equal(result["out"], [1, 2, 3])
