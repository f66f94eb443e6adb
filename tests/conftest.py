# tests/conftest.py
"""
Pytest configuration and shared fixtures for onnx_cpu tests.

Models are generated with onnx.helper into temporary directories so the suite
needs no checked-in model files.
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from pathlib import Path
from typing import Callable, List, Sequence

import numpy as np
import onnx
import pytest
from onnx import TensorProto, helper

from onnx_cpu.runtime.environment import RuntimeEnvironment

OPSET = 13
IR_VERSION = 8


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------


def _value_info(name: str, elem_type: int, shape: Sequence):
    return helper.make_tensor_value_info(name, elem_type, list(shape))


def save_model(
    path: Path,
    nodes: List,
    inputs: List,
    outputs: List,
    initializers: List = (),
) -> Path:
    graph = helper.make_graph(
        nodes, "test_graph", inputs, outputs, initializer=list(initializers)
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", OPSET)])
    model.ir_version = IR_VERSION
    onnx.save(model, str(path))
    return path


def _cast(src: str, dst: str, to: int):
    return helper.make_node("Cast", [src], [dst], to=to)


# ---------------------------------------------------------------------------
# Fixtures: Models
# ---------------------------------------------------------------------------


@pytest.fixture
def model_dir(tmp_path: Path) -> Path:
    d = tmp_path / "models"
    d.mkdir()
    return d


@pytest.fixture
def float_model(model_dir: Path) -> Path:
    """float32 [1,4] -> Relu -> float32 [1,4]."""
    return save_model(
        model_dir / "relu.onnx",
        [helper.make_node("Relu", ["input"], ["output"])],
        [_value_info("input", TensorProto.FLOAT, [1, 4])],
        [_value_info("output", TensorProto.FLOAT, [1, 4])],
    )


@pytest.fixture
def type_matrix_model(model_dir: Path) -> Callable[[int, int], Path]:
    """Factory for single input/output models covering each type pair."""

    def _factory(in_type: int, out_type: int) -> Path:
        if in_type == out_type:
            node = helper.make_node("Identity", ["input"], ["output"])
        else:
            node = _cast("input", "output", out_type)
        path = model_dir / f"matrix_{in_type}_{out_type}.onnx"
        return save_model(
            path,
            [node],
            [_value_info("input", in_type, [1, 2, 2, 3])],
            [_value_info("output", out_type, [1, 2, 2, 3])],
        )

    return _factory


@pytest.fixture
def two_in_two_out_model(model_dir: Path) -> Path:
    """float32 a, b -> (a + b, a - b)."""
    return save_model(
        model_dir / "add_sub.onnx",
        [
            helper.make_node("Add", ["a", "b"], ["sum"]),
            helper.make_node("Sub", ["a", "b"], ["diff"]),
        ],
        [
            _value_info("a", TensorProto.FLOAT, [2, 3]),
            _value_info("b", TensorProto.FLOAT, [2, 3]),
        ],
        [
            _value_info("sum", TensorProto.FLOAT, [2, 3]),
            _value_info("diff", TensorProto.FLOAT, [2, 3]),
        ],
    )


@pytest.fixture
def dynamic_model(model_dir: Path) -> Path:
    """float32 [N,3] -> Relu, with a symbolic batch dimension."""
    return save_model(
        model_dir / "dynamic.onnx",
        [helper.make_node("Relu", ["input"], ["output"])],
        [_value_info("input", TensorProto.FLOAT, ["N", 3])],
        [_value_info("output", TensorProto.FLOAT, ["N", 3])],
    )


@pytest.fixture
def initializer_model(model_dir: Path) -> Path:
    """Weight listed as a graph input and an initializer; only x is an input."""
    weight = helper.make_tensor("w", TensorProto.FLOAT, [1, 4], [1.0, 2.0, 3.0, 4.0])
    return save_model(
        model_dir / "scale.onnx",
        [helper.make_node("Mul", ["x", "w"], ["y"])],
        [
            _value_info("x", TensorProto.FLOAT, [1, 4]),
            _value_info("w", TensorProto.FLOAT, [1, 4]),
        ],
        [_value_info("y", TensorProto.FLOAT, [1, 4])],
        initializers=[weight],
    )


@pytest.fixture
def mixed_input_model(model_dir: Path) -> Path:
    return save_model(
        model_dir / "mixed_inputs.onnx",
        [
            helper.make_node("Identity", ["a"], ["a_out"]),
            _cast("b", "b_out", TensorProto.FLOAT),
        ],
        [
            _value_info("a", TensorProto.FLOAT, [1, 2]),
            _value_info("b", TensorProto.UINT8, [1, 2]),
        ],
        [
            _value_info("a_out", TensorProto.FLOAT, [1, 2]),
            _value_info("b_out", TensorProto.FLOAT, [1, 2]),
        ],
    )


@pytest.fixture
def mixed_output_model(model_dir: Path) -> Path:
    return save_model(
        model_dir / "mixed_outputs.onnx",
        [
            helper.make_node("Identity", ["x"], ["y"]),
            _cast("x", "z", TensorProto.UINT8),
        ],
        [_value_info("x", TensorProto.FLOAT, [1, 2])],
        [
            _value_info("y", TensorProto.FLOAT, [1, 2]),
            _value_info("z", TensorProto.UINT8, [1, 2]),
        ],
    )


@pytest.fixture
def double_output_model(model_dir: Path) -> Path:
    """Supported input type, unsupported output type."""
    return save_model(
        model_dir / "double_out.onnx",
        [_cast("x", "y", TensorProto.DOUBLE)],
        [_value_info("x", TensorProto.FLOAT, [1, 2])],
        [_value_info("y", TensorProto.DOUBLE, [1, 2])],
    )


@pytest.fixture
def double_input_model(model_dir: Path) -> Path:
    return save_model(
        model_dir / "double_in.onnx",
        [_cast("x", "y", TensorProto.FLOAT)],
        [_value_info("x", TensorProto.DOUBLE, [1, 2])],
        [_value_info("y", TensorProto.FLOAT, [1, 2])],
    )


@pytest.fixture
def no_input_model(model_dir: Path) -> Path:
    value = helper.make_tensor("c", TensorProto.FLOAT, [1], [1.0])
    return save_model(
        model_dir / "constant.onnx",
        [helper.make_node("Constant", [], ["y"], value=value)],
        [],
        [_value_info("y", TensorProto.FLOAT, [1])],
    )


@pytest.fixture
def unknown_op_model(model_dir: Path) -> Path:
    """Parses as ONNX but ONNX Runtime cannot build a session for it."""
    return save_model(
        model_dir / "unknown_op.onnx",
        [helper.make_node("NotARealOperator", ["x"], ["y"])],
        [_value_info("x", TensorProto.FLOAT, [1, 2])],
        [_value_info("y", TensorProto.FLOAT, [1, 2])],
    )


@pytest.fixture
def garbage_model(model_dir: Path) -> Path:
    path = model_dir / "garbage.onnx"
    path.write_bytes(b"not a model")
    return path


# ---------------------------------------------------------------------------
# Fixtures: Runtime
# ---------------------------------------------------------------------------


@pytest.fixture
def environment() -> RuntimeEnvironment:
    """A private environment so refcount assertions are not affected by other tests."""
    return RuntimeEnvironment()


@pytest.fixture
def float_inputs() -> dict:
    return {"input": np.array([[-1.0, 0.5, -0.25, 2.0]], dtype=np.float32)}


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """setup_logging/disable_logging mutate the package logger; undo after each test."""
    import logging

    package_logger = logging.getLogger("onnx_cpu")
    handlers = list(package_logger.handlers)
    yield
    package_logger.handlers[:] = handlers
    package_logger.disabled = False
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
