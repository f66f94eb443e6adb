"""
Native tensor handles and the bound ONNX Runtime session.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence

import numpy as np
import onnxruntime as ort

from onnx_cpu.config import ModelConfig
from onnx_cpu.dtypes import ElementType
from onnx_cpu.errors import ClosedError, InferenceExecutionError, ModelLoadError
from onnx_cpu.utils import get_logger

logger = get_logger(__name__)

_GRAPH_OPTIMIZATION_LEVELS = {
    "disable": ort.GraphOptimizationLevel.ORT_DISABLE_ALL,
    "basic": ort.GraphOptimizationLevel.ORT_ENABLE_BASIC,
    "extended": ort.GraphOptimizationLevel.ORT_ENABLE_EXTENDED,
    "all": ort.GraphOptimizationLevel.ORT_ENABLE_ALL,
}

_live_lock = threading.Lock()
_live_handles = 0


def live_handles() -> int:
    """Number of native tensor handles created and not yet released."""
    return _live_handles


def _track(delta: int) -> None:
    global _live_handles
    with _live_lock:
        _live_handles += delta


class NativeTensor:
    """One ``OrtValue`` owned by a single infer call.

    Handles built from numpy keep the source buffer alive, since the
    ``OrtValue`` points into it rather than copying.
    """

    def __init__(self, value: ort.OrtValue, backing: Optional[np.ndarray] = None):
        self._value = value
        self._backing = backing
        _track(1)

    @classmethod
    def from_numpy(cls, array: np.ndarray) -> "NativeTensor":
        backing = np.ascontiguousarray(array)
        return cls(ort.OrtValue.ortvalue_from_numpy(backing), backing)

    @property
    def released(self) -> bool:
        return self._value is None

    @property
    def value(self) -> ort.OrtValue:
        if self._value is None:
            raise ClosedError("native tensor handle used after release")
        return self._value

    @property
    def element_type(self) -> Optional[ElementType]:
        return ElementType.from_ort(self.value.data_type())

    @property
    def type_label(self) -> str:
        member = self.element_type
        return member.label if member is not None else self.value.data_type()

    @property
    def shape(self) -> tuple:
        return tuple(self.value.shape())

    def to_numpy(self) -> np.ndarray:
        """Copy the tensor out so the result outlives the handle."""
        return np.array(self.value.numpy(), copy=True)

    def release(self) -> None:
        if self._value is None:
            return
        self._value = None
        self._backing = None
        _track(-1)


@contextmanager
def tensor_scope() -> Iterator[List[NativeTensor]]:
    """Release every handle appended to the yielded list on exit.

    Release failures after the body already failed are logged so they never
    hide the original error; on a clean exit they are raised.
    """
    handles: List[NativeTensor] = []
    try:
        yield handles
    except BaseException:
        _release_all(handles, primary_failed=True)
        raise
    else:
        _release_all(handles, primary_failed=False)


def _release_all(handles: Sequence[NativeTensor], primary_failed: bool) -> None:
    errors = []
    for handle in handles:
        try:
            handle.release()
        except Exception as e:
            errors.append(e)
            logger.warning("Failed to release native tensor: %s", e)
    if errors and not primary_failed:
        raise InferenceExecutionError(
            f"failed to release {len(errors)} native tensor(s)"
        ) from errors[0]


class InferenceSession:
    """ONNX Runtime session bound to fixed, ordered input and output names."""

    def __init__(
        self,
        model_path: str,
        input_names: Sequence[str],
        output_names: Sequence[str],
        config: Optional[ModelConfig] = None,
    ):
        config = config or ModelConfig(model_path=str(model_path))
        self.model_path = str(model_path)
        self.input_names = tuple(input_names)
        self.output_names = tuple(output_names)

        sess_options = ort.SessionOptions()
        sess_options.graph_optimization_level = _GRAPH_OPTIMIZATION_LEVELS[
            config.graph_optimization_level
        ]
        sess_options.enable_cpu_mem_arena = True
        sess_options.intra_op_num_threads = config.intra_op_num_threads
        sess_options.inter_op_num_threads = config.inter_op_num_threads
        sess_options.log_severity_level = config.log_severity_level

        try:
            self._session = ort.InferenceSession(
                self.model_path,
                sess_options=sess_options,
                providers=["CPUExecutionProvider"],
            )
        except Exception as e:
            raise ModelLoadError(
                f"failed to create session for {self.model_path}: {e}"
            ) from e

        bound_inputs = {i.name for i in self._session.get_inputs()}
        bound_outputs = {o.name for o in self._session.get_outputs()}
        missing = [n for n in self.input_names if n not in bound_inputs]
        missing += [n for n in self.output_names if n not in bound_outputs]
        if missing:
            self.destroy()
            raise ModelLoadError(
                f"session for {self.model_path} does not expose tensors {missing}"
            )

        logger.info(
            "ONNX Runtime session opened: %s (inputs=%s, outputs=%s)",
            self.model_path,
            list(self.input_names),
            list(self.output_names),
        )

    @property
    def is_open(self) -> bool:
        return self._session is not None

    def run(self, inputs: Sequence[NativeTensor]) -> List[NativeTensor]:
        """Run the graph. ``inputs`` follow the order of ``input_names``.

        Raises:
            InferenceExecutionError: the engine rejected the inputs or failed.
        """
        if self._session is None:
            raise ClosedError("session has been destroyed")
        if len(inputs) != len(self.input_names):
            raise InferenceExecutionError(
                f"expected {len(self.input_names)} input tensors, got {len(inputs)}"
            )

        feeds = {name: tensor.value for name, tensor in zip(self.input_names, inputs)}
        try:
            values = self._session.run_with_ort_values(list(self.output_names), feeds)
        except Exception as e:
            raise InferenceExecutionError(f"failed to Run on Infer command: {e}") from e

        outputs = [NativeTensor(v) for v in values]
        if len(outputs) != len(self.output_names):
            for out in outputs:
                out.release()
            raise InferenceExecutionError(
                f"expected {len(self.output_names)} output tensors, got {len(outputs)}"
            )
        return outputs

    def destroy(self) -> None:
        """Drop the native session. Safe to call more than once."""
        if self._session is None:
            return
        self._session = None
        logger.info("ONNX Runtime session destroyed: %s", self.model_path)
