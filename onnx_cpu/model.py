# onnx_cpu/model.py

"""
Main entry point for model inference.

``OnnxCPUModel`` loads an ONNX model, checks that its tensors can be
marshalled, opens one ONNX Runtime session on the CPU and serves
``metadata()``, ``infer()`` and ``close()`` over it.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any, Mapping, Optional

from onnx_cpu.config import ModelConfig
from onnx_cpu.contracts import ModelContracts, discover_contracts
from onnx_cpu.errors import ClosedError, ReleaseError
from onnx_cpu.metadata import ModelMetadata, build_metadata
from onnx_cpu.runtime.converter import NamedTensors, select_route
from onnx_cpu.runtime.environment import RuntimeEnvironment, get_environment
from onnx_cpu.runtime.session import InferenceSession
from onnx_cpu.utils import get_logger

logger = get_logger(__name__)


class OnnxCPUModel:
    """
    ONNX model served by ONNX Runtime on the CPU.

    Construction either returns a ready model or raises; nothing needs to be
    cleaned up after a failed construction. ``infer`` calls on one instance are
    serialized: they run one at a time in arrival order of the lock.

    Example:
        >>> with OnnxCPUModel("model.onnx", label_path="labels.txt") as model:
        ...     md = model.metadata()
        ...     out = model.infer({"input": np.zeros((1, 3, 224, 224), np.float32)})
    """

    def __init__(
        self,
        model_path: Optional[str] = None,
        label_path: Optional[str] = None,
        *,
        config: Optional[ModelConfig] = None,
        environment: Optional[RuntimeEnvironment] = None,
    ):
        """
        Args:
            model_path (str): Path to the ``.onnx`` model file.
            label_path (str, optional): Label file path, attached verbatim to
                every output's metadata. Not opened here.
            config (ModelConfig, optional): Full configuration. ``model_path``
                and ``label_path`` override the matching config fields.
            environment (RuntimeEnvironment, optional): Environment to acquire.
                Defaults to the process-wide one.

        Raises:
            ConfigValidationError, UnsupportedPlatformError, ModelLoadError,
            UnsupportedTypeError, MixedTypeError
        """
        overrides = {}
        if model_path is not None:
            overrides["model_path"] = str(model_path)
        if label_path is not None:
            overrides["label_path"] = str(label_path)
        self.config = replace(config or ModelConfig(), **overrides).validate()

        logger.info(f"Initializing OnnxCPUModel with {self.config.model_path}")

        self._closed = True
        self._lock = threading.Lock()
        self._environment = environment or get_environment()
        self._environment.acquire(log_severity_level=self.config.log_severity_level)
        try:
            self.contracts: ModelContracts = discover_contracts(self.config.model_path)
            self._metadata = build_metadata(self.contracts, self.config.label_path)
            self._route = select_route(
                self.contracts.input_type, self.contracts.output_type
            )
            self._session = InferenceSession(
                self.config.model_path,
                self.contracts.input_names,
                self.contracts.output_names,
                self.config,
            )
        except BaseException:
            self._environment.release()
            raise

        self._closed = False
        logger.info(
            "OnnxCPUModel ready (input type=%s, output type=%s, route=%s)",
            self.contracts.input_type.label,
            self.contracts.output_type.label,
            self._route.__name__,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedError(f"model {self.config.model_path} has been closed")

    def metadata(self) -> ModelMetadata:
        """Return the metadata built at construction."""
        self._check_open()
        return self._metadata

    def infer(self, tensors: Mapping[str, Any]) -> NamedTensors:
        """
        Run the model on ``tensors``.

        Args:
            tensors: Map of input name to numpy array. Must contain every
                model input with exactly the model's element type; other keys
                are ignored.

        Returns:
            Dict of output name to numpy array, shaped as the session produced it.

        Raises:
            ClosedError, MissingInputError, TypeMismatchError,
            InferenceExecutionError
        """
        with self._lock:
            self._check_open()
            logger.debug(f"Running inference via {self._route.__name__}")
            return self._route(self._session, tensors, self.contracts)

    def close(self) -> None:
        """
        Release the session, then this model's hold on the runtime environment.

        The model counts as closed even if releasing the session fails, in
        which case ReleaseError is raised. Closing twice is a no-op.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            logger.info("Closing OnnxCPUModel and releasing resources")
            try:
                self._session.destroy()
            except Exception as e:
                raise ReleaseError(
                    f"failed to destroy session for {self.config.model_path}: {e}"
                ) from e
            finally:
                self._environment.release()

    def __enter__(self) -> "OnnxCPUModel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "ready"
        return f"OnnxCPUModel({self.config.model_path!r}, {state})"
