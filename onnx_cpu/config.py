# onnx_cpu/config.py
import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path

import yaml

from onnx_cpu.errors import ConfigValidationError
from onnx_cpu.utils import get_logger

logger = get_logger(__name__)

MODEL_EXTENSION = ".onnx"

GRAPH_OPTIMIZATION_LEVELS = ("disable", "basic", "extended", "all")


def load_config(path: str = None):
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    if p.suffix.lower() in {".yml", ".yaml"}:
        return yaml.safe_load(p.read_text()) or {}
    if p.suffix.lower() == ".json":
        return json.loads(p.read_text())
    raise ValueError("Config must be .yml/.yaml or .json")


@dataclass
class ModelConfig:
    """Construction options for :class:`onnx_cpu.model.OnnxCPUModel`.

    Only ``model_path`` is required. ``label_path`` is passed through to the
    output metadata untouched; it is not checked for existence.
    """

    model_path: str = ""
    label_path: str = ""
    intra_op_num_threads: int = 0
    inter_op_num_threads: int = 0
    graph_optimization_level: str = "all"
    log_severity_level: int = 2

    @classmethod
    def field_names(cls):
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, data: dict) -> "ModelConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", unknown)
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})

    @classmethod
    def from_file(cls, path: str) -> "ModelConfig":
        return cls.from_dict(load_config(path))

    def validate(self) -> "ModelConfig":
        if not self.model_path:
            raise ConfigValidationError("model_path", "field is required")
        if Path(str(self.model_path)).suffix != MODEL_EXTENSION:
            raise ConfigValidationError(
                "model_path",
                f"filename must end in {MODEL_EXTENSION}. "
                f"The filename is {Path(str(self.model_path)).name}",
            )
        if self.label_path is not None and not isinstance(self.label_path, (str, Path)):
            raise ConfigValidationError("label_path", "must be a string path")
        for name in ("intra_op_num_threads", "inter_op_num_threads"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ConfigValidationError(name, f"must be a non-negative integer, got {value!r}")
        if self.graph_optimization_level not in GRAPH_OPTIMIZATION_LEVELS:
            raise ConfigValidationError(
                "graph_optimization_level",
                f"must be one of {list(GRAPH_OPTIMIZATION_LEVELS)}, "
                f"got {self.graph_optimization_level!r}",
            )
        if self.log_severity_level not in range(5):
            raise ConfigValidationError(
                "log_severity_level", f"must be in 0..4, got {self.log_severity_level!r}"
            )
        return self

    def to_dict(self) -> dict:
        return asdict(self)
