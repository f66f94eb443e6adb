import logging

# Add NullHandler to prevent logs when used as library
logging.getLogger(__name__).addHandler(logging.NullHandler())

"""
Serves ONNX models on the CPU through ONNX Runtime with typed tensor
marshalling and explicit native resource management.
"""

from .config import ModelConfig, load_config
from .contracts import ModelContracts, TensorContract, discover_contracts
from .dtypes import ElementType
from .errors import (
    ClosedError,
    ConfigValidationError,
    InferenceExecutionError,
    MissingInputError,
    MixedTypeError,
    ModelLoadError,
    OnnxCPUError,
    ReleaseError,
    TypeMismatchError,
    UnsupportedPlatformError,
    UnsupportedTypeError,
)
from .metadata import ModelMetadata, TensorInfo, build_metadata
from .model import OnnxCPUModel
from .utils import get_logger  # Export for users
from .utils import setup_logging  # Export for users who want to enable logging

__version__ = "0.1.0"
