"""
Native ONNX Runtime layer: environment, session, tensor handles and the
type-dispatched converter.
"""

from .converter import DISPATCH, from_native, select_route, to_native
from .environment import EnvironmentState, RuntimeEnvironment, get_environment
from .library import resolve_shared_library
from .session import InferenceSession, NativeTensor, live_handles, tensor_scope
