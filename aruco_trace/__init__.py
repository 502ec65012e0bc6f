"""Live ArUco-anchored 3D point trace overlay."""

from .config import OverlayConfig, load_config
from .errors import ConfigurationError, DeviceError, FormatError
from .worker import LoopState, OverlayWorker

__all__ = [
    "OverlayConfig",
    "load_config",
    "OverlayWorker",
    "LoopState",
    "ConfigurationError",
    "DeviceError",
    "FormatError",
]
