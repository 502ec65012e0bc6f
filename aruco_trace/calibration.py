"""Camera intrinsics storage.

The store holds exactly one ``CameraCalibration`` at a time. It is written
once when the render loop starts and only read afterwards, so the arrays it
hands out are flagged read-only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Tuple

import cv2
import numpy as np

from .errors import ConfigurationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraCalibration:
    camera_matrix: np.ndarray  # (3, 3)
    dist_coeffs: np.ndarray  # (1, 5)


def _as_array(values: Any, name: str) -> np.ndarray:
    try:
        arr = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be numeric: {exc}") from exc
    if arr.size and not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"{name} contains non-finite values")
    return arr


def _intrinsics(values: Any) -> np.ndarray:
    arr = _as_array(values, "camera_matrix")
    if arr.shape != (3, 3):
        raise ConfigurationError(f"camera_matrix must have shape (3, 3), got {arr.shape}")
    arr.flags.writeable = False
    return arr


def _distortion(values: Any) -> np.ndarray:
    # (5,), (1, 5) and (5, 1) are all accepted; OpenCV hands out any of them.
    arr = _as_array(values, "dist_coeffs")
    if arr.size != 5 or max(arr.shape) != 5:
        raise ConfigurationError(f"dist_coeffs must hold 5 values, got shape {arr.shape}")
    arr = arr.reshape(1, 5)
    arr.flags.writeable = False
    return arr


class CalibrationStore:
    def __init__(self):
        self._calibration: Optional[CameraCalibration] = None

    @property
    def is_loaded(self) -> bool:
        return self._calibration is not None

    @property
    def current(self) -> CameraCalibration:
        if self._calibration is None:
            raise ConfigurationError("No camera calibration loaded")
        return self._calibration

    def load(self, intrinsics: Any, distortion: Any) -> CameraCalibration:
        """Validate and store a calibration, replacing any previous one."""
        calib = CameraCalibration(
            camera_matrix=_intrinsics(intrinsics),
            dist_coeffs=_distortion(distortion),
        )
        self._calibration = calib
        return calib


def load_calib(path: str | Path) -> Tuple[np.ndarray, np.ndarray]:
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Calibration file not found: {p}")
    fs = cv2.FileStorage(str(p), cv2.FILE_STORAGE_READ)
    try:
        K = fs.getNode("camera_matrix").mat()
        dist = fs.getNode("dist_coeffs").mat()
    finally:
        fs.release()
    if K is None or dist is None:
        raise ConfigurationError(f"{p} must define camera_matrix and dist_coeffs")
    return K, dist


def calibration_from_config(config) -> Tuple[Any, Any]:
    """Resolve intrinsics from inline values first, then from calibration_path."""
    if config.camera_matrix is not None or config.dist_coeffs is not None:
        if config.camera_matrix is None or config.dist_coeffs is None:
            raise ConfigurationError("camera_matrix and dist_coeffs must be given together")
        return config.camera_matrix, config.dist_coeffs
    if config.calibration_path:
        logger.debug("reading calibration from %s", config.calibration_path)
        return load_calib(config.calibration_path)
    raise ConfigurationError("No calibration configured: set camera_matrix/dist_coeffs or calibration_path")
